"""
Core Models for AgentSpace Deals Backend

These are UNMANAGED models that map to existing Supabase PostgreSQL tables.
They do NOT create migrations - Django reads from existing tables.
"""
import uuid

from django.db import models
from django.db.models import Q


class Agency(models.Model):
    """
    Represents an insurance agency (the tenant boundary).
    Maps to: public.agencies
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    name = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255, null=True, blank=True)
    whitelabel_domain = models.CharField(max_length=255, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    lead_sources = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Deal posting configuration
    teams_enabled = models.BooleanField(default=False)
    beneficiaries_required = models.BooleanField(default=False)
    deal_posting_enabled = models.BooleanField(default=True)

    # Discord integration
    discord_webhook_url = models.TextField(null=True, blank=True)
    discord_notification_enabled = models.BooleanField(default=False)
    discord_notification_template = models.TextField(null=True, blank=True)
    discord_bot_username = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        managed = False  # Don't create migrations
        db_table = 'agencies'
        verbose_name_plural = 'Agencies'

    def __str__(self):
        return self.display_name or self.name


class Position(models.Model):
    """
    Represents a position/rank in an agency hierarchy.
    Maps to: public.positions
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    name = models.CharField(max_length=255)
    agency = models.ForeignKey(
        Agency,
        on_delete=models.CASCADE,
        related_name='positions'
    )
    level = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        managed = False
        db_table = 'positions'
        ordering = ['level', 'name']

    def __str__(self):
        return f"{self.name} (Level {self.level})"


class Team(models.Model):
    """
    Optional grouping of agents inside an agency.
    Maps to: public.teams
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    name = models.CharField(max_length=255)
    agency = models.ForeignKey(
        Agency,
        on_delete=models.CASCADE,
        related_name='teams'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'teams'
        ordering = ['name']

    def __str__(self):
        return self.name


class User(models.Model):
    """
    Represents a user in the system (admin, agent or portal client).
    Maps to: public.users
    """
    ROLE_CHOICES = [
        ('admin', 'Admin'),
        ('agent', 'Agent'),
        ('client', 'Client'),
    ]

    STATUS_CHOICES = [
        ('pre-invite', 'Pre-Invite'),
        ('invited', 'Invited'),
        ('onboarding', 'Onboarding'),
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    auth_user_id = models.UUIDField(unique=True, null=True, blank=True)
    email = models.CharField(max_length=255, null=True, blank=True)
    first_name = models.CharField(max_length=255, null=True, blank=True)
    last_name = models.CharField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=50, null=True, blank=True)
    agency = models.ForeignKey(
        Agency,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='users'
    )
    role = models.CharField(max_length=50, choices=ROLE_CHOICES, default='agent')
    is_admin = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    status = models.CharField(max_length=50, choices=STATUS_CHOICES, default='invited')
    upline = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='downlines'
    )
    position = models.ForeignKey(
        Position,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='users'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        managed = False
        db_table = 'users'

    def __str__(self):
        return f"{self.first_name or ''} {self.last_name or ''} ({self.email or 'No email'})".strip()

    @property
    def full_name(self):
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or self.email


class Carrier(models.Model):
    """
    Represents an insurance carrier.
    Maps to: public.carriers
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    name = models.CharField(max_length=255)
    display_name = models.CharField(max_length=255, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'carriers'

    def __str__(self):
        return self.display_name or self.name


class Product(models.Model):
    """
    An insurance product offered by a carrier, scoped to one agency.
    Maps to: public.products
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    name = models.CharField(max_length=255)
    product_code = models.CharField(max_length=100, null=True, blank=True)
    carrier = models.ForeignKey(
        Carrier,
        on_delete=models.CASCADE,
        related_name='products'
    )
    agency = models.ForeignKey(
        Agency,
        on_delete=models.CASCADE,
        related_name='products'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'products'

    def __str__(self):
        return self.name


class Deal(models.Model):
    """
    Represents an insurance policy sale.
    Maps to: public.deals

    Natural key: (carrier, policy_number) or (carrier, application_number).
    """
    STATUS_STANDARDIZED_CHOICES = [
        ('active', 'Active'),
        ('pending', 'Pending'),
        ('cancelled', 'Cancelled'),
        ('lapsed', 'Lapsed'),
        ('terminated', 'Terminated'),
    ]

    BILLING_CYCLE_CHOICES = [
        ('monthly', 'Monthly'),
        ('quarterly', 'Quarterly'),
        ('semi-annually', 'Semi-Annually'),
        ('annually', 'Annually'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    agency = models.ForeignKey(
        Agency,
        on_delete=models.CASCADE,
        related_name='deals'
    )
    agent = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals'
    )
    client = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='client_deals'
    )
    carrier = models.ForeignKey(
        Carrier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals'
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals'
    )
    team = models.ForeignKey(
        Team,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deals'
    )
    policy_number = models.CharField(max_length=255, null=True, blank=True)
    application_number = models.CharField(max_length=255, null=True, blank=True)
    status = models.CharField(max_length=255, null=True, blank=True)
    status_standardized = models.CharField(
        max_length=50,
        choices=STATUS_STANDARDIZED_CHOICES,
        null=True,
        blank=True
    )

    # Client identity captured on the deal
    client_name = models.CharField(max_length=255, null=True, blank=True)
    client_email = models.CharField(max_length=255, null=True, blank=True)
    client_phone = models.CharField(max_length=50, null=True, blank=True)
    client_address = models.TextField(null=True, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    annual_premium = models.DecimalField(
        max_digits=15, decimal_places=2, null=True, blank=True
    )
    monthly_premium = models.DecimalField(
        max_digits=15, decimal_places=2, null=True, blank=True
    )
    coverage_amount = models.DecimalField(
        max_digits=15, decimal_places=2, null=True, blank=True
    )
    rate_class = models.CharField(max_length=100, null=True, blank=True)
    billing_cycle = models.CharField(
        max_length=50, choices=BILLING_CYCLE_CHOICES, null=True, blank=True
    )
    # SSN benefit billing pattern: week of month (1st..4th) and weekday
    ssn_benefit = models.BooleanField(default=False)
    billing_day_of_month = models.CharField(max_length=10, null=True, blank=True)
    billing_weekday = models.CharField(max_length=20, null=True, blank=True)
    lead_source = models.CharField(max_length=100, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    policy_effective_date = models.DateField(null=True, blank=True)
    submission_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        managed = False
        db_table = 'deals'
        constraints = [
            models.UniqueConstraint(
                fields=['carrier', 'policy_number'],
                condition=Q(policy_number__isnull=False),
                name='deals_carrier_policy_number_uniq',
            ),
            models.UniqueConstraint(
                fields=['carrier', 'application_number'],
                condition=Q(application_number__isnull=False),
                name='deals_carrier_application_number_uniq',
            ),
        ]

    def __str__(self):
        return f"{self.policy_number or self.application_number or 'No policy#'} - {self.client_name or 'No client'}"


class Beneficiary(models.Model):
    """
    Beneficiary information for a deal.
    Maps to: public.beneficiaries
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    deal = models.ForeignKey(
        Deal,
        on_delete=models.CASCADE,
        related_name='beneficiaries'
    )
    first_name = models.CharField(max_length=255, null=True, blank=True)
    last_name = models.CharField(max_length=255, null=True, blank=True)
    relationship = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'beneficiaries'

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.relationship})"


class PositionProductCommission(models.Model):
    """
    Commission rates for position/product combinations.
    Maps to: public.position_product_commissions
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    position = models.ForeignKey(
        Position,
        on_delete=models.CASCADE,
        related_name='product_commissions'
    )
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='position_commissions'
    )
    commission_percentage = models.DecimalField(
        max_digits=5, decimal_places=2,
        help_text='Commission percentage (e.g., 75.00 for 75%)'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'position_product_commissions'
        unique_together = [['position', 'product']]

    def __str__(self):
        return f"{self.position_id} - {self.product_id}: {self.commission_percentage}%"


class DealHierarchySnapshot(models.Model):
    """
    Captures the agent hierarchy at the time a deal was created.
    Rows are written once and never updated.
    Maps to: public.deal_hierarchy_snapshots
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    deal = models.ForeignKey(
        Deal,
        on_delete=models.CASCADE,
        related_name='hierarchy_snapshots'
    )
    agent = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='deal_hierarchy_entries'
    )
    upline_agent = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='deal_hierarchy_downline_entries'
    )
    position = models.ForeignKey(
        Position,
        on_delete=models.SET_NULL,
        null=True,
        related_name='deal_hierarchy_entries'
    )
    hierarchy_level = models.IntegerField(
        help_text='Level in hierarchy (0 = writing agent, 1 = direct upline, etc.)'
    )
    commission_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'deal_hierarchy_snapshots'
        ordering = ['deal', 'hierarchy_level']
        unique_together = [['deal', 'agent']]

    def __str__(self):
        return f"Deal {self.deal_id} - Level {self.hierarchy_level}: {self.agent_id}"


class Commission(models.Model):
    """
    An earned commission transaction for one agent on one deal.
    Maps to: public.commissions
    """
    TYPE_CHOICES = [
        ('advance', 'Advance'),
        ('renewal', 'Renewal'),
        ('chargeback', 'Chargeback'),
        ('override', 'Override'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4)
    deal = models.ForeignKey(
        Deal,
        on_delete=models.CASCADE,
        related_name='commissions'
    )
    agent = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='commissions'
    )
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=0)
    commission_type = models.CharField(max_length=50, choices=TYPE_CHOICES, default='advance')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        managed = False
        db_table = 'commissions'

    def __str__(self):
        return f"{self.agent_id} on {self.deal_id}: {self.amount}"
