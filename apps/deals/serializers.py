"""
Deal Serializers

PostDealFormSerializer validates the Post a Deal form before anything is
sent over the network. DealUpsertSerializer validates the normalized
payload accepted by POST /api/deals.
"""
import re
from datetime import date, datetime
from decimal import Decimal

from rest_framework import serializers

from apps.agencies.config import AgencyDealConfig
from apps.core.constants import (
    BILLING_CYCLES,
    BILLING_WEEKDAYS,
    BILLING_WEEKS_OF_MONTH,
    STANDARDIZED_STATUSES,
)

from .services import derive_annual_premium

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# deals.monthly_premium and deals.coverage_amount are NUMERIC(15, 2)
AMOUNT_FIELD_LIMITS = {'max_digits': 15, 'decimal_places': 2, 'min_value': Decimal('0')}

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')

# Wizard keys that do not map onto a snake_case field name directly
_FORM_KEY_ALIASES = {
    'date_of_birth': 'client_date_of_birth',
    'team': 'team_id',
}


def camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


def normalize_form_keys(data: dict) -> dict:
    """Convert camelCase wizard keys (and nested beneficiary keys) to snake_case."""
    normalized = {}
    for key, value in data.items():
        snake = camel_to_snake(key)
        snake = _FORM_KEY_ALIASES.get(snake, snake)
        if isinstance(value, list):
            value = [normalize_form_keys(item) if isinstance(item, dict) else item for item in value]
        normalized[snake] = value
    return normalized


def phone_digits(value: str | None) -> str:
    return re.sub(r'\D', '', value or '')


def _parse_iso_date(value: str) -> date | None:
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


def _parse_amount(raw: str) -> Decimal:
    """Validate a money amount with the same limits POST /api/deals applies."""
    return serializers.DecimalField(**AMOUNT_FIELD_LIMITS).run_validation(raw)


class BeneficiarySerializer(serializers.Serializer):
    name = serializers.CharField(default='', allow_blank=True, max_length=255)
    relationship = serializers.CharField(default='', allow_blank=True, max_length=100)


class PostDealFormSerializer(serializers.Serializer):
    """
    Post a Deal form, validated against the agency's deal configuration.

    Pass the resolved AgencyDealConfig as context['config']. Every field is
    accepted as text so each problem is reported against its own field.
    """
    carrier_id = serializers.CharField(default='', allow_blank=True)
    product_id = serializers.CharField(default='', allow_blank=True)
    team_id = serializers.CharField(default='', allow_blank=True)
    policy_number = serializers.CharField(default='', allow_blank=True, max_length=255)
    application_number = serializers.CharField(default='', allow_blank=True, max_length=255)
    policy_effective_date = serializers.CharField(default='', allow_blank=True)
    monthly_premium = serializers.CharField(default='', allow_blank=True)
    coverage_amount = serializers.CharField(default='', allow_blank=True)
    rate_class = serializers.CharField(default='', allow_blank=True)
    billing_cycle = serializers.CharField(default='', allow_blank=True)
    ssn_benefit = serializers.CharField(default='no', allow_blank=True)
    billing_day_of_month = serializers.CharField(default='', allow_blank=True, allow_null=True)
    billing_weekday = serializers.CharField(default='', allow_blank=True, allow_null=True)
    lead_source = serializers.CharField(default='', allow_blank=True)
    client_name = serializers.CharField(default='', allow_blank=True)
    client_email = serializers.CharField(default='', allow_blank=True)
    client_phone = serializers.CharField(default='', allow_blank=True)
    client_date_of_birth = serializers.CharField(default='', allow_blank=True)
    client_address = serializers.CharField(default='', allow_blank=True)
    notes = serializers.CharField(default='', allow_blank=True)
    beneficiaries = BeneficiarySerializer(many=True, default=list)

    def validate(self, attrs):
        config: AgencyDealConfig = self.context['config']
        errors: dict[str, str] = {}

        for field_name in config.required_fields():
            if not str(attrs.get(field_name) or '').strip():
                errors[field_name] = 'This field is required.'

        beneficiaries = [
            b for b in attrs.get('beneficiaries') or []
            if b.get('name', '').strip()
        ]
        if config.beneficiaries_required and not any(
            b.get('relationship', '').strip() for b in beneficiaries
        ):
            errors['beneficiaries'] = 'At least one beneficiary with a name and relationship is required.'

        amounts: dict[str, Decimal | None] = {'monthly_premium': None, 'coverage_amount': None}
        for field_name in amounts:
            raw = attrs.get(field_name, '').strip()
            if raw:
                try:
                    amounts[field_name] = _parse_amount(raw)
                except serializers.ValidationError as exc:
                    errors[field_name] = str(exc.detail[0])
        monthly_premium = amounts['monthly_premium']
        coverage_amount = amounts['coverage_amount']

        policy_number = attrs.get('policy_number', '').strip()
        application_number = attrs.get('application_number', '').strip()
        if not policy_number and not application_number:
            errors['policy_number'] = 'Either a policy number or an application number is required.'

        billing_cycle = attrs.get('billing_cycle', '').strip()
        if billing_cycle and billing_cycle not in BILLING_CYCLES:
            errors['billing_cycle'] = f"Billing cycle must be one of: {', '.join(BILLING_CYCLES)}."

        ssn_benefit = attrs.get('ssn_benefit', '').strip().lower() == 'yes'
        billing_day = (attrs.get('billing_day_of_month') or '').strip()
        billing_weekday = (attrs.get('billing_weekday') or '').strip()
        if ssn_benefit:
            if billing_day not in BILLING_WEEKS_OF_MONTH:
                errors['billing_day_of_month'] = 'Select which week of the month the premium is drafted.'
            if billing_weekday not in BILLING_WEEKDAYS:
                errors['billing_weekday'] = 'Select which weekday the premium is drafted.'
        else:
            billing_day, billing_weekday = '', ''

        client_email = attrs.get('client_email', '').strip()
        if client_email and not EMAIL_PATTERN.match(client_email):
            errors['client_email'] = 'Enter a valid email address.'

        raw_phone = attrs.get('client_phone', '').strip()
        if raw_phone and len(phone_digits(raw_phone)) != 10:
            errors['client_phone'] = 'Phone number must be exactly 10 digits.'

        dates = {}
        for field_name in ('policy_effective_date', 'client_date_of_birth'):
            raw = attrs.get(field_name, '').strip()
            if raw:
                dates[field_name] = _parse_iso_date(raw)
                if dates[field_name] is None:
                    errors[field_name] = 'Enter a date in YYYY-MM-DD format.'

        if errors:
            raise serializers.ValidationError(errors)

        return {
            'carrier_id': attrs['carrier_id'].strip(),
            'product_id': attrs.get('product_id', '').strip() or None,
            'team_id': attrs.get('team_id', '').strip() or None,
            'policy_number': policy_number or None,
            'application_number': application_number or None,
            'policy_effective_date': dates.get('policy_effective_date'),
            'monthly_premium': monthly_premium,
            'annual_premium': derive_annual_premium(monthly_premium),
            'coverage_amount': coverage_amount,
            'rate_class': attrs.get('rate_class', '').strip() or None,
            'billing_cycle': billing_cycle or None,
            'ssn_benefit': ssn_benefit,
            'billing_day_of_month': billing_day or None,
            'billing_weekday': billing_weekday or None,
            'lead_source': attrs.get('lead_source', '').strip() or None,
            'client_name': attrs.get('client_name', '').strip(),
            'client_email': client_email or None,
            'client_phone': phone_digits(raw_phone) or None,
            'client_date_of_birth': dates.get('client_date_of_birth'),
            'client_address': attrs.get('client_address', '').strip() or None,
            'notes': attrs.get('notes', '').strip() or None,
            'beneficiaries': [
                {'name': b['name'].strip(), 'relationship': b.get('relationship', '').strip()}
                for b in beneficiaries
            ],
        }


class DealUpsertSerializer(serializers.Serializer):
    """Normalized deal payload for POST /api/deals."""
    agent_id = serializers.UUIDField(required=False, allow_null=True)
    carrier_id = serializers.UUIDField()
    product_id = serializers.UUIDField(required=False, allow_null=True)
    client_id = serializers.UUIDField(required=False, allow_null=True)
    team_id = serializers.UUIDField(required=False, allow_null=True)
    policy_number = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    application_number = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    status = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    status_standardized = serializers.ChoiceField(
        choices=[s['value'] for s in STANDARDIZED_STATUSES], required=False, allow_null=True
    )
    monthly_premium = serializers.DecimalField(**AMOUNT_FIELD_LIMITS, required=False, allow_null=True)
    coverage_amount = serializers.DecimalField(**AMOUNT_FIELD_LIMITS, required=False, allow_null=True)
    rate_class = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    policy_effective_date = serializers.DateField(required=False, allow_null=True)
    submission_date = serializers.DateField(required=False, allow_null=True)
    billing_cycle = serializers.ChoiceField(choices=BILLING_CYCLES, required=False, allow_null=True)
    ssn_benefit = serializers.BooleanField(required=False, allow_null=True, default=None)
    billing_day_of_month = serializers.ChoiceField(
        choices=BILLING_WEEKS_OF_MONTH, required=False, allow_null=True, allow_blank=True
    )
    billing_weekday = serializers.ChoiceField(
        choices=BILLING_WEEKDAYS, required=False, allow_null=True, allow_blank=True
    )
    lead_source = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=100)
    client_name = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    client_email = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    client_phone = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=50)
    client_address = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    date_of_birth = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    beneficiaries = BeneficiarySerializer(many=True, required=False, allow_null=True)

    def validate(self, attrs):
        # Blank strings mean "not supplied"
        for key, value in list(attrs.items()):
            if isinstance(value, str):
                attrs[key] = value.strip() or None

        if not attrs.get('policy_number') and not attrs.get('application_number'):
            raise serializers.ValidationError(
                {'policy_number': 'Either a policy number or an application number is required.'}
            )
        return attrs
