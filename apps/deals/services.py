"""
Deals Services

Business logic for the deal upsert: insert-or-update by natural key
(carrier + policy number, or carrier + application number).
Captures DealHierarchySnapshot rows when a deal is first written.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from django.db import IntegrityError, transaction

from apps.core.authentication import AuthenticatedUser
from apps.core.hierarchy import get_upline_chain
from apps.core.models import (
    Agency,
    Beneficiary,
    Carrier,
    Deal,
    DealHierarchySnapshot,
    PositionProductCommission,
    Product,
    Team,
    User,
)
from apps.core.permissions import check_hierarchy_access

from .cache import invalidate_book_of_business

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


@dataclass
class BeneficiaryInput:
    """Input data for a beneficiary."""
    name: str | None = None
    relationship: str | None = None


@dataclass
class DealUpsertInput:
    """
    Normalized deal payload.

    None means "not supplied": on update those fields keep their stored value.
    """
    agency_id: UUID
    agent_id: UUID
    carrier_id: UUID
    product_id: UUID | None = None
    client_id: UUID | None = None
    team_id: UUID | None = None
    policy_number: str | None = None
    application_number: str | None = None
    status: str | None = None
    status_standardized: str | None = None
    monthly_premium: Decimal | None = None
    coverage_amount: Decimal | None = None
    rate_class: str | None = None
    policy_effective_date: date | None = None
    submission_date: date | None = None
    billing_cycle: str | None = None
    ssn_benefit: bool | None = None
    billing_day_of_month: str | None = None  # '1st', '2nd', '3rd', '4th'
    billing_weekday: str | None = None  # 'Monday' .. 'Friday'
    lead_source: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_address: str | None = None
    date_of_birth: date | None = None
    notes: str | None = None
    beneficiaries: list[BeneficiaryInput] | None = None


@dataclass
class DealUpsertResult:
    deal: dict
    operation: str  # 'created' or 'updated'

    @property
    def created(self) -> bool:
        return self.operation == 'created'


class DealValidationError(Exception):
    """Custom exception for deal validation errors."""
    status_code = 400

    def __init__(self, message: str, code: str = 'validation_error', details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class DealPostingDisabledError(DealValidationError):
    """Raised when the agency has turned deal posting off."""
    status_code = 403

    def __init__(self):
        super().__init__(
            message='Deal posting is currently disabled for your agency. Please contact your administrator.',
            code='posting_disabled',
        )


class DealAccessDeniedError(DealValidationError):
    """Raised when the user may not post or update a deal for the target agent."""
    status_code = 403

    def __init__(self, message: str = 'You do not have permission to modify this deal.'):
        super().__init__(message=message, code='forbidden')


class PhoneAlreadyExistsError(DealValidationError):
    """Exception raised when phone number already exists for another deal."""
    status_code = 409

    def __init__(self, phone: str, existing_deal: Deal):
        super().__init__(
            message=f"Phone number {phone} already exists for another deal in your agency ({existing_deal.client_name}, Policy: {existing_deal.policy_number or 'N/A'}). Each deal must have a unique phone number within the agency.",
            code='phone_exists',
            details={'existing_deal_id': str(existing_deal.id)},
        )


class DuplicateDealError(DealValidationError):
    """Natural key is already taken by a deal this agency cannot see."""
    status_code = 409

    def __init__(self):
        super().__init__(
            message='A deal with this carrier and policy/application number already exists.',
            code='duplicate_deal',
        )


class UplinePositionError(DealValidationError):
    """Exception raised when agents in upline don't have positions."""
    def __init__(self, agents_without_positions: list[dict]):
        names = ', '.join(a['name'] for a in agents_without_positions)
        super().__init__(
            message=f"Cannot create deal: The following agents in the upline hierarchy do not have positions assigned: {names}. All agents in the upline must have positions set before deals can be created.",
            code='missing_positions',
            details={'agents_without_positions': agents_without_positions},
        )


class CommissionMappingError(DealValidationError):
    """Exception raised when commission mappings are missing."""
    def __init__(self, positions_without_commissions: list[str]):
        super().__init__(
            message='Cannot create deal: Commission percentages are not configured for some positions in the upline hierarchy. Please contact your administrator to set up commission mappings for this product.',
            code='missing_commissions',
            details={'positions_without_commissions': positions_without_commissions},
        )


def normalize_phone_for_storage(phone: str | None) -> str | None:
    """Normalize phone number to E.164 format for storage."""
    if not phone:
        return None
    digits = ''.join(c for c in phone if c.isdigit())
    if len(digits) == 10:
        return f'+1{digits}'
    if len(digits) == 11 and digits.startswith('1'):
        return f'+{digits}'
    # Return as-is if we can't normalize
    return phone


def derive_annual_premium(monthly_premium: Decimal | None) -> Decimal | None:
    """Annual premium is always monthly x 12."""
    if monthly_premium is None:
        return None
    return (Decimal(monthly_premium) * 12).quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize_billing_pattern(
    ssn_benefit: bool | None,
    billing_day_of_month: str | None,
    billing_weekday: str | None,
) -> tuple[str | None, str | None]:
    """Billing week/weekday only exist for SSN benefit deals."""
    if not ssn_benefit:
        return None, None
    return billing_day_of_month or None, billing_weekday or None


def find_deal_by_natural_key(
    agency_id: UUID,
    carrier_id: UUID,
    policy_number: str | None,
    application_number: str | None,
) -> Deal | None:
    """Policy number wins; application number is only consulted when it finds nothing."""
    deals = Deal.objects.filter(agency_id=agency_id, carrier_id=carrier_id)
    if policy_number:
        deal = deals.filter(policy_number=policy_number).first()
        if deal:
            return deal
    if application_number:
        return deals.filter(application_number=application_number).first()
    return None


def _check_phone_uniqueness(phone: str, agency_id: UUID, exclude_deal_id: UUID | None = None) -> None:
    """
    Check if phone number already exists for another deal in the agency.

    Raises:
        PhoneAlreadyExistsError: If phone exists for another deal
    """
    normalized_phone = normalize_phone_for_storage(phone)
    if not normalized_phone:
        return

    existing = Deal.objects.filter(client_phone=normalized_phone, agency_id=agency_id)
    if exclude_deal_id:
        existing = existing.exclude(id=exclude_deal_id)
    duplicate = existing.first()

    if duplicate:
        raise PhoneAlreadyExistsError(phone=phone, existing_deal=duplicate)


def _validate_upline_positions(agent_id: UUID, product_id: UUID | None) -> None:
    """
    Validate that all agents in the upline have positions and commission mappings.

    Raises:
        UplinePositionError: If agents are missing positions
        CommissionMappingError: If commission mappings are missing
    """
    chain = get_upline_chain(agent_id)
    if not chain:
        raise DealValidationError(
            message='No upline hierarchy found for this agent. Cannot create deal.',
            code='no_upline',
        )

    agents_without_positions = [
        {'id': str(row.id), 'name': row.name}
        for row in chain
        if not row.position_id
    ]
    if agents_without_positions:
        raise UplinePositionError(agents_without_positions)

    if not product_id:
        return

    position_ids = {row.position_id for row in chain}
    mapped = set(
        PositionProductCommission.objects.filter(
            product_id=product_id, position_id__in=position_ids
        ).values_list('position_id', flat=True)
    )
    missing = position_ids - mapped
    if missing:
        raise CommissionMappingError(sorted(str(p) for p in missing))


def _validate_references(data: DealUpsertInput) -> None:
    """Carrier, product, team and client must exist and belong to the agency."""
    if not Carrier.objects.filter(id=data.carrier_id).exists():
        raise DealValidationError('Carrier not found', code='invalid_carrier')

    if data.product_id and not Product.objects.filter(
        id=data.product_id, carrier_id=data.carrier_id, agency_id=data.agency_id
    ).exists():
        raise DealValidationError('Product not found for this carrier', code='invalid_product')

    if data.team_id and not Team.objects.filter(id=data.team_id, agency_id=data.agency_id).exists():
        raise DealValidationError('Team not found', code='invalid_team')

    if data.client_id and not User.objects.filter(
        id=data.client_id, agency_id=data.agency_id, role='client'
    ).exists():
        raise DealValidationError('Client not found', code='invalid_client')


def _replace_beneficiaries(deal: Deal, beneficiaries: list[BeneficiaryInput] | None) -> None:
    """
    Replace beneficiaries for a deal (delete existing and insert new).
    """
    Beneficiary.objects.filter(deal=deal).delete()

    rows = []
    for beneficiary in beneficiaries or []:
        raw_name = (beneficiary.name or '').strip()
        if not raw_name:
            continue

        # Split name into first and last on the first space
        first_name, _, last_name = raw_name.partition(' ')
        rows.append(Beneficiary(
            deal=deal,
            first_name=first_name.strip(),
            last_name=last_name.strip() or None,
            relationship=(beneficiary.relationship or '').strip() or None,
        ))

    if rows:
        Beneficiary.objects.bulk_create(rows)


def _capture_hierarchy_snapshot(deal: Deal, agent_id: UUID, product_id: UUID | None) -> int:
    """
    Capture the agent hierarchy at deal creation time.

    Creates one DealHierarchySnapshot for the writing agent and one for each
    upline, with the commission percentage the agent's position earns on
    the product and a link to the next agent up.
    """
    chain = get_upline_chain(agent_id)
    if not chain:
        return 0

    rates = {}
    if product_id:
        rates = dict(
            PositionProductCommission.objects.filter(
                product_id=product_id,
                position_id__in=[row.position_id for row in chain if row.position_id],
            ).values_list('position_id', 'commission_percentage')
        )

    in_chain = {row.id for row in chain}
    snapshots = [
        DealHierarchySnapshot(
            deal=deal,
            agent_id=row.id,
            position_id=row.position_id,
            upline_agent_id=row.upline_id if row.upline_id in in_chain else None,
            hierarchy_level=row.depth,
            commission_percentage=rates.get(row.position_id),
        )
        for row in chain
    ]
    DealHierarchySnapshot.objects.bulk_create(snapshots)

    logger.info(f"Created {len(snapshots)} hierarchy snapshots for deal {deal.id}")
    return len(snapshots)


_SIMPLE_FIELDS = (
    'product_id',
    'client_id',
    'team_id',
    'policy_number',
    'application_number',
    'status',
    'status_standardized',
    'monthly_premium',
    'coverage_amount',
    'rate_class',
    'policy_effective_date',
    'submission_date',
    'billing_cycle',
    'lead_source',
    'client_name',
    'client_email',
    'client_address',
    'date_of_birth',
    'notes',
)


def _apply_fields(deal: Deal, data: DealUpsertInput) -> None:
    """Copy supplied fields onto the deal and recompute derived ones."""
    for field_name in _SIMPLE_FIELDS:
        value = getattr(data, field_name)
        if value is not None:
            setattr(deal, field_name, value)

    if data.client_phone is not None:
        deal.client_phone = normalize_phone_for_storage(data.client_phone)

    deal.annual_premium = derive_annual_premium(deal.monthly_premium)

    if data.ssn_benefit is not None:
        deal.ssn_benefit = data.ssn_benefit
    if data.billing_day_of_month is not None:
        deal.billing_day_of_month = data.billing_day_of_month
    if data.billing_weekday is not None:
        deal.billing_weekday = data.billing_weekday
    deal.billing_day_of_month, deal.billing_weekday = normalize_billing_pattern(
        deal.ssn_benefit, deal.billing_day_of_month, deal.billing_weekday
    )


def _create_deal(data: DealUpsertInput) -> Deal:
    if data.product_id:
        _validate_upline_positions(data.agent_id, data.product_id)

    deal = Deal(
        agency_id=data.agency_id,
        agent_id=data.agent_id,
        carrier_id=data.carrier_id,
        status_standardized='pending',
        submission_date=date.today(),
    )
    _apply_fields(deal, data)

    with transaction.atomic():
        deal.save()
        _replace_beneficiaries(deal, data.beneficiaries)
        _capture_hierarchy_snapshot(deal, data.agent_id, data.product_id)

    logger.info(f"Created deal {deal.id} for agent {data.agent_id}")
    return deal


def _update_deal(deal: Deal, data: DealUpsertInput) -> Deal:
    _apply_fields(deal, data)

    try:
        with transaction.atomic():
            deal.save()
            if data.beneficiaries is not None:
                _replace_beneficiaries(deal, data.beneficiaries)
    except IntegrityError:
        # The new policy or application number belongs to another deal
        logger.warning(f"Update of deal {deal.id} collides with another deal's natural key")
        raise DuplicateDealError() from None

    logger.info(f"Updated deal {deal.id} by natural key")
    return deal


def upsert_deal(user: AuthenticatedUser, data: DealUpsertInput) -> DealUpsertResult:
    """
    Insert or update a deal by natural key.

    Raises:
        DealValidationError (and subclasses) on business rule violations
    """
    if not data.policy_number and not data.application_number:
        raise DealValidationError(
            'Either a policy number or an application number is required.',
            code='missing_policy_identifier',
        )

    agency = Agency.objects.filter(id=data.agency_id).first()
    if not agency:
        raise DealValidationError('Agency not found', code='invalid_agency')
    if not agency.deal_posting_enabled:
        raise DealPostingDisabledError()

    if not check_hierarchy_access(user, data.agent_id):
        raise DealAccessDeniedError('You can only post deals for yourself or your downline.')

    _validate_references(data)

    existing = find_deal_by_natural_key(
        data.agency_id, data.carrier_id, data.policy_number, data.application_number
    )
    if existing and existing.agent_id and not check_hierarchy_access(user, existing.agent_id):
        raise DealAccessDeniedError()

    if data.client_phone:
        _check_phone_uniqueness(
            data.client_phone, data.agency_id, exclude_deal_id=existing.id if existing else None
        )

    if existing:
        deal = _update_deal(existing, data)
        operation = 'updated'
    else:
        try:
            deal = _create_deal(data)
            operation = 'created'
        except IntegrityError:
            # A concurrent submission inserted the same natural key first
            existing = find_deal_by_natural_key(
                data.agency_id, data.carrier_id, data.policy_number, data.application_number
            )
            if not existing:
                raise DuplicateDealError() from None
            logger.info(f"Deal {existing.id} inserted concurrently, applying as update")
            deal = _update_deal(existing, data)
            operation = 'updated'

    invalidate_book_of_business(data.agency_id)

    return DealUpsertResult(deal=get_deal_by_id(deal.id, user) or {}, operation=operation)


def _decimal_or_none(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def serialize_deal(deal: Deal) -> dict:
    """Deal response body (expects carrier, product, agent, client and team loaded)."""
    return {
        'id': str(deal.id),
        'agency_id': str(deal.agency_id),
        'policy_number': deal.policy_number,
        'application_number': deal.application_number,
        'status': deal.status,
        'status_standardized': deal.status_standardized,
        'monthly_premium': _decimal_or_none(deal.monthly_premium),
        'annual_premium': _decimal_or_none(deal.annual_premium),
        'coverage_amount': _decimal_or_none(deal.coverage_amount),
        'rate_class': deal.rate_class,
        'billing_cycle': deal.billing_cycle,
        'ssn_benefit': deal.ssn_benefit,
        'billing_day_of_month': deal.billing_day_of_month,
        'billing_weekday': deal.billing_weekday,
        'lead_source': deal.lead_source,
        'notes': deal.notes,
        'client_name': deal.client_name,
        'client_email': deal.client_email,
        'client_phone': deal.client_phone,
        'client_address': deal.client_address,
        'date_of_birth': str(deal.date_of_birth) if deal.date_of_birth else None,
        'policy_effective_date': str(deal.policy_effective_date) if deal.policy_effective_date else None,
        'submission_date': str(deal.submission_date) if deal.submission_date else None,
        'created_at': deal.created_at.isoformat() if deal.created_at else None,
        'updated_at': deal.updated_at.isoformat() if deal.updated_at else None,
        'agent': {
            'id': str(deal.agent_id),
            'name': deal.agent.full_name,
            'email': deal.agent.email,
        } if deal.agent_id else None,
        'client_id': str(deal.client_id) if deal.client_id else None,
        'carrier': {
            'id': str(deal.carrier_id),
            'name': deal.carrier.display_name or deal.carrier.name,
        } if deal.carrier_id else None,
        'product': {
            'id': str(deal.product_id),
            'name': deal.product.name,
        } if deal.product_id else None,
        'team': {
            'id': str(deal.team_id),
            'name': deal.team.name,
        } if deal.team_id else None,
    }


def get_deal_by_id(deal_id: UUID, user: AuthenticatedUser) -> dict | None:
    """
    Get deal details by ID, scoped to the user's agency.

    Returns:
        Deal dict with beneficiaries, or None if not found
    """
    deal = (
        Deal.objects.select_related('agent', 'carrier', 'product', 'team')
        .filter(id=deal_id, agency_id=user.agency_id)
        .first()
    )
    if not deal:
        return None

    result = serialize_deal(deal)
    result['beneficiaries'] = [
        {
            'id': str(b.id),
            'name': f"{b.first_name or ''} {b.last_name or ''}".strip(),
            'first_name': b.first_name,
            'last_name': b.last_name,
            'relationship': b.relationship,
        }
        for b in Beneficiary.objects.filter(deal_id=deal.id).order_by('created_at', 'id')
    ]
    return result
