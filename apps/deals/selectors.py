"""
Deal Selectors

Read paths for deal data: book of business, Post a Deal form options,
products by carrier.
"""
import logging
from datetime import date, datetime
from uuid import UUID

from django.conf import settings
from django.core.cache import cache
from django.db.models import Q

from apps.agencies.selectors import get_agency_deal_config
from apps.core.authentication import AuthenticatedUser
from apps.core.constants import (
    BILLING_CYCLES,
    BILLING_WEEKDAYS,
    BILLING_WEEKS_OF_MONTH,
    STANDARDIZED_STATUSES,
)
from apps.core.models import Carrier, Deal, Product, Team, User
from apps.core.permissions import get_visible_agent_ids

from .cache import book_of_business_cache_key

logger = logging.getLogger(__name__)


def mask_phone_number(phone: str | None, can_view_full: bool = False) -> str | None:
    """
    Mask a phone number for privacy protection.

    Returns:
        Masked phone number (e.g., '555****12') or full number if permitted
    """
    if not phone:
        return None

    if can_view_full:
        return phone

    digits = ''.join(c for c in phone if c.isdigit())

    if len(digits) <= 4:
        return '****'
    elif len(digits) <= 6:
        return digits[:2] + '****'
    else:
        # Show first 3 and last 2 digits
        return digits[:3] + '****' + digits[-2:]


def get_book_of_business(
    user: AuthenticatedUser,
    limit: int = 20,
    cursor_created_at: datetime | None = None,
    cursor_id: UUID | None = None,
    carrier_id: UUID | None = None,
    product_id: UUID | None = None,
    agent_id: UUID | None = None,
    status_standardized: str | None = None,
    billing_cycle: str | None = None,
    lead_source: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search_query: str | None = None,
    view: str | None = 'downlines',
) -> dict:
    """
    Get a page of the book of business with keyset pagination.

    Pages are ordered by (created_at, id) descending; the caller echoes
    next_cursor back to fetch the following page. Results are cached per
    agency and dropped whenever a deal in the agency is written.

    Args:
        user: The authenticated user
        limit: Number of records to return
        cursor_created_at: created_at of the last row already seen
        cursor_id: id of the last row already seen
        view: Scope - 'self', 'downlines', 'all' (admin only)

    Returns:
        Dictionary with deals, has_more, and next_cursor
    """
    params = {
        'limit': limit,
        'cursor_created_at': cursor_created_at,
        'cursor_id': cursor_id,
        'carrier_id': carrier_id,
        'product_id': product_id,
        'agent_id': agent_id,
        'status_standardized': status_standardized,
        'billing_cycle': billing_cycle,
        'lead_source': lead_source,
        'date_from': date_from,
        'date_to': date_to,
        'search_query': search_query,
        'view': view,
    }
    cache_key = book_of_business_cache_key(user.agency_id, user.id, params)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    result = _query_book_of_business(user, **params)
    cache.set(cache_key, result, timeout=settings.BOOK_OF_BUSINESS_CACHE_SECONDS)
    return result


def _query_book_of_business(
    user: AuthenticatedUser,
    limit: int,
    cursor_created_at: datetime | None,
    cursor_id: UUID | None,
    carrier_id: UUID | None,
    product_id: UUID | None,
    agent_id: UUID | None,
    status_standardized: str | None,
    billing_cycle: str | None,
    lead_source: str | None,
    date_from: date | None,
    date_to: date | None,
    search_query: str | None,
    view: str | None,
) -> dict:
    is_admin = user.is_administrator

    if view == 'self':
        visible_ids = [user.id]
    elif view == 'all' and is_admin:
        visible_ids = get_visible_agent_ids(user, include_full_agency=True)
    else:
        visible_ids = get_visible_agent_ids(user)

    if agent_id:
        visible_ids = [agent_id] if agent_id in visible_ids else []

    if not visible_ids:
        return {'deals': [], 'has_more': False, 'next_cursor': None}

    deals = Deal.objects.filter(agency_id=user.agency_id, agent_id__in=visible_ids)

    if carrier_id:
        deals = deals.filter(carrier_id=carrier_id)
    if product_id:
        deals = deals.filter(product_id=product_id)
    if status_standardized:
        deals = deals.filter(status_standardized=status_standardized)
    if billing_cycle:
        deals = deals.filter(billing_cycle=billing_cycle)
    if lead_source:
        deals = deals.filter(lead_source=lead_source)
    if date_from:
        deals = deals.filter(policy_effective_date__gte=date_from)
    if date_to:
        deals = deals.filter(policy_effective_date__lte=date_to)
    if search_query:
        deals = deals.filter(
            Q(client_name__icontains=search_query)
            | Q(policy_number__icontains=search_query)
            | Q(application_number__icontains=search_query)
        )

    # Keyset pagination on (created_at, id) descending
    if cursor_created_at and cursor_id:
        deals = deals.filter(
            Q(created_at__lt=cursor_created_at)
            | Q(created_at=cursor_created_at, id__lt=cursor_id)
        )

    rows = list(
        deals.select_related('agent', 'carrier', 'product')
        .order_by('-created_at', '-id')[:limit + 1]
    )
    has_more = len(rows) > limit
    rows = rows[:limit]

    next_cursor = None
    if has_more and rows:
        last = rows[-1]
        next_cursor = {'created_at': last.created_at.isoformat(), 'id': str(last.id)}

    return {
        'deals': [
            {
                'id': str(deal.id),
                'policy_number': deal.policy_number,
                'application_number': deal.application_number,
                'client_name': deal.client_name,
                'client_phone': mask_phone_number(
                    deal.client_phone,
                    can_view_full=is_admin or deal.agent_id == user.id,
                ),
                'carrier': deal.carrier.display_name or deal.carrier.name if deal.carrier_id else None,
                'product': deal.product.name if deal.product_id else None,
                'agent': deal.agent.full_name if deal.agent_id else None,
                'agent_id': str(deal.agent_id) if deal.agent_id else None,
                'monthly_premium': float(deal.monthly_premium) if deal.monthly_premium is not None else None,
                'annual_premium': float(deal.annual_premium) if deal.annual_premium is not None else None,
                'billing_cycle': deal.billing_cycle,
                'lead_source': deal.lead_source,
                'status': deal.status,
                'status_standardized': deal.status_standardized,
                'policy_effective_date': str(deal.policy_effective_date) if deal.policy_effective_date else None,
                'created_at': deal.created_at.isoformat(),
            }
            for deal in rows
        ],
        'has_more': has_more,
        'next_cursor': next_cursor,
    }


def get_post_deal_form_data(user: AuthenticatedUser) -> dict | None:
    """
    Get form data for the Post a Deal page.

    Returns carriers, products, agents, teams, lead sources, billing options
    and the agency's deal configuration, or None if the agency is unknown.
    """
    config = get_agency_deal_config(user.agency_id)
    if not config:
        return None

    products = list(
        Product.objects.filter(agency_id=user.agency_id, is_active=True)
        .select_related('carrier')
        .order_by('carrier__name', 'name')
    )

    # Carriers are the ones the agency actually has active products for
    carrier_ids = {p.carrier_id for p in products}
    carriers = [
        {'id': str(c.id), 'name': c.display_name or c.name}
        for c in Carrier.objects.filter(id__in=carrier_ids, is_active=True).order_by('name')
    ]

    visible_ids = get_visible_agent_ids(user, include_full_agency=user.is_administrator)
    agents = [
        {
            'id': str(u.id),
            'name': u.full_name,
            'email': u.email,
        }
        for u in User.objects.filter(id__in=visible_ids, is_active=True).order_by('first_name', 'last_name')
    ]

    teams = []
    if config.teams_enabled:
        teams = [
            {'id': str(t.id), 'name': t.name}
            for t in Team.objects.filter(agency_id=user.agency_id, is_active=True)
        ]

    return {
        'carriers': carriers,
        'products': [
            {
                'id': str(p.id),
                'name': p.name,
                'carrier_id': str(p.carrier_id),
                'carrier_name': p.carrier.display_name or p.carrier.name,
            }
            for p in products
        ],
        'agents': agents,
        'teams': teams,
        'lead_sources': list(config.lead_sources),
        'billing_options': {
            'billing_cycles': BILLING_CYCLES,
            'billing_days_of_month': BILLING_WEEKS_OF_MONTH,
            'billing_weekdays': BILLING_WEEKDAYS,
        },
        'statuses': [s['value'] for s in STANDARDIZED_STATUSES],
        'config': config.to_dict(),
        'user': {
            'id': str(user.id),
            'name': user.full_name,
            'is_admin': user.is_administrator,
        },
    }


def get_products_by_carrier(user: AuthenticatedUser, carrier_id: UUID) -> list[dict]:
    """
    Get the agency's active products for a specific carrier.
    """
    products = (
        Product.objects
        .filter(
            agency_id=user.agency_id,
            carrier_id=carrier_id,
            is_active=True,
        )
        .order_by('name')
    )

    return [
        {
            'id': str(p.id),
            'name': p.name,
            'product_code': p.product_code,
            'carrier_id': str(p.carrier_id),
        }
        for p in products
    ]
