"""
AI Tool Execution

Maps the assistant's named tool calls onto agency-scoped queries. Every tool
returns a JSON-serializable dict; result lists are cut down so a tool result
fits in the model's context, with summary statistics computed over the full
result set.
"""
import logging
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.core.authentication import AuthenticatedUser
from apps.core.models import Agency, Carrier, Deal, Product, User
from apps.core.permissions import get_visible_agent_ids

logger = logging.getLogger(__name__)

DEALS_DEFAULT_LIMIT = 100
DEALS_CONTEXT_LIMIT = 20
AGENTS_DEFAULT_LIMIT = 100
AGENTS_CONTEXT_LIMIT = 25
PAGINATED_DEFAULT_LIMIT = 50
PAGINATED_MAX_LIMIT = 200
RECENT_ACTIVITY_LIMIT = 5


class ToolInputError(Exception):
    """Tool parameters are unusable; the message goes back to the model."""


def _float(value) -> float:
    return float(value) if value is not None else 0.0


def _uuid_param(params: dict, key: str) -> UUID | None:
    value = params.get(key)
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError as e:
        raise ToolInputError(f'Invalid {key}') from e


def _bounded_limit(value, default: int, maximum: int) -> int:
    try:
        limit = int(value) if value else default
    except (TypeError, ValueError):
        limit = default
    return max(1, min(limit, maximum))


def _datetime_param(params: dict, key: str) -> datetime | None:
    value = params.get(key)
    if not value:
        return None
    parsed = parse_datetime(str(value))
    if parsed is None:
        day = parse_date(str(value))
        if day is None:
            raise ToolInputError(f'Invalid {key}; use YYYY-MM-DD')
        parsed = datetime(day.year, day.month, day.day)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def _scoped_deals(user: AuthenticatedUser):
    """Deals the user may see: whole agency for admins, own downline otherwise."""
    deals = Deal.objects.filter(agency_id=user.agency_id)
    if not user.is_administrator:
        deals = deals.filter(agent_id__in=get_visible_agent_ids(user))
    return deals


def _filter_deals(deals, params: dict):
    status = params.get('status')
    if status and status != 'all':
        deals = deals.filter(status_standardized=status)
    agent_id = _uuid_param(params, 'agent_id')
    if agent_id:
        deals = deals.filter(agent_id=agent_id)
    carrier_id = _uuid_param(params, 'carrier_id')
    if carrier_id:
        deals = deals.filter(carrier_id=carrier_id)
    start = _datetime_param(params, 'start_date')
    if start:
        deals = deals.filter(created_at__gte=start)
    end = _datetime_param(params, 'end_date')
    if end:
        deals = deals.filter(created_at__lte=end)
    return deals


def _deal_row(deal: Deal) -> dict:
    return {
        'id': str(deal.id),
        'created_at': deal.created_at.isoformat() if deal.created_at else None,
        'policy_number': deal.policy_number,
        'application_number': deal.application_number,
        'client_name': deal.client_name,
        'policy_effective_date': str(deal.policy_effective_date) if deal.policy_effective_date else None,
        'annual_premium': _float(deal.annual_premium),
        'lead_source': deal.lead_source,
        'billing_cycle': deal.billing_cycle,
        'status': deal.status,
        'status_standardized': deal.status_standardized,
        'agent': deal.agent.full_name if deal.agent_id else None,
        'carrier': (deal.carrier.display_name or deal.carrier.name) if deal.carrier_id else None,
        'product': deal.product.name if deal.product_id else None,
    }


def _status_breakdown(deals) -> dict:
    return dict(Counter(d.status_standardized or d.status or 'unknown' for d in deals))


def get_deals(params: dict, user: AuthenticatedUser) -> dict:
    limit = _bounded_limit(params.get('limit'), DEALS_DEFAULT_LIMIT, DEALS_DEFAULT_LIMIT)
    deals = list(
        _filter_deals(_scoped_deals(user), params)
        .select_related('agent', 'carrier', 'product')
        .order_by('-created_at')[:limit]
    )

    total_premium = sum(_float(d.annual_premium) for d in deals)
    result = {
        'deals': [_deal_row(d) for d in deals[:DEALS_CONTEXT_LIMIT]],
        'count': len(deals),
        'summary': {
            'total_annual_premium': total_premium,
            'average_premium': total_premium / len(deals) if deals else 0,
            'status_breakdown': _status_breakdown(deals),
        },
    }
    if len(deals) > DEALS_CONTEXT_LIMIT:
        result['note'] = (
            f'Showing {DEALS_CONTEXT_LIMIT} of {len(deals)} deals. '
            'Summary statistics include all deals.'
        )
    return result


def get_deals_paginated(params: dict, user: AuthenticatedUser) -> dict:
    limit = _bounded_limit(params.get('limit'), PAGINATED_DEFAULT_LIMIT, PAGINATED_MAX_LIMIT)
    deals = _filter_deals(_scoped_deals(user), params)

    cursor = params.get('cursor') or {}
    cursor_created_at = _datetime_param(cursor, 'cursor_created_at')
    cursor_id = _uuid_param(cursor, 'cursor_id')
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
    if has_more:
        last = rows[-1]
        next_cursor = {'cursor_created_at': last.created_at.isoformat(), 'cursor_id': str(last.id)}

    return {
        'deals': [_deal_row(d) for d in rows],
        'count': len(rows),
        'has_more': has_more,
        'next_cursor': next_cursor,
        'page_summary': {
            'total_premium': sum(_float(d.annual_premium) for d in rows),
            'status_breakdown': _status_breakdown(rows),
        },
    }


def get_agents(params: dict, user: AuthenticatedUser) -> dict:
    agents = User.objects.filter(agency_id=user.agency_id).exclude(role='client')
    if not user.is_administrator:
        agents = agents.filter(id__in=get_visible_agent_ids(user))
    agent_id = _uuid_param(params, 'agent_id')
    if agent_id:
        agents = agents.filter(id=agent_id)

    limit = _bounded_limit(params.get('limit'), AGENTS_DEFAULT_LIMIT, AGENTS_DEFAULT_LIMIT)
    zero = Value(Decimal('0'), output_field=DecimalField(max_digits=15, decimal_places=2))
    rows = list(
        agents.select_related('position')
        .annotate(
            total_production=Coalesce(Sum('deals__annual_premium'), zero),
            total_policies=Count('deals'),
        )
        .order_by('-total_production', 'last_name')[:limit]
    )

    total_production = sum(_float(a.total_production) for a in rows)
    result = {
        'agents': [
            {
                'id': str(a.id),
                'name': a.full_name,
                'email': a.email,
                'role': a.role,
                'status': a.status,
                'position': a.position.name if a.position_id else None,
                'upline_id': str(a.upline_id) if a.upline_id else None,
                'total_production': _float(a.total_production),
                'total_policies': a.total_policies,
            }
            for a in rows[:AGENTS_CONTEXT_LIMIT]
        ],
        'count': len(rows),
        'summary': {
            'total_production': total_production,
            'total_policies': sum(a.total_policies for a in rows),
            'average_production': total_production / len(rows) if rows else 0,
            'active_agents': sum(1 for a in rows if a.is_active),
        },
    }
    if len(rows) > AGENTS_CONTEXT_LIMIT:
        result['note'] = (
            f'Showing top {AGENTS_CONTEXT_LIMIT} of {len(rows)} agents. '
            'Summary statistics include all agents.'
        )
    return result


def get_carriers_and_products(params: dict, user: AuthenticatedUser) -> dict:
    active_only = params.get('active_only') is not False

    products = Product.objects.filter(agency_id=user.agency_id).select_related('carrier')
    carrier_id = _uuid_param(params, 'carrier_id')
    if carrier_id:
        products = products.filter(carrier_id=carrier_id)
    if active_only:
        products = products.filter(is_active=True)

    carriers = Carrier.objects.filter(id__in=products.values('carrier_id'))
    if active_only:
        carriers = carriers.filter(is_active=True)

    products_by_carrier: dict[str, list[dict]] = {}
    product_rows = []
    for p in products.order_by('carrier__name', 'name'):
        row = {'id': str(p.id), 'name': p.name, 'product_code': p.product_code, 'carrier_id': str(p.carrier_id)}
        product_rows.append(row)
        products_by_carrier.setdefault(str(p.carrier_id), []).append(row)

    carrier_rows = [
        {'id': str(c.id), 'name': c.display_name or c.name, 'is_active': c.is_active}
        for c in carriers.order_by('name')
    ]
    return {
        'carriers': carrier_rows,
        'products': product_rows,
        'products_by_carrier': products_by_carrier,
        'summary': {
            'total_carriers': len(carrier_rows),
            'total_products': len(product_rows),
        },
    }


def _period_start(time_period: str | None) -> datetime | None:
    now = timezone.localtime()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if time_period == 'current_month':
        return month_start
    if time_period == 'last_month':
        return (month_start - timedelta(days=1)).replace(day=1)
    if time_period == 'ytd':
        return month_start.replace(month=1)
    return None


def get_agency_summary(params: dict, user: AuthenticatedUser) -> dict:
    agency = Agency.objects.get(id=user.agency_id)
    time_period = params.get('time_period') or 'all'

    deals = _scoped_deals(user)
    start = _period_start(time_period)
    if start:
        deals = deals.filter(created_at__gte=start)

    totals = deals.aggregate(total_production=Sum('annual_premium'), total_policies=Count('id'))
    by_status = {
        row['status_standardized'] or 'unknown': row['count']
        for row in deals.values('status_standardized').annotate(count=Count('id'))
    }
    agent_count = (
        User.objects.filter(agency_id=user.agency_id, is_active=True).exclude(role='client').count()
    )
    recent = (
        _scoped_deals(user).select_related('agent', 'carrier', 'product')
        .order_by('-created_at')[:RECENT_ACTIVITY_LIMIT]
    )

    return {
        'agency': {
            'name': agency.name,
            'display_name': agency.display_name,
            'is_active': agency.is_active,
        },
        'metrics': {
            'total_production': _float(totals['total_production']),
            'total_policies': totals['total_policies'],
            'active_policies': by_status.get('active', 0),
            'status_breakdown': by_status,
            'agent_count': agent_count,
            'time_period': time_period,
        },
        'recent_activity': [_deal_row(d) for d in recent],
        'note': f'Recent activity limited to {RECENT_ACTIVITY_LIMIT} most recent deals',
    }


def create_visualization(params: dict, user: AuthenticatedUser) -> dict:
    """Marker telling the chat UI to render a chart; no data access."""
    return {
        '_visualization': True,
        'type': params.get('type'),
        'title': params.get('title'),
        'description': params.get('description'),
        'data_source': params.get('data_source'),
        'config': params.get('config'),
    }


ToolHandler = Callable[[dict, AuthenticatedUser], dict]

# name -> (handler, action used in the failure message)
TOOL_REGISTRY: dict[str, tuple[ToolHandler, str]] = {
    'get_deals': (get_deals, 'get deals'),
    'get_deals_paginated': (get_deals_paginated, 'get paginated deals'),
    'get_agents': (get_agents, 'get agents'),
    'get_carriers_and_products': (get_carriers_and_products, 'get carriers and products'),
    'get_agency_summary': (get_agency_summary, 'get agency summary'),
    'create_visualization': (create_visualization, 'create visualization'),
}


def execute_tool_call(tool_name: str, params: dict | None, user: AuthenticatedUser) -> dict:
    """
    Run one named tool for the user's agency.

    Never raises: unknown tools and tool failures come back as {'error': ...}
    so the model can read them.
    """
    entry = TOOL_REGISTRY.get(tool_name)
    if entry is None:
        return {'error': f'Unknown tool: {tool_name}'}

    handler, action = entry
    try:
        return handler(params or {}, user)
    except ToolInputError as e:
        return {'error': str(e)}
    except Exception as e:
        logger.error(f'AI tool {tool_name} failed for agency {user.agency_id}: {e}', exc_info=True)
        return {'error': f'Failed to {action}'}
