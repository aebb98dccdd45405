"""
Commission hierarchy for a deal.

The split table is rebuilt from the deal's hierarchy snapshots, never from
the live org chart, so later upline or position changes do not rewrite
history. All snapshots are loaded in one query and the upline walk runs
over the in-memory map.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from django.db.models import Sum

from apps.core.authentication import AuthenticatedUser
from apps.core.models import Commission, Deal, DealHierarchySnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotLink:
    """The parts of a snapshot row the walk needs."""
    agent_id: UUID
    agent_name: str
    position_name: str | None
    commission_percentage: Decimal | None
    upline_agent_id: UUID | None


@dataclass(frozen=True)
class CommissionEntry:
    agent_id: UUID
    agent_name: str
    position_name: str | None
    commission_percentage: Decimal | None
    level: int
    amount: Decimal
    is_writing_agent: bool

    def to_dict(self, indent: int = 0) -> dict:
        return {
            'agent_id': str(self.agent_id),
            'agent_name': self.agent_name,
            'position_name': self.position_name,
            'commission_percentage': float(self.commission_percentage) if self.commission_percentage is not None else None,
            'level': self.level,
            'indent': indent,
            'amount': float(self.amount),
            'is_writing_agent': self.is_writing_agent,
        }


def resolve_writing_agent(
    stored_agent_id: UUID | None,
    earnings: dict[UUID, Decimal],
) -> UUID | None:
    """
    The deal's stored agent, else the agent with the largest positive commission sum.

    Ties on the sum are broken by agent id so the fallback is stable.
    """
    if stored_agent_id:
        return stored_agent_id
    positive = [item for item in earnings.items() if item[1] > 0]
    if not positive:
        return None
    return max(positive, key=lambda item: (item[1], str(item[0])))[0]


def walk_snapshot_chain(
    snapshots: dict[UUID, SnapshotLink],
    writing_agent_id: UUID,
    earnings: dict[UUID, Decimal] | None = None,
    deal_id: UUID | None = None,
) -> list[CommissionEntry]:
    """
    Follow upline links from the writing agent until the root.

    Returns entries in traversal order (writing agent first, level 0).
    A missing snapshot or a repeated agent ends the walk early.
    """
    earnings = earnings or {}
    entries: list[CommissionEntry] = []
    visited: set[UUID] = set()
    current = writing_agent_id

    while current is not None:
        if current in visited:
            logger.warning(f'Cycle in hierarchy snapshots for deal {deal_id} at agent {current}')
            break
        link = snapshots.get(current)
        if link is None:
            logger.warning(
                f'Missing hierarchy snapshot for agent {current} on deal {deal_id}; '
                f'truncating at {len(entries)} entries'
            )
            break

        visited.add(current)
        entries.append(CommissionEntry(
            agent_id=link.agent_id,
            agent_name=link.agent_name,
            position_name=link.position_name,
            commission_percentage=link.commission_percentage,
            level=len(entries),
            amount=earnings.get(link.agent_id, Decimal('0')),
            is_writing_agent=link.agent_id == writing_agent_id,
        ))
        current = link.upline_agent_id

    return entries


def render_order(entries: list[CommissionEntry]) -> list[dict]:
    """Top of the hierarchy first, indented by distance from the root."""
    if not entries:
        return []
    max_level = max(entry.level for entry in entries)
    return [entry.to_dict(indent=max_level - entry.level) for entry in reversed(entries)]


def _load_snapshot_links(deal_id: UUID) -> dict[UUID, SnapshotLink]:
    rows = (
        DealHierarchySnapshot.objects.filter(deal_id=deal_id, agent_id__isnull=False)
        .select_related('agent', 'position')
    )
    return {
        row.agent_id: SnapshotLink(
            agent_id=row.agent_id,
            agent_name=row.agent.full_name if row.agent else '',
            position_name=row.position.name if row.position else None,
            commission_percentage=row.commission_percentage,
            upline_agent_id=row.upline_agent_id,
        )
        for row in rows
    }


def _load_earnings(deal_id: UUID) -> dict[UUID, Decimal]:
    sums = (
        Commission.objects.filter(deal_id=deal_id, agent_id__isnull=False)
        .values('agent_id')
        .annotate(total=Sum('amount'))
    )
    return {row['agent_id']: row['total'] or Decimal('0') for row in sums}


def get_commission_hierarchy(deal_id: UUID, user: AuthenticatedUser) -> dict | None:
    """
    Commission split table for a deal in the user's agency.

    Returns:
        Dict with writing agent and render-ordered entries, or None if the
        deal does not exist in the agency
    """
    deal = Deal.objects.filter(id=deal_id, agency_id=user.agency_id).only('id', 'agent_id').first()
    if not deal:
        return None

    earnings = _load_earnings(deal.id)
    writing_agent_id = resolve_writing_agent(deal.agent_id, earnings)
    if writing_agent_id is None:
        return {'deal_id': str(deal.id), 'writing_agent_id': None, 'entries': []}

    if deal.agent_id is None:
        logger.info(f'Deal {deal.id} has no agent; using top earner {writing_agent_id} as writing agent')

    entries = walk_snapshot_chain(
        _load_snapshot_links(deal.id), writing_agent_id, earnings, deal_id=deal.id
    )
    return {
        'deal_id': str(deal.id),
        'writing_agent_id': str(writing_agent_id),
        'entries': render_order(entries),
    }
