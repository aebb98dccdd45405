"""
Centralized Hierarchy Traversal Utilities for AgentSpace.

This module provides functions for traversing user hierarchies using
recursive CTEs. They back the downline visibility rules, the upline
position check and the commission snapshot capture.

All functions use raw SQL so each chain is resolved in one round-trip.
"""
from dataclasses import dataclass
from uuid import UUID

from django.db import connection

from .constants import MAX_HIERARCHY_DEPTH
from .models import User


@dataclass(frozen=True)
class UplineRow:
    """One member of an upline chain (depth 0 is the starting user)."""
    id: UUID
    upline_id: UUID | None
    position_id: UUID | None
    first_name: str | None
    last_name: str | None
    email: str | None
    depth: int

    @property
    def name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or (self.email or '')


def _db_uuid(value):
    """Adapt a UUID for a raw query parameter on the active backend."""
    if value is None:
        return None
    return User._meta.pk.get_db_prep_value(value, connection)


def _to_uuid(value) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


def get_downline_ids(
    user_id: UUID,
    agency_id: UUID,
    max_depth: int | None = None,
    include_self: bool = False
) -> list[UUID]:
    """
    Get all user IDs in a user's downline (recursive).

    Args:
        user_id: The root user ID to start traversal from
        agency_id: Agency ID for multi-tenancy filtering
        max_depth: Maximum depth to traverse (None for unlimited)
        include_self: Whether to include the user themselves in the result

    Returns:
        List of user IDs in the downline
    """
    # Depth is always bound as a parameter, never interpolated
    if max_depth is not None:
        max_depth = int(max_depth)
        if max_depth < 1:
            max_depth = None
    depth_limit = max_depth or MAX_HIERARCHY_DEPTH * 10

    table = User._meta.db_table
    with connection.cursor() as cursor:
        cursor.execute(f"""
            WITH RECURSIVE downline AS (
                SELECT id, 1 AS depth
                FROM {table}
                WHERE upline_id = %s AND agency_id = %s

                UNION ALL

                SELECT u.id, d.depth + 1
                FROM {table} u
                JOIN downline d ON u.upline_id = d.id
                WHERE u.agency_id = %s AND d.depth < %s
            )
            SELECT id FROM downline
        """, [_db_uuid(user_id), _db_uuid(agency_id), _db_uuid(agency_id), depth_limit])
        result = [_to_uuid(row[0]) for row in cursor.fetchall()]

    if include_self:
        result.insert(0, _to_uuid(user_id))

    return result


def get_upline_chain(user_id: UUID, include_self: bool = True) -> list[UplineRow]:
    """
    Get the chain of uplines from a user to the root, nearest first.

    The walk stops after MAX_HIERARCHY_DEPTH hops so a corrupted
    (cyclic) upline graph cannot recurse forever.
    """
    table = User._meta.db_table
    with connection.cursor() as cursor:
        cursor.execute(f"""
            WITH RECURSIVE upline_chain AS (
                SELECT id, upline_id, position_id, first_name, last_name, email, 0 AS depth
                FROM {table}
                WHERE id = %s

                UNION ALL

                SELECT u.id, u.upline_id, u.position_id, u.first_name, u.last_name, u.email,
                       uc.depth + 1
                FROM {table} u
                JOIN upline_chain uc ON u.id = uc.upline_id
                WHERE uc.depth < %s
            )
            SELECT id, upline_id, position_id, first_name, last_name, email, depth
            FROM upline_chain
            ORDER BY depth
        """, [_db_uuid(user_id), MAX_HIERARCHY_DEPTH - 1])
        rows = cursor.fetchall()

    chain = []
    seen = set()
    for row in rows:
        # A cyclic upline graph repeats agents; keep the nearest occurrence
        agent_id = _to_uuid(row[0])
        if agent_id in seen:
            continue
        seen.add(agent_id)
        chain.append(UplineRow(
            id=agent_id,
            upline_id=_to_uuid(row[1]),
            position_id=_to_uuid(row[2]),
            first_name=row[3],
            last_name=row[4],
            email=row[5],
            depth=row[6],
        ))

    if not include_self:
        chain = [row for row in chain if row.depth > 0]
    return chain
