"""
Agent Selectors

Read paths for agent hierarchy checks.
"""
from uuid import UUID

from apps.core.hierarchy import get_upline_chain
from apps.core.models import User


def check_upline_positions(agent_id: UUID, agency_id: UUID) -> dict | None:
    """
    Check if an agent and everyone above them have positions assigned.

    Deals cannot be posted until this passes, because the commission
    snapshot needs a position for every agent in the chain.

    Returns:
        Dictionary with has_all_positions, missing_positions and
        total_checked, or None if the agent is not in the agency
    """
    if not User.objects.filter(id=agent_id, agency_id=agency_id).exists():
        return None

    chain = get_upline_chain(agent_id)

    missing_positions = [
        {
            'agent_id': str(row.id),
            'first_name': row.first_name,
            'last_name': row.last_name,
            'email': row.email,
            'is_top_of_hierarchy': row.upline_id is None,
        }
        for row in chain
        if row.position_id is None
    ]

    return {
        'has_all_positions': not missing_positions,
        'missing_positions': missing_positions,
        'total_checked': len(chain),
    }
