"""
Permission Helpers for AgentSpace Deals Backend

Provides multi-tenancy and hierarchy-based visibility rules.
"""
import logging
from uuid import UUID

from .authentication import AuthenticatedUser
from .hierarchy import get_downline_ids
from .models import User

logger = logging.getLogger(__name__)


def get_visible_agent_ids(user: AuthenticatedUser, include_full_agency: bool = False) -> list[UUID]:
    """
    Get list of agent IDs visible to a user.

    Args:
        user: The authenticated user
        include_full_agency: If True, return all agents in agency (admin only)

    Returns:
        List of agent UUIDs the user can access
    """
    if include_full_agency and user.is_administrator:
        return list(
            User.objects.filter(agency_id=user.agency_id)
            .exclude(role='client')
            .values_list('id', flat=True)
        )

    # Regular user sees themselves and their downline
    return get_downline_ids(user.id, user.agency_id, include_self=True)


def check_hierarchy_access(user: AuthenticatedUser, target_agent_id: UUID) -> bool:
    """
    Check whether a user may act on behalf of (or view) another agent.

    Admins may access any agent in their agency; everyone else only
    themselves and their downline.
    """
    if str(user.id) == str(target_agent_id):
        return True

    if user.is_administrator:
        return User.objects.filter(id=target_agent_id, agency_id=user.agency_id).exists()

    allowed = target_agent_id in get_downline_ids(user.id, user.agency_id)
    if not allowed:
        logger.info(f'User {user.id} denied access to agent {target_agent_id}')
    return allowed
