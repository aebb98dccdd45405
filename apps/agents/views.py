"""
Agents API Views

Endpoints:
- GET /api/agents/check-positions - Upline position check before posting a deal
"""
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.mixins import AuthenticatedAPIView
from apps.core.models import User
from apps.core.permissions import check_hierarchy_access

from .selectors import check_upline_positions

logger = logging.getLogger(__name__)


class CheckPositionsView(AuthenticatedAPIView, APIView):
    """
    GET /api/agents/check-positions

    Checks whether the current user (or ?agent_id= from their downline)
    and their entire upline have positions assigned.

    Response (200):
        {
            "success": true,
            "has_all_positions": false,
            "missing_positions": [{"agent_id", "first_name", "last_name", "email", "is_top_of_hierarchy"}],
            "total_checked": 3,
            "user": {"id", "name", "role"}
        }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = self.get_user(request)

        agent_id = user.id
        raw_agent_id = request.query_params.get('agent_id')
        if raw_agent_id:
            agent_id = self.parse_uuid(raw_agent_id, 'agent_id')
            if not check_hierarchy_access(user, agent_id):
                return Response(
                    {'error': 'You do not have access to this agent'},
                    status=status.HTTP_403_FORBIDDEN
                )

        result = check_upline_positions(agent_id, user.agency_id)
        if result is None:
            return Response({'error': 'User not found'}, status=status.HTTP_404_NOT_FOUND)

        agent = User.objects.only('id', 'first_name', 'last_name', 'role').get(id=agent_id)
        if not result['has_all_positions']:
            logger.info(
                f"Agent {agent_id} has {len(result['missing_positions'])} upline agents without positions"
            )

        return Response({
            'success': True,
            **result,
            'user': {
                'id': str(agent.id),
                'name': agent.full_name,
                'role': agent.role,
            },
        })
