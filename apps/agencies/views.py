"""
Agency API Views

Endpoints:
- GET /api/agencies/{id}/deal-config - Deal posting configuration for an agency
"""
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.mixins import AuthenticatedAPIView

from .selectors import get_agency_deal_config

logger = logging.getLogger(__name__)


class AgencyDealConfigView(AuthenticatedAPIView, APIView):
    """
    GET /api/agencies/{agency_id}/deal-config
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, agency_id: str):
        user = self.get_user(request)

        if str(user.agency_id) != agency_id:
            return Response(
                {'error': 'You can only access your own agency settings'},
                status=status.HTTP_403_FORBIDDEN
            )

        config = get_agency_deal_config(user.agency_id)
        if not config:
            return Response({'error': 'Agency not found'}, status=status.HTTP_404_NOT_FOUND)

        return Response(config.to_dict())
