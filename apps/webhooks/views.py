"""
Discord Webhook Views

Endpoints:
- POST /api/discord/webhook - Send a deal notification to the agency's Discord
"""
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.mixins import AuthenticatedAPIView

from .services import send_deal_notification

logger = logging.getLogger(__name__)


class DiscordWebhookView(AuthenticatedAPIView, APIView):
    """
    POST /api/discord/webhook

    Request body:
        {
            "agencyId": "uuid",
            "placeholders": {"agent_name": "...", ...}  // or
            "message": "raw message"
        }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = self.get_user(request)
        data = request.data

        agency_id = self.parse_uuid(data.get('agencyId') or data.get('agency_id'), 'agencyId')
        if agency_id != user.agency_id:
            return Response(
                {'error': 'You can only notify your own agency'},
                status=status.HTTP_403_FORBIDDEN
            )

        placeholders = data.get('placeholders')
        message = data.get('message')
        if placeholders is not None and not isinstance(placeholders, dict):
            return Response({'error': 'placeholders must be an object'}, status=status.HTTP_400_BAD_REQUEST)
        if not placeholders and not message:
            return Response({'error': 'placeholders or message is required'}, status=status.HTTP_400_BAD_REQUEST)

        result = send_deal_notification(agency_id, placeholders=placeholders, message=message)
        if not result.success:
            return Response(
                {'error': result.error or 'Failed to send Discord notification'},
                status=status.HTTP_502_BAD_GATEWAY
            )

        return Response({'success': True, 'skipped': result.skipped})
