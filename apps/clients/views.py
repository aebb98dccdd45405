"""
Client API Views

Endpoints:
- POST /api/clients/invite - Invite a client to the portal
"""
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.mixins import AuthenticatedAPIView

from .services import invite_client

logger = logging.getLogger(__name__)


class ClientInviteView(AuthenticatedAPIView, APIView):
    """
    POST /api/clients/invite

    Request body:
        {
            "email": "client@example.com",
            "firstName": "Jane",
            "lastName": "Smith",
            "phoneNumber": "5551234567"  // optional
        }

    Response (200):
        {
            "success": true,
            "userId": "uuid",
            "message": "Client invited successfully",
            "alreadyExists": false,
            "status": "invited"
        }
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = self.get_user(request)

        data = request.data
        # Support both camelCase (frontend) and snake_case (backend) params
        email = (data.get('email') or '').strip().lower()
        first_name = data.get('firstName') or data.get('first_name') or ''
        last_name = data.get('lastName') or data.get('last_name') or ''
        phone_number = data.get('phoneNumber') or data.get('phone_number') or data.get('phone')

        if not email:
            return Response(
                {'error': 'email is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        result = invite_client(
            inviter_id=user.id,
            agency_id=user.agency_id,
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
        )

        if not result.get('success'):
            return Response(
                {'error': result.get('error', 'Failed to invite client')},
                status=status.HTTP_400_BAD_REQUEST
            )

        # camelCase keys for frontend compatibility
        return Response({
            'success': True,
            'userId': result.get('user_id'),
            'message': result.get('message', 'Client invited successfully'),
            'alreadyExists': result.get('already_exists', False),
            'status': result.get('status'),
        })
