"""
Supabase JWT Authentication for Django REST Framework

Validates JWTs issued by Supabase Auth and attaches user context to requests.
"""
import logging
from dataclasses import dataclass
from uuid import UUID

import jwt
from django.conf import settings
from django.db import DatabaseError
from rest_framework import authentication, exceptions

from .models import User

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """
    Represents an authenticated user from Supabase.

    This is NOT a Django User model - it's a lightweight container
    for user context derived from the JWT and users table.
    """
    id: UUID                      # users.id (public.users primary key)
    auth_user_id: UUID | None     # auth.users.id (Supabase auth user ID)
    email: str
    agency_id: UUID
    role: str                     # 'admin', 'agent', 'client'
    is_admin: bool
    status: str                   # 'pre-invite', 'invited', 'onboarding', 'active', 'inactive'
    first_name: str | None = None
    last_name: str | None = None

    @classmethod
    def from_user(cls, user: User) -> 'AuthenticatedUser':
        return cls(
            id=user.id,
            auth_user_id=user.auth_user_id,
            email=user.email or '',
            agency_id=user.agency_id,
            role=user.role or 'agent',
            is_admin=user.is_admin or False,
            status=user.status or 'active',
            first_name=user.first_name,
            last_name=user.last_name,
        )

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_active(self) -> bool:
        return self.status == 'active'

    @property
    def is_administrator(self) -> bool:
        """Check if user has administrator privileges."""
        return self.is_admin or self.role == 'admin'

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or self.email


class SupabaseJWTAuthentication(authentication.BaseAuthentication):
    """
    Authenticates requests using Supabase JWTs.

    Flow:
    1. Extract Bearer token from Authorization header
    2. Decode and validate JWT using Supabase JWT secret
    3. Look up user in public.users by auth_user_id (sub claim)
    4. Return AuthenticatedUser with full context
    """

    def authenticate(self, request):
        """
        Authenticate the request and return (user, token) or None.

        Raises:
            AuthenticationFailed: If credentials are invalid
        """
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')

        if not auth_header.startswith('Bearer '):
            return None

        token = auth_header[7:]  # Remove 'Bearer ' prefix
        if not token:
            return None

        payload = self._decode_jwt(token)
        if not payload:
            raise exceptions.AuthenticationFailed('Invalid or expired token')

        user = self._get_user_from_payload(payload)
        if not user:
            raise exceptions.AuthenticationFailed('User not found')

        return (user, token)

    def authenticate_header(self, request):
        return 'Bearer realm="api"'

    def _decode_jwt(self, token: str) -> dict | None:
        """Decode and validate a Supabase JWT, returning None if invalid."""
        jwt_secret = getattr(settings, 'SUPABASE_JWT_SECRET', None)

        if not jwt_secret:
            logger.error('SUPABASE_JWT_SECRET not configured')
            return None

        supabase_url = getattr(settings, 'SUPABASE_URL', '')
        expected_issuer = f'{supabase_url}/auth/v1' if supabase_url else None

        decode_kwargs = {
            'jwt': token,
            'key': jwt_secret,
            'algorithms': ['HS256'],
            'audience': 'authenticated',
            'options': {
                'verify_exp': True,
                'verify_aud': True,
                'verify_iss': bool(expected_issuer),
            },
        }
        if expected_issuer:
            decode_kwargs['issuer'] = expected_issuer

        try:
            return jwt.decode(**decode_kwargs)
        except jwt.ExpiredSignatureError:
            logger.debug('JWT has expired')
            return None
        except jwt.InvalidAudienceError:
            logger.debug('JWT has invalid audience')
            return None
        except jwt.InvalidTokenError as e:
            logger.debug(f'JWT validation failed: {e}')
            return None

    def _get_user_from_payload(self, payload: dict) -> AuthenticatedUser | None:
        """Look up user in public.users by auth_user_id from JWT sub claim."""
        auth_user_id = payload.get('sub')
        if not auth_user_id:
            logger.warning('JWT missing sub claim')
            return None

        try:
            user = User.objects.filter(auth_user_id=auth_user_id).first()
        except (DatabaseError, ValueError) as e:
            logger.error(f'Database error looking up user: {e}')
            return None

        if not user:
            logger.warning(f'No user found for auth_user_id: {auth_user_id}')
            return None

        return AuthenticatedUser.from_user(user)


def get_user_context(request) -> AuthenticatedUser | None:
    """
    Utility function to get authenticated user from request.

    Returns:
        AuthenticatedUser if authenticated, None otherwise
    """
    user = getattr(request, 'user', None)
    if isinstance(user, AuthenticatedUser):
        return user
    return None
