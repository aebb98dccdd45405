"""
Client Services

Portal invitations for clients written on a deal.
"""
import logging
from uuid import UUID

import httpx
from django.conf import settings
from django.db import DatabaseError, transaction

from apps.core.constants import PENDING_CLIENT_STATUSES
from apps.core.models import Agency, User

logger = logging.getLogger(__name__)

SUPABASE_INVITE_TIMEOUT_SECONDS = 10.0


def _supabase_headers() -> dict:
    service_key = settings.SUPABASE_SERVICE_ROLE_KEY
    return {
        'apikey': service_key,
        'Authorization': f'Bearer {service_key}',
        'Content-Type': 'application/json',
    }


def _invite_user_by_email(email: str, redirect_url: str, agency_name: str) -> dict:
    """Invite a user via Supabase Auth admin API (sends email with magic link)."""
    try:
        with httpx.Client(timeout=SUPABASE_INVITE_TIMEOUT_SECONDS) as client:
            response = client.post(
                f'{settings.SUPABASE_URL}/auth/v1/admin/invite',
                json={
                    'email': email,
                    'redirect_to': redirect_url,
                    'data': {
                        'agency_name': agency_name,
                    },
                },
                headers=_supabase_headers(),
            )
    except httpx.TimeoutException:
        logger.error(f'Supabase invite timed out for {email}')
        return {'success': False, 'error': 'Authentication service timed out'}
    except httpx.RequestError as e:
        logger.error(f'Supabase request error: {e}')
        return {'success': False, 'error': 'Authentication service unavailable'}

    if response.status_code not in (200, 201):
        try:
            error_data = response.json() if response.content else {}
        except ValueError:
            error_data = {}
        error_msg = error_data.get('msg') or error_data.get('message') or 'Failed to send invite'
        logger.error(f'Supabase invite failed: {error_msg}')
        return {'success': False, 'error': error_msg}

    auth_user = response.json()
    return {'success': True, 'auth_user_id': auth_user.get('id')}


def _delete_supabase_user(auth_user_id: str) -> None:
    """Delete a Supabase auth user (cleanup on error)."""
    try:
        with httpx.Client(timeout=SUPABASE_INVITE_TIMEOUT_SECONDS) as client:
            client.delete(
                f'{settings.SUPABASE_URL}/auth/v1/admin/users/{auth_user_id}',
                headers=_supabase_headers(),
            )
    except httpx.HTTPError as e:
        logger.error(f'Failed to cleanup auth user {auth_user_id}: {e}')


def _redirect_url(agency: Agency | None) -> str:
    if agency and agency.whitelabel_domain:
        protocol = 'http' if settings.DEBUG else 'https'
        return f'{protocol}://{agency.whitelabel_domain}/auth/confirm'
    return f'{settings.APP_URL}/auth/confirm'


def invite_client(
    *,
    inviter_id: UUID,
    agency_id: UUID,
    email: str,
    first_name: str,
    last_name: str,
    phone_number: str | None = None,
) -> dict:
    """
    Invite a client to the agency's portal.

    Looks the client up by email (role=client). Existing clients are
    returned as-is; pre-invite clients and unknown emails get a Supabase
    invitation email and an 'invited' user record.

    Returns:
        Dictionary with success, user_id, already_exists, status, message
        or success=False with error
    """
    email = email.strip().lower()
    agency = Agency.objects.filter(id=agency_id).first()
    agency_name = agency.name if agency else 'AgentSpace'

    existing = (
        User.objects.filter(email__iexact=email, role='client', agency_id=agency_id)
        .order_by('created_at')
        .first()
    )

    if existing and existing.status != 'pre-invite':
        return {
            'success': True,
            'user_id': str(existing.id),
            'message': 'Invitation already sent' if existing.status in PENDING_CLIENT_STATUSES else 'Client already exists',
            'already_exists': True,
            'status': existing.status,
        }

    invite_result = _invite_user_by_email(email, _redirect_url(agency), agency_name)
    if not invite_result['success']:
        return {'success': False, 'error': invite_result.get('error', 'Failed to send invitation')}

    auth_user_id = invite_result['auth_user_id']

    try:
        with transaction.atomic():
            if existing:
                logger.info(f'Converting pre-invite client to invited: {existing.id}')
                client = existing
                client.first_name = first_name.strip() or client.first_name
                client.last_name = last_name.strip() or client.last_name
            else:
                client = User(email=email, first_name=first_name.strip(), last_name=last_name.strip(),
                              agency_id=agency_id, role='client', is_admin=False)
            client.auth_user_id = auth_user_id
            client.status = 'invited'
            if phone_number:
                client.phone = phone_number.strip()
            client.save()
    except DatabaseError as e:
        logger.error(f'Failed to create client record: {e}')
        if auth_user_id:
            _delete_supabase_user(auth_user_id)
        return {'success': False, 'error': 'Failed to create client record'}

    logger.info(f'User {inviter_id} invited client {client.id}')
    return {
        'success': True,
        'user_id': str(client.id),
        'email': client.email,
        'status': client.status,
        'message': 'Client invited successfully',
        'already_exists': False,
    }
