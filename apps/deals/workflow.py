"""
Post a Deal submission workflow.

Runs the wizard's final submit against the API as a sequence of HTTP calls:

    validate form -> invite client (best effort) -> upsert deal -> notify Discord (best effort)

Validation happens before any network call. The invite step never fails the
submission; the upsert is the only hard failure; the Discord notification is
scheduled on the context's BestEffortRunner and its outcome is never
reported back to the caller.
"""
import logging
from concurrent.futures import Future
from dataclasses import dataclass, field
from decimal import Decimal

import httpx
from django.conf import settings

from apps.agencies.config import AgencyDealConfig
from apps.core.constants import PENDING_CLIENT_STATUSES
from apps.core.tasks import BestEffortRunner

from .serializers import PostDealFormSerializer, normalize_form_keys

logger = logging.getLogger(__name__)

INVITE_SENT_MESSAGE = '✓ Invitation email sent to client successfully!'
INVITE_PREVIOUSLY_SENT_MESSAGE = 'Client invitation was previously sent.'
INVITE_EXISTING_ACCOUNT_MESSAGE = 'Client already has an account.'
INVITE_FAILED_MESSAGE = 'Email unable to send. Please try manually from Book of Business.'
NO_CLIENT_EMAIL_MESSAGE = 'No client email provided - client will not receive portal access.'

SUBMIT_TIMEOUT_MESSAGE = 'Request timed out. Please try again.'
SUBMIT_NETWORK_MESSAGE = 'Unable to reach the server. Please check your connection and try again.'
SERVER_TROUBLE_MESSAGE = 'The server is having trouble. Please try again later.'
UNEXPECTED_RESPONSE_MESSAGE = 'Unexpected response from server'
SUBMIT_FAILED_MESSAGE = 'Failed to submit deal.'


class DealFormInvalid(Exception):
    """The form failed validation; nothing was sent."""

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__('; '.join(f'{k}: {v}' for k, v in errors.items()))


class DealSubmissionError(Exception):
    """The deal upsert failed. retryable marks transient failures."""

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        status_code: int | None = None,
        code: str | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.retryable = retryable
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


@dataclass(frozen=True)
class FormOptions:
    """Reference data for the form, loaded once per submission context."""
    config: AgencyDealConfig
    user_id: str | None = None
    user_name: str = ''
    carriers: dict[str, str] = field(default_factory=dict)
    products: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_form_data(cls, data: dict) -> 'FormOptions':
        user = data.get('user') or {}
        return cls(
            config=AgencyDealConfig.from_dict(data['config']),
            user_id=user.get('id'),
            user_name=user.get('name') or '',
            carriers={c['id']: c['name'] for c in data.get('carriers') or []},
            products={p['id']: p['name'] for p in data.get('products') or []},
        )


@dataclass
class SubmissionContext:
    """Everything one submission needs, passed in explicitly."""
    client: httpx.Client
    options: FormOptions
    runner: BestEffortRunner
    invite_timeout: float = 10.0
    submit_timeout: float = 30.0

    @property
    def config(self) -> AgencyDealConfig:
        return self.options.config


@dataclass(frozen=True)
class InviteOutcome:
    client_id: str | None
    message: str
    failed: bool = False


@dataclass
class SubmissionResult:
    operation: str
    deal_id: str
    message: str
    invitation: InviteOutcome
    notification: Future | None = None

    @property
    def created(self) -> bool:
        return self.operation == 'created'

    @property
    def warning(self) -> str | None:
        """Secondary notice shown next to the success message."""
        return self.invitation.message if self.invitation.failed else None


def build_api_client(base_url: str | None = None, token: str | None = None) -> httpx.Client:
    """httpx client for the deals API, authenticated with a Supabase access token."""
    headers = {'Accept': 'application/json'}
    if token:
        headers['Authorization'] = f'Bearer {token}'
    return httpx.Client(base_url=base_url or settings.BACKEND_API_URL, headers=headers)


def load_form_options(client: httpx.Client) -> FormOptions:
    """
    Fetch carriers, products and the agency deal config.

    Raises:
        DealSubmissionError: If the options cannot be loaded
    """
    try:
        response = client.get('/api/deals/form-data')
    except httpx.TimeoutException as e:
        raise DealSubmissionError(SUBMIT_TIMEOUT_MESSAGE, retryable=True) from e
    except httpx.RequestError as e:
        raise DealSubmissionError(SUBMIT_NETWORK_MESSAGE, retryable=True) from e

    data = _parse_json_response(response)
    if not response.is_success:
        raise DealSubmissionError(
            data.get('error') or 'Failed to load form data.',
            retryable=response.status_code >= 500,
            status_code=response.status_code,
        )
    return FormOptions.from_form_data(data)


def open_submission_context(
    base_url: str | None = None,
    token: str | None = None,
    runner: BestEffortRunner | None = None,
) -> SubmissionContext:
    """Build a context from settings. The caller closes ctx.client and ctx.runner."""
    client = build_api_client(base_url, token)
    try:
        options = load_form_options(client)
    except Exception:
        client.close()
        raise
    return SubmissionContext(
        client=client,
        options=options,
        runner=runner or BestEffortRunner(),
        invite_timeout=settings.CLIENT_INVITE_TIMEOUT_SECONDS,
        submit_timeout=settings.DEAL_SUBMIT_TIMEOUT_SECONDS,
    )


def validate_form(form: dict, config: AgencyDealConfig) -> dict:
    """
    Validate raw wizard input against the agency config.

    Returns:
        Normalized form data

    Raises:
        DealFormInvalid: With one message per offending field
    """
    serializer = PostDealFormSerializer(data=normalize_form_keys(form), context={'config': config})
    if not serializer.is_valid():
        raise DealFormInvalid(_flatten_errors(serializer.errors))
    return serializer.validated_data


def _flatten_errors(errors) -> dict[str, str]:
    flattened = {}
    for field_name, value in errors.items():
        while isinstance(value, (list, tuple)) and value:
            value = value[0]
        if isinstance(value, dict):
            value = next(iter(_flatten_errors(value).values()), '')
        flattened[field_name] = str(value)
    return flattened


def _split_name(full_name: str) -> tuple[str, str]:
    first, _, last = full_name.strip().partition(' ')
    return first, last.strip()


def invite_client_step(ctx: SubmissionContext, form: dict) -> InviteOutcome:
    """
    Invite the client to the portal if an email was given.

    Never raises: every failure becomes an InviteOutcome with failed=True.
    """
    email = form.get('client_email')
    if not email:
        return InviteOutcome(client_id=None, message=NO_CLIENT_EMAIL_MESSAGE)

    first_name, last_name = _split_name(form.get('client_name') or '')
    payload = {
        'email': email,
        'firstName': first_name,
        'lastName': last_name,
        'phoneNumber': form.get('client_phone'),
    }

    try:
        response = ctx.client.post('/api/clients/invite', json=payload, timeout=ctx.invite_timeout)
        data = response.json()
    except httpx.TimeoutException:
        logger.warning(f'Client invite timed out after {ctx.invite_timeout}s')
        return InviteOutcome(client_id=None, message=INVITE_FAILED_MESSAGE, failed=True)
    except (httpx.RequestError, ValueError) as e:
        logger.warning(f'Client invite failed: {e}')
        return InviteOutcome(client_id=None, message=INVITE_FAILED_MESSAGE, failed=True)

    if not response.is_success or not data.get('success'):
        logger.warning(f'Client invite rejected ({response.status_code}): {data.get("error")}')
        return InviteOutcome(client_id=None, message=INVITE_FAILED_MESSAGE, failed=True)

    client_id = data.get('userId')
    if data.get('alreadyExists'):
        if data.get('status') in PENDING_CLIENT_STATUSES:
            return InviteOutcome(client_id=client_id, message=INVITE_PREVIOUSLY_SENT_MESSAGE)
        return InviteOutcome(client_id=client_id, message=INVITE_EXISTING_ACCOUNT_MESSAGE)
    return InviteOutcome(client_id=client_id, message=INVITE_SENT_MESSAGE)


def _json_value(value):
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


def build_deal_payload(form: dict, client_id: str | None = None, agent_id: str | None = None) -> dict:
    """Normalized POST /api/deals body from validated form data."""
    payload = {
        'carrier_id': form['carrier_id'],
        'product_id': form.get('product_id'),
        'team_id': form.get('team_id'),
        'client_id': client_id,
        'policy_number': form.get('policy_number'),
        'application_number': form.get('application_number'),
        'policy_effective_date': form.get('policy_effective_date'),
        'monthly_premium': form.get('monthly_premium'),
        'coverage_amount': form.get('coverage_amount'),
        'rate_class': form.get('rate_class'),
        'billing_cycle': form.get('billing_cycle'),
        'ssn_benefit': form.get('ssn_benefit', False),
        'billing_day_of_month': form.get('billing_day_of_month'),
        'billing_weekday': form.get('billing_weekday'),
        'lead_source': form.get('lead_source'),
        'client_name': form.get('client_name'),
        'client_email': form.get('client_email'),
        'client_phone': form.get('client_phone'),
        'client_address': form.get('client_address'),
        'date_of_birth': form.get('client_date_of_birth'),
        'notes': form.get('notes'),
        'beneficiaries': form.get('beneficiaries') or [],
    }
    if agent_id:
        payload['agent_id'] = agent_id
    if not payload['ssn_benefit']:
        payload['billing_day_of_month'] = None
        payload['billing_weekday'] = None
    return {key: _json_value(value) for key, value in payload.items()}


def _parse_json_response(response: httpx.Response) -> dict:
    """Decode a JSON body, mapping non-JSON bodies to a DealSubmissionError."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        if response.status_code >= 500:
            raise DealSubmissionError(
                SERVER_TROUBLE_MESSAGE, retryable=True, status_code=response.status_code
            )
        raise DealSubmissionError(UNEXPECTED_RESPONSE_MESSAGE, status_code=response.status_code)
    return data


def submit_deal(ctx: SubmissionContext, payload: dict) -> dict:
    """
    POST the payload to /api/deals.

    Returns:
        The response body ({operation, id, message, deal})

    Raises:
        DealSubmissionError: On timeout, transport error, non-JSON or non-2xx
    """
    try:
        response = ctx.client.post('/api/deals', json=payload, timeout=ctx.submit_timeout)
    except httpx.TimeoutException as e:
        raise DealSubmissionError(SUBMIT_TIMEOUT_MESSAGE, retryable=True) from e
    except httpx.RequestError as e:
        raise DealSubmissionError(SUBMIT_NETWORK_MESSAGE, retryable=True) from e

    data = _parse_json_response(response)
    if not response.is_success:
        details = {k: v for k, v in data.items() if k not in ('error', 'code')}
        raise DealSubmissionError(
            data.get('error') or SUBMIT_FAILED_MESSAGE,
            retryable=response.status_code >= 500,
            status_code=response.status_code,
            code=data.get('code'),
            details=details,
        )
    return data


def notification_placeholders(ctx: SubmissionContext, form: dict) -> dict:
    """Flat key/value set substituted into the agency's Discord template."""
    def money(value):
        return f'{value:,.2f}' if value is not None else ''

    effective_date = form.get('policy_effective_date')
    return {
        'agent_name': ctx.options.user_name,
        'carrier_name': ctx.options.carriers.get(form.get('carrier_id') or '', ''),
        'product_name': ctx.options.products.get(form.get('product_id') or '', ''),
        'monthly_premium': money(form.get('monthly_premium')),
        'annual_premium': money(form.get('annual_premium')),
        'client_name': form.get('client_name') or '',
        'policy_number': form.get('policy_number') or form.get('application_number') or '',
        'effective_date': effective_date.isoformat() if effective_date else '',
    }


def send_notification(client: httpx.Client, agency_id: str, placeholders: dict) -> dict:
    """POST /api/discord/webhook. Raises on any failure; run it best effort."""
    response = client.post(
        '/api/discord/webhook',
        json={'agencyId': agency_id, 'placeholders': placeholders},
    )
    response.raise_for_status()
    return response.json()


def submit_post_deal(ctx: SubmissionContext, form: dict, agent_id: str | None = None) -> SubmissionResult:
    """
    Run the full Post a Deal submission.

    Raises:
        DealFormInvalid: Before any network call, if the form is invalid
        DealSubmissionError: If the deal upsert fails
    """
    validated = validate_form(form, ctx.config)

    invitation = invite_client_step(ctx, validated)
    payload = build_deal_payload(validated, client_id=invitation.client_id, agent_id=agent_id)
    data = submit_deal(ctx, payload)

    operation = data.get('operation') or 'created'
    deal_id = str(data.get('id') or '')
    logger.info(f'Deal {deal_id} {operation} for agency {ctx.config.agency_id}')

    notification = ctx.runner.submit(
        'discord_notification',
        send_notification,
        ctx.client,
        str(ctx.config.agency_id),
        notification_placeholders(ctx, validated),
    )

    headline = 'Deal created successfully!' if operation == 'created' else 'Deal updated successfully!'
    return SubmissionResult(
        operation=operation,
        deal_id=deal_id,
        message=f'{headline} {invitation.message}',
        invitation=invitation,
        notification=notification,
    )
