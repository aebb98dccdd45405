"""
Discord Deal Notifications

Renders the agency's deal-posted template and delivers it to the agency's
Discord webhook.
"""
import logging
import re
from dataclasses import dataclass
from uuid import UUID

import httpx
from django.conf import settings

from apps.core.models import Agency

logger = logging.getLogger(__name__)

DEFAULT_DEAL_TEMPLATE = (
    '🎉 **New Deal Posted!**\n\n'
    '**Agent:** {{agent_name}}\n'
    '**Carrier:** {{carrier_name}}\n'
    '**Product:** {{product_name}}\n'
    '**Annual Premium:** ${{annual_premium}}'
)

# Discord rejects message content longer than this
DISCORD_CONTENT_LIMIT = 2000

_PLACEHOLDER_PATTERN = re.compile(r'\{\{\s*(\w+)\s*\}\}')


@dataclass
class DiscordNotificationResult:
    success: bool
    skipped: bool = False
    error: str | None = None


class DiscordNotificationError(Exception):
    """Raised when Discord rejects or cannot receive a notification."""


def render_template(template: str, placeholders: dict) -> str:
    """Substitute {{key}} placeholders; unknown keys are left untouched."""
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in placeholders:
            return match.group(0)
        value = placeholders[key]
        return '' if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(replace, template)


def build_deal_message(agency: Agency, placeholders: dict) -> str:
    template = agency.discord_notification_template or DEFAULT_DEAL_TEMPLATE
    return render_template(template, placeholders)[:DISCORD_CONTENT_LIMIT]


def post_to_discord(webhook_url: str, content: str, username: str | None = None) -> None:
    """
    POST a message to a Discord webhook.

    Raises:
        DiscordNotificationError: On timeout, transport error or non-2xx
    """
    payload = {
        'content': content[:DISCORD_CONTENT_LIMIT],
        'username': username or settings.DISCORD_BOT_USERNAME,
    }
    try:
        with httpx.Client(timeout=settings.DISCORD_WEBHOOK_TIMEOUT_SECONDS) as client:
            response = client.post(webhook_url, json=payload)
    except httpx.TimeoutException as e:
        raise DiscordNotificationError('Discord webhook timed out') from e
    except httpx.RequestError as e:
        raise DiscordNotificationError(f'Discord webhook unreachable: {e}') from e

    if not response.is_success:
        raise DiscordNotificationError(
            f'Discord webhook returned {response.status_code}: {response.text[:200]}'
        )


def send_deal_notification(
    agency_id: UUID,
    placeholders: dict | None = None,
    message: str | None = None,
) -> DiscordNotificationResult:
    """
    Send a deal notification to the agency's Discord channel.

    Agencies without notifications enabled (or without a webhook URL) are
    skipped and reported as a success.
    """
    agency = Agency.objects.filter(id=agency_id).first()
    if not agency:
        return DiscordNotificationResult(success=False, error='Agency not found')

    if not agency.discord_notification_enabled or not agency.discord_webhook_url:
        logger.debug(f'Discord notifications not configured for agency {agency_id}')
        return DiscordNotificationResult(success=True, skipped=True)

    content = message if message else build_deal_message(agency, placeholders or {})
    try:
        post_to_discord(agency.discord_webhook_url, content, agency.discord_bot_username)
    except DiscordNotificationError as e:
        logger.error(f'Discord notification failed for agency {agency_id}: {e}')
        return DiscordNotificationResult(success=False, error=str(e))

    logger.info(f'Discord notification sent for agency {agency_id}')
    return DiscordNotificationResult(success=True)
