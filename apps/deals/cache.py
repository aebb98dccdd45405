"""
Book of business cache versioning.

Every cached page key embeds the agency's current version number; a
successful deal write bumps the version, which orphans all cached pages
for that agency at once.
"""
import hashlib
import json
import logging
from uuid import UUID

from django.core.cache import cache

logger = logging.getLogger(__name__)

_VERSION_KEY = 'book_of_business:version:{agency_id}'


def get_book_of_business_version(agency_id: UUID) -> int:
    return cache.get_or_set(_VERSION_KEY.format(agency_id=agency_id), 1, timeout=None)


def invalidate_book_of_business(agency_id: UUID) -> None:
    key = _VERSION_KEY.format(agency_id=agency_id)
    try:
        cache.incr(key)
    except ValueError:
        # Key expired or was evicted
        cache.set(key, 2, timeout=None)
    logger.debug(f'Invalidated book of business cache for agency {agency_id}')


def book_of_business_cache_key(agency_id: UUID, user_id: UUID, params: dict) -> str:
    version = get_book_of_business_version(agency_id)
    digest = hashlib.sha256(
        json.dumps(params, sort_keys=True, default=str).encode()
    ).hexdigest()[:16]
    return f'book_of_business:{agency_id}:{version}:{user_id}:{digest}'
