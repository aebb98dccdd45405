"""
Pytest Configuration for AgentSpace Deals Backend Tests

Key Features:
- Enables managed=True for unmanaged models during tests
- Provides API client fixtures authenticated as real User rows
- Clears the book of business cache between tests
"""
import pytest
from django.apps import apps
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.core.authentication import AuthenticatedUser


# =============================================================================
# Database Setup - Enable managed=True for unmanaged models
# =============================================================================

@pytest.fixture(scope='session')
def django_db_setup(django_db_blocker):
    """
    Override database setup to enable managed=True for all models.
    This allows Django to create tables for models that normally
    point to existing Supabase tables (managed=False).
    """
    with django_db_blocker.unblock():
        for model in apps.get_models():
            if not model._meta.managed:
                model._meta.managed = True

        # Import after modifying models
        from django.core.management import call_command

        # Create all tables
        call_command('migrate', '--run-syncdb', verbosity=0)


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Basic API client without authentication."""
    return APIClient()


@pytest.fixture
def client_for():
    """
    Build an API client authenticated as a User row.

    Usage:
        client = client_for(agent_user)
        client.get('/api/deals/form-data')
    """
    def _client_for(user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=AuthenticatedUser.from_user(user))
        return client

    return _client_for
