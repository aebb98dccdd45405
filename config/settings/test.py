"""
Django Test Settings for AgentSpace Deals Backend

Uses SQLite in-memory database for fast testing.
Unmanaged models are flipped to managed in tests/conftest.py so that
syncdb can create their tables.
"""
from .base import *  # noqa: F401, F403

# =============================================================================
# Debug Mode for Tests
# =============================================================================

DEBUG = False

# =============================================================================
# Database
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'agentspace-deals-test',
    }
}

# =============================================================================
# Speed Optimizations for Tests
# =============================================================================

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

# Disable logging during tests
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'null': {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['null'],
        'level': 'CRITICAL',
    },
}

# =============================================================================
# REST Framework Test Settings
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.core.authentication.SupabaseJWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'EXCEPTION_HANDLER': 'apps.core.exceptions.custom_exception_handler',
    'UNAUTHENTICATED_USER': None,
}

# =============================================================================
# Supabase Mock Configuration
# =============================================================================

SUPABASE_URL = 'http://localhost:54321'
SUPABASE_ANON_KEY = 'test-anon-key'
SUPABASE_SERVICE_ROLE_KEY = 'test-service-role-key'
SUPABASE_JWT_SECRET = 'test-jwt-secret-key-for-testing-purposes-only'

BACKEND_API_URL = 'http://testserver'

OPENAI_API_KEY = 'test-openai-key'

# =============================================================================
# CORS - Allow all for tests
# =============================================================================

CORS_ALLOW_ALL_ORIGINS = True
