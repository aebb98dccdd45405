"""
Django Base Settings for AgentSpace Deals Backend

This file contains all shared settings used across environments.
Environment-specific settings are in development.py and production.py.
"""
from pathlib import Path

from decouple import Csv, config

# Build paths inside the project like this: BASE_DIR / 'subdir'
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# =============================================================================
# Core Settings
# =============================================================================

SECRET_KEY = config('DJANGO_SECRET_KEY', default='django-insecure-change-me-in-production')

DEBUG = config('DJANGO_DEBUG', default=True, cast=bool)

ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())

# =============================================================================
# Application Definition
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django.contrib.staticfiles',

    'rest_framework',
    'corsheaders',

    # Local apps
    'apps.core',
    'apps.agencies',   # Agency deal configuration
    'apps.agents',     # Upline position checks
    'apps.clients',    # Client portal invitations
    'apps.deals',      # Deal upsert, book of business, commission hierarchy
    'apps.webhooks',   # Discord deal notifications
    'apps.ai',         # AI assistant tool dispatcher
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'config.urls'

WSGI_APPLICATION = 'config.wsgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
            ],
        },
    },
]

# =============================================================================
# Database
# Connects to existing Supabase PostgreSQL - no migrations run
# =============================================================================

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': config('SUPABASE_DB_NAME', default='postgres'),
        'USER': config('SUPABASE_DB_USER', default='postgres'),
        'PASSWORD': config('SUPABASE_DB_PASSWORD', default=''),
        'HOST': config('SUPABASE_DB_HOST', default='localhost'),
        'PORT': config('SUPABASE_DB_PORT', default='5432'),
        'OPTIONS': {
            'sslmode': config('SUPABASE_DB_SSLMODE', default='require'),
        },
    }
}

# =============================================================================
# Cache (book of business pages)
# =============================================================================

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'agentspace-deals',
    }
}

BOOK_OF_BUSINESS_CACHE_SECONDS = config('BOOK_OF_BUSINESS_CACHE_SECONDS', default=60, cast=int)

# =============================================================================
# Supabase Configuration
# =============================================================================

SUPABASE_URL = config('NEXT_PUBLIC_SUPABASE_URL', default='')
SUPABASE_ANON_KEY = config('NEXT_PUBLIC_SUPABASE_ANON_KEY', default='')
SUPABASE_SERVICE_ROLE_KEY = config('SUPABASE_SERVICE_ROLE_KEY', default='')
SUPABASE_JWT_SECRET = config('SUPABASE_JWT_SECRET', default='')

# =============================================================================
# Deal Submission Workflow
# =============================================================================

# Base URL of this API as seen by the post_deal command
BACKEND_API_URL = config('BACKEND_API_URL', default='http://localhost:8000')

CLIENT_INVITE_TIMEOUT_SECONDS = config('CLIENT_INVITE_TIMEOUT_SECONDS', default=10.0, cast=float)
DEAL_SUBMIT_TIMEOUT_SECONDS = config('DEAL_SUBMIT_TIMEOUT_SECONDS', default=30.0, cast=float)
DISCORD_WEBHOOK_TIMEOUT_SECONDS = config('DISCORD_WEBHOOK_TIMEOUT_SECONDS', default=10.0, cast=float)
DISCORD_BOT_USERNAME = config('DISCORD_BOT_USERNAME', default='AgentSpace Deal Bot')

# =============================================================================
# OpenAI
# =============================================================================

OPENAI_API_KEY = config('OPENAI_API_KEY', default='')
OPENAI_MODEL = config('OPENAI_MODEL', default='gpt-4o-mini')

# =============================================================================
# REST Framework
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.core.authentication.SupabaseJWTAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'EXCEPTION_HANDLER': 'apps.core.exceptions.custom_exception_handler',
    'UNAUTHENTICATED_USER': None,
}

# =============================================================================
# CORS Configuration
# =============================================================================

CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:3000',
    cast=Csv()
)

CORS_ALLOW_CREDENTIALS = True

CORS_ALLOW_HEADERS = [
    'accept',
    'accept-encoding',
    'authorization',
    'content-type',
    'origin',
    'user-agent',
    'x-requested-with',
]

# =============================================================================
# Internationalization
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True

# =============================================================================
# Static files
# =============================================================================

STATIC_URL = '/static/'

# =============================================================================
# Application Settings
# =============================================================================

APP_URL = config('APP_URL', default='http://localhost:3000')

# =============================================================================
# Logging
# =============================================================================

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': config('DJANGO_LOG_LEVEL', default='INFO'),
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': 'DEBUG',
            'propagate': False,
        },
    },
}

# =============================================================================
# Default primary key field type
# =============================================================================

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
