"""
URL Configuration for AgentSpace Deals Backend

All routes are prefixed with /api/ to match Next.js conventions.
"""
from django.urls import include, path

from apps.core.views import health_check
from apps.deals.views import DealsCreateView

urlpatterns = [
    # Health check endpoint (public)
    path('api/health', health_check, name='health_check'),

    # Deal upsert lives at /api/deals (no trailing slash)
    path('api/deals', DealsCreateView.as_view(), name='deals_upsert'),

    # Deals endpoints
    path('api/deals/', include('apps.deals.urls')),

    # Clients endpoints
    path('api/clients/', include('apps.clients.urls')),

    # Discord deal notifications
    path('api/discord/', include('apps.webhooks.urls')),

    # Agents endpoints
    path('api/agents/', include('apps.agents.urls')),

    # Agencies endpoints (configuration settings)
    path('api/agencies/', include('apps.agencies.urls')),

    # AI assistant endpoints
    path('api/ai/', include('apps.ai.urls')),
]
