"""
Discord Webhook URL Configuration

Routes (relative to /api/discord/):
- POST webhook - Deal notification
"""
from django.urls import path

from .views import DiscordWebhookView

urlpatterns = [
    path('webhook', DiscordWebhookView.as_view(), name='discord_webhook'),
]
