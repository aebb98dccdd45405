"""
AI URL Configuration
"""
from django.urls import path

from .views import AIChatView, AIToolView

urlpatterns = [
    path('chat', AIChatView.as_view(), name='ai_chat'),
    path('tools/<str:tool_name>', AIToolView.as_view(), name='ai_tool'),
]
