"""
Agents API URLs

All routes are relative to /api/agents/
"""
from django.urls import path

from . import views

urlpatterns = [
    path('check-positions', views.CheckPositionsView.as_view(), name='check_positions'),
]
