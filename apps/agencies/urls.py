"""
Agency API URLs

All routes are relative to /api/agencies/
"""
from django.urls import path

from .views import AgencyDealConfigView

urlpatterns = [
    path('<str:agency_id>/deal-config', AgencyDealConfigView.as_view(), name='agency_deal_config'),
]
