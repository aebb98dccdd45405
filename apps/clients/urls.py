"""
Clients URL Configuration
"""
from django.urls import path

from .views import ClientInviteView

urlpatterns = [
    path('invite', ClientInviteView.as_view(), name='client-invite'),
]
