"""
Deals URL Configuration
"""
from django.urls import path

from .views import (
    BookOfBusinessView,
    DealCommissionHierarchyView,
    DealDetailView,
    FormDataView,
    PolicyDetailView,
    ProductsByCarrierView,
)

urlpatterns = [
    # Fixed paths (must come before <str:deal_id> to avoid conflict)
    path('book-of-business', BookOfBusinessView.as_view(), name='book-of-business'),
    path('form-data', FormDataView.as_view(), name='form-data'),
    path('products-by-carrier', ProductsByCarrierView.as_view(), name='products-by-carrier'),
    path('policy', PolicyDetailView.as_view(), name='policy-detail'),

    # Detail endpoints
    path('<str:deal_id>', DealDetailView.as_view(), name='deal_detail'),
    path('<str:deal_id>/commission-hierarchy', DealCommissionHierarchyView.as_view(), name='deal_commission_hierarchy'),
]
