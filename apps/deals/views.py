"""
Deals API Views

Endpoints:
- POST /api/deals - Create or update a deal by natural key
- GET /api/deals/{id} - Get deal details
- GET /api/deals/{id}/commission-hierarchy - Commission split table for a deal
- GET /api/deals/policy - Deal detail by carrier + policy number
- GET /api/deals/book-of-business - Cursor-paginated deal list
- GET /api/deals/form-data - Post a Deal form options
- GET /api/deals/products-by-carrier - Products for a specific carrier
"""
import logging

from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.mixins import AuthenticatedAPIView
from apps.core.models import Deal

from .commissions import get_commission_hierarchy
from .selectors import get_book_of_business, get_post_deal_form_data, get_products_by_carrier
from .serializers import DealUpsertSerializer
from .services import (
    BeneficiaryInput,
    DealUpsertInput,
    DealValidationError,
    get_deal_by_id,
    upsert_deal,
)

logger = logging.getLogger(__name__)


def _first_error(errors) -> str:
    """Flatten a DRF error structure to its first message."""
    if isinstance(errors, dict):
        for field_name, value in errors.items():
            message = _first_error(value)
            return message if field_name == 'non_field_errors' else f'{field_name}: {message}'
    if isinstance(errors, list) and errors:
        return _first_error(errors[0])
    return str(errors)


class DealsCreateView(AuthenticatedAPIView, APIView):
    """POST /api/deals - Create or update a deal by natural key."""

    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = self.get_user(request)

        serializer = DealUpsertSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': _first_error(serializer.errors), 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )
        data = serializer.validated_data

        beneficiaries = None
        if data.get('beneficiaries') is not None:
            beneficiaries = [
                BeneficiaryInput(name=b.get('name'), relationship=b.get('relationship'))
                for b in data['beneficiaries']
            ]

        input_data = DealUpsertInput(
            agency_id=user.agency_id,
            agent_id=data.get('agent_id') or user.id,
            carrier_id=data['carrier_id'],
            product_id=data.get('product_id'),
            client_id=data.get('client_id'),
            team_id=data.get('team_id'),
            policy_number=data.get('policy_number'),
            application_number=data.get('application_number'),
            status=data.get('status'),
            status_standardized=data.get('status_standardized'),
            monthly_premium=data.get('monthly_premium'),
            coverage_amount=data.get('coverage_amount'),
            rate_class=data.get('rate_class'),
            policy_effective_date=data.get('policy_effective_date'),
            submission_date=data.get('submission_date'),
            billing_cycle=data.get('billing_cycle'),
            ssn_benefit=data.get('ssn_benefit'),
            billing_day_of_month=data.get('billing_day_of_month'),
            billing_weekday=data.get('billing_weekday'),
            lead_source=data.get('lead_source'),
            client_name=data.get('client_name'),
            client_email=data.get('client_email'),
            client_phone=data.get('client_phone'),
            client_address=data.get('client_address'),
            date_of_birth=data.get('date_of_birth'),
            notes=data.get('notes'),
            beneficiaries=beneficiaries,
        )

        try:
            result = upsert_deal(user, input_data)
        except DealValidationError as e:
            body = {'error': e.message, 'code': e.code}
            body.update(e.details)
            return Response(body, status=e.status_code)

        message = 'Deal created successfully' if result.created else 'Deal updated successfully'
        return Response(
            {
                'operation': result.operation,
                'id': result.deal.get('id'),
                'message': message,
                'deal': result.deal,
            },
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
        )


class DealDetailView(AuthenticatedAPIView, APIView):
    """GET /api/deals/{id} - Deal details."""

    permission_classes = [IsAuthenticated]

    def get(self, request, deal_id):
        user = self.get_user(request)
        deal_uuid = self.parse_uuid(deal_id, "deal_id")

        deal = get_deal_by_id(deal_uuid, user)
        if not deal:
            return Response(
                {'error': 'Deal not found'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(deal)


class DealCommissionHierarchyView(AuthenticatedAPIView, APIView):
    """GET /api/deals/{id}/commission-hierarchy - Root-first commission split table."""

    permission_classes = [IsAuthenticated]

    def get(self, request, deal_id):
        user = self.get_user(request)
        deal_uuid = self.parse_uuid(deal_id, "deal_id")

        hierarchy = get_commission_hierarchy(deal_uuid, user)
        if hierarchy is None:
            return Response({'error': 'Deal not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(hierarchy)


class PolicyDetailView(AuthenticatedAPIView, APIView):
    """
    GET /api/deals/policy?carrier_id=&policy_number=

    Policy detail page lookup: the deal plus its commission hierarchy.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = self.get_user(request)
        carrier_uuid = self.parse_uuid(request.query_params.get('carrier_id'), "carrier_id")
        policy_number = (request.query_params.get('policy_number') or '').strip()
        if not policy_number:
            return Response({'error': 'policy_number is required'}, status=status.HTTP_400_BAD_REQUEST)

        deal_id = (
            Deal.objects.filter(
                agency_id=user.agency_id, carrier_id=carrier_uuid, policy_number=policy_number
            )
            .values_list('id', flat=True)
            .first()
        )
        if not deal_id:
            return Response({'error': 'Policy not found'}, status=status.HTTP_404_NOT_FOUND)

        deal = get_deal_by_id(deal_id, user)
        deal['commission_hierarchy'] = get_commission_hierarchy(deal_id, user)['entries']
        return Response(deal)


class BookOfBusinessView(AuthenticatedAPIView, APIView):
    """GET /api/deals/book-of-business - Cursor-paginated deal list."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = self.get_user(request)
        params = request.query_params

        cursor_created_at = None
        raw_cursor = params.get('cursor_created_at')
        if raw_cursor:
            try:
                cursor_created_at = parse_datetime(raw_cursor)
            except ValueError:
                cursor_created_at = None
            if cursor_created_at is None:
                return Response(
                    {'error': 'Invalid cursor_created_at format'},
                    status=status.HTTP_400_BAD_REQUEST
                )

        result = get_book_of_business(
            user,
            limit=self.parse_limit(params.get('limit')),
            cursor_created_at=cursor_created_at,
            cursor_id=self.parse_uuid_optional(params.get('cursor_id')),
            carrier_id=self.parse_uuid_optional(params.get('carrier_id')),
            product_id=self.parse_uuid_optional(params.get('product_id')),
            agent_id=self.parse_uuid_optional(params.get('agent_id')),
            status_standardized=params.get('status_standardized') or None,
            billing_cycle=params.get('billing_cycle') or None,
            lead_source=params.get('lead_source') or None,
            date_from=self.parse_date(params.get('date_from')),
            date_to=self.parse_date(params.get('date_to')),
            search_query=(params.get('search') or '').strip() or None,
            view=params.get('view', 'downlines'),
        )
        return Response(result)


class FormDataView(AuthenticatedAPIView, APIView):
    """GET /api/deals/form-data - Get form data for Post a Deal page."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = self.get_user(request)
        form_data = get_post_deal_form_data(user)
        if form_data is None:
            return Response({'error': 'Agency not found'}, status=status.HTTP_404_NOT_FOUND)
        return Response(form_data)


class ProductsByCarrierView(AuthenticatedAPIView, APIView):
    """GET /api/deals/products-by-carrier - Get products for a specific carrier."""

    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = self.get_user(request)
        carrier_id = request.query_params.get('carrier_id')

        if not carrier_id:
            return Response(
                {'error': 'carrier_id is required'},
                status=status.HTTP_400_BAD_REQUEST
            )

        carrier_uuid = self.parse_uuid(carrier_id, "carrier_id")
        products = get_products_by_carrier(user, carrier_uuid)
        return Response(products)
