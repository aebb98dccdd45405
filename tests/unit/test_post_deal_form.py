"""
Unit Tests for Post a Deal form validation
"""
import uuid
from datetime import date
from decimal import Decimal

import pytest

from apps.agencies.config import AgencyDealConfig
from apps.deals.serializers import PostDealFormSerializer, normalize_form_keys

BASE_CONFIG = AgencyDealConfig(agency_id=uuid.uuid4(), agency_name='Test Agency')


def valid_form(**overrides):
    form = {
        'carrier_id': str(uuid.uuid4()),
        'product_id': str(uuid.uuid4()),
        'policy_number': ' PN-1 ',
        'policy_effective_date': '2026-02-01',
        'monthly_premium': '41.67',
        'billing_cycle': 'monthly',
        'client_name': 'Jane Doe',
        'client_phone': '555.123.4567',
        'client_date_of_birth': '1975-12-31',
        'client_address': '1 Main St',
    }
    form.update(overrides)
    return form


def validate(form, config=BASE_CONFIG):
    serializer = PostDealFormSerializer(data=form, context={'config': config})
    valid = serializer.is_valid()
    return valid, serializer


class TestPostDealFormSerializer:

    def test_valid_form_is_normalized(self):
        valid, serializer = validate(valid_form())

        assert valid, serializer.errors
        data = serializer.validated_data
        assert data['policy_number'] == 'PN-1'
        assert data['application_number'] is None
        assert data['monthly_premium'] == Decimal('41.67')
        assert data['annual_premium'] == Decimal('500.04')
        assert data['client_phone'] == '5551234567'
        assert data['policy_effective_date'] == date(2026, 2, 1)
        assert data['ssn_benefit'] is False
        assert data['client_email'] is None

    def test_required_fields(self):
        valid, serializer = validate({})

        assert not valid
        for field_name in ('carrier_id', 'product_id', 'monthly_premium', 'client_name', 'client_address'):
            assert field_name in serializer.errors

    def test_teams_and_lead_source_required_by_config(self):
        config = AgencyDealConfig(
            agency_id=uuid.uuid4(), agency_name='Teams', teams_enabled=True, lead_sources=('Referral',)
        )

        valid, serializer = validate(valid_form(), config)

        assert not valid
        assert set(serializer.errors) == {'team_id', 'lead_source'}

    def test_beneficiaries_required_by_config(self):
        config = AgencyDealConfig(agency_id=uuid.uuid4(), agency_name='B', beneficiaries_required=True)

        valid, serializer = validate(valid_form(beneficiaries=[{'name': 'John', 'relationship': ''}]), config)
        assert not valid
        assert 'beneficiaries' in serializer.errors

        valid, _ = validate(valid_form(beneficiaries=[{'name': 'John', 'relationship': 'Son'}]), config)
        assert valid

    def test_application_number_alone_is_enough(self):
        valid, serializer = validate(valid_form(policy_number='', application_number='APP-9'))

        assert valid
        assert serializer.validated_data['policy_number'] is None
        assert serializer.validated_data['application_number'] == 'APP-9'

    def test_one_of_policy_or_application_number(self):
        valid, serializer = validate(valid_form(policy_number=''))

        assert not valid
        assert 'policy_number' in serializer.errors

    @pytest.mark.parametrize('premium', ['-1', 'abc', 'NaN', 'Infinity', '50.005', '12345678901234'])
    def test_bad_premium(self, premium):
        valid, serializer = validate(valid_form(monthly_premium=premium))

        assert not valid
        assert 'monthly_premium' in serializer.errors

    def test_premium_precision_reported_on_field(self):
        valid, serializer = validate(valid_form(monthly_premium='50.005'))

        assert not valid
        assert 'decimal places' in str(serializer.errors['monthly_premium'])

    @pytest.mark.parametrize('coverage', ['-1', 'NaN', '100000.001'])
    def test_bad_coverage(self, coverage):
        valid, serializer = validate(valid_form(coverage_amount=coverage))

        assert not valid
        assert 'coverage_amount' in serializer.errors

    def test_coverage_is_quantized(self):
        valid, serializer = validate(valid_form(coverage_amount='250000'))

        assert valid, serializer.errors
        assert serializer.validated_data['coverage_amount'] == Decimal('250000.00')

    @pytest.mark.parametrize('phone', ['555123456', '155512345678', 'call me'])
    def test_phone_must_be_ten_digits(self, phone):
        valid, serializer = validate(valid_form(client_phone=phone))

        assert not valid
        assert 'client_phone' in serializer.errors

    def test_bad_email(self):
        valid, serializer = validate(valid_form(client_email='jane@'))

        assert not valid
        assert 'client_email' in serializer.errors

    def test_bad_dates(self):
        valid, serializer = validate(valid_form(policy_effective_date='02/01/2026', client_date_of_birth='1975-13-01'))

        assert not valid
        assert {'policy_effective_date', 'client_date_of_birth'} <= set(serializer.errors)

    def test_ssn_benefit_requires_billing_pattern(self):
        valid, serializer = validate(valid_form(ssn_benefit='yes'))

        assert not valid
        assert {'billing_day_of_month', 'billing_weekday'} <= set(serializer.errors)

    def test_billing_pattern_dropped_without_ssn_benefit(self):
        valid, serializer = validate(
            valid_form(ssn_benefit='no', billing_day_of_month='3rd', billing_weekday='Friday')
        )

        assert valid
        assert serializer.validated_data['billing_day_of_month'] is None
        assert serializer.validated_data['billing_weekday'] is None

    def test_billing_cycle_choices(self):
        valid, serializer = validate(valid_form(billing_cycle='weekly'))

        assert not valid
        assert 'billing_cycle' in serializer.errors


def test_normalize_form_keys():
    normalized = normalize_form_keys({
        'carrierId': 'c',
        'dateOfBirth': '1980-01-01',
        'team': 't',
        'beneficiaries': [{'name': 'A', 'relationship': 'Son'}],
    })

    assert normalized == {
        'carrier_id': 'c',
        'client_date_of_birth': '1980-01-01',
        'team_id': 't',
        'beneficiaries': [{'name': 'A', 'relationship': 'Son'}],
    }
