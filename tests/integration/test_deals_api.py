"""
Integration Tests for Deals API

Tests the deal upsert by natural key, deal detail, commission hierarchy,
Post a Deal form options and the book of business.
"""
import uuid
from decimal import Decimal

import pytest
from rest_framework import status

from apps.core.models import Beneficiary, Deal, DealHierarchySnapshot
from tests.factories import DealFactory, UserFactory


def deal_payload(carrier, product, **overrides):
    payload = {
        'carrier_id': str(carrier.id),
        'product_id': str(product.id),
        'policy_number': 'PN-100',
        'monthly_premium': '50.00',
        'billing_cycle': 'monthly',
        'client_name': 'Jane Doe',
        'client_email': 'a@b.com',
        'client_phone': '5551234567',
        'client_address': '1 Main St, Springfield',
        'date_of_birth': '1980-04-02',
        'policy_effective_date': '2026-01-01',
    }
    payload.update(overrides)
    return payload


@pytest.mark.django_db
class TestDealUpsertAPI:
    """POST /api/deals"""

    def test_requires_authentication(self, api_client, carrier, product):
        response = api_client.post('/api/deals', deal_payload(carrier, product), format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert 'error' in response.data

    def test_create_then_update_by_policy_number(self, client_for, agent_user, carrier, product):
        """Same (carrier, policy_number) twice: created, then updated with annual = monthly x 12."""
        client = client_for(agent_user)

        first = client.post('/api/deals', deal_payload(carrier, product), format='json')
        assert first.status_code == status.HTTP_201_CREATED
        assert first.data['operation'] == 'created'
        assert first.data['deal']['annual_premium'] == 600.0

        second = client.post(
            '/api/deals', deal_payload(carrier, product, monthly_premium='75.00'), format='json'
        )
        assert second.status_code == status.HTTP_200_OK
        assert second.data['operation'] == 'updated'
        assert second.data['id'] == first.data['id']

        deal = Deal.objects.get(id=first.data['id'])
        assert deal.annual_premium == Decimal('900.00')
        assert deal.monthly_premium == Decimal('75.00')
        assert deal.client_phone == '+15551234567'
        assert deal.status_standardized == 'pending'
        assert Deal.objects.filter(carrier=carrier, policy_number='PN-100').count() == 1

    def test_update_keeps_unspecified_fields(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        created = client.post('/api/deals', deal_payload(carrier, product, notes='first call'), format='json')

        client.post(
            '/api/deals',
            {'carrier_id': str(carrier.id), 'policy_number': 'PN-100', 'rate_class': 'Preferred'},
            format='json',
        )

        deal = Deal.objects.get(id=created.data['id'])
        assert deal.rate_class == 'Preferred'
        assert deal.notes == 'first call'
        assert deal.client_name == 'Jane Doe'
        assert deal.agent_id == agent_user.id

    def test_matches_on_application_number(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        payload = deal_payload(carrier, product, policy_number='', application_number='APP-7')

        first = client.post('/api/deals', payload, format='json')
        second = client.post('/api/deals', {**payload, 'monthly_premium': '60.00'}, format='json')

        assert first.data['operation'] == 'created'
        assert second.data['operation'] == 'updated'
        assert Deal.objects.get(id=first.data['id']).policy_number is None

    def test_ssn_benefit_no_forces_billing_pattern_null(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        created = client.post(
            '/api/deals',
            deal_payload(
                carrier, product,
                ssn_benefit=True, billing_day_of_month='2nd', billing_weekday='Wednesday',
            ),
            format='json',
        )
        deal = Deal.objects.get(id=created.data['id'])
        assert (deal.billing_day_of_month, deal.billing_weekday) == ('2nd', 'Wednesday')

        client.post(
            '/api/deals',
            deal_payload(
                carrier, product,
                ssn_benefit=False, billing_day_of_month='2nd', billing_weekday='Wednesday',
            ),
            format='json',
        )
        deal.refresh_from_db()
        assert deal.ssn_benefit is False
        assert deal.billing_day_of_month is None
        assert deal.billing_weekday is None

    def test_missing_policy_and_application_number(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)

        response = client.post(
            '/api/deals', deal_payload(carrier, product, policy_number=''), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'policy number or an application number' in response.data['error']
        assert not Deal.objects.exists()

    def test_negative_premium_rejected(self, client_for, agent_user, carrier, product):
        response = client_for(agent_user).post(
            '/api/deals', deal_payload(carrier, product, monthly_premium='-5'), format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'].startswith('monthly_premium')

    def test_posting_disabled(self, client_for, agency, agent_user, carrier, product):
        agency.deal_posting_enabled = False
        agency.save()

        response = client_for(agent_user).post('/api/deals', deal_payload(carrier, product), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'posting_disabled'

    def test_missing_upline_position(self, client_for, agency, admin_user, carrier, product):
        unassigned = UserFactory(agency=agency, upline=admin_user, without_position=True)

        response = client_for(unassigned).post('/api/deals', deal_payload(carrier, product), format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'missing_positions'
        assert response.data['agents_without_positions'][0]['id'] == str(unassigned.id)
        assert not Deal.objects.exists()

    def test_phone_already_used_by_another_deal(self, client_for, agency, agent_user, carrier, product):
        existing = DealFactory(
            agency=agency, agent=agent_user, carrier=carrier, product=product,
            policy_number='PN-OTHER', client_phone='+15551234567',
        )

        response = client_for(agent_user).post(
            '/api/deals', deal_payload(carrier, product, client_phone='(555) 123-4567'), format='json'
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'phone_exists'
        assert response.data['existing_deal_id'] == str(existing.id)

    def test_natural_key_taken_in_another_agency(self, client_for, other_agency, agent_user, carrier, product):
        DealFactory(agency=other_agency, carrier=carrier, product=None, policy_number='PN-100')

        response = client_for(agent_user).post('/api/deals', deal_payload(carrier, product), format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'duplicate_deal'

    def test_update_onto_another_deals_number(self, client_for, agency, agent_user, carrier, product):
        """Moving a deal onto a number another deal holds is a conflict, not a server error."""
        first = DealFactory(
            agency=agency, agent=agent_user, carrier=carrier, product=product,
            policy_number='PN-1', application_number='APP-1', client_phone='+15550000001',
        )
        DealFactory(
            agency=agency, agent=agent_user, carrier=carrier, product=product,
            policy_number='PN-2', application_number='APP-2', client_phone='+15550000002',
        )

        response = client_for(agent_user).post(
            '/api/deals',
            {'carrier_id': str(carrier.id), 'policy_number': 'PN-1', 'application_number': 'APP-2'},
            format='json',
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'duplicate_deal'
        first.refresh_from_db()
        assert first.application_number == 'APP-1'

    def test_concurrent_insert_applied_as_update(self, mocker, client_for, agency, agent_user, carrier, product):
        """Another submission inserted the same key between lookup and insert."""
        existing = DealFactory(
            agency=agency, agent=agent_user, carrier=carrier, product=product,
            policy_number='PN-100', client_phone='+15550000001',
        )
        lookup = mocker.patch('apps.deals.services.find_deal_by_natural_key', side_effect=[None, existing])

        response = client_for(agent_user).post(
            '/api/deals', deal_payload(carrier, product, monthly_premium='75.00'), format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['operation'] == 'updated'
        assert response.data['id'] == str(existing.id)
        assert lookup.call_count == 2
        assert Deal.objects.filter(carrier=carrier, policy_number='PN-100').count() == 1
        assert not DealHierarchySnapshot.objects.filter(deal_id=existing.id).exists()
        existing.refresh_from_db()
        assert existing.annual_premium == Decimal('900.00')

    def test_cyclic_upline_snapshots_each_agent_once(
        self, client_for, agency, agent_position, junior_position, carrier, product
    ):
        closer = UserFactory(agency=agency, position=junior_position, upline=None)
        manager = UserFactory(agency=agency, position=agent_position, upline=closer)
        closer.upline = manager
        closer.save()

        response = client_for(closer).post('/api/deals', deal_payload(carrier, product), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        snapshots = DealHierarchySnapshot.objects.filter(deal_id=response.data['id'])
        assert sorted(s.hierarchy_level for s in snapshots) == [0, 1]
        assert {s.agent_id for s in snapshots} == {closer.id, manager.id}

    def test_post_for_downline_agent(self, client_for, agent_user, downline_agent, carrier, product):
        response = client_for(agent_user).post(
            '/api/deals', deal_payload(carrier, product, agent_id=str(downline_agent.id)), format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['deal']['agent']['id'] == str(downline_agent.id)

    def test_cannot_post_for_upline(self, client_for, agent_user, downline_agent, carrier, product):
        response = client_for(downline_agent).post(
            '/api/deals', deal_payload(carrier, product, agent_id=str(agent_user.id)), format='json'
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data['code'] == 'forbidden'

    def test_snapshot_captured_once(self, client_for, agent_user, admin_user, carrier, product):
        client = client_for(agent_user)
        created = client.post('/api/deals', deal_payload(carrier, product), format='json')
        client.post('/api/deals', deal_payload(carrier, product, monthly_premium='80.00'), format='json')

        snapshots = DealHierarchySnapshot.objects.filter(deal_id=created.data['id']).order_by('hierarchy_level')
        assert [(s.agent_id, s.upline_agent_id, s.hierarchy_level) for s in snapshots] == [
            (agent_user.id, admin_user.id, 0),
            (admin_user.id, None, 1),
        ]
        assert snapshots[0].commission_percentage == Decimal('90.00')

    def test_beneficiaries_replaced_when_supplied(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        created = client.post(
            '/api/deals',
            deal_payload(carrier, product, beneficiaries=[
                {'name': 'John Doe', 'relationship': 'Spouse'},
                {'name': 'Amy Doe', 'relationship': 'Child'},
            ]),
            format='json',
        )
        assert Beneficiary.objects.filter(deal_id=created.data['id']).count() == 2

        client.post('/api/deals', deal_payload(carrier, product, monthly_premium='55.00'), format='json')
        assert Beneficiary.objects.filter(deal_id=created.data['id']).count() == 2

        client.post(
            '/api/deals',
            deal_payload(carrier, product, beneficiaries=[{'name': 'Mary Ann Doe', 'relationship': 'Sister'}]),
            format='json',
        )
        beneficiaries = list(Beneficiary.objects.filter(deal_id=created.data['id']))
        assert len(beneficiaries) == 1
        assert (beneficiaries[0].first_name, beneficiaries[0].last_name) == ('Mary', 'Ann Doe')


@pytest.mark.django_db
class TestDealDetailAPI:
    """GET /api/deals/{id}, /commission-hierarchy and /policy"""

    def test_deal_detail(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        created = client.post(
            '/api/deals',
            deal_payload(carrier, product, beneficiaries=[{'name': 'John Doe', 'relationship': 'Spouse'}]),
            format='json',
        )

        response = client.get(f"/api/deals/{created.data['id']}")

        assert response.status_code == status.HTTP_200_OK
        assert response.data['policy_number'] == 'PN-100'
        assert response.data['carrier']['name'] == 'Acme Life Insurance'
        assert response.data['beneficiaries'][0]['name'] == 'John Doe'

    def test_deal_in_other_agency_not_found(self, client_for, agent_user, other_agency):
        deal = DealFactory(agency=other_agency)

        response = client_for(agent_user).get(f'/api/deals/{deal.id}')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_invalid_deal_id(self, client_for, agent_user):
        response = client_for(agent_user).get('/api/deals/not-a-uuid')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Invalid deal_id format'

    def test_commission_hierarchy_root_first(self, client_for, agent_user, admin_user, downline_agent, carrier, product):
        created = client_for(agent_user).post(
            '/api/deals', deal_payload(carrier, product, agent_id=str(downline_agent.id)), format='json'
        )

        response = client_for(admin_user).get(f"/api/deals/{created.data['id']}/commission-hierarchy")

        assert response.status_code == status.HTTP_200_OK
        assert response.data['writing_agent_id'] == str(downline_agent.id)
        entries = response.data['entries']
        assert [e['agent_id'] for e in entries] == [str(admin_user.id), str(agent_user.id), str(downline_agent.id)]
        assert [e['level'] for e in entries] == [2, 1, 0]
        assert [e['indent'] for e in entries] == [0, 1, 2]
        assert entries[-1]['is_writing_agent'] is True
        assert entries[0]['position_name'] == 'Agency Owner'

    def test_policy_lookup(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        client.post('/api/deals', deal_payload(carrier, product), format='json')

        response = client.get('/api/deals/policy', {'carrier_id': str(carrier.id), 'policy_number': 'PN-100'})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['policy_number'] == 'PN-100'
        assert len(response.data['commission_hierarchy']) == 2

    def test_policy_lookup_not_found(self, client_for, agent_user, carrier):
        response = client_for(agent_user).get(
            '/api/deals/policy', {'carrier_id': str(carrier.id), 'policy_number': 'NOPE'}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestPostDealFormDataAPI:
    """GET /api/deals/form-data and /products-by-carrier"""

    def test_form_data(self, client_for, agency, agent_user, carrier, product):
        agency.lead_sources = ['Referral', 'Facebook']
        agency.save()

        response = client_for(agent_user).get('/api/deals/form-data')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['carriers'] == [{'id': str(carrier.id), 'name': 'Acme Life Insurance'}]
        assert response.data['products'][0]['id'] == str(product.id)
        assert response.data['lead_sources'] == ['Referral', 'Facebook']
        assert response.data['config']['agency_id'] == str(agency.id)
        assert response.data['billing_options']['billing_weekdays'][0] == 'Monday'
        assert response.data['user']['id'] == str(agent_user.id)

    def test_products_by_carrier(self, client_for, agent_user, carrier, product):
        response = client_for(agent_user).get('/api/deals/products-by-carrier', {'carrier_id': str(carrier.id)})

        assert response.status_code == status.HTTP_200_OK
        assert [p['id'] for p in response.data] == [str(product.id)]

    def test_products_by_carrier_requires_carrier(self, client_for, agent_user):
        response = client_for(agent_user).get('/api/deals/products-by-carrier')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestBookOfBusinessAPI:
    """GET /api/deals/book-of-business"""

    def test_cursor_pagination(self, client_for, agency, admin_user, agent_user, carrier, product):
        created = [
            DealFactory(agency=agency, agent=agent_user, carrier=carrier, product=product)
            for _ in range(3)
        ]
        client = client_for(admin_user)

        first = client.get('/api/deals/book-of-business', {'limit': 2, 'view': 'all'})
        assert first.status_code == status.HTTP_200_OK
        assert len(first.data['deals']) == 2
        assert first.data['has_more'] is True

        cursor = first.data['next_cursor']
        second = client.get('/api/deals/book-of-business', {
            'limit': 2,
            'view': 'all',
            'cursor_created_at': cursor['created_at'],
            'cursor_id': cursor['id'],
        })
        assert len(second.data['deals']) == 1
        assert second.data['has_more'] is False
        assert second.data['next_cursor'] is None

        seen = [d['id'] for d in first.data['deals'] + second.data['deals']]
        assert sorted(seen) == sorted(str(d.id) for d in created)

    def test_invalid_cursor(self, client_for, agent_user):
        response = client_for(agent_user).get('/api/deals/book-of-business', {'cursor_created_at': 'yesterday'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_downline_phone_masked(self, client_for, agency, agent_user, downline_agent, carrier, product):
        DealFactory(agency=agency, agent=downline_agent, carrier=carrier, product=product, client_phone='+15559876543')
        DealFactory(agency=agency, agent=agent_user, carrier=carrier, product=product, client_phone='+15551112222')

        response = client_for(agent_user).get('/api/deals/book-of-business')

        phones = {d['agent_id']: d['client_phone'] for d in response.data['deals']}
        assert phones[str(downline_agent.id)] == '155****43'
        assert phones[str(agent_user.id)] == '+15551112222'

    def test_downline_cannot_see_upline_deals(self, client_for, agency, agent_user, downline_agent, carrier, product):
        DealFactory(agency=agency, agent=agent_user, carrier=carrier, product=product)

        response = client_for(downline_agent).get('/api/deals/book-of-business')

        assert response.data['deals'] == []

    def test_filters(self, client_for, agency, admin_user, agent_user, carrier, product):
        DealFactory(agency=agency, agent=agent_user, carrier=carrier, product=product, client_name='Alice Brown', lead_source='Referral')
        DealFactory(agency=agency, agent=agent_user, carrier=carrier, product=product, client_name='Bob Green', lead_source='Facebook')
        client = client_for(admin_user)

        by_search = client.get('/api/deals/book-of-business', {'view': 'all', 'search': 'alice'})
        by_lead = client.get('/api/deals/book-of-business', {'view': 'all', 'lead_source': 'Facebook'})

        assert [d['client_name'] for d in by_search.data['deals']] == ['Alice Brown']
        assert [d['client_name'] for d in by_lead.data['deals']] == ['Bob Green']

    def test_write_invalidates_cached_pages(self, client_for, agent_user, carrier, product):
        client = client_for(agent_user)
        assert client.get('/api/deals/book-of-business').data['deals'] == []

        client.post('/api/deals', deal_payload(carrier, product), format='json')

        deals = client.get('/api/deals/book-of-business').data['deals']
        assert [d['policy_number'] for d in deals] == ['PN-100']

    def test_unknown_agent_filter_returns_nothing(self, client_for, agent_user, agency, carrier, product):
        DealFactory(agency=agency, agent=agent_user, carrier=carrier, product=product)

        response = client_for(agent_user).get('/api/deals/book-of-business', {'agent_id': str(uuid.uuid4())})

        assert response.data['deals'] == []
