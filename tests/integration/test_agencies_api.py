"""
Integration Tests for Agency Deal Configuration and Health Check
"""
import pytest
from rest_framework import status


@pytest.mark.django_db
class TestAgencyDealConfigAPI:
    """GET /api/agencies/{id}/deal-config"""

    def test_own_agency(self, client_for, agency, agent_user):
        agency.teams_enabled = True
        agency.lead_sources = ['Referral', '', 'Facebook']
        agency.whitelabel_domain = 'agents.example.com'
        agency.save()

        response = client_for(agent_user).get(f'/api/agencies/{agency.id}/deal-config')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'agency_id': str(agency.id),
            'agency_name': agency.display_name,
            'teams_enabled': True,
            'beneficiaries_required': False,
            'deal_posting_enabled': True,
            'lead_sources': ['Referral', 'Facebook'],
            'whitelabel_domain': 'agents.example.com',
        }

    def test_other_agency_forbidden(self, client_for, agent_user, other_agency):
        response = client_for(agent_user).get(f'/api/agencies/{other_agency.id}/deal-config')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestHealthCheck:

    def test_healthy(self, api_client):
        response = api_client.get('/api/health')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['database'] == 'connected'
