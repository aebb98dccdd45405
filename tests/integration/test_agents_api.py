"""
Integration Tests for Agents API

Tests the upline position check used before posting a deal.
"""
import pytest
from rest_framework import status

from tests.factories import UserFactory


@pytest.mark.django_db
class TestCheckPositionsAPI:
    """GET /api/agents/check-positions"""

    def test_requires_authentication(self, api_client):
        response = api_client.get('/api/agents/check-positions')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_full_chain_with_positions(self, client_for, downline_agent):
        response = client_for(downline_agent).get('/api/agents/check-positions')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['success'] is True
        assert response.data['has_all_positions'] is True
        assert response.data['missing_positions'] == []
        assert response.data['total_checked'] == 3
        assert response.data['user'] == {
            'id': str(downline_agent.id),
            'name': 'Junior Jones',
            'role': 'agent',
        }

    def test_reports_missing_positions(self, client_for, agency):
        top = UserFactory(agency=agency, without_position=True, first_name='Top', last_name='Dog')
        middle = UserFactory(agency=agency, upline=top)
        writer = UserFactory(agency=agency, upline=middle, without_position=True)

        response = client_for(writer).get('/api/agents/check-positions')

        assert response.data['has_all_positions'] is False
        assert response.data['total_checked'] == 3
        missing = {m['agent_id']: m for m in response.data['missing_positions']}
        assert set(missing) == {str(top.id), str(writer.id)}
        assert missing[str(top.id)]['is_top_of_hierarchy'] is True
        assert missing[str(top.id)]['first_name'] == 'Top'
        assert missing[str(writer.id)]['is_top_of_hierarchy'] is False

    def test_check_downline_agent(self, client_for, agent_user, downline_agent):
        response = client_for(agent_user).get(
            '/api/agents/check-positions', {'agent_id': str(downline_agent.id)}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['id'] == str(downline_agent.id)

    def test_cannot_check_upline(self, client_for, admin_user, downline_agent):
        response = client_for(downline_agent).get(
            '/api/agents/check-positions', {'agent_id': str(admin_user.id)}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_cannot_check_other_agency(self, client_for, admin_user, other_agency):
        outsider = UserFactory(agency=other_agency)

        response = client_for(admin_user).get(
            '/api/agents/check-positions', {'agent_id': str(outsider.id)}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_agent_id(self, client_for, agent_user):
        response = client_for(agent_user).get('/api/agents/check-positions', {'agent_id': 'abc'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
