"""
Unit Tests for AgencyDealConfig
"""
import uuid

from apps.agencies.config import BASE_REQUIRED_FIELDS, AgencyDealConfig


def test_required_fields_follow_flags():
    agency_id = uuid.uuid4()

    plain = AgencyDealConfig(agency_id=agency_id, agency_name='A')
    full = AgencyDealConfig(agency_id=agency_id, agency_name='A', teams_enabled=True, lead_sources=('Referral',))

    assert plain.required_fields() == BASE_REQUIRED_FIELDS
    assert plain.lead_source_required is False
    assert full.required_fields()[-2:] == ('team_id', 'lead_source')


def test_dict_round_trip():
    config = AgencyDealConfig(
        agency_id=uuid.uuid4(),
        agency_name='A',
        beneficiaries_required=True,
        deal_posting_enabled=False,
        lead_sources=('Referral', 'Facebook'),
        whitelabel_domain='agents.example.com',
    )

    assert AgencyDealConfig.from_dict(config.to_dict()) == config


def test_from_dict_defaults():
    config = AgencyDealConfig.from_dict({'agency_id': str(uuid.UUID(int=5))})

    assert config.agency_id == uuid.UUID(int=5)
    assert config.deal_posting_enabled is True
    assert config.lead_sources == ()
