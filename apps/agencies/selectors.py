"""
Agency Selectors
"""
from uuid import UUID

from apps.core.models import Agency

from .config import AgencyDealConfig


def get_agency_deal_config(agency_id: UUID) -> AgencyDealConfig | None:
    """Resolve the deal-posting configuration for an agency."""
    agency = Agency.objects.filter(id=agency_id).first()
    if not agency:
        return None

    lead_sources = agency.lead_sources if isinstance(agency.lead_sources, list) else []
    return AgencyDealConfig(
        agency_id=agency.id,
        agency_name=agency.display_name or agency.name,
        teams_enabled=agency.teams_enabled,
        beneficiaries_required=agency.beneficiaries_required,
        deal_posting_enabled=agency.deal_posting_enabled,
        lead_sources=tuple(str(source) for source in lead_sources if source),
        whitelabel_domain=agency.whitelabel_domain,
    )
