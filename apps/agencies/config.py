"""
Agency deal-posting configuration.

Agency feature flags are resolved once into an AgencyDealConfig and passed
around as typed input, so form validation and payload building never probe
for optional keys.
"""
from dataclasses import dataclass, field
from uuid import UUID

# Fields every deal submission needs regardless of agency settings
BASE_REQUIRED_FIELDS = (
    'carrier_id',
    'product_id',
    'policy_effective_date',
    'monthly_premium',
    'billing_cycle',
    'client_name',
    'client_phone',
    'client_date_of_birth',
    'client_address',
)


@dataclass(frozen=True)
class AgencyDealConfig:
    """Deal-posting flags for one agency."""
    agency_id: UUID
    agency_name: str
    teams_enabled: bool = False
    beneficiaries_required: bool = False
    deal_posting_enabled: bool = True
    lead_sources: tuple[str, ...] = field(default_factory=tuple)
    whitelabel_domain: str | None = None

    @property
    def lead_source_required(self) -> bool:
        return bool(self.lead_sources)

    def required_fields(self) -> tuple[str, ...]:
        """Form fields that must be non-empty for this agency."""
        fields = list(BASE_REQUIRED_FIELDS)
        if self.teams_enabled:
            fields.append('team_id')
        if self.lead_source_required:
            fields.append('lead_source')
        return tuple(fields)

    def to_dict(self) -> dict:
        return {
            'agency_id': str(self.agency_id),
            'agency_name': self.agency_name,
            'teams_enabled': self.teams_enabled,
            'beneficiaries_required': self.beneficiaries_required,
            'deal_posting_enabled': self.deal_posting_enabled,
            'lead_sources': list(self.lead_sources),
            'whitelabel_domain': self.whitelabel_domain,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'AgencyDealConfig':
        """Rebuild a config from its to_dict() form (e.g. the form-data payload)."""
        return cls(
            agency_id=UUID(str(data['agency_id'])),
            agency_name=data.get('agency_name') or '',
            teams_enabled=bool(data.get('teams_enabled')),
            beneficiaries_required=bool(data.get('beneficiaries_required')),
            deal_posting_enabled=data.get('deal_posting_enabled', True) is not False,
            lead_sources=tuple(data.get('lead_sources') or ()),
            whitelabel_domain=data.get('whitelabel_domain'),
        )
