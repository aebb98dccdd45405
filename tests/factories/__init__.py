"""
Factory Boy Factories for AgentSpace Models

Import all factories here for easy access in tests.
"""
from tests.factories.core import (
    AgencyFactory,
    CarrierFactory,
    PositionFactory,
    PositionProductCommissionFactory,
    ProductFactory,
    TeamFactory,
    UserFactory,
)
from tests.factories.deals import (
    BeneficiaryFactory,
    CommissionFactory,
    DealFactory,
    DealHierarchySnapshotFactory,
)

__all__ = [
    # Core
    'AgencyFactory',
    'UserFactory',
    'PositionFactory',
    'TeamFactory',
    'CarrierFactory',
    'ProductFactory',
    'PositionProductCommissionFactory',
    # Deals
    'DealFactory',
    'BeneficiaryFactory',
    'DealHierarchySnapshotFactory',
    'CommissionFactory',
]
