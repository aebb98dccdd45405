"""
Integration Test Fixtures

Provides real database fixtures using Factory Boy: one agency with a
three-level hierarchy (owner -> agent -> downline) whose positions are all
mapped to the agency's product.
"""
from decimal import Decimal

import pytest

from tests.factories import (
    AgencyFactory,
    CarrierFactory,
    PositionFactory,
    PositionProductCommissionFactory,
    ProductFactory,
    UserFactory,
)


@pytest.fixture
def agency(db):
    """Create a test agency."""
    return AgencyFactory(name='Test Insurance Agency')


@pytest.fixture
def owner_position(agency):
    return PositionFactory(agency=agency, name='Agency Owner', level=0)


@pytest.fixture
def agent_position(agency):
    return PositionFactory(agency=agency, name='Sales Agent', level=1)


@pytest.fixture
def junior_position(agency):
    return PositionFactory(agency=agency, name='Junior Agent', level=2)


@pytest.fixture
def admin_user(agency, owner_position):
    """Top of the hierarchy; agency admin."""
    return UserFactory(
        agency=agency,
        position=owner_position,
        admin=True,
        first_name='Admin',
        last_name='Owner',
    )


@pytest.fixture
def agent_user(agency, admin_user, agent_position):
    """Create a regular agent under the admin."""
    return UserFactory(
        agency=agency,
        position=agent_position,
        upline=admin_user,
        first_name='Agent',
        last_name='Smith',
    )


@pytest.fixture
def downline_agent(agency, agent_user, junior_position):
    """Create an agent who reports to agent_user (downline)."""
    return UserFactory(
        agency=agency,
        position=junior_position,
        upline=agent_user,
        first_name='Junior',
        last_name='Jones',
    )


@pytest.fixture
def carrier(db):
    return CarrierFactory(name='Acme Life', display_name='Acme Life Insurance')


@pytest.fixture
def product(agency, carrier, owner_position, agent_position, junior_position):
    """Product with commission mappings for every position in the hierarchy."""
    product = ProductFactory(agency=agency, carrier=carrier, name='Term 20')
    for position, rate in (
        (owner_position, Decimal('120.00')),
        (agent_position, Decimal('90.00')),
        (junior_position, Decimal('70.00')),
    ):
        PositionProductCommissionFactory(position=position, product=product, commission_percentage=rate)
    return product


@pytest.fixture
def other_agency(db):
    return AgencyFactory(name='Other Agency')
