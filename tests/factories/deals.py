"""
Deal Model Factories

Factories for Deal, Beneficiary, DealHierarchySnapshot and Commission.
"""
import uuid
from datetime import date, timedelta
from decimal import Decimal

import factory
from faker import Faker

from apps.core.models import (
    Beneficiary,
    Commission,
    Deal,
    DealHierarchySnapshot,
)
from tests.factories.core import (
    AgencyFactory,
    CarrierFactory,
    PositionFactory,
    ProductFactory,
    UserFactory,
)

fake = Faker()


class DealFactory(factory.django.DjangoModelFactory):
    """Factory for Deal model."""

    class Meta:
        model = Deal

    id = factory.LazyFunction(uuid.uuid4)
    agency = factory.SubFactory(AgencyFactory)
    agent = factory.SubFactory(UserFactory, agency=factory.SelfAttribute('..agency'))
    client = None
    carrier = factory.SubFactory(CarrierFactory)
    product = factory.SubFactory(
        ProductFactory,
        agency=factory.SelfAttribute('..agency'),
        carrier=factory.SelfAttribute('..carrier'),
    )
    policy_number = factory.LazyAttribute(lambda _: fake.unique.bothify(text='POL-########'))
    status = 'Pending'
    status_standardized = 'pending'
    client_name = factory.LazyAttribute(lambda _: fake.name())
    client_phone = factory.Sequence(lambda n: f"+1555{n:07d}")
    monthly_premium = factory.LazyAttribute(
        lambda _: Decimal(str(fake.pydecimal(min_value=20, max_value=400, right_digits=2)))
    )
    annual_premium = factory.LazyAttribute(
        lambda o: (o.monthly_premium * 12).quantize(Decimal('0.01')) if o.monthly_premium is not None else None
    )
    billing_cycle = 'monthly'
    policy_effective_date = factory.LazyAttribute(
        lambda _: date.today() - timedelta(days=fake.random_int(1, 180))
    )
    submission_date = factory.LazyAttribute(
        lambda o: o.policy_effective_date - timedelta(days=fake.random_int(5, 30))
    )

    class Params:
        active = factory.Trait(
            status='Active',
            status_standardized='active',
        )
        lapsed = factory.Trait(
            status='Lapsed',
            status_standardized='lapsed',
        )


class BeneficiaryFactory(factory.django.DjangoModelFactory):
    """Factory for Beneficiary model."""

    class Meta:
        model = Beneficiary

    id = factory.LazyFunction(uuid.uuid4)
    deal = factory.SubFactory(DealFactory)
    first_name = factory.LazyAttribute(lambda _: fake.first_name())
    last_name = factory.LazyAttribute(lambda _: fake.last_name())
    relationship = 'Spouse'


class DealHierarchySnapshotFactory(factory.django.DjangoModelFactory):
    """
    Factory for DealHierarchySnapshot model.

    This captures the agent hierarchy at deal creation time.
    """

    class Meta:
        model = DealHierarchySnapshot

    id = factory.LazyFunction(uuid.uuid4)
    deal = factory.SubFactory(DealFactory)
    agent = factory.SubFactory(UserFactory, agency=factory.SelfAttribute('..deal.agency'))
    upline_agent = None
    position = factory.SubFactory(PositionFactory, agency=factory.SelfAttribute('..deal.agency'))
    hierarchy_level = 0  # 0 = writing agent
    commission_percentage = factory.LazyAttribute(
        lambda _: Decimal(str(fake.pydecimal(min_value=40, max_value=90, right_digits=2)))
    )


class CommissionFactory(factory.django.DjangoModelFactory):
    """Factory for Commission model."""

    class Meta:
        model = Commission

    id = factory.LazyFunction(uuid.uuid4)
    deal = factory.SubFactory(DealFactory)
    agent = factory.SelfAttribute('deal.agent')
    amount = Decimal('100.00')
    commission_type = 'advance'
