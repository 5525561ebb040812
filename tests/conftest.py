"""Shared fixtures for the subscribe test suite."""

from collections.abc import Iterator
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from subscribe.clock import FixedClock
from subscribe.db import create_all_tables, drop_all_tables
from subscribe.memberships.context import MembershipContext
from subscribe.memberships.interfaces import (
    InvoiceCollaborator,
    MembershipRepository,
    ScheduleRepository,
    ServiceInitializer,
    ServiceRepository,
    StatusLog,
)
from subscribe.memberships.manager import MembershipManager
from subscribe.memberships.models import (
    Invoice,
    Membership,
    Plan,
    PlanType,
    Service,
    StatusCode,
)
from subscribe.settings import MembershipSettings

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


def fake_init_service(service, membership, plan, price=None):
    """Stand-in initializer: raises the first invoice and marks the service new."""
    service.first_invoice = Invoice(
        invoice_id=f"inv-{service.service_id}",
        total=price if price is not None else plan.price,
    )
    service.status = StatusCode.NEW
    return service


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def membership_settings() -> MembershipSettings:
    return MembershipSettings()


@pytest.fixture
def monthly_plan() -> Plan:
    return Plan(
        plan_id="plan-monthly",
        name="Monthly",
        plan_type=PlanType.MONTHLY,
        price=Decimal("10.00"),
    )


@pytest.fixture
def trial_plan() -> Plan:
    return Plan(
        plan_id="plan-trial",
        name="Monthly with trial",
        plan_type=PlanType.MONTHLY,
        price=Decimal("10.00"),
        trial_days=14,
    )


@pytest.fixture
def membership() -> Membership:
    return Membership(membership_id="mem-1", user_id="user-1")


@pytest.fixture
def make_service(monthly_plan):
    """Build a service on the monthly plan with sensible defaults."""

    def _make(**overrides) -> Service:
        data = {
            "service_id": "svc-1",
            "membership_id": "mem-1",
            "user_id": "user-1",
            "plan": monthly_plan,
            "status": StatusCode.ACTIVE,
            "current_period_start": datetime(2024, 1, 1, tzinfo=UTC),
            "current_period_end": datetime(2024, 2, 1, tzinfo=UTC),
            "service_period_start": datetime(2024, 1, 1, tzinfo=UTC),
            "service_period_end": datetime(2024, 2, 1, tzinfo=UTC),
            "is_throwaway": False,
        }
        data.update(overrides)
        return Service(**data)

    return _make


@pytest.fixture
def mock_invoices() -> MagicMock:
    invoices = MagicMock(spec=InvoiceCollaborator)
    invoices.has_unpaid_invoices.return_value = False
    return invoices


@pytest.fixture
def mock_initializer() -> MagicMock:
    initializer = MagicMock(spec=ServiceInitializer)
    initializer.init_service.side_effect = fake_init_service
    return initializer


@pytest.fixture
def mock_services() -> MagicMock:
    services = MagicMock(spec=ServiceRepository)
    services.get.return_value = None
    services.get_throwaway.return_value = None
    services.save.side_effect = lambda service: service
    return services


@pytest.fixture
def mock_memberships() -> MagicMock:
    memberships = MagicMock(spec=MembershipRepository)
    memberships.save.side_effect = lambda membership: membership
    return memberships


@pytest.fixture
def mock_schedules() -> MagicMock:
    schedules = MagicMock(spec=ScheduleRepository)
    schedules.list_overrides.return_value = {}
    return schedules


@pytest.fixture
def mock_status_log() -> MagicMock:
    return MagicMock(spec=StatusLog)


@pytest.fixture
def ctx(
    clock,
    membership_settings,
    mock_invoices,
    mock_initializer,
    mock_services,
    mock_memberships,
    mock_schedules,
    mock_status_log,
) -> MembershipContext:
    return MembershipContext(
        invoices=mock_invoices,
        initializer=mock_initializer,
        services=mock_services,
        memberships=mock_memberships,
        schedules=mock_schedules,
        status_log=mock_status_log,
        clock=clock,
        settings=membership_settings,
    )


@pytest.fixture
def manager(ctx) -> MembershipManager:
    return MembershipManager(ctx)


@pytest.fixture
def db_session() -> Iterator[Session]:
    """Session on a fresh in-memory SQLite database."""
    engine = create_engine("sqlite://")
    create_all_tables(engine)
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()
        drop_all_tables(engine)
        engine.dispose()
