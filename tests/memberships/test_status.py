"""
Tests for the service status engine.

Covers the read-side predicates, the status snapshot and status transitions.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError
from structlog.testing import capture_logs

from subscribe.memberships.events import MembershipEvents
from subscribe.memberships.models import Plan, PlanType, StatusCode, StatusLogEntry
from subscribe.memberships.status import (
    can_renew,
    describe_status,
    get_cancel_date,
    has_grace_period,
    has_period_ended,
    has_schedule,
    has_service_period_ended,
    is_active,
    is_cancelled,
    is_delay_cancelled,
    transition_status,
)

pytestmark = pytest.mark.unit


class TestActivityPredicates:
    """Test is_active / is_cancelled / is_delay_cancelled."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (StatusCode.ACTIVE, True),
            (StatusCode.TRIAL, True),
            (StatusCode.GRACE, True),
            (StatusCode.NEW, False),
            (StatusCode.CANCELLED, False),
            (StatusCode.EXPIRED, False),
            (None, False),
        ],
    )
    def test_is_active(self, make_service, status, expected):
        assert is_active(make_service(status=status)) is expected

    def test_cancelled_status_is_cancelled(self, make_service):
        service = make_service(status=StatusCode.CANCELLED)
        assert is_cancelled(service)
        assert not is_delay_cancelled(service)

    def test_scheduled_cancellation_is_delay_cancelled(self, make_service):
        service = make_service(delay_cancelled_at=datetime(2024, 2, 1, tzinfo=UTC))
        assert is_cancelled(service)
        assert is_delay_cancelled(service)

    def test_plain_active_service_is_not_cancelled(self, make_service):
        service = make_service()
        assert not is_cancelled(service)
        assert not is_delay_cancelled(service)

    @pytest.mark.parametrize("status", list(StatusCode) + [None])
    @pytest.mark.parametrize("scheduled", [True, False])
    def test_delay_cancelled_is_cancelled_and_active(self, make_service, status, scheduled):
        service = make_service(
            status=status,
            delay_cancelled_at=datetime(2024, 2, 1, tzinfo=UTC) if scheduled else None,
        )
        assert is_delay_cancelled(service) == (is_cancelled(service) and is_active(service))


class TestPeriodPredicates:
    """Test period end and grace predicates."""

    def test_period_ended_at_boundary(self, make_service):
        service = make_service()
        assert has_period_ended(service, datetime(2024, 2, 1, tzinfo=UTC))
        assert not has_period_ended(service, datetime(2024, 1, 31, tzinfo=UTC))

    def test_period_without_end_never_ends(self, make_service):
        service = make_service(current_period_start=None, current_period_end=None)
        assert not has_period_ended(service, datetime(2030, 1, 1, tzinfo=UTC))

    def test_service_period_ended(self, make_service):
        service = make_service(service_period_end=datetime(2024, 1, 10, tzinfo=UTC))
        assert has_service_period_ended(service, datetime(2024, 1, 15, tzinfo=UTC))
        assert not has_service_period_ended(service, datetime(2024, 1, 5, tzinfo=UTC))

    def test_grace_period(self, make_service):
        assert has_grace_period(make_service(grace_days=3))
        assert not has_grace_period(make_service(grace_days=0))
        assert not has_grace_period(make_service(grace_days=None))


class TestScheduleAndRenewal:
    """Test has_schedule, can_renew and get_cancel_date."""

    def test_has_schedule_for_active_renewable_service(self, make_service):
        assert has_schedule(make_service())

    def test_lifetime_service_has_no_schedule(self, make_service):
        lifetime = Plan(name="Forever", plan_type=PlanType.LIFETIME, price=Decimal("99"))
        assert not has_schedule(make_service(plan=lifetime))

    def test_inactive_service_has_no_schedule(self, make_service):
        assert not has_schedule(make_service(status=StatusCode.EXPIRED))

    def test_active_service_can_renew(self, make_service):
        assert can_renew(make_service())

    def test_cannot_renew_without_plan(self, make_service):
        assert not can_renew(make_service(plan=None))

    def test_cannot_renew_lifetime(self, make_service):
        lifetime = Plan(name="Forever", plan_type=PlanType.LIFETIME, price=Decimal("99"))
        assert not can_renew(make_service(plan=lifetime))

    def test_cannot_renew_without_service_period(self, make_service):
        assert not can_renew(make_service(service_period_end=None))

    def test_cannot_renew_cancelled(self, make_service):
        service = make_service(
            status=StatusCode.CANCELLED, cancelled_at=datetime(2024, 1, 10, tzinfo=UTC)
        )
        assert not can_renew(service)

    @pytest.mark.parametrize("status", [StatusCode.NEW, StatusCode.TRIAL])
    def test_cannot_renew_before_activation(self, make_service, status):
        assert not can_renew(make_service(status=status))

    def test_cancel_date_prefers_cancelled_at(self, make_service):
        cancelled = datetime(2024, 1, 10, tzinfo=UTC)
        scheduled = datetime(2024, 2, 1, tzinfo=UTC)
        service = make_service(cancelled_at=cancelled, delay_cancelled_at=scheduled)
        assert get_cancel_date(service) == cancelled

    def test_cancel_date_falls_back_to_schedule(self, make_service):
        scheduled = datetime(2024, 2, 1, tzinfo=UTC)
        assert get_cancel_date(make_service(delay_cancelled_at=scheduled)) == scheduled

    def test_no_cancel_date(self, make_service):
        assert get_cancel_date(make_service()) is None


class TestDescribeStatus:
    """Test the status snapshot."""

    def test_snapshot_matches_predicates(self, make_service, clock):
        now = clock.now()
        service = make_service(delay_cancelled_at=datetime(2024, 2, 1, tzinfo=UTC), grace_days=2)

        snapshot = describe_status(service, now)

        assert snapshot.status == StatusCode.ACTIVE
        assert snapshot.evaluated_at == now
        assert snapshot.is_active
        assert snapshot.is_cancelled
        assert snapshot.is_delay_cancelled
        assert snapshot.has_grace_period
        assert not snapshot.has_period_ended
        assert not snapshot.has_service_period_ended
        assert snapshot.can_renew
        assert snapshot.cancel_date == datetime(2024, 2, 1, tzinfo=UTC)

    def test_snapshot_is_frozen(self, make_service, clock):
        snapshot = describe_status(make_service(), clock.now())
        with pytest.raises(ValidationError):
            snapshot.is_active = False


class TestTransitionStatus:
    """Test transition_status."""

    def test_transition_updates_status_and_logs(self, ctx, make_service, mock_status_log):
        service = make_service(status=StatusCode.TRIAL)

        changed = transition_status(ctx, service, StatusCode.ACTIVE, comment="Trial converted")

        assert changed is True
        assert service.status == StatusCode.ACTIVE
        assert service.status_updated_at == ctx.now()
        mock_status_log.append.assert_called_once()
        entry = mock_status_log.append.call_args.args[0]
        assert isinstance(entry, StatusLogEntry)
        assert entry.service_id == service.service_id
        assert entry.status == StatusCode.ACTIVE
        assert entry.previous_status == StatusCode.TRIAL
        assert entry.comment == "Trial converted"
        assert entry.created_at == ctx.now()

    def test_same_status_is_noop(self, ctx, make_service, mock_status_log):
        service = make_service(status=StatusCode.ACTIVE)

        assert transition_status(ctx, service, StatusCode.ACTIVE) is False
        assert service.status_updated_at is None
        mock_status_log.append.assert_not_called()

    def test_transition_emits_audit_event(self, ctx, make_service):
        service = make_service(status=StatusCode.ACTIVE)

        with capture_logs() as logs:
            transition_status(ctx, service, StatusCode.GRACE)

        events = [log for log in logs if log["event"] == MembershipEvents.SERVICE_STATUS_CHANGED]
        assert len(events) == 1
        assert events[0]["previous_status"] == "active"
        assert events[0]["status"] == "grace"
        assert events[0]["audit_resource_id"] == service.service_id

    def test_clock_drives_status_timestamp(self, ctx, make_service, clock):
        service = make_service(status=StatusCode.ACTIVE)
        later = clock.advance(days=3)

        transition_status(ctx, service, StatusCode.EXPIRED)

        assert service.status_updated_at == later
        assert later - timedelta(days=3) == datetime(2024, 1, 15, 12, tzinfo=UTC)
