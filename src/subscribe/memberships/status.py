"""
Service status engine.

Read-side predicates deriving a service's semantic state from its persisted
timestamps and status code. ``transition_status`` is the one write path: it
changes the code and appends to the status log.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from subscribe.memberships.events import MembershipEvents, emit_service_event
from subscribe.memberships.models import Service, StatusCode, StatusLogEntry

if TYPE_CHECKING:
    from subscribe.memberships.context import MembershipContext

ACTIVE_STATUSES = frozenset({StatusCode.ACTIVE, StatusCode.TRIAL, StatusCode.GRACE})
UNACTIVATED_STATUSES = frozenset({StatusCode.NEW, StatusCode.TRIAL})


def is_active(service: Service) -> bool:
    return service.status in ACTIVE_STATUSES


def is_cancelled(service: Service) -> bool:
    """Check if the service is cancelled or scheduled to be cancelled."""
    if service.delay_cancelled_at:
        return True
    return service.status == StatusCode.CANCELLED


def is_delay_cancelled(service: Service) -> bool:
    """Cancellation is scheduled but the service is still live."""
    return is_cancelled(service) and is_active(service)


def has_grace_period(service: Service) -> bool:
    return bool(service.grace_days)


def has_period_ended(service: Service, now: datetime) -> bool:
    return service.current_period_end is not None and service.current_period_end <= now


def has_service_period_ended(service: Service, now: datetime) -> bool:
    return service.service_period_end is not None and service.service_period_end <= now


def has_schedule(service: Service) -> bool:
    """Check if the service has upcoming billing periods worth showing."""
    return service.plan is not None and service.plan.is_renewable() and is_active(service)


def can_renew(service: Service) -> bool:
    """Check if the service can roll into another billing period."""
    plan = service.plan
    # Does this plan renew
    if plan is None or not plan.is_renewable():
        return False

    if service.service_period_end is None:
        return False

    if service.cancelled_at:
        return False

    # Service must be activated
    if service.status in UNACTIVATED_STATUSES:
        return False

    # Plan has another billing period
    return plan.get_period_end_date(service.service_period_end) is not None


def get_cancel_date(service: Service) -> datetime | None:
    return service.cancelled_at or service.delay_cancelled_at


class ServiceStatus(BaseModel):
    """All status predicates of a service evaluated at one instant."""

    model_config = ConfigDict(frozen=True)

    status: StatusCode | None
    evaluated_at: datetime
    is_active: bool
    is_cancelled: bool
    is_delay_cancelled: bool
    has_grace_period: bool
    has_period_ended: bool
    has_service_period_ended: bool
    can_renew: bool
    cancel_date: datetime | None


def describe_status(service: Service, now: datetime) -> ServiceStatus:
    active = is_active(service)
    cancelled = is_cancelled(service)
    return ServiceStatus(
        status=service.status,
        evaluated_at=now,
        is_active=active,
        is_cancelled=cancelled,
        is_delay_cancelled=cancelled and active,
        has_grace_period=has_grace_period(service),
        has_period_ended=has_period_ended(service, now),
        has_service_period_ended=has_service_period_ended(service, now),
        can_renew=can_renew(service),
        cancel_date=get_cancel_date(service),
    )


def transition_status(
    ctx: "MembershipContext",
    service: Service,
    code: StatusCode,
    comment: str | None = None,
) -> bool:
    """
    Move a service to a new status code and log the transition.

    Returns:
        False when the service already had that status, True otherwise
    """
    previous = service.status
    if previous == code:
        return False

    now = ctx.now()
    service.status = code
    service.status_updated_at = now

    ctx.status_log.append(
        StatusLogEntry(
            service_id=service.service_id,
            status=code,
            previous_status=previous,
            comment=comment,
            created_at=now,
        )
    )

    emit_service_event(
        MembershipEvents.SERVICE_STATUS_CHANGED,
        service,
        previous_status=previous.value if previous else None,
        status=code.value,
    )
    return True
