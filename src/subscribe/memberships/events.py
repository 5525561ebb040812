"""
Membership event types and audit emission helpers.

Lifecycle changes are recorded as structured audit log entries.
"""

from typing import Any

from subscribe.logging import log_audit_event
from subscribe.memberships.models import Membership, Service


class MembershipEvents:
    """Membership event type constants."""

    MEMBERSHIP_INITIALIZED = "membership.initialized"
    TRIAL_STARTED = "membership.trial_started"

    SERVICE_CREATED = "service.created"
    SERVICE_REUSED = "service.reused"
    SERVICE_STATUS_CHANGED = "service.status_changed"
    SERVICE_CANCEL_SCHEDULED = "service.cancel_scheduled"
    SERVICE_CANCELLED = "service.cancelled"
    SERVICE_RESUMED = "service.resumed"

    PLAN_SWITCHED = "plan.switched"


def emit_membership_event(event_type: str, membership: Membership, **extra_data: Any) -> None:
    """Record an event about a membership."""
    log_audit_event(
        event_type,
        category="membership",
        user_id=membership.user_id,
        resource_type="membership",
        resource_id=membership.membership_id,
        **extra_data,
    )


def emit_service_event(event_type: str, service: Service, **extra_data: Any) -> None:
    """Record an event about a service."""
    log_audit_event(
        event_type,
        category="membership",
        user_id=service.user_id,
        resource_type="service",
        resource_id=service.service_id,
        membership_id=service.membership_id,
        plan_id=service.plan.plan_id if service.plan else None,
        **extra_data,
    )
