"""
Membership lifecycle module.

Provides:
- Membership initialization and plan switching
- Service creation with placeholder reuse
- Service status predicates and transitions
- Billing schedule projection with manual overrides

Storage and invoicing are collaborators supplied through ``MembershipContext``.
"""

from subscribe.memberships.context import MembershipContext
from subscribe.memberships.events import MembershipEvents
from subscribe.memberships.exceptions import (
    MembershipConfigurationError,
    MembershipError,
    MembershipStateError,
    ServiceError,
    ServiceInitializationError,
    ServiceStateError,
)
from subscribe.memberships.manager import MembershipManager
from subscribe.memberships.models import (
    Invoice,
    Membership,
    PeriodProjection,
    Plan,
    PlanType,
    ScheduleOverride,
    Service,
    ServiceCreateOptions,
    ServiceCreateResult,
    StatusCode,
    StatusLogEntry,
    SwitchPlanOptions,
)
from subscribe.memberships.schedule import ScheduleProjector, project_schedule
from subscribe.memberships.services import create_for_membership
from subscribe.memberships.status import ServiceStatus, describe_status

__all__ = [
    # Manager
    "MembershipManager",
    "MembershipContext",
    "MembershipEvents",
    "create_for_membership",
    # Schedule
    "ScheduleProjector",
    "project_schedule",
    # Status
    "ServiceStatus",
    "describe_status",
    # Models
    "PlanType",
    "StatusCode",
    "Plan",
    "Invoice",
    "Membership",
    "Service",
    "ScheduleOverride",
    "PeriodProjection",
    "StatusLogEntry",
    "ServiceCreateOptions",
    "SwitchPlanOptions",
    "ServiceCreateResult",
    # Exceptions
    "MembershipError",
    "MembershipConfigurationError",
    "MembershipStateError",
    "ServiceError",
    "ServiceStateError",
    "ServiceInitializationError",
]
