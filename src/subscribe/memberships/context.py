"""Evaluation context handed to every lifecycle operation."""

from dataclasses import dataclass, field
from datetime import datetime

from subscribe.clock import Clock, SystemClock
from subscribe.memberships.interfaces import (
    InvoiceCollaborator,
    MembershipRepository,
    ScheduleRepository,
    ServiceInitializer,
    ServiceRepository,
    StatusLog,
)
from subscribe.settings import MembershipSettings, get_settings


@dataclass
class MembershipContext:
    """Clock, collaborators and settings for one unit of work.

    Build one per request or command so "now" and the storage session are
    scoped to that evaluation.
    """

    invoices: InvoiceCollaborator
    initializer: ServiceInitializer
    services: ServiceRepository
    memberships: MembershipRepository
    schedules: ScheduleRepository
    status_log: StatusLog
    clock: Clock = field(default_factory=SystemClock)
    settings: MembershipSettings = field(default_factory=lambda: get_settings().memberships)

    def now(self) -> datetime:
        return self.clock.now()
