"""
SQLAlchemy-backed membership storage.

Each repository works inside a caller-supplied ``Session``; committing is the
caller's job (see ``subscribe.db.get_db``). Rows are mapped to and from the
pydantic domain models at this boundary.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from subscribe.clock import Clock, SystemClock
from subscribe.memberships.context import MembershipContext
from subscribe.memberships.exceptions import MembershipStateError
from subscribe.memberships.interfaces import (
    InvoiceCollaborator,
    MembershipRepository,
    ScheduleRepository,
    ServiceInitializer,
    ServiceRepository,
    StatusLog,
)
from subscribe.memberships.models import (
    Invoice,
    Membership,
    Plan,
    ScheduleOverride,
    Service,
    StatusCode,
    StatusLogEntry,
)
from subscribe.memberships.status import ACTIVE_STATUSES
from subscribe.memberships.tables import (
    MembershipTable,
    ScheduleTable,
    ServiceTable,
    StatusLogTable,
)

logger = structlog.get_logger(__name__)

_SERVICE_DATETIME_FIELDS = (
    "status_updated_at",
    "service_period_start",
    "service_period_end",
    "current_period_start",
    "current_period_end",
    "delay_activated_at",
    "delay_cancelled_at",
    "cancelled_at",
    "activated_at",
    "expired_at",
)


def _aware(value: datetime | None) -> datetime | None:
    """Re-attach UTC to datetimes read back from backends that drop the offset."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlMembershipRepository(MembershipRepository):
    """Membership storage on the ``subscribe_memberships`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, membership_id: str) -> Membership | None:
        row = self.session.get(MembershipTable, membership_id)
        if row is None:
            return None
        return self._to_model(row)

    def save(self, membership: Membership) -> Membership:
        row = self.session.get(MembershipTable, membership.membership_id)
        if row is None:
            row = MembershipTable(membership_id=membership.membership_id)
            self.session.add(row)
        elif row.is_trial_used and not membership.is_trial_used:
            raise MembershipStateError(
                "A used trial cannot be marked as unused", field="is_trial_used"
            )

        row.user_id = membership.user_id
        row.is_trial_used = membership.is_trial_used
        row.trial_period_start = membership.trial_period_start
        row.trial_period_end = membership.trial_period_end
        row.active_service_id = membership.active_service_id
        self.session.flush()
        return membership

    @staticmethod
    def _to_model(row: MembershipTable) -> Membership:
        return Membership(
            membership_id=row.membership_id,
            user_id=row.user_id,
            is_trial_used=row.is_trial_used,
            trial_period_start=_aware(row.trial_period_start),
            trial_period_end=_aware(row.trial_period_end),
            active_service_id=row.active_service_id,
        )


class SqlServiceRepository(ServiceRepository):
    """Service storage on the ``subscribe_services`` table.

    The plan is stored as a snapshot alongside the service so later edits to
    the plan catalogue do not rewrite the terms of existing services.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, service_id: str) -> Service | None:
        row = self.session.get(ServiceTable, service_id)
        if row is None:
            return None
        return self._to_model(row)

    def get_throwaway(
        self, membership_id: str, user_id: str, exclude_service_id: str | None = None
    ) -> Service | None:
        stmt = select(ServiceTable).where(
            ServiceTable.membership_id == membership_id,
            ServiceTable.user_id == user_id,
            ServiceTable.is_throwaway.is_(True),
        )
        if exclude_service_id is not None:
            stmt = stmt.where(ServiceTable.service_id != exclude_service_id)
        stmt = stmt.order_by(ServiceTable.created_at).limit(1)
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return self._to_model(row)

    def save(self, service: Service) -> Service:
        row = self.session.get(ServiceTable, service.service_id)
        if row is None:
            row = ServiceTable(service_id=service.service_id)
            self.session.add(row)

        row.membership_id = service.membership_id
        row.user_id = service.user_id
        row.plan_id = service.plan.plan_id if service.plan else None
        row.plan_data = service.plan.model_dump(mode="json") if service.plan else None
        row.status = service.status.value if service.status else None
        for name in _SERVICE_DATETIME_FIELDS:
            setattr(row, name, getattr(service, name))
        row.count_renewal = service.count_renewal
        row.grace_days = service.grace_days
        row.is_throwaway = service.is_throwaway
        row.price = service.price
        invoice = service.first_invoice
        row.first_invoice_id = invoice.invoice_id if invoice else None
        row.first_invoice_data = invoice.model_dump(mode="json") if invoice else None

        self.session.flush()
        logger.debug("Service saved", service_id=service.service_id, status=row.status)
        return service

    def list_for_membership(self, membership_id: str, active_only: bool = False) -> list[Service]:
        stmt = select(ServiceTable).where(ServiceTable.membership_id == membership_id)
        if active_only:
            stmt = stmt.where(ServiceTable.status.in_([code.value for code in ACTIVE_STATUSES]))
        stmt = stmt.order_by(ServiceTable.created_at)
        return [self._to_model(row) for row in self.session.execute(stmt).scalars()]

    @staticmethod
    def _to_model(row: ServiceTable) -> Service:
        data = {name: _aware(getattr(row, name)) for name in _SERVICE_DATETIME_FIELDS}
        first_invoice = None
        if row.first_invoice_data:
            first_invoice = Invoice.model_validate(row.first_invoice_data)
            first_invoice.due_at = _aware(first_invoice.due_at)

        return Service(
            service_id=row.service_id,
            membership_id=row.membership_id,
            user_id=row.user_id,
            plan=Plan.model_validate(row.plan_data) if row.plan_data else None,
            status=StatusCode(row.status) if row.status else None,
            count_renewal=row.count_renewal,
            grace_days=row.grace_days,
            is_throwaway=row.is_throwaway,
            price=row.price,
            first_invoice=first_invoice,
            **data,
        )


class SqlScheduleRepository(ScheduleRepository):
    """Schedule overrides on the ``subscribe_schedules`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_overrides(self, membership_id: str, from_period: int = 1) -> dict[int, ScheduleOverride]:
        stmt = (
            select(ScheduleTable)
            .where(
                ScheduleTable.membership_id == membership_id,
                ScheduleTable.billing_period >= from_period,
            )
            .order_by(ScheduleTable.billing_period)
        )
        return {
            row.billing_period: ScheduleOverride(
                membership_id=row.membership_id,
                billing_period=row.billing_period,
                price=row.price,
                comment=row.comment or "",
            )
            for row in self.session.execute(stmt).scalars()
        }

    def set_override(self, override: ScheduleOverride) -> ScheduleOverride:
        """Create or replace the adjustment for one billing period."""
        stmt = select(ScheduleTable).where(
            ScheduleTable.membership_id == override.membership_id,
            ScheduleTable.billing_period == override.billing_period,
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            row = ScheduleTable(
                membership_id=override.membership_id,
                billing_period=override.billing_period,
            )
            self.session.add(row)

        row.price = override.price
        row.comment = override.comment
        self.session.flush()
        return override


class SqlStatusLog(StatusLog):
    """Status transitions on the ``subscribe_status_logs`` table."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(self, entry: StatusLogEntry) -> None:
        self.session.add(
            StatusLogTable(
                service_id=entry.service_id,
                status=entry.status.value,
                previous_status=entry.previous_status.value if entry.previous_status else None,
                comment=entry.comment,
                created_at=entry.created_at,
            )
        )
        self.session.flush()

    def list_for_service(self, service_id: str) -> list[StatusLogEntry]:
        stmt = (
            select(StatusLogTable)
            .where(StatusLogTable.service_id == service_id)
            .order_by(StatusLogTable.created_at, StatusLogTable.id)
        )
        return [
            StatusLogEntry(
                service_id=row.service_id,
                status=StatusCode(row.status),
                previous_status=StatusCode(row.previous_status) if row.previous_status else None,
                comment=row.comment,
                created_at=_aware(row.created_at),
            )
            for row in self.session.execute(stmt).scalars()
        ]


def build_sql_context(
    session: Session,
    invoices: InvoiceCollaborator,
    initializer: ServiceInitializer,
    clock: Clock | None = None,
) -> MembershipContext:
    """Wire a membership context onto one database session."""
    return MembershipContext(
        invoices=invoices,
        initializer=initializer,
        services=SqlServiceRepository(session),
        memberships=SqlMembershipRepository(session),
        schedules=SqlScheduleRepository(session),
        status_log=SqlStatusLog(session),
        clock=clock or SystemClock(),
    )


__all__ = [
    "build_sql_context",
    "SqlMembershipRepository",
    "SqlServiceRepository",
    "SqlScheduleRepository",
    "SqlStatusLog",
]
