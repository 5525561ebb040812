"""
Membership database tables.

SQLAlchemy mappings for memberships, services, schedule overrides and the
service status log.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from subscribe.db import Base, TimestampMixin


class MembershipTable(Base, TimestampMixin):
    """SQLAlchemy table for memberships."""

    __tablename__ = "subscribe_memberships"

    membership_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)

    # Trial information
    is_trial_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trial_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    trial_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    active_service_id: Mapped[str | None] = mapped_column(String(50))

    __table_args__ = (Index("ix_subscribe_memberships_user", "user_id"),)


class ServiceTable(Base, TimestampMixin):
    """SQLAlchemy table for services."""

    __tablename__ = "subscribe_services"

    service_id: Mapped[str] = mapped_column(String(50), primary_key=True)
    membership_id: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)

    # Plan snapshot taken when the service was assigned
    plan_id: Mapped[str | None] = mapped_column(String(50))
    plan_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    # Status
    status: Mapped[str | None] = mapped_column(String(20))  # new, trial, active, grace, cancelled, expired
    status_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Periods
    service_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    service_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    current_period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    current_period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Lifecycle timestamps
    delay_activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delay_cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    expired_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    count_renewal: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    grace_days: Mapped[int | None] = mapped_column(Integer)
    is_throwaway: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Pricing override
    price: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))

    # First invoice reference (JSON)
    first_invoice_id: Mapped[str | None] = mapped_column(String(50))
    first_invoice_data: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    __table_args__ = (
        Index("ix_subscribe_services_membership_user", "membership_id", "user_id"),
        Index("ix_subscribe_services_membership_status", "membership_id", "status"),
        Index("ix_subscribe_services_throwaway", "membership_id", "is_throwaway"),
        Index("ix_subscribe_services_period_end", "current_period_end"),
    )


class ScheduleTable(Base, TimestampMixin):
    """SQLAlchemy table for manual billing schedule adjustments."""

    __tablename__ = "subscribe_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    membership_id: Mapped[str] = mapped_column(String(50), nullable=False)
    billing_period: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index(
            "ix_subscribe_schedules_membership_period",
            "membership_id",
            "billing_period",
            unique=True,
        ),
    )


class StatusLogTable(Base):
    """SQLAlchemy table for service status transitions (audit trail)."""

    __tablename__ = "subscribe_status_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_id: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    previous_status: Mapped[str | None] = mapped_column(String(20))
    comment: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_subscribe_status_logs_service_created", "service_id", "created_at"),)


__all__ = [
    "MembershipTable",
    "ServiceTable",
    "ScheduleTable",
    "StatusLogTable",
]
