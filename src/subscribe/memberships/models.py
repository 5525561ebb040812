"""
Membership domain models.

Pydantic models for plans, memberships, services and the values produced by
schedule projection. Persistence lives in ``tables``; these models are what
the lifecycle manager, status engine and projector work with.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from subscribe.memberships.exceptions import MembershipStateError
from subscribe.money import format_amount, money_handler


class PlanType(str, Enum):
    """Plan billing cadence."""

    LIFETIME = "lifetime"
    YEARLY = "yearly"
    MONTHLY = "monthly"
    DAILY = "daily"


class StatusCode(str, Enum):
    """Service status codes."""

    NEW = "new"
    TRIAL = "trial"
    ACTIVE = "active"
    GRACE = "grace"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Plan(BaseModel):
    """Billing template a membership enrolls on.

    Only the accessors the lifecycle needs are modelled here; the full plan
    configuration belongs to the enclosing billing system.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    plan_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=1, max_length=255)
    plan_type: PlanType
    plan_day_interval: int = Field(1, ge=1, description="Days per period for daily plans")
    price: Decimal = Field(ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    trial_days: int | None = Field(None, ge=0, le=365)
    renewal_period: int | None = Field(
        None, ge=0, description="Maximum number of billing periods, 0 or None for unlimited"
    )
    membership_price: Decimal | None = Field(None, ge=0, description="One-off setup fee")

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()

    def has_trial_period(self) -> bool:
        return bool(self.trial_days)

    def get_trial_period(self) -> int:
        return self.trial_days or 0

    def has_membership_price(self) -> bool:
        return bool(self.membership_price)

    def get_membership_price(self) -> Decimal:
        return self.membership_price or Decimal("0")

    def is_renewable(self) -> bool:
        return self.plan_type != PlanType.LIFETIME

    def get_period_end_date(self, anchor: datetime | None) -> datetime | None:
        """End of the billing period starting at ``anchor``."""
        from subscribe.memberships.periods import next_period_end

        return next_period_end(self, anchor)

    def get_switch_price(self, old_service: "Service", now: datetime) -> Decimal:
        """Price charged when switching onto this plan immediately.

        The unused share of the old service's current period is credited
        against this plan's price. The result never goes below zero.
        """
        start = old_service.current_period_start
        end = old_service.current_period_end
        if old_service.plan is None or start is None or end is None or end <= now:
            return money_handler.round_amount(self.price, self.currency)

        length = (end - start).total_seconds()
        if length <= 0:
            return money_handler.round_amount(self.price, self.currency)

        remaining = (end - max(now, start)).total_seconds()
        credit = old_service.plan.price * Decimal(str(remaining)) / Decimal(str(length))
        price = max(self.price - credit, Decimal("0"))
        return money_handler.round_amount(price, self.currency)


class Invoice(BaseModel):
    """Reference to an invoice owned by the invoicing system."""

    model_config = ConfigDict(from_attributes=True)

    invoice_id: str
    status: str = "draft"
    due_at: datetime | None = None
    total: Decimal = Decimal("0")


class Membership(BaseModel):
    """Long-lived subscriber record.

    A used trial stays used: assignment and ``model_copy`` refuse to reset
    ``is_trial_used``. Validating fresh data builds a new record and is not
    checked.
    """

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    membership_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    is_trial_used: bool = False
    trial_period_start: datetime | None = None
    trial_period_end: datetime | None = None
    active_service_id: str | None = None

    def _check_trial_flag(self, value: Any) -> None:
        if self.is_trial_used and not value:
            raise MembershipStateError(
                "A used trial cannot be marked as unused", field="is_trial_used"
            )

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "is_trial_used":
            self._check_trial_flag(value)
        super().__setattr__(name, value)

    def model_copy(
        self, *, update: Mapping[str, Any] | None = None, deep: bool = False
    ) -> "Membership":
        if update and "is_trial_used" in update:
            self._check_trial_flag(update["is_trial_used"])
        return super().model_copy(update=update, deep=deep)

    def is_trial_active(self, now: datetime) -> bool:
        if not self.trial_period_end:
            return False
        if self.trial_period_start and now < self.trial_period_start:
            return False
        return now < self.trial_period_end


class Service(BaseModel):
    """One concrete enrollment of a membership on a plan."""

    model_config = ConfigDict(from_attributes=True)

    service_id: str = Field(default_factory=lambda: str(uuid4()))
    membership_id: str
    user_id: str
    plan: Plan | None = None

    status: StatusCode | None = None
    status_updated_at: datetime | None = None

    service_period_start: datetime | None = None
    service_period_end: datetime | None = None
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None

    delay_activated_at: datetime | None = None
    delay_cancelled_at: datetime | None = None
    cancelled_at: datetime | None = None
    activated_at: datetime | None = None
    expired_at: datetime | None = None

    count_renewal: int = Field(0, ge=0)
    grace_days: int | None = Field(None, ge=0)
    is_throwaway: bool = True
    price: Decimal | None = Field(None, ge=0, description="Price override assigned at creation")

    first_invoice: Invoice | None = None

    @model_validator(mode="after")
    def check_current_period(self) -> "Service":
        start, end = self.current_period_start, self.current_period_end
        if start is not None and end is not None and end < start:
            raise ValueError("current_period_end must not precede current_period_start")
        return self


class ScheduleOverride(BaseModel):
    """Manual price/comment adjustment for one billing period."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    membership_id: str
    billing_period: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    comment: str = ""


class PeriodProjection(BaseModel):
    """One projected future billing period."""

    model_config = ConfigDict(frozen=True)

    period: int
    period_start: datetime
    period_end: datetime
    total: Decimal
    currency: str = Field(min_length=3, max_length=3)
    comment: str = ""
    adjusted: bool = False

    def format_total(self, locale: str | None = None) -> str:
        return format_amount(self.total, currency=self.currency, locale=locale)


class StatusLogEntry(BaseModel):
    """Append-only record of a service status transition."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    service_id: str
    status: StatusCode
    previous_status: StatusCode | None = None
    comment: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ServiceCreateOptions(BaseModel):
    """Parameters for creating a service on a plan."""

    model_config = ConfigDict(frozen=True)

    delay: datetime | None = Field(None, description="When the new service takes over")
    price: Decimal | None = Field(None, ge=0, description="Override price for the first period")
    replaces_service_id: str | None = Field(
        None, description="Live service being replaced, never reused as the placeholder"
    )

    @model_validator(mode="after")
    def check_exclusive(self) -> "ServiceCreateOptions":
        if self.delay is not None and self.price is not None:
            raise ValueError("A delayed service cannot also carry a switch price")
        return self


class SwitchPlanOptions(BaseModel):
    """Parameters for switching a membership to another plan."""

    model_config = ConfigDict(frozen=True)

    at_term_end: bool = True


class ServiceCreateResult(BaseModel):
    """Outcome of the create-or-reuse service procedure."""

    service: Service
    created: bool

    @property
    def reused(self) -> bool:
        return not self.created


__all__ = [
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
]
