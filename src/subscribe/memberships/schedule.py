"""
Forward billing schedule projection.

Produces the upcoming billing periods of a service with their totals. The
sequence is recomputed from persisted state on every call and is bounded by
a per-plan-type visibility horizon.
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING

import structlog

from subscribe.memberships.models import (
    PeriodProjection,
    PlanType,
    ScheduleOverride,
    Service,
    StatusCode,
)
from subscribe.money import money_handler
from subscribe.settings import MembershipSettings

if TYPE_CHECKING:
    from subscribe.memberships.context import MembershipContext

logger = structlog.get_logger(__name__)


def visible_periods(plan_type: PlanType, day_interval: int, config: MembershipSettings) -> int:
    """Number of periods shown past the first one for a plan type."""
    if plan_type == PlanType.YEARLY:
        return config.yearly_visible_periods
    if plan_type == PlanType.MONTHLY:
        return config.monthly_visible_periods
    if plan_type == PlanType.DAILY:
        if day_interval <= config.daily_interval_threshold:
            return config.daily_visible_periods
        return config.daily_long_visible_periods
    return 0


def first_schedule_period(service: Service) -> int:
    return service.count_renewal + 1 if service.count_renewal else 1


def project_schedule(
    service: Service,
    overrides: Mapping[int, ScheduleOverride],
    config: MembershipSettings,
) -> list[PeriodProjection]:
    """
    Project the upcoming billing periods of a service.

    Args:
        service: Service whose current period seeds the projection
        overrides: Manual adjustments keyed by billing period
        config: Horizon settings

    Returns:
        Projected periods in increasing period order
    """
    plan = service.plan
    if plan is None or plan.plan_type == PlanType.LIFETIME:
        return []

    visible = visible_periods(plan.plan_type, plan.plan_day_interval, config)
    start = first_schedule_period(service)

    current_start = service.current_period_start
    # A grace cycle is unpaid, projection restarts from its beginning
    if service.status == StatusCode.GRACE:
        current_end = service.current_period_start
    else:
        current_end = service.current_period_end

    if current_start is None or current_end is None:
        return []

    schedule: list[PeriodProjection] = []
    for period in range(start, start + visible + 1):
        current_start = current_end
        current_end = plan.get_period_end_date(current_end)

        if current_end is None:
            break

        if service.delay_cancelled_at and current_start >= service.delay_cancelled_at:
            break

        if plan.renewal_period and period > plan.renewal_period:
            break

        adjustment = overrides.get(period)
        if adjustment is not None:
            total = adjustment.price
            comment = adjustment.comment
            adjusted = True
        else:
            total = plan.price
            comment = ""
            adjusted = False

        schedule.append(
            PeriodProjection(
                period=period,
                period_start=current_start,
                period_end=current_end,
                total=money_handler.round_amount(total, plan.currency),
                currency=plan.currency,
                comment=comment,
                adjusted=adjusted,
            )
        )

    return schedule


class ScheduleProjector:
    """Loads stored overrides and projects a service's schedule."""

    def __init__(self, ctx: "MembershipContext") -> None:
        self.ctx = ctx

    def project(self, service: Service) -> list[PeriodProjection]:
        if service.plan is None or service.plan.plan_type == PlanType.LIFETIME:
            return []

        start = first_schedule_period(service)
        overrides = self.ctx.schedules.list_overrides(service.membership_id, from_period=start)
        schedule = project_schedule(service, overrides, self.ctx.settings)

        logger.debug(
            "Projected service schedule",
            service_id=service.service_id,
            first_period=start,
            periods=len(schedule),
            adjusted=sum(1 for entry in schedule if entry.adjusted),
        )
        return schedule
