"""
Billing period boundaries.

Calendar-aware: a monthly period anchored on Jan 31 ends on the last day of
February, not 30 days later.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta

from subscribe.memberships.models import PlanType

if TYPE_CHECKING:
    from subscribe.memberships.models import Plan


def period_delta(plan: "Plan") -> relativedelta | None:
    """Length of one billing period, or None for plans without periods."""
    if plan.plan_type == PlanType.YEARLY:
        return relativedelta(years=1)
    if plan.plan_type == PlanType.MONTHLY:
        return relativedelta(months=1)
    if plan.plan_type == PlanType.DAILY:
        return relativedelta(days=max(plan.plan_day_interval, 1))
    return None


def next_period_end(plan: "Plan", anchor: datetime | None) -> datetime | None:
    """
    Compute the end of the billing period that starts at ``anchor``.

    Args:
        plan: Plan providing the period type and day interval
        anchor: Start of the period

    Returns:
        The period end, or None for lifetime plans and missing anchors
    """
    if anchor is None:
        return None

    delta = period_delta(plan)
    if delta is None:
        return None

    return anchor + delta
