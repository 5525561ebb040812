"""
Service creation for memberships.

A membership keeps at most one pending placeholder ("throwaway") service per
user. Assigning a plan reuses that placeholder instead of adding another row.
A plan switch never reuses the live service it replaces.
"""

from typing import TYPE_CHECKING

import structlog

from subscribe.memberships.events import MembershipEvents, emit_service_event
from subscribe.memberships.models import (
    Membership,
    Plan,
    Service,
    ServiceCreateOptions,
    ServiceCreateResult,
)

if TYPE_CHECKING:
    from subscribe.memberships.context import MembershipContext

logger = structlog.get_logger(__name__)


def create_for_membership(
    ctx: "MembershipContext",
    membership: Membership,
    plan: Plan,
    options: ServiceCreateOptions | None = None,
) -> ServiceCreateResult:
    """
    Create or reuse the placeholder service of a membership and initialise it.

    Args:
        ctx: Evaluation context
        membership: Membership the service belongs to
        plan: Plan to enroll on
        options: Activation delay or override price

    Returns:
        The initialised service and whether it was newly created
    """
    options = options or ServiceCreateOptions()

    service = ctx.services.get_throwaway(
        membership.membership_id,
        membership.user_id,
        exclude_service_id=options.replaces_service_id,
    )
    created = service is None

    if service is None:
        service = Service(
            membership_id=membership.membership_id,
            user_id=membership.user_id,
            is_throwaway=True,
        )

    service.plan = plan
    service.delay_activated_at = options.delay
    service.price = options.price
    service = ctx.services.save(service)

    service = ctx.initializer.init_service(service, membership, plan, options.price)
    service = ctx.services.save(service)

    logger.info(
        "Service assigned to membership",
        service_id=service.service_id,
        membership_id=membership.membership_id,
        plan_id=plan.plan_id,
        created=created,
    )
    emit_service_event(
        MembershipEvents.SERVICE_CREATED if created else MembershipEvents.SERVICE_REUSED,
        service,
        delay_activated_at=options.delay.isoformat() if options.delay else None,
        price=str(options.price) if options.price is not None else None,
    )

    return ServiceCreateResult(service=service, created=created)
