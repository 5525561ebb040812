"""
Membership lifecycle manager.

Enrolls memberships on plans, hops between plans, and handles cancel/resume
of the resulting services. All collaborators and the clock come from the
``MembershipContext`` the manager is built with.
"""

from datetime import datetime, timedelta

from subscribe.memberships.context import MembershipContext
from subscribe.memberships.events import (
    MembershipEvents,
    emit_membership_event,
    emit_service_event,
)
from subscribe.memberships.exceptions import (
    MembershipConfigurationError,
    ServiceInitializationError,
    ServiceStateError,
)
from subscribe.memberships.models import (
    Membership,
    PeriodProjection,
    Plan,
    Service,
    ServiceCreateOptions,
    StatusCode,
    SwitchPlanOptions,
)
from subscribe.memberships.schedule import ScheduleProjector
from subscribe.memberships.services import create_for_membership
from subscribe.memberships.status import is_active, is_delay_cancelled, transition_status


class MembershipManager:
    """Orchestrates membership enrollment and plan changes."""

    def __init__(self, ctx: MembershipContext) -> None:
        self.ctx = ctx

    def init_membership(
        self,
        membership: Membership,
        plan: Plan | None,
        guest: bool = False,
    ) -> Service:
        """
        Enroll a membership on a plan and prepare its first invoice.

        Args:
            membership: Membership being enrolled
            plan: Plan to enroll on
            guest: Enrollment made without a registered account

        Returns:
            The service now referenced as the membership's active service

        Raises:
            MembershipConfigurationError: If no plan is given
        """
        if plan is None:
            raise MembershipConfigurationError(
                "Membership is missing a plan!", membership_id=membership.membership_id
            )

        now = self.ctx.now()

        if not membership.is_trial_used and plan.has_trial_period():
            self._set_trial_period_from_plan(membership, plan, now)

        result = create_for_membership(self.ctx, membership, plan)
        service = result.service
        invoice = service.first_invoice
        if invoice is None:
            raise ServiceInitializationError(
                "Service was initialised without a first invoice", service_id=service.service_id
            )

        if plan.has_membership_price():
            self.ctx.invoices.raise_membership_fee(
                invoice, membership, plan.get_membership_price()
            )

        # Defer payment collection until the trial ends
        if membership.is_trial_active(now) and membership.trial_period_end is not None:
            self.ctx.invoices.set_due_date(invoice, membership.trial_period_end)

        self.ctx.invoices.mark_draft(invoice)
        self.ctx.invoices.recompute_totals(invoice)

        membership.active_service_id = service.service_id
        self.ctx.memberships.save(membership)

        emit_membership_event(
            MembershipEvents.MEMBERSHIP_INITIALIZED,
            membership,
            service_id=service.service_id,
            plan_id=plan.plan_id,
            invoice_id=invoice.invoice_id,
            guest=guest,
            service_reused=result.reused,
        )
        return service

    def _set_trial_period_from_plan(
        self, membership: Membership, plan: Plan, now: datetime
    ) -> None:
        trial_days = plan.get_trial_period()

        membership.is_trial_used = True
        membership.trial_period_start = now
        membership.trial_period_end = now + timedelta(days=trial_days)

        emit_membership_event(
            MembershipEvents.TRIAL_STARTED,
            membership,
            plan_id=plan.plan_id,
            trial_days=trial_days,
            trial_period_end=membership.trial_period_end.isoformat(),
        )

    # Plan hopping

    def get_active_service(self, membership: Membership) -> Service | None:
        if not membership.active_service_id:
            return None
        return self.ctx.services.get(membership.active_service_id)

    def switch_plan(
        self,
        membership: Membership,
        plan: Plan | None,
        options: SwitchPlanOptions | None = None,
    ) -> Service:
        """
        Raise a service on another plan.

        At term end the new service waits for the old one's service period
        to finish. Otherwise it starts now at the plan's switch price. The
        membership's active service pointer is left untouched and the active
        service itself is never reused as the new placeholder.
        """
        if plan is None:
            raise MembershipConfigurationError(
                "Cannot switch a membership to a missing plan",
                membership_id=membership.membership_id,
            )

        options = options or SwitchPlanOptions()
        delay = None
        price = None

        old_service = self.get_active_service(membership)
        if old_service is not None:
            if options.at_term_end:
                delay = old_service.service_period_end
            else:
                # Upgrade or downgrade pricing
                price = plan.get_switch_price(old_service, self.ctx.now())

        result = create_for_membership(
            self.ctx,
            membership,
            plan,
            ServiceCreateOptions(
                delay=delay,
                price=price,
                replaces_service_id=old_service.service_id if old_service else None,
            ),
        )

        emit_membership_event(
            MembershipEvents.PLAN_SWITCHED,
            membership,
            service_id=result.service.service_id,
            plan_id=plan.plan_id,
            from_service_id=old_service.service_id if old_service else None,
            at_term_end=options.at_term_end,
            delay_activated_at=delay.isoformat() if delay else None,
            price=str(price) if price is not None else None,
        )
        return result.service

    def switch_plan_now(self, membership: Membership, plan: Plan | None) -> Service:
        return self.switch_plan(membership, plan, SwitchPlanOptions(at_term_end=False))

    # Cancellation

    def cancel_service(self, service: Service, at_period_end: bool | None = None) -> Service:
        """
        Cancel a service, at the end of its current period or right away.

        Raises:
            ServiceStateError: If the service is already cancelled
        """
        if service.cancelled_at or service.status == StatusCode.CANCELLED:
            raise ServiceStateError(
                "Service is already cancelled",
                current_state=service.status.value if service.status else None,
                requested_state=StatusCode.CANCELLED.value,
            )

        if at_period_end is None:
            at_period_end = self.ctx.settings.cancel_at_period_end_default

        now = self.ctx.now()
        period_end = service.current_period_end

        if at_period_end and is_active(service) and period_end is not None and period_end > now:
            service.delay_cancelled_at = period_end
            service = self.ctx.services.save(service)
            emit_service_event(
                MembershipEvents.SERVICE_CANCEL_SCHEDULED,
                service,
                delay_cancelled_at=period_end.isoformat(),
            )
            return service

        service.cancelled_at = now
        transition_status(self.ctx, service, StatusCode.CANCELLED, comment="Cancelled by request")
        service = self.ctx.services.save(service)
        emit_service_event(MembershipEvents.SERVICE_CANCELLED, service)
        return service

    def resume_service(self, service: Service) -> bool:
        """Resume a service that is scheduled to be cancelled."""
        if not is_delay_cancelled(service):
            return False

        service.delay_cancelled_at = None
        self.ctx.services.save(service)
        emit_service_event(MembershipEvents.SERVICE_RESUMED, service)
        return True

    def has_unpaid_invoices(self, service: Service) -> bool:
        return self.ctx.invoices.has_unpaid_invoices(service)

    def get_schedule(self, service: Service) -> list[PeriodProjection]:
        return ScheduleProjector(self.ctx).project(service)
