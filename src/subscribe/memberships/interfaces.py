"""Collaborator interfaces consumed by the membership lifecycle."""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal

from subscribe.memberships.models import (
    Invoice,
    Membership,
    Plan,
    ScheduleOverride,
    Service,
    StatusLogEntry,
)


class InvoiceCollaborator(ABC):
    """Invoicing system operations used while enrolling a membership."""

    @abstractmethod
    def raise_membership_fee(self, invoice: Invoice, membership: Membership, amount: Decimal) -> None:
        """Add the plan's membership (setup) fee to an invoice."""
        pass

    @abstractmethod
    def set_due_date(self, invoice: Invoice, due_at: datetime) -> None:
        """Change when payment for an invoice is collected."""
        pass

    @abstractmethod
    def mark_draft(self, invoice: Invoice) -> None:
        """Move an invoice to draft status."""
        pass

    @abstractmethod
    def recompute_totals(self, invoice: Invoice) -> None:
        """Recalculate invoice totals after line changes."""
        pass

    @abstractmethod
    def has_unpaid_invoices(self, service: Service) -> bool:
        """Check if any invoice raised for a service is still unpaid."""
        pass


class ServiceInitializer(ABC):
    """Sets up periods, price, initial status and the first invoice of a service."""

    @abstractmethod
    def init_service(
        self,
        service: Service,
        membership: Membership,
        plan: Plan,
        price: Decimal | None = None,
    ) -> Service:
        """Bring a freshly assigned service into its initial billed state."""
        pass


class ServiceRepository(ABC):
    """Storage for services."""

    @abstractmethod
    def get(self, service_id: str) -> Service | None:
        pass

    @abstractmethod
    def get_throwaway(
        self, membership_id: str, user_id: str, exclude_service_id: str | None = None
    ) -> Service | None:
        """Find the placeholder service of a membership/user pair.

        ``exclude_service_id`` names a service that must not be returned, such
        as the live service a plan switch replaces.
        """
        pass

    @abstractmethod
    def save(self, service: Service) -> Service:
        pass

    @abstractmethod
    def list_for_membership(self, membership_id: str, active_only: bool = False) -> list[Service]:
        pass


class MembershipRepository(ABC):
    """Storage for memberships."""

    @abstractmethod
    def get(self, membership_id: str) -> Membership | None:
        pass

    @abstractmethod
    def save(self, membership: Membership) -> Membership:
        pass


class ScheduleRepository(ABC):
    """Read access to manual schedule overrides."""

    @abstractmethod
    def list_overrides(self, membership_id: str, from_period: int = 1) -> dict[int, ScheduleOverride]:
        """Overrides for a membership keyed by billing period, from ``from_period`` on."""
        pass


class StatusLog(ABC):
    """Append-only status transition history."""

    @abstractmethod
    def append(self, entry: StatusLogEntry) -> None:
        pass
