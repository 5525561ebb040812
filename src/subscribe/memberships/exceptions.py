"""
Membership lifecycle exceptions.

Each error carries a machine-readable code, status code, context and a
recovery hint so callers can surface it without inspecting the message.
"""

from typing import Any


class MembershipError(Exception):
    """
    Base membership error with enhanced context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "MEMBERSHIP_ERROR"
        self.status_code = status_code
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class MembershipConfigurationError(MembershipError):
    """Operation invoked without a required plan or setting."""

    def __init__(self, message: str, membership_id: str | None = None) -> None:
        context = {}
        if membership_id:
            context["membership_id"] = membership_id

        super().__init__(
            message,
            "MEMBERSHIP_CONFIGURATION_ERROR",
            status_code=500,
            context=context,
            recovery_hint="Assign a plan to the membership before initialising it",
        )


class MembershipStateError(MembershipError):
    """Invalid change to a membership's persisted state."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(
            message,
            "INVALID_MEMBERSHIP_STATE",
            status_code=409,
            context={"field": field},
        )


class ServiceError(MembershipError):
    """Service-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message,
            "SERVICE_ERROR",
            status_code=400,
            context=context,
            recovery_hint=recovery_hint,
        )


class ServiceStateError(ServiceError):
    """Invalid service state transition error."""

    def __init__(self, message: str, current_state: str | None, requested_state: str) -> None:
        super().__init__(
            message,
            context={"current_state": current_state, "requested_state": requested_state},
            recovery_hint=f"Cannot transition from {current_state} to {requested_state}. Check service status first.",
        )
        self.error_code = "INVALID_SERVICE_STATE"
        self.status_code = 409


class ServiceInitializationError(ServiceError):
    """The service initializer left the service without a first invoice."""

    def __init__(self, message: str, service_id: str | None = None) -> None:
        super().__init__(
            message,
            context={"service_id": service_id} if service_id else {},
            recovery_hint="Check the service initializer raises a first invoice for new services",
        )
        self.error_code = "SERVICE_INITIALIZATION_ERROR"
        self.status_code = 500
