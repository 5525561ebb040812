"""
structlog configuration for the membership core.

Module loggers are plain ``structlog.get_logger(__name__)``. Lifecycle changes
go through ``log_audit_event`` on the dedicated audit logger.
"""

import logging

import structlog

from subscribe.settings import ObservabilitySettings, settings

AUDIT_LOGGER_NAME = "subscribe.audit"


def build_processors(log_format: str) -> list:
    """Processor chain ending in a JSON or console renderer."""
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def setup_logging(config: ObservabilitySettings | None = None) -> None:
    """Route structlog through stdlib logging at the configured level."""
    config = config or settings.observability
    logging.basicConfig(format="%(message)s", level=config.log_level.value)

    structlog.configure(
        processors=build_processors(config.log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def log_audit_event(
    action: str,
    category: str,
    user_id: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    **kwargs
) -> None:
    """
    Record an audit event as a structured log entry.

    Args:
        action: Event name, see ``MembershipEvents``
        category: Audit category
        user_id: Owner of the affected resource
        resource_type: "membership" or "service"
        resource_id: Identifier of the affected resource
    """
    structlog.get_logger(AUDIT_LOGGER_NAME).info(
        action,
        audit_category=category,
        audit_user_id=user_id,
        audit_resource_type=resource_type,
        audit_resource_id=resource_id,
        **kwargs
    )


setup_logging()
