"""Logging and observability configuration using Pydantic Logfire.

All modules use Python's standard logging library (logging.getLogger(__name__)),
and Logfire captures and enriches these logs when a token is configured.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})

Structured logging utilities:
    log_with_context(logger, "info", "Task added", task_id=3, task_type="TASK")
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import Settings, constants


def configure_logfire(settings: Settings) -> None:
    """Configure Pydantic Logfire with the token from settings.

    Nothing is sent unless a token is present, so local runs and tests stay offline.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name=constants.SERVICE_NAME,
        service_version=constants.SERVICE_VERSION,
        environment=settings.environment,
        send_to_logfire="if-token-present",
        console=False,
    )

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire instrumentation to FastAPI application."""
    logfire.instrument_fastapi(app)
    logger = logging.getLogger(__name__)
    logger.info("FastAPI instrumentation configured")


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Create a custom span around a unit of work.

    Usage:
        with span("task_store.save", path=str(path)):
            ...
    """
    return logfire.span(name, **attributes)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Additional context fields (task_id, task_type, operation, etc.)
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
