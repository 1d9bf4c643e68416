"""Logfire setup and structured logging helpers.

Modules log through ``logging.getLogger(__name__)``; Logfire picks the records
up once ``configure_logfire`` has run. Service operations are wrapped in
``span(...)`` so reads, writes and reminder scheduling show up as one trace.

    logger = logging.getLogger(__name__)
    log_task_event(logger, "info", "Created scheduled task", task_id="42", user_id="owner")
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Pydantic Logfire; nothing is sent without a token."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="recurra",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logger.info("Logfire configured for %s", settings.environment)


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the app."""
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span named ``<component>.<operation>``.

    Usage:
        with span("schedule_service.complete_task"):
            ...
    """
    return logfire.span(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Log ``message`` at ``level`` with ``context`` attached as record extras.

    Keys that are None are dropped so optional identifiers do not clutter records.
    """
    extra = {key: value for key, value in context.items() if value is not None}
    getattr(logger, level.lower())(message, extra=extra)


def log_task_event(
    logger: logging.Logger,
    level: str,
    message: str,
    *,
    task_id: str,
    user_id: str | None = None,
    **extra: object,
) -> None:
    """Log a lifecycle event for one scheduled task."""
    log_with_context(logger, level, message, task_id=task_id, user_id=user_id, **extra)
