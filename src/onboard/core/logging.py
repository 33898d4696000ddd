"""
Structured logging for the onboarding engine.

Every engine module logs through ``get_logger(__name__)`` so that hosts
embedding the engine get one consistent, machine-readable stream of
navigation, hook and persistence events.

Architecture:
    ::

        configure_logging(level=None, json_format=None, service="onboard")
            │   (None → ONBOARD_LOG_LEVEL / ONBOARD_JSON_LOGS)
            ▼
        structlog processor chain:
          1. TimeStamper (iso)
          2. filter_by_level
          3. merge_contextvars      (flow / step bound via bind_context)
          4. add_log_level
          5. add_logger_name
          6. _add_service_metadata
          7. JSONRenderer | ConsoleRenderer
            │
            ▼
        stdlib logging → stdout

Usage:
    >>> from onboard.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> log = get_logger(__name__)
    >>> log.debug("step_activated", step_id="welcome")

Guardrails:
    - Auto-detects JSON vs console output from the TTY when not specified
    - Service name stored globally (set once at startup)
    - Log calls never raise into navigation code

Tags:
    logging, structlog, observability, onboard-core
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from onboard.core.settings import get_settings

_SERVICE_NAME = "onboard"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    service: str = "onboard",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the host application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to ONBOARD_LOG_LEVEL
        json_format: True for JSON, False for console; defaults to ONBOARD_JSON_LOGS,
            then auto (JSON if not tty)
        service: Service name included in every record
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    settings = get_settings()
    level = level or settings.log_level
    if json_format is None:
        json_format = settings.json_logs
    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        force=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structlog logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(flow="signup", step_id="welcome")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        async with LogContext(operation="next", step_id="welcome"):
            log.info("transition_started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> "LogContext":
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> "LogContext":
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
