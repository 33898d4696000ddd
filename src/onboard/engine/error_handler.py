"""
Error Handler — the single sink for recovered engine errors.

Hooks, listeners and persistence callbacks are caller code; when they
fail, the engine does not raise.  Instead every failure is funnelled
here, which:

1. wraps foreign exceptions into ``OnboardError`` (keeping ``cause``)
2. attaches the operation and step to the error context
3. appends to a bounded history (``EngineSettings.max_error_history``)
4. logs the error with structlog
5. stores it as the engine's current error
6. emits the ``error`` event

Example::

    handler = ErrorHandler(hub, state)
    try:
        await hook(ctx)
    except Exception as e:
        handler.handle_error(HookError("on_step_active", step.id, cause=e), "on_step_active", ctx)

    handler.errors_by_operation("on_step_active")
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from onboard.core.errors import OnboardError, wrap_error
from onboard.core.events import EventHub
from onboard.core.logging import get_logger
from onboard.core.settings import EngineSettings, get_settings
from onboard.engine.events import EngineEvent, ErrorEvent
from onboard.engine.flow_context import FlowContext
from onboard.engine.state import StateStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class ErrorRecord:
    """One entry of the error history."""

    error: OnboardError
    operation: str
    step_id: Any = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.error.to_dict(),
            "operation": self.operation,
            "step_id": self.step_id,
            "timestamp": self.timestamp.isoformat(),
        }


class ErrorHandler:
    """Records, logs and broadcasts errors the engine recovers from."""

    def __init__(
        self,
        hub: EventHub,
        state: StateStore,
        settings: EngineSettings | None = None,
    ):
        self._hub = hub
        self._state = state
        settings = settings or get_settings()
        self._history: deque[ErrorRecord] = deque(maxlen=settings.max_error_history)

    def handle_error(
        self,
        error: BaseException,
        operation: str,
        context: FlowContext,
        step_id: Any = None,
    ) -> OnboardError:
        """Record ``error`` and return it as an ``OnboardError``."""
        wrapped = wrap_error(error)
        if wrapped.context.operation is None:
            wrapped.context.operation = operation
        if step_id is not None and wrapped.context.step_id is None:
            wrapped.context.step_id = step_id

        record = ErrorRecord(error=wrapped, operation=operation, step_id=step_id)
        self._history.append(record)

        logger.error("engine_error", **record.to_dict())

        self._state.set_error(wrapped)
        self._hub.notify(
            EngineEvent.ERROR,
            ErrorEvent(error=wrapped, context=context, operation=operation),
        )
        return wrapped

    # =========================================================================
    # History queries
    # =========================================================================

    def get_error_history(self) -> list[ErrorRecord]:
        return list(self._history)

    def get_recent_errors(self, count: int = 5) -> list[ErrorRecord]:
        if count <= 0:
            return []
        return list(self._history)[-count:]

    def errors_by_operation(self, operation: str) -> list[ErrorRecord]:
        return [record for record in self._history if record.operation == operation]

    def errors_by_step(self, step_id: Any) -> list[ErrorRecord]:
        return [record for record in self._history if record.step_id == step_id]

    def clear_error_history(self) -> None:
        self._history.clear()

    @property
    def has_errors(self) -> bool:
        return bool(self._history)


__all__ = ["ErrorHandler", "ErrorRecord"]
