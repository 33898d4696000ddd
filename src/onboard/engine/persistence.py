"""
Persistence Gateway — wraps the caller's load / save / clear callbacks.

The engine owns no storage.  Callers plug in up to three callables, each
sync or async:

=========================  ==================================================
Callback                   Failure handling
=========================  ==================================================
``load_data()``            never raises; returned as ``LoadResult.error``
``persist_data(ctx, id)``  reported through ErrorHandler, then swallowed
``clear_persisted_data()`` raised to the caller as ``ClearError``
=========================  ==================================================

Writes are suppressed while the engine is hydrating, so restoring a
saved flow never re-saves it.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from onboard.core.aio import call_hook
from onboard.core.events import EventHub
from onboard.core.logging import get_logger
from onboard.engine.error_handler import ErrorHandler
from onboard.engine.events import EngineEvent, PersistenceFailedEvent, PersistenceSucceededEvent
from onboard.engine.exceptions import ClearError, LoadError, PersistenceError
from onboard.engine.flow_context import FlowContext
from onboard.engine.step_types import StepId

logger = get_logger(__name__)

LoadDataFn = Callable[[], Any]
PersistDataFn = Callable[[FlowContext, Any], Any]
ClearDataFn = Callable[[], Any]


@dataclass(frozen=True)
class LoadResult:
    """Outcome of ``PersistenceGateway.load``."""

    data: Mapping[str, Any] | None = None
    error: LoadError | None = None


class PersistenceGateway:
    """Calls persistence callbacks and converts their failures."""

    def __init__(
        self,
        hub: EventHub,
        error_handler: ErrorHandler,
        load_data: LoadDataFn | None = None,
        persist_data: PersistDataFn | None = None,
        clear_persisted_data: ClearDataFn | None = None,
    ):
        self._hub = hub
        self._error_handler = error_handler
        self.load_data = load_data
        self.persist_data = persist_data
        self.clear_persisted_data = clear_persisted_data

    async def load(self) -> LoadResult:
        if self.load_data is None:
            return LoadResult()

        try:
            data = await call_hook(self.load_data)
        except Exception as e:
            logger.error("load_data_failed", error=str(e))
            return LoadResult(error=LoadError(f"Failed to load onboarding state: {e}", cause=e))

        logger.debug(
            "load_data_succeeded",
            has_flow_data=bool(data and data.get("flow_data")),
            current_step_id=data.get("current_step_id") if data else None,
        )
        return LoadResult(data=data or None)

    async def persist_if_needed(
        self,
        context: FlowContext,
        step_id: StepId | None,
        is_hydrating: bool,
    ) -> bool:
        """Save the context unless hydrating or unconfigured.

        Returns:
            True if the persist callback ran and succeeded
        """
        if is_hydrating or self.persist_data is None:
            return False

        started = time.perf_counter()
        try:
            await call_hook(self.persist_data, context, step_id)
        except Exception as e:
            error = PersistenceError(f"persist_data failed: {e}", cause=e)
            self._hub.notify(
                EngineEvent.PERSISTENCE_FAILED,
                PersistenceFailedEvent(context=context, step_id=step_id, error=error),
            )
            self._error_handler.handle_error(error, "persist_data", context, step_id)
            return False

        duration_ms = (time.perf_counter() - started) * 1000
        logger.debug("persist_data_succeeded", step_id=step_id, duration_ms=round(duration_ms, 3))
        self._hub.notify(
            EngineEvent.PERSISTENCE_SUCCEEDED,
            PersistenceSucceededEvent(context=context, step_id=step_id, duration_ms=duration_ms),
        )
        return True

    async def clear(self) -> None:
        """Run the clear callback.

        Raises:
            ClearError: If the callback fails
        """
        if self.clear_persisted_data is None:
            logger.debug("clear_data_skipped", reason="no handler configured")
            return

        try:
            await call_hook(self.clear_persisted_data)
        except Exception as e:
            logger.error("clear_data_failed", error=str(e))
            raise ClearError(f"Failed to clear persisted data: {e}", cause=e) from e


__all__ = ["LoadResult", "PersistenceGateway"]
