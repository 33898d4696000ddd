"""
Onboarding Engine — the public facade.

Manifesto:
    Hosts should drive a flow with a handful of awaitable calls and read
    everything else from one snapshot.  The facade owns the step list,
    the context and the history stack; every service below it receives
    those by reference and keeps no copy of its own.

Architecture:
    ::

        OnboardingEngine
          ├── EventHub            (survives reset; listeners stay attached)
          ├── StateStore          flags + derived EngineState
          ├── ErrorHandler        recovered errors → state + "error" event
          ├── PersistenceGateway  load / persist / clear callbacks
          ├── ChecklistPolicy     checklist item state
          ├── PreTransitionGate   step.before_change chain
          └── FlowOrchestrator    next / previous / skip / go_to_step

Lifecycle:
    Construction validates the config and, if an event loop is running,
    starts hydration in the background.  ``await engine.ready()`` waits
    for hydration (starting it if needed) and never raises.  While
    hydrating, navigation calls are rejected and persistence is muted.

Example::

    engine = OnboardingEngine(EngineConfig(steps=steps, persist_data=save))
    await engine.ready()

    engine.add_step_change_listener(lambda event: print(event.new_step))
    await engine.next({"name": "Ada"})
    state = engine.get_state()
    state.progress_percentage

Tags:
    onboard, engine, facade, asyncio
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from enum import Enum
from typing import Any

from onboard.core.errors import ErrorCategory
from onboard.core.events import EventHub, Listener, Unsubscribe
from onboard.core.logging import get_logger
from onboard.core.settings import EngineSettings, get_settings
from onboard.engine.checklist import ChecklistPolicy, ChecklistProgress
from onboard.engine.config import (
    EngineConfig,
    build_initial_context,
    merge_configs,
    validate_config,
)
from onboard.engine.error_handler import ErrorHandler, ErrorRecord
from onboard.engine.events import EngineEvent
from onboard.engine.exceptions import FlowError, InvalidFlowConfigError, StepNotFoundError
from onboard.engine.flow_context import FlowContext
from onboard.engine.gate import PreTransitionGate
from onboard.engine.orchestrator import FlowOrchestrator
from onboard.engine.persistence import ClearDataFn, LoadDataFn, PersistDataFn, PersistenceGateway
from onboard.engine.state import EngineState, StateStore
from onboard.engine.step_graph import find_step_by_id
from onboard.engine.step_types import NavigationDirection, Step, StepId
from onboard.engine.transitions import TransitionResolver
from onboard.engine.validator import StepValidator

logger = get_logger(__name__)


class OnboardingEngine:
    """Drives one onboarding flow."""

    def __init__(self, config: EngineConfig, settings: EngineSettings | None = None):
        self._settings = settings or get_settings()
        self._check_config(config)

        self.hub = EventHub()
        self._config = config
        self._init_task: asyncio.Task[None] | None = None
        self._build(config)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Started lazily by ready()
            return
        self._init_task = loop.create_task(self._initialize())

    # =========================================================================
    # Setup
    # =========================================================================

    def _check_config(self, config: EngineConfig) -> None:
        if not self._settings.validate_steps:
            return
        validation = validate_config(config, StepValidator(self._settings.max_validation_depth))
        if not validation.is_valid:
            raise InvalidFlowConfigError(validation.errors)
        if validation.warnings:
            logger.warning("config_warnings", warnings=validation.warnings)

    def _build(self, config: EngineConfig) -> None:
        """Create the per-flow services; the hub is kept."""
        self._steps: list[Step] = list(config.steps)
        self._initial_step_id = config.resolved_initial_step_id
        self._context = build_initial_context(config)
        self._history: list[StepId] = []
        self._current: Step | None = None

        resolver = TransitionResolver(self._steps)
        self._state = StateStore(self.hub, resolver, self._initial_step_id)
        self._errors = ErrorHandler(self.hub, self._state, self._settings)
        self._persistence = PersistenceGateway(
            self.hub,
            self._errors,
            load_data=config.load_data,
            persist_data=config.persist_data,
            clear_persisted_data=config.clear_persisted_data,
        )
        self._checklist = ChecklistPolicy(self.hub)
        self._orchestrator = FlowOrchestrator(
            resolver=resolver,
            hub=self.hub,
            state=self._state,
            gate=PreTransitionGate(self.hub, self._errors),
            checklist=self._checklist,
            persistence=self._persistence,
            error_handler=self._errors,
            on_step_change=config.on_step_change,
            on_flow_complete=config.on_flow_complete,
        )

    def _build_context(self, loaded: Mapping[str, Any] | None) -> FlowContext:
        context = build_initial_context(self._config)
        if not loaded:
            return context
        for key, value in loaded.items():
            if key == "current_step_id" or value is None:
                continue
            if key == "flow_data":
                context.flow_data.update(dict(value))
            else:
                context.extra[key] = value
        context.ensure_internal()
        return context

    async def _initialize(self) -> None:
        self._state.set_hydrating(True)
        self._state.set_loading(True)
        self._state.set_error(None)

        try:
            result = await self._persistence.load()
            self._context = self._build_context(result.data)
            await self._navigate_to_initial(result.data)
            if result.error is not None:
                self._errors.handle_error(result.error, "load_data", self._context)
        except Exception as e:
            self._errors.handle_error(e, "initialize", self._context)
        finally:
            self._state.set_hydrating(False)
            self._state.set_loading(False)

        logger.info(
            "engine_initialized",
            current_step=self._current.id if self._current is not None else None,
            has_error=self._state.has_error,
        )
        self._notify_state()

    async def _navigate_to_initial(self, loaded: Mapping[str, Any] | None) -> None:
        if not self._steps:
            logger.info("no_steps_configured")
            self._current = None
            self._state.set_completed(True)
            return

        loaded_id = loaded.get("current_step_id") if loaded else None
        target = loaded_id if loaded_id is not None else self._initial_step_id
        if find_step_by_id(self._steps, target) is None:
            logger.warning("initial_step_not_found", step_id=target, fallback=self._steps[0].id)
            target = self._steps[0].id

        self._current = await self._orchestrator.navigate_to_step(
            target, NavigationDirection.INITIAL, None, self._context, self._history
        )

    async def ready(self) -> None:
        """Wait until hydration has finished, whatever its outcome."""
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        await self._init_task

    def _notify_state(self) -> None:
        self._state.notify_state_change(self._current, self._context, self._history)

    def _rejected(self, operation: str) -> bool:
        if self._state.is_loading:
            logger.debug("navigation_rejected", operation=operation, reason="loading")
            return True
        return False

    # =========================================================================
    # Navigation
    # =========================================================================

    async def next(self, step_data: Mapping[str, Any] | None = None) -> Step | None:
        if self._rejected("next"):
            return self._current
        self._current = await self._orchestrator.next(
            self._current, dict(step_data or {}), self._context, self._history
        )
        self._notify_state()
        return self._current

    async def previous(self) -> Step | None:
        if self._rejected("previous"):
            return self._current
        self._current = await self._orchestrator.previous(
            self._current, self._context, self._history
        )
        self._notify_state()
        return self._current

    async def skip(self) -> Step | None:
        if self._rejected("skip"):
            return self._current
        self._current = await self._orchestrator.skip(self._current, self._context, self._history)
        self._notify_state()
        return self._current

    async def go_to_step(
        self, step_id: StepId, step_data: Mapping[str, Any] | None = None
    ) -> Step | None:
        if self._rejected("go_to_step"):
            return self._current
        self._current = await self._orchestrator.go_to_step(
            step_id, dict(step_data or {}), self._current, self._context, self._history
        )
        self._notify_state()
        return self._current

    # =========================================================================
    # Context and checklist
    # =========================================================================

    async def update_context(self, partial: Mapping[str, Any]) -> None:
        """Merge ``partial`` into the context.

        ``partial["flow_data"]`` is merged key-wise into ``flow_data``;
        any other key replaces the matching ``extra`` field.  An update
        that changes nothing fires no events and does not persist.
        """
        updated = self._context.snapshot()
        for key, value in partial.items():
            if key == "flow_data":
                updated.flow_data.update(dict(value or {}))
            else:
                updated.extra[key] = value

        update = self._state.set_state(
            lambda _state: {"context": updated},
            self._current,
            self._context,
            self._history,
        )
        if update.context_changed:
            await self._persistence.persist_if_needed(
                self._context, self._current_id, self._state.is_hydrating
            )

    async def update_checklist_item(
        self, item_id: str, is_completed: bool, step_id: StepId | None = None
    ) -> None:
        step = find_step_by_id(self._steps, step_id) if step_id is not None else self._current
        if step is None or step.checklist_payload is None:
            error = (
                StepNotFoundError(step_id)
                if step is None and step_id is not None
                else FlowError(
                    "Target step for checklist item update is invalid.",
                    category=ErrorCategory.CHECKLIST,
                )
            )
            self._errors.handle_error(error, "update_checklist_item", self._context, step_id)
            self._notify_state()
            return

        changed = await self._checklist.update_item(
            item_id,
            is_completed,
            step,
            self._context,
            persist=lambda: self._persistence.persist_if_needed(
                self._context, self._current_id, self._state.is_hydrating
            ),
        )
        if changed:
            self._notify_state()

    # =========================================================================
    # Reset
    # =========================================================================

    async def reset(self, new_config: EngineConfig | Mapping[str, Any] | None = None) -> None:
        """Clear persisted data and restart the flow.

        Raises:
            ClearError: If the clear callback fails; the engine is left as is
            InvalidFlowConfigError: If the merged config is invalid
        """
        if self._init_task is not None and not self._init_task.done():
            await self._init_task

        config = merge_configs(self._config, new_config) if new_config else self._config
        self._check_config(config)

        # Uses the handler active before the reset
        await self._persistence.clear()

        self._config = config
        self._build(config)
        logger.info("engine_reset", steps=len(self._steps))
        self._init_task = asyncio.ensure_future(self._initialize())
        await self._init_task

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def _current_id(self) -> StepId | None:
        return self._current.id if self._current is not None else None

    @property
    def current_step(self) -> Step | None:
        return self._current

    @property
    def context(self) -> FlowContext:
        return self._context

    @property
    def history(self) -> tuple[StepId, ...]:
        return tuple(self._history)

    def get_state(self) -> EngineState:
        return self._state.get_state(self._current, self._context, self._history)

    def get_steps(self) -> list[Step]:
        return list(self._steps)

    def get_checklist_progress(self, step_id: StepId | None = None) -> ChecklistProgress | None:
        """Progress of a checklist step (current step by default)."""
        step = find_step_by_id(self._steps, step_id) if step_id is not None else self._current
        if step is None or step.checklist_payload is None:
            return None
        return self._checklist.get_progress(step, self._context)

    def get_error_history(self) -> list[ErrorRecord]:
        return self._errors.get_error_history()

    async def drain(self) -> None:
        """Wait for listener tasks scheduled by the hub."""
        await self.hub.drain()

    # =========================================================================
    # Persistence handlers
    # =========================================================================

    def set_data_load_handler(self, handler: LoadDataFn | None) -> None:
        """Replace the load callback.

        Hydration does not start loading before the caller first awaits, so
        a handler set right after construction is the one ``ready()`` uses.
        ``reset()`` reinstalls the handlers from the config.
        """
        self._persistence.load_data = handler

    def set_data_persist_handler(self, handler: PersistDataFn | None) -> None:
        self._persistence.persist_data = handler

    def set_clear_persisted_data_handler(self, handler: ClearDataFn | None) -> None:
        self._persistence.clear_persisted_data = handler

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def add_event_listener(self, event_type: EngineEvent | str, listener: Listener) -> Unsubscribe:
        """Subscribe to any event name or wildcard pattern."""
        if isinstance(event_type, Enum):
            event_type = event_type.value
        return self.hub.subscribe(event_type, listener)

    def subscribe_to_state_change(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.STATE_CHANGED, listener)

    def on_before_step_change(self, listener: Listener) -> Unsubscribe:
        """Register a gate listener returning a ``StepChangeDecision`` or None."""
        return self.hub.subscribe(EngineEvent.BEFORE_STEP_CHANGE, listener)

    def add_step_change_listener(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.STEP_CHANGED, listener)

    def add_flow_completed_listener(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.FLOW_COMPLETED, listener)

    def add_step_active_listener(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.STEP_ACTIVE, listener)

    def add_step_completed_listener(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.STEP_COMPLETED, listener)

    def add_context_update_listener(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.CONTEXT_UPDATED, listener)

    def add_error_listener(self, listener: Listener) -> Unsubscribe:
        return self.hub.subscribe(EngineEvent.ERROR, listener)

    def get_listener_count(self, event_type: EngineEvent | str) -> int:
        """Listeners that would receive ``event_type``, wildcard subscriptions included."""
        return self.hub.listener_count(event_type)

    def remove_all_listeners(self) -> None:
        """Drop every subscription, before-change listeners included."""
        self.hub.clear()
        logger.debug("listeners_removed")


__all__ = ["OnboardingEngine"]
