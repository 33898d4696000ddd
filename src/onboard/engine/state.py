"""
State Store — lifecycle flags and the derived public snapshot.

The store holds only four mutable flags (``is_loading``, ``is_hydrating``,
``error``, ``is_completed``).  Everything else in ``EngineState`` is
recomputed from the step list, the context and the history on every
``get_state()`` call; nothing derived is ever stored.

Derivation rules:

- ``is_first_step``: current step id equals the configured initial id
- ``is_last_step``: no next candidate, or ``is_completed`` with no step
- ``can_go_next`` / ``can_go_previous`` / ``is_skippable``: always False
  while an error is set
- progress: condition-passing steps whose id is in ``completed_steps``
- ``current_step_number``: 1-based position among condition-passing
  steps, 0 when the current step is absent or hidden

Tags:
    onboard, engine, state, snapshot
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from onboard.core.errors import OnboardError
from onboard.core.events import EventHub
from onboard.engine.checklist import percentage
from onboard.engine.events import ContextUpdateEvent, EngineEvent
from onboard.engine.flow_context import FlowContext
from onboard.engine.step_graph import visible_steps
from onboard.engine.step_types import Step, StepId
from onboard.engine.transitions import TransitionResolver

_FLAGS = ("is_loading", "is_hydrating", "error", "is_completed")


@dataclass(frozen=True)
class EngineState:
    """Read-only snapshot of the engine, recomputed on every read."""

    current_step: Step | None
    context: FlowContext
    is_first_step: bool
    is_last_step: bool
    can_go_next: bool
    can_go_previous: bool
    is_skippable: bool
    is_loading: bool
    is_hydrating: bool
    error: OnboardError | None
    is_completed: bool
    next_step_candidate: Step | None
    previous_step_candidate: Step | None
    total_steps: int
    completed_steps: int
    progress_percentage: int
    current_step_number: int


@dataclass(frozen=True)
class StateUpdate:
    """What ``StateStore.set_state`` changed."""

    state_changed: bool
    context_changed: bool
    old_context: FlowContext | None = None


StateUpdater = Callable[[EngineState], Mapping[str, Any]]


class StateStore:
    """Owns lifecycle flags and derives ``EngineState`` on demand."""

    def __init__(
        self,
        hub: EventHub,
        resolver: TransitionResolver,
        initial_step_id: StepId | None,
    ):
        self._hub = hub
        self._resolver = resolver
        self._initial_step_id = initial_step_id

        self._is_loading = False
        self._is_hydrating = True
        self._error: OnboardError | None = None
        self._is_completed = False

    # =========================================================================
    # Flags
    # =========================================================================

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_hydrating(self) -> bool:
        return self._is_hydrating

    @property
    def error(self) -> OnboardError | None:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    @property
    def is_completed(self) -> bool:
        return self._is_completed

    def set_loading(self, loading: bool) -> None:
        self._is_loading = loading

    def set_hydrating(self, hydrating: bool) -> None:
        self._is_hydrating = hydrating

    def set_error(self, error: OnboardError | None) -> None:
        self._error = error

    def set_completed(self, completed: bool) -> None:
        self._is_completed = completed

    # =========================================================================
    # Derivation
    # =========================================================================

    def get_state(
        self,
        current_step: Step | None,
        context: FlowContext,
        history: Sequence[StepId],
    ) -> EngineState:
        next_candidate: Step | None = None
        previous_candidate: Step | None = None
        if current_step is not None:
            next_candidate = self._resolver.next_candidate(current_step, context)
            previous_candidate = self._resolver.previous_candidate(current_step, context, history)

        is_first = current_step is not None and current_step.id == self._initial_step_id
        has_error = self._error is not None

        relevant = visible_steps(self._resolver.steps, context)
        completed_ids = context.completed_steps
        completed = sum(1 for step in relevant if str(step.id) in completed_ids)

        step_number = 0
        if current_step is not None:
            for position, step in enumerate(relevant, start=1):
                if step.id == current_step.id:
                    step_number = position
                    break

        return EngineState(
            current_step=current_step,
            context=context,
            is_first_step=is_first,
            is_last_step=next_candidate is None if current_step is not None else self._is_completed,
            can_go_next=current_step is not None and next_candidate is not None and not has_error,
            can_go_previous=(
                not is_first
                and current_step is not None
                and previous_candidate is not None
                and not has_error
            ),
            is_skippable=current_step is not None and current_step.is_skippable and not has_error,
            is_loading=self._is_loading,
            is_hydrating=self._is_hydrating,
            error=self._error,
            is_completed=self._is_completed,
            next_step_candidate=next_candidate,
            previous_step_candidate=previous_candidate,
            total_steps=len(relevant),
            completed_steps=completed,
            progress_percentage=percentage(completed, len(relevant)),
            current_step_number=step_number,
        )

    def set_state(
        self,
        updater: StateUpdater,
        current_step: Step | None,
        context: FlowContext,
        history: Sequence[StepId],
    ) -> StateUpdate:
        """Apply flag and context changes returned by ``updater``.

        ``updater`` receives the current snapshot and returns a mapping
        with any of ``is_loading``, ``is_hydrating``, ``error``,
        ``is_completed`` and ``context`` (a ``FlowContext`` whose values
        replace the live context's in place).  A context that serializes
        identically is not a change.
        """
        changes = updater(self.get_state(current_step, context, history))
        state_changed = False
        context_changed = False
        old_context: FlowContext | None = None

        for name in _FLAGS:
            if name in changes and changes[name] is not getattr(self, f"_{name}"):
                setattr(self, f"_{name}", changes[name])
                state_changed = True

        new_context = changes.get("context")
        if new_context is not None and new_context.fingerprint() != context.fingerprint():
            old_context = context.snapshot()
            context.flow_data = new_context.flow_data
            context.extra = new_context.extra
            context_changed = True
            state_changed = True

        if state_changed:
            self.notify_state_change(current_step, context, history)
        if context_changed and not self._is_hydrating:
            self._hub.notify(
                EngineEvent.CONTEXT_UPDATED,
                ContextUpdateEvent(old_context=old_context, new_context=context),
            )
        return StateUpdate(state_changed, context_changed, old_context)

    def notify_state_change(
        self,
        current_step: Step | None,
        context: FlowContext,
        history: Sequence[StepId],
    ) -> None:
        self._hub.notify(EngineEvent.STATE_CHANGED, self.get_state(current_step, context, history))


__all__ = ["EngineState", "StateStore", "StateUpdate", "StateUpdater"]
