"""
Flow Orchestrator — sequences one navigation transition end to end.

Manifesto:
    A transition is a fixed pipeline.  Listeners may veto it, hooks may
    fail, persistence may fail, and the engine must still land in a
    consistent, queryable state every time.  Only the before-change gate
    can abort; everything after it is recovered and reported.

Architecture:
    ::

        next() / previous() / skip() / go_to_step()
                    │
                    ▼
        _transition(requested_id, direction)
          1. loading on, error cleared
          2. PreTransitionGate ── cancelled ─► loading off, stay
          3. resolve target + conditional skip (TransitionResolver)
          4. navigation.back | forward | jump   (old ≠ new)
          5. new step:  stamp start, init checklist, push history,
                        on_step_active, step.active
          6. no step:   completed, on_flow_complete, flow.completed, persist
          7. on_step_change callback
          8. step.changed
          9. loading off

Non-reentrancy is a flag, not a queue: a request arriving while
``is_loading`` is set returns the unchanged current step.

Tags:
    onboard, engine, navigation, orchestration, asyncio
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from onboard.core.aio import call_hook
from onboard.core.events import EventHub
from onboard.core.logging import get_logger
from onboard.engine.checklist import ChecklistPolicy
from onboard.engine.error_handler import ErrorHandler
from onboard.engine.events import (
    EngineEvent,
    FlowCompletedEvent,
    NavigationEvent,
    StepActiveEvent,
    StepChangeEvent,
    StepCompletedEvent,
    StepSkippedEvent,
)
from onboard.engine.exceptions import (
    ChecklistIncompleteError,
    HookError,
    StepNotFoundError,
    TraversalLimitError,
)
from onboard.engine.flow_context import FlowContext, now_ms
from onboard.engine.gate import PreTransitionGate
from onboard.engine.persistence import PersistenceGateway
from onboard.engine.state import StateStore
from onboard.engine.step_graph import evaluate_step_ref, find_step_by_id, is_step_id
from onboard.engine.step_types import UNRESOLVED, UNSET, NavigationDirection, Step, StepId
from onboard.engine.transitions import TransitionResolver

logger = get_logger(__name__)

_DIRECTIONAL_EVENTS = {
    NavigationDirection.PREVIOUS: EngineEvent.NAVIGATION_BACK,
    NavigationDirection.NEXT: EngineEvent.NAVIGATION_FORWARD,
    NavigationDirection.GOTO: EngineEvent.NAVIGATION_JUMP,
}


@dataclass(frozen=True)
class TransitionOutcome:
    """Where a transition ended up.

    ``moved`` is True when a new step became current; ``completed`` when
    the flow ended.  Both False means the engine stayed put.
    """

    step: Step | None
    moved: bool = False
    completed: bool = False
    cancelled: bool = False


class FlowOrchestrator:
    """Runs navigation requests against the facade-owned context and history."""

    def __init__(
        self,
        *,
        resolver: TransitionResolver,
        hub: EventHub,
        state: StateStore,
        gate: PreTransitionGate,
        checklist: ChecklistPolicy,
        persistence: PersistenceGateway,
        error_handler: ErrorHandler,
        on_step_change: Callable[..., Any] | None = None,
        on_flow_complete: Callable[..., Any] | None = None,
    ):
        self._resolver = resolver
        self._hub = hub
        self._state = state
        self._gate = gate
        self._checklist = checklist
        self._persistence = persistence
        self._errors = error_handler
        self.on_step_change = on_step_change
        self.on_flow_complete = on_flow_complete

    # =========================================================================
    # Public operations
    # =========================================================================

    async def navigate_to_step(
        self,
        requested_id: Any,
        direction: NavigationDirection,
        current_step: Step | None,
        context: FlowContext,
        history: list[StepId],
    ) -> Step | None:
        """Run one transition and return the resulting current step."""
        outcome = await self._guarded(
            "navigate_to_step",
            current_step,
            context,
            self._transition(requested_id, direction, current_step, context, history),
        )
        return outcome.step

    async def next(
        self,
        current_step: Step | None,
        step_data: dict[str, Any] | None,
        context: FlowContext,
        history: list[StepId],
    ) -> Step | None:
        if current_step is None or self._state.is_loading:
            return current_step

        step_data = dict(step_data or {})
        payload = current_step.checklist_payload
        if payload is not None:
            if not self._checklist.is_complete(current_step, context):
                logger.warning("checklist_incomplete", step_id=current_step.id)
                self._errors.handle_error(
                    ChecklistIncompleteError(current_step.id), "next", context, current_step.id
                )
                return current_step
            step_data[payload.data_key] = context.flow_data.get(payload.data_key) or []

        outcome = await self._guarded(
            "next", current_step, context, self._advance(current_step, step_data, context, history)
        )
        return outcome.step

    async def previous(
        self,
        current_step: Step | None,
        context: FlowContext,
        history: list[StepId],
    ) -> Step | None:
        if current_step is None or self._state.is_loading:
            return current_step

        target = self._resolver.find_previous(current_step, context, history)
        if not is_step_id(target):
            logger.debug("no_previous_step", step_id=current_step.id)
            return current_step

        # Pop only when the target came from history, not an explicit edge
        pop_history = (
            evaluate_step_ref(current_step.previous_step, context) is UNRESOLVED
            and bool(history)
            and history[-1] == target
        )
        outcome = await self._guarded(
            "previous",
            current_step,
            context,
            self._transition(
                target, NavigationDirection.PREVIOUS, current_step, context, history,
                pop_history=pop_history,
            ),
        )
        await self._persist_after(outcome, context)
        return outcome.step

    async def skip(
        self,
        current_step: Step | None,
        context: FlowContext,
        history: list[StepId],
    ) -> Step | None:
        if current_step is None or not current_step.is_skippable or self._state.is_loading:
            logger.debug(
                "skip_ignored",
                step_id=current_step.id if current_step is not None else None,
                loading=self._state.is_loading,
            )
            return current_step

        reason = "explicit_skip_target" if current_step.skip_to_step is not UNSET else "default_skip"
        self._hub.notify(
            EngineEvent.STEP_SKIPPED,
            StepSkippedEvent(step=current_step, context=context, skip_reason=reason),
        )

        async def run() -> TransitionOutcome:
            target = self._resolver.calculate_skip_target(current_step, context)
            return await self._transition(
                target, NavigationDirection.SKIP, current_step, context, history
            )

        outcome = await self._guarded("skip", current_step, context, run())
        await self._persist_after(outcome, context)
        return outcome.step

    async def go_to_step(
        self,
        step_id: StepId,
        step_data: dict[str, Any] | None,
        current_step: Step | None,
        context: FlowContext,
        history: list[StepId],
    ) -> Step | None:
        if self._state.is_loading:
            logger.debug("go_to_step_ignored", reason="loading", step_id=step_id)
            return current_step

        if step_data:
            context.flow_data.update(step_data)

        outcome = await self._guarded(
            "go_to_step",
            current_step,
            context,
            self._transition(step_id, NavigationDirection.GOTO, current_step, context, history),
        )
        await self._persist_after(outcome, context)
        return outcome.step

    # =========================================================================
    # Internals
    # =========================================================================

    async def _guarded(
        self,
        operation: str,
        current_step: Step | None,
        context: FlowContext,
        work: Any,
    ) -> TransitionOutcome:
        """Await ``work``; report anything it raises and stay on the current step."""
        try:
            return await work
        except Exception as e:
            self._errors.handle_error(
                e, operation, context, current_step.id if current_step is not None else None
            )
            self._state.set_loading(False)
            return TransitionOutcome(step=current_step)

    async def _persist_after(self, outcome: TransitionOutcome, context: FlowContext) -> None:
        if outcome.moved:
            await self._persistence.persist_if_needed(
                context, outcome.step.id, self._state.is_hydrating
            )

    async def _advance(
        self,
        current_step: Step,
        step_data: dict[str, Any],
        context: FlowContext,
        history: list[StepId],
    ) -> TransitionOutcome:
        self._state.set_loading(True)
        self._state.set_error(None)

        if step_data:
            context.flow_data.update(step_data)

        if current_step.on_step_complete is not None:
            try:
                await call_hook(current_step.on_step_complete, dict(step_data), context)
            except Exception as e:
                self._errors.handle_error(
                    HookError("on_step_complete", current_step.id, cause=e),
                    "on_step_complete",
                    context,
                    current_step.id,
                )

        self._hub.notify(
            EngineEvent.STEP_COMPLETED,
            StepCompletedEvent(step=current_step, step_data=dict(step_data), context=context),
        )
        context.mark_step_completed(current_step.id)

        target = self._resolver.find_next(current_step, context)
        outcome = await self._transition(
            target if is_step_id(target) else None,
            NavigationDirection.NEXT,
            current_step,
            context,
            history,
        )
        await self._persist_after(outcome, context)
        return outcome

    async def _transition(
        self,
        requested_id: Any,
        direction: NavigationDirection,
        current_step: Step | None,
        context: FlowContext,
        history: list[StepId],
        *,
        pop_history: bool = False,
    ) -> TransitionOutcome:
        # 1
        self._state.set_loading(True)
        self._state.set_error(None)

        # 2
        gate = await self._gate.run(requested_id, direction, current_step, context)
        if gate.cancelled:
            self._state.set_loading(False)
            return TransitionOutcome(step=current_step, cancelled=True)

        # 3
        target_id = gate.final_target_id
        candidate = find_step_by_id(self._resolver.steps, target_id)
        if candidate is None and is_step_id(target_id):
            return self._stay(
                StepNotFoundError(target_id), direction, current_step, context
            )

        try:
            new_step = self._resolver.skip_unavailable(candidate, direction, context)
        except TraversalLimitError as e:
            return self._stay(e, direction, current_step, context)

        if new_step is None and direction == NavigationDirection.PREVIOUS:
            logger.debug("previous_ran_off_start", step_id=getattr(current_step, "id", None))
            self._state.set_loading(False)
            return TransitionOutcome(step=current_step)

        if pop_history and history:
            history.pop()

        old_step = current_step

        # 4
        event_type = _DIRECTIONAL_EVENTS.get(direction)
        if (
            event_type is not None
            and old_step is not None
            and new_step is not None
            and old_step.id != new_step.id
        ):
            self._hub.notify(
                event_type,
                NavigationEvent(
                    from_step=old_step,
                    to_step=new_step,
                    context=context,
                    direction=direction.value,
                ),
            )

        if new_step is not None:
            await self._activate(new_step, old_step, direction, context, history)
        else:
            await self._complete(old_step, direction, context)

        # 7
        if self.on_step_change is not None:
            try:
                await call_hook(self.on_step_change, new_step, old_step, context)
            except Exception as e:
                self._errors.handle_error(
                    HookError("on_step_change", getattr(new_step, "id", None), cause=e),
                    "on_step_change",
                    context,
                )

        # 8
        self._hub.notify(
            EngineEvent.STEP_CHANGED,
            StepChangeEvent(old_step=old_step, new_step=new_step, context=context),
        )

        # 9
        self._state.set_loading(False)
        logger.debug(
            "step_changed",
            direction=direction.value,
            from_step=getattr(old_step, "id", None),
            to_step=getattr(new_step, "id", None),
        )
        return TransitionOutcome(
            step=new_step,
            moved=new_step is not None,
            completed=new_step is None,
        )

    def _stay(
        self,
        error: Exception,
        direction: NavigationDirection,
        current_step: Step | None,
        context: FlowContext,
    ) -> TransitionOutcome:
        self._errors.handle_error(
            error,
            direction.value,
            context,
            current_step.id if current_step is not None else None,
        )
        self._state.set_loading(False)
        return TransitionOutcome(step=current_step)

    async def _activate(
        self,
        new_step: Step,
        old_step: Step | None,
        direction: NavigationDirection,
        context: FlowContext,
        history: list[StepId],
    ) -> None:
        # 5
        start_time = context.record_step_start(new_step.id)
        self._state.set_completed(False)

        if new_step.checklist_payload is not None:
            self._checklist.get_items_state(new_step, context)

        if (
            direction != NavigationDirection.PREVIOUS
            and old_step is not None
            and old_step.id != new_step.id
            and (not history or history[-1] != old_step.id)
        ):
            history.append(old_step.id)

        if new_step.on_step_active is not None:
            try:
                await call_hook(new_step.on_step_active, context)
            except Exception as e:
                self._errors.handle_error(
                    HookError("on_step_active", new_step.id, cause=e),
                    "on_step_active",
                    context,
                    new_step.id,
                )

        self._hub.notify(
            EngineEvent.STEP_ACTIVE,
            StepActiveEvent(step=new_step, context=context, start_time=start_time),
        )

    async def _complete(
        self,
        old_step: Step | None,
        direction: NavigationDirection,
        context: FlowContext,
    ) -> None:
        # 6
        self._state.set_completed(True)
        started_at = context.started_at
        duration_ms = max(now_ms() - started_at, 0) if started_at and started_at > 0 else 0

        # A departed step whose next edge still names a step ended here only
        # because that target was filtered out; it does not count as finishing
        departed_by_edge = old_step is not None and is_step_id(
            evaluate_step_ref(old_step.next_step, context)
        )
        if (
            self.on_flow_complete is not None
            and direction != NavigationDirection.INITIAL
            and not departed_by_edge
        ):
            try:
                await call_hook(self.on_flow_complete, context)
            except Exception as e:
                self._errors.handle_error(
                    HookError("on_flow_complete", cause=e), "on_flow_complete", context
                )

        self._hub.notify(
            EngineEvent.FLOW_COMPLETED,
            FlowCompletedEvent(context=context, duration_ms=duration_ms),
        )
        logger.info("flow_completed", duration_ms=duration_ms)
        await self._persistence.persist_if_needed(context, None, self._state.is_hydrating)


__all__ = ["FlowOrchestrator", "TransitionOutcome"]
