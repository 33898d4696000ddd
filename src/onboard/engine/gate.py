"""Pre-Transition Gate — cancellable, redirectable "before change" chain.

Before any transition the gate awaits every ``step.before_change``
listener in registration order.  Each listener receives an immutable
``BeforeStepChangeEvent`` and answers with a ``StepChangeDecision``:

=============================  =============================================
Return value                   Effect
=============================  =============================================
``None`` / ``proceed()``       no opinion, keep going
``redirect(step_id)``          change the target; the last redirect wins
``cancel()``                   stop the chain; no navigation happens
listener raises                treated as ``cancel()``, error reported
=============================  =============================================

A cancel always wins over redirects, earlier or later.  With no listeners
registered the gate is a pass-through.

Example::

    def guard(event):
        if event.target_step_id == "billing" and not event.context.get("plan"):
            return StepChangeDecision.redirect("choose-plan")
        return None

    engine.on_before_step_change(guard)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from onboard.core.events import EventHub
from onboard.core.logging import get_logger
from onboard.engine.error_handler import ErrorHandler
from onboard.engine.events import EngineEvent
from onboard.engine.exceptions import TransitionCancelledError
from onboard.engine.flow_context import FlowContext
from onboard.engine.step_types import NavigationDirection, Step, StepId

logger = get_logger(__name__)


class DecisionKind(str, Enum):
    CONTINUE = "continue"
    CANCEL = "cancel"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class StepChangeDecision:
    """A before-change listener's verdict."""

    kind: DecisionKind = DecisionKind.CONTINUE
    target_step_id: StepId | None = None

    @classmethod
    def proceed(cls) -> StepChangeDecision:
        return cls(DecisionKind.CONTINUE)

    @classmethod
    def cancel(cls) -> StepChangeDecision:
        return cls(DecisionKind.CANCEL)

    @classmethod
    def redirect(cls, step_id: StepId) -> StepChangeDecision:
        return cls(DecisionKind.REDIRECT, step_id)

    @property
    def is_cancel(self) -> bool:
        return self.kind == DecisionKind.CANCEL


@dataclass(frozen=True)
class BeforeStepChangeEvent:
    """What a before-change listener sees."""

    current_step: Step | None
    target_step_id: StepId | None
    direction: NavigationDirection
    context: FlowContext


@dataclass(frozen=True)
class GateResult:
    cancelled: bool
    final_target_id: Any
    error: TransitionCancelledError | None = None


def _is_cancel(result: Any) -> bool:
    return isinstance(result, StepChangeDecision) and result.is_cancel


class PreTransitionGate:
    """Runs the before-change listener chain for one transition."""

    def __init__(self, hub: EventHub, error_handler: ErrorHandler):
        self._hub = hub
        self._error_handler = error_handler

    async def run(
        self,
        requested_id: Any,
        direction: NavigationDirection,
        current_step: Step | None,
        context: FlowContext,
    ) -> GateResult:
        if self._hub.listener_count(EngineEvent.BEFORE_STEP_CHANGE, exact=True) == 0:
            return GateResult(cancelled=False, final_target_id=requested_id)

        event = BeforeStepChangeEvent(
            current_step=current_step,
            target_step_id=requested_id,
            direction=direction,
            context=context,
        )

        try:
            decisions = await self._hub.notify_sequential(
                EngineEvent.BEFORE_STEP_CHANGE, event, stop_when=_is_cancel, exact=True
            )
        except Exception as e:
            error = TransitionCancelledError(requested_id, direction.value, cause=e)
            self._error_handler.handle_error(
                error,
                "before_step_change",
                context,
                current_step.id if current_step is not None else None,
            )
            return GateResult(cancelled=True, final_target_id=requested_id, error=error)

        final_target = requested_id
        for decision in decisions:
            if decision is None:
                continue
            if not isinstance(decision, StepChangeDecision):
                logger.warning("unexpected_gate_decision", value=repr(decision))
                continue
            if decision.is_cancel:
                logger.debug("transition_cancelled", target=requested_id, direction=direction.value)
                return GateResult(cancelled=True, final_target_id=requested_id)
            if decision.kind == DecisionKind.REDIRECT:
                final_target = decision.target_step_id

        if final_target != requested_id:
            logger.debug("transition_redirected", requested=requested_id, target=final_target)
        return GateResult(cancelled=False, final_target_id=final_target)


__all__ = [
    "DecisionKind",
    "StepChangeDecision",
    "BeforeStepChangeEvent",
    "GateResult",
    "PreTransitionGate",
]
