"""Transition Resolver — direction-aware candidate selection.

Given the current step and the context, decide which step a navigation
request should land on.  Resolution happens in two phases:

1. **Candidate** — follow the step's explicit edge, the history stack or
   array order, depending on the direction.
2. **Conditional skip** — while the candidate's ``condition`` fails, keep
   resolving from the candidate itself.  The walk is bounded by the step
   count; exceeding it raises ``TraversalLimitError``.

Resolution order::

    next      next_step ─► first passing step after, in array order
    previous  previous_step ─► top of history (peeked) ─► array order, backwards
    skip      skip_to_step ─► next_step ─► first passing step after ─► None

Nothing here mutates history; popping is the orchestrator's job.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from onboard.core.logging import get_logger
from onboard.engine.exceptions import TraversalLimitError
from onboard.engine.flow_context import FlowContext
from onboard.engine.step_graph import (
    evaluate_step_ref,
    find_step_by_id,
    passes_condition,
    scan_backward,
    scan_forward,
)
from onboard.engine.step_types import UNRESOLVED, NavigationDirection, Step, StepId

logger = get_logger(__name__)


class TransitionResolver:
    """Computes next / previous / skip targets over a fixed step list."""

    def __init__(self, steps: Sequence[Step]):
        self._steps = list(steps)

    @property
    def steps(self) -> list[Step]:
        return self._steps

    # =========================================================================
    # Raw candidates
    # =========================================================================

    def find_next(self, step: Step, context: FlowContext) -> Any:
        """Next target id, ``None`` for end of flow, or ``UNRESOLVED``."""
        target = evaluate_step_ref(step.next_step, context)
        if target is None:
            return None
        if target is not UNRESOLVED:
            if find_step_by_id(self._steps, target) is None:
                logger.warning("next_step_not_found", step_id=step.id, target=target)
                return UNRESOLVED
            return target

        candidate = scan_forward(self._steps, step.id, context)
        return candidate.id if candidate is not None else UNRESOLVED

    def find_previous(self, step: Step, context: FlowContext, history: Sequence[StepId]) -> Any:
        """Previous target id or ``UNRESOLVED``."""
        target = evaluate_step_ref(step.previous_step, context)
        if target is not UNRESOLVED:
            return target if find_step_by_id(self._steps, target) is not None else UNRESOLVED

        if history:
            top = history[-1]
            return top if find_step_by_id(self._steps, top) is not None else UNRESOLVED

        candidate = scan_backward(self._steps, step.id, context)
        return candidate.id if candidate is not None else UNRESOLVED

    def calculate_skip_target(self, step: Step, context: FlowContext) -> StepId | None:
        """Skip target id, or ``None`` when skipping ends the flow."""
        target = evaluate_step_ref(step.skip_to_step, context)
        if target is UNRESOLVED:
            target = evaluate_step_ref(step.next_step, context)
        if target is UNRESOLVED:
            candidate = scan_forward(self._steps, step.id, context)
            target = candidate.id if candidate is not None else None
        return target

    # =========================================================================
    # Conditional skip
    # =========================================================================

    def skip_unavailable(
        self,
        candidate: Step | None,
        direction: NavigationDirection,
        context: FlowContext,
    ) -> Step | None:
        """Walk past candidates whose condition fails.

        Backward walks ignore history and follow ``previous_step`` or
        array order from the candidate.

        Raises:
            TraversalLimitError: If more hops than steps were needed
        """
        if candidate is None:
            return None

        start_id = candidate.id
        limit = len(self._steps)
        hops = 0
        while candidate is not None and not passes_condition(candidate, context):
            if hops >= limit:
                raise TraversalLimitError(start_id, limit)
            hops += 1
            logger.debug("skipping_conditional_step", step_id=candidate.id, direction=direction.value)
            if direction == NavigationDirection.PREVIOUS:
                target = self.find_previous(candidate, context, ())
            else:
                target = self.find_next(candidate, context)
            candidate = find_step_by_id(self._steps, target)
        return candidate

    # =========================================================================
    # Resolved candidates (for state derivation)
    # =========================================================================

    def next_candidate(self, step: Step, context: FlowContext) -> Step | None:
        candidate = find_step_by_id(self._steps, self.find_next(step, context))
        try:
            return self.skip_unavailable(candidate, NavigationDirection.NEXT, context)
        except TraversalLimitError:
            return None

    def previous_candidate(
        self, step: Step, context: FlowContext, history: Sequence[StepId]
    ) -> Step | None:
        candidate = find_step_by_id(self._steps, self.find_previous(step, context, history))
        try:
            return self.skip_unavailable(candidate, NavigationDirection.PREVIOUS, context)
        except TraversalLimitError:
            return None


__all__ = ["TransitionResolver"]
