"""Pure helpers over a static step list.

Nothing here mutates steps or context; every function is safe to call
from any service.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from onboard.engine.flow_context import FlowContext
from onboard.engine.step_types import UNRESOLVED, UNSET, Step, StepId


def evaluate_step_ref(ref: Any, context: FlowContext) -> Any:
    """Resolve an edge to a step id, ``None`` (end of flow) or ``UNRESOLVED``.

    An absent edge (``UNSET``) resolves to ``UNRESOLVED``.
    """
    if ref is UNSET or ref is UNRESOLVED:
        return UNRESOLVED
    return ref.evaluate(context)


def is_step_id(value: Any) -> bool:
    """True for a concrete step id (not ``None``, ``UNSET`` or ``UNRESOLVED``)."""
    return value is not None and value is not UNSET and value is not UNRESOLVED


def find_step_by_id(steps: Sequence[Step], step_id: Any) -> Step | None:
    if not is_step_id(step_id):
        return None
    for step in steps:
        if step.id == step_id:
            return step
    return None


def index_of(steps: Sequence[Step], step_id: StepId) -> int:
    """Position of ``step_id`` in ``steps``, or -1."""
    for i, step in enumerate(steps):
        if step.id == step_id:
            return i
    return -1


def passes_condition(step: Step, context: FlowContext) -> bool:
    """A step without a condition always passes."""
    return step.condition is None or bool(step.condition(context))


def scan_forward(steps: Sequence[Step], step_id: StepId, context: FlowContext) -> Step | None:
    """First condition-passing step after ``step_id`` in array order."""
    index = index_of(steps, step_id)
    if index == -1:
        return None
    for candidate in steps[index + 1:]:
        if passes_condition(candidate, context):
            return candidate
    return None


def scan_backward(steps: Sequence[Step], step_id: StepId, context: FlowContext) -> Step | None:
    """First condition-passing step before ``step_id`` in array order."""
    index = index_of(steps, step_id)
    for i in range(index - 1, -1, -1):
        if passes_condition(steps[i], context):
            return steps[i]
    return None


def visible_steps(steps: Sequence[Step], context: FlowContext) -> list[Step]:
    return [step for step in steps if passes_condition(step, context)]


__all__ = [
    "evaluate_step_ref",
    "is_step_id",
    "find_step_by_id",
    "index_of",
    "passes_condition",
    "scan_forward",
    "scan_backward",
    "visible_steps",
]
