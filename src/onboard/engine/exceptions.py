"""Engine exceptions — structured error hierarchy.

All engine exceptions inherit from ``onboard.core.errors.OnboardError`` so
that callers can catch the entire family with a single ``except`` clause.

Hierarchy::

    OnboardError  (from onboard.core.errors)
      ├── ConfigError
      │     └── InvalidFlowConfigError    ── step list / config failed validation
      └── FlowError                       ── base for all navigation-time errors
            ├── HookError                 ── step hook or caller callback raised
            ├── TransitionCancelledError  ── before-change listener raised
            ├── ChecklistIncompleteError  ── next() on an unfinished checklist
            ├── StepNotFoundError         ── target id not in the step list
            ├── TraversalLimitError       ── conditional-skip traversal ran away
            └── PersistenceError          ── persist callback raised
                  ├── LoadError           ── load callback raised
                  └── ClearError          ── clear callback raised (propagates)

Only ``ClearError`` (from ``reset()``) and ``InvalidFlowConfigError`` (from
construction) ever reach the caller; everything else is recorded on the
engine state and broadcast through the ``error`` event.
"""

from __future__ import annotations

from typing import Any

from onboard.core.errors import ConfigError, ErrorCategory, OnboardError


class FlowError(OnboardError):
    """Base exception for all navigation-time errors."""

    default_category = ErrorCategory.NAVIGATION


class HookError(FlowError):
    """Raised when a step hook or caller callback fails."""

    default_category = ErrorCategory.HOOK

    def __init__(self, hook_name: str, step_id: Any = None, *, cause: BaseException | None = None):
        self.hook_name = hook_name
        self.step_id = step_id
        where = f" for step '{step_id}'" if step_id is not None else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{hook_name} failed{where}{detail}", cause=cause)
        self.with_context(operation=hook_name, step_id=step_id)


class TransitionCancelledError(FlowError):
    """Raised when a before-change listener fails; the transition is cancelled."""

    def __init__(self, target_step_id: Any, direction: str, *, cause: BaseException | None = None):
        self.target_step_id = target_step_id
        self.direction = direction
        super().__init__(
            f"Transition to '{target_step_id}' ({direction}) cancelled by a failing listener",
            cause=cause,
        )


class ChecklistIncompleteError(FlowError):
    """Raised when leaving a checklist step whose completion criteria are not met."""

    default_category = ErrorCategory.CHECKLIST

    def __init__(self, step_id: Any):
        self.step_id = step_id
        super().__init__("Checklist criteria not met.")
        self.with_context(step_id=step_id)


class StepNotFoundError(FlowError):
    """Raised when a step id does not exist in the step list."""

    def __init__(self, step_id: Any):
        self.step_id = step_id
        super().__init__(f"Step not found: {step_id!r}")


class TraversalLimitError(FlowError):
    """Raised when skipping condition-failing steps exceeds the step count."""

    def __init__(self, start_step_id: Any, limit: int):
        self.start_step_id = start_step_id
        self.limit = limit
        super().__init__(
            f"Conditional-skip traversal from '{start_step_id}' exceeded {limit} steps"
        )


class PersistenceError(FlowError):
    """Raised when the persist callback fails."""

    default_category = ErrorCategory.PERSISTENCE


class LoadError(PersistenceError):
    """Raised when the load callback fails during hydration."""


class ClearError(PersistenceError):
    """Raised when the clear callback fails during reset."""


class InvalidFlowConfigError(ConfigError):
    """Raised when the step list or engine config fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Invalid configuration: {', '.join(errors)}")


__all__ = [
    "FlowError",
    "HookError",
    "TransitionCancelledError",
    "ChecklistIncompleteError",
    "StepNotFoundError",
    "TraversalLimitError",
    "PersistenceError",
    "LoadError",
    "ClearError",
    "InvalidFlowConfigError",
]
