"""
Engine configuration — what a host passes to ``OnboardingEngine``.

``EngineConfig`` is a plain dataclass: the step list, an optional initial
step id and context, and the optional caller callbacks.  Three helpers
operate on it:

- ``build_initial_context`` turns ``initial_context`` into a live
  ``FlowContext`` with ``_internal`` bookkeeping
- ``merge_configs`` combines the current config with ``reset()`` updates
- ``validate_config`` runs the ``StepValidator`` plus config-level checks

Example::

    config = EngineConfig(
        steps=[Step.information("welcome"), Step.confirmation("done")],
        initial_context={"flow_data": {"plan": "pro"}, "current_user": {"id": 7}},
        persist_data=save_to_local_storage,
    )
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from onboard.engine.flow_context import FlowContext
from onboard.engine.step_types import Step, StepId
from onboard.engine.validator import StepValidator, ValidationResult


@dataclass
class EngineConfig:
    """
    Configuration for one engine instance.

    Attributes:
        steps: Ordered step list; array order is the default navigation order
        initial_step_id: First step (defaults to ``steps[0].id``)
        initial_context: ``{"flow_data": {...}, **extra}`` seed values
        on_flow_complete: ``fn(context)`` run once when the flow ends
        on_step_change: ``fn(new_step, old_step, context)`` after each transition
        load_data: ``fn()`` returning saved ``{"current_step_id", "flow_data", ...}``
        persist_data: ``fn(context, current_step_id)`` saving progress
        clear_persisted_data: ``fn()`` wiping saved progress on reset
    """

    steps: Sequence[Step] = field(default_factory=list)
    initial_step_id: StepId | None = None
    initial_context: Mapping[str, Any] = field(default_factory=dict)

    on_flow_complete: Callable[..., Any] | None = None
    on_step_change: Callable[..., Any] | None = None

    load_data: Callable[..., Any] | None = None
    persist_data: Callable[..., Any] | None = None
    clear_persisted_data: Callable[..., Any] | None = None

    @property
    def resolved_initial_step_id(self) -> StepId | None:
        """``initial_step_id`` or the first step's id."""
        if self.initial_step_id is not None:
            return self.initial_step_id
        return self.steps[0].id if self.steps else None


def build_initial_context(config: EngineConfig) -> FlowContext:
    """Create a fresh context from ``config.initial_context``."""
    seed = copy.deepcopy(dict(config.initial_context or {}))
    flow_data = seed.pop("flow_data", None) or {}
    return FlowContext.create(flow_data, **seed)


def merge_configs(current: EngineConfig, updates: EngineConfig | Mapping[str, Any]) -> EngineConfig:
    """Overlay ``updates`` on ``current``.

    Initial contexts merge key-wise (``flow_data`` one level deeper);
    ``steps`` are replaced only when the update provides them.  Callbacks
    in the update replace the current ones when not None.
    """
    if isinstance(updates, EngineConfig):
        updates = {
            f.name: getattr(updates, f.name)
            for f in dataclasses.fields(updates)
            if getattr(updates, f.name) not in (None, [], {}, ())
        }

    current_ctx = dict(current.initial_context or {})
    update_ctx = dict(updates.get("initial_context") or {})
    merged_ctx = {
        **current_ctx,
        **update_ctx,
        "flow_data": {
            **(current_ctx.get("flow_data") or {}),
            **(update_ctx.get("flow_data") or {}),
        },
    }

    overrides = {
        key: value
        for key, value in updates.items()
        if key not in ("initial_context", "steps") and value is not None
    }
    return dataclasses.replace(
        current,
        **overrides,
        initial_context=merged_ctx,
        steps=updates.get("steps") or current.steps,
    )


@dataclass
class ConfigValidation:
    """Result of ``validate_config``."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    step_result: ValidationResult | None = None

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_config(config: EngineConfig, validator: StepValidator | None = None) -> ConfigValidation:
    """Validate the step list and the initial step id."""
    outcome = ConfigValidation()
    result = (validator or StepValidator()).validate(list(config.steps))
    outcome.step_result = result
    outcome.errors.extend(d.message for d in result.errors)
    outcome.warnings.extend(d.message for d in result.warnings)

    if config.initial_step_id is not None and not any(
        step.id == config.initial_step_id for step in config.steps
    ):
        outcome.errors.append(f"Initial step ID {config.initial_step_id} not found in steps")
    return outcome


__all__ = [
    "EngineConfig",
    "ConfigValidation",
    "build_initial_context",
    "merge_configs",
    "validate_config",
]
