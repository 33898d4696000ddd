"""
Flow Context - the mutable data bag threaded through an onboarding flow.

One ``FlowContext`` exists per engine instance.  The facade owns it and
passes it by reference into every service call; no service keeps its own
copy.  Hooks, dynamic edges and conditions all read from it.

Layout::

    FlowContext
      ├── flow_data               answers and step data collected so far
      │     └── "_internal"       engine bookkeeping
      │           ├── completed_steps   {str(step_id): epoch ms}
      │           ├── started_at        epoch ms
      │           └── step_start_times  {str(step_id): epoch ms}
      └── extra                   other caller fields (current_user, ...)

``completed_steps`` only grows within one flow lifetime; ``reset()``
discards the whole context.

Example:
    ctx = FlowContext.create({"name": "Ada"}, current_user={"id": 7})
    ctx.mark_step_completed("welcome")
    ctx.is_step_completed("welcome")   # True

Tags:
    onboard, engine, context, shared-state
"""

from __future__ import annotations

import copy
import json
import time
from dataclasses import dataclass, field
from typing import Any

INTERNAL_KEY = "_internal"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class FlowContext:
    """
    Mutable context shared by every step of a flow.

    Attributes:
        flow_data: Collected answers plus ``_internal`` bookkeeping
        extra: Caller-defined top-level fields carried alongside flow data
    """

    flow_data: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def create(cls, flow_data: dict[str, Any] | None = None, **extra: Any) -> FlowContext:
        """Create a context with ``_internal`` bookkeeping initialised."""
        ctx = cls(flow_data=dict(flow_data or {}), extra=dict(extra))
        ctx.ensure_internal()
        return ctx

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlowContext:
        """Rebuild a context from ``to_dict()`` output."""
        data = dict(data)
        flow_data = copy.deepcopy(data.pop("flow_data", None) or {})
        return cls(flow_data=flow_data, extra=copy.deepcopy(data))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary (for persistence)."""
        return {"flow_data": copy.deepcopy(self.flow_data), **copy.deepcopy(self.extra)}

    # =========================================================================
    # Bookkeeping
    # =========================================================================

    def ensure_internal(self) -> dict[str, Any]:
        """Return ``flow_data["_internal"]``, creating missing parts."""
        internal = self.flow_data.get(INTERNAL_KEY)
        if not isinstance(internal, dict):
            internal = {}
            self.flow_data[INTERNAL_KEY] = internal
        internal.setdefault("completed_steps", {})
        internal.setdefault("started_at", now_ms())
        internal.setdefault("step_start_times", {})
        return internal

    @property
    def completed_steps(self) -> dict[str, int]:
        return self.ensure_internal()["completed_steps"]

    @property
    def started_at(self) -> int:
        return self.ensure_internal()["started_at"]

    def mark_step_completed(self, step_id: str | int, at: int | None = None) -> None:
        self.completed_steps[str(step_id)] = at if at is not None else now_ms()

    def is_step_completed(self, step_id: str | int) -> bool:
        return str(step_id) in self.completed_steps

    def record_step_start(self, step_id: str | int, at: int | None = None) -> int:
        """Stamp the activation time of a step and return it."""
        started = at if at is not None else now_ms()
        self.ensure_internal()["step_start_times"][str(step_id)] = started
        return started

    # =========================================================================
    # Comparison helpers
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Read a ``flow_data`` value."""
        return self.flow_data.get(key, default)

    def snapshot(self) -> FlowContext:
        """Deep copy, safe to hand to listeners as the "before" value."""
        return FlowContext(
            flow_data=copy.deepcopy(self.flow_data),
            extra=copy.deepcopy(self.extra),
        )

    def fingerprint(self) -> str:
        """Stable serialized form used to detect real changes."""
        return json.dumps(
            {"flow_data": self.flow_data, "extra": self.extra},
            sort_keys=True,
            default=str,
        )


__all__ = ["FlowContext", "INTERNAL_KEY", "now_ms"]
