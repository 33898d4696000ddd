"""
Engine event names and payload types.

Every event the engine raises has a dotted name (an ``EngineEvent``
member) and a frozen payload dataclass.  Listeners subscribe through the
engine facade or directly on its ``EventHub`` with exact names or
wildcards (``step.*``, ``navigation.*``, ``*``).

Event catalogue::

    state.changed                EngineState
    step.before_change           BeforeStepChangeEvent   (sequential, gate.py)
    step.changed                 StepChangeEvent
    step.active                  StepActiveEvent
    step.completed               StepCompletedEvent
    step.skipped                 StepSkippedEvent
    navigation.back|forward|jump NavigationEvent
    flow.completed               FlowCompletedEvent
    context.updated              ContextUpdateEvent
    checklist.item_toggled       ChecklistItemToggledEvent
    checklist.progress_changed   ChecklistProgressChangedEvent
    persistence.succeeded        PersistenceSucceededEvent
    persistence.failed           PersistenceFailedEvent
    error                        ErrorEvent
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from onboard.core.errors import OnboardError
    from onboard.engine.checklist import ChecklistProgress
    from onboard.engine.flow_context import FlowContext
    from onboard.engine.step_types import Step, StepId


class EngineEvent(str, Enum):
    """Names of every event the engine emits."""

    STATE_CHANGED = "state.changed"
    BEFORE_STEP_CHANGE = "step.before_change"
    STEP_CHANGED = "step.changed"
    STEP_ACTIVE = "step.active"
    STEP_COMPLETED = "step.completed"
    STEP_SKIPPED = "step.skipped"
    NAVIGATION_BACK = "navigation.back"
    NAVIGATION_FORWARD = "navigation.forward"
    NAVIGATION_JUMP = "navigation.jump"
    FLOW_COMPLETED = "flow.completed"
    CONTEXT_UPDATED = "context.updated"
    CHECKLIST_ITEM_TOGGLED = "checklist.item_toggled"
    CHECKLIST_PROGRESS_CHANGED = "checklist.progress_changed"
    PERSISTENCE_SUCCEEDED = "persistence.succeeded"
    PERSISTENCE_FAILED = "persistence.failed"
    ERROR = "error"


# =============================================================================
# Payloads
# =============================================================================


@dataclass(frozen=True)
class StepChangeEvent:
    old_step: Step | None
    new_step: Step | None
    context: FlowContext


@dataclass(frozen=True)
class StepActiveEvent:
    step: Step
    context: FlowContext
    start_time: int


@dataclass(frozen=True)
class StepCompletedEvent:
    step: Step
    step_data: dict[str, Any]
    context: FlowContext


@dataclass(frozen=True)
class StepSkippedEvent:
    step: Step
    context: FlowContext
    skip_reason: str


@dataclass(frozen=True)
class NavigationEvent:
    from_step: Step
    to_step: Step
    context: FlowContext
    direction: str


@dataclass(frozen=True)
class FlowCompletedEvent:
    context: FlowContext
    duration_ms: int


@dataclass(frozen=True)
class ContextUpdateEvent:
    old_context: FlowContext
    new_context: FlowContext


@dataclass(frozen=True)
class ChecklistItemToggledEvent:
    item_id: str
    is_completed: bool
    step: Step
    context: FlowContext


@dataclass(frozen=True)
class ChecklistProgressChangedEvent:
    step: Step
    context: FlowContext
    progress: ChecklistProgress


@dataclass(frozen=True)
class PersistenceSucceededEvent:
    context: FlowContext
    step_id: StepId | None
    duration_ms: float


@dataclass(frozen=True)
class PersistenceFailedEvent:
    context: FlowContext
    step_id: StepId | None
    error: OnboardError


@dataclass(frozen=True)
class ErrorEvent:
    error: OnboardError
    context: FlowContext
    operation: str | None = None


__all__ = [
    "EngineEvent",
    "StepChangeEvent",
    "StepActiveEvent",
    "StepCompletedEvent",
    "StepSkippedEvent",
    "NavigationEvent",
    "FlowCompletedEvent",
    "ContextUpdateEvent",
    "ChecklistItemToggledEvent",
    "ChecklistProgressChangedEvent",
    "PersistenceSucceededEvent",
    "PersistenceFailedEvent",
    "ErrorEvent",
]
