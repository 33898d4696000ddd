"""
Onboard Engine — step navigation and event orchestration.

WHY
───
An onboarding flow looks like a list of screens, but the hard part is the
navigation between them: dynamic branches, hidden steps, back navigation
through a history stack, listeners that veto or redirect a transition,
checklists that must be finished, and async hooks that may fail.  This
package is that state machine; rendering and storage stay with the host.

ARCHITECTURE
────────────
::

    OnboardingEngine (facade)
      ├── FlowOrchestrator     ─ gate → resolve → activate/complete → events
      │     ├── PreTransitionGate   ─ step.before_change chain
      │     └── TransitionResolver  ─ next / previous / skip candidates
      ├── ChecklistPolicy      ─ checklist completion and progress
      ├── PersistenceGateway   ─ caller load / persist / clear callbacks
      ├── StateStore           ─ lifecycle flags + derived EngineState
      └── ErrorHandler         ─ recovered errors → state + "error" event

    Step / StepType        ─ immutable step definitions
    FlowContext            ─ mutable flow data + _internal bookkeeping
    EngineConfig           ─ steps, initial context, callbacks
    StepValidator          ─ static checks run at construction

MODULE MAP (recommended reading order)
──────────────────────────────────────
1. exceptions.py       ─ error hierarchy
2. step_types.py       ─ Step dataclass, StepRef, factory methods
3. flow_context.py     ─ FlowContext
4. step_graph.py       ─ pure helpers over the step list
5. transitions.py      ─ TransitionResolver
6. events.py           ─ event names and payloads
7. checklist.py        ─ ChecklistPolicy
8. state.py            ─ StateStore + EngineState
9. error_handler.py    ─ ErrorHandler
10. persistence.py     ─ PersistenceGateway
11. gate.py            ─ PreTransitionGate + StepChangeDecision
12. validator.py       ─ StepValidator
13. config.py          ─ EngineConfig + helpers
14. orchestrator.py    ─ FlowOrchestrator
15. engine.py          ─ OnboardingEngine

Example:
    from onboard.engine import EngineConfig, OnboardingEngine, Step

    engine = OnboardingEngine(EngineConfig(steps=[
        Step.information("welcome"),
        Step.checklist("setup", items=[{"id": "profile"}], data_key="setup"),
        Step.confirmation("done"),
    ]))
    await engine.ready()
    await engine.next()
"""

from onboard.engine.checklist import ChecklistPolicy, ChecklistProgress
from onboard.engine.config import (
    EngineConfig,
    build_initial_context,
    merge_configs,
    validate_config,
)
from onboard.engine.engine import OnboardingEngine
from onboard.engine.error_handler import ErrorHandler, ErrorRecord
from onboard.engine.events import (
    ChecklistItemToggledEvent,
    ChecklistProgressChangedEvent,
    ContextUpdateEvent,
    EngineEvent,
    ErrorEvent,
    FlowCompletedEvent,
    NavigationEvent,
    PersistenceFailedEvent,
    PersistenceSucceededEvent,
    StepActiveEvent,
    StepChangeEvent,
    StepCompletedEvent,
    StepSkippedEvent,
)
from onboard.engine.exceptions import (
    ChecklistIncompleteError,
    ClearError,
    FlowError,
    HookError,
    InvalidFlowConfigError,
    LoadError,
    PersistenceError,
    StepNotFoundError,
    TransitionCancelledError,
    TraversalLimitError,
)
from onboard.engine.flow_context import FlowContext
from onboard.engine.gate import BeforeStepChangeEvent, StepChangeDecision
from onboard.engine.state import EngineState
from onboard.engine.step_types import (
    UNRESOLVED,
    UNSET,
    ChecklistItem,
    ChecklistPayload,
    DynamicRef,
    LiteralRef,
    NavigationDirection,
    Step,
    StepType,
)
from onboard.engine.validator import StepValidator, ValidationResult

__all__ = [
    # Facade
    "OnboardingEngine",
    "EngineConfig",
    "EngineState",
    # Steps
    "Step",
    "StepType",
    "ChecklistItem",
    "ChecklistPayload",
    "LiteralRef",
    "DynamicRef",
    "UNSET",
    "UNRESOLVED",
    "NavigationDirection",
    # Context
    "FlowContext",
    "build_initial_context",
    "merge_configs",
    "validate_config",
    # Gate
    "StepChangeDecision",
    "BeforeStepChangeEvent",
    # Services
    "ChecklistPolicy",
    "ChecklistProgress",
    "ErrorHandler",
    "ErrorRecord",
    "StepValidator",
    "ValidationResult",
    # Events
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
    # Exceptions
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
