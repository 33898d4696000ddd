"""
Onboard - embeddable onboarding flow engine.

Subpackages:
- onboard.core: errors, events, logging, settings
- onboard.engine: step navigation and event orchestration
"""

__version__ = "0.1.0"

from onboard.engine import (  # noqa: E402
    EngineConfig,
    EngineEvent,
    EngineState,
    FlowContext,
    OnboardingEngine,
    Step,
    StepChangeDecision,
    StepType,
)

__all__ = [
    "__version__",
    "OnboardingEngine",
    "EngineConfig",
    "EngineEvent",
    "EngineState",
    "FlowContext",
    "Step",
    "StepChangeDecision",
    "StepType",
]
