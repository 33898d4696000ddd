"""
Shared pytest fixtures for onboard tests.

This module provides:
- Settings cache isolation between tests
- Sample step lists (linear, branching, checklist)
- Service wiring helpers for engine-internal unit tests

Usage:
    Fixtures are auto-discovered by pytest.

    def test_something(linear_steps):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from onboard.core.events import EventHub
from onboard.core.settings import EngineSettings, reset_settings_cache
from onboard.engine.checklist import ChecklistPolicy
from onboard.engine.error_handler import ErrorHandler
from onboard.engine.flow_context import FlowContext
from onboard.engine.state import StateStore
from onboard.engine.step_types import Step
from onboard.engine.transitions import TransitionResolver


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Drop cached settings and ONBOARD_* overrides around every test."""
    for name in (
        "ONBOARD_LOG_LEVEL",
        "ONBOARD_JSON_LOGS",
        "ONBOARD_MAX_ERROR_HISTORY",
        "ONBOARD_MAX_VALIDATION_DEPTH",
        "ONBOARD_VALIDATE_STEPS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


# =============================================================================
# Step lists
# =============================================================================


@pytest.fixture
def linear_steps() -> list[Step]:
    """S1 → S2 → S3 with explicit edges; S3 ends the flow by array order."""
    return [
        Step.information("S1", next_step="S2"),
        Step.information("S2", next_step="S3"),
        Step.information("S3"),
    ]


@pytest.fixture
def abc_steps() -> list[Step]:
    """Three steps navigated purely by array order."""
    return [
        Step.information("A"),
        Step.information("B"),
        Step.information("C"),
    ]


@pytest.fixture
def checklist_step() -> Step:
    """Checklist with mandatory, optional, mandatory items."""
    return Step.checklist(
        "tasks",
        items=[
            {"id": "profile", "label": "Complete profile"},
            {"id": "avatar", "label": "Upload avatar", "is_mandatory": False},
            {"id": "invite", "label": "Invite a teammate"},
        ],
        data_key="task_items",
    )


@pytest.fixture
def context() -> FlowContext:
    return FlowContext.create()


# =============================================================================
# Service wiring
# =============================================================================


@dataclass
class Services:
    hub: EventHub
    resolver: TransitionResolver
    state: StateStore
    errors: ErrorHandler
    checklist: ChecklistPolicy


def build_services(steps: list[Step], initial_step_id=None) -> Services:
    """Wire the leaf services the way the engine facade does."""
    hub = EventHub()
    resolver = TransitionResolver(steps)
    if initial_step_id is None and steps:
        initial_step_id = steps[0].id
    state = StateStore(hub, resolver, initial_step_id)
    errors = ErrorHandler(hub, state, EngineSettings())
    return Services(hub, resolver, state, errors, ChecklistPolicy(hub))


@pytest.fixture
def make_services():
    """Factory fixture: ``make_services(steps, initial_step_id=None)``."""
    return build_services


@pytest.fixture
def services(abc_steps) -> Services:
    return build_services(abc_steps)
