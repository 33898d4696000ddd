"""
Tests for StepValidator — static analysis of step lists.

Covers:
- Empty flow warning (W001)
- Missing and duplicate ids (E001, E002)
- Payload checks per step type (E003)
- Static cycles and depth limit (E004)
- Broken links and unreachable steps (W002, W003)
"""

from __future__ import annotations

from onboard.engine.step_types import Step, StepType
from onboard.engine.validator import Severity, StepValidator, ValidationDiagnostic


def _codes(result):
    return [d.code for d in result.diagnostics]


# ---------------------------------------------------------------------------
# Basics
# ---------------------------------------------------------------------------

class TestBasics:
    def test_valid_flow(self, linear_steps):
        result = StepValidator().validate(linear_steps)
        assert result.passed
        assert result.diagnostics == []
        assert result.summary() == "PASS"

    def test_empty_flow_warns(self):
        result = StepValidator().validate([])
        assert result.passed
        assert _codes(result) == ["W001"]

    def test_summary_counts(self):
        result = StepValidator().validate([Step("a"), Step("a", next_step="ghost")])
        assert result.summary() == "FAIL | 1 errors | 1 warnings"

    def test_diagnostic_str(self):
        diag = ValidationDiagnostic("E002", Severity.ERROR, "dup", "a")
        assert str(diag) == "[E002] ERROR in step 'a': dup"

    def test_max_depth_from_settings(self, monkeypatch):
        from onboard.core.settings import reset_settings_cache

        monkeypatch.setenv("ONBOARD_MAX_VALIDATION_DEPTH", "12")
        reset_settings_cache()
        assert StepValidator().max_depth == 12


# ---------------------------------------------------------------------------
# Ids and payloads
# ---------------------------------------------------------------------------

class TestIds:
    def test_missing_id(self):
        result = StepValidator().validate([Step(""), Step("b")])
        assert _codes(result) == ["E001"]
        assert result.errors[0].details["index"] == 0

    def test_duplicate_id(self):
        result = StepValidator().validate([Step("a"), Step("b"), Step("a")])
        assert _codes(result) == ["E002"]
        assert result.errors[0].details["indices"] == [0, 2]


class TestPayloads:
    def test_custom_component_needs_key(self):
        step = Step("c", type=StepType.CUSTOM_COMPONENT)
        assert _codes(StepValidator().validate([step])) == ["E003"]

    def test_custom_component_ok(self):
        assert StepValidator().validate([Step.custom("c", "Form")]).passed

    def test_choice_needs_options(self):
        result = StepValidator().validate([
            Step.single_choice("s", options=[]),
            Step("m", type=StepType.MULTIPLE_CHOICE),
        ])
        assert _codes(result) == ["E003", "E003"]

    def test_checklist_needs_data_key(self):
        step = Step("c", type=StepType.CHECKLIST, payload={"items": [{"id": "x"}]})
        assert _codes(StepValidator().validate([step])) == ["E003"]

    def test_checklist_needs_items(self):
        step = Step.checklist("c", items=[], data_key="k")
        result = StepValidator().validate([step])
        assert _codes(result) == ["E003"]
        assert "non-empty 'items'" in result.errors[0].message

    def test_valid_checklist(self, checklist_step):
        assert StepValidator().validate([checklist_step]).passed


# ---------------------------------------------------------------------------
# Cycles
# ---------------------------------------------------------------------------

class TestCycles:
    def test_two_step_cycle_reported_once(self):
        steps = [Step("a", next_step="b"), Step("b", next_step="a")]
        result = StepValidator().validate(steps)
        assert _codes(result) == ["E004"]
        assert result.errors[0].details["cycle"] == ["a", "b", "a"]

    def test_self_loop(self):
        result = StepValidator().validate([Step("a", next_step="a")])
        assert _codes(result) == ["E004"]

    def test_skip_edge_counts_only_when_skippable(self):
        steps = [Step("a", next_step="b"), Step("b", next_step=None, skip_to_step="a")]
        assert StepValidator().validate(steps).passed
        steps = [Step("a", next_step="b"), Step("b", next_step=None, skip_to_step="a", is_skippable=True)]
        assert _codes(StepValidator().validate(steps)) == ["E004"]

    def test_dynamic_edges_are_not_cycles(self):
        steps = [Step("a", next_step=lambda ctx: "b"), Step("b", next_step=lambda ctx: "a")]
        assert StepValidator().validate(steps).passed

    def test_depth_limit(self):
        steps = [Step(f"s{i}", next_step=f"s{i + 1}") for i in range(5)] + [Step("s5")]
        result = StepValidator(max_depth=3).validate(steps)
        assert "E004" in _codes(result)
        assert "depth exceeds 3" in result.errors[0].message


# ---------------------------------------------------------------------------
# Links and reachability
# ---------------------------------------------------------------------------

class TestLinks:
    def test_broken_next_link(self):
        result = StepValidator().validate([Step("a", next_step="ghost"), Step("b")])
        assert result.passed
        assert "W002" in _codes(result)
        w002 = [d for d in result.warnings if d.code == "W002"][0]
        assert w002.details["target_step"] == "ghost"

    def test_broken_skip_link_ignored_when_not_skippable(self):
        result = StepValidator().validate([Step("a", skip_to_step="ghost"), Step("b")])
        assert "W002" not in _codes(result)

    def test_unreachable_step(self):
        steps = [Step("a", next_step="c"), Step("b"), Step("c")]
        result = StepValidator().validate(steps)
        assert _codes(result) == ["W003"]
        assert result.warnings[0].step_id == "b"

    def test_skip_edge_makes_reachable(self):
        steps = [
            Step("a", next_step="c", is_skippable=True, skip_to_step="b"),
            Step("b", next_step=None),
            Step("c"),
        ]
        assert _codes(StepValidator().validate(steps)) == []

    def test_conditions_disable_reachability(self):
        steps = [Step("a", next_step="c"), Step("b", condition=lambda ctx: True), Step("c")]
        assert _codes(StepValidator().validate(steps)) == []
