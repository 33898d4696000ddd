"""Tests for EngineConfig and its helpers."""

from __future__ import annotations

from onboard.engine.config import (
    EngineConfig,
    build_initial_context,
    merge_configs,
    validate_config,
)
from onboard.engine.flow_context import INTERNAL_KEY
from onboard.engine.step_types import Step


class TestEngineConfig:
    def test_resolved_initial_step_defaults_to_first(self, abc_steps):
        assert EngineConfig(steps=abc_steps).resolved_initial_step_id == "A"

    def test_resolved_initial_step_explicit(self, abc_steps):
        assert EngineConfig(steps=abc_steps, initial_step_id="B").resolved_initial_step_id == "B"

    def test_no_steps(self):
        assert EngineConfig().resolved_initial_step_id is None


class TestBuildInitialContext:
    def test_splits_flow_data_and_extra(self):
        config = EngineConfig(initial_context={"flow_data": {"plan": "pro"}, "current_user": {"id": 7}})
        ctx = build_initial_context(config)
        assert ctx.flow_data["plan"] == "pro"
        assert INTERNAL_KEY in ctx.flow_data
        assert ctx.extra == {"current_user": {"id": 7}}

    def test_does_not_alias_config(self):
        seed = {"flow_data": {"items": [1]}}
        ctx = build_initial_context(EngineConfig(initial_context=seed))
        ctx.flow_data["items"].append(2)
        assert seed["flow_data"]["items"] == [1]


class TestMergeConfigs:
    def test_flow_data_merged_one_level(self, abc_steps):
        current = EngineConfig(
            steps=abc_steps,
            initial_context={"flow_data": {"a": 1, "b": 1}, "locale": "en"},
        )
        merged = merge_configs(current, {"initial_context": {"flow_data": {"b": 2}, "theme": "dark"}})
        assert merged.initial_context == {
            "flow_data": {"a": 1, "b": 2},
            "locale": "en",
            "theme": "dark",
        }
        assert merged.steps is abc_steps

    def test_steps_replaced_when_given(self, abc_steps):
        new_steps = [Step("X")]
        merged = merge_configs(EngineConfig(steps=abc_steps), {"steps": new_steps})
        assert merged.steps is new_steps

    def test_callbacks_overridden(self, abc_steps):
        def old_persist(ctx, step_id):
            return None

        def new_persist(ctx, step_id):
            return None

        current = EngineConfig(steps=abc_steps, persist_data=old_persist)
        merged = merge_configs(current, EngineConfig(persist_data=new_persist))
        assert merged.persist_data is new_persist
        assert merged.steps is abc_steps

    def test_empty_update_keeps_everything(self, abc_steps):
        current = EngineConfig(steps=abc_steps, initial_step_id="B")
        merged = merge_configs(current, EngineConfig())
        assert merged.initial_step_id == "B"
        assert merged.steps is abc_steps

    def test_current_not_mutated(self, abc_steps):
        current = EngineConfig(steps=abc_steps, initial_context={"flow_data": {"a": 1}})
        merge_configs(current, {"initial_context": {"flow_data": {"a": 2}}})
        assert current.initial_context == {"flow_data": {"a": 1}}


class TestValidateConfig:
    def test_valid(self, abc_steps):
        outcome = validate_config(EngineConfig(steps=abc_steps))
        assert outcome.is_valid
        assert outcome.step_result.passed

    def test_unknown_initial_step(self, abc_steps):
        outcome = validate_config(EngineConfig(steps=abc_steps, initial_step_id="Z"))
        assert not outcome.is_valid
        assert "Initial step ID Z not found in steps" in outcome.errors

    def test_step_errors_surface(self):
        outcome = validate_config(EngineConfig(steps=[Step("a"), Step("a")]))
        assert not outcome.is_valid
        assert any("Duplicate step ID" in message for message in outcome.errors)

    def test_empty_steps_is_only_a_warning(self):
        outcome = validate_config(EngineConfig())
        assert outcome.is_valid
        assert outcome.warnings == ["No steps defined in the flow"]
