"""Tests for TransitionResolver — candidate selection and conditional skip."""

from __future__ import annotations

import pytest

from onboard.engine.exceptions import TraversalLimitError
from onboard.engine.step_types import UNRESOLVED, NavigationDirection, Step
from onboard.engine.transitions import TransitionResolver


def _hidden(id, **kwargs):
    return Step.information(id, condition=lambda ctx: False, **kwargs)


# ---------------------------------------------------------------------------
# find_next
# ---------------------------------------------------------------------------

class TestFindNext:
    def test_explicit_edge(self, linear_steps, context):
        resolver = TransitionResolver(linear_steps)
        assert resolver.find_next(linear_steps[0], context) == "S2"

    def test_array_order_fallback(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.find_next(abc_steps[0], context) == "B"

    def test_last_step_is_unresolved(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.find_next(abc_steps[2], context) is UNRESOLVED

    def test_explicit_none_ends_flow(self, context):
        steps = [Step("a", next_step=None), Step("b")]
        assert TransitionResolver(steps).find_next(steps[0], context) is None

    def test_unknown_literal_is_unresolved(self, context):
        steps = [Step("a", next_step="ghost"), Step("b")]
        assert TransitionResolver(steps).find_next(steps[0], context) is UNRESOLVED

    def test_dynamic_edge(self, context):
        steps = [
            Step("a", next_step=lambda ctx: "c" if ctx.get("skip_b") else "b"),
            Step("b"),
            Step("c"),
        ]
        resolver = TransitionResolver(steps)
        assert resolver.find_next(steps[0], context) == "b"
        context.flow_data["skip_b"] = True
        assert resolver.find_next(steps[0], context) == "c"

    def test_dynamic_unresolved_falls_through(self, abc_steps, context):
        steps = [Step("A", next_step=lambda ctx: UNRESOLVED), *abc_steps[1:]]
        assert TransitionResolver(steps).find_next(steps[0], context) == "B"

    def test_array_scan_skips_hidden(self, context):
        steps = [Step("a"), _hidden("b"), Step("c")]
        assert TransitionResolver(steps).find_next(steps[0], context) == "c"


# ---------------------------------------------------------------------------
# find_previous
# ---------------------------------------------------------------------------

class TestFindPrevious:
    def test_explicit_edge_wins_over_history(self, abc_steps, context):
        steps = [*abc_steps[:2], Step("C", previous_step="A")]
        resolver = TransitionResolver(steps)
        assert resolver.find_previous(steps[2], context, ["A", "B"]) == "A"

    def test_history_top(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.find_previous(abc_steps[2], context, ["A"]) == "A"

    def test_array_order_when_history_empty(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.find_previous(abc_steps[2], context, []) == "B"

    def test_first_step_has_no_previous(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.find_previous(abc_steps[0], context, []) is UNRESOLVED

    def test_explicit_unknown_is_unresolved(self, context):
        steps = [Step("a"), Step("b", previous_step="ghost")]
        assert TransitionResolver(steps).find_previous(steps[1], context, ["a"]) is UNRESOLVED

    def test_history_is_not_mutated(self, abc_steps, context):
        history = ["A", "B"]
        TransitionResolver(abc_steps).find_previous(abc_steps[2], context, history)
        assert history == ["A", "B"]


# ---------------------------------------------------------------------------
# calculate_skip_target
# ---------------------------------------------------------------------------

class TestSkipTarget:
    def test_skip_to_step_first(self, abc_steps, context):
        steps = [Step("A", skip_to_step="C", next_step="B", is_skippable=True), *abc_steps[1:]]
        assert TransitionResolver(steps).calculate_skip_target(steps[0], context) == "C"

    def test_then_next_step(self, linear_steps, context):
        resolver = TransitionResolver(linear_steps)
        assert resolver.calculate_skip_target(linear_steps[0], context) == "S2"

    def test_then_array_order(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.calculate_skip_target(abc_steps[1], context) == "C"

    def test_last_step_ends_flow(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.calculate_skip_target(abc_steps[2], context) is None


# ---------------------------------------------------------------------------
# Conditional skip
# ---------------------------------------------------------------------------

class TestSkipUnavailable:
    def test_passing_candidate_returned(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.skip_unavailable(abc_steps[1], NavigationDirection.NEXT, context) is abc_steps[1]

    def test_none_candidate(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.skip_unavailable(None, NavigationDirection.NEXT, context) is None

    def test_forward_follows_hidden_steps_edges(self, context):
        steps = [Step("a", next_step="b"), _hidden("b", next_step="d"), Step("c"), Step("d")]
        resolver = TransitionResolver(steps)
        assert resolver.skip_unavailable(steps[1], NavigationDirection.NEXT, context) is steps[3]

    def test_backward_ignores_history(self, context):
        steps = [Step("a"), _hidden("b"), Step("c")]
        resolver = TransitionResolver(steps)
        assert resolver.skip_unavailable(steps[1], NavigationDirection.PREVIOUS, context) is steps[0]

    def test_runs_off_the_end(self, context):
        steps = [Step("a"), _hidden("b")]
        resolver = TransitionResolver(steps)
        assert resolver.skip_unavailable(steps[1], NavigationDirection.NEXT, context) is None

    def test_cycle_of_hidden_steps_hits_limit(self, context):
        steps = [Step("a", next_step="b"), _hidden("b", next_step="c"), _hidden("c", next_step="b")]
        resolver = TransitionResolver(steps)
        with pytest.raises(TraversalLimitError) as exc_info:
            resolver.skip_unavailable(steps[1], NavigationDirection.NEXT, context)
        assert exc_info.value.limit == 3
        assert exc_info.value.start_step_id == "b"


class TestResolvedCandidates:
    def test_next_candidate(self, context):
        steps = [Step("a", next_step="b"), _hidden("b"), Step("c")]
        assert TransitionResolver(steps).next_candidate(steps[0], context) is steps[2]

    def test_next_candidate_swallows_limit(self, context):
        steps = [Step("a", next_step="b"), _hidden("b", next_step="c"), _hidden("c", next_step="b")]
        assert TransitionResolver(steps).next_candidate(steps[0], context) is None

    def test_previous_candidate_uses_history(self, abc_steps, context):
        resolver = TransitionResolver(abc_steps)
        assert resolver.previous_candidate(abc_steps[2], context, ["A"]) is abc_steps[0]
        assert resolver.previous_candidate(abc_steps[0], context, []) is None
