"""Tests for the trip phase graph."""

import pytest
from django.core.checks import run_checks

from django_tripops import phases
from django_tripops.checks import check_phase_graph
from django_tripops.phases import (
    INITIAL_PHASE,
    PHASE_ORDER,
    PHASE_TRANSITIONS,
    TERMINAL_PHASES,
    Phase,
    check_transition,
    get_allowed_transitions,
    validate_phase_graph,
)


class TestPhaseGraph:
    def test_builtin_graph_is_valid(self):
        errors = validate_phase_graph(PHASE_ORDER, PHASE_TRANSITIONS, INITIAL_PHASE, TERMINAL_PHASES)

        assert errors == []

    def test_each_phase_has_one_successor(self):
        assert get_allowed_transitions(Phase.PRE_TRIP) == [Phase.BEFORE_DEPARTURE]
        assert get_allowed_transitions(Phase.BEFORE_DEPARTURE) == [Phase.DURING_TRIP]
        assert get_allowed_transitions(Phase.DURING_TRIP) == [Phase.POST_TRIP]

    def test_terminal_phase_has_no_transitions(self):
        assert get_allowed_transitions(Phase.POST_TRIP) == []

    def test_backward_transition_rejected_by_validation(self):
        errors = validate_phase_graph(
            ["a", "b", "c"],
            {"a": ["b"], "b": ["c"], "c": ["a"]},
            "a",
            [],
        )

        assert "transition 'c' -> 'a' is not forward" in errors

    def test_skipping_transition_rejected_by_validation(self):
        errors = validate_phase_graph(["a", "b", "c"], {"a": ["b", "c"], "b": ["c"]}, "a", ["c"])

        assert errors == ["transition 'a' -> 'c' skips a phase"]

    def test_unreachable_phase(self):
        errors = validate_phase_graph(["a", "b", "c"], {"a": ["b"]}, "a", ["c"])

        assert "phase 'c' unreachable from initial_phase" in errors

    def test_terminal_with_outgoing(self):
        errors = validate_phase_graph(["a", "b"], {"a": ["b"], "b": ["a"]}, "a", ["b"])

        assert "terminal phase 'b' has outgoing transitions" in errors

    def test_unknown_phases(self):
        errors = validate_phase_graph(["a"], {"x": ["a"]}, "z", ["y"])

        assert "initial_phase 'z' not in phases" in errors
        assert "terminal_phase 'y' not in phases" in errors
        assert "transition from unknown phase 'x'" in errors



class TestPhaseGraphSystemCheck:
    def test_registered_and_passing(self):
        messages = run_checks()

        assert not [m for m in messages if m.id == "django_tripops.E001"]
        assert check_phase_graph() == []

    def test_broken_graph_fails_startup(self, monkeypatch):
        monkeypatch.setattr(
            phases,
            "PHASE_TRANSITIONS",
            {**PHASE_TRANSITIONS, Phase.POST_TRIP: [Phase.PRE_TRIP]},
        )

        messages = check_phase_graph()

        assert {m.id for m in messages} == {"django_tripops.E001"}
        assert "Invalid trip phase graph: terminal phase 'post_trip' has outgoing transitions" in [
            m.msg for m in messages
        ]
        assert any(m.id == "django_tripops.E001" for m in run_checks())

class TestCheckTransition:
    def test_next_phase_allowed(self):
        assert check_transition(Phase.BEFORE_DEPARTURE, Phase.DURING_TRIP) is None

    def test_skip_rejected(self):
        reason = check_transition(Phase.PRE_TRIP, Phase.DURING_TRIP)

        assert reason == "Cannot skip from 'pre_trip' to 'during_trip'"

    @pytest.mark.parametrize("from_phase,to_phase", [
        (Phase.DURING_TRIP, Phase.BEFORE_DEPARTURE),
        (Phase.BEFORE_DEPARTURE, Phase.BEFORE_DEPARTURE),
        (Phase.BEFORE_DEPARTURE, Phase.PRE_TRIP),
    ])
    def test_backward_rejected(self, from_phase, to_phase):
        assert check_transition(from_phase, to_phase).startswith("Cannot move backward")

    def test_terminal_rejected(self):
        reason = check_transition(Phase.POST_TRIP, Phase.DURING_TRIP)

        assert reason == "Cannot transition from terminal phase 'post_trip'"

    def test_unknown_phase(self):
        assert check_transition(Phase.PRE_TRIP, "cancelled") == "Unknown phase 'cancelled'"
