"""
Trip phase graph.

Phases are totally ordered and each phase may only advance to its
immediate successor. The graph helpers are pure functions with no Django
model lifecycle; services.transition_trip enforces them on the database and
checks.check_phase_graph validates the graph at startup.
"""

from django.db import models


class Phase(models.TextChoices):
    PRE_TRIP = "pre_trip", "Pre-trip"
    BEFORE_DEPARTURE = "before_departure", "Before departure"
    DURING_TRIP = "during_trip", "During trip"
    POST_TRIP = "post_trip", "Post-trip"


PHASE_ORDER: list[str] = [
    Phase.PRE_TRIP,
    Phase.BEFORE_DEPARTURE,
    Phase.DURING_TRIP,
    Phase.POST_TRIP,
]

PHASE_TRANSITIONS: dict[str, list[str]] = {
    Phase.PRE_TRIP: [Phase.BEFORE_DEPARTURE],
    Phase.BEFORE_DEPARTURE: [Phase.DURING_TRIP],
    Phase.DURING_TRIP: [Phase.POST_TRIP],
}

INITIAL_PHASE = Phase.PRE_TRIP
TERMINAL_PHASES: list[str] = [Phase.POST_TRIP]


def phase_rank(phase: str) -> int:
    """Position of a phase in the total order (0 = first)."""
    return PHASE_ORDER.index(phase)


def get_allowed_transitions(phase: str) -> list[str]:
    """Get list of phases reachable in one step from phase."""
    if phase in TERMINAL_PHASES:
        return []
    return list(PHASE_TRANSITIONS.get(phase, []))


def check_transition(from_phase: str, to_phase: str) -> str | None:
    """
    Check a single phase step against the graph.

    Returns None when allowed, otherwise a human-readable reason.
    """
    if from_phase not in PHASE_ORDER:
        return f"Unknown phase '{from_phase}'"
    if to_phase not in PHASE_ORDER:
        return f"Unknown phase '{to_phase}'"
    if from_phase in TERMINAL_PHASES:
        return f"Cannot transition from terminal phase '{from_phase}'"
    if to_phase in get_allowed_transitions(from_phase):
        return None
    if phase_rank(to_phase) <= phase_rank(from_phase):
        return f"Cannot move backward from '{from_phase}' to '{to_phase}'"
    return f"Cannot skip from '{from_phase}' to '{to_phase}'"


def validate_phase_graph(
    phases: list[str],
    transitions: dict[str, list[str]],
    initial_phase: str,
    terminal_phases: list[str],
) -> list[str]:
    """
    Validate that a phase graph is a strictly forward chain.

    Returns list of error messages (empty = valid).

    Checks:
    - initial and terminal phases exist
    - transition sources and targets exist
    - terminal phases have no outgoing transitions
    - every transition moves exactly one step forward in the listed order
    - every phase is reachable from the initial phase
    """
    errors = []
    phases_set = set(phases)

    if initial_phase not in phases_set:
        errors.append(f"initial_phase '{initial_phase}' not in phases")

    for tp in terminal_phases:
        if tp not in phases_set:
            errors.append(f"terminal_phase '{tp}' not in phases")

    for from_phase, to_phases in transitions.items():
        if from_phase not in phases_set:
            errors.append(f"transition from unknown phase '{from_phase}'")
            continue
        for to_phase in to_phases:
            if to_phase not in phases_set:
                errors.append(f"transition to unknown phase '{to_phase}'")
            elif phases.index(to_phase) <= phases.index(from_phase):
                errors.append(f"transition '{from_phase}' -> '{to_phase}' is not forward")
            elif phases.index(to_phase) > phases.index(from_phase) + 1:
                errors.append(f"transition '{from_phase}' -> '{to_phase}' skips a phase")

    for tp in terminal_phases:
        if transitions.get(tp):
            errors.append(f"terminal phase '{tp}' has outgoing transitions")

    if initial_phase in phases_set:
        reachable = _find_reachable_phases(initial_phase, transitions)
        for phase in phases:
            if phase not in reachable:
                errors.append(f"phase '{phase}' unreachable from initial_phase")

    return errors


def _find_reachable_phases(start: str, transitions: dict[str, list[str]]) -> set[str]:
    """BFS over the transition graph, including start itself."""
    visited = {start}
    queue = [start]

    while queue:
        current = queue.pop(0)
        for next_phase in transitions.get(current, []):
            if next_phase not in visited:
                visited.add(next_phase)
                queue.append(next_phase)

    return visited
