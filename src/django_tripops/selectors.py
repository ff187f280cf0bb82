"""Read-side queries for trip operations.

Status reads are authorized like mutations; evaluation itself never writes.
"""

from .completion import CompletionStatus, evaluate_completion
from .models import Trip
from .policy import TripAction, authorize, can_perform, mask_passenger, requires_trip_action
from .readiness import ReadinessStatus, evaluate_readiness


@requires_trip_action(TripAction.VIEW_STATUS)
def get_readiness(trip: Trip, actor) -> ReadinessStatus:
    return evaluate_readiness(trip)


@requires_trip_action(TripAction.VIEW_STATUS)
def get_completion(trip: Trip, actor) -> CompletionStatus:
    return evaluate_completion(trip)


def passenger_to_dict(passenger) -> dict:
    return {
        "id": passenger.pk,
        "position": passenger.position,
        "name": passenger.name,
        "phone": passenger.phone,
        "notes": passenger.notes,
        "status": passenger.status,
        "boarded_at": passenger.boarded_at.isoformat() if passenger.boarded_at else None,
        "returned_at": passenger.returned_at.isoformat() if passenger.returned_at else None,
    }


def get_manifest(trip: Trip, actor) -> list[dict]:
    """
    Passenger manifest in boarding order.

    Name, phone and notes are masked unless one of the actor's trip roles
    may view unmasked passenger data.
    """
    roles = authorize(TripAction.VIEW_STATUS, trip, actor)
    unmasked = any(can_perform(TripAction.VIEW_UNMASKED_PASSENGERS, role) for role in roles)

    passengers = [passenger_to_dict(p) for p in trip.manifest.order_by("position", "id")]
    if unmasked:
        return passengers
    return [mask_passenger(p) for p in passengers]


@requires_trip_action(TripAction.VIEW_STATUS)
def get_transition_history(trip: Trip, actor) -> list[dict]:
    return [
        {
            "from_phase": t.from_phase,
            "to_phase": t.to_phase,
            "transitioned_by": t.transitioned_by_id,
            "transitioned_at": t.transitioned_at.isoformat(),
            "metadata": t.metadata,
        }
        for t in trip.transitions.order_by("transitioned_at", "id")
    ]
