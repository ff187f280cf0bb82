"""
Completion evaluation for the during_trip -> post_trip gate.

Required checks block completion; soft checks only add warnings.
A check that does not apply to the trip is excluded from the progress
numerator and denominator instead of failing.
"""

import logging
from dataclasses import dataclass, field

from .conf import get_handover_provider
from .exceptions import UpstreamUnavailable

logger = logging.getLogger(__name__)


REQUIRED_CHECKS = [
    "all_passengers_returned",
    "documentation_uploaded",
    "logistics_handover_completed",
    "attendance_checked_out",
    "required_tasks_completed",
]

SOFT_CHECKS = [
    "expenses_submitted",
    "payment_split_calculated",
]


@dataclass
class CompletionCheck:
    done: bool = False
    applicable: bool = True
    detail: dict = field(default_factory=dict)

    @property
    def satisfied(self) -> bool:
        return self.done or not self.applicable

    def to_dict(self) -> dict:
        return {"done": self.done, "applicable": self.applicable, **self.detail}


@dataclass
class CompletionStatus:
    checks: dict[str, CompletionCheck] = field(default_factory=dict)
    missing_items: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def can_complete(self) -> bool:
        return all(self.checks[name].satisfied for name in REQUIRED_CHECKS if name in self.checks)

    @property
    def progress(self) -> dict:
        applicable = [
            self.checks[name] for name in REQUIRED_CHECKS
            if name in self.checks and self.checks[name].applicable
        ]
        total = len(applicable)
        completed = sum(1 for check in applicable if check.done)
        percentage = round(completed / total * 100) if total else 100
        return {"completed": completed, "total": total, "percentage": percentage}

    def to_dict(self) -> dict:
        return {
            "can_complete": self.can_complete,
            "checks": {name: check.to_dict() for name, check in self.checks.items()},
            "missing_items": list(self.missing_items),
            "warnings": list(self.warnings),
            "progress": self.progress,
        }


def _check_passengers(trip) -> CompletionCheck:
    from .models import Passenger

    if not trip.passenger_tracking:
        return CompletionCheck(applicable=False)
    total = trip.manifest.count()
    if total == 0:
        return CompletionCheck(applicable=False, detail={"returned": 0, "total": 0})
    returned = trip.manifest.filter(status=Passenger.Status.RETURNED).count()
    return CompletionCheck(
        done=returned >= total,
        detail={"returned": returned, "total": total},
    )


def _check_documentation(trip) -> CompletionCheck:
    url = trip.documentation_url or None
    return CompletionCheck(done=bool(url), detail={"url": url})


def _check_handover(trip) -> CompletionCheck:
    from .models import LogisticsHandover

    if not trip.logistics_tracking:
        return CompletionCheck(applicable=False)

    try:
        handovers = get_handover_provider().get_handovers(trip)
    except UpstreamUnavailable as e:
        logger.warning(f"Handover check not applicable for trip {trip.pk}: {e}")
        return CompletionCheck(applicable=False, detail={"unavailable": True})
    except Exception:
        logger.exception(f"Handover provider failed for trip {trip.pk}")
        return CompletionCheck(applicable=False, detail={"unavailable": True})

    if not handovers:
        return CompletionCheck(applicable=False)

    inbound = next(
        (h for h in handovers if h.handover_type == LogisticsHandover.HandoverType.INBOUND),
        None,
    )
    done = (
        inbound is not None
        and inbound.status == LogisticsHandover.Status.COMPLETED
        and inbound.verified_by_both
    )
    return CompletionCheck(done=done)


def _check_attendance_out(trip) -> CompletionCheck:
    from .models import CrewAssignment

    crew_ids = set(
        trip.crew.filter(status=CrewAssignment.Status.CONFIRMED)
        .values_list("guide_id", flat=True)
    )
    checked_out = set(
        trip.attendance.filter(guide_id__in=crew_ids, check_out_at__isnull=False)
        .values_list("guide_id", flat=True)
    )
    return CompletionCheck(
        done=bool(crew_ids) and checked_out == crew_ids,
        detail={"checked_out": len(checked_out), "crew": len(crew_ids)},
    )


def _check_required_tasks(trip) -> CompletionCheck:
    required = trip.tasks.filter(required=True)
    if not required.exists():
        return CompletionCheck(applicable=False, detail={"pending_tasks": []})
    pending = list(required.filter(completed=False).values_list("label", flat=True))
    return CompletionCheck(done=not pending, detail={"pending_tasks": pending})


def _check_expenses(trip) -> CompletionCheck:
    return CompletionCheck(done=trip.expenses.exists())


def _check_payment_split(trip) -> CompletionCheck:
    from .models import CrewAssignment

    crew_count = trip.crew.exclude(status=CrewAssignment.Status.REJECTED).count()
    if crew_count <= 1:
        return CompletionCheck(applicable=False)
    return CompletionCheck(done=trip.payment_splits.exists())


def evaluate_completion(trip) -> CompletionStatus:
    """Evaluate every completion check for a trip. Never writes."""
    status = CompletionStatus()

    status.checks["all_passengers_returned"] = check = _check_passengers(trip)
    if check.applicable and not check.done:
        status.missing_items.append(
            f"Not all passengers returned ({check.detail['returned']}/{check.detail['total']})"
        )

    status.checks["documentation_uploaded"] = check = _check_documentation(trip)
    if not check.done:
        status.missing_items.append("Trip documentation not uploaded")

    status.checks["logistics_handover_completed"] = check = _check_handover(trip)
    if check.applicable and not check.done:
        status.missing_items.append("Inbound logistics handover not completed")

    status.checks["attendance_checked_out"] = check = _check_attendance_out(trip)
    if not check.done:
        status.missing_items.append("Crew attendance not checked out")

    status.checks["required_tasks_completed"] = check = _check_required_tasks(trip)
    if check.applicable and not check.done:
        status.missing_items.append(
            f"Required tasks not completed ({len(check.detail['pending_tasks'])} pending)"
        )

    status.checks["expenses_submitted"] = check = _check_expenses(trip)
    if not check.done:
        status.warnings.append("Expenses not submitted; submit them for reimbursement")

    status.checks["payment_split_calculated"] = check = _check_payment_split(trip)
    if check.applicable and not check.done:
        status.warnings.append("Payment split not calculated for multi-guide trip")

    logger.info(
        f"Completion for trip {trip.pk}: can_complete={status.can_complete}, "
        f"progress={status.progress['percentage']}%"
    )
    return status
