"""
Readiness evaluation for the before_departure -> during_trip gate.

Six required sub-checks, evaluated independently and in a fixed order so
the reason list is a stable remediation list:

1. attendance      every confirmed crew member has checked in
2. facility        all included facility items checked
3. equipment       all included equipment items checked
4. risk            latest assessment exists and is not blocked
5. certifications  crew certifications valid (certification provider)
6. approval        admin approval complete (approval provider)

Evaluation never writes. A failing or timed-out provider fails only its
own sub-check.
"""

import logging
from dataclasses import asdict, dataclass, field

from .conf import get_approval_provider, get_certification_provider
from .exceptions import RiskInputError, UpstreamUnavailable
from .risk import RiskInputs, score_risk

logger = logging.getLogger(__name__)


@dataclass
class ChecklistProgress:
    checked: int = 0
    total: int = 0

    @property
    def complete(self) -> bool:
        return self.checked == self.total


@dataclass
class ManifestProgress:
    boarded: int = 0
    total: int = 0

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.boarded / self.total * 100)


@dataclass
class ReadinessStatus:
    """Point-in-time readiness snapshot. can_start is True iff all six checks pass."""

    attendance_checked_in: bool = False
    facility_complete: bool = False
    equipment_complete: bool = False
    risk_ok: bool = False
    certifications_valid: bool = False
    admin_approved: bool = False
    reasons: list[str] = field(default_factory=list)
    facility: ChecklistProgress = field(default_factory=ChecklistProgress)
    equipment: ChecklistProgress = field(default_factory=ChecklistProgress)
    risk: dict | None = None
    has_confirmed_lead: bool = False
    manifest: ManifestProgress = field(default_factory=ManifestProgress)

    @property
    def can_start(self) -> bool:
        return all((
            self.attendance_checked_in,
            self.facility_complete,
            self.equipment_complete,
            self.risk_ok,
            self.certifications_valid,
            self.admin_approved,
        ))

    def to_dict(self) -> dict:
        return {
            "can_start": self.can_start,
            "checks": {
                "attendance_checked_in": self.attendance_checked_in,
                "facility_complete": self.facility_complete,
                "equipment_complete": self.equipment_complete,
                "risk_ok": self.risk_ok,
                "certifications_valid": self.certifications_valid,
                "admin_approved": self.admin_approved,
            },
            "reasons": list(self.reasons),
            "facility": asdict(self.facility),
            "equipment": asdict(self.equipment),
            "risk": self.risk,
            "has_confirmed_lead": self.has_confirmed_lead,
            "manifest": {
                "boarded": self.manifest.boarded,
                "total": self.manifest.total,
                "percentage": self.manifest.percentage,
            },
        }


def _confirmed_crew_ids(trip) -> set:
    from .models import CrewAssignment

    return set(
        trip.crew.filter(status=CrewAssignment.Status.CONFIRMED)
        .values_list("guide_id", flat=True)
    )


def check_attendance_in(trip) -> tuple[bool, str | None]:
    crew_ids = _confirmed_crew_ids(trip)
    if not crew_ids:
        return False, "No confirmed crew to check in"
    checked_in = set(
        trip.attendance.filter(guide_id__in=crew_ids, check_in_at__isnull=False)
        .values_list("guide_id", flat=True)
    )
    if checked_in != crew_ids:
        return False, f"Crew attendance: {len(checked_in)} of {len(crew_ids)} checked in"
    return True, None


def checklist_progress(trip, namespace: str) -> ChecklistProgress:
    """Count included items only; excluded items never appear in the totals."""
    items = trip.checklist_items.filter(namespace=namespace, included=True)
    return ChecklistProgress(
        checked=items.filter(checked=True).count(),
        total=items.count(),
    )


def check_risk(trip) -> tuple[bool, str | None, dict | None]:
    """Re-score the latest assessment against the current threshold."""
    latest = trip.risk_assessments.order_by("-created_at", "-id").first()
    if latest is None:
        return False, "No risk assessment submitted", None

    inputs = RiskInputs(
        wave_height=latest.wave_height,
        wind_speed=latest.wind_speed,
        weather_condition=latest.weather_condition or None,
        crew_ready=latest.crew_ready,
        equipment_complete=latest.equipment_complete,
    )
    try:
        result = score_risk(inputs)
    except RiskInputError as e:
        logger.warning(f"Stored risk assessment {latest.pk} no longer scores: {e}")
        return False, "Latest risk assessment is invalid; submit a new one", None

    snapshot = result.to_dict()
    snapshot["assessment_id"] = latest.pk
    snapshot["assessed_at"] = latest.created_at.isoformat()
    if result.blocked:
        return False, (
            f"Risk score {result.score} ({result.level}) exceeds block threshold "
            f"{result.threshold}"
        ), snapshot
    return True, None, snapshot


def _run_provider_check(provider, method_name: str, trip, label: str) -> tuple[bool, str | None]:
    try:
        outcome = getattr(provider, method_name)(trip)
    except UpstreamUnavailable as e:
        logger.warning(f"{label} check degraded for trip {trip.pk}: {e}")
        return False, f"{label} could not be verified ({e.reason})"
    except Exception:
        logger.exception(f"{label} provider failed for trip {trip.pk}")
        return False, f"{label} could not be verified"

    if outcome.passed:
        return True, None
    return False, outcome.detail or f"{label} check failed"


def manifest_progress(trip) -> ManifestProgress:
    from .models import Passenger

    passengers = trip.manifest.all()
    return ManifestProgress(
        boarded=passengers.filter(
            status__in=[Passenger.Status.BOARDED, Passenger.Status.RETURNED]
        ).count(),
        total=passengers.count(),
    )


def evaluate_readiness(trip) -> ReadinessStatus:
    """
    Evaluate every readiness sub-check for a trip.

    Never short-circuits: a failure in one sub-check does not skip the
    others, so reasons lists every outstanding item in check order.
    """
    from .models import ChecklistNamespace, CrewAssignment

    status = ReadinessStatus()

    status.attendance_checked_in, reason = check_attendance_in(trip)
    if reason:
        status.reasons.append(reason)

    status.facility = checklist_progress(trip, ChecklistNamespace.FACILITY)
    status.facility_complete = status.facility.complete
    if not status.facility_complete:
        status.reasons.append(
            f"Facility checklist incomplete ({status.facility.checked}/{status.facility.total})"
        )

    status.equipment = checklist_progress(trip, ChecklistNamespace.EQUIPMENT)
    status.equipment_complete = status.equipment.complete
    if not status.equipment_complete:
        status.reasons.append(
            f"Equipment checklist incomplete ({status.equipment.checked}/{status.equipment.total})"
        )

    status.risk_ok, reason, status.risk = check_risk(trip)
    if reason:
        status.reasons.append(reason)

    status.certifications_valid, reason = _run_provider_check(
        get_certification_provider(), "check_certifications", trip, "Crew certifications"
    )
    if reason:
        status.reasons.append(reason)

    status.admin_approved, reason = _run_provider_check(
        get_approval_provider(), "check_approval", trip, "Admin approval"
    )
    if reason:
        status.reasons.append(reason)

    status.has_confirmed_lead = trip.crew.filter(
        role=CrewAssignment.Role.LEAD,
        status=CrewAssignment.Status.CONFIRMED,
    ).exists()
    status.manifest = manifest_progress(trip)

    logger.info(
        f"Readiness for trip {trip.pk}: can_start={status.can_start}, "
        f"{len(status.reasons)} outstanding"
    )
    return status
