"""Service functions for trip operations.

Provides:
- Trip setup: create_trip, configure_checklist_item, add_passenger, approve_trip
- Crew: assign_crew, remove_crew, confirm_assignment, reject_assignment
- Pre-departure: set_checklist_item, check_in_attendance,
  submit_risk_assessment, suggest_risk_inputs
- During trip: set_passenger_status, add_task, complete_task,
  set_documentation_url, record_handover, submit_expense,
  calculate_payment_split, check_out_attendance
- Phase transitions: transition_trip, start_trip, prepare_end_trip,
  end_trip, get_current_phase

Every service authorizes the actor before doing any work. All writes are
atomic; phase transitions lock the trip row and re-check their gate.
"""

import logging
from decimal import ROUND_DOWN, Decimal

from django.core import signing
from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .completion import evaluate_completion
from .conf import get_setting, get_weather_provider
from .exceptions import (
    AttendanceError,
    ChecklistError,
    ConcurrentTransitionConflict,
    ConfirmationRequired,
    CrewAssignmentError,
    InvalidPhaseTransition,
    ManifestError,
    RiskInputError,
    TaskError,
    TransitionBlocked,
    TripAuthorizationError,
    TripCompletedError,
    TripOpsError,
)
from .models import (
    NAMESPACE_ITEM_CODES,
    AttendanceRecord,
    ChecklistNamespace,
    CrewAssignment,
    LogisticsHandover,
    Passenger,
    PaymentSplit,
    RiskAssessment,
    Trip,
    TripChecklistItem,
    TripExpense,
    TripTask,
    TripTransition,
)
from .phases import Phase, check_transition
from .policy import TripAction, authorize, requires_trip_action
from .readiness import evaluate_readiness
from .risk import RiskInputs, score_risk

logger = logging.getLogger(__name__)

END_CONFIRMATION_SALT = "django_tripops.end_trip"

# Action that authorizes moving into each phase
TRANSITION_ACTIONS = {
    Phase.BEFORE_DEPARTURE: TripAction.TRIGGER_DEPARTURE_PREP,
    Phase.DURING_TRIP: TripAction.TRIGGER_START,
    Phase.POST_TRIP: TripAction.TRIGGER_END,
}

PRE_DEPARTURE_PHASES = (Phase.PRE_TRIP, Phase.BEFORE_DEPARTURE)

PASSENGER_NEXT_STATUS = {
    Passenger.Status.PENDING: Passenger.Status.BOARDED,
    Passenger.Status.BOARDED: Passenger.Status.RETURNED,
}


# =============================================================================
# Trip setup
# =============================================================================


def _validate_item_code(namespace: str, code: str) -> None:
    if namespace not in ChecklistNamespace.values:
        raise ChecklistError(f"Unknown checklist namespace '{namespace}'")
    codes = NAMESPACE_ITEM_CODES[ChecklistNamespace(namespace)]
    if code not in codes.values:
        raise ChecklistError(f"'{code}' is not a {namespace} item")


def _normalize_items(namespace: str, items) -> dict:
    """Accept a list of included codes or a {code: included} mapping."""
    if items is None:
        items = NAMESPACE_ITEM_CODES[ChecklistNamespace(namespace)].values
    if not isinstance(items, dict):
        items = {code: True for code in items}
    for code in items:
        _validate_item_code(namespace, code)
    return items


@requires_trip_action(TripAction.CONFIGURE_TRIP)
@transaction.atomic
def create_trip(
    code: str,
    name: str,
    trip_date,
    actor,
    facility_items=None,
    equipment_items=None,
    passenger_tracking: bool = True,
    logistics_tracking: bool = False,
    latitude: float = None,
    longitude: float = None,
) -> Trip:
    """
    Create a trip with its checklist snapshot.

    Args:
        facility_items / equipment_items: Codes to include, or a
            {code: included} mapping. None includes every code of the
            namespace.

    Raises:
        ChecklistError: If an item code does not belong to its namespace
    """
    facility = _normalize_items(ChecklistNamespace.FACILITY, facility_items)
    equipment = _normalize_items(ChecklistNamespace.EQUIPMENT, equipment_items)

    trip = Trip.objects.create(
        code=code,
        name=name,
        trip_date=trip_date,
        passenger_tracking=passenger_tracking,
        logistics_tracking=logistics_tracking,
        latitude=latitude,
        longitude=longitude,
    )

    items = []
    for namespace, configured in (
        (ChecklistNamespace.FACILITY, facility),
        (ChecklistNamespace.EQUIPMENT, equipment),
    ):
        labels = dict(NAMESPACE_ITEM_CODES[namespace].choices)
        for item_code, included in configured.items():
            items.append(TripChecklistItem(
                trip=trip,
                namespace=namespace,
                code=item_code,
                label=labels[item_code],
                included=bool(included),
            ))
    TripChecklistItem.objects.bulk_create(items)

    logger.info(f"Created trip {trip.code} ({trip.pk}) with {len(items)} checklist items")
    return trip


@requires_trip_action(TripAction.CONFIGURE_TRIP)
def configure_checklist_item(trip: Trip, namespace: str, code: str, included: bool, actor) -> TripChecklistItem:
    """Add an item to a trip's checklist or change whether it is included."""
    _validate_item_code(namespace, code)
    if trip.phase not in PRE_DEPARTURE_PHASES:
        raise ChecklistError(f"Checklist cannot be reconfigured in phase '{trip.phase}'")

    labels = dict(NAMESPACE_ITEM_CODES[ChecklistNamespace(namespace)].choices)
    item, created = TripChecklistItem.objects.update_or_create(
        trip=trip,
        namespace=namespace,
        code=code,
        defaults={"included": included, "label": labels[code]},
    )
    return item


@requires_trip_action(TripAction.CONFIGURE_TRIP)
def add_passenger(trip: Trip, name: str, actor, phone: str = "", notes: str = "") -> Passenger:
    if trip.phase == Phase.POST_TRIP:
        raise ManifestError("Cannot add passengers to a completed trip")
    return Passenger.objects.create(
        trip=trip,
        position=trip.manifest.count(),
        name=name,
        phone=phone,
        notes=notes,
    )


@requires_trip_action(TripAction.APPROVE_TRIP)
def approve_trip(trip: Trip, actor) -> Trip:
    """Record admin approval; consumed by the approval readiness check."""
    if trip.phase not in PRE_DEPARTURE_PHASES:
        raise TripOpsError(f"Cannot approve a trip in phase '{trip.phase}'")
    trip.approved_at = timezone.now()
    trip.approved_by = actor
    trip.save(update_fields=["approved_at", "approved_by", "updated_at"])
    logger.info(f"Trip {trip.pk} approved by user {actor.pk}")
    return trip


# =============================================================================
# Crew
# =============================================================================


@requires_trip_action(TripAction.MANAGE_CREW)
@transaction.atomic
def assign_crew(trip: Trip, guide, role: str, actor) -> CrewAssignment:
    """
    Assign a guide to a trip.

    A previously rejected assignment is reopened with the new role.

    Raises:
        CrewAssignmentError: If the guide is already active on the trip or
            the trip has departed
    """
    if role not in CrewAssignment.Role.values:
        raise CrewAssignmentError(f"Unknown crew role '{role}'")
    if trip.phase not in PRE_DEPARTURE_PHASES:
        raise CrewAssignmentError(f"Cannot assign crew in phase '{trip.phase}'")

    assignment = (
        CrewAssignment.objects.select_for_update()
        .filter(trip=trip, guide=guide)
        .first()
    )
    if assignment is not None and assignment.status != CrewAssignment.Status.REJECTED:
        raise CrewAssignmentError(f"Guide {guide.pk} is already assigned to trip {trip.pk}")

    if assignment is None:
        assignment = CrewAssignment(trip=trip, guide=guide)
    assignment.role = role
    assignment.status = CrewAssignment.Status.ASSIGNED
    assignment.assigned_by = actor
    assignment.confirmed_at = None
    assignment.rejected_at = None
    assignment.rejection_reason = ""
    assignment.save()

    logger.info(f"Assigned guide {guide.pk} as {role} on trip {trip.pk}")
    return assignment


@requires_trip_action(TripAction.MANAGE_CREW)
def remove_crew(trip: Trip, guide, actor, reason: str = "Removed by operations") -> CrewAssignment:
    """Remove a guide from a trip. The assignment is kept as rejected."""
    try:
        assignment = CrewAssignment.objects.get(trip=trip, guide=guide)
    except CrewAssignment.DoesNotExist:
        raise CrewAssignmentError(f"Guide {guide.pk} is not assigned to trip {trip.pk}")

    assignment.status = CrewAssignment.Status.REJECTED
    assignment.rejected_at = timezone.now()
    assignment.rejection_reason = reason
    assignment.save(update_fields=["status", "rejected_at", "rejection_reason", "updated_at"])
    logger.info(f"Removed guide {guide.pk} from trip {trip.pk}: {reason}")
    return assignment


def _get_own_assignment(trip: Trip, actor) -> CrewAssignment:
    try:
        return CrewAssignment.objects.select_for_update().get(trip=trip, guide=actor)
    except CrewAssignment.DoesNotExist:
        raise TripAuthorizationError(TripAction.CONFIRM_OWN_ASSIGNMENT)


@requires_trip_action(TripAction.CONFIRM_OWN_ASSIGNMENT, include_pending=True)
@transaction.atomic
def confirm_assignment(trip: Trip, actor) -> CrewAssignment:
    """
    Confirm the actor's own assignment.

    When the lead guide confirms on a pre_trip trip, the trip moves to
    before_departure.
    """
    assignment = _get_own_assignment(trip, actor)
    if assignment.status != CrewAssignment.Status.ASSIGNED:
        raise CrewAssignmentError(
            f"Assignment {assignment.pk} is {assignment.status}, not awaiting confirmation"
        )

    assignment.status = CrewAssignment.Status.CONFIRMED
    assignment.confirmed_at = timezone.now()
    assignment.save(update_fields=["status", "confirmed_at", "updated_at"])
    logger.info(f"Guide {actor.pk} confirmed {assignment.role} assignment on trip {trip.pk}")

    trip.refresh_from_db(fields=["phase", "version"])
    if assignment.role == CrewAssignment.Role.LEAD and trip.phase == Phase.PRE_TRIP:
        _transition(trip, Phase.BEFORE_DEPARTURE, actor, {"trigger": "lead_confirmed"})

    return assignment


@requires_trip_action(TripAction.CONFIRM_OWN_ASSIGNMENT, include_pending=True)
@transaction.atomic
def reject_assignment(trip: Trip, actor, reason: str = "") -> CrewAssignment:
    """Reject the actor's own assignment. Never changes the trip phase."""
    assignment = _get_own_assignment(trip, actor)
    if assignment.status != CrewAssignment.Status.ASSIGNED:
        raise CrewAssignmentError(
            f"Assignment {assignment.pk} is {assignment.status}, not awaiting confirmation"
        )

    assignment.status = CrewAssignment.Status.REJECTED
    assignment.rejected_at = timezone.now()
    assignment.rejection_reason = reason
    assignment.save(update_fields=["status", "rejected_at", "rejection_reason", "updated_at"])
    logger.info(f"Guide {actor.pk} rejected assignment on trip {trip.pk}")
    return assignment


# =============================================================================
# Pre-departure
# =============================================================================


@requires_trip_action(TripAction.EDIT_CHECKLIST)
def set_checklist_item(trip: Trip, namespace: str, code: str, checked: bool, actor) -> TripChecklistItem:
    """
    Toggle a facility or equipment item.

    Raises:
        ChecklistError: For unknown codes, items not configured for the
            trip, or a completed trip
    """
    _validate_item_code(namespace, code)
    if trip.phase == Phase.POST_TRIP:
        raise ChecklistError("Checklist of a completed trip cannot change")

    try:
        item = TripChecklistItem.objects.get(trip=trip, namespace=namespace, code=code)
    except TripChecklistItem.DoesNotExist:
        raise ChecklistError(f"{namespace} item '{code}' is not configured for trip {trip.pk}")

    item.checked = bool(checked)
    item.checked_by = actor if checked else None
    item.checked_at = timezone.now() if checked else None
    item.save(update_fields=["checked", "checked_by", "checked_at", "updated_at"])
    return item


@requires_trip_action(TripAction.RECORD_ATTENDANCE)
def check_in_attendance(trip: Trip, actor) -> AttendanceRecord:
    if trip.phase not in PRE_DEPARTURE_PHASES:
        raise AttendanceError(f"Cannot check in during phase '{trip.phase}'")
    record, created = AttendanceRecord.objects.get_or_create(trip=trip, guide=actor)
    if record.check_in_at is None:
        record.check_in_at = timezone.now()
        record.save(update_fields=["check_in_at", "updated_at"])
    return record


@requires_trip_action(TripAction.RECORD_ATTENDANCE)
def check_out_attendance(trip: Trip, actor) -> AttendanceRecord:
    if trip.phase != Phase.DURING_TRIP:
        raise AttendanceError(f"Cannot check out during phase '{trip.phase}'")
    try:
        record = AttendanceRecord.objects.get(trip=trip, guide=actor, check_in_at__isnull=False)
    except AttendanceRecord.DoesNotExist:
        raise AttendanceError("Cannot check out without checking in")
    if record.check_out_at is None:
        record.check_out_at = timezone.now()
        record.save(update_fields=["check_out_at", "updated_at"])
    return record


def _record_risk_assessment(trip: Trip, inputs: RiskInputs, actor):
    """Score, lock the trip row and store the snapshot. Caller owns the transaction."""
    result = score_risk(inputs)
    Trip.objects.select_for_update().get(pk=trip.pk)
    assessment = RiskAssessment.objects.create(
        trip=trip,
        wave_height=inputs.wave_height,
        wind_speed=inputs.wind_speed,
        weather_condition=inputs.weather_condition or "",
        crew_ready=inputs.crew_ready,
        equipment_complete=inputs.equipment_complete,
        latitude=inputs.latitude,
        longitude=inputs.longitude,
        risk_score=result.score,
        risk_level=result.level,
        is_blocked=result.blocked,
        assessed_by=actor,
    )
    log = logger.warning if result.blocked else logger.info
    log(f"Risk assessment {assessment.pk} for trip {trip.pk}: score {result.score} ({result.level})")
    return assessment, result


@requires_trip_action(TripAction.SUBMIT_RISK_ASSESSMENT)
def submit_risk_assessment(trip: Trip, inputs: RiskInputs, actor):
    """
    Score inputs and store an immutable assessment.

    Returns:
        Tuple of (RiskAssessment, RiskResult)

    Raises:
        RiskInputError: Before any write, if inputs are invalid
    """
    if trip.phase not in PRE_DEPARTURE_PHASES:
        raise RiskInputError([f"Risk cannot be assessed in phase '{trip.phase}'"])
    with transaction.atomic():
        return _record_risk_assessment(trip, inputs, actor)


@requires_trip_action(TripAction.SUBMIT_RISK_ASSESSMENT)
def suggest_risk_inputs(trip: Trip, actor):
    """
    Fetch current conditions at the trip location to pre-fill an assessment.

    Raises:
        RiskInputError: If the trip has no location
        UpstreamUnavailable: If the weather provider fails
    """
    if trip.latitude is None or trip.longitude is None:
        raise RiskInputError(["Trip has no location for a weather lookup"])
    return get_weather_provider().get_conditions(trip.latitude, trip.longitude)


# =============================================================================
# During trip
# =============================================================================


def _ensure_open(trip: Trip, what: str) -> None:
    if trip.phase == Phase.POST_TRIP:
        raise TripCompletedError(trip.pk, what)


@requires_trip_action(TripAction.UPDATE_MANIFEST)
def set_passenger_status(trip: Trip, passenger_id, status: str, actor) -> Passenger:
    """
    Move a passenger one step forward: pending -> boarded -> returned.

    Raises:
        ManifestError: For backward moves, skips, or unknown passengers
    """
    if trip.phase == Phase.POST_TRIP:
        raise ManifestError("Passenger status of a completed trip cannot change")

    try:
        passenger = trip.manifest.get(pk=passenger_id)
    except Passenger.DoesNotExist:
        raise ManifestError(f"Passenger {passenger_id} is not on trip {trip.pk}")

    expected = PASSENGER_NEXT_STATUS.get(passenger.status)
    if status != expected:
        raise ManifestError(
            f"Passenger status cannot change from '{passenger.status}' to '{status}'"
        )

    passenger.status = status
    now = timezone.now()
    if status == Passenger.Status.BOARDED:
        passenger.boarded_at = now
    else:
        passenger.returned_at = now
    passenger.save(update_fields=["status", "boarded_at", "returned_at", "updated_at"])
    return passenger


@requires_trip_action(TripAction.MANAGE_TASKS)
def add_task(trip: Trip, label: str, actor, required: bool = False) -> TripTask:
    _ensure_open(trip, "tasks")
    return TripTask.objects.create(
        trip=trip,
        label=label,
        required=required,
        position=trip.tasks.count(),
    )


@requires_trip_action(TripAction.MANAGE_TASKS)
def complete_task(trip: Trip, task_id, actor) -> TripTask:
    _ensure_open(trip, "tasks")
    try:
        task = trip.tasks.get(pk=task_id)
    except TripTask.DoesNotExist:
        raise TaskError(f"Task {task_id} is not on trip {trip.pk}")
    if not task.completed:
        task.completed = True
        task.completed_at = timezone.now()
        task.completed_by = actor
        task.save(update_fields=["completed", "completed_at", "completed_by", "updated_at"])
    return task


@requires_trip_action(TripAction.UPLOAD_DOCUMENTATION)
def set_documentation_url(trip: Trip, url: str, actor) -> Trip:
    _ensure_open(trip, "documentation")
    URLValidator()(url)
    trip.documentation_url = url
    trip.save(update_fields=["documentation_url", "updated_at"])
    return trip


@requires_trip_action(TripAction.RECORD_HANDOVER)
def record_handover(
    trip: Trip,
    handover_type: str,
    actor,
    status: str = LogisticsHandover.Status.COMPLETED,
    verified_by_both: bool = False,
) -> LogisticsHandover:
    _ensure_open(trip, "handovers")
    if handover_type not in LogisticsHandover.HandoverType.values:
        raise ValidationError(f"Unknown handover type '{handover_type}'")
    if status not in LogisticsHandover.Status.values:
        raise ValidationError(f"Unknown handover status '{status}'")
    return LogisticsHandover.objects.create(
        trip=trip,
        handover_type=handover_type,
        status=status,
        verified_by_both=verified_by_both,
    )


@requires_trip_action(TripAction.SUBMIT_EXPENSE)
def submit_expense(trip: Trip, category: str, amount, actor, description: str = "") -> TripExpense:
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValidationError("Expense amount must be positive")
    return TripExpense.objects.create(
        trip=trip,
        submitted_by=actor,
        category=category,
        amount=amount,
        description=description,
    )


@requires_trip_action(TripAction.CALCULATE_PAYMENT_SPLIT)
@transaction.atomic
def calculate_payment_split(trip: Trip, total_fee, actor) -> list[PaymentSplit]:
    """
    Split the crew fee equally across active crew.

    Cents left over by the equal split go to the lead guide, so the
    amounts always sum to total_fee. Replaces any previous split.
    """
    total_fee = Decimal(str(total_fee))
    if total_fee < 0:
        raise ValidationError("Total fee cannot be negative")

    crew = list(
        trip.crew.exclude(status=CrewAssignment.Status.REJECTED).order_by("role", "id")
    )
    if not crew:
        raise CrewAssignmentError(f"Trip {trip.pk} has no crew to pay")

    cent = Decimal("0.01")
    share = (total_fee / len(crew)).quantize(cent, rounding=ROUND_DOWN)
    remainder = total_fee - share * len(crew)
    percentage = (Decimal(100) / len(crew)).quantize(cent, rounding=ROUND_DOWN)

    trip.payment_splits.all().delete()
    splits = []
    for index, assignment in enumerate(crew):
        amount = share + remainder if index == 0 else share
        splits.append(PaymentSplit.objects.create(
            trip=trip,
            guide_id=assignment.guide_id,
            share_percentage=percentage,
            amount=amount,
        ))
    return splits


# =============================================================================
# Phase transitions
# =============================================================================


def get_current_phase(trip: Trip) -> str:
    """Stored phase of the trip, read fresh from the database."""
    return Trip.objects.values_list("phase", flat=True).get(pk=trip.pk)


def _evaluate_gate(trip: Trip, to_phase: str) -> dict:
    """Re-check the gate for to_phase on a locked trip. Returns the snapshot."""
    if to_phase == Phase.BEFORE_DEPARTURE:
        has_lead = trip.crew.filter(
            role=CrewAssignment.Role.LEAD,
            status=CrewAssignment.Status.CONFIRMED,
        ).exists()
        if not has_lead:
            raise TransitionBlocked(["No confirmed lead guide"])
        return {"has_confirmed_lead": True}

    if to_phase == Phase.DURING_TRIP:
        status = evaluate_readiness(trip)
        if not status.can_start:
            raise TransitionBlocked(status.reasons, status)
        return {"readiness": status.to_dict()}

    if to_phase == Phase.POST_TRIP:
        status = evaluate_completion(trip)
        if not status.can_complete:
            raise TransitionBlocked(status.missing_items, status)
        return {"completion": status.to_dict()}

    return {}


def _transition(trip: Trip, to_phase: str, actor, metadata: dict = None) -> Trip:
    """
    Apply a phase transition after authorization.

    Locks the trip row, compares it with the caller's instance, checks the
    graph and the gate, then applies a version-guarded update.
    """
    with transaction.atomic():
        locked = Trip.objects.select_for_update().get(pk=trip.pk)
        if locked.version != trip.version or locked.phase != trip.phase:
            raise ConcurrentTransitionConflict(trip.pk, trip.version, locked.version)

        reason = check_transition(locked.phase, to_phase)
        if reason:
            raise InvalidPhaseTransition(locked.phase, to_phase, reason)

        try:
            snapshot = _evaluate_gate(locked, to_phase)
        except TransitionBlocked as e:
            logger.warning(
                f"Transition {locked.phase} -> {to_phase} blocked for trip {trip.pk}: "
                f"{'; '.join(e.reasons)}"
            )
            raise

        now = timezone.now()
        updates = {"phase": to_phase, "version": F("version") + 1, "updated_at": now}
        if to_phase == Phase.DURING_TRIP:
            updates.update(started_at=now, started_by=actor)
        elif to_phase == Phase.POST_TRIP:
            updates.update(completed_at=now, completed_by=actor)

        updated = Trip.objects.filter(
            pk=locked.pk,
            version=locked.version,
            phase=locked.phase,
        ).update(**updates)
        if updated == 0:
            raise ConcurrentTransitionConflict(trip.pk, locked.version)

        TripTransition.objects.create(
            trip=locked,
            from_phase=locked.phase,
            to_phase=to_phase,
            transitioned_by=actor,
            metadata={**(metadata or {}), **snapshot},
        )

    logger.info(f"Trip {trip.pk} moved {locked.phase} -> {to_phase} by user {actor.pk}")
    trip.refresh_from_db()
    return trip


def transition_trip(trip: Trip, to_phase: str, actor, metadata: dict = None) -> Trip:
    """
    Move a trip to the next phase.

    Raises:
        TripAuthorizationError: Before any evaluation, if not permitted
        ConcurrentTransitionConflict: If the trip changed since it was read
        InvalidPhaseTransition: On skip, backward move or terminal source
        TransitionBlocked: If the target phase's gate fails
    """
    action = TRANSITION_ACTIONS.get(to_phase)
    if action is None:
        raise InvalidPhaseTransition(trip.phase, to_phase, check_transition(trip.phase, to_phase))
    authorize(action, trip, actor)
    return _transition(trip, to_phase, actor, metadata)


@requires_trip_action(TripAction.TRIGGER_START)
def start_trip(trip: Trip, actor, risk_inputs: RiskInputs = None) -> Trip:
    """
    Start a trip (before_departure -> during_trip).

    When risk_inputs are given, a fresh assessment is recorded first in
    the same transaction and kept even if the start is then blocked.
    Readiness, including the risk re-score, is evaluated on the locked row.
    """
    blocked = None
    with transaction.atomic():
        if risk_inputs is not None:
            _record_risk_assessment(trip, risk_inputs, actor)
        try:
            with transaction.atomic():
                _transition(trip, Phase.DURING_TRIP, actor, {"trigger": "start_trip"})
        except TransitionBlocked as e:
            blocked = e
    if blocked is not None:
        raise blocked
    return trip


@requires_trip_action(TripAction.TRIGGER_END)
def prepare_end_trip(trip: Trip, actor):
    """
    First step of ending a trip.

    Returns:
        Tuple of (CompletionStatus, confirmation_token). The token is bound
        to the trip id and its current version.
    """
    if trip.phase != Phase.DURING_TRIP:
        raise InvalidPhaseTransition(
            trip.phase, Phase.POST_TRIP, check_transition(trip.phase, Phase.POST_TRIP)
        )
    status = evaluate_completion(trip)
    token = signing.dumps({"trip": trip.pk, "version": trip.version}, salt=END_CONFIRMATION_SALT)
    return status, token


@requires_trip_action(TripAction.TRIGGER_END)
def end_trip(trip: Trip, actor, confirmation_token: str = None) -> Trip:
    """
    Second step of ending a trip (during_trip -> post_trip).

    Raises:
        ConfirmationRequired: Missing, tampered or expired token
        ConcurrentTransitionConflict: Token issued for another trip version
    """
    if not confirmation_token:
        raise ConfirmationRequired()

    try:
        payload = signing.loads(
            confirmation_token,
            salt=END_CONFIRMATION_SALT,
            max_age=int(get_setting("END_CONFIRMATION_MAX_AGE")),
        )
    except signing.SignatureExpired:
        raise ConfirmationRequired("Confirmation expired; prepare the end of trip again")
    except signing.BadSignature:
        raise ConfirmationRequired("Invalid confirmation token")

    if payload.get("trip") != trip.pk:
        raise ConfirmationRequired("Confirmation token was issued for another trip")
    if payload.get("version") != trip.version:
        raise ConcurrentTransitionConflict(trip.pk, payload.get("version"), trip.version)

    return _transition(trip, Phase.POST_TRIP, actor, {"trigger": "end_trip"})
