"""JSON views for trip operations.

The acting user is always request.user and is passed explicitly to the
services. Status codes:
    400 invalid input
    403 not permitted for the actor's trip role
    404 unknown trip
    409 blocked, invalid or conflicting transition
    428 end of trip not confirmed
    503 upstream collaborator unavailable
"""

import json
import logging
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from . import selectors, services
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
    TripOpsError,
    UpstreamUnavailable,
)
from .models import Trip
from .risk import RiskInputs

logger = logging.getLogger(__name__)

RISK_INPUT_FIELDS = (
    "wave_height",
    "wind_speed",
    "weather_condition",
    "crew_ready",
    "equipment_complete",
    "latitude",
    "longitude",
)

REQUIRED_RISK_FIELDS = ("crew_ready", "equipment_complete")


def _json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        body = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _risk_inputs(data) -> RiskInputs:
    """Build RiskInputs from a JSON object; readiness flags must be stated explicitly."""
    if not isinstance(data, dict):
        raise RiskInputError(["risk must be a JSON object"])

    errors = [f"Unknown field '{name}'" for name in sorted(set(data) - set(RISK_INPUT_FIELDS))]
    errors += [f"{name} is required" for name in REQUIRED_RISK_FIELDS if name not in data]
    if errors:
        raise RiskInputError(errors)
    return RiskInputs(**data)


def _transition_ok(trip: Trip) -> JsonResponse:
    return JsonResponse({"ok": True, "phase": trip.phase, "version": trip.version})


def trip_endpoint(view_func):
    """Resolve the trip and translate trip-operation errors into JSON responses."""
    @wraps(view_func)
    def wrapper(request, trip_id, *args, **kwargs):
        try:
            trip = Trip.objects.get(pk=trip_id)
        except Trip.DoesNotExist:
            return JsonResponse({"error": f"Trip {trip_id} not found"}, status=404)

        try:
            return view_func(request, trip, *args, **kwargs)
        except PermissionDenied as e:
            return JsonResponse({"error": str(e)}, status=403)
        except RiskInputError as e:
            return JsonResponse({"error": str(e), "errors": e.errors}, status=400)
        except ValidationError as e:
            return JsonResponse({"error": "; ".join(e.messages), "errors": e.messages}, status=400)
        except (ChecklistError, CrewAssignmentError, ManifestError, AttendanceError, TaskError) as e:
            return JsonResponse({"error": str(e)}, status=400)
        except TransitionBlocked as e:
            return JsonResponse(
                {"ok": False, "reason": str(e), "reasons": e.reasons},
                status=409,
            )
        except (ConcurrentTransitionConflict, InvalidPhaseTransition) as e:
            return JsonResponse({"ok": False, "reason": str(e)}, status=409)
        except ConfirmationRequired as e:
            return JsonResponse({"ok": False, "reason": e.reason}, status=428)
        except UpstreamUnavailable as e:
            logger.warning(f"Upstream unavailable for trip {trip.pk}: {e}")
            return JsonResponse({"error": str(e)}, status=503)
        except TripOpsError as e:
            return JsonResponse({"error": str(e)}, status=409)
    return wrapper


@login_required
@require_http_methods(["GET"])
@trip_endpoint
def readiness(request, trip):
    status = selectors.get_readiness(trip, request.user)
    return JsonResponse(status.to_dict())


@login_required
@require_http_methods(["POST"])
@trip_endpoint
def risk_assessments(request, trip):
    inputs = _risk_inputs(_json_body(request))
    assessment, result = services.submit_risk_assessment(trip, inputs, request.user)
    return JsonResponse({"id": assessment.pk, **result.to_dict()}, status=201)


@login_required
@require_http_methods(["GET"])
@trip_endpoint
def suggest_risk_inputs(request, trip):
    conditions = services.suggest_risk_inputs(trip, request.user)
    return JsonResponse(conditions.to_dict())


@login_required
@require_http_methods(["POST"])
@trip_endpoint
def start(request, trip):
    body = _json_body(request)
    risk = body.get("risk")
    risk_inputs = _risk_inputs(risk) if risk is not None else None
    trip = services.start_trip(trip, request.user, risk_inputs=risk_inputs)
    return _transition_ok(trip)


@login_required
@require_http_methods(["GET"])
@trip_endpoint
def completion(request, trip):
    status = selectors.get_completion(trip, request.user)
    return JsonResponse(status.to_dict())


@login_required
@require_http_methods(["POST"])
@trip_endpoint
def prepare_end(request, trip):
    status, token = services.prepare_end_trip(trip, request.user)
    return JsonResponse({"completion": status.to_dict(), "confirmation_token": token})


@login_required
@require_http_methods(["POST"])
@trip_endpoint
def end(request, trip):
    body = _json_body(request)
    trip = services.end_trip(trip, request.user, body.get("confirmation_token"))
    return _transition_ok(trip)


@login_required
@require_http_methods(["PUT"])
@trip_endpoint
def checklist_item(request, trip, namespace, item_code):
    body = _json_body(request)
    checked = body.get("checked")
    if not isinstance(checked, bool):
        raise ValidationError("'checked' must be true or false")
    item = services.set_checklist_item(trip, namespace, item_code, checked, request.user)
    return JsonResponse({
        "namespace": item.namespace,
        "code": item.code,
        "included": item.included,
        "checked": item.checked,
    })


@login_required
@require_http_methods(["GET"])
@trip_endpoint
def manifest(request, trip):
    return JsonResponse({"passengers": selectors.get_manifest(trip, request.user)})


@login_required
@require_http_methods(["GET"])
@trip_endpoint
def transitions(request, trip):
    return JsonResponse({
        "phase": trip.phase,
        "transitions": selectors.get_transition_history(trip, request.user),
    })
