"""
Crew/role authorization for trip operations.

Every mutating service and every status read consults this module through
authorize() or the @requires_trip_action decorator. Authorization runs
before any evaluation or database write.

Roles (hierarchy levels as in django-rbac):
    80 = ops_admin   assigns crew, configures and approves trips
    40 = lead        the only role that triggers phase transitions
    20 = support     operational checklists, manifest, attendance
     0 = none        not crew on this trip

Usage:
    @requires_trip_action(TripAction.EDIT_CHECKLIST)
    def set_checklist_item(trip, namespace, code, checked, actor):
        ...
"""

import inspect
from functools import wraps

from django.db import models

from .conf import get_setting
from .exceptions import TripAuthorizationError


class TripRole(models.TextChoices):
    NONE = "none", "Not crew"
    SUPPORT = "support", "Support guide"
    LEAD = "lead", "Lead guide"
    OPS_ADMIN = "ops_admin", "Operations admin"


ROLE_LEVELS = {
    TripRole.NONE: 0,
    TripRole.SUPPORT: 20,
    TripRole.LEAD: 40,
    TripRole.OPS_ADMIN: 80,
}


class TripAction(models.TextChoices):
    CONFIRM_OWN_ASSIGNMENT = "confirm_own_assignment", "Confirm or reject own assignment"
    EDIT_CHECKLIST = "edit_checklist", "Edit facility/equipment checklist"
    SUBMIT_RISK_ASSESSMENT = "submit_risk_assessment", "Submit risk assessment"
    UPDATE_MANIFEST = "update_manifest", "Update passenger manifest"
    RECORD_ATTENDANCE = "record_attendance", "Record attendance"
    MANAGE_TASKS = "manage_tasks", "Manage trip tasks"
    UPLOAD_DOCUMENTATION = "upload_documentation", "Upload documentation"
    RECORD_HANDOVER = "record_handover", "Record logistics handover"
    SUBMIT_EXPENSE = "submit_expense", "Submit expense"
    CALCULATE_PAYMENT_SPLIT = "calculate_payment_split", "Calculate payment split"
    TRIGGER_DEPARTURE_PREP = "trigger_departure_prep", "Move trip to before departure"
    TRIGGER_START = "trigger_start", "Start trip"
    TRIGGER_END = "trigger_end", "End trip"
    MANAGE_CREW = "manage_crew", "Assign and remove crew"
    CONFIGURE_TRIP = "configure_trip", "Configure trip"
    APPROVE_TRIP = "approve_trip", "Approve trip"
    VIEW_STATUS = "view_status", "View readiness/completion status"
    VIEW_UNMASKED_PASSENGERS = "view_unmasked_passengers", "View unmasked passenger data"


_CREW = frozenset({TripRole.SUPPORT, TripRole.LEAD})
_CREW_AND_OPS = frozenset({TripRole.SUPPORT, TripRole.LEAD, TripRole.OPS_ADMIN})
_LEAD = frozenset({TripRole.LEAD})
_OPS = frozenset({TripRole.OPS_ADMIN})

PERMISSIONS: dict[str, frozenset] = {
    TripAction.CONFIRM_OWN_ASSIGNMENT: _CREW,
    TripAction.EDIT_CHECKLIST: _CREW_AND_OPS,
    TripAction.SUBMIT_RISK_ASSESSMENT: _CREW,
    TripAction.UPDATE_MANIFEST: _CREW,
    TripAction.RECORD_ATTENDANCE: _CREW,
    TripAction.MANAGE_TASKS: _CREW_AND_OPS,
    TripAction.UPLOAD_DOCUMENTATION: _CREW,
    TripAction.RECORD_HANDOVER: _CREW_AND_OPS,
    TripAction.SUBMIT_EXPENSE: _CREW,
    TripAction.CALCULATE_PAYMENT_SPLIT: frozenset({TripRole.LEAD, TripRole.OPS_ADMIN}),
    TripAction.TRIGGER_DEPARTURE_PREP: _LEAD,
    TripAction.TRIGGER_START: _LEAD,
    TripAction.TRIGGER_END: _LEAD,
    TripAction.MANAGE_CREW: _OPS,
    TripAction.CONFIGURE_TRIP: _OPS,
    TripAction.APPROVE_TRIP: _OPS,
    TripAction.VIEW_STATUS: _CREW_AND_OPS,
}


def role_level(role: str) -> int:
    return ROLE_LEVELS.get(role, 0)


def can_perform(action: str, role: str) -> bool:
    """
    Whether a single trip role may perform an action.

    view_unmasked_passengers is tiered: any role at or above
    TRIPOPS_UNMASKED_PASSENGER_MIN_LEVEL may see raw passenger data.
    """
    if action == TripAction.VIEW_UNMASKED_PASSENGERS:
        return role_level(role) >= int(get_setting("UNMASKED_PASSENGER_MIN_LEVEL"))
    return role in PERMISSIONS.get(action, frozenset())


def resolve_roles(trip, user, include_pending: bool = False) -> frozenset:
    """
    Resolve a user's roles on a trip.

    Crew roles come from the user's assignment: confirmed only, or any
    non-rejected assignment when include_pending is set (needed to confirm
    an assignment in the first place). Superusers and holders of the
    django_tripops.manage_crew permission are ops_admin on every trip.
    """
    from .models import CrewAssignment

    if user is None or not getattr(user, "is_authenticated", False):
        return frozenset({TripRole.NONE})

    roles = set()
    if user.is_superuser or user.has_perm("django_tripops.manage_crew"):
        roles.add(TripRole.OPS_ADMIN)

    statuses = [CrewAssignment.Status.CONFIRMED]
    if include_pending:
        statuses.append(CrewAssignment.Status.ASSIGNED)

    assignment = (
        CrewAssignment.objects.filter(trip=trip, guide=user, status__in=statuses)
        .only("role")
        .first()
    )
    if assignment is not None:
        roles.add(TripRole(assignment.role))

    return frozenset(roles or {TripRole.NONE})


def authorize(action: str, trip, user, include_pending: bool = False) -> frozenset:
    """
    Raise TripAuthorizationError unless one of the user's trip roles allows action.

    Returns the resolved roles so callers can reuse them (e.g. for masking).
    """
    roles = resolve_roles(trip, user, include_pending=include_pending)
    if not any(can_perform(action, role) for role in roles):
        raise TripAuthorizationError(action, roles)
    return roles


def requires_trip_action(action: str, trip_from: str = "trip", actor_from: str = "actor",
                         include_pending: bool = False):
    """Decorator to authorize a trip service call before it runs.

    The wrapped function must take the trip and the acting user as
    arguments (positional or keyword), named by trip_from and actor_from.

    Raises:
        TripAuthorizationError: If the actor's trip roles do not allow action.
    """
    def decorator(func):
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs):
            bound = signature.bind_partial(*args, **kwargs)
            trip = bound.arguments.get(trip_from)
            actor = bound.arguments.get(actor_from)
            authorize(action, trip, actor, include_pending=include_pending)
            return func(*args, **kwargs)

        wrapper.trip_action = action
        return wrapper
    return decorator


def mask_name(name: str) -> str:
    """Keep the first and last letter: 'Budi Santoso' -> 'B**********o'."""
    if not name:
        return ""
    if len(name) <= 2:
        return "*" * len(name)
    return f"{name[0]}{'*' * (len(name) - 2)}{name[-1]}"


def mask_phone(phone: str) -> str:
    """Keep the last four digits: '+6281234567890' -> '****7890'."""
    if not phone:
        return ""
    if len(phone) <= 4:
        return "****"
    return f"****{phone[-4:]}"


def mask_passenger(data: dict) -> dict:
    """Return a copy of a passenger dict with personal data masked."""
    masked = dict(data)
    masked["name"] = mask_name(data.get("name", ""))
    masked["phone"] = mask_phone(data.get("phone", ""))
    masked["notes"] = ""
    masked["masked"] = True
    return masked
