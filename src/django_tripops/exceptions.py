"""Custom exceptions for django-tripops."""

from django.core.exceptions import PermissionDenied, ValidationError


class TripOpsError(Exception):
    """Base exception for trip operation errors."""
    pass


class RiskInputError(TripOpsError, ValidationError):
    """Raised when risk-assessment inputs are malformed or out of range."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        ValidationError.__init__(self, errors)

    def __str__(self):
        return "Invalid risk inputs: " + "; ".join(self.errors)


class TripAuthorizationError(TripOpsError, PermissionDenied):
    """Raised when an actor's trip role does not allow an action."""

    def __init__(self, action: str, roles=None):
        self.action = action
        self.roles = sorted(str(role) for role in (roles or []))
        held = ", ".join(self.roles) or "none"
        super().__init__(f"Action '{action}' not permitted for trip role(s): {held}")


class InvalidPhaseTransition(TripOpsError):
    """Raised when a phase change skips, reverses, or leaves a terminal phase."""

    def __init__(self, from_phase: str, to_phase: str, reason: str = None):
        self.from_phase = from_phase
        self.to_phase = to_phase
        self.reason = reason or f"Cannot transition from '{from_phase}' to '{to_phase}'"
        super().__init__(self.reason)


class TransitionBlocked(TripOpsError):
    """Raised when a phase gate has outstanding required items."""

    def __init__(self, reasons: list[str], status=None):
        self.reasons = reasons
        self.status = status
        message = "Transition blocked: " + "; ".join(reasons)
        super().__init__(message)


class ConcurrentTransitionConflict(TripOpsError):
    """Raised when the trip changed between the caller's read and the transition."""

    def __init__(self, trip_id, expected_version=None, actual_version=None):
        self.trip_id = trip_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Trip {trip_id} state changed (expected version {expected_version}, "
            f"found {actual_version}); reload and try again"
        )


class ConfirmationRequired(TripOpsError):
    """Raised when ending a trip without a valid confirmation token."""

    def __init__(self, reason: str = "Ending a trip requires explicit confirmation"):
        self.reason = reason
        super().__init__(reason)


class UpstreamUnavailable(TripOpsError):
    """Raised by providers when a collaborator fails or times out."""

    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} unavailable: {reason}")


class ProviderLoadError(TripOpsError):
    """Raised when a configured provider cannot be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load provider '{path}': {reason}")


class ChecklistError(TripOpsError):
    """Error related to facility/equipment checklist items."""
    pass


class CrewAssignmentError(TripOpsError):
    """Error related to crew assignment status changes."""
    pass


class ManifestError(TripOpsError):
    """Error related to passenger manifest updates."""
    pass


class AttendanceError(TripOpsError):
    """Error related to crew check-in/check-out."""
    pass


class TaskError(TripOpsError):
    """Error related to trip tasks."""
    pass


class TripCompletedError(TripOpsError):
    """Raised when a completed trip's records are written to."""

    def __init__(self, trip_id, what: str):
        self.trip_id = trip_id
        self.what = what
        super().__init__(f"Cannot change {what} of completed trip {trip_id}")


class ImmutableAssessmentError(TripOpsError):
    """Raised when attempting to modify a stored risk assessment."""

    def __init__(self, assessment_id):
        self.assessment_id = assessment_id
        super().__init__(
            f"Cannot modify risk assessment {assessment_id} - assessments are immutable. "
            "Submit a new assessment instead."
        )
