"""Models for django-tripops.

Provides:
- Trip: A scheduled guided tour and its lifecycle phase
- TripChecklistItem: Facility/equipment checklist snapshot per trip
- CrewAssignment: Guide assigned to a trip as lead or support
- Passenger: Manifest entry with forward-only boarding status
- RiskAssessment: Immutable pre-departure risk snapshot
- AttendanceRecord: Crew check-in/check-out for a trip
- GuideCertification: Guide licences backing the certification check
- TripTask, LogisticsHandover, TripExpense, PaymentSplit: Post-trip obligations
- TripTransition: Audit log of all phase changes
"""

from django.conf import settings
from django.db import models

from .exceptions import ImmutableAssessmentError
from .phases import INITIAL_PHASE, Phase
from .risk import RiskLevel, WeatherCondition


class TripOpsBaseModel(models.Model):
    """Base model with timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class ChecklistNamespace(models.TextChoices):
    FACILITY = "facility", "Facility"
    EQUIPMENT = "equipment", "Equipment"


class FacilityItem(models.TextChoices):
    MEALS = "meals", "Meals"
    DRINKING_WATER = "drinking_water", "Drinking water"
    SNACKS = "snacks", "Snacks"
    HOTEL = "hotel", "Hotel"
    TRANSPORT = "transport", "Transport"
    SNORKEL_GEAR = "snorkel_gear", "Snorkel gear"
    DOCUMENTATION_SERVICE = "documentation_service", "Documentation service"
    INSURANCE = "insurance", "Insurance"


class EquipmentItem(models.TextChoices):
    LIFE_JACKET = "life_jacket", "Life jacket"
    RADIO = "radio", "Radio"
    FIRST_AID = "first_aid", "First aid kit"
    FIRE_EXTINGUISHER = "fire_extinguisher", "Fire extinguisher"
    ANCHOR = "anchor", "Anchor"
    ROPE = "rope", "Mooring rope"
    PADDLE = "paddle", "Spare paddle"


NAMESPACE_ITEM_CODES = {
    ChecklistNamespace.FACILITY: FacilityItem,
    ChecklistNamespace.EQUIPMENT: EquipmentItem,
}


class Trip(TripOpsBaseModel):
    """
    A scheduled guided tour.

    phase is the single stored lifecycle field; it only changes through
    services.transition_trip, which bumps version on every change.
    """

    code = models.SlugField(
        max_length=50,
        unique=True,
        help_text="Operator trip code (e.g., 'nusa-penida-0412')"
    )
    name = models.CharField(max_length=200)
    trip_date = models.DateField(help_text="Scheduled departure date")
    phase = models.CharField(
        max_length=20,
        choices=Phase.choices,
        default=INITIAL_PHASE,
        help_text="Current lifecycle phase"
    )
    version = models.PositiveIntegerField(
        default=0,
        help_text="Bumped on every phase transition (optimistic concurrency)"
    )
    documentation_url = models.URLField(
        max_length=500,
        blank=True,
        help_text="Link to uploaded trip photos/documentation"
    )
    passenger_tracking = models.BooleanField(
        default=True,
        help_text="Whether passenger return is tracked for completion"
    )
    logistics_tracking = models.BooleanField(
        default=False,
        help_text="Whether an inbound logistics handover is required for completion"
    )
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_trips",
    )
    started_at = models.DateTimeField(null=True, blank=True)
    started_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="started_trips",
    )
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="completed_trips",
    )

    class Meta:
        ordering = ["-trip_date", "code"]
        indexes = [
            models.Index(fields=["phase"], name="tripops_trip_phase_idx"),
            models.Index(fields=["trip_date"], name="tripops_trip_date_idx"),
        ]
        permissions = [
            ("manage_crew", "Can assign and remove trip crew"),
            ("approve_trip", "Can approve trips for departure"),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def is_completed(self) -> bool:
        return self.phase == Phase.POST_TRIP


class TripChecklistItem(TripOpsBaseModel):
    """
    One facility or equipment item configured for a trip.

    The item set is a snapshot taken when the trip is created; only
    included items gate readiness.
    """

    trip = models.ForeignKey(
        Trip,
        on_delete=models.CASCADE,
        related_name="checklist_items",
    )
    namespace = models.CharField(max_length=20, choices=ChecklistNamespace.choices)
    code = models.CharField(max_length=50)
    label = models.CharField(max_length=200)
    included = models.BooleanField(
        default=True,
        help_text="Excluded items are informational and never block departure"
    )
    checked = models.BooleanField(default=False)
    checked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    checked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["namespace", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["trip", "namespace", "code"],
                name="tripops_checklist_item_unique",
            ),
        ]

    def __str__(self):
        return f"{self.trip.code}: {self.namespace}/{self.code}"


class CrewAssignment(TripOpsBaseModel):
    """Guide assigned to a trip. Never deleted, only status-transitioned."""

    class Role(models.TextChoices):
        LEAD = "lead", "Lead guide"
        SUPPORT = "support", "Support guide"

    class Status(models.TextChoices):
        ASSIGNED = "assigned", "Assigned"
        CONFIRMED = "confirmed", "Confirmed"
        REJECTED = "rejected", "Rejected"

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="crew")
    guide = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="trip_assignments",
    )
    role = models.CharField(max_length=20, choices=Role.choices)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ASSIGNED,
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["role", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["trip", "guide"],
                name="tripops_crew_one_per_trip",
            ),
        ]
        indexes = [
            models.Index(fields=["trip", "status"], name="tripops_crew_trip_status_idx"),
        ]

    def __str__(self):
        return f"{self.trip.code}: {self.guide} ({self.role}, {self.status})"


class Passenger(TripOpsBaseModel):
    """Manifest entry. Status only moves pending -> boarded -> returned."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        BOARDED = "boarded", "Boarded"
        RETURNED = "returned", "Returned"

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="manifest")
    position = models.PositiveIntegerField(default=0)
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True, help_text="Allergies, special requests")
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    boarded_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return f"{self.name} ({self.status})"


class RiskAssessment(TripOpsBaseModel):
    """
    Pre-departure risk snapshot.

    Immutable once created; a trip accumulates assessments and only the
    latest one gates departure.
    """

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="risk_assessments")
    wave_height = models.FloatField(null=True, blank=True, help_text="Metres")
    wind_speed = models.FloatField(null=True, blank=True, help_text="km/h")
    weather_condition = models.CharField(
        max_length=20,
        choices=WeatherCondition.choices,
        blank=True,
    )
    crew_ready = models.BooleanField()
    equipment_complete = models.BooleanField()
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    risk_score = models.PositiveSmallIntegerField()
    risk_level = models.CharField(max_length=20, choices=RiskLevel.choices)
    is_blocked = models.BooleanField()
    assessed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["-created_at", "-id"]
        get_latest_by = ["created_at", "id"]

    def save(self, *args, **kwargs):
        """Enforce immutability - assessments are point-in-time records."""
        if not self._state.adding:
            raise ImmutableAssessmentError(self.pk)
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.trip.code}: risk {self.risk_score} ({self.risk_level})"


class AttendanceRecord(TripOpsBaseModel):
    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="attendance")
    guide = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="trip_attendance",
    )
    check_in_at = models.DateTimeField(null=True, blank=True)
    check_out_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["trip", "guide"],
                name="tripops_attendance_one_per_guide",
            ),
        ]

    def __str__(self):
        return f"{self.trip.code}: {self.guide}"


class GuideCertification(TripOpsBaseModel):
    """A guide licence or safety certification."""

    guide = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="guide_certifications",
    )
    name = models.CharField(max_length=200)
    certificate_number = models.CharField(max_length=100, blank=True)
    valid_until = models.DateField(null=True, blank=True, help_text="Empty = no expiry")

    class Meta:
        ordering = ["guide", "name"]

    def __str__(self):
        return f"{self.guide}: {self.name}"

    def is_valid_on(self, day) -> bool:
        return self.valid_until is None or self.valid_until >= day


class TripTask(TripOpsBaseModel):
    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="tasks")
    label = models.CharField(max_length=200)
    required = models.BooleanField(default=False)
    completed = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]

    def __str__(self):
        return self.label


class LogisticsHandover(TripOpsBaseModel):
    """Equipment/inventory handover between warehouse and crew."""

    class HandoverType(models.TextChoices):
        OUTBOUND = "outbound", "Outbound"
        INBOUND = "inbound", "Inbound"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="handovers")
    handover_type = models.CharField(max_length=20, choices=HandoverType.choices)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    verified_by_both = models.BooleanField(
        default=False,
        help_text="Both warehouse and crew signed off"
    )

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.trip.code}: {self.handover_type} ({self.status})"


class TripExpense(TripOpsBaseModel):
    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="expenses")
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
    )
    category = models.CharField(max_length=50)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.trip.code}: {self.category} {self.amount}"


class PaymentSplit(TripOpsBaseModel):
    """Share of the crew fee for one guide on a multi-guide trip."""

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="payment_splits")
    guide = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="+",
    )
    share_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    amount = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["trip", "guide"],
                name="tripops_payment_split_one_per_guide",
            ),
        ]

    def __str__(self):
        return f"{self.trip.code}: {self.guide} {self.amount}"


class TripTransition(TripOpsBaseModel):
    """
    Audit log of all phase changes.

    metadata holds the gate snapshot evaluated at transition time.
    """

    trip = models.ForeignKey(Trip, on_delete=models.CASCADE, related_name="transitions")
    from_phase = models.CharField(max_length=20, choices=Phase.choices)
    to_phase = models.CharField(max_length=20, choices=Phase.choices)
    transitioned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="trip_transitions",
    )
    transitioned_at = models.DateTimeField(auto_now_add=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-transitioned_at", "-id"]
        indexes = [
            models.Index(fields=["trip", "-transitioned_at"], name="tripops_transition_trip_idx"),
        ]

    def __str__(self):
        return f"{self.trip.code}: {self.from_phase} -> {self.to_phase}"
