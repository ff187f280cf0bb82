# Generated manually for standalone django-tripops package

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


PHASE_CHOICES = [
    ("pre_trip", "Pre-trip"),
    ("before_departure", "Before departure"),
    ("during_trip", "During trip"),
    ("post_trip", "Post-trip"),
]


def _id():
    return (
        "id",
        models.BigAutoField(
            auto_created=True,
            primary_key=True,
            serialize=False,
            verbose_name="ID",
        ),
    )


def _timestamps():
    return [
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


def _trip_fk(related_name):
    return (
        "trip",
        models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE,
            related_name=related_name,
            to="django_tripops.trip",
        ),
    )


def _user_fk(name, on_delete, related_name, nullable=True):
    options = {"null": True, "blank": True} if nullable else {}
    return (
        name,
        models.ForeignKey(
            on_delete=on_delete,
            related_name=related_name,
            to=settings.AUTH_USER_MODEL,
            **options,
        ),
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Trip",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "code",
                    models.SlugField(
                        help_text="Operator trip code (e.g., 'nusa-penida-0412')",
                        max_length=50,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(max_length=200)),
                ("trip_date", models.DateField(help_text="Scheduled departure date")),
                (
                    "phase",
                    models.CharField(
                        choices=PHASE_CHOICES,
                        default="pre_trip",
                        help_text="Current lifecycle phase",
                        max_length=20,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Bumped on every phase transition (optimistic concurrency)",
                    ),
                ),
                (
                    "documentation_url",
                    models.URLField(
                        blank=True,
                        help_text="Link to uploaded trip photos/documentation",
                        max_length=500,
                    ),
                ),
                (
                    "passenger_tracking",
                    models.BooleanField(
                        default=True,
                        help_text="Whether passenger return is tracked for completion",
                    ),
                ),
                (
                    "logistics_tracking",
                    models.BooleanField(
                        default=False,
                        help_text="Whether an inbound logistics handover is required for completion",
                    ),
                ),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                _user_fk("approved_by", django.db.models.deletion.SET_NULL, "approved_trips"),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                _user_fk("started_by", django.db.models.deletion.SET_NULL, "started_trips"),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                _user_fk("completed_by", django.db.models.deletion.SET_NULL, "completed_trips"),
            ],
            options={
                "ordering": ["-trip_date", "code"],
                "permissions": [
                    ("manage_crew", "Can assign and remove trip crew"),
                    ("approve_trip", "Can approve trips for departure"),
                ],
                "indexes": [
                    models.Index(fields=["phase"], name="tripops_trip_phase_idx"),
                    models.Index(fields=["trip_date"], name="tripops_trip_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TripChecklistItem",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "namespace",
                    models.CharField(
                        choices=[("facility", "Facility"), ("equipment", "Equipment")],
                        max_length=20,
                    ),
                ),
                ("code", models.CharField(max_length=50)),
                ("label", models.CharField(max_length=200)),
                (
                    "included",
                    models.BooleanField(
                        default=True,
                        help_text="Excluded items are informational and never block departure",
                    ),
                ),
                ("checked", models.BooleanField(default=False)),
                ("checked_at", models.DateTimeField(blank=True, null=True)),
                _user_fk("checked_by", django.db.models.deletion.SET_NULL, "+"),
                _trip_fk("checklist_items"),
            ],
            options={
                "ordering": ["namespace", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("trip", "namespace", "code"),
                        name="tripops_checklist_item_unique",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CrewAssignment",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "role",
                    models.CharField(
                        choices=[("lead", "Lead guide"), ("support", "Support guide")],
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("assigned", "Assigned"),
                            ("confirmed", "Confirmed"),
                            ("rejected", "Rejected"),
                        ],
                        default="assigned",
                        max_length=20,
                    ),
                ),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("rejected_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True)),
                _user_fk("assigned_by", django.db.models.deletion.SET_NULL, "+"),
                _user_fk(
                    "guide",
                    django.db.models.deletion.PROTECT,
                    "trip_assignments",
                    nullable=False,
                ),
                _trip_fk("crew"),
            ],
            options={
                "ordering": ["role", "id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("trip", "guide"),
                        name="tripops_crew_one_per_trip",
                    ),
                ],
                "indexes": [
                    models.Index(fields=["trip", "status"], name="tripops_crew_trip_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Passenger",
            fields=[
                _id(),
                *_timestamps(),
                ("position", models.PositiveIntegerField(default=0)),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, max_length=50)),
                (
                    "notes",
                    models.TextField(blank=True, help_text="Allergies, special requests"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("boarded", "Boarded"),
                            ("returned", "Returned"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("boarded_at", models.DateTimeField(blank=True, null=True)),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                _trip_fk("manifest"),
            ],
            options={
                "ordering": ["position", "id"],
            },
        ),
        migrations.CreateModel(
            name="RiskAssessment",
            fields=[
                _id(),
                *_timestamps(),
                ("wave_height", models.FloatField(blank=True, help_text="Metres", null=True)),
                ("wind_speed", models.FloatField(blank=True, help_text="km/h", null=True)),
                (
                    "weather_condition",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("clear", "Clear"),
                            ("cloudy", "Cloudy"),
                            ("rainy", "Rainy"),
                            ("stormy", "Stormy"),
                        ],
                        max_length=20,
                    ),
                ),
                ("crew_ready", models.BooleanField()),
                ("equipment_complete", models.BooleanField()),
                ("latitude", models.FloatField(blank=True, null=True)),
                ("longitude", models.FloatField(blank=True, null=True)),
                ("risk_score", models.PositiveSmallIntegerField()),
                (
                    "risk_level",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("critical", "Critical"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_blocked", models.BooleanField()),
                _user_fk("assessed_by", django.db.models.deletion.SET_NULL, "+"),
                _trip_fk("risk_assessments"),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "get_latest_by": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="AttendanceRecord",
            fields=[
                _id(),
                *_timestamps(),
                ("check_in_at", models.DateTimeField(blank=True, null=True)),
                ("check_out_at", models.DateTimeField(blank=True, null=True)),
                _user_fk(
                    "guide",
                    django.db.models.deletion.PROTECT,
                    "trip_attendance",
                    nullable=False,
                ),
                _trip_fk("attendance"),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("trip", "guide"),
                        name="tripops_attendance_one_per_guide",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="GuideCertification",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200)),
                ("certificate_number", models.CharField(blank=True, max_length=100)),
                (
                    "valid_until",
                    models.DateField(blank=True, help_text="Empty = no expiry", null=True),
                ),
                (
                    "guide",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="guide_certifications",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["guide", "name"],
            },
        ),
        migrations.CreateModel(
            name="TripTask",
            fields=[
                _id(),
                *_timestamps(),
                ("label", models.CharField(max_length=200)),
                ("required", models.BooleanField(default=False)),
                ("completed", models.BooleanField(default=False)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("position", models.PositiveIntegerField(default=0)),
                _user_fk("completed_by", django.db.models.deletion.SET_NULL, "+"),
                _trip_fk("tasks"),
            ],
            options={
                "ordering": ["position", "id"],
            },
        ),
        migrations.CreateModel(
            name="LogisticsHandover",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "handover_type",
                    models.CharField(
                        choices=[("outbound", "Outbound"), ("inbound", "Inbound")],
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "verified_by_both",
                    models.BooleanField(
                        default=False,
                        help_text="Both warehouse and crew signed off",
                    ),
                ),
                _trip_fk("handovers"),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="TripExpense",
            fields=[
                _id(),
                *_timestamps(),
                ("category", models.CharField(max_length=50)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("description", models.TextField(blank=True)),
                _user_fk(
                    "submitted_by",
                    django.db.models.deletion.PROTECT,
                    "+",
                    nullable=False,
                ),
                _trip_fk("expenses"),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentSplit",
            fields=[
                _id(),
                *_timestamps(),
                ("share_percentage", models.DecimalField(decimal_places=2, max_digits=5)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                _user_fk("guide", django.db.models.deletion.PROTECT, "+", nullable=False),
                _trip_fk("payment_splits"),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("trip", "guide"),
                        name="tripops_payment_split_one_per_guide",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TripTransition",
            fields=[
                _id(),
                *_timestamps(),
                ("from_phase", models.CharField(choices=PHASE_CHOICES, max_length=20)),
                ("to_phase", models.CharField(choices=PHASE_CHOICES, max_length=20)),
                ("transitioned_at", models.DateTimeField(auto_now_add=True)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                _user_fk(
                    "transitioned_by",
                    django.db.models.deletion.SET_NULL,
                    "trip_transitions",
                ),
                _trip_fk("transitions"),
            ],
            options={
                "ordering": ["-transitioned_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["trip", "-transitioned_at"],
                        name="tripops_transition_trip_idx",
                    ),
                ],
            },
        ),
    ]
