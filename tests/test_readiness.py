"""Tests for the departure readiness evaluator."""

import datetime

import pytest

from django_tripops.models import (
    ChecklistNamespace,
    CrewAssignment,
    GuideCertification,
    Passenger,
    RiskAssessment,
    Trip,
    TripTransition,
)
from django_tripops.readiness import evaluate_readiness
from django_tripops.services import (
    add_passenger,
    assign_crew,
    confirm_assignment,
    create_trip,
    set_checklist_item,
    set_passenger_status,
    submit_risk_assessment,
)
from tests.helpers import CLOUDY, STORM, TRIP_DATE


def uncheck_facility(trip, lead):
    set_checklist_item(trip, ChecklistNamespace.FACILITY, "meals", False, lead)


def uncheck_equipment(trip, lead):
    set_checklist_item(trip, ChecklistNamespace.EQUIPMENT, "radio", False, lead)


def withdraw_approval(trip, lead):
    Trip.objects.filter(pk=trip.pk).update(approved_at=None)
    trip.refresh_from_db()


def expire_certifications(trip, lead):
    GuideCertification.objects.filter(guide=lead).update(
        valid_until=TRIP_DATE - datetime.timedelta(days=1)
    )


@pytest.mark.django_db
class TestEvaluateReadiness:
    def test_ready_trip_can_start(self, ready_trip):
        status = evaluate_readiness(ready_trip)

        assert status.can_start is True
        assert status.reasons == []
        assert status.risk["score"] == 10

    def test_fresh_trip_lists_every_reason_in_order(self, trip):
        status = evaluate_readiness(trip)

        assert status.can_start is False
        assert status.reasons == [
            "No confirmed crew to check in",
            "Facility checklist incomplete (0/2)",
            "Equipment checklist incomplete (0/2)",
            "No risk assessment submitted",
            "No confirmed crew to verify",
            "Trip not approved by admin",
        ]

    @pytest.mark.parametrize("break_check,flag,reason", [
        (uncheck_facility, "facility_complete", "Facility checklist incomplete (1/2)"),
        (uncheck_equipment, "equipment_complete", "Equipment checklist incomplete (1/2)"),
        (withdraw_approval, "admin_approved", "Trip not approved by admin"),
        (
            expire_certifications,
            "certifications_valid",
            "1 crew member(s) without a valid certification",
        ),
    ])
    def test_one_failing_check_adds_one_reason(self, ready_trip, lead, break_check, flag, reason):
        break_check(ready_trip, lead)

        status = evaluate_readiness(ready_trip)

        assert status.can_start is False
        assert getattr(status, flag) is False
        assert status.reasons == [reason]

    def test_attendance_requires_every_confirmed_guide(self, ready_trip, support):
        ready_trip.attendance.filter(guide=support).update(check_in_at=None)

        status = evaluate_readiness(ready_trip)

        assert status.attendance_checked_in is False
        assert status.reasons == ["Crew attendance: 1 of 2 checked in"]

    def test_excluded_items_never_counted(self, ops):
        trip = create_trip(
            code="menjangan-1120",
            name="Menjangan",
            trip_date=TRIP_DATE,
            actor=ops,
            facility_items={"meals": True, "hotel": False},
            equipment_items=[],
        )

        status = evaluate_readiness(trip)

        assert status.facility.total == 1
        assert status.facility.checked == 0
        assert status.equipment.total == 0
        assert status.equipment_complete is True

    def test_blocked_risk_forces_no_start(self, ready_trip, lead):
        submit_risk_assessment(ready_trip, STORM, lead)

        status = evaluate_readiness(ready_trip)

        assert status.can_start is False
        assert status.risk_ok is False
        assert status.risk["blocked"] is True
        assert status.reasons == ["Risk score 90 (critical) exceeds block threshold 70"]

    def test_only_latest_assessment_counts(self, ready_trip, lead):
        submit_risk_assessment(ready_trip, STORM, lead)
        submit_risk_assessment(ready_trip, CLOUDY, lead)

        status = evaluate_readiness(ready_trip)

        assert status.risk_ok is True
        assert status.risk["score"] == 5

    def test_latest_assessment_rescored_with_current_threshold(self, ready_trip, lead, settings):
        submit_risk_assessment(ready_trip, STORM, lead)
        settings.TRIPOPS_RISK_BLOCK_THRESHOLD = 95

        status = evaluate_readiness(ready_trip)

        assert status.risk_ok is True
        assert status.can_start is True

    def test_unavailable_provider_fails_only_its_check(self, ready_trip, settings):
        settings.TRIPOPS_CERTIFICATION_PROVIDER = "tests.providers.UnavailableCertificationProvider"

        status = evaluate_readiness(ready_trip)

        assert status.certifications_valid is False
        assert status.admin_approved is True
        assert status.reasons == ["Crew certifications could not be verified (timed out after 5.0s)"]

    def test_provider_bug_fails_only_its_check(self, ready_trip, settings):
        settings.TRIPOPS_CERTIFICATION_PROVIDER = "tests.providers.BrokenCertificationProvider"

        status = evaluate_readiness(ready_trip)

        assert status.reasons == ["Crew certifications could not be verified"]

    def test_expired_certification(self, ready_trip, support):
        GuideCertification.objects.filter(guide=support).update(
            valid_until=TRIP_DATE - datetime.timedelta(days=1)
        )

        status = evaluate_readiness(ready_trip)

        assert status.certifications_valid is False
        assert status.reasons == ["1 crew member(s) without a valid certification"]

    def test_certification_valid_on_trip_date(self, ready_trip, support):
        GuideCertification.objects.filter(guide=support).update(valid_until=TRIP_DATE)

        assert evaluate_readiness(ready_trip).certifications_valid is True

    def test_lead_is_informational(self, trip, ops, support):
        assign_crew(trip, support, CrewAssignment.Role.SUPPORT, ops)
        confirm_assignment(trip, support)

        status = evaluate_readiness(trip)

        assert status.has_confirmed_lead is False
        assert len(status.reasons) == 6

    def test_manifest_progress(self, ready_trip, ops, lead):
        first = add_passenger(ready_trip, "Sari Dewi", ops, phone="08123456789")
        add_passenger(ready_trip, "Made Arta", ops)
        set_passenger_status(ready_trip, first.pk, Passenger.Status.BOARDED, lead)

        status = evaluate_readiness(ready_trip)

        assert status.manifest.boarded == 1
        assert status.manifest.total == 2
        assert status.to_dict()["manifest"]["percentage"] == 50
        assert status.can_start is True

    def test_evaluation_never_writes(self, ready_trip):
        version = ready_trip.version
        assessments = RiskAssessment.objects.count()
        transitions = TripTransition.objects.count()

        evaluate_readiness(ready_trip)
        evaluate_readiness(ready_trip)

        ready_trip.refresh_from_db()
        assert ready_trip.version == version
        assert RiskAssessment.objects.count() == assessments
        assert TripTransition.objects.count() == transitions

    def test_to_dict(self, ready_trip):
        data = evaluate_readiness(ready_trip).to_dict()

        assert data["can_start"] is True
        assert set(data["checks"]) == {
            "attendance_checked_in",
            "facility_complete",
            "equipment_complete",
            "risk_ok",
            "certifications_valid",
            "admin_approved",
        }
        assert data["facility"] == {"checked": 2, "total": 2}
        assert data["has_confirmed_lead"] is True
