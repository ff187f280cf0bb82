"""Shared test data for django-tripops tests."""

import datetime

from django_tripops.models import GuideCertification
from django_tripops.risk import RiskInputs
from django_tripops.services import (
    approve_trip,
    check_in_attendance,
    set_checklist_item,
    submit_risk_assessment,
)

TRIP_DATE = datetime.date(2026, 11, 20)

SAFE_CONDITIONS = RiskInputs(
    wave_height=0.5,
    wind_speed=15,
    weather_condition="clear",
    crew_ready=True,
    equipment_complete=True,
)

CLOUDY = RiskInputs(weather_condition="cloudy", crew_ready=True, equipment_complete=True)

STORM = RiskInputs(
    weather_condition="stormy",
    wind_speed=80,
    crew_ready=True,
    equipment_complete=True,
)


def make_ready(trip, ops, lead, support, risk=SAFE_CONDITIONS):
    """Satisfy every readiness check on a crewed trip."""
    for guide in (lead, support):
        GuideCertification.objects.create(guide=guide, name="Marine guide licence")
        check_in_attendance(trip, guide)
    for item in trip.checklist_items.filter(included=True):
        set_checklist_item(trip, item.namespace, item.code, True, lead)
    approve_trip(trip, ops)
    if risk is not None:
        submit_risk_assessment(trip, risk, lead)
    return trip
