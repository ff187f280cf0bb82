"""Shared fixtures for django-tripops tests."""

import pytest

from django_tripops.conf import clear_provider_cache
from django_tripops.models import CrewAssignment
from django_tripops.services import (
    assign_crew,
    confirm_assignment,
    create_trip,
    start_trip,
)
from tests.helpers import TRIP_DATE, make_ready


@pytest.fixture(autouse=True)
def _fresh_providers():
    clear_provider_cache()
    yield
    clear_provider_cache()


@pytest.fixture
def ops(db, django_user_model):
    return django_user_model.objects.create_superuser(
        username="ops", password="test", email="ops@example.com"
    )


@pytest.fixture
def lead(db, django_user_model):
    return django_user_model.objects.create_user(username="lead", password="test")


@pytest.fixture
def support(db, django_user_model):
    return django_user_model.objects.create_user(username="support", password="test")


@pytest.fixture
def outsider(db, django_user_model):
    return django_user_model.objects.create_user(username="outsider", password="test")


@pytest.fixture
def trip(ops):
    """A pre_trip trip with two facility and two equipment items."""
    return create_trip(
        code="nusa-penida-1120",
        name="Nusa Penida Snorkeling",
        trip_date=TRIP_DATE,
        actor=ops,
        facility_items=["meals", "transport"],
        equipment_items=["life_jacket", "radio"],
        latitude=-8.73,
        longitude=115.54,
    )


@pytest.fixture
def crewed_trip(trip, ops, lead, support):
    """Lead and support assigned and confirmed; trip is before_departure."""
    assign_crew(trip, lead, CrewAssignment.Role.LEAD, ops)
    assign_crew(trip, support, CrewAssignment.Role.SUPPORT, ops)
    confirm_assignment(trip, support)
    confirm_assignment(trip, lead)
    return trip


@pytest.fixture
def ready_trip(crewed_trip, ops, lead, support):
    """Every readiness check passes."""
    return make_ready(crewed_trip, ops, lead, support)


@pytest.fixture
def started_trip(ready_trip, lead):
    return start_trip(ready_trip, lead)
