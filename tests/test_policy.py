"""Tests for the crew/role authorization policy."""

import pytest
from django.contrib.auth.models import Permission
from django.core.exceptions import PermissionDenied

from django_tripops.exceptions import TripAuthorizationError
from django_tripops.models import CrewAssignment
from django_tripops.policy import (
    TripAction,
    TripRole,
    authorize,
    can_perform,
    mask_name,
    mask_passenger,
    mask_phone,
    requires_trip_action,
    resolve_roles,
)
from django_tripops.services import assign_crew


class TestCanPerform:
    """can_perform is a pure lookup."""

    def test_only_lead_triggers_transitions(self):
        for action in (
            TripAction.TRIGGER_DEPARTURE_PREP,
            TripAction.TRIGGER_START,
            TripAction.TRIGGER_END,
        ):
            assert can_perform(action, TripRole.LEAD)
            assert not can_perform(action, TripRole.SUPPORT)
            assert not can_perform(action, TripRole.OPS_ADMIN)
            assert not can_perform(action, TripRole.NONE)

    def test_crew_edits_checklists(self):
        assert can_perform(TripAction.EDIT_CHECKLIST, TripRole.LEAD)
        assert can_perform(TripAction.EDIT_CHECKLIST, TripRole.SUPPORT)
        assert not can_perform(TripAction.EDIT_CHECKLIST, TripRole.NONE)

    def test_only_ops_manages_crew(self):
        assert can_perform(TripAction.MANAGE_CREW, TripRole.OPS_ADMIN)
        assert not can_perform(TripAction.MANAGE_CREW, TripRole.LEAD)
        assert not can_perform(TripAction.MANAGE_CREW, TripRole.SUPPORT)

    def test_unmasked_passengers_for_lead_and_ops(self):
        assert can_perform(TripAction.VIEW_UNMASKED_PASSENGERS, TripRole.LEAD)
        assert can_perform(TripAction.VIEW_UNMASKED_PASSENGERS, TripRole.OPS_ADMIN)
        assert not can_perform(TripAction.VIEW_UNMASKED_PASSENGERS, TripRole.SUPPORT)

    def test_unmasked_tier_is_configurable(self, settings):
        settings.TRIPOPS_UNMASKED_PASSENGER_MIN_LEVEL = 20

        assert can_perform(TripAction.VIEW_UNMASKED_PASSENGERS, TripRole.SUPPORT)
        assert not can_perform(TripAction.VIEW_UNMASKED_PASSENGERS, TripRole.NONE)

    def test_unknown_action_denied(self):
        assert not can_perform("launch_rockets", TripRole.OPS_ADMIN)


@pytest.mark.django_db
class TestResolveRoles:
    def test_outsider_has_no_role(self, trip, outsider):
        assert resolve_roles(trip, outsider) == frozenset({TripRole.NONE})

    def test_anonymous_has_no_role(self, trip):
        assert resolve_roles(trip, None) == frozenset({TripRole.NONE})

    def test_superuser_is_ops_admin(self, trip, ops):
        assert resolve_roles(trip, ops) == frozenset({TripRole.OPS_ADMIN})

    def test_manage_crew_permission_is_ops_admin(self, trip, outsider):
        outsider.user_permissions.add(
            Permission.objects.get(codename="manage_crew", content_type__app_label="django_tripops")
        )

        assert TripRole.OPS_ADMIN in resolve_roles(trip, outsider)

    def test_pending_assignment_needs_include_pending(self, trip, ops, lead):
        assign_crew(trip, lead, CrewAssignment.Role.LEAD, ops)

        assert resolve_roles(trip, lead) == frozenset({TripRole.NONE})
        assert resolve_roles(trip, lead, include_pending=True) == frozenset({TripRole.LEAD})

    def test_confirmed_lead(self, crewed_trip, lead, support):
        assert resolve_roles(crewed_trip, lead) == frozenset({TripRole.LEAD})
        assert resolve_roles(crewed_trip, support) == frozenset({TripRole.SUPPORT})

    def test_rejected_assignment_grants_nothing(self, trip, ops, lead):
        assignment = assign_crew(trip, lead, CrewAssignment.Role.LEAD, ops)
        assignment.status = CrewAssignment.Status.REJECTED
        assignment.save()

        assert resolve_roles(trip, lead, include_pending=True) == frozenset({TripRole.NONE})


@pytest.mark.django_db
class TestAuthorize:
    def test_denied_raises(self, crewed_trip, support):
        with pytest.raises(TripAuthorizationError) as exc_info:
            authorize(TripAction.TRIGGER_START, crewed_trip, support)

        assert exc_info.value.action == TripAction.TRIGGER_START
        assert exc_info.value.roles == ["support"]

    def test_authorization_error_is_permission_denied(self, trip, outsider):
        with pytest.raises(PermissionDenied):
            authorize(TripAction.VIEW_STATUS, trip, outsider)

    def test_allowed_returns_roles(self, crewed_trip, lead):
        assert authorize(TripAction.TRIGGER_START, crewed_trip, lead) == frozenset({TripRole.LEAD})

    def test_decorator_runs_before_the_service(self, trip, outsider):
        calls = []

        @requires_trip_action(TripAction.EDIT_CHECKLIST)
        def toggle(trip, actor):
            calls.append(actor)

        with pytest.raises(TripAuthorizationError):
            toggle(trip, actor=outsider)

        assert calls == []

    def test_decorator_custom_argument_names(self, crewed_trip, lead):
        @requires_trip_action(TripAction.TRIGGER_START, trip_from="the_trip", actor_from="user")
        def go(the_trip, user):
            return "went"

        assert go(crewed_trip, lead) == "went"


class TestMasking:
    def test_mask_name_keeps_first_and_last(self):
        assert mask_name("Budi Santoso") == "B**********o"

    def test_mask_short_name(self):
        assert mask_name("Al") == "**"
        assert mask_name("") == ""

    def test_mask_phone_keeps_last_four(self):
        assert mask_phone("+6281234567890") == "****7890"
        assert mask_phone("123") == "****"
        assert mask_phone("") == ""

    def test_mask_passenger_hides_notes(self):
        masked = mask_passenger({"id": 1, "name": "Sari", "phone": "08123456789", "notes": "Peanut allergy"})

        assert masked == {
            "id": 1,
            "name": "S**i",
            "phone": "****6789",
            "notes": "",
            "masked": True,
        }
