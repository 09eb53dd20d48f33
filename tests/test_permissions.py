# tests/test_permissions.py
import pytest

from app.db.models import Role, Status
from app.services.errors import StatusChangeForbidden
from app.services.permissions import (
    Actor,
    allowed_update,
    can_access,
    is_reopening,
    message_status_change,
)

CLIENT = Actor(id=1, role=Role.client)
TECH = Actor(id=2, role=Role.technician)
ADMIN = Actor(id=3, role=Role.admin)


def test_client_sees_only_own_tickets():
    assert can_access(CLIENT, created_by_id=1, assigned_user_id=None)
    assert not can_access(CLIENT, created_by_id=99, assigned_user_id=1)


def test_technician_sees_ticket_via_account_or_profile():
    assert can_access(TECH, created_by_id=1, assigned_user_id=2)
    assert can_access(TECH, created_by_id=1, assigned_user_id=None, technician_user_id=2)
    assert not can_access(TECH, created_by_id=2, assigned_user_id=7, technician_user_id=7)


def test_admin_sees_everything():
    assert can_access(ADMIN, created_by_id=1, assigned_user_id=None)


def test_technician_patch_keeps_only_status():
    patch = {"description": "x", "priority": "high", "status": Status.resolved, "due_date": None}
    assert allowed_update(Role.technician, patch) == {"status": Status.resolved}


def test_client_status_patch_limited():
    assert allowed_update(Role.client, {"status": Status.in_progress}) == {}
    assert allowed_update(Role.client, {"status": Status.resolved}) == {}
    assert allowed_update(Role.client, {"status": Status.closed}) == {"status": Status.closed}
    assert allowed_update(Role.client, {"status": Status.waiting_for_client}) == {
        "status": Status.waiting_for_client
    }


def test_client_cannot_assign_or_set_due_date():
    patch = {"assigned_user_id": 5, "due_date": None, "description": "more details"}
    assert allowed_update(Role.client, patch) == {"description": "more details"}


def test_admin_may_clear_due_date_but_not_priority():
    assert allowed_update(Role.admin, {"due_date": None, "priority": None}) == {"due_date": None}


def test_unknown_fields_are_dropped():
    assert allowed_update(Role.admin, {"created_by_id": 42, "title": "new"}) == {}


@pytest.mark.parametrize("requested", [Status.resolved, Status.closed])
def test_client_closing_via_message_is_forbidden(requested):
    with pytest.raises(StatusChangeForbidden):
        message_status_change(Role.client, Status.in_progress, requested)


@pytest.mark.parametrize("current", [Status.resolved, Status.closed])
def test_any_role_may_reopen(current):
    for role in Role:
        assert message_status_change(role, current, Status.in_progress) == Status.in_progress
    assert is_reopening(current, Status.in_progress)


def test_client_other_requests_are_ignored():
    assert message_status_change(Role.client, Status.new, Status.in_progress) is None
    assert message_status_change(Role.client, Status.new, Status.new) is None
    assert (
        message_status_change(Role.client, Status.in_progress, Status.waiting_for_client)
        == Status.waiting_for_client
    )


def test_staff_may_set_any_status():
    assert message_status_change(Role.technician, Status.new, Status.resolved) == Status.resolved
    assert message_status_change(Role.admin, Status.closed, Status.new) == Status.new
