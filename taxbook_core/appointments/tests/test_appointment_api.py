# taxbook_core/appointments/tests/test_appointment_api.py

import uuid
from datetime import timedelta

import pytest

from taxbook_core.appointments.models import Appointment, AppointmentStatus

pytestmark = pytest.mark.django_db

BASE = "/api/v1/appointments/"


def _payload(slot, **overrides):
    starts, ends = slot
    data = {
        "client_id": str(uuid.uuid4()),
        "service_id": str(uuid.uuid4()),
        "starts_at": starts.isoformat(),
        "ends_at": ends.isoformat(),
    }
    data.update(overrides)
    return data


def test_requires_authentication(client):
    res = client.get(BASE)
    assert res.status_code in (401, 403)


def test_create_and_retrieve(api_client, user, slot):
    res = api_client.post(BASE, _payload(slot, notes="First visit"), format="json")
    assert res.status_code == 201, res.data
    assert res.data["status"] == "draft"
    assert res.data["allowed_transitions"] == ["confirm", "cancelDraft"]
    assert res.data["user_id"] == str(user.id)

    res = api_client.get(f"{BASE}{res.data['id']}/")
    assert res.status_code == 200, res.data
    assert res.data["notes"] == "First visit"


def test_create_with_missing_fields_lists_them(api_client):
    res = api_client.post(BASE, {}, format="json")

    assert res.status_code == 400, res.data
    err = res.data["error"]
    assert err["code"] == "validation_error"
    assert set(err["details"]) == {"client_id", "service_id", "starts_at", "ends_at"}
    assert err["request_id"]


def test_double_booking_returns_409(api_client, slot, appointment):
    res = api_client.post(BASE, _payload(slot), format="json")

    assert res.status_code == 409, res.data
    err = res.data["error"]
    assert err["code"] == "conflict"
    assert err["message"] == "This time overlaps another booking"
    assert err["details"] == {"rule_id": "Appointment-prevent-double-booking", "field": "starts_at"}


def test_list_is_owner_scoped(api_client, admin_client, other_user, make_appointment, slot):
    starts, ends = slot
    mine = [
        make_appointment(),
        make_appointment(starts_at=starts + timedelta(days=1), ends_at=ends + timedelta(days=1)),
    ]
    make_appointment(user=other_user)

    res = api_client.get(BASE)
    assert res.status_code == 200, res.data
    assert res.data["count"] == 2
    assert [r["id"] for r in res.data["results"]] == [str(a.id) for a in mine]

    res = admin_client.get(BASE)
    assert res.data["count"] == 3


def test_list_pages_carry_page_numbers(api_client, make_appointment, slot):
    starts, ends = slot
    for day in range(3):
        make_appointment(starts_at=starts + timedelta(days=day), ends_at=ends + timedelta(days=day))

    res = api_client.get(BASE, {"page_size": 2, "page": 2})

    assert res.status_code == 200, res.data
    assert res.data["count"] == 3
    assert res.data["page"] == 2
    assert res.data["pages"] == 2
    assert res.data["next"] is None
    assert len(res.data["results"]) == 1


def test_list_filters(api_client, make_appointment, slot):
    starts, ends = slot
    a = make_appointment()
    b = make_appointment(
        starts_at=starts + timedelta(days=2),
        ends_at=ends + timedelta(days=2),
        status=AppointmentStatus.CONFIRMED,
    )

    res = api_client.get(BASE, {"status": "confirmed"})
    assert [r["id"] for r in res.data["results"]] == [str(b.id)]

    res = api_client.get(BASE, {"client_id": str(a.client_id)})
    assert [r["id"] for r in res.data["results"]] == [str(a.id)]

    res = api_client.get(BASE, {"starts_after": (starts + timedelta(days=1)).isoformat()})
    assert [r["id"] for r in res.data["results"]] == [str(b.id)]


def test_list_rejects_bad_filter(api_client):
    res = api_client.get(BASE, {"status": "teleported"})
    assert res.status_code == 400, res.data
    assert res.data["error"]["code"] == "validation_error"
    assert "status" in res.data["error"]["details"]


def test_patch_updates_fields_but_not_status(api_client, appointment):
    res = api_client.patch(f"{BASE}{appointment.id}/", {"notes": "Parking in back"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["notes"] == "Parking in back"

    res = api_client.patch(f"{BASE}{appointment.id}/", {"status": "completed"}, format="json")
    assert res.status_code == 400, res.data
    assert "status" in res.data["error"]["details"]

    appointment.refresh_from_db()
    assert appointment.status == AppointmentStatus.DRAFT


def test_delete(api_client, appointment):
    res = api_client.delete(f"{BASE}{appointment.id}/")
    assert res.status_code == 204
    assert not Appointment.objects.filter(id=appointment.id).exists()

    res = api_client.get(f"{BASE}{appointment.id}/")
    assert res.status_code == 404


def test_transition_then_repeat_is_409(api_client, appointment):
    url = f"{BASE}{appointment.id}/transition/"

    res = api_client.post(url, {"transition": "confirm"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == "confirmed"
    assert res.data["allowed_transitions"] == ["start", "cancel", "markNoShow"]

    res = api_client.post(url, {"transition": "confirm"}, format="json")
    assert res.status_code == 409, res.data
    err = res.data["error"]
    assert err["code"] == "state_violation"
    assert err["message"] == "Cannot confirm Appointment in state confirmed"
    assert err["details"] == {
        "current_state": "confirmed",
        "attempted_transition": "confirm",
        "allowed_transitions": ["start", "cancel", "markNoShow"],
    }


def test_transition_accepts_patch(api_client, appointment):
    res = api_client.patch(f"{BASE}{appointment.id}/transition/", {"transition": "cancelDraft"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == "cancelled"
    assert res.data["allowed_transitions"] == []


def test_transition_requires_name(api_client, appointment):
    res = api_client.post(f"{BASE}{appointment.id}/transition/", {}, format="json")
    assert res.status_code == 400, res.data
    assert "transition" in res.data["error"]["details"]


def test_allowed_transitions_endpoint(api_client, appointment):
    res = api_client.get(f"{BASE}{appointment.id}/allowed-transitions/")
    assert res.status_code == 200, res.data
    assert res.data == {
        "id": str(appointment.id),
        "status": "draft",
        "allowed_transitions": ["confirm", "cancelDraft"],
    }


def test_other_practitioner(other_client, appointment):
    # reads are scoped: the row does not exist for them
    res = other_client.get(f"{BASE}{appointment.id}/")
    assert res.status_code == 404, res.data
    assert res.data["error"]["code"] == "not_found"

    # writes find the row and the ownership rules refuse
    res = other_client.post(f"{BASE}{appointment.id}/transition/", {"transition": "confirm"}, format="json")
    assert res.status_code == 403, res.data
    assert res.data["error"]["code"] == "permission_denied"
    assert res.data["error"]["message"] == "You can't transition this appointment"

    appointment.refresh_from_db()
    assert appointment.status == AppointmentStatus.DRAFT


def test_admin_can_transition_any_booking(admin_client, appointment):
    res = admin_client.post(f"{BASE}{appointment.id}/transition/", {"transition": "confirm"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == "confirmed"
