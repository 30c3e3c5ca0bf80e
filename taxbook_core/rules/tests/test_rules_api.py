import pytest

pytestmark = pytest.mark.django_db


def test_rules_listing_is_admin_only(api_client, admin_client):
    assert api_client.get("/api/v1/rules/").status_code == 403

    resp = admin_client.get("/api/v1/rules/")
    assert resp.status_code == 200
    ids = {r["id"] for r in resp.json()}
    assert "Appointment-prevent-double-booking" in ids
    assert "Document-valid-state" in ids


def test_rules_listing_filters_by_entity_and_type(admin_client):
    resp = admin_client.get("/api/v1/rules/", {"entity": "appointment", "type": "authorization"})
    assert resp.status_code == 200

    rules = resp.json()
    assert rules
    assert {r["entity"] for r in rules} == {"Appointment"}
    assert {r["type"] for r in rules} == {"authorization"}
    assert {r["params"]["operation"] for r in rules} == {"update", "delete", "transition"}


def test_unknown_rule_type_is_rejected(admin_client):
    resp = admin_client.get("/api/v1/rules/", {"type": "magic"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"


def test_retrieve_describes_one_rule(admin_client):
    resp = admin_client.get("/api/v1/rules/Service-duration_minutes-range/")
    assert resp.status_code == 200

    body = resp.json()
    assert body["kind"] == "numeric_range"
    assert body["params"] == {"minimum": 5, "maximum": 480}

    missing = admin_client.get("/api/v1/rules/nope/")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "not_found"
