# taxbook_core/documents/tests/test_document_workflow.py

import uuid

import pytest
from rest_framework.exceptions import PermissionDenied, ValidationError

from taxbook_core.common.api.exceptions import ConflictError
from taxbook_core.documents.models import Document, DocumentStatus, DocumentType
from taxbook_core.documents.services import DocumentService
from taxbook_core.rules.catalog import DOCUMENT_TYPES

pytestmark = pytest.mark.django_db

BASE = "/api/v1/documents/"


# -------------------------
# Service
# -------------------------
def test_document_type_choices_match_the_rule_catalog():
    assert tuple(DocumentType.values) == DOCUMENT_TYPES


def test_create_document_request(user, appointment):
    doc = DocumentService.create_document(
        user=user,
        data={
            "client_id": appointment.client_id,
            "appointment_id": appointment.id,
            "document_type": "1099_nec",
            "tax_year": 2025,
        },
    )
    assert doc.status == DocumentStatus.REQUESTED
    assert doc.appointment_id == appointment.id


def test_create_validates_type_year_and_url(user):
    with pytest.raises(ValidationError) as exc:
        DocumentService.create_document(
            user=user,
            data={
                "client_id": uuid.uuid4(),
                "document_type": "shoebox",
                "tax_year": 1850,
                "file_url": "ftp://files.example.com/w2.pdf",
            },
        )
    assert set(exc.value.detail) == {"document_type", "tax_year", "file_url"}
    assert exc.value.detail["file_url"] == ["file_url must be a valid HTTP(S) URL"]
    assert Document.objects.count() == 0


def test_create_with_unknown_appointment(user):
    with pytest.raises(ValidationError) as exc:
        DocumentService.create_document(
            user=user,
            data={"client_id": uuid.uuid4(), "appointment_id": uuid.uuid4(), "document_type": "w2"},
        )
    assert "appointment_id" in exc.value.detail


def test_full_review_lifecycle_with_rejection(user, document):
    steps = [
        ("upload", "uploaded"),
        ("review", "reviewed"),
        ("reject", "rejected"),
        ("reupload", "uploaded"),
        ("review", "reviewed"),
        ("accept", "accepted"),
    ]
    for name, expected in steps:
        document = DocumentService.transition_document(user=user, document_id=document.id, transition=name)
        assert document.status == expected

    assert DocumentService.allowed_transitions(document) == []

    with pytest.raises(ConflictError) as exc:
        DocumentService.transition_document(user=user, document_id=document.id, transition="reject")
    assert exc.value.error_code == "state_violation"
    assert exc.value.detail["allowed_transitions"] == []


def test_cannot_accept_before_review(user, document):
    DocumentService.transition_document(user=user, document_id=document.id, transition="upload")
    with pytest.raises(ConflictError) as exc:
        DocumentService.transition_document(user=user, document_id=document.id, transition="accept")
    assert exc.value.detail["current_state"] == "uploaded"
    assert exc.value.detail["allowed_transitions"] == ["review"]


def test_update_attaches_file(user, document):
    updated = DocumentService.update_document(
        user=user,
        document_id=document.id,
        changes={"file_url": "https://files.example.com/w2.pdf", "file_name": "w2.pdf"},
    )
    assert updated.file_name == "w2.pdf"

    with pytest.raises(ValidationError):
        DocumentService.update_document(user=user, document_id=document.id, changes={"status": "accepted"})


def test_non_owner_cannot_touch_document(other_user, document):
    with pytest.raises(PermissionDenied):
        DocumentService.update_document(user=other_user, document_id=document.id, changes={"notes": "x"})
    with pytest.raises(PermissionDenied):
        DocumentService.transition_document(user=other_user, document_id=document.id, transition="upload")
    with pytest.raises(PermissionDenied):
        DocumentService.delete_document(user=other_user, document_id=document.id)


# -------------------------
# API
# -------------------------
def test_api_create_list_and_filter(api_client, make_document):
    client_id = str(uuid.uuid4())
    res = api_client.post(BASE, {"client_id": client_id, "document_type": "w2", "tax_year": 2025}, format="json")
    assert res.status_code == 201, res.data
    assert res.data["status"] == "requested"
    assert res.data["allowed_transitions"] == ["upload"]

    make_document(document_type="1098")

    res = api_client.get(BASE, {"client_id": client_id})
    assert res.status_code == 200, res.data
    assert res.data["count"] == 1

    res = api_client.get(BASE, {"document_type": "1098"})
    assert res.data["count"] == 1


def test_api_rejects_bad_url(api_client):
    res = api_client.post(
        BASE,
        {"client_id": str(uuid.uuid4()), "document_type": "w2", "file_url": "not a url"},
        format="json",
    )
    assert res.status_code == 400, res.data
    assert res.data["error"]["details"] == {"file_url": ["file_url must be a valid HTTP(S) URL"]}


def test_api_transitions(api_client, document):
    url = f"{BASE}{document.id}/transition/"

    res = api_client.post(url, {"transition": "upload"}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == "uploaded"

    res = api_client.get(f"{BASE}{document.id}/allowed-transitions/")
    assert res.data["allowed_transitions"] == ["review"]

    res = api_client.post(url, {"transition": "accept"}, format="json")
    assert res.status_code == 409, res.data
    assert res.data["error"]["code"] == "state_violation"
    assert res.data["error"]["details"]["allowed_transitions"] == ["review"]


def test_api_unknown_document(api_client):
    res = api_client.post(f"{BASE}{uuid.uuid4()}/transition/", {"transition": "upload"}, format="json")
    assert res.status_code == 404, res.data
    assert res.data["error"]["code"] == "not_found"


def test_api_delete(api_client, document):
    res = api_client.delete(f"{BASE}{document.id}/")
    assert res.status_code == 204
    assert not Document.objects.filter(id=document.id).exists()
