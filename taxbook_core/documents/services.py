# taxbook_core/documents/services.py
from __future__ import annotations

from typing import Any, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from taxbook_core.appointments.models import Appointment
from taxbook_core.common.logging import get_logger
from taxbook_core.common.permissions import actor_id
from taxbook_core.documents.models import Document, DocumentStatus
from taxbook_core.rules.engine import RuleEngine
from taxbook_core.rules.services import build_context, enforce_rules
from taxbook_core.rules.types import Operation
from taxbook_core.workflows.executor import TransitionExecutor
from taxbook_core.workflows.machines import DOCUMENT_MACHINE, get_allowed_transitions
from taxbook_core.workflows.services import apply_transition

logger = get_logger(__name__)

ENTITY = DOCUMENT_MACHINE.entity

EDITABLE_FIELDS = (
    "appointment_id",
    "document_type",
    "file_url",
    "file_name",
    "tax_year",
    "notes",
    "rejection_reason",
)


def document_rule_data(document: Document) -> dict[str, Any]:
    return {
        "id": str(document.id),
        "user_id": str(document.user_id),
        "client_id": document.client_id,
        "appointment_id": document.appointment_id,
        "document_type": document.document_type,
        "file_url": document.file_url,
        "file_name": document.file_name,
        "status": document.status,
        "tax_year": document.tax_year,
        "notes": document.notes,
        "rejection_reason": document.rejection_reason,
    }


def _check_appointment(appointment_id) -> None:
    if appointment_id and not Appointment.objects.filter(id=appointment_id).exists():
        raise ValidationError({"appointment_id": "Unknown appointment."})


class DocumentService:
    """
    Document write-model operations. Same contract as AppointmentService:
    rules on every write, `status` only through transition_document.
    """

    @staticmethod
    def _get_for_write(document_id) -> Document:
        try:
            document = Document.objects.filter(id=document_id).first()
        except (ValueError, DjangoValidationError):
            document = None
        if document is None:
            raise NotFound("Document not found.")
        return document

    @staticmethod
    @transaction.atomic
    def create_document(*, user, data: dict[str, Any], engine: Optional[RuleEngine] = None) -> Document:
        rule_data = {
            "user_id": actor_id(user),
            "client_id": data.get("client_id"),
            "appointment_id": data.get("appointment_id"),
            "document_type": data.get("document_type"),
            "file_url": data.get("file_url", ""),
            "file_name": data.get("file_name", ""),
            "status": DOCUMENT_MACHINE.initial_state,
            "tax_year": data.get("tax_year"),
            "notes": data.get("notes", ""),
        }
        _check_appointment(rule_data["appointment_id"])
        context = build_context(entity=ENTITY, operation=Operation.CREATE, data=rule_data, user=user)
        enforce_rules(context, engine=engine)

        document = Document.objects.create(
            user=user,
            client_id=rule_data["client_id"],
            appointment_id=rule_data["appointment_id"],
            document_type=rule_data["document_type"],
            file_url=rule_data["file_url"] or "",
            file_name=rule_data["file_name"] or "",
            status=DocumentStatus.REQUESTED,
            tax_year=rule_data["tax_year"],
            notes=rule_data["notes"] or "",
        )
        logger.info("document_created", document_id=str(document.id), document_type=document.document_type)
        return document

    @staticmethod
    @transaction.atomic
    def update_document(
        *,
        user,
        document_id,
        changes: dict[str, Any],
        engine: Optional[RuleEngine] = None,
    ) -> Document:
        if "status" in changes:
            raise ValidationError({"status": "Status changes go through the transition endpoint."})

        document = DocumentService._get_for_write(document_id)
        previous = document_rule_data(document)
        changed = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        _check_appointment(changed.get("appointment_id"))

        context = build_context(
            entity=ENTITY,
            operation=Operation.UPDATE,
            data={**previous, **changed},
            previous_data=previous,
            user=user,
        )
        enforce_rules(context, engine=engine)

        if not changed:
            return document

        for name, value in changed.items():
            setattr(document, name, value)
        document.save(update_fields=[*changed.keys(), "updated_at"])

        logger.info("document_updated", document_id=str(document.id), fields=sorted(changed))
        return document

    @staticmethod
    @transaction.atomic
    def delete_document(*, user, document_id, engine: Optional[RuleEngine] = None) -> None:
        document = DocumentService._get_for_write(document_id)
        data = document_rule_data(document)
        context = build_context(entity=ENTITY, operation=Operation.DELETE, data=data, previous_data=data, user=user)
        enforce_rules(context, engine=engine)

        document.delete()
        logger.info("document_deleted", document_id=data["id"])

    @staticmethod
    def transition_document(
        *,
        user,
        document_id,
        transition: str,
        engine: Optional[RuleEngine] = None,
        executor: Optional[TransitionExecutor] = None,
    ) -> Document:
        document = DocumentService._get_for_write(document_id)
        data = document_rule_data(document)
        context = build_context(
            entity=ENTITY,
            operation=Operation.TRANSITION,
            data=data,
            previous_data=data,
            user=user,
            metadata={"transition": transition},
        )
        enforce_rules(context, engine=engine)

        return apply_transition(
            entity_kind=ENTITY,
            entity_id=document.id,
            transition_name=transition,
            executor=executor,
        )

    @staticmethod
    def allowed_transitions(document: Document) -> list[str]:
        return get_allowed_transitions(ENTITY, document.status)
