# taxbook_core/appointments/services.py
from __future__ import annotations

from typing import Any, Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from taxbook_core.appointments.models import Appointment, AppointmentStatus
from taxbook_core.appointments.selectors import booking_facts
from taxbook_core.common.logging import get_logger
from taxbook_core.common.permissions import actor_id
from taxbook_core.rules.engine import RuleEngine
from taxbook_core.rules.services import build_context, enforce_rules
from taxbook_core.rules.types import Operation
from taxbook_core.workflows.executor import TransitionExecutor
from taxbook_core.workflows.machines import APPOINTMENT_MACHINE, get_allowed_transitions
from taxbook_core.workflows.services import apply_transition

logger = get_logger(__name__)

ENTITY = APPOINTMENT_MACHINE.entity

EDITABLE_FIELDS = (
    "client_id",
    "service_id",
    "starts_at",
    "ends_at",
    "notes",
    "meeting_link",
    "cancellation_reason",
    "reminder_sent_24h",
    "reminder_sent_1h",
)

# changing any of these re-checks overlap and capacity
SCHEDULE_FIELDS = {"starts_at", "ends_at"}


def appointment_rule_data(appointment: Appointment) -> dict[str, Any]:
    return {
        "id": str(appointment.id),
        "user_id": str(appointment.user_id),
        "client_id": appointment.client_id,
        "service_id": appointment.service_id,
        "starts_at": appointment.starts_at,
        "ends_at": appointment.ends_at,
        "status": appointment.status,
        "notes": appointment.notes,
        "meeting_link": appointment.meeting_link,
        "cancellation_reason": appointment.cancellation_reason,
        "reminder_sent_24h": appointment.reminder_sent_24h,
        "reminder_sent_1h": appointment.reminder_sent_1h,
    }


def lock_practitioner_schedule(user_id) -> None:
    """
    Row-lock the practitioner for the rest of the transaction.

    Overlap and daily-capacity facts are read before the insert/update, so two
    bookings for the same practitioner must not compute them concurrently.
    """
    get_user_model().objects.select_for_update().filter(pk=user_id).first()


class AppointmentService:
    """
    Appointment write-model operations.

    Notes:
    - Every write goes through the Appointment rules (authorization, validation, constraints).
    - `status` is never written here; lifecycle moves go through transition_appointment.
    - Booking facts (overlaps, daily count, documents) are queried here and handed to the rules.
    """

    @staticmethod
    def _get_for_write(appointment_id) -> Appointment:
        try:
            appointment = Appointment.objects.filter(id=appointment_id).first()
        except (ValueError, DjangoValidationError):
            appointment = None
        if appointment is None:
            raise NotFound("Appointment not found.")
        return appointment

    # -------------------------
    # Create
    # -------------------------
    @staticmethod
    @transaction.atomic
    def create_appointment(
        *,
        user,
        data: dict[str, Any],
        requires_documents: bool = False,
        engine: Optional[RuleEngine] = None,
    ) -> Appointment:
        rule_data = {
            "user_id": actor_id(user),
            "client_id": data.get("client_id"),
            "service_id": data.get("service_id"),
            "starts_at": data.get("starts_at"),
            "ends_at": data.get("ends_at"),
            "status": APPOINTMENT_MACHINE.initial_state,
            "notes": data.get("notes", ""),
            "meeting_link": data.get("meeting_link", ""),
            "reminder_sent_24h": False,
            "reminder_sent_1h": False,
        }

        lock_practitioner_schedule(user.pk)
        facts = booking_facts(
            user_id=user.pk,
            client_id=rule_data["client_id"],
            starts_at=rule_data["starts_at"],
            ends_at=rule_data["ends_at"],
            requires_documents=requires_documents,
        )
        context = build_context(
            entity=ENTITY,
            operation=Operation.CREATE,
            data=rule_data,
            user=user,
            metadata=facts,
        )
        enforce_rules(context, engine=engine)

        appointment = Appointment.objects.create(
            user=user,
            client_id=rule_data["client_id"],
            service_id=rule_data["service_id"],
            starts_at=rule_data["starts_at"],
            ends_at=rule_data["ends_at"],
            status=AppointmentStatus.DRAFT,
            notes=rule_data["notes"] or "",
            meeting_link=rule_data["meeting_link"] or "",
        )
        logger.info("appointment_created", appointment_id=str(appointment.id), starts_at=str(appointment.starts_at))
        return appointment

    # -------------------------
    # Update / delete
    # -------------------------
    @staticmethod
    @transaction.atomic
    def update_appointment(
        *,
        user,
        appointment_id,
        changes: dict[str, Any],
        engine: Optional[RuleEngine] = None,
    ) -> Appointment:
        if "status" in changes:
            raise ValidationError({"status": "Status changes go through the transition endpoint."})

        appointment = AppointmentService._get_for_write(appointment_id)
        previous = appointment_rule_data(appointment)

        changed = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        data = {**previous, **changed}

        metadata: dict[str, Any] = {}
        if SCHEDULE_FIELDS & changed.keys():
            lock_practitioner_schedule(appointment.user_id)
            metadata = booking_facts(
                user_id=appointment.user_id,
                client_id=data["client_id"],
                starts_at=data["starts_at"],
                ends_at=data["ends_at"],
                exclude_id=appointment.id,
            )

        context = build_context(
            entity=ENTITY,
            operation=Operation.UPDATE,
            data=data,
            previous_data=previous,
            user=user,
            metadata=metadata,
        )
        enforce_rules(context, engine=engine)

        if not changed:
            return appointment

        for name, value in changed.items():
            setattr(appointment, name, value)
        appointment.save(update_fields=[*changed.keys(), "updated_at"])

        logger.info("appointment_updated", appointment_id=str(appointment.id), fields=sorted(changed))
        return appointment

    @staticmethod
    @transaction.atomic
    def delete_appointment(*, user, appointment_id, engine: Optional[RuleEngine] = None) -> None:
        appointment = AppointmentService._get_for_write(appointment_id)
        data = appointment_rule_data(appointment)
        context = build_context(
            entity=ENTITY,
            operation=Operation.DELETE,
            data=data,
            previous_data=data,
            user=user,
        )
        enforce_rules(context, engine=engine)

        appointment.delete()
        logger.info("appointment_deleted", appointment_id=data["id"])

    # -------------------------
    # Workflow
    # -------------------------
    @staticmethod
    def transition_appointment(
        *,
        user,
        appointment_id,
        transition: str,
        engine: Optional[RuleEngine] = None,
        executor: Optional[TransitionExecutor] = None,
    ) -> Appointment:
        appointment = AppointmentService._get_for_write(appointment_id)
        data = appointment_rule_data(appointment)
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
            entity_id=appointment.id,
            transition_name=transition,
            executor=executor,
        )

    @staticmethod
    def allowed_transitions(appointment: Appointment) -> list[str]:
        return get_allowed_transitions(ENTITY, appointment.status)
