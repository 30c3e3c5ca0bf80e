# taxbook_core/appointments/selectors.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import django_filters
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db.models import QuerySet
from django.utils import timezone

from taxbook_core.appointments.models import INACTIVE_STATUSES, Appointment, AppointmentStatus
from taxbook_core.common.permissions import ROLE_ADMIN, user_roles
from taxbook_core.documents.models import Document, DocumentStatus


class AppointmentFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=AppointmentStatus.choices)
    client_id = django_filters.UUIDFilter(field_name="client_id")
    starts_after = django_filters.IsoDateTimeFilter(field_name="starts_at", lookup_expr="gte")
    starts_before = django_filters.IsoDateTimeFilter(field_name="starts_at", lookup_expr="lte")

    class Meta:
        model = Appointment
        fields = ["status", "client_id", "starts_after", "starts_before"]


def appointments_qs(*, user) -> QuerySet[Appointment]:
    """Admins see every booking; everyone else sees their own."""
    qs = Appointment.objects.all()
    if ROLE_ADMIN not in user_roles(user):
        qs = qs.filter(user_id=getattr(user, "pk", None))
    return qs


def appointments_filtered(*, user, params: Any) -> QuerySet[Appointment]:
    """
    Query params:
      - status
      - client_id
      - starts_after / starts_before (ISO datetime)
    """
    f = AppointmentFilter(params, queryset=appointments_qs(user=user))
    if not f.is_valid():
        raise ValidationError(f.errors)
    return f.qs.order_by("starts_at")


def get_appointment(*, user, appointment_id) -> Optional[Appointment]:
    try:
        return appointments_qs(user=user).filter(id=appointment_id).first()
    except (ValidationError, ValueError):
        return None


# -------------------------------------------------------------------
# Booking facts (fed to the Appointment rules as context metadata)
# -------------------------------------------------------------------
def live_appointments(*, user_id, exclude_id: Optional[UUID] = None) -> QuerySet[Appointment]:
    qs = Appointment.objects.filter(user_id=user_id).exclude(status__in=INACTIVE_STATUSES)
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return qs


def overlapping_appointment_ids(
    *, user_id, starts_at: datetime, ends_at: datetime, exclude_id: Optional[UUID] = None
) -> list[str]:
    qs = live_appointments(user_id=user_id, exclude_id=exclude_id).filter(
        starts_at__lt=ends_at,
        ends_at__gt=starts_at,
    )
    return [str(pk) for pk in qs.values_list("id", flat=True)]


def daily_appointment_count(*, user_id, starts_at: datetime, exclude_id: Optional[UUID] = None) -> int:
    day = timezone.localtime(starts_at).date() if timezone.is_aware(starts_at) else starts_at.date()
    return live_appointments(user_id=user_id, exclude_id=exclude_id).filter(starts_at__date=day).count()


def client_has_accepted_documents(*, client_id) -> bool:
    return Document.objects.filter(client_id=client_id, status=DocumentStatus.ACCEPTED).exists()


def booking_facts(
    *,
    user_id,
    client_id,
    starts_at: Optional[datetime],
    ends_at: Optional[datetime],
    requires_documents: bool = False,
    exclude_id: Optional[UUID] = None,
) -> dict[str, Any]:
    facts: dict[str, Any] = {
        "requires_documents": bool(requires_documents),
        "has_accepted_documents": client_has_accepted_documents(client_id=client_id) if requires_documents else False,
        "daily_capacity": int(getattr(settings, "APPOINTMENT_DEFAULT_DAILY_CAPACITY", 8)),
    }
    if starts_at and ends_at:
        facts["overlapping_appointments"] = overlapping_appointment_ids(
            user_id=user_id, starts_at=starts_at, ends_at=ends_at, exclude_id=exclude_id
        )
    if starts_at:
        facts["daily_appointment_count"] = daily_appointment_count(
            user_id=user_id, starts_at=starts_at, exclude_id=exclude_id
        )
    return facts
