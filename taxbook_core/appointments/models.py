# taxbook_core/appointments/models.py
from django.db import models

from taxbook_core.common.models import OwnedModel


class AppointmentStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    CONFIRMED = "confirmed", "Confirmed"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    NO_SHOW = "no_show", "No Show"


# Bookings in these states no longer hold their time slot.
INACTIVE_STATUSES = (AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW)


class Appointment(OwnedModel):
    """
    A client booking with a tax professional (`user`).

    `status` only changes through the workflows transition executor.
    Client and service live outside this service; they are referenced by id.
    """
    client_id = models.UUIDField(db_index=True)
    service_id = models.UUIDField(db_index=True)

    starts_at = models.DateTimeField(db_index=True)
    ends_at = models.DateTimeField()

    status = models.CharField(
        max_length=32,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.DRAFT,
        db_index=True,
    )

    notes = models.TextField(blank=True, default="")
    meeting_link = models.URLField(max_length=500, blank=True, default="")
    cancellation_reason = models.TextField(blank=True, default="")

    reminder_sent_24h = models.BooleanField(default=False)
    reminder_sent_1h = models.BooleanField(default=False)

    class Meta:
        db_table = "appointments_appointment"
        ordering = ["starts_at"]
        indexes = [
            models.Index(fields=["user", "starts_at"], name="appt_user_starts_idx"),
            models.Index(fields=["user", "status"], name="appt_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Appointment {self.id} ({self.status})"
