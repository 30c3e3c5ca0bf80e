# taxbook_core/appointments/admin.py
from __future__ import annotations

from django.contrib import admin

from taxbook_core.appointments.models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "client_id",
        "service_id",
        "starts_at",
        "ends_at",
        "status",
        "created_at",
    )
    list_filter = ("status", "reminder_sent_24h", "reminder_sent_1h")
    search_fields = ("id", "client_id", "service_id", "notes")
    ordering = ("-starts_at",)

    # status moves only through transitions
    readonly_fields = ("status", "created_at", "updated_at")
    list_select_related = ("user",)

    fieldsets = (
        ("Booking", {"fields": ("user", "client_id", "service_id", "status")}),
        ("Timing", {"fields": ("starts_at", "ends_at")}),
        ("Details", {"fields": ("notes", "meeting_link", "cancellation_reason")}),
        ("Reminders", {"fields": ("reminder_sent_24h", "reminder_sent_1h")}),
        ("Audit", {"fields": ("created_at", "updated_at")}),
    )
