# taxbook_core/appointments/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from taxbook_core.appointments.models import Appointment
from taxbook_core.workflows.machines import APPOINTMENT_MACHINE


class AppointmentSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(read_only=True)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            "id",
            "user_id",
            "client_id",
            "service_id",
            "starts_at",
            "ends_at",
            "status",
            "allowed_transitions",
            "notes",
            "meeting_link",
            "cancellation_reason",
            "reminder_sent_24h",
            "reminder_sent_1h",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_allowed_transitions(self, obj) -> list[str]:
        return APPOINTMENT_MACHINE.allowed_transitions(obj.status)


class AppointmentCreateSerializer(serializers.Serializer):
    """
    Shape and type checks only. Required fields and business constraints are
    enforced by the Appointment rules so all failures read the same way.
    """
    client_id = serializers.UUIDField(required=False, allow_null=True)
    service_id = serializers.UUIDField(required=False, allow_null=True)
    starts_at = serializers.DateTimeField(required=False, allow_null=True)
    ends_at = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    meeting_link = serializers.URLField(required=False, allow_blank=True, default="")
    requires_documents = serializers.BooleanField(required=False, default=False)


class AppointmentUpdateSerializer(serializers.Serializer):
    client_id = serializers.UUIDField(required=False)
    service_id = serializers.UUIDField(required=False)
    starts_at = serializers.DateTimeField(required=False)
    ends_at = serializers.DateTimeField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    meeting_link = serializers.URLField(required=False, allow_blank=True)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)
    reminder_sent_24h = serializers.BooleanField(required=False)
    reminder_sent_1h = serializers.BooleanField(required=False)

    # accepted only so the service can reject it with a clear message
    status = serializers.CharField(required=False)
