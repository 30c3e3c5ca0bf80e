# taxbook_core/documents/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from taxbook_core.documents.models import Document
from taxbook_core.workflows.machines import DOCUMENT_MACHINE


class DocumentSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(read_only=True)
    appointment_id = serializers.UUIDField(read_only=True, allow_null=True)
    allowed_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = [
            "id",
            "user_id",
            "client_id",
            "appointment_id",
            "document_type",
            "file_url",
            "file_name",
            "status",
            "allowed_transitions",
            "tax_year",
            "notes",
            "rejection_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_allowed_transitions(self, obj) -> list[str]:
        return DOCUMENT_MACHINE.allowed_transitions(obj.status)


class DocumentCreateSerializer(serializers.Serializer):
    client_id = serializers.UUIDField(required=False, allow_null=True)
    appointment_id = serializers.UUIDField(required=False, allow_null=True)
    # free text on purpose: the allowed list lives in the Document rules
    document_type = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    file_url = serializers.CharField(required=False, allow_blank=True, default="")
    file_name = serializers.CharField(required=False, allow_blank=True, default="")
    tax_year = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class DocumentUpdateSerializer(serializers.Serializer):
    appointment_id = serializers.UUIDField(required=False, allow_null=True)
    document_type = serializers.CharField(required=False)
    file_url = serializers.CharField(required=False, allow_blank=True)
    file_name = serializers.CharField(required=False, allow_blank=True)
    tax_year = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    rejection_reason = serializers.CharField(required=False, allow_blank=True)

    status = serializers.CharField(required=False)
