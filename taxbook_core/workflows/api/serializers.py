# taxbook_core/workflows/api/serializers.py
from __future__ import annotations

from rest_framework import serializers


class TransitionRequestSerializer(serializers.Serializer):
    transition = serializers.CharField()


class AllowedTransitionsSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    status = serializers.CharField()
    allowed_transitions = serializers.ListField(child=serializers.CharField())
