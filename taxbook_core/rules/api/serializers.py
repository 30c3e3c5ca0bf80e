# taxbook_core/rules/api/serializers.py
from __future__ import annotations

from rest_framework import serializers


class RuleDescriptionSerializer(serializers.Serializer):
    """Read-only view of `Rule.describe()`."""
    id = serializers.CharField()
    name = serializers.CharField()
    kind = serializers.CharField()
    type = serializers.CharField()
    entity = serializers.CharField()
    field = serializers.CharField(allow_null=True)
    priority = serializers.IntegerField()
    enabled = serializers.BooleanField()
    description = serializers.CharField(allow_blank=True)
    depends_on = serializers.ListField(child=serializers.CharField())
    message = serializers.CharField()
    severity = serializers.CharField()
    params = serializers.DictField()
