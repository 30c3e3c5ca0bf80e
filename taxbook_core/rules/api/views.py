# taxbook_core/rules/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from taxbook_core.common.api.views import RequestUserLogMixin
from taxbook_core.common.permissions import IsAdminRole
from taxbook_core.rules.api.serializers import RuleDescriptionSerializer
from taxbook_core.rules.engine import get_rule_registry
from taxbook_core.rules.services import describe_rules
from taxbook_core.rules.types import RuleType


class RuleViewSet(RequestUserLogMixin, viewsets.ViewSet):
    """
    Registered business rules (read-only, admin only).
    Rules are code, registered at startup; this endpoint only describes them.
    """

    permission_classes = [IsAdminRole]
    lookup_value_regex = r"[^/]+"

    @extend_schema(
        tags=["Rules"],
        responses={200: RuleDescriptionSerializer(many=True)},
        parameters=[
            OpenApiParameter(
                name="entity",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by entity, e.g. Appointment.",
            ),
            OpenApiParameter(
                name="type",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=[t.value for t in RuleType],
                description="Filter by rule type.",
            ),
        ],
    )
    def list(self, request):
        rule_type = request.query_params.get("type")
        if rule_type and rule_type.lower() not in {t.value for t in RuleType}:
            raise DRFValidationError({"type": f"Unknown rule type {rule_type!r}."})

        data = describe_rules(entity=request.query_params.get("entity"), rule_type=rule_type)
        return Response(RuleDescriptionSerializer(data, many=True).data)

    @extend_schema(tags=["Rules"], responses={200: RuleDescriptionSerializer})
    def retrieve(self, request, pk=None):
        rule = get_rule_registry().get(pk)
        if rule is None:
            raise NotFound("Rule not found.")
        return Response(RuleDescriptionSerializer(rule.describe()).data)
