# taxbook_core/rules/services.py
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from rest_framework.exceptions import PermissionDenied, ValidationError

from taxbook_core.common.api.exceptions import ConflictError
from taxbook_core.common.permissions import actor_id, user_roles
from taxbook_core.rules.engine import RuleEngine, get_rule_engine, get_rule_registry
from taxbook_core.rules.types import EvaluationResult, Operation, RuleContext, RuleError


def build_context(
    *,
    entity: str,
    operation: Operation | str,
    data: Mapping[str, Any],
    previous_data: Optional[Mapping[str, Any]] = None,
    user=None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> RuleContext:
    return RuleContext(
        entity=entity,
        operation=Operation(operation),
        data=dict(data),
        previous_data=dict(previous_data) if previous_data is not None else None,
        user_id=actor_id(user),
        user_roles=tuple(sorted(user_roles(user))),
        metadata=dict(metadata or {}),
    )


def _first_message(result: EvaluationResult, default: str) -> str:
    return result.errors[0].message if result.errors else default


def enforce_rules(context: RuleContext, *, engine: Optional[RuleEngine] = None) -> list[RuleError]:
    """
    Run authorization, validation and constraint rules for a write.

    Raises:
      PermissionDenied (403) on the first authorization failure
      ValidationError  (400) with every validation failure per field
      ConflictError    (409) on the first constraint failure

    Returns the warnings collected along the way.
    """
    engine = engine or get_rule_engine()
    warnings: list[RuleError] = []

    auth = engine.check_authorization(context)
    warnings.extend(auth.warnings)
    if not auth.passed:
        raise PermissionDenied(_first_message(auth, "Not authorized"))

    if context.operation in (Operation.CREATE, Operation.UPDATE):
        validation = engine.validate_input(context)
        warnings.extend(validation.warnings)
        if not validation.passed:
            raise ValidationError(validation.field_errors())

        constraints = engine.check_constraints(context)
        warnings.extend(constraints.warnings)
        if not constraints.passed:
            err = constraints.errors[0]
            details: dict[str, Any] = {"rule_id": err.rule_id}
            if err.field:
                details["field"] = err.field
            raise ConflictError(err.message, code="conflict", **details)

    return warnings


def describe_rules(
    *,
    entity: Optional[str] = None,
    rule_type: Optional[str] = None,
    rules: Optional[Iterable] = None,
) -> list[dict[str, Any]]:
    items = list(rules) if rules is not None else get_rule_registry().all()
    if entity:
        items = [r for r in items if r.entity.lower() == entity.lower()]
    if rule_type:
        items = [r for r in items if r.type.value == rule_type.lower()]
    return [r.describe() for r in items]
