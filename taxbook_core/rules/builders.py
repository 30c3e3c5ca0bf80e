# taxbook_core/rules/builders.py
"""
Rule shapes and the factory functions that build them.

Built rules are plain frozen dataclasses: their parameters (field, bounds,
choices) are data, so a rule can be listed/inspected via `Rule.describe()`.
Only the generic predicate rules carry an arbitrary callable.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, ClassVar, Iterable, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator

from taxbook_core.common.result import Err, Ok, Result
from taxbook_core.rules.types import Operation, Rule, RuleContext, RuleError, RuleType

VALIDATION_PRIORITY = 100
CONSTRAINT_PRIORITY = 50
AUTHORIZATION_PRIORITY = 200

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ValuePredicate = Callable[[Any, RuleContext], bool]
DataPredicate = Callable[[Any, RuleContext], bool]
ContextPredicate = Callable[[RuleContext], bool]


def is_empty(value: Any) -> bool:
    return value is None or value == ""


# ---------------------------------------------------------------------
# Field rules (validation on data[field])
# ---------------------------------------------------------------------
@dataclass(frozen=True, kw_only=True)
class FieldRule(Rule, ABC):
    """Validation on a single `data[field]`; subclasses supply `check_value`."""

    kind: ClassVar[str] = "field"

    type: RuleType = RuleType.VALIDATION
    priority: int = VALIDATION_PRIORITY

    def check(self, context: RuleContext) -> bool:
        return self.check_value(context.value(self.field), context)

    @abstractmethod
    def check_value(self, value: Any, context: RuleContext) -> bool:
        ...


@dataclass(frozen=True, kw_only=True)
class PredicateFieldRule(FieldRule):
    kind: ClassVar[str] = "predicate"

    predicate: ValuePredicate = dc_field(repr=False, compare=False)

    def check_value(self, value: Any, context: RuleContext) -> bool:
        return bool(self.predicate(value, context))


@dataclass(frozen=True, kw_only=True)
class RequiredFieldRule(FieldRule):
    kind: ClassVar[str] = "required"

    def check_value(self, value: Any, context: RuleContext) -> bool:
        return not is_empty(value)


@dataclass(frozen=True, kw_only=True)
class EmailFormatRule(FieldRule):
    kind: ClassVar[str] = "email"

    def check_value(self, value: Any, context: RuleContext) -> bool:
        if not value:
            return True
        return isinstance(value, str) and EMAIL_RE.match(value) is not None


@dataclass(frozen=True, kw_only=True)
class StringLengthRule(FieldRule):
    kind: ClassVar[str] = "string_length"

    min_length: int
    max_length: int

    def check_value(self, value: Any, context: RuleContext) -> bool:
        if is_empty(value):
            return True
        return self.min_length <= len(str(value)) <= self.max_length

    def params(self) -> dict[str, Any]:
        return {"min_length": self.min_length, "max_length": self.max_length}


@dataclass(frozen=True, kw_only=True)
class NumericRangeRule(FieldRule):
    kind: ClassVar[str] = "numeric_range"

    minimum: float
    maximum: float

    def check_value(self, value: Any, context: RuleContext) -> bool:
        if is_empty(value):
            return True
        if isinstance(value, bool):
            return False
        try:
            num = float(value)
        except (TypeError, ValueError):
            return False
        return self.minimum <= num <= self.maximum

    def params(self) -> dict[str, Any]:
        return {"minimum": self.minimum, "maximum": self.maximum}


@dataclass(frozen=True, kw_only=True)
class UrlFormatRule(FieldRule):
    kind: ClassVar[str] = "url"

    schemes: tuple[str, ...] = ("http", "https")

    def check_value(self, value: Any, context: RuleContext) -> bool:
        if not value:
            return True
        try:
            URLValidator(schemes=list(self.schemes))(str(value))
        except DjangoValidationError:
            return False
        return True

    def params(self) -> dict[str, Any]:
        return {"schemes": list(self.schemes)}


@dataclass(frozen=True, kw_only=True)
class AllowedValuesRule(FieldRule):
    kind: ClassVar[str] = "allowed_values"

    values: tuple[Any, ...]

    def check_value(self, value: Any, context: RuleContext) -> bool:
        if is_empty(value):
            return True
        return value in self.values

    def params(self) -> dict[str, Any]:
        return {"values": list(self.values)}


# ---------------------------------------------------------------------
# Constraint / authorization rules
# ---------------------------------------------------------------------
@dataclass(frozen=True, kw_only=True)
class ConstraintRule(Rule):
    """Cross-field invariant; the predicate sees the whole data and the context."""
    kind: ClassVar[str] = "constraint"

    type: RuleType = RuleType.CONSTRAINT
    priority: int = CONSTRAINT_PRIORITY
    predicate: DataPredicate = dc_field(repr=False, compare=False)

    def check(self, context: RuleContext) -> bool:
        return bool(self.predicate(context.data, context))


@dataclass(frozen=True, kw_only=True)
class AuthorizationRule(Rule):
    """Gates one operation; other operations pass untouched."""
    kind: ClassVar[str] = "authorization"

    type: RuleType = RuleType.AUTHORIZATION
    priority: int = AUTHORIZATION_PRIORITY
    operation: Operation
    predicate: ContextPredicate = dc_field(repr=False, compare=False)
    message: str = "Not authorized"

    def __post_init__(self):
        super().__post_init__()
        object.__setattr__(self, "operation", Operation(self.operation))

    def evaluate(self, context: RuleContext) -> Result[None, RuleError]:
        if context.operation != self.operation:
            return Ok(None)
        if self.predicate(context):
            return Ok(None)
        return Err(self.error(operation=self.operation.value))

    def params(self) -> dict[str, Any]:
        return {"operation": self.operation.value}


# ---------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------
def create_validation_rule(
    id: str,
    name: str,
    entity: str,
    field: str,
    predicate: ValuePredicate,
    message: str,
    **overrides: Any,
) -> PredicateFieldRule:
    return PredicateFieldRule(
        id=id,
        name=name,
        entity=entity,
        field=field,
        description=overrides.pop("description", f"Validate {field} for {entity}"),
        predicate=predicate,
        message=message,
        **overrides,
    )


def create_constraint_rule(
    id: str,
    name: str,
    entity: str,
    predicate: DataPredicate,
    message: str,
    **overrides: Any,
) -> ConstraintRule:
    return ConstraintRule(
        id=id,
        name=name,
        entity=entity,
        description=overrides.pop("description", name),
        predicate=predicate,
        message=message,
        **overrides,
    )


def create_authorization_rule(
    id: str,
    name: str,
    entity: str,
    operation: Operation | str,
    predicate: ContextPredicate,
    message: str = "Not authorized",
    **overrides: Any,
) -> AuthorizationRule:
    op = Operation(operation)
    return AuthorizationRule(
        id=id,
        name=name,
        entity=entity,
        operation=op,
        description=overrides.pop("description", f"Authorization for {op.value} on {entity}"),
        predicate=predicate,
        message=message,
        **overrides,
    )


def required_field_rule(entity: str, field: str) -> RequiredFieldRule:
    return RequiredFieldRule(
        id=f"{entity}-{field}-required",
        name=f"{field} is required",
        entity=entity,
        field=field,
        description=f"Validate {field} for {entity}",
        message=f"{field} is required",
    )


def email_format_rule(entity: str, field: str = "email") -> EmailFormatRule:
    return EmailFormatRule(
        id=f"{entity}-email-format",
        name="Valid email format",
        entity=entity,
        field=field,
        description=f"Validate {field} for {entity}",
        message="Must be a valid email address",
    )


def string_length_rule(entity: str, field: str, min_length: int, max_length: int) -> StringLengthRule:
    return StringLengthRule(
        id=f"{entity}-{field}-length",
        name=f"{field} length validation",
        entity=entity,
        field=field,
        min_length=min_length,
        max_length=max_length,
        message=f"{field} must be between {min_length} and {max_length} characters",
    )


def numeric_range_rule(entity: str, field: str, minimum: float, maximum: float) -> NumericRangeRule:
    return NumericRangeRule(
        id=f"{entity}-{field}-range",
        name=f"{field} range validation",
        entity=entity,
        field=field,
        minimum=minimum,
        maximum=maximum,
        message=f"{field} must be between {minimum} and {maximum}",
    )


def url_format_rule(entity: str, field: str) -> UrlFormatRule:
    return UrlFormatRule(
        id=f"{entity}-{field}-url",
        name=f"{field} must be valid URL",
        entity=entity,
        field=field,
        message=f"{field} must be a valid HTTP(S) URL",
    )


def allowed_values_rule(entity: str, field: str, values: Iterable[Any]) -> AllowedValuesRule:
    values = tuple(values)
    return AllowedValuesRule(
        id=f"{entity}-{field}-enum",
        name=f"{field} must be one of the allowed values",
        entity=entity,
        field=field,
        values=values,
        message=f"{field} must be one of: {', '.join(str(v) for v in values)}",
    )


# ---------------------------------------------------------------------
# State machine backed constraints
# ---------------------------------------------------------------------
@dataclass(frozen=True, kw_only=True)
class ValidStateRule(ConstraintRule):
    kind: ClassVar[str] = "valid_state"

    states: tuple[str, ...]
    predicate: Optional[DataPredicate] = dc_field(default=None, repr=False, compare=False)

    def check(self, context: RuleContext) -> bool:
        return context.value(self.field) in self.states

    def params(self) -> dict[str, Any]:
        return {"states": list(self.states)}


@dataclass(frozen=True, kw_only=True)
class DeclaredTransitionRule(ConstraintRule):
    """
    A status change between previous_data and data must be an edge of the
    state machine. Unchanged status (or no previous_data) passes.
    """
    kind: ClassVar[str] = "declared_transition"

    # (from_state, to_state) pairs
    edges: frozenset = frozenset()
    predicate: Optional[DataPredicate] = dc_field(default=None, repr=False, compare=False)

    def evaluate(self, context: RuleContext) -> Result[None, RuleError]:
        if context.previous_data is None:
            return Ok(None)
        before = context.previous_value(self.field)
        after = context.value(self.field)
        if before == after or (before, after) in self.edges:
            return Ok(None)
        return Err(
            self.error(
                f"Cannot transition from {before} to {after}",
                current_state=before,
                attempted_state=after,
            )
        )

    def params(self) -> dict[str, Any]:
        return {"edges": sorted([list(e) for e in self.edges])}


def valid_state_rule(machine, field: str = "status") -> ValidStateRule:
    return ValidStateRule(
        id=f"{machine.entity}-valid-state",
        name=f"{machine.entity} must have valid state",
        entity=machine.entity,
        field=field,
        states=tuple(machine.states),
        message=f"Invalid state for {machine.entity}",
    )


def declared_transition_rule(machine, field: str = "status") -> DeclaredTransitionRule:
    return DeclaredTransitionRule(
        id=f"{machine.entity}-declared-transition",
        name=f"{machine.entity} status changes follow the state machine",
        entity=machine.entity,
        field=field,
        edges=frozenset(machine.edges()),
        depends_on=(f"{machine.entity}-valid-state",),
        message=f"Invalid state transition for {machine.entity}",
    )
