# taxbook_core/rules/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Optional

from taxbook_core.common.result import Err, Ok, Result


class RuleType(str, Enum):
    VALIDATION = "validation"
    CONSTRAINT = "constraint"
    TRIGGER = "trigger"
    COMPUTED = "computed"
    AUTHORIZATION = "authorization"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"
    TRANSITION = "transition"


# Only ERROR fails an evaluation; WARNING/INFO are reported and evaluation goes on.
BLOCKING_SEVERITIES = frozenset({Severity.ERROR})

INTERNAL_RULE_FAILURE = "internal_rule_failure"


_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _frozen(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, MappingProxyType):
        return value
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return value


@dataclass(frozen=True)
class RuleContext:
    """
    Describes one entity mutation handed to the engine.

    `data` / `previous_data` are exposed read-only; rules read them, they never write.
    """
    entity: str
    operation: Operation
    data: Mapping[str, Any] = field(default_factory=dict)
    previous_data: Optional[Mapping[str, Any]] = None
    user_id: Optional[str] = None
    user_roles: tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "operation", Operation(self.operation))
        object.__setattr__(self, "data", _frozen(self.data) if self.data is not None else _EMPTY)
        object.__setattr__(self, "previous_data", _frozen(self.previous_data))
        object.__setattr__(self, "user_roles", tuple(self.user_roles or ()))
        object.__setattr__(self, "metadata", _frozen(self.metadata) if self.metadata is not None else _EMPTY)

    def value(self, name: str, default: Any = None) -> Any:
        """Field lookup that works for mappings and plain objects."""
        return _lookup(self.data, name, default)

    def previous_value(self, name: str, default: Any = None) -> Any:
        if self.previous_data is None:
            return default
        return _lookup(self.previous_data, name, default)

    def has_role(self, *roles: str) -> bool:
        return any(r in self.user_roles for r in roles)


def _lookup(obj: Any, name: str, default: Any) -> Any:
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


@dataclass(frozen=True)
class RuleError:
    rule_id: str
    rule_name: str
    message: str
    severity: Severity = Severity.ERROR
    field: Optional[str] = None
    context: Optional[Mapping[str, Any]] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity in BLOCKING_SEVERITIES


@dataclass(frozen=True, kw_only=True)
class Rule:
    """
    Base business rule.

    Not used directly: subclasses hold their parameters as dataclass fields
    and implement `check(context) -> bool`, with the failure message taken
    from `message`. Rules with richer outcomes override `evaluate` instead,
    in which case `check` is never called.
    """
    kind: ClassVar[str] = "custom"

    id: str
    name: str
    type: RuleType
    entity: str
    field: Optional[str] = None
    priority: int = 0
    enabled: bool = True
    description: str = ""
    depends_on: tuple[str, ...] = ()
    message: str = "Rule failed"
    severity: Severity = Severity.ERROR

    def __post_init__(self):
        object.__setattr__(self, "type", RuleType(self.type))
        object.__setattr__(self, "severity", Severity(self.severity))
        object.__setattr__(self, "depends_on", tuple(self.depends_on or ()))

    def check(self, context: RuleContext) -> bool:
        raise NotImplementedError(f"{type(self).__name__} must implement check() or override evaluate()")

    def evaluate(self, context: RuleContext) -> Result[None, RuleError]:
        if self.check(context):
            return Ok(None)
        return Err(self.error())

    def error(self, message: Optional[str] = None, **context: Any) -> RuleError:
        return RuleError(
            rule_id=self.id,
            rule_name=self.name,
            message=message or self.message,
            severity=self.severity,
            field=self.field,
            context=context or None,
        )

    def params(self) -> dict[str, Any]:
        """Builder parameters; overridden by rules that carry extra fields."""
        return {}

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "type": self.type.value,
            "entity": self.entity,
            "field": self.field,
            "priority": self.priority,
            "enabled": self.enabled,
            "description": self.description,
            "depends_on": list(self.depends_on),
            "message": self.message,
            "severity": self.severity.value,
            "params": self.params(),
        }


@dataclass(frozen=True)
class EvaluationResult:
    passed: bool
    errors: tuple[RuleError, ...] = ()
    warnings: tuple[RuleError, ...] = ()
    rules_evaluated: int = 0
    # dependency cycles met while ordering (each entry is the cycle path of rule ids)
    cycles: tuple[tuple[str, ...], ...] = ()

    def field_errors(self) -> dict[str, list[str]]:
        """
        Errors grouped per field for form display; errors without a field go under "non_field_errors".
        """
        out: dict[str, list[str]] = {}
        for e in self.errors:
            out.setdefault(e.field or "non_field_errors", []).append(e.message)
        return out

