# taxbook_core/rules/engine.py
from __future__ import annotations

from typing import Iterable, Optional

from django.apps import apps

from taxbook_core.common.logging import get_logger
from taxbook_core.common.result import Err, Ok, Result
from taxbook_core.rules.registry import RuleRegistry
from taxbook_core.rules.sorting import topological_sort
from taxbook_core.rules.types import (
    INTERNAL_RULE_FAILURE,
    EvaluationResult,
    Rule,
    RuleContext,
    RuleError,
    RuleType,
    Severity,
)

logger = get_logger(__name__)


class RuleEngine:
    """
    Evaluates registered rules against a RuleContext.

    Order: priority descending, then dependency order (a rule runs after the
    rules it depends on), then registration order.

    Outcome per rule:
      - pass            -> continue
      - ERROR           -> errors; stop right there if stop_on_first_error
      - WARNING / INFO  -> warnings; always continue
      - raises, or returns something other than Ok/Err
                        -> ERROR tagged internal_rule_failure
    """

    def __init__(self, registry: RuleRegistry):
        self.registry = registry

    def select_rules(self, context: RuleContext, types: Optional[Iterable[RuleType | str]] = None) -> list[Rule]:
        if types is None:
            return self.registry.get_by_entity(context.entity)

        if isinstance(types, str):
            types = (types,)

        selected: list[Rule] = []
        seen: set[str] = set()
        for t in types:
            for rule in self.registry.get_by_entity_and_type(context.entity, t):
                if rule.id not in seen:
                    seen.add(rule.id)
                    selected.append(rule)
        return selected

    def evaluate_rules(
        self,
        context: RuleContext,
        *,
        types: Optional[Iterable[RuleType | str]] = None,
        stop_on_first_error: bool = True,
    ) -> EvaluationResult:
        sorted_rules = topological_sort(self.select_rules(context, types))

        errors: list[RuleError] = []
        warnings: list[RuleError] = []
        evaluated = 0

        for rule in sorted_rules.rules:
            evaluated += 1
            result = self._run(rule, context)
            if result.is_ok:
                continue

            rule_error = result.error
            if rule_error.is_blocking:
                errors.append(rule_error)
                if stop_on_first_error:
                    break
            else:
                warnings.append(rule_error)

        outcome = EvaluationResult(
            passed=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            rules_evaluated=evaluated,
            cycles=sorted_rules.cycles,
        )

        if not outcome.passed:
            logger.info(
                "rules_failed",
                entity=context.entity,
                operation=context.operation.value,
                failed=[e.rule_id for e in outcome.errors],
                rules_evaluated=evaluated,
            )
        return outcome

    def validate_input(self, context: RuleContext) -> EvaluationResult:
        """Validation rules only; every error is collected (form display)."""
        return self.evaluate_rules(context, types=[RuleType.VALIDATION], stop_on_first_error=False)

    def check_constraints(self, context: RuleContext) -> EvaluationResult:
        return self.evaluate_rules(context, types=[RuleType.CONSTRAINT], stop_on_first_error=True)

    def check_authorization(self, context: RuleContext) -> EvaluationResult:
        return self.evaluate_rules(context, types=[RuleType.AUTHORIZATION], stop_on_first_error=True)

    @staticmethod
    def _run(rule: Rule, context: RuleContext) -> Result[None, RuleError]:
        try:
            result = rule.evaluate(context)
        except Exception as exc:
            logger.exception("rule_raised", rule_id=rule.id, entity=context.entity)
            return _internal_failure(rule, exception=type(exc).__name__)

        if not isinstance(result, (Ok, Err)):
            logger.error(
                "rule_bad_result",
                rule_id=rule.id,
                entity=context.entity,
                returned=type(result).__name__,
            )
            return _internal_failure(rule, returned=type(result).__name__)
        return result


def _internal_failure(rule: Rule, **details) -> Err[RuleError]:
    return Err(
        RuleError(
            rule_id=rule.id,
            rule_name=rule.name,
            message=f"Rule '{rule.name}' failed to evaluate.",
            severity=Severity.ERROR,
            field=rule.field,
            context={"code": INTERNAL_RULE_FAILURE, **details},
        )
    )


def get_rule_registry() -> RuleRegistry:
    """The registry built by the rules app at startup."""
    return apps.get_app_config("rules").registry


def get_rule_engine() -> RuleEngine:
    return apps.get_app_config("rules").engine
