# taxbook_core/rules/apps.py
from django.apps import AppConfig
from django.conf import settings


class RulesConfig(AppConfig):
    """
    Composition root for business rules: owns the registry and the engine.
    Callers reach them through taxbook_core.rules.engine.get_rule_engine().
    """
    default_auto_field = "django.db.models.BigAutoField"
    name = "taxbook_core.rules"
    label = "rules"

    registry = None
    engine = None

    def ready(self):
        from taxbook_core.common.logging import get_logger
        from taxbook_core.rules.catalog import register_default_rules
        from taxbook_core.rules.engine import RuleEngine
        from taxbook_core.rules.registry import RuleRegistry

        registry = register_default_rules(RuleRegistry())
        report = registry.validate(strict=getattr(settings, "RULES_FAIL_ON_DEPENDENCY_CYCLE", True))

        self.registry = registry
        self.engine = RuleEngine(registry)

        get_logger(__name__).info(
            "rules_registered",
            count=len(registry),
            entities=registry.entities(),
            missing_dependencies=len(report.missing),
        )
