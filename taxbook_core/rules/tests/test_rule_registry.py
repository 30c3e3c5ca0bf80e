import threading

import pytest

from taxbook_core.rules.builders import create_constraint_rule, create_validation_rule
from taxbook_core.rules.registry import RuleDependencyError, RuleRegistry
from taxbook_core.rules.types import RuleType


def _passing(rule_id, entity="Client", message="never fails", **overrides):
    return create_constraint_rule(rule_id, rule_id, entity, lambda data, ctx: True, message, **overrides)


def test_retrieval_orders_by_priority_descending(registry):
    registry.register(_passing("low", priority=50))
    registry.register(_passing("high", priority=100))

    assert [r.id for r in registry.get_by_entity("Client")] == ["high", "low"]


def test_equal_priorities_keep_registration_order(registry):
    for rule_id in ("first", "second", "third"):
        registry.register(_passing(rule_id, priority=10))

    assert [r.id for r in registry.get_by_entity("Client")] == ["first", "second", "third"]


def test_disabled_rules_are_hidden_from_lookups_but_listed_by_all(registry):
    registry.register(_passing("on"))
    registry.register(_passing("off", enabled=False))

    assert [r.id for r in registry.get_by_entity("Client")] == ["on"]
    assert [r.id for r in registry.get_by_type(RuleType.CONSTRAINT)] == ["on"]
    assert registry.get_by_entity_and_type("Client", "constraint") == [registry.get("on")]
    assert {r.id for r in registry.all()} == {"on", "off"}


def test_re_registering_an_id_overwrites_in_place(registry):
    registry.register(_passing("a", priority=10))
    registry.register(_passing("b", priority=10))
    registry.register(_passing("a", priority=10, message="updated"))

    assert len(registry.all()) == 2
    assert registry.get("a").message == "updated"
    # keeps its original slot for ties
    assert [r.id for r in registry.get_by_entity("Client")] == ["a", "b"]


def test_re_registering_with_new_priority_is_authoritative(registry):
    registry.register(_passing("a", priority=10))
    registry.register(_passing("b", priority=50))
    registry.register(_passing("a", priority=90))

    assert len(registry) == 2
    assert [r.id for r in registry.get_by_entity("Client")] == ["a", "b"]


def test_re_registering_moves_rule_between_entity_and_type_buckets(registry):
    registry.register(_passing("moving", entity="Client"))
    registry.register(
        create_validation_rule("moving", "moving", "Service", "name", lambda v, ctx: True, "x")
    )

    assert registry.get_by_entity("Client") == []
    assert [r.id for r in registry.get_by_entity("Service")] == ["moving"]
    assert registry.get_by_type(RuleType.CONSTRAINT) == []
    assert [r.id for r in registry.get_by_type(RuleType.VALIDATION)] == ["moving"]
    assert registry.entities() == ["Service"]


def test_absent_lookups_return_empty(registry):
    assert registry.get("nope") is None
    assert registry.get_by_entity("Nope") == []
    assert registry.get_by_type("trigger") == []
    assert "nope" not in registry


def test_unknown_rule_type_lookups_return_empty(registry):
    registry.register(_passing("a"))

    assert registry.get_by_type("bogus") == []
    assert registry.get_by_entity_and_type("Client", "bogus") == []


def test_check_dependencies_reports_missing_ids_and_cycles(registry):
    registry.register(_passing("a", depends_on=("b",)))
    registry.register(_passing("b", depends_on=("a",)))
    registry.register(_passing("c", depends_on=("ghost",)))

    report = registry.check_dependencies()

    assert report.missing == {"c": ("ghost",)}
    assert len(report.cycles) == 1
    assert set(report.cycles[0]) == {"a", "b"}
    assert not report.ok


def test_validate_raises_on_cycles_only_when_strict(registry):
    registry.register(_passing("a", depends_on=("b",)))
    registry.register(_passing("b", depends_on=("a",)))

    with pytest.raises(RuleDependencyError) as exc:
        registry.validate(strict=True)
    assert exc.value.cycles

    report = registry.validate(strict=False)
    assert report.cycles


def test_validate_passes_for_acyclic_rules(registry):
    registry.register(_passing("a", depends_on=("b",)))
    registry.register(_passing("b"))

    assert registry.validate(strict=True).ok


def test_concurrent_registration_loses_nothing():
    registry = RuleRegistry()

    def worker(n):
        for i in range(50):
            registry.register(_passing(f"w{n}-{i}", entity=f"E{n % 3}"))

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry) == 400
    assert sum(len(registry.get_by_entity(e)) for e in registry.entities()) == 400


def test_constructor_accepts_rules():
    registry = RuleRegistry([_passing("a"), _passing("b")])
    assert len(registry) == 2
