# taxbook_core/rules/registry.py
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

from taxbook_core.common.logging import get_logger
from taxbook_core.rules.sorting import by_priority, find_cycles
from taxbook_core.rules.types import Rule, RuleType

logger = get_logger(__name__)


class RuleDependencyError(Exception):
    def __init__(self, cycles: list[tuple[str, ...]]):
        self.cycles = cycles
        text = "; ".join(" -> ".join(c) for c in cycles)
        super().__init__(f"Rule dependency cycle(s): {text}")


@dataclass(frozen=True)
class DependencyReport:
    # rule id -> dependency ids that are not registered
    missing: dict[str, tuple[str, ...]] = field(default_factory=dict)
    cycles: tuple[tuple[str, ...], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing and not self.cycles


@dataclass(frozen=True)
class _Snapshot:
    rules: dict
    seq: dict
    by_entity: dict
    by_type: dict


def _as_rule_type(value: RuleType | str) -> Optional[RuleType]:
    try:
        return RuleType(value)
    except ValueError:
        return None


class RuleRegistry:
    """
    In-memory rule catalog indexed by id, entity and rule type.

    Populated while the `rules` app loads, read-only afterwards. Writes are
    serialised and published as a whole new snapshot so readers never see a
    half-updated index.
    """

    def __init__(self, rules: Iterable[Rule] = ()):
        self._lock = threading.Lock()
        self._snap = _Snapshot(rules={}, seq={}, by_entity={}, by_type={})
        self._next_seq = 0
        self.register_many(rules)

    # -----------------------
    # Writes
    # -----------------------
    def register(self, rule: Rule) -> None:
        """Insert or overwrite by id."""
        with self._lock:
            snap = self._snap
            rules = dict(snap.rules)
            seq = dict(snap.seq)
            by_entity = {k: set(v) for k, v in snap.by_entity.items()}
            by_type = {k: set(v) for k, v in snap.by_type.items()}

            old = rules.get(rule.id)
            if old is not None:
                by_entity.get(old.entity, set()).discard(rule.id)
                by_type.get(old.type, set()).discard(rule.id)
            else:
                # Overwrites keep the original position for tie-breaking.
                seq[rule.id] = self._next_seq
                self._next_seq += 1

            rules[rule.id] = rule
            by_entity.setdefault(rule.entity, set()).add(rule.id)
            by_type.setdefault(rule.type, set()).add(rule.id)

            self._snap = _Snapshot(rules=rules, seq=seq, by_entity=by_entity, by_type=by_type)

    def register_many(self, rules: Iterable[Rule]) -> None:
        for rule in rules:
            self.register(rule)

    # -----------------------
    # Reads
    # -----------------------
    def get(self, rule_id: str) -> Optional[Rule]:
        return self._snap.rules.get(rule_id)

    def _ordered(self, snap: _Snapshot, ids: Iterable[str]) -> list[Rule]:
        rules = [snap.rules[i] for i in sorted(ids, key=snap.seq.__getitem__)]
        return by_priority(r for r in rules if r.enabled)

    def get_by_entity(self, entity: str) -> list[Rule]:
        snap = self._snap
        return self._ordered(snap, snap.by_entity.get(entity, ()))

    def get_by_type(self, rule_type: RuleType | str) -> list[Rule]:
        rule_type = _as_rule_type(rule_type)
        if rule_type is None:
            return []
        snap = self._snap
        return self._ordered(snap, snap.by_type.get(rule_type, ()))

    def get_by_entity_and_type(self, entity: str, rule_type: RuleType | str) -> list[Rule]:
        rule_type = _as_rule_type(rule_type)
        if rule_type is None:
            return []
        return [r for r in self.get_by_entity(entity) if r.type == rule_type]

    def all(self) -> list[Rule]:
        """Every registered rule, enabled or not."""
        return list(self._snap.rules.values())

    def entities(self) -> list[str]:
        return sorted(e for e, ids in self._snap.by_entity.items() if ids)

    def __len__(self) -> int:
        return len(self._snap.rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._snap.rules

    # -----------------------
    # Startup checks
    # -----------------------
    def check_dependencies(self) -> DependencyReport:
        snap = self._snap
        missing: dict[str, tuple[str, ...]] = {}
        for rule in snap.rules.values():
            gone = tuple(d for d in rule.depends_on if d not in snap.rules)
            if gone:
                missing[rule.id] = gone

        cycles: list[tuple[str, ...]] = []
        for entity in snap.by_entity:
            entity_rules = [snap.rules[i] for i in snap.by_entity[entity]]
            cycles.extend(find_cycles(entity_rules))

        return DependencyReport(missing=missing, cycles=tuple(cycles))

    def validate(self, *, strict: bool = True) -> DependencyReport:
        """
        Log dangling dependencies; raise RuleDependencyError on cycles when strict.
        """
        report = self.check_dependencies()
        for rule_id, deps in report.missing.items():
            logger.warning("rule_dependency_missing", rule_id=rule_id, missing=list(deps))
        if report.cycles and strict:
            raise RuleDependencyError(list(report.cycles))
        return report
