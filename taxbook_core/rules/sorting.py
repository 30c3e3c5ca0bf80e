# taxbook_core/rules/sorting.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from taxbook_core.common.logging import get_logger
from taxbook_core.rules.types import Rule

logger = get_logger(__name__)

_UNVISITED, _IN_PROGRESS, _DONE = 0, 1, 2


@dataclass(frozen=True)
class SortResult:
    rules: tuple[Rule, ...]
    cycles: tuple[tuple[str, ...], ...] = ()


def by_priority(rules: Iterable[Rule]) -> list[Rule]:
    # sorted() is stable: equal priorities keep their incoming order
    return sorted(rules, key=lambda r: -r.priority)


def topological_sort(rules: Sequence[Rule]) -> SortResult:
    """
    Order rules so every rule comes after the rules it depends on.

    - Visitation order is priority descending; that only decides ties.
    - Dependencies outside `rules` are ignored.
    - A dependency cycle is logged and recorded; the branch that closes the
      cycle is abandoned and sorting carries on. No rule is emitted twice.
    """
    by_id = {r.id: r for r in rules}
    state: dict[str, int] = {}
    ordered: list[Rule] = []
    cycles: list[tuple[str, ...]] = []
    path: list[str] = []

    def visit(rule: Rule) -> None:
        st = state.get(rule.id, _UNVISITED)
        if st == _DONE:
            return
        if st == _IN_PROGRESS:
            cycle = tuple(path[path.index(rule.id):]) + (rule.id,)
            cycles.append(cycle)
            logger.warning("rule_dependency_cycle", rule_id=rule.id, cycle=" -> ".join(cycle))
            return

        state[rule.id] = _IN_PROGRESS
        path.append(rule.id)
        for dep_id in rule.depends_on:
            dep = by_id.get(dep_id)
            if dep is not None:
                visit(dep)
        path.pop()
        state[rule.id] = _DONE
        ordered.append(rule)

    for rule in by_priority(by_id.values()):
        visit(rule)

    return SortResult(rules=tuple(ordered), cycles=tuple(cycles))


def find_cycles(rules: Sequence[Rule]) -> list[tuple[str, ...]]:
    return list(topological_sort(rules).cycles)
