# taxbook_core/workflows/machines.py
"""
Entity lifecycles as finite state machines.

States are nodes, transition names are labelled edges. Terminal states simply
have no outgoing edges; nothing moves on its own, every transition is invoked.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional


class UnknownEntityKind(LookupError):
    pass


class StateMachineDefinitionError(ValueError):
    pass


@dataclass(frozen=True)
class Transition:
    name: str
    # source state -> target state
    table: Mapping[str, str]

    def __post_init__(self):
        object.__setattr__(self, "table", MappingProxyType(dict(self.table)))

    @classmethod
    def simple(cls, name: str, sources: Iterable[str], target: str) -> "Transition":
        return cls(name=name, table={s: target for s in sources})

    @property
    def sources(self) -> frozenset[str]:
        return frozenset(self.table)

    def allows(self, from_state: Optional[str]) -> bool:
        return from_state in self.table

    def to_state(self, from_state: Optional[str]) -> Optional[str]:
        """Target for `from_state`; None when the transition does not apply."""
        return self.table.get(from_state)


@dataclass(frozen=True)
class StateMachine:
    entity: str
    states: tuple[str, ...]
    initial_state: str
    transitions: tuple[Transition, ...] = field(default=())

    def __post_init__(self):
        object.__setattr__(self, "states", tuple(self.states))
        object.__setattr__(self, "transitions", tuple(self.transitions))
        self._check()

    def _check(self) -> None:
        known = set(self.states)
        if self.initial_state not in known:
            raise StateMachineDefinitionError(
                f"{self.entity}: initial state {self.initial_state!r} is not declared"
            )

        names = [t.name for t in self.transitions]
        dupes = {n for n in names if names.count(n) > 1}
        if dupes:
            raise StateMachineDefinitionError(f"{self.entity}: duplicate transitions {sorted(dupes)}")

        for t in self.transitions:
            if not t.table:
                raise StateMachineDefinitionError(f"{self.entity}.{t.name}: no source states")
            for src, dst in t.table.items():
                if src not in known or dst not in known:
                    raise StateMachineDefinitionError(
                        f"{self.entity}.{t.name}: {src!r} -> {dst!r} uses an undeclared state"
                    )

    def transition(self, name: str) -> Optional[Transition]:
        for t in self.transitions:
            if t.name == name:
                return t
        return None

    def allowed_transitions(self, current_state: Optional[str]) -> list[str]:
        return [t.name for t in self.transitions if t.allows(current_state)]

    def can(self, current_state: Optional[str], transition_name: str) -> bool:
        t = self.transition(transition_name)
        return t is not None and t.allows(current_state)

    def edges(self) -> set[tuple[str, str]]:
        return {(src, dst) for t in self.transitions for src, dst in t.table.items()}

    def terminal_states(self) -> list[str]:
        sources = {src for t in self.transitions for src in t.table}
        return [s for s in self.states if s not in sources]


# ---------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------
APPOINTMENT_MACHINE = StateMachine(
    entity="Appointment",
    states=("draft", "confirmed", "in_progress", "completed", "cancelled", "no_show"),
    initial_state="draft",
    transitions=(
        Transition.simple("confirm", ["draft"], "confirmed"),
        Transition.simple("start", ["confirmed"], "in_progress"),
        Transition.simple("complete", ["in_progress"], "completed"),
        Transition.simple("cancel", ["confirmed"], "cancelled"),
        Transition.simple("cancelDraft", ["draft"], "cancelled"),
        Transition.simple("markNoShow", ["confirmed"], "no_show"),
    ),
)

DOCUMENT_MACHINE = StateMachine(
    entity="Document",
    states=("requested", "uploaded", "reviewed", "accepted", "rejected"),
    initial_state="requested",
    transitions=(
        Transition.simple("upload", ["requested"], "uploaded"),
        Transition.simple("review", ["uploaded"], "reviewed"),
        Transition.simple("accept", ["reviewed"], "accepted"),
        Transition.simple("reject", ["reviewed"], "rejected"),
        Transition.simple("reupload", ["rejected"], "uploaded"),
    ),
)

STATE_MACHINES: Mapping[str, StateMachine] = MappingProxyType(
    {m.entity.lower(): m for m in (APPOINTMENT_MACHINE, DOCUMENT_MACHINE)}
)


def get_state_machine(entity_kind: str) -> StateMachine:
    try:
        return STATE_MACHINES[entity_kind.lower()]
    except (KeyError, AttributeError):
        raise UnknownEntityKind(f"No state machine for entity kind {entity_kind!r}")


def get_allowed_transitions(entity_kind: str, current_state: Optional[str]) -> list[str]:
    """Transition names whose source set contains `current_state`, in declaration order."""
    return get_state_machine(entity_kind).allowed_transitions(current_state)


def validate_transition(entity_kind: str, current_state: Optional[str], transition_name: str) -> bool:
    return get_state_machine(entity_kind).can(current_state, transition_name)
