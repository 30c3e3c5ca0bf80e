# taxbook_core/workflows/errors.py
"""
Typed transition failures. They travel inside `Err`, they are not raised.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class StateViolationError:
    type: ClassVar[str] = "state_violation"

    entity: str
    entity_id: str
    current_state: Optional[str]
    attempted_transition: str
    allowed_transitions: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return f"Cannot {self.attempted_transition} {self.entity} in state {self.current_state}"


@dataclass(frozen=True)
class EntityNotFoundError:
    type: ClassVar[str] = "not_found"

    entity: str
    entity_id: str

    @property
    def message(self) -> str:
        return f"{self.entity} {self.entity_id} not found"


@dataclass(frozen=True)
class TransitionConflictError:
    """The row kept changing under us; every compare-and-swap attempt lost."""
    type: ClassVar[str] = "transition_conflict"

    entity: str
    entity_id: str
    attempted_transition: str
    attempts: int
    last_seen_state: Optional[str] = None

    @property
    def message(self) -> str:
        return (
            f"{self.entity} {self.entity_id} changed concurrently; "
            f"{self.attempted_transition} gave up after {self.attempts} attempts"
        )


@dataclass(frozen=True)
class StoreError:
    type: ClassVar[str] = "store_error"

    entity: str
    entity_id: str
    detail: str = field(default="")

    @property
    def message(self) -> str:
        return f"Storage failure for {self.entity} {self.entity_id}"


TransitionError = Union[StateViolationError, EntityNotFoundError, TransitionConflictError, StoreError]
