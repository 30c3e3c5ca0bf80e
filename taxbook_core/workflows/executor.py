# taxbook_core/workflows/executor.py
from __future__ import annotations

from typing import Any, Mapping, Optional

from django.apps import apps

from taxbook_core.common.logging import get_logger
from taxbook_core.common.result import Err, Ok, Result
from taxbook_core.workflows.errors import (
    EntityNotFoundError,
    StateViolationError,
    StoreError,
    TransitionConflictError,
    TransitionError,
)
from taxbook_core.workflows.machines import STATE_MACHINES, StateMachine, UnknownEntityKind
from taxbook_core.workflows.store import StateStore

logger = get_logger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


class TransitionExecutor:
    """
    Moves an entity along its state machine.

    1. read the current status (absent -> EntityNotFoundError)
    2. reject transitions not allowed from it (StateViolationError)
    3. write the target conditioned on the status read in (1)
    4. lost the race -> re-read and retry, up to `max_attempts`
       (then TransitionConflictError)

    Storage exceptions come back as StoreError. Nothing expected is raised;
    an unknown entity kind is a caller bug and raises UnknownEntityKind.
    """

    def __init__(
        self,
        store: StateStore,
        machines: Optional[Mapping[str, StateMachine]] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.machines = {k.lower(): m for k, m in (machines or STATE_MACHINES).items()}
        self.max_attempts = max_attempts

    def machine_for(self, entity_kind: str) -> StateMachine:
        machine = self.machines.get(entity_kind.lower())
        if machine is None:
            raise UnknownEntityKind(f"No state machine for entity kind {entity_kind!r}")
        return machine

    def perform_transition(
        self,
        entity_kind: str,
        entity_id: Any,
        transition_name: str,
    ) -> Result[Any, TransitionError]:
        machine = self.machine_for(entity_kind)
        entity = machine.entity
        eid = str(entity_id)
        transition = machine.transition(transition_name)
        log = logger.bind(entity=entity, entity_id=eid, transition=transition_name)

        current: Optional[str] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                current = self.store.get_entity_state(entity_kind, entity_id)
            except Exception as exc:
                log.exception("transition_store_read_failed")
                return Err(StoreError(entity=entity, entity_id=eid, detail=str(exc)))

            if current is None:
                return Err(EntityNotFoundError(entity=entity, entity_id=eid))

            if transition is None or not transition.allows(current):
                allowed = tuple(machine.allowed_transitions(current))
                log.info("transition_rejected", current_state=current, allowed=list(allowed))
                return Err(
                    StateViolationError(
                        entity=entity,
                        entity_id=eid,
                        current_state=current,
                        attempted_transition=transition_name,
                        allowed_transitions=allowed,
                    )
                )

            target = transition.to_state(current)
            try:
                updated = self.store.set_entity_state(
                    entity_kind, entity_id, target, expected_status=current
                )
            except Exception as exc:
                log.exception("transition_store_write_failed", current_state=current, target_state=target)
                return Err(StoreError(entity=entity, entity_id=eid, detail=str(exc)))

            if updated is not None:
                log.info("transition_performed", from_state=current, to_state=target, attempt=attempt)
                return Ok(updated)

            log.info("transition_retry", expected_state=current, attempt=attempt)

        log.warning("transition_conflict", attempts=self.max_attempts, last_seen_state=current)
        return Err(
            TransitionConflictError(
                entity=entity,
                entity_id=eid,
                attempted_transition=transition_name,
                attempts=self.max_attempts,
                last_seen_state=current,
            )
        )


def get_transition_executor() -> TransitionExecutor:
    """The executor built by the workflows app at startup."""
    return apps.get_app_config("workflows").executor


def perform_transition(entity_kind: str, entity_id: Any, transition_name: str) -> Result[Any, TransitionError]:
    return get_transition_executor().perform_transition(entity_kind, entity_id, transition_name)
