# taxbook_core/workflows/services.py
from __future__ import annotations

from typing import Any, Optional

from rest_framework.exceptions import APIException, NotFound

from taxbook_core.common.api.exceptions import ConflictError
from taxbook_core.workflows.errors import (
    EntityNotFoundError,
    StateViolationError,
    StoreError,
    TransitionConflictError,
    TransitionError,
)
from taxbook_core.workflows.executor import TransitionExecutor, get_transition_executor


class TransitionFailed(APIException):
    status_code = 503
    default_detail = "Could not save the state change. Try again."
    default_code = "store_error"


def to_api_exception(error: TransitionError) -> APIException:
    """Map a transition failure onto the HTTP error the API layer raises."""
    if isinstance(error, EntityNotFoundError):
        return NotFound(error.message)
    if isinstance(error, StateViolationError):
        return ConflictError(
            error.message,
            code="state_violation",
            current_state=error.current_state,
            attempted_transition=error.attempted_transition,
            allowed_transitions=list(error.allowed_transitions),
        )
    if isinstance(error, TransitionConflictError):
        return ConflictError(error.message, code="transition_conflict")
    if isinstance(error, StoreError):
        return TransitionFailed()
    raise TypeError(f"Unhandled transition error {error!r}")


def apply_transition(
    *,
    entity_kind: str,
    entity_id: Any,
    transition_name: str,
    executor: Optional[TransitionExecutor] = None,
):
    """
    Run the transition and return the updated row; failures are raised as DRF exceptions.
    """
    executor = executor or get_transition_executor()
    result = executor.perform_transition(entity_kind, entity_id, transition_name)
    if result.is_err:
        raise to_api_exception(result.error)
    return result.value
