# taxbook_core/workflows/store.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

from django.apps import apps
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils.timezone import now


class StateStore(Protocol):
    """Row store holding the `status` column of stateful entities."""

    def get_entity_state(self, entity_kind: str, entity_id: Any) -> Optional[str]:
        ...

    def set_entity_state(
        self,
        entity_kind: str,
        entity_id: Any,
        new_status: str,
        *,
        expected_status: str,
    ) -> Optional[Any]:
        """Write `new_status` only if the row still has `expected_status`; None when it did not."""
        ...


DEFAULT_MODELS: Mapping[str, str] = {
    "appointment": "appointments.Appointment",
    "document": "documents.Document",
}


class DjangoStateStore:
    """
    StateStore over the ORM. The write is a single conditional UPDATE:
        UPDATE ... SET status = new WHERE id = ? AND status = expected
    """

    def __init__(self, models: Optional[Mapping[str, str]] = None):
        self.models = {k.lower(): v for k, v in (models or DEFAULT_MODELS).items()}

    def model_for(self, entity_kind: str):
        try:
            label = self.models[entity_kind.lower()]
        except KeyError:
            raise LookupError(f"No model registered for entity kind {entity_kind!r}")
        return apps.get_model(label)

    def get_entity_state(self, entity_kind: str, entity_id: Any) -> Optional[str]:
        model = self.model_for(entity_kind)
        try:
            return model.objects.filter(pk=entity_id).values_list("status", flat=True).first()
        except (DjangoValidationError, ValueError):
            # malformed id can't match a row
            return None

    def set_entity_state(
        self,
        entity_kind: str,
        entity_id: Any,
        new_status: str,
        *,
        expected_status: str,
    ) -> Optional[Any]:
        model = self.model_for(entity_kind)
        updated = model.objects.filter(pk=entity_id, status=expected_status).update(
            status=new_status,
            updated_at=now(),
        )
        if not updated:
            return None
        return model.objects.get(pk=entity_id)
