# taxbook_core/documents/selectors.py
from __future__ import annotations

from typing import Any, Optional

import django_filters
from django.core.exceptions import ValidationError
from django.db.models import QuerySet

from taxbook_core.common.permissions import ROLE_ADMIN, user_roles
from taxbook_core.documents.models import Document, DocumentStatus


class DocumentFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=DocumentStatus.choices)
    client_id = django_filters.UUIDFilter(field_name="client_id")
    appointment_id = django_filters.UUIDFilter(field_name="appointment_id")
    document_type = django_filters.CharFilter(field_name="document_type")
    tax_year = django_filters.NumberFilter(field_name="tax_year")

    class Meta:
        model = Document
        fields = ["status", "client_id", "appointment_id", "document_type", "tax_year"]


def documents_qs(*, user) -> QuerySet[Document]:
    qs = Document.objects.all()
    if ROLE_ADMIN not in user_roles(user):
        qs = qs.filter(user_id=getattr(user, "pk", None))
    return qs


def documents_filtered(*, user, params: Any) -> QuerySet[Document]:
    f = DocumentFilter(params, queryset=documents_qs(user=user))
    if not f.is_valid():
        raise ValidationError(f.errors)
    return f.qs.order_by("-created_at")


def get_document(*, user, document_id) -> Optional[Document]:
    try:
        return documents_qs(user=user).filter(id=document_id).first()
    except (ValidationError, ValueError):
        return None
