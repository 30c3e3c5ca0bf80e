# taxbook_core/documents/admin.py
from __future__ import annotations

from django.contrib import admin

from taxbook_core.documents.models import Document


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "client_id", "document_type", "tax_year", "status", "created_at")
    list_filter = ("status", "document_type", "tax_year")
    search_fields = ("id", "client_id", "file_name")
    ordering = ("-created_at",)
    readonly_fields = ("status", "created_at", "updated_at")
    raw_id_fields = ("appointment",)
