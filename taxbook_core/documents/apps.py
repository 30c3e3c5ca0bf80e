# taxbook_core/documents/apps.py
from django.apps import AppConfig


class DocumentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "taxbook_core.documents"
    label = "documents"
