# taxbook_core/appointments/apps.py
from django.apps import AppConfig


class AppointmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "taxbook_core.appointments"
    label = "appointments"
