# taxbook_core/workflows/apps.py
from django.apps import AppConfig
from django.conf import settings


class WorkflowsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "taxbook_core.workflows"
    label = "workflows"

    executor = None

    def ready(self):
        from taxbook_core.workflows.executor import DEFAULT_MAX_ATTEMPTS, TransitionExecutor
        from taxbook_core.workflows.store import DjangoStateStore

        self.executor = TransitionExecutor(
            store=DjangoStateStore(),
            max_attempts=int(getattr(settings, "STATE_TRANSITION_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)),
        )
