# taxbook_core/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from taxbook_core.appointments.api.views import AppointmentViewSet
from taxbook_core.documents.api.views import DocumentViewSet
from taxbook_core.rules.api.views import RuleViewSet

router = DefaultRouter()

router.register(r"appointments", AppointmentViewSet, basename="appointments")
router.register(r"documents", DocumentViewSet, basename="documents")

# Admin tooling
router.register(r"rules", RuleViewSet, basename="rules")

urlpatterns = router.urls
