# taxbook_core/conftest.py
import uuid
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient

from taxbook_core.appointments.models import Appointment
from taxbook_core.common.permissions import ROLE_ADMIN, ROLE_PRACTITIONER
from taxbook_core.documents.models import Document
from taxbook_core.rules.engine import RuleEngine
from taxbook_core.rules.registry import RuleRegistry


def _make_user(username: str, *groups: str):
    User = get_user_model()
    user = User.objects.create_user(username=username, password="testpass", is_active=True)
    for name in groups:
        group, _ = Group.objects.get_or_create(name=name)
        user.groups.add(group)
    return user


@pytest.fixture
def user(db):
    """A practitioner owning the rows created by the factories below."""
    return _make_user("preparer", ROLE_PRACTITIONER)


@pytest.fixture
def other_user(db):
    return _make_user("other-preparer", ROLE_PRACTITIONER)


@pytest.fixture
def admin_user(db):
    return _make_user("office-admin", ROLE_ADMIN)


@pytest.fixture
def api_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def other_client(other_user):
    c = APIClient()
    c.force_authenticate(user=other_user)
    return c


@pytest.fixture
def admin_client(admin_user):
    c = APIClient()
    c.force_authenticate(user=admin_user)
    return c


@pytest.fixture
def registry():
    """Empty registry; tests register exactly the rules they need."""
    return RuleRegistry()


@pytest.fixture
def engine(registry):
    return RuleEngine(registry)


@pytest.fixture
def slot():
    """(starts_at, ends_at) for a one hour booking tomorrow at 10:00 local."""
    tomorrow = timezone.localtime() + timedelta(days=1)
    starts = tomorrow.replace(hour=10, minute=0, second=0, microsecond=0)
    return starts, starts + timedelta(hours=1)


@pytest.fixture
def make_appointment(db, user, slot):
    def _make(**overrides):
        starts, ends = slot
        values = {
            "user": user,
            "client_id": uuid.uuid4(),
            "service_id": uuid.uuid4(),
            "starts_at": starts,
            "ends_at": ends,
        }
        values.update(overrides)
        return Appointment.objects.create(**values)

    return _make


@pytest.fixture
def appointment(make_appointment):
    return make_appointment()


@pytest.fixture
def make_document(db, user):
    def _make(**overrides):
        values = {
            "user": user,
            "client_id": uuid.uuid4(),
            "document_type": "w2",
            "tax_year": 2025,
        }
        values.update(overrides)
        return Document.objects.create(**values)

    return _make


@pytest.fixture
def document(make_document):
    return make_document()
