# taxbook_core/common/permissions.py
from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission

# Group/role names (Django auth Group names)
ROLE_ADMIN = "ADMIN"
ROLE_PRACTITIONER = "PRACTITIONER"


def user_roles(user) -> Set[str]:
    """
    Resolve roles from Django groups. Superusers are treated as ADMIN.

    Returns an empty set for anonymous users.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_ADMIN)

    if hasattr(user, "groups"):
        roles.update(user.groups.values_list("name", flat=True))

    return roles


def actor_id(user) -> str | None:
    if not user or not getattr(user, "is_authenticated", False):
        return None
    return str(user.pk)


class IsAdminRole(BasePermission):
    """Authenticated users holding the ADMIN role (or superusers)."""

    message = "Admin role required."

    def has_permission(self, request, view) -> bool:
        return ROLE_ADMIN in user_roles(request.user)
