# taxbook_core/common/api/views.py
from __future__ import annotations

from rest_framework import viewsets
from rest_framework.response import Response

from taxbook_core.common.logging import bind_user


class RequestUserLogMixin:
    """
    Puts the DRF-authenticated user into the log context.

    RequestContextMiddleware runs before DRF authentication, so it only sees
    session users; Basic/token users are bound here.
    """

    def perform_authentication(self, request):
        super().perform_authentication(request)
        user = request.user
        if user is not None and user.is_authenticated:
            bind_user(user.pk)


class ListingViewSet(RequestUserLogMixin, viewsets.GenericViewSet):
    """GenericViewSet whose list endpoints page through ListingPagination."""

    def paginated(self, queryset, serializer_class=None) -> Response:
        serializer_class = serializer_class or self.get_serializer_class()
        page = self.paginate_queryset(queryset)
        if page is None:
            return Response(serializer_class(queryset, many=True).data)
        return self.get_paginated_response(serializer_class(page, many=True).data)
