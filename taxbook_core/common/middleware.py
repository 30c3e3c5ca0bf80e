# taxbook_core/common/middleware.py
from __future__ import annotations

import uuid

from django.utils.deprecation import MiddlewareMixin

from taxbook_core.common.logging import bind_request_context, clear_request_context

REQUEST_ID_MAX_LENGTH = 64


def request_id_for(request) -> str:
    """The request's correlation id, minted (and remembered on the request) on first use."""
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            request.request_id = rid
    return rid


class RequestContextMiddleware(MiddlewareMixin):
    """
    Binds request_id into the structlog context so every log line of a request
    can be correlated. Session users are bound here too; token/basic users are
    only known once DRF authenticates, see common.api.views.RequestUserLogMixin.

    Honours an incoming X-Request-Id header; echoes the id back on the response.
    """

    HEADER = "HTTP_X_REQUEST_ID"

    def process_request(self, request):
        incoming = request.META.get(self.HEADER)
        if incoming:
            request.request_id = incoming[:REQUEST_ID_MAX_LENGTH]
        rid = request_id_for(request)

        user = getattr(request, "user", None)
        user_id = str(user.pk) if user is not None and getattr(user, "is_authenticated", False) else None
        bind_request_context(request_id=rid, user_id=user_id)
        return None

    def process_response(self, request, response):
        rid = getattr(request, "request_id", None)
        if rid:
            response["X-Request-Id"] = rid
        clear_request_context()
        return response
