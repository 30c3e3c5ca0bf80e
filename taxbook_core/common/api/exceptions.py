# taxbook_core/common/api/exceptions.py
"""
Every API error leaves as:

    {"error": {"code", "message", "details", "request_id"}}

`code` is what clients branch on: rule and workflow failures carry their own
(`conflict`, `state_violation`, `transition_conflict`, `store_error`), DRF's
built-ins keep theirs (`not_found`, `permission_denied`, ...).
"""
from __future__ import annotations

from typing import Any, Optional

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from taxbook_core.common.logging import get_logger
from taxbook_core.common.middleware import request_id_for

logger = get_logger(__name__)

GENERIC_MESSAGE = "Request failed."
DJANGO_ERROR_CODES = {
    status.HTTP_403_FORBIDDEN: "permission_denied",
    status.HTTP_404_NOT_FOUND: "not_found",
}


class ConflictError(APIException):
    """
    409 for a write blocked by a constraint rule or a state machine.

        ConflictError("This time overlaps another booking", rule_id=..., field="starts_at")
        ConflictError(msg, code="state_violation", current_state="confirmed", ...)

    Keyword details travel next to the message and end up in the envelope's `details`.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict."
    default_code = "conflict"

    def __init__(self, message: Optional[str] = None, *, code: str = "conflict", **details: Any):
        message = message or self.default_detail
        super().__init__(detail={"detail": message, **details} if details else message, code=code)
        self.error_code = code


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id_for(request),
        }
    }


def error_code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, APIException):
        # ConflictError keeps a per-instance code; DRF's own exceptions only have the class default
        return getattr(exc, "error_code", None) or exc.default_code or "error"
    # Http404 / Django PermissionDenied, already converted to a response by DRF
    return DJANGO_ERROR_CODES.get(http_status, "error")


def split_detail(data: Any) -> tuple[str, Any]:
    """
    DRF response data -> (message, details).

    {"detail": msg}          -> (msg, None)
    {"detail": msg, **rest}  -> (msg, rest)
    field errors / lists     -> ("Request failed.", data)
    """
    if isinstance(data, dict) and "detail" in data:
        rest = {k: v for k, v in data.items() if k != "detail"}
        return str(data["detail"]), rest or None
    return GENERIC_MESSAGE, data


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")
    response = drf_exception_handler(exc, context)

    if response is None:
        logger.exception("unhandled_api_error", exc_type=type(exc).__name__)
        envelope = build_error_envelope(request=request, code="server_error", message="Unexpected server error.")
        return Response(envelope, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    code = error_code_for(exc, response.status_code)
    message, details = split_detail(response.data)

    if response.status_code == status.HTTP_409_CONFLICT:
        logger.info("write_blocked", code=code, message=message)

    return Response(
        build_error_envelope(request=request, code=code, message=message, details=details),
        status=response.status_code,
        headers=response.headers,
    )
