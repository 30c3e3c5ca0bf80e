# taxbook_core/common/logging.py
"""
Structured logging for taxbook.

Configured once from CommonConfig.ready(). Modules grab a logger with:
    from taxbook_core.common.logging import get_logger
    logger = get_logger(__name__)
"""
from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

import structlog

_configured = False


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Tag each event with the app that emitted it (taxbook_core.<app>.*)."""
    logger_name = event_dict.get("logger", "")
    parts = logger_name.split(".")
    if len(parts) > 1 and parts[0] == "taxbook_core":
        event_dict["app"] = parts[1]
    return event_dict


def configure_logging(log_level: str = "info", *, json: bool = False) -> None:
    """Configure structlog + stdlib logging. Safe to call more than once."""
    global _configured

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if not _configured:
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, log_level.upper(), logging.INFO),
        )
    else:
        logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))

    _configured = True


def bind_request_context(*, request_id: str, user_id: Optional[str] = None) -> None:
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def bind_user(user_id) -> None:
    """Add the authenticated user to the current request's log context."""
    structlog.contextvars.bind_contextvars(user_id=str(user_id))


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
