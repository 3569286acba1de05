"""
dataroom.observability.logging

Structured logging configuration for the Data Room service.

Responsibilities:
- Configure `structlog` for JSON logs stamped with the service name.
- Keep bearer/custom tokens out of log output.
- Bind the acting principal into the request's log context.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# Keys that may carry credentials; their values are never rendered.
_REDACTED_KEYS = frozenset({"access_token", "custom_token", "token", "authorization"})


def configure_logging(*, service_name: str, level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _stamp_service(service_name),
            _redact_credentials,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _stamp_service(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _redact_credentials(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in _REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def bind_principal(principal: str, **extra: Any) -> None:
    structlog.contextvars.bind_contextvars(principal=principal, **extra)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Request metadata is bound in `observability.middleware`; the principal is bound
# by `api.deps.get_caller` (HTTP) or the stream route (WebSocket) once known.
