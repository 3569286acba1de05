"""
dataroom.api.errors

Maps the service error taxonomy onto HTTP responses.

Responsibilities:
- One status code per error class.
- A stable JSON body: {"error": <code>, "detail": <message>}.
- `Retry-After` on retryable infrastructure failures.
"""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dataroom.errors import (
    AuthError,
    DataRoomError,
    InfrastructureError,
    InvalidRequest,
    NotFound,
    PayloadTooLarge,
    PermissionDenied,
    TransferError,
)
from dataroom.observability.logging import get_logger

log = get_logger(__name__)

# Most specific first; PayloadTooLarge must win over InvalidRequest.
_STATUS: tuple[tuple[type[DataRoomError], HTTPStatus], ...] = (
    (AuthError, HTTPStatus.UNAUTHORIZED),
    (PermissionDenied, HTTPStatus.FORBIDDEN),
    (NotFound, HTTPStatus.NOT_FOUND),
    (PayloadTooLarge, HTTPStatus.REQUEST_ENTITY_TOO_LARGE),
    (InvalidRequest, HTTPStatus.UNPROCESSABLE_ENTITY),
    (TransferError, HTTPStatus.BAD_GATEWAY),
    (InfrastructureError, HTTPStatus.SERVICE_UNAVAILABLE),
)

RETRY_AFTER_SECONDS = 2


def status_for(exc: DataRoomError) -> HTTPStatus:
    for cls, status in _STATUS:
        if isinstance(exc, cls):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR


async def _handle(request: Request, exc: DataRoomError) -> JSONResponse:
    status = status_for(exc)
    headers = None
    if exc.retryable and status >= 500:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    if status >= 500:
        log.warning("request_failed", error=exc.code, detail=str(exc))
    return JSONResponse(
        status_code=int(status),
        content={"error": exc.code, "detail": str(exc)},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.exception_handler(DataRoomError)(_handle)


# --- Module Notes -----------------------------------------------------------
# ConfigurationError never reaches a request: `create_app` raises it before the
# app exists.
