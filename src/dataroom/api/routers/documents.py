"""
dataroom.api.routers.documents

Document Registry endpoints.

Responsibilities:
- List documents (any signed-in caller).
- Add/remove documents (role enforced by the registry).
- Stream registry snapshots over a WebSocket.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Query, Response, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT, WS_1008_POLICY_VIOLATION

from dataroom.api.deps import document_registry, get_caller
from dataroom.auth.identity import IdentityResolver
from dataroom.domain import CallerContext, DocumentDraft, DocumentRecord
from dataroom.errors import AuthError
from dataroom.observability.logging import bind_principal, get_logger
from dataroom.services.registry import DocumentRegistry
from dataroom.services.subscriptions import Subscription

log = get_logger(__name__)

router = APIRouter(prefix="/v1/documents", tags=["documents"])


class DocumentCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=512)
    locator: str = Field(min_length=1, max_length=4096)


class DocumentResponse(BaseModel):
    id: uuid.UUID
    name: str
    locator: str
    created_at: datetime
    owner_principal: str

    @classmethod
    def from_record(cls, record: DocumentRecord) -> DocumentResponse:
        return cls(
            id=record.id,
            name=record.name,
            locator=record.locator,
            created_at=record.created_at,
            owner_principal=record.owner_principal,
        )


@router.get("", response_model=list[DocumentResponse], dependencies=[Depends(get_caller)])
async def list_documents(
    registry: DocumentRegistry = Depends(document_registry),
) -> list[DocumentResponse]:
    return [DocumentResponse.from_record(d) for d in await registry.list()]


@router.post("", response_model=DocumentResponse, status_code=HTTP_201_CREATED)
async def add_document(
    body: DocumentCreateRequest,
    caller: CallerContext = Depends(get_caller),
    registry: DocumentRegistry = Depends(document_registry),
) -> DocumentResponse:
    record = await registry.add(
        DocumentDraft(name=body.name, locator=body.locator, owner_principal=caller.principal),
        caller.role,
    )
    return DocumentResponse.from_record(record)


@router.delete("/{document_id}", status_code=HTTP_204_NO_CONTENT)
async def remove_document(
    document_id: uuid.UUID,
    caller: CallerContext = Depends(get_caller),
    registry: DocumentRegistry = Depends(document_registry),
) -> Response:
    await registry.remove(document_id, caller.role)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.websocket("/stream")
async def stream_documents(websocket: WebSocket, token: str = Query(default="")) -> None:
    identity: IdentityResolver = websocket.app.state.identity
    registry: DocumentRegistry = websocket.app.state.registry
    try:
        principal = identity.principal_from_token(token)
    except AuthError as e:
        await websocket.close(code=WS_1008_POLICY_VIOLATION, reason=str(e))
        return

    bind_principal(principal.id, path="/v1/documents/stream")
    await websocket.accept()
    sub = await registry.subscribe()
    drain = asyncio.create_task(_unsubscribe_on_disconnect(websocket, sub))
    try:
        async for snapshot in sub:
            await websocket.send_json(snapshot.to_dict())
    except WebSocketDisconnect:
        pass
    finally:
        sub.unsubscribe()
        drain.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await drain
        log.debug("registry_stream_closed", principal=principal.id)
        structlog.contextvars.clear_contextvars()


async def _unsubscribe_on_disconnect(websocket: WebSocket, sub: Subscription) -> None:
    # Clients send nothing meaningful; reading only detects the disconnect.
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        sub.unsubscribe()


# --- Module Notes -----------------------------------------------------------
# Read access is open to every signed-in principal; only mutations are gated.
