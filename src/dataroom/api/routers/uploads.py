"""
dataroom.api.routers.uploads

Upload endpoints.

Responsibilities:
- Start an upload from a raw request body (bytes + `name` query parameter).
- Refuse non-admins and oversize bodies before the body is read.
- Report progress and outcome of an upload to the principal that started it.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from starlette.status import HTTP_202_ACCEPTED

from dataroom.api.deps import get_caller, upload_coordinator
from dataroom.domain import CallerContext, UploadProgress
from dataroom.errors import PayloadTooLarge, PermissionDenied
from dataroom.services.uploads import UploadCoordinator

router = APIRouter(prefix="/v1/uploads", tags=["uploads"])


class UploadProgressResponse(BaseModel):
    upload_id: uuid.UUID
    name: str
    state: str
    bytes_transferred: int
    total_bytes: int
    fraction: float
    document_id: uuid.UUID | None = None
    error: str | None = None

    @classmethod
    def from_progress(cls, p: UploadProgress) -> UploadProgressResponse:
        return cls(
            upload_id=p.upload_id,
            name=p.name,
            state=p.state.value,
            bytes_transferred=p.bytes_transferred,
            total_bytes=p.total_bytes,
            fraction=p.fraction,
            document_id=p.document_id,
            error=p.error,
        )


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(f"upload of {declared} bytes exceeds limit of {limit}")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLarge(f"upload exceeds limit of {limit} bytes")
    return bytes(body)


@router.post("", response_model=UploadProgressResponse, status_code=HTTP_202_ACCEPTED)
async def begin_upload(
    request: Request,
    name: str = Query(min_length=1, max_length=512),
    caller: CallerContext = Depends(get_caller),
    uploads: UploadCoordinator = Depends(upload_coordinator),
) -> UploadProgressResponse:
    if not caller.is_admin:
        raise PermissionDenied("only administrators can upload documents")
    data = await _read_body(request, uploads.max_upload_bytes)
    session = await uploads.begin_upload(caller, data, name)
    return UploadProgressResponse.from_progress(session.progress())


@router.get("/{upload_id}", response_model=UploadProgressResponse)
async def get_upload(
    upload_id: uuid.UUID,
    caller: CallerContext = Depends(get_caller),
    uploads: UploadCoordinator = Depends(upload_coordinator),
) -> UploadProgressResponse:
    session = uploads.get(upload_id, caller.principal)
    return UploadProgressResponse.from_progress(session.progress())


# --- Module Notes -----------------------------------------------------------
# The coordinator repeats the role and size checks; the router only makes sure a
# rejected request never costs a buffered body.
