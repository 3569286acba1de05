"""
dataroom.services.uploads

Upload Coordinator: blob transfer followed by registry registration.

Responsibilities:
- Drive one `UploadSession` per transfer through idle -> transferring ->
  {succeeded, failed}, exposing monotonic progress.
- After a successful transfer, re-check the uploader's current role and
  register exactly one document carrying the transport's locator.
- Report failures without retrying; a failed session never touches the registry.
"""

from __future__ import annotations

import asyncio
import uuid
from collections import OrderedDict
from collections.abc import AsyncIterator

from dataroom.domain import (
    CallerContext,
    DocumentDraft,
    DocumentRecord,
    UploadProgress,
    UploadState,
)
from dataroom.errors import (
    DataRoomError,
    InvalidRequest,
    NotFound,
    PayloadTooLarge,
    PermissionDenied,
    TransferError,
)
from dataroom.observability.logging import get_logger
from dataroom.services.registry import DocumentRegistry
from dataroom.services.role_bootstrap import RoleBootstrapService
from dataroom.storage import BlobTransport

log = get_logger(__name__)


class UploadSession:
    """
    Transient state of a single transfer. The transport callback is the only
    producer of progress; `watch()` is meant for a single consumer.
    """

    def __init__(self, *, owner: str, name: str, total_bytes: int) -> None:
        self.id = uuid.uuid4()
        self.owner = owner
        self.name = name
        self.total_bytes = total_bytes
        self.bytes_transferred = 0
        self.state = UploadState.idle
        self.locator: str | None = None
        self.document: DocumentRecord | None = None
        self.error: BaseException | None = None
        self._changed = asyncio.Event()
        self._done = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def progress(self) -> UploadProgress:
        return UploadProgress(
            upload_id=self.id,
            name=self.name,
            state=self.state,
            bytes_transferred=self.bytes_transferred,
            total_bytes=self.total_bytes,
            document_id=self.document.id if self.document is not None else None,
            error=str(self.error) if self.error is not None else None,
        )

    def report(self, sent: int) -> None:
        if self.state is not UploadState.transferring:
            return
        # Never move backwards, never past the total.
        sent = max(self.bytes_transferred, min(sent, self.total_bytes))
        if sent != self.bytes_transferred:
            self.bytes_transferred = sent
            self._notify()

    async def watch(self) -> AsyncIterator[UploadProgress]:
        last: UploadProgress | None = None
        while True:
            changed = self._changed
            current = self.progress()
            if current != last:
                yield current
                last = current
            if self.done:
                return
            await changed.wait()

    async def wait(self) -> DocumentRecord:
        await self._done.wait()
        if self.error is not None:
            raise self.error
        if self.document is None:
            raise DataRoomError(f"upload {self.id} finished without a document")
        return self.document

    def _transition(self, state: UploadState) -> None:
        self.state = state
        self._notify()

    def _finish(self, *, error: BaseException | None = None) -> None:
        self.error = error
        self._done.set()
        self._notify()

    def _notify(self) -> None:
        # Swap the event so waiters parked on the old one wake exactly once.
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()


class UploadCoordinator:
    def __init__(
        self,
        *,
        transport: BlobTransport,
        registry: DocumentRegistry,
        roles: RoleBootstrapService,
        max_upload_bytes: int,
        max_tracked_uploads: int = 256,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self._roles = roles
        self._max_upload_bytes = max_upload_bytes
        self._max_tracked = max_tracked_uploads
        self._sessions: OrderedDict[uuid.UUID, UploadSession] = OrderedDict()

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    async def begin_upload(self, caller: CallerContext, data: bytes, name: str) -> UploadSession:
        if not caller.is_admin:
            raise PermissionDenied("only administrators can upload documents")
        name = name.strip()
        if not name:
            raise InvalidRequest("document name is required")
        if len(data) > self._max_upload_bytes:
            raise PayloadTooLarge(
                f"upload of {len(data)} bytes exceeds limit of {self._max_upload_bytes}"
            )

        session = UploadSession(owner=caller.principal, name=name, total_bytes=len(data))
        self._track(session)
        session._transition(UploadState.transferring)
        session._task = asyncio.create_task(
            self._run(session, data), name=f"upload-{session.id}"
        )
        log.info(
            "upload_started",
            upload_id=str(session.id),
            principal=caller.principal,
            total_bytes=session.total_bytes,
        )
        return session

    async def upload(self, caller: CallerContext, data: bytes, name: str) -> DocumentRecord:
        session = await self.begin_upload(caller, data, name)
        return await session.wait()

    def get(self, upload_id: uuid.UUID, principal: str) -> UploadSession:
        session = self._sessions.get(upload_id)
        if session is None or session.owner != principal:
            raise NotFound(f"upload {upload_id} not found")
        return session

    async def aclose(self) -> None:
        tasks = [s._task for s in self._sessions.values() if s._task and not s._task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, session: UploadSession, data: bytes) -> None:
        path = f"documents/{session.owner}/{session.id}/{_safe_filename(session.name)}"
        try:
            locator = await self._transport.put(data, path, session.report)
            if not locator:
                raise TransferError("transport returned an empty locator")
        except TransferError as e:
            session._transition(UploadState.failed)
            session._finish(error=e)
            log.warning("upload_failed", upload_id=str(session.id), error=str(e))
            return
        except Exception as e:
            session._transition(UploadState.failed)
            session._finish(error=e)
            log.exception("upload_crashed", upload_id=str(session.id))
            return

        session.locator = locator
        session.bytes_transferred = session.total_bytes
        session._transition(UploadState.succeeded)

        try:
            # Current role from the store, not the one captured when the upload began.
            role = await self._roles.current_role(session.owner)
            record = await self._registry.add(
                DocumentDraft(name=session.name, locator=locator, owner_principal=session.owner),
                role,
            )
        except Exception as e:
            session._finish(error=e)
            log.warning(
                "upload_registration_failed", upload_id=str(session.id), error=str(e)
            )
            return

        session.document = record
        session._finish()
        log.info("upload_registered", upload_id=str(session.id), document_id=str(record.id))

    def _track(self, session: UploadSession) -> None:
        self._sessions[session.id] = session
        while len(self._sessions) > self._max_tracked:
            oldest = next((k for k, s in self._sessions.items() if s.done), None)
            if oldest is None:
                break
            del self._sessions[oldest]


def _safe_filename(name: str) -> str:
    cleaned = "".join(c if c.isalnum() or c in "._- " else "_" for c in name).strip(" .")
    return cleaned or "document"


# --- Module Notes -----------------------------------------------------------
# Sessions live only in this process; a restart forgets in-flight uploads, and
# their bytes may remain in blob storage without a registry record.
