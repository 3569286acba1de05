"""
dataroom.services.registry

Document Registry: role-gated mutations plus live snapshot fan-out.

Responsibilities:
- Admin-only add/remove of whole document records.
- Ordered reads (newest first, ties by ascending id).
- Push a new versioned snapshot to every active subscription after each
  committed mutation.
"""

from __future__ import annotations

import asyncio
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dataroom.db.repositories.documents import DocumentRepo
from dataroom.db.session import translate_db_errors
from dataroom.domain import DocumentDraft, DocumentRecord, RegistrySnapshot, Role
from dataroom.errors import InfrastructureError, InvalidRequest, NotFound, PermissionDenied
from dataroom.observability.logging import get_logger
from dataroom.services.subscriptions import Subscription

log = get_logger(__name__)


class DocumentRegistry:
    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._subscribers: set[Subscription] = set()
        # Serializes snapshot reads + fan-out so versions reach subscribers in order.
        self._publish_lock = asyncio.Lock()
        self._version = 0
        self._current: RegistrySnapshot | None = None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self) -> Subscription:
        """
        Register an observer. Its first delivery is the current collection.
        """

        sub = Subscription(on_close=self._subscribers.discard)
        self._subscribers.add(sub)
        try:
            async with self._publish_lock:
                previous = self._current
                # Always re-read: other workers may have changed the collection.
                await self._load_locked()
                if previous is None or previous.documents != self._current.documents:
                    for other in list(self._subscribers):
                        other.offer(self._current)
                else:
                    sub.offer(self._current)
        except BaseException:
            sub.unsubscribe()
            raise
        log.debug("registry_subscribed", subscribers=len(self._subscribers))
        return sub

    async def list(self) -> tuple[DocumentRecord, ...]:
        async with self._session_factory() as session:
            return tuple(await DocumentRepo(session).list_ordered())

    async def get(self, document_id: uuid.UUID) -> DocumentRecord:
        async with self._session_factory() as session:
            record = await DocumentRepo(session).get(document_id)
        if record is None:
            raise NotFound(f"document {document_id} not found")
        return record

    async def add(self, draft: DocumentDraft, requester_role: Role) -> DocumentRecord:
        if requester_role is not Role.admin:
            raise PermissionDenied("only administrators can add documents")

        name = draft.name.strip()
        locator = draft.locator.strip()
        if not name or not locator:
            raise InvalidRequest("document name and locator are both required")

        async with self._session_factory() as session:
            record = await DocumentRepo(session).create(
                name=name, locator=locator, owner_principal=draft.owner_principal
            )
            with translate_db_errors("document commit"):
                await session.commit()

        log.info("document_added", document_id=str(record.id), owner=record.owner_principal)
        await self._publish()
        return record

    async def remove(self, document_id: uuid.UUID, requester_role: Role) -> None:
        if requester_role is not Role.admin:
            raise PermissionDenied("only administrators can delete documents")

        async with self._session_factory() as session:
            deleted = await DocumentRepo(session).delete(document_id)
            if not deleted:
                raise NotFound(f"document {document_id} not found")
            with translate_db_errors("document commit"):
                await session.commit()

        log.info("document_removed", document_id=str(document_id))
        await self._publish()

    def close(self) -> None:
        # Shutdown: end every open subscription.
        for sub in list(self._subscribers):
            sub.unsubscribe()

    async def _publish(self) -> None:
        # Runs after a committed mutation; a failure here must not undo that success.
        async with self._publish_lock:
            try:
                await self._load_locked()
            except InfrastructureError as e:
                self._current = None
                log.warning("registry_publish_failed", error=str(e))
                return
            snapshot = self._current
            for sub in list(self._subscribers):
                sub.offer(snapshot)

    async def _load_locked(self) -> None:
        async with self._session_factory() as session:
            documents = await DocumentRepo(session).list_ordered()
        self._version += 1
        self._current = RegistrySnapshot(version=self._version, documents=tuple(documents))


# --- Module Notes -----------------------------------------------------------
# Each snapshot is re-read from the database after the mutation committed, so a
# version never shows a record that is not durable, and never shows half of one.
