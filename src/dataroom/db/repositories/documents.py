"""
dataroom.db.repositories.documents

Repository for `Document` rows.

Responsibilities:
- Insert and delete whole document rows.
- Point read and ordered full scan (newest first, ties by ascending id).
"""

from __future__ import annotations

import uuid

from sqlalchemy import asc, delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from dataroom.db.models import Document
from dataroom.db.session import translate_db_errors
from dataroom.domain import DocumentRecord


class DocumentRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, name: str, locator: str, owner_principal: str) -> DocumentRecord:
        doc = Document(name=name, locator=locator, owner_principal=owner_principal)
        self._session.add(doc)
        with translate_db_errors("document insert"):
            await self._session.flush()
        return doc.to_record()

    async def get(self, document_id: uuid.UUID) -> DocumentRecord | None:
        with translate_db_errors("document read"):
            doc = await self._session.get(Document, document_id)
        return doc.to_record() if doc is not None else None

    async def delete(self, document_id: uuid.UUID) -> bool:
        stmt = delete(Document).where(Document.id == document_id)
        with translate_db_errors("document delete"):
            result = await self._session.execute(stmt)
        return bool(result.rowcount)

    async def list_ordered(self) -> list[DocumentRecord]:
        stmt = select(Document).order_by(desc(Document.created_at), asc(Document.id))
        with translate_db_errors("document scan"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [r.to_record() for r in rows]


# --- Module Notes -----------------------------------------------------------
# Callers commit; `DocumentRegistry` publishes a snapshot only after the commit.
