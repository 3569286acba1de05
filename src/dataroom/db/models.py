"""
dataroom.db.models

Persistence schema for the Role Store and the Document Registry.

Responsibilities:
- RoleAssignment: write-once principal -> role mapping (primary key = principal).
- AdminClaim: single create-once row naming the first admin.
- Document: immutable document metadata rows.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Enum, Index, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from dataroom.db.base import Base
from dataroom.domain import DocumentRecord, Role, RoleRecord

ADMIN_CLAIM_KEY = "admin"


def _utcnow() -> datetime:
    # Naive UTC: SQLite drops tzinfo anyway, so every row compares the same way.
    return datetime.now(tz=UTC).replace(tzinfo=None)


class RoleAssignment(Base):
    __tablename__ = "user_roles"

    # Primary key on principal is the per-principal uniqueness constraint.
    principal: Mapped[str] = mapped_column(String(256), primary_key=True)
    role: Mapped[Role] = mapped_column(Enum(Role), nullable=False, index=True)
    assigned_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    def to_record(self) -> RoleRecord:
        return RoleRecord(principal=self.principal, role=self.role, assigned_at=self.assigned_at)


class AdminClaim(Base):
    __tablename__ = "admin_claims"

    # Only ever one row (key == ADMIN_CLAIM_KEY); the first insert wins.
    key: Mapped[str] = mapped_column(String(32), primary_key=True, default=ADMIN_CLAIM_KEY)
    principal: Mapped[str] = mapped_column(String(256), nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    locator: Mapped[str] = mapped_column(Text, nullable=False)
    owner_principal: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    __table_args__ = (Index("ix_documents_created_id", "created_at", "id"),)

    def to_record(self) -> DocumentRecord:
        return DocumentRecord(
            id=self.id,
            name=self.name,
            locator=self.locator,
            created_at=self.created_at,
            owner_principal=self.owner_principal,
        )


# --- Module Notes -----------------------------------------------------------
# There is no UPDATE path for any of these tables. Documents are removed whole;
# role rows and the admin claim are never removed.
