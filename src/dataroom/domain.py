"""
dataroom.domain

Shared, immutable data types.

Responsibilities:
- Roles and the per-call `CallerContext`.
- Role and document records as handed to callers (never ORM rows).
- Registry snapshots/deltas and upload progress views.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime


class Role(enum.StrEnum):
    admin = "admin"
    investor = "investor"


class UploadState(enum.StrEnum):
    idle = "idle"
    transferring = "transferring"
    succeeded = "succeeded"
    failed = "failed"


class ChangeKind(enum.StrEnum):
    added = "added"
    removed = "removed"


@dataclass(frozen=True, slots=True)
class CallerContext:
    """
    Who is calling, and with which role, for one operation.
    Built per request; never stored globally.
    """

    principal: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin


@dataclass(frozen=True, slots=True)
class RoleRecord:
    principal: str
    role: Role
    assigned_at: datetime


@dataclass(frozen=True, slots=True)
class DocumentDraft:
    # Input to DocumentRegistry.add; the registry assigns id and created_at.
    name: str
    locator: str
    owner_principal: str


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    id: uuid.UUID
    name: str
    locator: str
    created_at: datetime
    owner_principal: str

    def sort_key(self) -> tuple[float, uuid.UUID]:
        # Newest first, ties broken by ascending id.
        return (-self.created_at.timestamp(), self.id)

    def to_dict(self) -> dict[str, str]:
        return {
            "id": str(self.id),
            "name": self.name,
            "locator": self.locator,
            "created_at": self.created_at.isoformat(),
            "owner_principal": self.owner_principal,
        }


@dataclass(frozen=True, slots=True)
class DocumentChange:
    kind: ChangeKind
    document: DocumentRecord


@dataclass(frozen=True, slots=True)
class RegistrySnapshot:
    """
    One delivery on a registry subscription.

    `changes` are relative to the previous snapshot delivered to the same
    subscriber (the first delivery lists every document as added).
    """

    version: int
    documents: tuple[DocumentRecord, ...]
    changes: tuple[DocumentChange, ...] = ()

    def __len__(self) -> int:
        return len(self.documents)

    def ids(self) -> frozenset[uuid.UUID]:
        return frozenset(d.id for d in self.documents)

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "documents": [d.to_dict() for d in self.documents],
            "changes": [
                {"kind": c.kind.value, "document": c.document.to_dict()} for c in self.changes
            ],
        }


@dataclass(frozen=True, slots=True)
class UploadProgress:
    upload_id: uuid.UUID
    name: str
    state: UploadState
    bytes_transferred: int
    total_bytes: int
    document_id: uuid.UUID | None = None
    error: str | None = None

    @property
    def fraction(self) -> float:
        if self.total_bytes == 0:
            return 1.0 if self.state is UploadState.succeeded else 0.0
        return self.bytes_transferred / self.total_bytes


# --- Module Notes -----------------------------------------------------------
# Everything here is frozen: records cross task boundaries (subscriptions, upload
# watchers) and must never be observed half-built.
