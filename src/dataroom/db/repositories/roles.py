"""
dataroom.db.repositories.roles

Repository for the Role Store (`RoleAssignment`, `AdminClaim`).

Responsibilities:
- Point read of a principal's role.
- Full scan for an existing admin.
- Create-if-absent writes for role rows and the admin claim.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dataroom.db.models import ADMIN_CLAIM_KEY, AdminClaim, RoleAssignment
from dataroom.db.session import translate_db_errors
from dataroom.domain import Role, RoleRecord
from dataroom.errors import InfrastructureError


class RoleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, principal: str) -> RoleRecord | None:
        with translate_db_errors("role read"):
            row = await self._session.get(RoleAssignment, principal, populate_existing=True)
        return row.to_record() if row is not None else None

    async def list_all(self) -> list[RoleRecord]:
        stmt = select(RoleAssignment).order_by(RoleAssignment.assigned_at)
        with translate_db_errors("role scan"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [r.to_record() for r in rows]

    async def any_admin(self) -> bool:
        # Scans the whole store; the pool is small and this runs once per new principal.
        return any(r.role is Role.admin for r in await self.list_all())

    async def create_if_absent(self, principal: str, role: Role) -> bool:
        """
        Insert a role row in its own transaction.
        Returns False when a row for this principal already exists; nothing is overwritten.
        """

        self._session.add(RoleAssignment(principal=principal, role=role))
        with translate_db_errors("role write"):
            try:
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                return False
        return True

    async def claim_admin(self, principal: str) -> str:
        """
        Try to take the single admin claim, then return whoever holds it.
        """

        self._session.add(AdminClaim(key=ADMIN_CLAIM_KEY, principal=principal))
        with translate_db_errors("admin claim"):
            try:
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
            holder = await self._session.get(AdminClaim, ADMIN_CLAIM_KEY, populate_existing=True)
        if holder is None:
            raise InfrastructureError("admin claim row missing after insert")
        return holder.principal


# --- Module Notes -----------------------------------------------------------
# Both write methods commit: a conditional insert is its own unit of work so the
# IntegrityError can be consumed without discarding unrelated pending changes.
