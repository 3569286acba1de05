"""
dataroom.services.role_bootstrap

First-admin bootstrap and role resolution.

Responsibilities:
- Resolve the role of a principal, creating it on first sight.
- Promote the first principal ever seen to admin; everyone after is an investor.
- Keep resolution idempotent and safe to retry after a failure.

Strategies (`Settings.admin_bootstrap`):
- "claim": before writing an admin row, take the single `AdminClaim` row. The
  claim is a create-once primary-key insert, so when two first-time principals
  race only one of them can end up admin.
- "scan": scan for an admin row, then write. The scan and the write are not
  atomic together; two principals that overlap both see "no admin" and both
  persist admin. Kept to reproduce the behavior of deployments that predate
  the claim row.
"""

from __future__ import annotations

from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dataroom.db.repositories.roles import RoleRepo
from dataroom.domain import Role, RoleRecord
from dataroom.errors import InfrastructureError, NotFound
from dataroom.observability.logging import get_logger

log = get_logger(__name__)

BootstrapStrategy = Literal["claim", "scan"]


class RoleBootstrapService:
    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        strategy: BootstrapStrategy = "claim",
    ) -> None:
        self._session_factory = session_factory
        self._strategy = strategy

    async def resolve_role(self, principal: str) -> Role:
        async with self._session_factory() as session:
            roles = RoleRepo(session)

            existing = await roles.get(principal)
            if existing is not None:
                # Fast path: no write for an already-known principal.
                return existing.role

            target = await self._target_role(roles, principal)
            created = await roles.create_if_absent(principal, target)

            # Re-read: a concurrent call for the same principal may have won.
            persisted = await roles.get(principal)

        if persisted is None:
            raise InfrastructureError(f"role for {principal!r} not readable after write")
        if created:
            log.info("role_assigned", principal=principal, role=persisted.role.value)
        elif persisted.role is not target:
            log.info(
                "role_assignment_lost",
                principal=principal,
                computed=target.value,
                persisted=persisted.role.value,
            )
        return persisted.role

    async def current_role(self, principal: str) -> Role:
        """Read-only lookup; never creates a record."""
        async with self._session_factory() as session:
            record = await RoleRepo(session).get(principal)
        if record is None:
            raise NotFound(f"no role assigned to {principal!r}")
        return record.role

    async def list_roles(self) -> list[RoleRecord]:
        async with self._session_factory() as session:
            return await RoleRepo(session).list_all()

    async def _target_role(self, roles: RoleRepo, principal: str) -> Role:
        if await roles.any_admin():
            return Role.investor
        if self._strategy == "scan":
            return Role.admin

        holder = await roles.claim_admin(principal)
        if holder == principal:
            return Role.admin
        log.info("admin_claim_lost", principal=principal, holder=holder)
        return Role.investor


# --- Module Notes -----------------------------------------------------------
# A claim taken by a call that then failed before writing its role row is still
# honored: the retry finds itself as the claim holder and writes admin.
