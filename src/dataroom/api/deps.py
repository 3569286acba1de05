"""
dataroom.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Expose the services created at startup (app.state) to routers.
- Build the per-request `CallerContext` from the bearer token and the Role Store.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dataroom.auth.deps import get_principal
from dataroom.auth.models import Principal
from dataroom.domain import CallerContext
from dataroom.observability.logging import bind_principal
from dataroom.services.registry import DocumentRegistry
from dataroom.services.role_bootstrap import RoleBootstrapService
from dataroom.services.uploads import UploadCoordinator
from dataroom.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


def role_service(request: Request) -> RoleBootstrapService:
    return request.app.state.roles  # type: ignore[attr-defined]


def document_registry(request: Request) -> DocumentRegistry:
    return request.app.state.registry  # type: ignore[attr-defined]


def upload_coordinator(request: Request) -> UploadCoordinator:
    return request.app.state.uploads  # type: ignore[attr-defined]


async def get_caller(
    principal: Principal = Depends(get_principal),
    roles: RoleBootstrapService = Depends(role_service),
) -> CallerContext:
    # First request of a never-seen principal assigns its role here.
    role = await roles.resolve_role(principal.id)
    bind_principal(principal.id)
    return CallerContext(principal=principal.id, role=role)


# --- Module Notes -----------------------------------------------------------
# The WebSocket route cannot use HTTPBearer; it reads the same services from
# `websocket.app.state` directly.
