"""
dataroom.api.routers.session

Sign-in and "who am I" endpoints.

Responsibilities:
- Resolve an identity (custom token or anonymous fallback) and its role.
- Return the session access token the client sends on every later call.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from dataroom.api.deps import get_caller, role_service
from dataroom.auth.deps import identity_resolver
from dataroom.auth.identity import IdentityResolver
from dataroom.domain import CallerContext
from dataroom.services.role_bootstrap import RoleBootstrapService

router = APIRouter(prefix="/v1", tags=["session"])


class SignInRequest(BaseModel):
    custom_token: str | None = Field(default=None, max_length=8192)


class SignInResponse(BaseModel):
    principal: str
    role: str
    anonymous: bool
    access_token: str
    token_type: str = "bearer"


class MeResponse(BaseModel):
    principal: str
    role: str


@router.post("/session", response_model=SignInResponse)
async def sign_in(
    body: SignInRequest,
    identity: IdentityResolver = Depends(identity_resolver),
    roles: RoleBootstrapService = Depends(role_service),
) -> SignInResponse:
    resolved = await identity.resolve(body.custom_token)
    role = await roles.resolve_role(resolved.principal.id)
    return SignInResponse(
        principal=resolved.principal.id,
        role=role.value,
        anonymous=resolved.principal.anonymous,
        access_token=resolved.access_token,
    )


@router.get("/me", response_model=MeResponse)
async def whoami(caller: CallerContext = Depends(get_caller)) -> MeResponse:
    return MeResponse(principal=caller.principal, role=caller.role.value)
