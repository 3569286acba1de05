"""
dataroom.auth.deps

FastAPI dependency functions for authentication.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dataroom.auth.identity import IdentityResolver
from dataroom.auth.models import Principal
from dataroom.errors import AuthError

_bearer = HTTPBearer(auto_error=False)


def identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity  # type: ignore[attr-defined]


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    identity: IdentityResolver = Depends(identity_resolver),
) -> Principal:
    if creds is None or not creds.credentials:
        raise AuthError("missing bearer token")
    return identity.principal_from_token(creds.credentials)


# --- Module Notes -----------------------------------------------------------
# Authorization is not decided here: the role comes from the Role Store
# (`api.deps.get_caller`) and is enforced by the registry and upload services.
