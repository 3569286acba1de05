"""
dataroom.auth.identity

Identity resolver adapter.

Responsibilities:
- Turn a sign-in attempt into a durable principal id.
- Prefer a caller-supplied custom token; fall back to an anonymous identity
  only when no token was supplied and anonymous sign-in is enabled.
- Issue the session access token used on every later request.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

from dataroom.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate, issue_token
from dataroom.auth.models import Principal, ResolvedIdentity
from dataroom.errors import AuthError
from dataroom.observability.logging import get_logger
from dataroom.settings import Settings

log = get_logger(__name__)

ANONYMOUS_PREFIX = "anon-"


class IdentityResolver:
    def __init__(self, *, settings: Settings) -> None:
        self._cfg = JwtConfig.from_settings(settings)
        self._allow_anonymous = settings.allow_anonymous
        self._ttl = timedelta(minutes=settings.session_ttl_minutes)

    async def resolve(self, custom_token: str | None = None) -> ResolvedIdentity:
        if custom_token:
            principal = self.principal_from_token(custom_token)
        elif self._allow_anonymous:
            principal = Principal(id=f"{ANONYMOUS_PREFIX}{uuid.uuid4().hex}", anonymous=True)
            log.info("anonymous_principal_created", principal=principal.id)
        else:
            raise AuthError("a sign-in token is required")

        token = issue_token(
            cfg=self._cfg,
            subject=principal.id,
            anonymous=principal.anonymous,
            ttl=self._ttl,
        )
        return ResolvedIdentity(principal=principal, access_token=token)

    def principal_from_token(self, token: str) -> Principal:
        try:
            payload = decode_and_validate(cfg=self._cfg, token=token)
        except JwtValidationError as e:
            raise AuthError(f"invalid token: {e}") from e

        subject = str(payload.get("sub", "")).strip()
        if not subject:
            raise AuthError("invalid token subject")
        return Principal(id=subject, anonymous=bool(payload.get("anon", False)))


# --- Module Notes -----------------------------------------------------------
# An invalid custom token is an AuthError, never a silent switch to anonymous:
# falling back would hand the caller a different principal (and role).
