"""
tests.test_identity

Identity resolution: custom token first, anonymous fallback only when no token.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from dataroom.auth.identity import ANONYMOUS_PREFIX, IdentityResolver
from dataroom.auth.jwt import JwtConfig, issue_token
from dataroom.errors import AuthError
from dataroom.settings import Settings


def _custom_token(settings: Settings, subject: str, **kw) -> str:
    return issue_token(cfg=JwtConfig.from_settings(settings), subject=subject, **kw)


@pytest.mark.asyncio
async def test_custom_token_yields_its_subject(settings: Settings) -> None:
    resolver = IdentityResolver(settings=settings)

    resolved = await resolver.resolve(_custom_token(settings, "p1"))

    assert resolved.principal.id == "p1"
    assert not resolved.principal.anonymous
    # The session token carries the same principal.
    assert resolver.principal_from_token(resolved.access_token).id == "p1"


@pytest.mark.asyncio
async def test_no_token_falls_back_to_anonymous(settings: Settings) -> None:
    resolver = IdentityResolver(settings=settings)

    a = await resolver.resolve(None)
    b = await resolver.resolve(None)

    assert a.principal.anonymous
    assert a.principal.id.startswith(ANONYMOUS_PREFIX)
    assert a.principal.id != b.principal.id
    assert resolver.principal_from_token(a.access_token) == a.principal


@pytest.mark.asyncio
async def test_anonymous_fallback_can_be_disabled(settings: Settings) -> None:
    resolver = IdentityResolver(settings=settings.model_copy(update={"allow_anonymous": False}))
    with pytest.raises(AuthError):
        await resolver.resolve(None)


@pytest.mark.asyncio
async def test_invalid_custom_token_does_not_fall_back(settings: Settings) -> None:
    resolver = IdentityResolver(settings=settings)
    with pytest.raises(AuthError):
        await resolver.resolve("not-a-jwt")


@pytest.mark.asyncio
async def test_expired_or_foreign_tokens_are_rejected(settings: Settings) -> None:
    resolver = IdentityResolver(settings=settings)
    expired = _custom_token(settings, "p1", ttl=timedelta(seconds=-5))
    foreign = issue_token(
        cfg=JwtConfig(alg="HS256", issuer="other", audience="other", secret="other-secret"),
        subject="p1",
    )

    for token in (expired, foreign):
        with pytest.raises(AuthError):
            resolver.principal_from_token(token)
