"""
tests.test_logging

Log enrichment and credential redaction.
"""

from __future__ import annotations

import httpx
import pytest

from dataroom.api.app import create_app
from dataroom.observability.logging import _redact_credentials, _stamp_service
from dataroom.settings import Settings


def test_tokens_are_redacted_and_service_is_stamped() -> None:
    event = {"event": "signed_in", "principal": "p1", "access_token": "eyJ.secret"}

    event = _redact_credentials(None, "info", _stamp_service("dataroom-test")(None, "info", event))

    assert event == {
        "event": "signed_in",
        "principal": "p1",
        "access_token": "***",
        "service": "dataroom-test",
    }


@pytest.mark.asyncio
async def test_request_id_is_propagated(settings: Settings) -> None:
    app = create_app(settings=settings)
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz", headers={"x-request-id": "req-42"})
            assert r.headers["x-request-id"] == "req-42"

            r = await client.get("/healthz")
            assert r.headers["x-request-id"]
