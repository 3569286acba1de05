"""
tests.test_storage

Blob transports: progress reporting, locators, and failure translation.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from dataroom.errors import TransferError
from dataroom.settings import Settings
from dataroom.storage import (
    HttpBlobTransport,
    LocalBlobTransport,
    transport_from_settings,
)

DATA = b"0123456789abcdef-tail"


@pytest.mark.asyncio
async def test_local_transport_writes_file_and_reports_progress(tmp_path: Path) -> None:
    transport = LocalBlobTransport(root=tmp_path, chunk_size=4)
    reports: list[int] = []

    locator = await transport.put(DATA, "documents/p1/abc/report.pdf", reports.append)

    target = tmp_path / "documents" / "p1" / "abc" / "report.pdf"
    assert target.read_bytes() == DATA
    assert locator == target.resolve().as_uri()
    assert reports == sorted(reports)
    assert reports[-1] == len(DATA)


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["../escape.bin", "a/../../b", "", "/"])
async def test_local_transport_rejects_unsafe_paths(tmp_path: Path, path: str) -> None:
    transport = LocalBlobTransport(root=tmp_path, chunk_size=4)
    with pytest.raises(TransferError):
        await transport.put(DATA, path, lambda _: None)


@pytest.mark.asyncio
async def test_http_transport_streams_body_and_uses_returned_locator() -> None:
    received: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        received["method"] = request.method
        received["path"] = request.url.path
        received["body"] = request.content
        return httpx.Response(201, json={"locator": "s3://bucket/documents/p1/x.pdf"})

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://blobs")
    transport = HttpBlobTransport(http=http, chunk_size=5)
    reports: list[int] = []

    locator = await transport.put(DATA, "documents/p1/x.pdf", reports.append)
    await transport.aclose()

    assert locator == "s3://bucket/documents/p1/x.pdf"
    assert received == {"method": "PUT", "path": "/documents/p1/x.pdf", "body": DATA}
    assert reports[-1] == len(DATA)
    assert reports == sorted(reports)


@pytest.mark.asyncio
async def test_http_transport_falls_back_to_object_url() -> None:
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        base_url="http://blobs",
    )
    transport = HttpBlobTransport(http=http, chunk_size=64)

    locator = await transport.put(DATA, "documents/p1/x.pdf", lambda _: None)
    await transport.aclose()

    assert locator == "http://blobs/documents/p1/x.pdf"


@pytest.mark.asyncio
async def test_http_transport_error_status_is_transfer_error() -> None:
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        base_url="http://blobs",
    )
    transport = HttpBlobTransport(http=http, chunk_size=64)

    with pytest.raises(TransferError):
        await transport.put(DATA, "documents/p1/x.pdf", lambda _: None)
    await transport.aclose()


@pytest.mark.asyncio
async def test_http_transport_connection_error_is_transfer_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://blobs")
    transport = HttpBlobTransport(http=http, chunk_size=64)

    with pytest.raises(TransferError):
        await transport.put(DATA, "documents/p1/x.pdf", lambda _: None)
    await transport.aclose()


@pytest.mark.asyncio
async def test_transport_from_settings_picks_backend(tmp_path: Path) -> None:
    local = transport_from_settings(Settings(blob_backend="local", blob_root=str(tmp_path)))
    remote = transport_from_settings(
        Settings(blob_backend="http", blob_base_url="http://blobs.internal/")
    )
    try:
        assert isinstance(local, LocalBlobTransport)
        assert isinstance(remote, HttpBlobTransport)
    finally:
        await local.aclose()
        await remote.aclose()
