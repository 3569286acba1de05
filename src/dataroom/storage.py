"""
dataroom.storage

Blob transport boundary for document bytes.

Responsibilities:
- Define the `put(data, path, progress) -> locator` contract.
- Local filesystem transport (dev/test) and HTTP object-store transport.
- Pick a transport from settings.

Transports report progress as cumulative bytes sent and raise `TransferError`
on any failure; they never retry.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from pathlib import Path, PurePosixPath
from typing import Protocol

import httpx

from dataroom.errors import TransferError
from dataroom.settings import Settings

ProgressCallback = Callable[[int], None]


class BlobTransport(Protocol):
    async def put(self, data: bytes, path: str, progress: ProgressCallback) -> str: ...

    async def aclose(self) -> None: ...


def _normalize_key(path: str) -> str:
    parts = [p for p in PurePosixPath(path.replace("\\", "/")).parts if p not in ("/", "")]
    if not parts or any(p in (".", "..") for p in parts):
        raise TransferError(f"invalid blob path {path!r}")
    return "/".join(parts)


def _chunks(data: bytes, size: int) -> list[memoryview]:
    view = memoryview(data)
    return [view[i : i + size] for i in range(0, len(data), size)]


class LocalBlobTransport:
    def __init__(self, *, root: Path, chunk_size: int) -> None:
        self._root = root
        self._chunk_size = chunk_size

    async def put(self, data: bytes, path: str, progress: ProgressCallback) -> str:
        target = self._root / _normalize_key(path)
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            fh = await asyncio.to_thread(target.open, "wb")
            try:
                sent = 0
                for chunk in _chunks(data, self._chunk_size):
                    await asyncio.to_thread(fh.write, chunk)
                    sent += len(chunk)
                    progress(sent)
            finally:
                await asyncio.to_thread(fh.close)
        except OSError as e:
            target.unlink(missing_ok=True)
            raise TransferError(f"local write failed: {e}") from e
        progress(len(data))
        return target.resolve().as_uri()

    async def aclose(self) -> None:
        return None


class HttpBlobTransport:
    """
    PUTs the bytes to `{base_url}/{path}` as a streamed body.
    The locator is the `locator` field of a JSON response, else the object URL.
    """

    def __init__(self, *, http: httpx.AsyncClient, chunk_size: int) -> None:
        self._http = http
        self._chunk_size = chunk_size

    async def put(self, data: bytes, path: str, progress: ProgressCallback) -> str:
        key = _normalize_key(path)

        async def body() -> AsyncIterator[bytes]:
            sent = 0
            for chunk in _chunks(data, self._chunk_size):
                yield bytes(chunk)
                sent += len(chunk)
                progress(sent)

        try:
            r = await self._http.put(
                f"/{key}",
                content=body(),
                headers={
                    "Content-Length": str(len(data)),
                    "Content-Type": "application/octet-stream",
                },
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise TransferError(f"blob upload failed: {e}") from e

        progress(len(data))
        return _locator_from_response(r)

    async def aclose(self) -> None:
        await self._http.aclose()


def _locator_from_response(r: httpx.Response) -> str:
    if r.headers.get("content-type", "").startswith("application/json"):
        try:
            payload = r.json()
        except ValueError as e:
            raise TransferError("blob store returned malformed JSON") from e
        locator = payload.get("locator") if isinstance(payload, dict) else None
        if locator:
            return str(locator)
    return str(r.request.url)


def transport_from_settings(settings: Settings) -> BlobTransport:
    if settings.blob_backend == "http":
        http = httpx.AsyncClient(
            base_url=str(settings.blob_base_url).rstrip("/"),
            timeout=settings.blob_timeout_seconds,
        )
        return HttpBlobTransport(http=http, chunk_size=settings.blob_chunk_size)
    return LocalBlobTransport(root=Path(settings.blob_root), chunk_size=settings.blob_chunk_size)


# --- Module Notes -----------------------------------------------------------
# The Upload Coordinator owns progress bookkeeping; transports only count bytes.
