"""
tests.conftest

Shared fixtures: per-test SQLite database, services wired like the app does,
and a scriptable in-memory blob transport.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dataroom.db.init_db import init_db
from dataroom.db.session import create_engine, create_sessionmaker
from dataroom.errors import TransferError
from dataroom.services.registry import DocumentRegistry
from dataroom.services.role_bootstrap import RoleBootstrapService
from dataroom.settings import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'dataroom.db'}",
        blob_root=str(tmp_path / "blobs"),
        blob_chunk_size=4,
    )


@pytest_asyncio.fixture
async def sessionmaker(settings: Settings) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield create_sessionmaker(engine)
    finally:
        await engine.dispose()


@pytest.fixture
def registry(sessionmaker: async_sessionmaker[AsyncSession]) -> DocumentRegistry:
    return DocumentRegistry(session_factory=sessionmaker)


@pytest.fixture
def roles(sessionmaker: async_sessionmaker[AsyncSession]) -> RoleBootstrapService:
    return RoleBootstrapService(session_factory=sessionmaker, strategy="claim")


class FakeTransport:
    """Reports progress in a few steps, then returns `locator` or raises."""

    def __init__(
        self,
        *,
        locator: str = "blob://store/object-1",
        fail: BaseException | None = None,
        steps: int = 4,
    ) -> None:
        self.locator = locator
        self.fail = fail
        self.steps = steps
        self.paths: list[str] = []

    async def put(self, data: bytes, path: str, progress) -> str:
        self.paths.append(path)
        step = max(1, len(data) // self.steps)
        for sent in range(step, len(data) + 1, step):
            progress(sent)
            await asyncio.sleep(0)
        # A stale, smaller report must not move progress backwards.
        progress(max(0, len(data) - 1))
        if self.fail is not None:
            raise self.fail
        return self.locator

    async def aclose(self) -> None:
        return None


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def failing_transport() -> FakeTransport:
    return FakeTransport(fail=TransferError("connection reset by blob store"))


@pytest.fixture
def fake_transport_cls() -> type[FakeTransport]:
    return FakeTransport
