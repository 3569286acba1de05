"""
dataroom.db.session

Async SQLAlchemy engine + session factory helpers.

Responsibilities:
- Create the async engine from settings.
- Create the async sessionmaker with safe defaults.
- Translate backend connectivity failures into `InfrastructureError`.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from dataroom.errors import InfrastructureError
from dataroom.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    # pool_pre_ping helps detect stale connections in long-lived processes.
    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


@contextmanager
def translate_db_errors(operation: str) -> Iterator[None]:
    """
    Map "backend unreachable" failures to InfrastructureError.
    IntegrityError passes through untouched; create-if-absent callers rely on it.
    """

    try:
        yield
    except sa_exc.IntegrityError:
        raise
    except (sa_exc.DBAPIError, sa_exc.TimeoutError, OSError) as e:
        raise InfrastructureError(f"{operation} failed: {e.__class__.__name__}") from e


# --- Module Notes -----------------------------------------------------------
# The API layer uses app.state.sessionmaker; services open their own short-lived
# sessions so role resolution and registry publication never share a transaction.
