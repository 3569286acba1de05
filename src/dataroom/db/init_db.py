"""
dataroom.db.init_db

DB initialization helper (dev/test convenience).
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from dataroom.db import models  # noqa: F401  # register tables on Base.metadata
from dataroom.db.base import Base
from dataroom.db.session import translate_db_errors


async def init_db(engine: AsyncEngine) -> None:
    """
    Create tables if they don't exist.
    """

    with translate_db_errors("init_db"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
