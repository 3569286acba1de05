"""
dataroom.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with DB connectivity validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dataroom.api.deps import sessionmaker_from_app
from dataroom.db.session import translate_db_errors

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> dict[str, str]:
    # Readiness: an unreachable DB surfaces as 503 via InfrastructureError.
    async with session_factory() as session:
        with translate_db_errors("readiness probe"):
            await session.execute(text("SELECT 1"))
    return {"status": "ready"}


# --- Module Notes -----------------------------------------------------------
# Kubernetes typically uses /healthz for liveness and /readyz for readiness gating.
