"""
dataroom.api.app

FastAPI app factory for the Data Room service.

Responsibilities:
- Validate settings once and fail fast on a bad configuration.
- Build the FastAPI application and register routers/middleware/error handlers.
- Create and dispose shared infrastructure (DB engine, registry, role service,
  blob transport, upload coordinator).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dataroom import __version__
from dataroom.api.errors import register_error_handlers
from dataroom.api.routers.dev_auth import router as dev_auth_router
from dataroom.api.routers.documents import router as documents_router
from dataroom.api.routers.health import router as health_router
from dataroom.api.routers.session import router as session_router
from dataroom.api.routers.uploads import router as uploads_router
from dataroom.auth.identity import IdentityResolver
from dataroom.db.init_db import init_db
from dataroom.db.session import create_engine, create_sessionmaker
from dataroom.errors import ConfigurationError
from dataroom.observability.logging import configure_logging, get_logger
from dataroom.observability.middleware import RequestContextMiddleware
from dataroom.services.registry import DocumentRegistry
from dataroom.services.role_bootstrap import RoleBootstrapService
from dataroom.services.uploads import UploadCoordinator
from dataroom.settings import Settings, validate_settings
from dataroom.storage import transport_from_settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)
    try:
        validate_settings(settings)
    except ConfigurationError as e:
        log.error("configuration_invalid", detail=str(e))
        raise

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, admin_bootstrap=settings.admin_bootstrap)
        engine = create_engine(settings)
        sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically.
            await init_db(engine)

        registry = DocumentRegistry(session_factory=sessionmaker)
        roles = RoleBootstrapService(
            session_factory=sessionmaker, strategy=settings.admin_bootstrap
        )
        transport = transport_from_settings(settings)
        uploads = UploadCoordinator(
            transport=transport,
            registry=registry,
            roles=roles,
            max_upload_bytes=settings.max_upload_bytes,
            max_tracked_uploads=settings.max_tracked_uploads,
        )

        app.state.engine = engine
        app.state.sessionmaker = sessionmaker
        app.state.registry = registry
        app.state.roles = roles
        app.state.uploads = uploads
        app.state.identity = IdentityResolver(settings=settings)
        try:
            yield
        finally:
            await uploads.aclose()
            await transport.aclose()
            registry.close()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Data Room",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(session_router)
    app.include_router(documents_router)
    app.include_router(uploads_router)
    if settings.env != "prod":
        app.include_router(dev_auth_router)

    return app


# --- Module Notes -----------------------------------------------------------
# Composition root: the only place where services are constructed and wired.
