"""
dataroom.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
- Reject unusable configurations once, at startup.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dataroom.errors import ConfigurationError

DEFAULT_JWT_SECRET = "dev-secret-change-me"

_SUPPORTED_DB_SCHEMES = ("sqlite+aiosqlite", "postgresql+asyncpg", "postgresql+psycopg")


class Settings(BaseSettings):
    """
    - Strict env-driven configuration
    - Defaults safe for local dev
    - Single settings object injected across layers
    """

    model_config = SettingsConfigDict(env_prefix="DATAROOM_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "dataroom"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "dataroom"
    jwt_audience: str = "dataroom-api"
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, repr=False)
    session_ttl_minutes: int = 12 * 60
    # Sign-in without a custom token mints an anonymous principal.
    allow_anonymous: bool = True

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./dataroom.db"

    # "claim" serializes first-admin assignment through a create-once row;
    # "scan" keeps the racy scan-then-write behavior.
    admin_bootstrap: Literal["claim", "scan"] = "claim"

    # Blob storage
    blob_backend: Literal["local", "http"] = "local"
    blob_root: str = "./blobs"
    blob_base_url: str | None = None
    blob_chunk_size: int = 256 * 1024
    blob_timeout_seconds: float = 60.0

    # Uploads
    max_upload_bytes: int = 100 * 1024 * 1024
    max_tracked_uploads: int = 256


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.env == "prod" and settings.jwt_secret == DEFAULT_JWT_SECRET:
        problems.append("jwt_secret must be set in prod")
    if not settings.jwt_secret:
        problems.append("jwt_secret must not be empty")
    scheme = settings.database_url.split(":", 1)[0]
    if scheme not in _SUPPORTED_DB_SCHEMES:
        problems.append(f"unsupported database_url scheme {scheme!r}")
    if settings.blob_backend == "http" and not settings.blob_base_url:
        problems.append("blob_base_url is required when blob_backend=http")
    if settings.blob_chunk_size <= 0:
        problems.append("blob_chunk_size must be positive")
    if settings.max_upload_bytes <= 0:
        problems.append("max_upload_bytes must be positive")
    if problems:
        raise ConfigurationError("; ".join(problems))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `validate_settings` is called by `dataroom.api.app.create_app`; nothing retries a
# ConfigurationError.
