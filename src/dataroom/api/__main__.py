"""
dataroom.api.__main__

Entrypoint for running the FastAPI application via `python -m dataroom.api`.
"""

from __future__ import annotations

import sys

import uvicorn

from dataroom.api.app import create_app
from dataroom.errors import ConfigurationError
from dataroom.settings import get_settings


def main() -> None:
    settings = get_settings()
    try:
        app = create_app(settings=settings)
    except ConfigurationError:
        # Already logged by create_app; exit without a traceback and without retrying.
        sys.exit(2)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
