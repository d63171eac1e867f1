"""FastAPI application factory for the harvest status server."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from harvest import __version__
from harvest.api.routes import health


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance.
    """
    app = FastAPI(
        title="harvest status",
        description="Read-only status for the harvest extraction scheduler",
        version=__version__,
    )

    # Dashboards on any origin may poll the status.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.include_router(health.router, tags=["Health"])

    return app
