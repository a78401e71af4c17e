"""
FastAPI application for the Nodash analytics server.

PURPOSE: Application factory and server runner.
AI CONTEXT: Creates app with all routes registered.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..__version__ import __version__
from ..config import Config
from ..storage import EventStore
from .routes import get_store, router

__all__ = ["create_app", "run_server"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """
    Manage application lifecycle with startup/shutdown hooks.

    Creates the data directory before the first request and logs where
    events are stored.

    Args:
        app: The FastAPI application instance (provided by FastAPI).

    Yields:
        None. Control returns to FastAPI to handle requests.
    """
    store: EventStore = app.dependency_overrides.get(get_store, get_store)()
    store.ensure_data_dir()
    logger.info("Nodash analytics server starting (v%s)", __version__)
    logger.info("Data stored in: %s", store.data_dir)
    yield
    logger.info("Nodash analytics server shutting down")


def create_app(store: EventStore | None = None) -> FastAPI:
    """
    Create and configure the analytics server application.

    Factory function that creates a new FastAPI instance with all routes
    registered. Uses the application factory pattern for testability.

    Args:
        store: EventStore to use instead of the default one rooted at
            .nodash in the working directory.

    Returns:
        Configured FastAPI application. app.state.started_at holds the
        monotonic start time used for the uptime in /health.

    Example:
        >>> from fastapi.testclient import TestClient
        >>> client = TestClient(create_app())
        >>> client.get('/health').json()['status']
        'healthy'
    """
    app = FastAPI(
        title="Nodash Analytics Server",
        description="Minimal JSON-file-backed analytics server",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.started_at = time.monotonic()

    if store is not None:
        app.dependency_overrides[get_store] = lambda: store

    app.include_router(router)
    return app


def run_server(
    host: str = Config.DEFAULT_HOST,
    port: int = Config.DEFAULT_PORT,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """
    Launch the analytics server with uvicorn.

    Args:
        host: Network interface to bind. '127.0.0.1' for local-only access.
        port: TCP port. Default 3001.
        reload: Enable auto-reload on code changes for development.
        log_level: Uvicorn logging verbosity.

    Returns:
        None. Blocks until the server is stopped (Ctrl+C).

    Raises:
        OSError: If the port is already in use or host is invalid.
    """
    uvicorn.run(
        "nodash.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


if __name__ == "__main__":
    run_server()
