"""WorkOffice API: thin FastAPI composition shell.

Wires ``workoffice-persistence`` into a servable FastAPI application. Worker
use cases live in :mod:`workoffice_api.service`; this module only composes
configuration, middleware and routes.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from workoffice_persistence import ConnectionManager, create_schema, load_connections, redact_url

from workoffice_api.errors import install_error_handlers
from workoffice_api.workers import router as workers_router

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of shared resources."""
    # --- Startup -----------------------------------------------------------
    connections: ConnectionManager | None = app.state.connections
    if connections is None:
        connections = load_connections()
        app.state.connections = connections

    profile = connections.get_profile("default")
    if profile.create_schema:
        await create_schema(connections.get_sql_engine())
        logger.info("Schema ensured for %s", redact_url(profile.url))

    yield

    # --- Shutdown ----------------------------------------------------------
    await connections.close_all()


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def _parse_cors_origins() -> list[str]:
    """Read allowed CORS origins from ``CORS_ORIGINS`` (comma-separated, default ``*``)."""
    raw = os.environ.get("CORS_ORIGINS", "")
    if not raw:
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app(connections: ConnectionManager | None = None) -> FastAPI:
    """Construct the FastAPI application with all middleware and routes.

    Args:
        connections: Connection profiles to use. When omitted they are loaded
            at startup with :func:`load_connections`.
    """
    app = FastAPI(
        title="WorkOffice API",
        description="Worker registry with upsert, lookup, paging and soft delete.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.connections = connections

    # --- CORS --------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Request logging ---------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        logger.info("%s %s -> %d (%.1f ms)", request.method, path, response.status_code, elapsed_ms)
        return response

    install_error_handlers(app)

    # --- Routes ------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check. Always returns ``{"status": "ok"}``."""
        return {"status": "ok"}

    app.include_router(workers_router)
    return app


def get_app() -> FastAPI:
    """Return the module-level app singleton (created on first call).

    Deferred so that import alone does not read configuration.
    ``uvicorn workoffice_api:app`` still works because uvicorn resolves the
    attribute at runtime, which invokes ``__getattr__``.
    """
    global _app  # noqa: PLW0603
    if _app is None:
        _app = create_app()
    return _app


_app: FastAPI | None = None


def __getattr__(name: str) -> Any:
    """Module-level ``__getattr__`` so ``uvicorn workoffice_api:app`` works."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
