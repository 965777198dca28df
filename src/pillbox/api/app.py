"""Schedule API: FastAPI application factory.

The app factory creates a FastAPI instance with:
- CORS middleware (configurable origins)
- Request logging with per-request log fields
- Lifespan handler that opens and closes the medication database pool
- Health endpoint at GET /api/health
- Schedule, medication, inventory and reminder routers
- Optional static file serving for a built frontend
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from pillbox.api.deps import get_database, get_schedule_settings
from pillbox.api.middleware import RequestLogMiddleware, register_error_handlers
from pillbox.api.routers.inventory import router as inventory_router
from pillbox.api.routers.medications import router as medications_router
from pillbox.api.routers.reminders import router as reminders_router
from pillbox.api.routers.schedule import router as schedule_router
from pillbox.config import PillboxConfig
from pillbox.db import Database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database pool on startup and close it on shutdown.

    A failed connection is logged and the app still starts; database-backed
    endpoints then answer 503 until restart.
    """
    database: Database = app.state.database
    try:
        await database.connect()
    except Exception:
        logger.warning(
            "Failed to connect to database %s; schedule endpoints will be unavailable",
            database.db_name,
            exc_info=True,
        )

    yield

    await database.close()


def create_app(
    config: PillboxConfig | None = None,
    cors_origins: list[str] | None = None,
    static_dir: str | Path | None = None,
    database: Database | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    config:
        Loaded pillbox configuration.  Defaults to ``PillboxConfig()``.
    cors_origins:
        Allowed CORS origins.  Overrides ``config.api.cors_origins``.
    static_dir:
        Path to a built frontend directory.  When set, mounts a
        ``StaticFiles`` handler at ``/`` with ``html=True`` for SPA fallback.
        Falls back to ``config.api.static_dir`` and then the
        ``PILLBOX_STATIC_DIR`` environment variable.
    database:
        Database to serve from.  Defaults to one built from ``DATABASE_URL``
        or ``POSTGRES_*`` for ``config.db``.
    """
    if config is None:
        config = PillboxConfig()
    if cors_origins is None:
        cors_origins = config.api.cors_origins
    if database is None:
        database = Database.from_config(config.db)

    app = FastAPI(
        title="Pillbox Schedule API",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.router.redirect_slashes = False
    app.state.config = config
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.add_middleware(RequestLogMiddleware)

    app.dependency_overrides[get_database] = lambda: database
    app.dependency_overrides[get_schedule_settings] = lambda: config.schedule

    app.include_router(schedule_router)
    app.include_router(medications_router)
    app.include_router(inventory_router)
    app.include_router(reminders_router)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    # Mount AFTER all API routes so /api/* always takes precedence.
    resolved_static = static_dir or config.api.static_dir or os.environ.get("PILLBOX_STATIC_DIR")
    if resolved_static is not None:
        dist_path = Path(resolved_static)
        if dist_path.is_dir():
            app.mount(
                "/",
                StaticFiles(directory=str(dist_path), html=True),
                name="frontend",
            )
            logger.info("Mounted frontend static files from %s", dist_path)
        else:
            logger.warning("static_dir %s does not exist; skipping static mount", dist_path)

    return app
