"""FastAPI application factory.

The database pool is opened in the lifespan handler, stored on
``app.state.database`` and closed at shutdown. Tests pass their own
``Settings`` (for example an in-memory SQLite URL) or an already built
``Database``.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from team_presence import __version__
from team_presence.config.settings import Settings
from team_presence.db.database import Database, open_database
from team_presence.db.migrate import run_migrations
from team_presence.logging_config import get_logger

from .errors import install_error_handlers
from .middleware import RequestIdMiddleware
from .routers import auth, health, matches

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None, database: Optional[Database] = None
) -> FastAPI:
    if settings is None:
        from team_presence.config.settings import settings as default_settings

        settings = default_settings
    get_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        db = database if database is not None else open_database(settings)
        await db.connect()
        if settings.db_auto_migrate:
            applied = await run_migrations(db)
            if applied:
                logger.info("Migrations applied at startup", extra={"versions": applied})
        app.state.database = db
        app.state.started_at = time.monotonic()
        logger.info(
            "API started",
            extra={"env": settings.app_env, "backend": db.dialect.value},
        )
        try:
            yield
        finally:
            await db.close()
            logger.info("API stopped")

    app = FastAPI(title="Team Presence Manager", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)
    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(matches.router)
    return app
