"""
handover_tracker.api.app

FastAPI app factory for the Handover Tracker service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine/session factory).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from handover_tracker import __version__
from handover_tracker.api.errors import setup_exception_handlers
from handover_tracker.api.routers.catalog import router as catalog_router
from handover_tracker.api.routers.cron import router as cron_router
from handover_tracker.api.routers.dev_auth import router as dev_auth_router
from handover_tracker.api.routers.diagnostics import router as diagnostics_router
from handover_tracker.api.routers.handovers import router as handovers_router
from handover_tracker.api.routers.health import router as health_router
from handover_tracker.api.routers.manager_dashboard import router as manager_dashboard_router
from handover_tracker.api.routers.sync import router as sync_router
from handover_tracker.api.routers.users import router as users_router
from handover_tracker.db.init_db import init_db
from handover_tracker.db.session import create_engine, create_sessionmaker
from handover_tracker.observability.logging import configure_logging, get_logger
from handover_tracker.observability.middleware import RequestContextMiddleware
from handover_tracker.settings import Settings, get_settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, hosted_database=settings.hosted_database)
        # Routers obtain sessions via dependencies (see `handover_tracker.api.deps`).
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)
        try:
            yield
        finally:
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Handover Tracker",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_middleware(RequestContextMiddleware)
    setup_exception_handlers(app, settings=settings)

    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(manager_dashboard_router)
    app.include_router(cron_router)
    app.include_router(sync_router)
    app.include_router(diagnostics_router)
    app.include_router(handovers_router)
    app.include_router(catalog_router)
    app.include_router(users_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business rules live in services and the pure
# `handover_tracker.dashboard` functions.
