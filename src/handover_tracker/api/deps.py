"""
handover_tracker.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for DB sessions and the business date.
- Provide outbound HTTP clients (Google APIs, sync relay) so tests can swap transports.
- Encapsulate app.state access patterns (engine/sessionmaker).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import date

import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from handover_tracker.settings import Settings, get_settings


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created in the lifespan of `handover_tracker.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    # Request-scoped DB session. Commit/rollback is managed explicitly by the service layer.
    async with session_factory() as session:
        yield session


def today_dep() -> date:
    return date.today()


async def google_http(settings: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
        yield http


async def sync_relay_http(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    if settings.sync_base_url:
        client = httpx.AsyncClient(
            base_url=settings.sync_base_url.rstrip("/"), timeout=settings.http_timeout_seconds
        )
    else:
        # No remote sync host configured: call this app's own sync route in-process.
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=request.app),
            base_url=str(request.base_url).rstrip("/"),
            timeout=settings.http_timeout_seconds,
        )
    async with client:
        yield client


# --- Module Notes -----------------------------------------------------------
# Settings are resolved through `get_settings`; `create_app` overrides it so the
# instance passed to the factory is what every dependency sees.
