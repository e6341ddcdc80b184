"""
tests.test_smoke

Minimal smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and the DB readiness probe works in test mode.
- Ensure unknown routes and dev tokens behave as documented.
"""

from __future__ import annotations

import httpx
import pytest

from handover_tracker.api.app import create_app
from handover_tracker.settings import Settings


@pytest.mark.asyncio
async def test_health_endpoints(client: httpx.AsyncClient) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client: httpx.AsyncClient) -> None:
    r = await client.get("/api/nope")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Not Found"}


@pytest.mark.asyncio
async def test_dev_token_round_trip(client: httpx.AsyncClient) -> None:
    r = await client.post("/api/dev/token", json={"email": "Dev@Example.com", "roles": ["manager"]})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = await client.get("/api/users/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    body = r.json()["data"]
    assert body["email"] == "dev@example.com"
    assert body["roles"] == ["manager"]
    assert body["profile"] is None


@pytest.mark.asyncio
async def test_dev_token_disabled_in_prod() -> None:
    app = create_app(
        settings=Settings(env="prod", database_url="sqlite+aiosqlite:///:memory:")
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        r = await c.post("/api/dev/token", json={"email": "dev@example.com"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_protected_route_requires_token(client: httpx.AsyncClient) -> None:
    r = await client.get("/api/handovers")
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Access token required"}
