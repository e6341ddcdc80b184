"""
handover_tracker.api.routers.cron

Scheduled job entrypoint (called by the platform scheduler every N hours).
"""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from handover_tracker.api.deps import sync_relay_http
from handover_tracker.auth.deps import require_cron_secret
from handover_tracker.services.cron_service import relay_sync

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.post("/sync-sheets")
async def cron_sync_sheets(
    cron_secret: str = Depends(require_cron_secret),
    http: httpx.AsyncClient = Depends(sync_relay_http),
) -> JSONResponse:
    status_code, body = await relay_sync(http=http, cron_secret=cron_secret)
    return JSONResponse(status_code=status_code, content=body)
