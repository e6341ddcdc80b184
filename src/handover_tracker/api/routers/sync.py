"""
handover_tracker.api.routers.sync

Google Sheets synchronization endpoint (cron-secret protected).
"""

from __future__ import annotations

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_200_OK, HTTP_500_INTERNAL_SERVER_ERROR

from handover_tracker.api.deps import db_session, google_http
from handover_tracker.auth.deps import require_cron_secret
from handover_tracker.services.sync_service import SheetsSyncService, build_google_clients
from handover_tracker.settings import Settings, get_settings

router = APIRouter(prefix="/api/sync", tags=["sync"])


@router.post("/google-sheets", dependencies=[Depends(require_cron_secret)])
async def sync_google_sheets(
    session: AsyncSession = Depends(db_session),
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(google_http),
) -> JSONResponse:
    sheets, drive = build_google_clients(settings, http)
    outcome = await SheetsSyncService(session=session, sheets=sheets, drive=drive).run()
    return JSONResponse(
        status_code=HTTP_200_OK if outcome.success else HTTP_500_INTERNAL_SERVER_ERROR,
        content=outcome.as_response(),
    )
