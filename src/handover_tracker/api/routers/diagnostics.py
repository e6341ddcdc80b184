"""
handover_tracker.api.routers.diagnostics

Google integration diagnostic endpoint.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from handover_tracker.services.diagnostics import connection_report
from handover_tracker.settings import Settings, get_settings

router = APIRouter(prefix="/api/test", tags=["diagnostics"])


@router.get("/google-connection")
async def google_connection(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    # Configuration only; no request leaves the process.
    return connection_report(settings)
