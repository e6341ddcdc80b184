"""
handover_tracker.services.cron_service

Scheduled-sync relay.

Responsibilities:
- Call the Sheets sync endpoint with the cron secret.
- Translate its result into the cron response envelope and HTTP status.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from handover_tracker.observability.logging import get_logger

log = get_logger(__name__)

SYNC_PATH = "/api/sync/google-sheets"


async def relay_sync(*, http: httpx.AsyncClient, cron_secret: str) -> tuple[int, dict[str, Any]]:
    """
    POST the sync endpoint and return (status_code, body).
    `http` carries the base URL of the service that performs the sync.
    """

    timestamp = datetime.now(timezone.utc).isoformat()
    log.info("cron_sync_started")
    try:
        r = await http.post(
            SYNC_PATH,
            headers={"Authorization": f"Bearer {cron_secret}", "Content-Type": "application/json"},
        )
        result = r.json()
    except (httpx.HTTPError, ValueError) as e:
        log.error("cron_sync_error", error=str(e))
        return 500, {
            "success": False,
            "message": "Cron job failed",
            "timestamp": timestamp,
            "error": str(e),
        }

    if isinstance(result, dict) and result.get("success"):
        log.info("cron_sync_completed", summary=result.get("summary"))
        return 200, {
            "success": True,
            "message": "Automated sync completed",
            "timestamp": timestamp,
            **result,
        }

    error = result.get("error") if isinstance(result, dict) else None
    log.error("cron_sync_failed", status_code=r.status_code, error=error)
    return 500, {
        "success": False,
        "message": "Automated sync failed",
        "timestamp": timestamp,
        "error": error or f"Sync endpoint returned HTTP {r.status_code}",
    }
