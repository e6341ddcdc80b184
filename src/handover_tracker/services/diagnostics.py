"""
handover_tracker.services.diagnostics

Google integration readiness report.

Responsibilities:
- Report which integration settings are present, without contacting Google.
- Validate the service-account key shape and surface its client email.
- Describe the sync schedule and its next run.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from handover_tracker.google_clients.auth import inspect_service_account
from handover_tracker.settings import Settings

NOT_CONFIGURED = "Not configured"


def next_cron_run(now: datetime, *, interval_hours: int) -> datetime:
    """
    Next firing of `0 */N * * *` strictly after `now`: minute zero of the next
    hour whose value is a multiple of N.
    """

    candidate = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    while candidate.hour % interval_hours:
        candidate += timedelta(hours=1)
    return candidate


def connection_report(settings: Settings, *, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    account_valid, account_email = inspect_service_account(settings.google_service_account_key)

    environment = {
        "HANDOVER_GOOGLE_SERVICE_ACCOUNT_KEY": bool(settings.google_service_account_key),
        "HANDOVER_GOOGLE_SHEETS_ID": bool(settings.google_sheets_id),
        "HANDOVER_GOOGLE_DRIVE_PARENT_FOLDER_ID": bool(settings.google_drive_parent_folder_id),
        "HANDOVER_CRON_SECRET": bool(settings.cron_secret),
        "HANDOVER_DATABASE_URL": bool(settings.database_url),
    }
    ready = all(environment.values()) and account_valid

    return {
        "success": True,
        "status": "ready" if ready else "incomplete",
        "environment": {
            **environment,
            "hostedDatabase": settings.hosted_database,
            "serviceAccountValid": account_valid,
            "serviceAccountEmail": account_email,
        },
        "googleApis": {
            "sheets": {
                "available": True,
                "version": "v4",
                "sheetsId": settings.google_sheets_id or NOT_CONFIGURED,
                "sheetName": settings.google_sheet_name,
            },
            "drive": {
                "available": True,
                "version": "v3",
                "parentFolderId": settings.google_drive_parent_folder_id or NOT_CONFIGURED,
            },
        },
        "cron": {
            "configured": bool(settings.cron_secret),
            "schedule": settings.cron_schedule,
            "nextRun": next_cron_run(now, interval_hours=settings.cron_interval_hours).isoformat(),
        },
        "setupSteps": {
            "database": environment["HANDOVER_DATABASE_URL"],
            "serviceAccount": account_valid,
            "sheets": environment["HANDOVER_GOOGLE_SHEETS_ID"],
            "drive": environment["HANDOVER_GOOGLE_DRIVE_PARENT_FOLDER_ID"],
            "cron": environment["HANDOVER_CRON_SECRET"],
        },
        "message": (
            "All Google services are configured and ready"
            if ready
            else "Some configuration steps are incomplete"
        ),
    }
