from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.models import SyncLog, SyncStatus


class SyncLogRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def start(self) -> SyncLog:
        entry = SyncLog(
            status=SyncStatus.running,
            rows_processed=0,
            handovers_created=0,
            errors_count=0,
            error_details=[],
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def finish(
        self,
        entry: SyncLog,
        *,
        status: SyncStatus,
        rows_processed: int = 0,
        handovers_created: int = 0,
        error_details: list[str] | None = None,
    ) -> SyncLog:
        errors = list(error_details or [])
        entry.status = status
        entry.completed_at = datetime.utcnow()
        entry.rows_processed = rows_processed
        entry.handovers_created = handovers_created
        entry.errors_count = len(errors)
        entry.error_details = errors
        await self._session.flush()
        return entry

    async def get(self, sync_log_id: uuid.UUID) -> SyncLog:
        entry = await self._session.get(SyncLog, sync_log_id)
        if entry is None:
            raise LookupError(f"sync log {sync_log_id} not found")
        return entry

    async def latest(self) -> SyncLog | None:
        stmt = select(SyncLog).order_by(desc(SyncLog.started_at)).limit(1)
        return (await self._session.execute(stmt)).scalar_one_or_none()
