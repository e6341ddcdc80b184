"""
handover_tracker.db.repositories.status_changes

Repository for `StatusChange` entities.

Responsibilities:
- Append status transitions (who moved a handover, from/to, notes).
- Query the trail per handover for the detail view.
"""

from __future__ import annotations

import uuid

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.models import StatusChange


class StatusChangeRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        handover_id: uuid.UUID,
        from_status: str,
        to_status: str,
        actor: str,
        notes: str | None = None,
    ) -> StatusChange:
        # Append-only: rows are never updated or deleted in normal operation.
        change = StatusChange(
            handover_id=handover_id,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            notes=notes,
        )
        self._session.add(change)
        await self._session.flush()
        return change

    async def list_for_handover(
        self, handover_id: uuid.UUID, *, limit: int = 200
    ) -> list[StatusChange]:
        stmt = (
            select(StatusChange)
            .where(StatusChange.handover_id == handover_id)
            .order_by(desc(StatusChange.created_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())
