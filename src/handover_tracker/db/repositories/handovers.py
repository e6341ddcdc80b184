"""
handover_tracker.db.repositories.handovers

Repository for `Handover` and `HandoverProgress` entities.

Responsibilities:
- Create, fetch, list (with visibility rules expressed as SQL) and delete handovers.
- Fetch the joined records behind the manager dashboard.
- Manage progress checklist items and their per-handover counts.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import ColumnElement, case, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.models import (
    Department,
    Handover,
    HandoverProgress,
    HandoverStatus,
    Job,
    Plant,
    ProgressStatus,
    Template,
)


@dataclass(frozen=True, slots=True)
class DashboardRecord:
    handover: Handover
    job: Job
    department: Department
    plant: Plant | None
    template_name: str | None


def manager_scope(manager_email: str) -> ColumnElement[bool]:
    # A manager owns a handover directly or through the department of its job.
    email = manager_email.lower()
    return or_(
        func.lower(Handover.manager_email) == email,
        func.lower(Department.manager_email) == email,
    )


def visibility_scope(email: str) -> ColumnElement[bool]:
    email = email.lower()
    return or_(
        manager_scope(email),
        func.lower(Handover.leaving_employee_email) == email,
        func.lower(Handover.incoming_employee_email) == email,
    )


class HandoverRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _joined(self):
        return select(Handover, Job).join(Job, Handover.job_id == Job.id).join(
            Department, Job.department_id == Department.id
        )

    async def create(self, **fields: Any) -> Handover:
        fields.setdefault("status", HandoverStatus.created)
        handover = Handover(**fields)
        self._session.add(handover)
        await self._session.flush()
        return handover

    async def get_with_job(
        self, handover_id: uuid.UUID, *, for_update: bool = False
    ) -> tuple[Handover, Job] | None:
        stmt = self._joined().where(Handover.id == handover_id)
        if for_update:
            stmt = stmt.with_for_update(of=Handover)
        row = (await self._session.execute(stmt)).first()
        return (row[0], row[1]) if row is not None else None

    async def find_for_employee_job(self, *, employee_email: str, job_id: uuid.UUID) -> Handover | None:
        stmt = (
            select(Handover)
            .where(
                func.lower(Handover.leaving_employee_email) == employee_email.lower(),
                Handover.job_id == job_id,
            )
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def is_managed_by(self, handover: Handover, manager_email: str) -> bool:
        if handover.manager_email.lower() == manager_email.lower():
            return True
        stmt = (
            select(func.count())
            .select_from(Handover)
            .join(Job, Handover.job_id == Job.id)
            .join(Department, Job.department_id == Department.id)
            .where(Handover.id == handover.id, manager_scope(manager_email))
        )
        return bool((await self._session.execute(stmt)).scalar_one())

    async def page(
        self,
        *,
        viewer_email: str | None,
        status: HandoverStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[tuple[Handover, Job]], int]:
        """
        Page through handovers visible to `viewer_email` (None means unrestricted).
        Returns the page and the total count under the same conditions.
        """

        conditions: list[ColumnElement[bool]] = []
        if viewer_email is not None:
            conditions.append(visibility_scope(viewer_email))
        if status is not None:
            conditions.append(Handover.status == status)

        page_stmt = (
            self._joined()
            .where(*conditions)
            .order_by(desc(Handover.created_at))
            .limit(limit)
            .offset(offset)
        )
        count_stmt = (
            select(func.count())
            .select_from(Handover)
            .join(Job, Handover.job_id == Job.id)
            .join(Department, Job.department_id == Department.id)
            .where(*conditions)
        )
        items = [(h, j) for h, j in (await self._session.execute(page_stmt)).all()]
        total = int((await self._session.execute(count_stmt)).scalar_one())
        return items, total

    async def list_visible(self, *, viewer_email: str | None) -> list[tuple[Handover, Job]]:
        stmt = self._joined()
        if viewer_email is not None:
            stmt = stmt.where(visibility_scope(viewer_email))
        rows = (await self._session.execute(stmt.order_by(Handover.due_date))).all()
        return [(h, j) for h, j in rows]

    async def dashboard_records(self, manager_email: str) -> list[DashboardRecord]:
        stmt = (
            select(Handover, Job, Department, Plant, Template.name)
            .join(Job, Handover.job_id == Job.id)
            .join(Department, Job.department_id == Department.id)
            .outerjoin(Plant, Department.plant_id == Plant.id)
            .outerjoin(Template, Handover.template_id == Template.id)
            .where(manager_scope(manager_email))
            .order_by(Handover.due_date, Handover.created_at)
        )
        rows = (await self._session.execute(stmt)).all()
        return [
            DashboardRecord(handover=h, job=j, department=d, plant=p, template_name=t)
            for h, j, d, p, t in rows
        ]

    async def set_status(
        self,
        handover: Handover,
        status: HandoverStatus,
        *,
        completed_on: date | None = None,
    ) -> Handover:
        handover.status = status
        if status == HandoverStatus.completed:
            handover.completed_date = completed_on or date.today()
        handover.updated_at = datetime.utcnow()
        await self._session.flush()
        return handover

    async def delete(self, handover: Handover) -> None:
        await self._session.delete(handover)
        await self._session.flush()


class ProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        handover_id: uuid.UUID,
        title: str,
        is_mandatory: bool = False,
        sort_order: int | None = None,
        template_item_id: uuid.UUID | None = None,
    ) -> HandoverProgress:
        if sort_order is None:
            sort_order = await self._next_sort_order(handover_id)
        item = HandoverProgress(
            handover_id=handover_id,
            template_item_id=template_item_id,
            title=title,
            is_mandatory=is_mandatory,
            sort_order=sort_order,
            status=ProgressStatus.pending,
        )
        self._session.add(item)
        await self._session.flush()
        return item

    async def _next_sort_order(self, handover_id: uuid.UUID) -> int:
        stmt = select(func.max(HandoverProgress.sort_order)).where(
            HandoverProgress.handover_id == handover_id
        )
        current = (await self._session.execute(stmt)).scalar_one_or_none()
        return (current or 0) + 1

    async def get(self, *, handover_id: uuid.UUID, progress_id: uuid.UUID) -> HandoverProgress | None:
        item = await self._session.get(HandoverProgress, progress_id)
        if item is None or item.handover_id != handover_id:
            return None
        return item

    async def list_for_handover(self, handover_id: uuid.UUID) -> list[HandoverProgress]:
        stmt = (
            select(HandoverProgress)
            .where(HandoverProgress.handover_id == handover_id)
            .order_by(HandoverProgress.sort_order)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def delete(self, item: HandoverProgress) -> None:
        await self._session.delete(item)
        await self._session.flush()

    async def counts_for(self, handover_ids: Sequence[uuid.UUID]) -> dict[uuid.UUID, tuple[int, int]]:
        """
        Map handover id -> (total_items, completed_items).
        Items marked not_applicable do not count towards the total.
        """

        if not handover_ids:
            return {}
        stmt = (
            select(
                HandoverProgress.handover_id,
                func.sum(case((HandoverProgress.status != ProgressStatus.not_applicable, 1), else_=0)),
                func.sum(case((HandoverProgress.status == ProgressStatus.completed, 1), else_=0)),
            )
            .where(HandoverProgress.handover_id.in_(list(handover_ids)))
            .group_by(HandoverProgress.handover_id)
        )
        rows = (await self._session.execute(stmt)).all()
        return {hid: (int(total or 0), int(done or 0)) for hid, total, done in rows}

    async def recently_completed(
        self, handover_ids: Sequence[uuid.UUID], *, limit: int = 10
    ) -> list[HandoverProgress]:
        if not handover_ids:
            return []
        stmt = (
            select(HandoverProgress)
            .where(
                HandoverProgress.handover_id.in_(list(handover_ids)),
                HandoverProgress.completed_at.is_not(None),
            )
            .order_by(desc(HandoverProgress.completed_at))
            .limit(limit)
        )
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Visibility mirrors the row-level rules the hosted database used to enforce:
# privileged callers pass viewer_email=None, everyone else is scoped by email.
