"""
handover_tracker.services.dashboard_service

Manager dashboard service (read-side owner of the dashboard endpoints).

Responsibilities:
- Load the manager's handovers and turn them into flat dashboard rows.
- Apply filters, group by time category and compute stats / filter options.
- Compute KPIs over the unfiltered scope, degrading to `None` when that query fails.
- List the manager's team members.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.dashboard.aggregation import (
    DashboardFilters,
    apply_filters,
    compute_kpis,
    compute_stats,
    filter_options,
    group_by_time_category,
)
from handover_tracker.dashboard.rows import DashboardRow, build_row
from handover_tracker.db.repositories.handovers import HandoverRepo, ProgressRepo
from handover_tracker.db.repositories.users import UserProfileRepo
from handover_tracker.observability.logging import get_logger

log = get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DashboardService:
    def __init__(self, *, session: AsyncSession, today: date | None = None) -> None:
        self._session = session
        self._today = today or date.today()

        self._handovers = HandoverRepo(session)
        self._progress = ProgressRepo(session)
        self._users = UserProfileRepo(session)

    async def rows(self, manager_email: str) -> list[DashboardRow]:
        records = await self._handovers.dashboard_records(manager_email)
        counts = await self._progress.counts_for([r.handover.id for r in records])
        rows: list[DashboardRow] = []
        for record in records:
            total, completed = counts.get(record.handover.id, (0, 0))
            rows.append(
                build_row(
                    handover=record.handover,
                    job=record.job,
                    department=record.department,
                    plant=record.plant,
                    template_name=record.template_name,
                    total_items=total,
                    completed_items=completed,
                    today=self._today,
                )
            )
        return rows

    async def kpis(self, manager_email: str) -> dict[str, Any]:
        return compute_kpis(await self.rows(manager_email))

    async def build(
        self,
        *,
        manager_email: str,
        filters: DashboardFilters,
        include_kpis: bool = True,
    ) -> dict[str, Any]:
        rows = await self.rows(manager_email)
        visible = apply_filters(rows, filters)
        grouped = group_by_time_category(visible)

        kpis: dict[str, Any] | None = None
        if include_kpis:
            try:
                kpis = await self.kpis(manager_email)
            except SQLAlchemyError as e:
                log.warning("dashboard_kpis_failed", manager_email=manager_email, error=str(e))

        log.info(
            "dashboard_built",
            manager_email=manager_email,
            total_records=len(visible),
            filters=filters.as_dict(),
        )
        return {
            "handovers": visible,
            "grouped": grouped,
            "kpis": kpis,
            "stats": compute_stats(visible, grouped),
            # Dropdowns list every value in scope so a selected filter stays switchable.
            "filterOptions": filter_options(rows),
            "metadata": {
                "manager_email": manager_email,
                "total_records": len(visible),
                "generated_at": _now_iso(),
                "filters_applied": filters.as_dict(),
            },
        }

    async def team_members(self, manager_email: str) -> list[dict[str, Any]]:
        members = await self._users.team_for_manager(manager_email)
        return [
            {
                "id": str(profile.id),
                "email": profile.email,
                "full_name": profile.full_name,
                "role": profile.role.value,
                "department_id": str(department.id),
                "department_name": department.name,
                "department_code": department.code,
            }
            for profile, department in members
        ]
