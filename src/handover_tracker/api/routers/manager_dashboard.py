"""
handover_tracker.api.routers.manager_dashboard

Manager dashboard endpoints.

Responsibilities:
- Serve the grouped, filtered dashboard for a manager email (with stats, KPIs, filter options).
- Serve KPIs and team members on their own.
- Accept status updates from managers, HR and admins.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.api.deps import db_session, today_dep
from handover_tracker.auth.deps import require_any_role
from handover_tracker.auth.models import Principal
from handover_tracker.dashboard.aggregation import DashboardFilters
from handover_tracker.db.models import HandoverStatus
from handover_tracker.services.dashboard_service import DashboardService
from handover_tracker.services.errors import InvalidRequestError
from handover_tracker.services.handover_service import HandoverService

router = APIRouter(prefix="/api/manager/dashboard", tags=["manager-dashboard"])


class UpdateStatusRequest(BaseModel):
    handover_id: uuid.UUID
    status: HandoverStatus
    notes: str | None = Field(default=None, max_length=2000)


def _manager_email(value: str | None) -> str:
    # Declared optional so a missing value yields the documented message, not a validation list.
    email = (value or "").strip()
    if not email:
        raise InvalidRequestError("manager_email is required")
    return email.lower()


@router.get("")
async def get_dashboard(
    manager_email: str | None = Query(default=None),
    department_filter: str | None = Query(default=None),
    role_filter: str | None = Query(default=None),
    status_filter: str | None = Query(default=None),
    time_category_filter: str | None = Query(default=None),
    hide_completed: bool = Query(default=False),
    include_kpis: bool = Query(default=True),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    email = _manager_email(manager_email)
    filters = DashboardFilters(
        department_filter=department_filter or None,
        role_filter=role_filter or None,
        status_filter=status_filter or None,
        time_category_filter=time_category_filter or None,
        hide_completed=hide_completed,
    )
    data = await DashboardService(session=session, today=today).build(
        manager_email=email, filters=filters, include_kpis=include_kpis
    )
    return {"success": True, "data": data}


@router.get("/kpis")
async def get_kpis(
    manager_email: str | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    email = _manager_email(manager_email)
    kpis = await DashboardService(session=session, today=today).kpis(email)
    return {"success": True, "data": kpis}


@router.get("/team-members")
async def get_team_members(
    manager_email: str | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    email = _manager_email(manager_email)
    members = await DashboardService(session=session).team_members(email)
    return {
        "success": True,
        "data": members,
        "metadata": {
            "manager_email": email,
            "team_size": len(members),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        },
    }


@router.post("/update-status")
async def update_status(
    body: UpdateStatusRequest,
    principal: Principal = Depends(require_any_role("manager", "hr")),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    data = await HandoverService(session=session, today=today).change_status(
        principal, body.handover_id, status=body.status, notes=body.notes
    )
    return {
        "success": True,
        "data": data,
        "message": f"Handover status updated to {body.status.value}",
    }
