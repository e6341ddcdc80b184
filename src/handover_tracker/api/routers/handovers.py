"""
handover_tracker.api.routers.handovers

Handover CRUD, status workflow, checklist and reporting endpoints.

Responsibilities:
- List (paginated), create from template, read, patch and delete handovers.
- Move handovers through the status workflow and expose the status history.
- Let the leaving employee submit a finished checklist for review.
- Link a Google Drive folder to a handover.
- Add, update and remove progress checklist items.
- Serve statistics, upcoming deadlines and recent activity.
"""

from __future__ import annotations

import uuid
from datetime import date
from functools import partial
from typing import Any

import httpx
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from handover_tracker.api.deps import db_session, google_http, today_dep
from handover_tracker.auth.deps import get_principal
from handover_tracker.auth.models import Principal
from handover_tracker.db.models import HandoverStatus, ProgressStatus
from handover_tracker.services.handover_service import HandoverService
from handover_tracker.services.sync_service import build_drive_client
from handover_tracker.settings import Settings, get_settings

router = APIRouter(prefix="/api/handovers", tags=["handovers"])

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class HandoverCreateRequest(BaseModel):
    job_id: uuid.UUID
    template_id: uuid.UUID | None = None
    leaving_employee_name: str = Field(min_length=1, max_length=256)
    leaving_employee_email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    incoming_employee_name: str | None = Field(default=None, max_length=256)
    incoming_employee_email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)
    manager_name: str = Field(min_length=1, max_length=256)
    manager_email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    start_date: date | None = None
    due_date: date
    notes: str | None = Field(default=None, max_length=5000)


class HandoverUpdateRequest(BaseModel):
    incoming_employee_name: str | None = Field(default=None, max_length=256)
    incoming_employee_email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)
    manager_name: str | None = Field(default=None, min_length=1, max_length=256)
    manager_email: str | None = Field(default=None, pattern=EMAIL_PATTERN, max_length=320)
    start_date: date | None = None
    due_date: date | None = None
    notes: str | None = Field(default=None, max_length=5000)


class StatusChangeRequest(BaseModel):
    status: HandoverStatus
    notes: str | None = Field(default=None, max_length=2000)


class ProgressCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    is_mandatory: bool = False


class ProgressUpdateRequest(BaseModel):
    status: ProgressStatus | None = None
    completion_notes: str | None = Field(default=None, max_length=5000)


def _service(session: AsyncSession, today: date) -> HandoverService:
    return HandoverService(session=session, today=today)


@router.get("")
async def list_handovers(
    status: HandoverStatus | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    page = await _service(session, today).page(principal, status=status, limit=limit, offset=offset)
    return {"success": True, "data": page["handovers"], "pagination": page["pagination"]}


@router.post("", status_code=HTTP_201_CREATED)
async def create_handover(
    body: HandoverCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    fields = body.model_dump(exclude={"job_id"})
    for key in ("leaving_employee_email", "incoming_employee_email", "manager_email"):
        if fields[key]:
            fields[key] = fields[key].lower()
    data = await _service(session, today).create(principal, job_id=body.job_id, **fields)
    return {"success": True, "data": data}


# Static paths are registered before `/{handover_id}` so they are not parsed as ids.
@router.get("/statistics")
async def handover_statistics(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    return {"success": True, "data": await _service(session, today).statistics(principal)}


@router.get("/upcoming")
async def upcoming_deadlines(
    days: int = Query(default=7, ge=0, le=365),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    return {"success": True, "data": await _service(session, today).upcoming(principal, days=days)}


@router.get("/activity")
async def recent_activity(
    limit: int = Query(default=10, ge=1, le=100),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    return {"success": True, "data": await _service(session, today).activity(principal, limit=limit)}


@router.get("/{handover_id}")
async def get_handover(
    handover_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    return {"success": True, "data": await _service(session, today).detail(principal, handover_id)}


@router.patch("/{handover_id}")
async def update_handover(
    handover_id: uuid.UUID,
    body: HandoverUpdateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    for key in ("incoming_employee_email", "manager_email"):
        if changes.get(key):
            changes[key] = changes[key].lower()
    data = await _service(session, today).update(principal, handover_id, changes)
    return {"success": True, "data": data}


@router.delete("/{handover_id}")
async def delete_handover(
    handover_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    await _service(session, today).delete(principal, handover_id)
    return {"success": True, "message": "Handover deleted"}


@router.post("/{handover_id}/status")
async def change_handover_status(
    handover_id: uuid.UUID,
    body: StatusChangeRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    data = await _service(session, today).change_status(
        principal, handover_id, status=body.status, notes=body.notes
    )
    return {"success": True, "data": data, "message": f"Handover status updated to {body.status.value}"}


@router.get("/{handover_id}/history")
async def handover_history(
    handover_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    return {"success": True, "data": await _service(session, today).history(principal, handover_id)}


@router.post("/{handover_id}/progress", status_code=HTTP_201_CREATED)
async def add_progress_item(
    handover_id: uuid.UUID,
    body: ProgressCreateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    data = await _service(session, today).add_item(
        principal, handover_id, title=body.title, is_mandatory=body.is_mandatory
    )
    return {"success": True, "data": data}


@router.patch("/{handover_id}/progress/{progress_id}")
async def update_progress_item(
    handover_id: uuid.UUID,
    progress_id: uuid.UUID,
    body: ProgressUpdateRequest,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    data = await _service(session, today).update_item(
        principal,
        handover_id,
        progress_id,
        status=body.status,
        completion_notes=body.completion_notes,
    )
    return {"success": True, "data": data}


@router.delete("/{handover_id}/progress/{progress_id}")
async def delete_progress_item(
    handover_id: uuid.UUID,
    progress_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    await _service(session, today).delete_item(principal, handover_id, progress_id)
    return {"success": True, "message": "Progress item deleted"}


@router.post("/{handover_id}/submit")
async def submit_handover(
    handover_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    data = await _service(session, today).submit(principal, handover_id)
    return {"success": True, "data": data, "message": "Handover submitted for review"}


@router.get("/{handover_id}/folder")
async def get_handover_folder(
    handover_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
) -> dict[str, Any]:
    return {"success": True, "data": await _service(session, today).folder(principal, handover_id)}


@router.post("/{handover_id}/folder", status_code=HTTP_201_CREATED)
async def create_handover_folder(
    handover_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
    today: date = Depends(today_dep),
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(google_http),
) -> dict[str, Any]:
    data = await _service(session, today).create_folder(
        principal, handover_id, drive_factory=partial(build_drive_client, settings, http)
    )
    return {"success": True, "data": data}
