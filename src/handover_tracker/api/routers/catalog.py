"""
handover_tracker.api.routers.catalog

Reference data endpoints: organizations, plants, departments, jobs and templates.

Responsibilities:
- Read endpoints for any authenticated caller.
- Write endpoints restricted to HR and admins.
- Template maintenance: edit (bumping the version), archive and duplicate.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import HTTP_201_CREATED

from handover_tracker.api.deps import db_session
from handover_tracker.auth.deps import get_principal, require_any_role
from handover_tracker.db.models import JobLevel, Template, TemplateStatus
from handover_tracker.db.repositories.organization import OrganizationRepo
from handover_tracker.db.repositories.templates import TemplateRepo
from handover_tracker.observability.logging import get_logger
from handover_tracker.services.errors import InvalidRequestError, NotFoundError

log = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])

_reader = [Depends(get_principal)]
_writer = [Depends(require_any_role("hr"))]


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class OrganizationOut(_Out):
    id: uuid.UUID
    name: str
    code: str
    settings: dict[str, Any]
    is_active: bool
    created_at: datetime


class OrganizationIn(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    code: str = Field(min_length=1, max_length=64)
    settings: dict[str, Any] = Field(default_factory=dict)


class PlantOut(_Out):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    code: str
    country: str
    location: str | None
    manager_email: str | None
    is_active: bool


class PlantIn(BaseModel):
    organization_id: uuid.UUID
    name: str = Field(min_length=1, max_length=256)
    code: str = Field(min_length=1, max_length=64)
    country: str = Field(min_length=1, max_length=128)
    location: str | None = Field(default=None, max_length=256)
    manager_email: str | None = Field(default=None, max_length=320)


class DepartmentOut(_Out):
    id: uuid.UUID
    plant_id: uuid.UUID
    name: str
    code: str
    manager_email: str | None
    is_active: bool


class DepartmentIn(BaseModel):
    plant_id: uuid.UUID
    name: str = Field(min_length=1, max_length=256)
    code: str = Field(min_length=1, max_length=64)
    manager_email: str | None = Field(default=None, max_length=320)


class JobOut(_Out):
    id: uuid.UUID
    department_id: uuid.UUID
    title: str
    code: str | None
    level: JobLevel | None
    description: str | None
    is_active: bool


class JobIn(BaseModel):
    department_id: uuid.UUID
    title: str = Field(min_length=1, max_length=256)
    code: str | None = Field(default=None, pattern=r"^[A-Za-z]{2,4}\d{3}$")
    level: JobLevel | None = None
    description: str | None = None


class TemplateItemOut(_Out):
    id: uuid.UUID
    title: str
    description: str | None
    instructions: str | None
    priority: int | None
    is_mandatory: bool
    sort_order: int


class TemplateOut(_Out):
    id: uuid.UUID
    job_id: uuid.UUID
    name: str
    description: str | None
    version: int
    status: TemplateStatus
    is_active: bool
    items: list[TemplateItemOut]


class TemplateItemIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str | None = None
    instructions: str | None = None
    priority: int | None = Field(default=None, ge=1, le=5)
    is_mandatory: bool = False


class TemplateIn(BaseModel):
    job_id: uuid.UUID
    name: str = Field(min_length=1, max_length=256)
    description: str | None = None
    status: TemplateStatus = TemplateStatus.draft
    items: list[TemplateItemIn] = Field(default_factory=list)


class TemplateUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=256)
    description: str | None = None
    status: TemplateStatus | None = None
    is_active: bool | None = None
    items: list[TemplateItemIn] | None = None


class TemplateDuplicateIn(BaseModel):
    job_id: uuid.UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=256)
    description: str | None = Field(default=None, max_length=500)


def _ok(model: type[_Out], value: Any) -> dict[str, Any]:
    if isinstance(value, list):
        data: Any = [model.model_validate(v).model_dump(mode="json") for v in value]
    else:
        data = model.model_validate(value).model_dump(mode="json")
    return {"success": True, "data": data}


@router.get("/organizations", dependencies=_reader)
async def list_organizations(session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    return _ok(OrganizationOut, await OrganizationRepo(session).list_organizations())


@router.post("/organizations", status_code=HTTP_201_CREATED, dependencies=_writer)
async def create_organization(
    body: OrganizationIn, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    org = await OrganizationRepo(session).create_organization(**body.model_dump())
    await session.commit()
    return _ok(OrganizationOut, org)


@router.get("/plants", dependencies=_reader)
async def list_plants(
    organization_id: uuid.UUID | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return _ok(PlantOut, await OrganizationRepo(session).list_plants(organization_id=organization_id))


@router.post("/plants", status_code=HTTP_201_CREATED, dependencies=_writer)
async def create_plant(body: PlantIn, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    repo = OrganizationRepo(session)
    if await repo.get_organization(body.organization_id) is None:
        raise NotFoundError("Organization not found")
    plant = await repo.create_plant(**body.model_dump())
    await session.commit()
    return _ok(PlantOut, plant)


@router.get("/departments", dependencies=_reader)
async def list_departments(
    plant_id: uuid.UUID | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return _ok(DepartmentOut, await OrganizationRepo(session).list_departments(plant_id=plant_id))


@router.post("/departments", status_code=HTTP_201_CREATED, dependencies=_writer)
async def create_department(
    body: DepartmentIn, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    repo = OrganizationRepo(session)
    if await repo.get_plant(body.plant_id) is None:
        raise NotFoundError("Plant not found")
    fields = body.model_dump()
    if fields["manager_email"]:
        fields["manager_email"] = fields["manager_email"].lower()
    department = await repo.create_department(**fields)
    await session.commit()
    return _ok(DepartmentOut, department)


@router.get("/jobs", dependencies=_reader)
async def list_jobs(
    department_id: uuid.UUID | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return _ok(JobOut, await OrganizationRepo(session).list_jobs(department_id=department_id))


@router.post("/jobs", status_code=HTTP_201_CREATED, dependencies=_writer)
async def create_job(body: JobIn, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    repo = OrganizationRepo(session)
    if await repo.get_department(body.department_id) is None:
        raise NotFoundError("Department not found")
    job = await repo.create_job(**body.model_dump())
    await session.commit()
    return _ok(JobOut, job)


@router.get("/templates", dependencies=_reader)
async def list_templates(
    job_id: uuid.UUID | None = Query(default=None),
    active_only: bool = Query(default=True),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    return _ok(TemplateOut, await TemplateRepo(session).list(job_id=job_id, active_only=active_only))


@router.post("/templates", status_code=HTTP_201_CREATED, dependencies=_writer)
async def create_template(body: TemplateIn, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    if await OrganizationRepo(session).get_job(body.job_id) is None:
        raise NotFoundError("Job not found")
    template = await TemplateRepo(session).create(
        job_id=body.job_id,
        name=body.name,
        description=body.description,
        status=body.status,
        items=[item.model_dump() for item in body.items],
    )
    await session.commit()
    return _ok(TemplateOut, template)


@router.get("/templates/{template_id}", dependencies=_reader)
async def get_template(template_id: uuid.UUID, session: AsyncSession = Depends(db_session)) -> dict[str, Any]:
    template = await TemplateRepo(session).get(template_id)
    if template is None:
        raise NotFoundError("Template not found")
    return _ok(TemplateOut, template)


async def _template_or_404(
    repo: TemplateRepo, template_id: uuid.UUID, message: str = "Template not found"
) -> Template:
    template = await repo.get(template_id)
    if template is None:
        raise NotFoundError(message)
    return template


@router.put("/templates/{template_id}", dependencies=_writer)
async def update_template(
    template_id: uuid.UUID, body: TemplateUpdateIn, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    repo = TemplateRepo(session)
    template = await _template_or_404(repo, template_id)
    changes = body.model_dump(exclude_unset=True, exclude={"items"})
    for key in ("name", "status", "is_active"):
        if key in changes and changes[key] is None:
            raise InvalidRequestError(f"{key} cannot be cleared")
    items = [item.model_dump() for item in body.items] if body.items is not None else None
    if not changes and items is None:
        raise InvalidRequestError("No fields to update")

    template = await repo.update(template, items=items, **changes)
    await session.commit()
    log.info(
        "template_updated", template_id=str(template.id), version=template.version, fields=sorted(changes)
    )
    return _ok(TemplateOut, template)


@router.delete("/templates/{template_id}", dependencies=_writer)
async def archive_template(
    template_id: uuid.UUID, session: AsyncSession = Depends(db_session)
) -> dict[str, Any]:
    repo = TemplateRepo(session)
    template = await repo.archive(await _template_or_404(repo, template_id))
    await session.commit()
    log.info("template_archived", template_id=str(template.id))
    return {**_ok(TemplateOut, template), "message": "Template archived"}


@router.post("/templates/{template_id}/duplicate", status_code=HTTP_201_CREATED, dependencies=_writer)
async def duplicate_template(
    template_id: uuid.UUID,
    body: TemplateDuplicateIn | None = None,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    body = body or TemplateDuplicateIn()
    repo = TemplateRepo(session)
    source = await _template_or_404(repo, template_id, "Source template not found")
    if body.job_id is not None and await OrganizationRepo(session).get_job(body.job_id) is None:
        raise NotFoundError("Job not found")

    template = await repo.duplicate(source, job_id=body.job_id, name=body.name, description=body.description)
    await session.commit()
    log.info("template_duplicated", source_template_id=str(source.id), template_id=str(template.id))
    return _ok(TemplateOut, template)
