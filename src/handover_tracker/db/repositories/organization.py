"""
handover_tracker.db.repositories.organization

Repository for the organization hierarchy (organizations, plants, departments, jobs).
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.models import Department, Job, Organization, Plant


class OrganizationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _add(self, obj: Any) -> Any:
        self._session.add(obj)
        await self._session.flush()
        return obj

    async def create_organization(self, **fields: Any) -> Organization:
        return await self._add(Organization(**fields))

    async def list_organizations(self, *, active_only: bool = True) -> list[Organization]:
        stmt = select(Organization).order_by(Organization.name)
        if active_only:
            stmt = stmt.where(Organization.is_active.is_(True))
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_organization(self, organization_id: uuid.UUID) -> Organization | None:
        return await self._session.get(Organization, organization_id)

    async def create_plant(self, **fields: Any) -> Plant:
        return await self._add(Plant(**fields))

    async def list_plants(self, *, organization_id: uuid.UUID | None = None) -> list[Plant]:
        stmt = select(Plant).where(Plant.is_active.is_(True)).order_by(Plant.name)
        if organization_id is not None:
            stmt = stmt.where(Plant.organization_id == organization_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_plant(self, plant_id: uuid.UUID) -> Plant | None:
        return await self._session.get(Plant, plant_id)

    async def create_department(self, **fields: Any) -> Department:
        return await self._add(Department(**fields))

    async def list_departments(self, *, plant_id: uuid.UUID | None = None) -> list[Department]:
        stmt = select(Department).where(Department.is_active.is_(True)).order_by(Department.name)
        if plant_id is not None:
            stmt = stmt.where(Department.plant_id == plant_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_department(self, department_id: uuid.UUID) -> Department | None:
        return await self._session.get(Department, department_id)

    async def create_job(self, **fields: Any) -> Job:
        # Codes are stored upper case so lookups can use the unique index.
        if fields.get("code"):
            fields["code"] = fields["code"].strip().upper()
        return await self._add(Job(**fields))

    async def list_jobs(self, *, department_id: uuid.UUID | None = None) -> list[Job]:
        stmt = select(Job).where(Job.is_active.is_(True)).order_by(Job.title)
        if department_id is not None:
            stmt = stmt.where(Job.department_id == department_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_job(self, job_id: uuid.UUID) -> Job | None:
        return await self._session.get(Job, job_id)

    async def get_job_by_code(self, code: str) -> Job | None:
        stmt = select(Job).where(Job.code == code.strip().upper(), Job.is_active.is_(True))
        return (await self._session.execute(stmt)).scalar_one_or_none()
