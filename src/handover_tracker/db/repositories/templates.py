"""
handover_tracker.db.repositories.templates

Repository for `Template` / `TemplateItem` entities.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from handover_tracker.db.models import Template, TemplateItem, TemplateStatus


def _items(items: Sequence[dict[str, Any]]) -> list[TemplateItem]:
    return [
        TemplateItem(
            title=item["title"],
            description=item.get("description"),
            instructions=item.get("instructions"),
            priority=item.get("priority"),
            is_mandatory=bool(item.get("is_mandatory", False)),
            sort_order=item.get("sort_order") or index + 1,
        )
        for index, item in enumerate(items)
    ]


class TemplateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        job_id: uuid.UUID,
        name: str,
        description: str | None = None,
        status: TemplateStatus = TemplateStatus.draft,
        items: Sequence[dict[str, Any]] = (),
    ) -> Template:
        template = Template(
            job_id=job_id,
            name=name,
            description=description,
            status=status,
            version=1,
            is_active=True,
        )
        template.items = _items(items)
        self._session.add(template)
        await self._session.flush()
        return await self.get(template.id)  # type: ignore[return-value]

    async def get(self, template_id: uuid.UUID) -> Template | None:
        stmt = (
            select(Template)
            .where(Template.id == template_id)
            .options(selectinload(Template.items))
            .execution_options(populate_existing=True)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list(self, *, job_id: uuid.UUID | None = None, active_only: bool = True) -> list[Template]:
        stmt = select(Template).options(selectinload(Template.items)).order_by(Template.name)
        if job_id is not None:
            stmt = stmt.where(Template.job_id == job_id)
        if active_only:
            stmt = stmt.where(Template.is_active.is_(True))
        return list((await self._session.execute(stmt)).scalars().all())

    async def active_for_job(self, job_id: uuid.UUID) -> Template | None:
        # Newest active template wins when a job has several versions.
        stmt = (
            select(Template)
            .where(
                Template.job_id == job_id,
                Template.is_active.is_(True),
                Template.status == TemplateStatus.active,
            )
            .options(selectinload(Template.items))
            .order_by(desc(Template.version), desc(Template.created_at))
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def update(
        self,
        template: Template,
        *,
        items: Sequence[dict[str, Any]] | None = None,
        **fields: Any,
    ) -> Template:
        """
        Apply changes and bump the version. `items`, when given, replaces the
        whole checklist; `template` must have been loaded through `get`.
        """

        for key, value in fields.items():
            setattr(template, key, value)
        if items is not None:
            template.items = _items(items)
        template.version += 1
        await self._session.flush()
        return await self.get(template.id)  # type: ignore[return-value]

    async def archive(self, template: Template) -> Template:
        template.is_active = False
        template.status = TemplateStatus.archived
        await self._session.flush()
        return template

    async def duplicate(
        self,
        source: Template,
        *,
        job_id: uuid.UUID | None = None,
        name: str | None = None,
        description: str | None = None,
    ) -> Template:
        return await self.create(
            job_id=job_id or source.job_id,
            name=name or f"{source.name} (copy)",
            description=description if description is not None else f"Duplicate of {source.name}",
            status=TemplateStatus.draft,
            items=[
                {
                    "title": item.title,
                    "description": item.description,
                    "instructions": item.instructions,
                    "priority": item.priority,
                    "is_mandatory": item.is_mandatory,
                    "sort_order": item.sort_order,
                }
                for item in source.items
            ],
        )

