"""
handover_tracker.api.routers.users

User profile endpoints.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.api.deps import db_session
from handover_tracker.auth.deps import get_principal, require_any_role
from handover_tracker.auth.models import Principal
from handover_tracker.db.models import UserProfile, UserRole
from handover_tracker.db.repositories.organization import OrganizationRepo
from handover_tracker.db.repositories.users import UserProfileRepo
from handover_tracker.services.errors import NotFoundError

router = APIRouter(prefix="/api/users", tags=["users"])


class UserProfileIn(BaseModel):
    email: str = Field(pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$", max_length=320)
    full_name: str | None = Field(default=None, max_length=256)
    role: UserRole = UserRole.employee
    plant_id: uuid.UUID | None = None
    department_id: uuid.UUID | None = None


def profile_view(profile: UserProfile) -> dict[str, Any]:
    return {
        "id": str(profile.id),
        "email": profile.email,
        "full_name": profile.full_name,
        "role": profile.role.value,
        "plant_id": str(profile.plant_id) if profile.plant_id else None,
        "department_id": str(profile.department_id) if profile.department_id else None,
        "created_at": profile.created_at.isoformat(),
        "updated_at": profile.updated_at.isoformat(),
    }


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    profile = await UserProfileRepo(session).get_by_email(principal.email)
    return {
        "success": True,
        "data": {
            "email": principal.email,
            "roles": sorted(principal.roles),
            "profile": profile_view(profile) if profile is not None else None,
        },
    }


@router.get("", dependencies=[Depends(require_any_role("hr"))])
async def list_users(
    role: UserRole | None = Query(default=None),
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    profiles = await UserProfileRepo(session).list(role=role)
    return {"success": True, "data": [profile_view(p) for p in profiles]}


@router.put("", dependencies=[Depends(require_any_role("hr"))])
async def upsert_user(
    body: UserProfileIn,
    session: AsyncSession = Depends(db_session),
) -> dict[str, Any]:
    org = OrganizationRepo(session)
    if body.plant_id is not None and await org.get_plant(body.plant_id) is None:
        raise NotFoundError("Plant not found")
    if body.department_id is not None and await org.get_department(body.department_id) is None:
        raise NotFoundError("Department not found")

    profile = await UserProfileRepo(session).upsert(
        email=body.email,
        full_name=body.full_name,
        role=body.role,
        plant_id=body.plant_id,
        department_id=body.department_id,
    )
    await session.commit()
    return {"success": True, "data": profile_view(profile)}
