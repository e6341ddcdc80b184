"""
handover_tracker.db.repositories.users

Repository for `UserProfile` entities.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.models import Department, UserProfile, UserRole


class UserProfileRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_email(self, email: str) -> UserProfile | None:
        stmt = select(UserProfile).where(func.lower(UserProfile.email) == email.lower())
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list(self, *, role: UserRole | None = None) -> list[UserProfile]:
        stmt = select(UserProfile).order_by(UserProfile.email)
        if role is not None:
            stmt = stmt.where(UserProfile.role == role)
        return list((await self._session.execute(stmt)).scalars().all())

    async def upsert(self, *, email: str, **fields: Any) -> UserProfile:
        profile = await self.get_by_email(email)
        if profile is None:
            profile = UserProfile(email=email.lower(), **fields)
            self._session.add(profile)
        else:
            for key, value in fields.items():
                setattr(profile, key, value)
        await self._session.flush()
        return profile

    async def team_for_manager(self, manager_email: str) -> list[tuple[UserProfile, Department]]:
        stmt = (
            select(UserProfile, Department)
            .join(Department, UserProfile.department_id == Department.id)
            .where(func.lower(Department.manager_email) == manager_email.lower())
            .order_by(UserProfile.full_name, UserProfile.email)
        )
        return [(u, d) for u, d in (await self._session.execute(stmt)).all()]
