"""
tests.conftest

Shared fixtures: an app bound to an in-memory SQLite database, an in-process
HTTP client, token helpers and a seeded organisation with handovers spread
across every dashboard time bucket.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.api.app import create_app
from handover_tracker.api.deps import today_dep
from handover_tracker.auth.jwt import JwtConfig, issue_token
from handover_tracker.db.models import (
    Department,
    Handover,
    HandoverProgress,
    HandoverStatus,
    Job,
    JobLevel,
    Organization,
    Plant,
    ProgressStatus,
    Template,
    TemplateItem,
    TemplateStatus,
    UserProfile,
    UserRole,
)
from handover_tracker.settings import Settings

# A Wednesday: this week ends Sunday 2026-10-18, next week is 2026-10-19..25.
TODAY = date(2026, 10, 14)
CRON_SECRET = "test-cron-secret"
MANAGER = "boss@example.com"
OTHER_MANAGER = "cfo@example.com"


def service_account_json() -> str:
    """A throwaway service account key in the JSON shape Google issues."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    return json.dumps(
        {
            "type": "service_account",
            "client_email": "sync@handover-demo.iam.gserviceaccount.com",
            "private_key": pem,
            "token_uri": "https://oauth2.googleapis.com/token",
        }
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret="test-jwt-secret",
        cron_secret=CRON_SECRET,
    )


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    app.dependency_overrides[today_dep] = lambda: TODAY
    # httpx ASGITransport does not run the lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def session(app: FastAPI) -> AsyncIterator[AsyncSession]:
    async with app.state.sessionmaker() as s:
        yield s


@pytest.fixture
def auth(settings: Settings):
    def _headers(email: str, *roles: str) -> dict[str, str]:
        token = issue_token(
            cfg=JwtConfig.from_settings(settings),
            subject=email,
            roles=list(roles),
            ttl=timedelta(minutes=10),
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@dataclass
class Seed:
    engineering: Department
    finance: Department
    support: Department
    eng_job: Job
    fin_job: Job
    support_job: Job
    template: Template
    handovers: dict[str, Handover]

    def id(self, key: str) -> str:
        return str(self.handovers[key].id)


def make_handover(job: Job, *, key: str, due: date, status: HandoverStatus, **extra: Any) -> Handover:
    fields: dict[str, Any] = {
        "id": uuid.uuid4(),
        "job_id": job.id,
        "leaving_employee_name": f"{key.title()} Leaver",
        "leaving_employee_email": f"{key}@example.com",
        "manager_name": "Boss",
        "manager_email": "someone@example.com",
        "due_date": due,
        "status": status,
    }
    fields.update(extra)
    return Handover(**fields)


@pytest_asyncio.fixture
async def seeded(session: AsyncSession) -> Seed:
    org = Organization(name="Acme", code="ACME", settings={})
    haifa = Plant(organization=org, name="Haifa Plant", code="HFA", country="Israel")
    austin = Plant(organization=org, name="Austin Plant", code="AUS", country="USA")
    engineering = Department(plant=haifa, name="Engineering", code="ENG", manager_email=MANAGER)
    finance = Department(plant=haifa, name="Finance", code="FIN", manager_email=OTHER_MANAGER)
    support = Department(plant=austin, name="Support", code="SUP", manager_email=MANAGER)
    eng_job = Job(department=engineering, title="Backend Engineer", code="ENG001", level=JobLevel.senior)
    fin_job = Job(department=finance, title="Accountant", code="FIN001", level=JobLevel.junior)
    support_job = Job(department=support, title="Support Lead", code="SUP001", level=JobLevel.manager)
    template = Template(
        job=eng_job,
        name="Backend handover",
        status=TemplateStatus.active,
        version=1,
        items=[
            TemplateItem(title="Document services", is_mandatory=True, sort_order=1),
            TemplateItem(title="Transfer on-call", is_mandatory=True, sort_order=2),
            TemplateItem(title="Share bookmarks", is_mandatory=False, sort_order=3),
        ],
    )
    session.add_all([org, haifa, austin, engineering, finance, support, eng_job, fin_job, support_job, template])
    await session.flush()

    handovers = {
        "overdue": make_handover(
            eng_job, key="overdue", due=TODAY - timedelta(days=3), status=HandoverStatus.in_progress
        ),
        "today": make_handover(eng_job, key="today", due=TODAY, status=HandoverStatus.created),
        "week": make_handover(
            support_job, key="week", due=date(2026, 10, 17), status=HandoverStatus.pending_review
        ),
        "next": make_handover(
            eng_job, key="next", due=date(2026, 10, 20), status=HandoverStatus.in_progress
        ),
        "future": make_handover(
            support_job, key="future", due=date(2026, 11, 30), status=HandoverStatus.created
        ),
        "done": make_handover(
            eng_job,
            key="done",
            due=TODAY - timedelta(days=10),
            status=HandoverStatus.completed,
            completed_date=TODAY - timedelta(days=11),
        ),
        "cancelled": make_handover(
            support_job, key="cancelled", due=TODAY + timedelta(days=2), status=HandoverStatus.cancelled
        ),
        # In scope through handover.manager_email even though the department belongs to someone else.
        "direct": make_handover(
            fin_job,
            key="direct",
            due=TODAY + timedelta(days=40),
            status=HandoverStatus.created,
            manager_email=MANAGER,
        ),
        "finance": make_handover(
            fin_job,
            key="finance",
            due=TODAY + timedelta(days=1),
            status=HandoverStatus.in_progress,
            manager_email=OTHER_MANAGER,
        ),
    }
    session.add_all(handovers.values())
    await session.flush()

    overdue_id = handovers["overdue"].id
    session.add_all(
        [
            HandoverProgress(handover_id=overdue_id, title="a", sort_order=1, status=ProgressStatus.completed),
            HandoverProgress(handover_id=overdue_id, title="b", sort_order=2, status=ProgressStatus.completed),
            HandoverProgress(handover_id=overdue_id, title="c", sort_order=3, status=ProgressStatus.pending),
            HandoverProgress(
                handover_id=overdue_id, title="d", sort_order=4, status=ProgressStatus.not_applicable
            ),
        ]
    )
    session.add_all(
        [
            UserProfile(email=MANAGER, full_name="Bea Boss", role=UserRole.manager),
            UserProfile(
                email="dev@example.com",
                full_name="Dana Dev",
                role=UserRole.employee,
                department_id=engineering.id,
            ),
            UserProfile(
                email="agent@example.com",
                full_name="Sam Support",
                role=UserRole.employee,
                department_id=support.id,
            ),
            UserProfile(
                email="clerk@example.com",
                full_name="Fin Clerk",
                role=UserRole.employee,
                department_id=finance.id,
            ),
        ]
    )
    await session.commit()

    return Seed(
        engineering=engineering,
        finance=finance,
        support=support,
        eng_job=eng_job,
        fin_job=fin_job,
        support_job=support_job,
        template=template,
        handovers=handovers,
    )
