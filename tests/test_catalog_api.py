from __future__ import annotations

import uuid

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.repositories.organization import OrganizationRepo
from tests.conftest import MANAGER, Seed

HR = "people@example.com"


@pytest.mark.asyncio
async def test_hr_builds_hierarchy(client: httpx.AsyncClient, auth) -> None:
    hr = auth(HR, "hr")

    resp = await client.post("/api/organizations", json={"name": "Globex", "code": "GLX"}, headers=hr)
    assert resp.status_code == 201, resp.text
    org_id = resp.json()["data"]["id"]

    resp = await client.post(
        "/api/plants",
        json={"organization_id": org_id, "name": "Berlin", "code": "BER", "country": "Germany"},
        headers=hr,
    )
    assert resp.status_code == 201
    plant_id = resp.json()["data"]["id"]

    resp = await client.post(
        "/api/departments",
        json={"plant_id": plant_id, "name": "Ops", "code": "OPS", "manager_email": "Ops.Lead@Example.com"},
        headers=hr,
    )
    assert resp.status_code == 201
    department = resp.json()["data"]
    assert department["manager_email"] == "ops.lead@example.com"

    resp = await client.post(
        "/api/jobs",
        json={"department_id": department["id"], "title": "SRE", "code": "OPS001", "level": "senior"},
        headers=hr,
    )
    assert resp.status_code == 201
    job_id = resp.json()["data"]["id"]

    resp = await client.post(
        "/api/templates",
        json={
            "job_id": job_id,
            "name": "SRE handover",
            "status": "active",
            "items": [{"title": "Pager rotation", "is_mandatory": True}, {"title": "Dashboards"}],
        },
        headers=hr,
    )
    assert resp.status_code == 201
    template = resp.json()["data"]
    assert [(i["title"], i["sort_order"]) for i in template["items"]] == [
        ("Pager rotation", 1),
        ("Dashboards", 2),
    ]

    resp = await client.get(f"/api/templates/{template['id']}", headers=auth("dev@example.com", "employee"))
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "active"

    resp = await client.get("/api/jobs", params={"department_id": department["id"]}, headers=hr)
    assert [j["code"] for j in resp.json()["data"]] == ["OPS001"]


@pytest.mark.asyncio
async def test_catalog_write_rules(client: httpx.AsyncClient, seeded: Seed, auth) -> None:
    resp = await client.post(
        "/api/organizations", json={"name": "X", "code": "X"}, headers=auth(MANAGER, "manager")
    )
    assert resp.status_code == 403

    resp = await client.get("/api/organizations")
    assert resp.status_code == 401

    resp = await client.post(
        "/api/plants",
        json={"organization_id": str(uuid.uuid4()), "name": "P", "code": "P", "country": "C"},
        headers=auth(HR, "hr"),
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Organization not found"

    resp = await client.post(
        "/api/organizations", json={"name": "Acme again", "code": "ACME"}, headers=auth(HR, "hr")
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "Duplicate or conflicting record"

    resp = await client.post(
        "/api/jobs",
        json={"department_id": str(seeded.engineering.id), "title": "Bad", "code": "bad-code"},
        headers=auth(HR, "hr"),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_catalog_reads(client: httpx.AsyncClient, seeded: Seed, auth) -> None:
    headers = auth("dev@example.com", "employee")

    resp = await client.get("/api/departments", headers=headers)
    assert [d["name"] for d in resp.json()["data"]] == ["Engineering", "Finance", "Support"]

    resp = await client.get("/api/templates", params={"job_id": str(seeded.eng_job.id)}, headers=headers)
    templates = resp.json()["data"]
    assert len(templates) == 1
    assert len(templates[0]["items"]) == 3

    resp = await client.get(f"/api/templates/{uuid.uuid4()}", headers=headers)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_user_profiles(client: httpx.AsyncClient, seeded: Seed, auth) -> None:
    resp = await client.get("/api/users/me", headers=auth(MANAGER, "manager"))
    me = resp.json()["data"]
    assert me["roles"] == ["manager"]
    assert me["profile"]["full_name"] == "Bea Boss"

    resp = await client.get("/api/users", params={"role": "employee"}, headers=auth(HR, "hr"))
    assert [u["email"] for u in resp.json()["data"]] == [
        "agent@example.com",
        "clerk@example.com",
        "dev@example.com",
    ]

    resp = await client.get("/api/users", headers=auth("dev@example.com", "employee"))
    assert resp.status_code == 403

    resp = await client.put(
        "/api/users",
        json={"email": "dev@example.com", "full_name": "Dana Developer", "role": "manager"},
        headers=auth(HR, "hr"),
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "manager"
    assert resp.json()["data"]["department_id"] is None

    resp = await client.put(
        "/api/users",
        json={"email": "new@example.com", "department_id": str(uuid.uuid4())},
        headers=auth(HR, "hr"),
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_job_codes_are_stored_upper_case(
    client: httpx.AsyncClient, session: AsyncSession, seeded: Seed, auth
) -> None:
    resp = await client.post(
        "/api/jobs",
        json={"department_id": str(seeded.engineering.id), "title": "Data Engineer", "code": "eng002"},
        headers=auth(HR, "hr"),
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["code"] == "ENG002"

    resp = await client.post(
        "/api/jobs",
        json={"department_id": str(seeded.engineering.id), "title": "Data Engineer II", "code": "ENG002"},
        headers=auth(HR, "hr"),
    )
    assert resp.status_code == 409

    job = await OrganizationRepo(session).get_job_by_code("Eng002")
    assert job is not None
    assert job.title == "Data Engineer"


@pytest.mark.asyncio
async def test_template_update_bumps_version(client: httpx.AsyncClient, seeded: Seed, auth) -> None:
    template_id = str(seeded.template.id)
    hr = auth(HR, "hr")

    resp = await client.put(
        f"/api/templates/{template_id}",
        json={
            "name": "Backend handover v2",
            "items": [{"title": "Rotate secrets", "is_mandatory": True}, {"title": "Archive notes"}],
        },
        headers=hr,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["name"] == "Backend handover v2"
    assert data["version"] == 2
    assert data["status"] == "active"
    assert [(i["title"], i["is_mandatory"], i["sort_order"]) for i in data["items"]] == [
        ("Rotate secrets", True, 1),
        ("Archive notes", False, 2),
    ]

    resp = await client.put(f"/api/templates/{template_id}", json={"status": "approved"}, headers=hr)
    assert resp.json()["data"]["version"] == 3
    assert len(resp.json()["data"]["items"]) == 2

    resp = await client.put(f"/api/templates/{template_id}", json={}, headers=hr)
    assert resp.status_code == 400

    resp = await client.put(f"/api/templates/{template_id}", json={"name": None}, headers=hr)
    assert resp.status_code == 400
    assert resp.json()["error"] == "name cannot be cleared"

    resp = await client.put(
        f"/api/templates/{template_id}", json={"name": "x"}, headers=auth(MANAGER, "manager")
    )
    assert resp.status_code == 403

    resp = await client.put(f"/api/templates/{uuid.uuid4()}", json={"name": "x"}, headers=hr)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Template not found"


@pytest.mark.asyncio
async def test_archived_template_stops_seeding_handovers(
    client: httpx.AsyncClient, seeded: Seed, auth
) -> None:
    template_id = str(seeded.template.id)
    hr = auth(HR, "hr")

    resp = await client.delete(f"/api/templates/{template_id}", headers=hr)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Template archived"
    assert resp.json()["data"]["is_active"] is False
    assert resp.json()["data"]["status"] == "archived"

    resp = await client.get("/api/templates", params={"job_id": str(seeded.eng_job.id)}, headers=hr)
    assert resp.json()["data"] == []
    resp = await client.get(f"/api/templates/{template_id}", headers=hr)
    assert resp.status_code == 200

    resp = await client.post(
        "/api/handovers",
        json={
            "job_id": str(seeded.eng_job.id),
            "leaving_employee_name": "Late Leaver",
            "leaving_employee_email": "late@example.com",
            "manager_name": "Bea Boss",
            "manager_email": MANAGER,
            "due_date": "2026-12-01",
        },
        headers=hr,
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["template_id"] is None
    assert resp.json()["data"]["progress_items"] == []

    resp = await client.delete(f"/api/templates/{uuid.uuid4()}", headers=hr)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_duplicate_template(client: httpx.AsyncClient, seeded: Seed, auth) -> None:
    template_id = str(seeded.template.id)
    hr = auth(HR, "hr")

    resp = await client.post(f"/api/templates/{template_id}/duplicate", headers=hr)
    assert resp.status_code == 201, resp.text
    copy = resp.json()["data"]
    assert copy["id"] != template_id
    assert copy["name"] == "Backend handover (copy)"
    assert copy["job_id"] == str(seeded.eng_job.id)
    assert (copy["status"], copy["version"], copy["is_active"]) == ("draft", 1, True)
    assert [(i["title"], i["is_mandatory"]) for i in copy["items"]] == [
        ("Document services", True),
        ("Transfer on-call", True),
        ("Share bookmarks", False),
    ]

    resp = await client.post(
        f"/api/templates/{template_id}/duplicate",
        json={"job_id": str(seeded.fin_job.id), "name": "Accounting handover"},
        headers=hr,
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["job_id"] == str(seeded.fin_job.id)
    assert resp.json()["data"]["name"] == "Accounting handover"

    resp = await client.post(
        f"/api/templates/{template_id}/duplicate", json={"job_id": str(uuid.uuid4())}, headers=hr
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "Job not found"

    resp = await client.post(f"/api/templates/{uuid.uuid4()}/duplicate", headers=hr)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Source template not found"
