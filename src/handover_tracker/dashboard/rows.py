"""
handover_tracker.dashboard.rows

Flat, JSON-ready dashboard rows.

Responsibilities:
- Define the row contract shared by the dashboard endpoint and the aggregations.
- Derive time category, priority, overdue counters and completion from stored records.
"""

from __future__ import annotations

import math
from datetime import date
from typing import TypedDict

from handover_tracker.dashboard.timeline import PRIORITY_BY_CATEGORY, TimeCategory, categorize, days_until_due
from handover_tracker.db.models import Department, Handover, HandoverStatus, Job, Plant


class DashboardRow(TypedDict):
    id: str
    leaving_employee_name: str
    leaving_employee_email: str
    incoming_employee_name: str | None
    incoming_employee_email: str | None
    manager_name: str
    manager_email: str
    job_title: str | None
    job_level: str | None
    department_name: str | None
    department_code: str | None
    plant_name: str | None
    country: str | None
    start_date: str | None
    due_date: str
    completed_date: str | None
    status: str
    is_overdue: bool
    time_category: str
    priority: int
    completion_percentage: int
    total_items: int
    completed_items: int
    days_until_due: int
    days_overdue: int
    template_name: str | None
    notes: str | None
    created_at: str | None


def round_half_up(value: float) -> int:
    # Built-in round() uses banker's rounding; dashboard figures round .5 upwards.
    return int(math.floor(value + 0.5))


def completion_percentage(*, total_items: int, completed_items: int, status: HandoverStatus | str) -> int:
    if total_items <= 0:
        return 100 if HandoverStatus(status) == HandoverStatus.completed else 0
    return round_half_up(completed_items * 100 / total_items)


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def build_row(
    *,
    handover: Handover,
    job: Job | None,
    department: Department | None,
    plant: Plant | None,
    template_name: str | None,
    total_items: int,
    completed_items: int,
    today: date,
) -> DashboardRow:
    category = categorize(due_date=handover.due_date, status=handover.status, today=today)
    until_due = days_until_due(handover.due_date, today)
    return DashboardRow(
        id=str(handover.id),
        leaving_employee_name=handover.leaving_employee_name,
        leaving_employee_email=handover.leaving_employee_email,
        incoming_employee_name=handover.incoming_employee_name,
        incoming_employee_email=handover.incoming_employee_email,
        manager_name=handover.manager_name,
        manager_email=handover.manager_email,
        job_title=job.title if job else None,
        job_level=job.level.value if job and job.level else None,
        department_name=department.name if department else None,
        department_code=department.code if department else None,
        plant_name=plant.name if plant else None,
        country=plant.country if plant else None,
        start_date=_iso(handover.start_date),
        due_date=handover.due_date.isoformat(),
        completed_date=_iso(handover.completed_date),
        status=HandoverStatus(handover.status).value,
        is_overdue=category == TimeCategory.overdue,
        time_category=category.value,
        priority=PRIORITY_BY_CATEGORY[category],
        completion_percentage=completion_percentage(
            total_items=total_items, completed_items=completed_items, status=handover.status
        ),
        total_items=total_items,
        completed_items=completed_items,
        days_until_due=until_due,
        days_overdue=max(0, -until_due) if category != TimeCategory.completed else 0,
        template_name=template_name,
        notes=handover.notes,
        created_at=_iso(handover.created_at),
    )
