from __future__ import annotations

import itertools
import uuid
from datetime import date, timedelta

import pytest

from handover_tracker.dashboard.aggregation import (
    DashboardFilters,
    apply_filters,
    compute_kpis,
    compute_stats,
    filter_options,
    group_by_time_category,
)
from handover_tracker.dashboard.rows import DashboardRow, build_row, completion_percentage, round_half_up
from handover_tracker.dashboard.timeline import TIME_CATEGORIES
from handover_tracker.db.models import Department, Handover, HandoverStatus, Job, JobLevel, Plant

TODAY = date(2026, 10, 14)


def _row(
    *,
    due_in: int,
    status: HandoverStatus = HandoverStatus.in_progress,
    department: str | None = "Engineering",
    level: JobLevel | None = JobLevel.senior,
    plant: tuple[str, str] | None = ("Haifa", "Israel"),
    items: tuple[int, int] = (0, 0),
    leaver: str = "a@example.com",
) -> DashboardRow:
    handover = Handover(
        id=uuid.uuid4(),
        leaving_employee_name="Leaver",
        leaving_employee_email=leaver,
        manager_name="Boss",
        manager_email="boss@example.com",
        due_date=TODAY + timedelta(days=due_in),
        status=status,
    )
    job = Job(title="Engineer", level=level)
    dept = Department(name=department, code=department[:3].upper()) if department else None
    plant_obj = Plant(name=plant[0], country=plant[1], code="P") if plant else None
    return build_row(
        handover=handover,
        job=job,
        department=dept,
        plant=plant_obj,
        template_name=None,
        total_items=items[0],
        completed_items=items[1],
        today=TODAY,
    )


@pytest.fixture
def rows() -> list[DashboardRow]:
    return [
        _row(due_in=-2, items=(4, 1)),
        _row(due_in=0, department="Support", level=JobLevel.manager, leaver="b@example.com"),
        _row(due_in=3, status=HandoverStatus.pending_review, items=(2, 2)),
        _row(due_in=4, department=None, level=None, plant=None),
        _row(due_in=30, status=HandoverStatus.created, department="Finance", plant=("Austin", "USA")),
        _row(due_in=-10, status=HandoverStatus.completed, items=(3, 3)),
        _row(due_in=1, status=HandoverStatus.cancelled, department="Support"),
    ]


def test_grouped_counts_sum_to_total(rows: list[DashboardRow]) -> None:
    grouped = group_by_time_category(rows)
    assert list(grouped) == [c.value for c in TIME_CATEGORIES]
    assert sum(len(v) for v in grouped.values()) == len(rows)

    stats = compute_stats(rows, grouped)
    assert sum(stats["by_time_category"].values()) == stats["total_handovers"] == len(rows)
    assert stats["by_time_category"]["completed"] == 2
    assert stats["by_time_category"]["next_week"] == 0


def test_empty_rows_still_report_every_category() -> None:
    stats = compute_stats([])
    assert stats["total_handovers"] == 0
    assert set(stats["by_time_category"]) == {c.value for c in TIME_CATEGORIES}
    assert stats["average_completion"] == 0


FILTERS = [
    {"department_filter": "Engineering"},
    {"role_filter": "senior"},
    {"status_filter": "in_progress"},
    {"time_category_filter": "today"},
    {"hide_completed": True},
]


def test_each_filter_narrows(rows: list[DashboardRow]) -> None:
    for kwargs in FILTERS:
        filtered = apply_filters(rows, DashboardFilters(**kwargs))
        assert len(filtered) <= len(rows)
        assert all(r in rows for r in filtered)


def test_combined_filters_never_widen(rows: list[DashboardRow]) -> None:
    for a, b in itertools.combinations(FILTERS, 2):
        single = apply_filters(rows, DashboardFilters(**a))
        both = apply_filters(rows, DashboardFilters(**a, **b))
        assert all(r in single for r in both)


def test_filters_select_expected_rows(rows: list[DashboardRow]) -> None:
    assert len(apply_filters(rows, DashboardFilters(department_filter="Support"))) == 2
    assert len(apply_filters(rows, DashboardFilters(role_filter="manager"))) == 1
    visible = apply_filters(rows, DashboardFilters(hide_completed=True))
    assert all(r["time_category"] != "completed" for r in visible)
    assert len(visible) == 5
    assert apply_filters(rows, DashboardFilters()) == rows


def test_filter_options_are_unique_and_ordered(rows: list[DashboardRow]) -> None:
    options = filter_options(rows)
    assert options["departments"] == ["Engineering", "Support", "Finance"]
    assert options["roles"] == ["senior", "manager"]
    assert options["plants"] == ["Haifa", "Austin"]
    assert options["countries"] == ["Israel", "USA"]
    assert "completed" in options["statuses"]


def test_stats_skip_rows_without_department(rows: list[DashboardRow]) -> None:
    stats = compute_stats(rows)
    assert stats["by_department"] == {"Engineering": 3, "Support": 2, "Finance": 1}
    assert sum(stats["by_status"].values()) == len(rows)


def test_kpis(rows: list[DashboardRow]) -> None:
    kpis = compute_kpis(rows)
    assert kpis["total_handovers"] == 7
    assert kpis["overdue_count"] == 1
    assert kpis["today_count"] == 1
    assert kpis["this_week_count"] == 2
    assert kpis["completed_count"] == 2
    assert kpis["pending_review_count"] == 1
    assert kpis["total_departments"] == 3
    # Open handovers only: two distinct leavers.
    assert kpis["active_employees"] == 2


def test_row_derived_fields(rows: list[DashboardRow]) -> None:
    overdue = rows[0]
    assert overdue["time_category"] == "overdue"
    assert overdue["is_overdue"] is True
    assert overdue["priority"] == 1
    assert overdue["days_overdue"] == 2
    assert overdue["completion_percentage"] == 25

    completed = rows[5]
    assert completed["days_overdue"] == 0
    assert completed["completion_percentage"] == 100


@pytest.mark.parametrize(
    ("total", "done", "status", "expected"),
    [
        (0, 0, HandoverStatus.in_progress, 0),
        (0, 0, HandoverStatus.completed, 100),
        (3, 1, HandoverStatus.in_progress, 33),
        (3, 2, HandoverStatus.in_progress, 67),
        (8, 1, HandoverStatus.in_progress, 13),
    ],
)
def test_completion_percentage(total: int, done: int, status: HandoverStatus, expected: int) -> None:
    assert completion_percentage(total_items=total, completed_items=done, status=status) == expected


def test_round_half_up() -> None:
    assert round_half_up(62.5) == 63
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4999) == 2


def test_average_completion_rounds_half_up() -> None:
    rows = [_row(due_in=1, items=(2, 1)), _row(due_in=2, items=(4, 3))]
    assert compute_stats(rows)["average_completion"] == 63
