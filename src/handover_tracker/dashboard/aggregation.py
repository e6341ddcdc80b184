"""
handover_tracker.dashboard.aggregation

Single-pass aggregations over dashboard rows.

Responsibilities:
- Apply dashboard filters (department, job level, status, time category, hide completed).
- Group rows by time category and derive per-status / per-department counts.
- Compute manager KPIs and the unique values that populate filter dropdowns.

Invariant: the per-category counts always sum to the number of rows aggregated.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from handover_tracker.dashboard.rows import DashboardRow, round_half_up
from handover_tracker.dashboard.timeline import TIME_CATEGORIES, TimeCategory
from handover_tracker.db.models import HandoverStatus


@dataclass(frozen=True, slots=True)
class DashboardFilters:
    department_filter: str | None = None
    role_filter: str | None = None
    status_filter: str | None = None
    time_category_filter: str | None = None
    hide_completed: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def matches(self, row: DashboardRow) -> bool:
        if self.department_filter and row["department_name"] != self.department_filter:
            return False
        if self.role_filter and row["job_level"] != self.role_filter:
            return False
        if self.status_filter and row["status"] != self.status_filter:
            return False
        if self.time_category_filter and row["time_category"] != self.time_category_filter:
            return False
        if self.hide_completed and row["time_category"] == TimeCategory.completed:
            return False
        return True


def apply_filters(rows: Iterable[DashboardRow], filters: DashboardFilters) -> list[DashboardRow]:
    return [row for row in rows if filters.matches(row)]


def group_by_time_category(rows: Iterable[DashboardRow]) -> dict[str, list[DashboardRow]]:
    grouped: dict[str, list[DashboardRow]] = {category.value: [] for category in TIME_CATEGORIES}
    for row in rows:
        grouped[row["time_category"]].append(row)
    return grouped


def _unique(values: Iterable[str | None]) -> list[str]:
    # dict preserves first-seen order.
    return list(dict.fromkeys(v for v in values if v))


def filter_options(rows: Sequence[DashboardRow]) -> dict[str, list[str]]:
    return {
        "departments": _unique(r["department_name"] for r in rows),
        "roles": _unique(r["job_level"] for r in rows),
        "statuses": _unique(r["status"] for r in rows),
        "plants": _unique(r["plant_name"] for r in rows),
        "countries": _unique(r["country"] for r in rows),
    }


def average_completion(rows: Sequence[DashboardRow]) -> int:
    if not rows:
        return 0
    return round_half_up(sum(r["completion_percentage"] or 0 for r in rows) / len(rows))


def compute_stats(
    rows: Sequence[DashboardRow],
    grouped: dict[str, list[DashboardRow]] | None = None,
) -> dict[str, Any]:
    grouped = grouped if grouped is not None else group_by_time_category(rows)
    return {
        "total_handovers": len(rows),
        "by_status": dict(Counter(r["status"] for r in rows)),
        "by_time_category": {category: len(items) for category, items in grouped.items()},
        "by_department": dict(Counter(r["department_name"] for r in rows if r["department_name"])),
        "average_completion": average_completion(rows),
    }


def compute_kpis(rows: Sequence[DashboardRow]) -> dict[str, Any]:
    by_category = Counter(r["time_category"] for r in rows)
    open_rows = [r for r in rows if r["time_category"] != TimeCategory.completed]
    return {
        "total_handovers": len(rows),
        "overdue_count": by_category[TimeCategory.overdue],
        "today_count": by_category[TimeCategory.today],
        "this_week_count": by_category[TimeCategory.this_week],
        "next_week_count": by_category[TimeCategory.next_week],
        "pending_review_count": sum(1 for r in rows if r["status"] == HandoverStatus.pending_review),
        "completed_count": by_category[TimeCategory.completed],
        "average_completion_percentage": average_completion(rows),
        "total_departments": len(_unique(r["department_name"] for r in rows)),
        "active_employees": len(_unique(r["leaving_employee_email"].lower() for r in open_rows)),
    }


# --- Module Notes -----------------------------------------------------------
# StrEnum members compare equal to their string values, so rows can hold plain
# strings (they are serialized straight to JSON) while comparisons use enums.
