"""
handover_tracker.dashboard.timeline

Due-date bucketing for dashboard rows.
"""

from __future__ import annotations

import enum
from datetime import date, timedelta

from handover_tracker.db.models import CLOSED_STATUSES, HandoverStatus


class TimeCategory(enum.StrEnum):
    overdue = "overdue"
    today = "today"
    this_week = "this_week"
    next_week = "next_week"
    future = "future"
    completed = "completed"


# Display order used for grouped output and counts.
TIME_CATEGORIES: tuple[TimeCategory, ...] = tuple(TimeCategory)

PRIORITY_BY_CATEGORY: dict[TimeCategory, int] = {
    TimeCategory.overdue: 1,
    TimeCategory.today: 2,
    TimeCategory.this_week: 3,
    TimeCategory.next_week: 4,
    TimeCategory.future: 5,
    TimeCategory.completed: 5,
}


def end_of_week(day: date) -> date:
    """Sunday closing the ISO week (Monday start) that contains `day`."""
    return day + timedelta(days=6 - day.weekday())


def days_until_due(due_date: date, today: date) -> int:
    return (due_date - today).days


def categorize(*, due_date: date, status: HandoverStatus | str, today: date) -> TimeCategory:
    if HandoverStatus(status) in CLOSED_STATUSES:
        return TimeCategory.completed

    if due_date < today:
        return TimeCategory.overdue
    if due_date == today:
        return TimeCategory.today

    this_week_end = end_of_week(today)
    if due_date <= this_week_end:
        return TimeCategory.this_week
    if due_date <= this_week_end + timedelta(days=7):
        return TimeCategory.next_week
    return TimeCategory.future
