from __future__ import annotations

from datetime import date

import pytest

from handover_tracker.dashboard.timeline import (
    PRIORITY_BY_CATEGORY,
    TIME_CATEGORIES,
    TimeCategory,
    categorize,
    days_until_due,
    end_of_week,
)
from handover_tracker.db.models import HandoverStatus

WEDNESDAY = date(2026, 10, 14)
SUNDAY = date(2026, 10, 18)


@pytest.mark.parametrize(
    ("due", "expected"),
    [
        (date(2026, 10, 13), TimeCategory.overdue),
        (date(2026, 10, 14), TimeCategory.today),
        (date(2026, 10, 15), TimeCategory.this_week),
        (date(2026, 10, 18), TimeCategory.this_week),
        (date(2026, 10, 19), TimeCategory.next_week),
        (date(2026, 10, 25), TimeCategory.next_week),
        (date(2026, 10, 26), TimeCategory.future),
    ],
)
def test_open_handovers_bucket_by_due_date(due: date, expected: TimeCategory) -> None:
    assert categorize(due_date=due, status=HandoverStatus.in_progress, today=WEDNESDAY) == expected


@pytest.mark.parametrize("status", [HandoverStatus.completed, HandoverStatus.cancelled])
def test_closed_handovers_are_completed_regardless_of_due_date(status: HandoverStatus) -> None:
    assert categorize(due_date=date(2020, 1, 1), status=status, today=WEDNESDAY) == TimeCategory.completed


def test_overdue_status_still_buckets_by_date() -> None:
    # The "overdue" workflow status is a label; the bucket comes from the due date.
    got = categorize(due_date=date(2026, 10, 30), status=HandoverStatus.overdue, today=WEDNESDAY)
    assert got == TimeCategory.future


def test_week_rolls_over_on_sunday() -> None:
    assert end_of_week(SUNDAY) == SUNDAY
    assert categorize(due_date=date(2026, 10, 19), status="created", today=SUNDAY) == TimeCategory.next_week
    assert categorize(due_date=date(2026, 10, 26), status="created", today=SUNDAY) == TimeCategory.future


def test_end_of_week_is_sunday() -> None:
    assert end_of_week(date(2026, 10, 12)) == SUNDAY
    assert end_of_week(WEDNESDAY) == SUNDAY


def test_days_until_due_is_signed() -> None:
    assert days_until_due(date(2026, 10, 11), WEDNESDAY) == -3
    assert days_until_due(date(2026, 10, 20), WEDNESDAY) == 6


def test_every_category_has_a_priority() -> None:
    assert set(PRIORITY_BY_CATEGORY) == set(TIME_CATEGORIES)
    assert PRIORITY_BY_CATEGORY[TimeCategory.overdue] == 1
    assert PRIORITY_BY_CATEGORY[TimeCategory.future] == 5
