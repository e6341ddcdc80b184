"""
handover_tracker.dashboard.statistics

Organisation-level handover statistics.

Responsibilities:
- Overall counts per status, completion rate and average turnaround.
- Per job level counts with an approval rate.
- Month-by-month created/completed counts.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Sequence
from datetime import date
from typing import Any

from handover_tracker.dashboard.rows import round_half_up
from handover_tracker.dashboard.timeline import TimeCategory, categorize
from handover_tracker.db.models import Handover, HandoverStatus, Job

MONTHS_REPORTED = 12
UNSPECIFIED_LEVEL = "unspecified"


def _rate(part: int, whole: int) -> int:
    return round_half_up(part * 100 / whole) if whole else 0


def _turnaround_days(handover: Handover) -> int | None:
    if handover.completed_date is None:
        return None
    started = handover.start_date or handover.created_at.date()
    return (handover.completed_date - started).days


def _overall(handovers: Sequence[Handover], today: date) -> dict[str, Any]:
    by_status = Counter(HandoverStatus(h.status) for h in handovers)
    turnaround = [d for d in (_turnaround_days(h) for h in handovers) if d is not None]
    return {
        "total": len(handovers),
        "by_status": {status.value: by_status[status] for status in HandoverStatus},
        "completion_rate": _rate(by_status[HandoverStatus.completed], len(handovers)),
        "overdue": sum(
            1
            for h in handovers
            if categorize(due_date=h.due_date, status=h.status, today=today) == TimeCategory.overdue
        ),
        "avg_completion_days": round(sum(turnaround) / len(turnaround), 1) if turnaround else None,
    }


def _by_job_level(pairs: Sequence[tuple[Handover, Job]]) -> list[dict[str, Any]]:
    buckets: dict[str, list[Handover]] = defaultdict(list)
    for handover, job in pairs:
        level = job.level.value if job.level else UNSPECIFIED_LEVEL
        buckets[level].append(handover)

    out = []
    for level, items in buckets.items():
        completed = sum(1 for h in items if h.status == HandoverStatus.completed)
        approved = sum(1 for h in items if h.status == HandoverStatus.approved)
        out.append(
            {
                "level": level,
                "handover_count": len(items),
                "completed_count": completed,
                "approved_count": approved,
                # Completed handovers went through approval (or skipped straight past it).
                "approval_rate": _rate(completed + approved, len(items)),
            }
        )
    out.sort(key=lambda r: (-r["handover_count"], r["level"]))
    return out


def _monthly(handovers: Sequence[Handover]) -> list[dict[str, Any]]:
    created: Counter[str] = Counter(h.created_at.strftime("%Y-%m") for h in handovers)
    completed: Counter[str] = Counter(
        h.completed_date.strftime("%Y-%m") for h in handovers if h.completed_date is not None
    )
    months = sorted(set(created) | set(completed), reverse=True)[:MONTHS_REPORTED]
    return [{"month": m, "created": created[m], "completed": completed[m]} for m in months]


def compute_statistics(pairs: Sequence[tuple[Handover, Job]], *, today: date) -> dict[str, Any]:
    handovers = [h for h, _ in pairs]
    return {
        "overall": _overall(handovers, today),
        "by_job_level": _by_job_level(pairs),
        "monthly": _monthly(handovers),
    }
