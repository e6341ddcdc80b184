"""
handover_tracker.dashboard.transitions

Handover status workflow.

Responsibilities:
- Define which status changes are allowed.
- Answer "what can this handover move to next" for API responses.
"""

from __future__ import annotations

from handover_tracker.db.models import HandoverStatus

S = HandoverStatus

STATUS_TRANSITIONS: dict[HandoverStatus, tuple[HandoverStatus, ...]] = {
    S.created: (S.in_progress, S.cancelled),
    S.in_progress: (S.pending_review, S.completed, S.cancelled, S.overdue),
    S.pending_review: (S.approved, S.rejected, S.in_progress),
    S.approved: (S.completed,),
    S.rejected: (S.in_progress,),
    S.completed: (),
    S.cancelled: (S.created,),
    S.overdue: (S.in_progress, S.pending_review, S.cancelled),
}


def available_transitions(current: HandoverStatus | str) -> list[HandoverStatus]:
    return list(STATUS_TRANSITIONS.get(HandoverStatus(current), ()))


def can_transition(current: HandoverStatus | str, target: HandoverStatus | str) -> bool:
    return HandoverStatus(target) in STATUS_TRANSITIONS.get(HandoverStatus(current), ())
