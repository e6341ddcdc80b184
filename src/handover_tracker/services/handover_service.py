"""
handover_tracker.services.handover_service

Handover lifecycle service (transaction + persistence owner).

Responsibilities:
- Enforce who may see, edit and move a handover (admin/hr, scoped managers, the employees involved).
- Create handovers from templates and maintain their progress checklist.
- Apply status transitions and append them to the status trail.
- Serve statistics, upcoming deadlines and recent activity over the caller's visible handovers.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.auth.models import Principal
from handover_tracker.dashboard.rows import completion_percentage
from handover_tracker.dashboard.statistics import compute_statistics
from handover_tracker.dashboard.timeline import categorize, days_until_due
from handover_tracker.dashboard.transitions import available_transitions, can_transition
from handover_tracker.db.models import (
    Handover,
    HandoverProgress,
    HandoverStatus,
    Job,
    ProgressStatus,
    StatusChange,
    Template,
)
from handover_tracker.db.repositories.handovers import HandoverRepo, ProgressRepo
from handover_tracker.db.repositories.organization import OrganizationRepo
from handover_tracker.db.repositories.status_changes import StatusChangeRepo
from handover_tracker.db.repositories.templates import TemplateRepo
from handover_tracker.google_clients.drive import DriveClient
from handover_tracker.observability.logging import get_logger
from handover_tracker.services.errors import (
    AccessDeniedError,
    ExternalServiceError,
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
)

log = get_logger(__name__)

# Fields a manager may change after creation; status moves through `change_status`.
EDITABLE_FIELDS = frozenset(
    {
        "incoming_employee_name",
        "incoming_employee_email",
        "manager_name",
        "manager_email",
        "start_date",
        "due_date",
        "notes",
    }
)

# Editable fields that must always carry a value.
REQUIRED_FIELDS = ("manager_name", "manager_email", "due_date")


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def handover_view(
    handover: Handover,
    job: Job,
    *,
    total_items: int,
    completed_items: int,
    today: date,
) -> dict[str, Any]:
    incoming = None
    if handover.incoming_employee_email or handover.incoming_employee_name:
        incoming = {"name": handover.incoming_employee_name, "email": handover.incoming_employee_email}
    return {
        "id": str(handover.id),
        "status": HandoverStatus(handover.status).value,
        "job": {
            "id": str(job.id),
            "title": job.title,
            "code": job.code,
            "level": job.level.value if job.level else None,
        },
        "template_id": str(handover.template_id) if handover.template_id else None,
        "leaving_employee": {
            "name": handover.leaving_employee_name,
            "email": handover.leaving_employee_email,
        },
        "incoming_employee": incoming,
        "manager": {"name": handover.manager_name, "email": handover.manager_email},
        "start_date": _iso(handover.start_date),
        "due_date": _iso(handover.due_date),
        "completed_date": _iso(handover.completed_date),
        "notes": handover.notes,
        "drive_folder_id": handover.drive_folder_id,
        "drive_folder_url": handover.drive_folder_url,
        "created_by": handover.created_by,
        "created_at": _iso(handover.created_at),
        "updated_at": _iso(handover.updated_at),
        "time_category": categorize(due_date=handover.due_date, status=handover.status, today=today).value,
        "days_until_due": days_until_due(handover.due_date, today),
        "progress": {
            "total_items": total_items,
            "completed_items": completed_items,
            "completion_percentage": completion_percentage(
                total_items=total_items, completed_items=completed_items, status=handover.status
            ),
        },
    }


def progress_view(item: HandoverProgress) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "handover_id": str(item.handover_id),
        "template_item_id": str(item.template_item_id) if item.template_item_id else None,
        "title": item.title,
        "is_mandatory": item.is_mandatory,
        "sort_order": item.sort_order,
        "status": ProgressStatus(item.status).value,
        "completion_notes": item.completion_notes,
        "completed_by": item.completed_by,
        "completed_at": _iso(item.completed_at),
        "updated_at": _iso(item.updated_at),
    }


def status_change_view(change: StatusChange) -> dict[str, Any]:
    return {
        "id": str(change.id),
        "from_status": change.from_status,
        "to_status": change.to_status,
        "actor": change.actor,
        "notes": change.notes,
        "created_at": _iso(change.created_at),
    }


def incomplete_mandatory(items: Sequence[HandoverProgress]) -> list[HandoverProgress]:
    """Mandatory items still pending or in progress; skipped counts as resolved."""
    return [
        i for i in items if i.is_mandatory and i.status in (ProgressStatus.pending, ProgressStatus.in_progress)
    ]


def progress_summary(items: Sequence[HandoverProgress], status: HandoverStatus) -> dict[str, Any]:
    by_status = Counter(ProgressStatus(i.status) for i in items)
    total = len(items) - by_status[ProgressStatus.not_applicable]
    completed = by_status[ProgressStatus.completed]
    return {
        "total_items": total,
        "completed_items": completed,
        "in_progress_items": by_status[ProgressStatus.in_progress],
        "pending_items": by_status[ProgressStatus.pending],
        "skipped_items": by_status[ProgressStatus.skipped],
        "not_applicable_items": by_status[ProgressStatus.not_applicable],
        "mandatory_remaining": len(incomplete_mandatory(items)),
        "completion_percentage": completion_percentage(
            total_items=total, completed_items=completed, status=status
        ),
    }


async def open_handover(
    session: AsyncSession,
    *,
    template: Template | None,
    created_by: str | None,
    **fields: Any,
) -> Handover:
    """
    Insert a handover and seed its checklist from the template items.
    The caller owns the transaction.
    """

    handover = await HandoverRepo(session).create(
        template_id=template.id if template is not None else None,
        created_by=created_by,
        **fields,
    )
    if template is not None:
        progress = ProgressRepo(session)
        for item in template.items:
            await progress.add(
                handover_id=handover.id,
                title=item.title,
                is_mandatory=item.is_mandatory,
                sort_order=item.sort_order,
                template_item_id=item.id,
            )
    return handover


class HandoverService:
    def __init__(self, *, session: AsyncSession, today: date | None = None) -> None:
        self._session = session
        self._today = today or date.today()

        self._handovers = HandoverRepo(session)
        self._progress = ProgressRepo(session)
        self._changes = StatusChangeRepo(session)
        self._org = OrganizationRepo(session)
        self._templates = TemplateRepo(session)

    # --- access -------------------------------------------------------------

    @staticmethod
    def _viewer(principal: Principal) -> str | None:
        return None if principal.is_privileged else principal.email

    async def _can_view(self, principal: Principal, handover: Handover) -> bool:
        if principal.is_privileged:
            return True
        if principal.email in {
            handover.leaving_employee_email.lower(),
            (handover.incoming_employee_email or "").lower(),
        }:
            return True
        return await self._handovers.is_managed_by(handover, principal.email)

    async def _can_manage(self, principal: Principal, handover: Handover) -> bool:
        if principal.is_privileged:
            return True
        if not principal.has_any_role("manager"):
            return False
        return await self._handovers.is_managed_by(handover, principal.email)

    async def _can_update_progress(self, principal: Principal, handover: Handover) -> bool:
        if handover.leaving_employee_email.lower() == principal.email:
            return True
        return await self._can_manage(principal, handover)

    async def _load(self, handover_id: uuid.UUID, *, for_update: bool = False) -> tuple[Handover, Job]:
        found = await self._handovers.get_with_job(handover_id, for_update=for_update)
        if found is None:
            raise NotFoundError("Handover not found")
        return found

    async def _load_visible(self, principal: Principal, handover_id: uuid.UUID) -> tuple[Handover, Job]:
        handover, job = await self._load(handover_id)
        if not await self._can_view(principal, handover):
            raise AccessDeniedError("Access denied")
        return handover, job

    async def _load_managed(
        self, principal: Principal, handover_id: uuid.UUID, *, for_update: bool = False
    ) -> tuple[Handover, Job]:
        handover, job = await self._load(handover_id, for_update=for_update)
        if not await self._can_manage(principal, handover):
            raise AccessDeniedError("You do not have permission to modify this handover")
        return handover, job

    @staticmethod
    def _ensure_open(handover: Handover) -> None:
        if handover.is_closed:
            raise InvalidRequestError(f"Handover is {handover.status.value} and can no longer be edited")

    async def _view(self, handover: Handover, job: Job) -> dict[str, Any]:
        total, completed = (await self._progress.counts_for([handover.id])).get(handover.id, (0, 0))
        return handover_view(
            handover, job, total_items=total, completed_items=completed, today=self._today
        )

    async def _views(self, pairs: Sequence[tuple[Handover, Job]]) -> list[dict[str, Any]]:
        counts = await self._progress.counts_for([h.id for h, _ in pairs])
        out = []
        for handover, job in pairs:
            total, completed = counts.get(handover.id, (0, 0))
            out.append(
                handover_view(
                    handover, job, total_items=total, completed_items=completed, today=self._today
                )
            )
        return out

    # --- handovers ----------------------------------------------------------

    async def page(
        self,
        principal: Principal,
        *,
        status: HandoverStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> dict[str, Any]:
        pairs, total = await self._handovers.page(
            viewer_email=self._viewer(principal), status=status, limit=limit, offset=offset
        )
        return {
            "handovers": await self._views(pairs),
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + len(pairs) < total,
            },
        }

    async def create(self, principal: Principal, *, job_id: uuid.UUID, **fields: Any) -> dict[str, Any]:
        if not (principal.is_privileged or principal.has_any_role("manager")):
            raise AccessDeniedError("Only managers, HR or admins can create handovers")

        job = await self._org.get_job(job_id)
        if job is None:
            raise NotFoundError("Job not found")

        template_id: uuid.UUID | None = fields.pop("template_id", None)
        if template_id is not None:
            template = await self._templates.get(template_id)
            if template is None:
                raise NotFoundError("Template not found")
            if template.job_id != job.id:
                raise InvalidRequestError("Template does not belong to the selected job")
        else:
            template = await self._templates.active_for_job(job.id)

        self._check_dates(fields.get("start_date"), fields["due_date"])
        handover = await open_handover(
            self._session, template=template, created_by=principal.email, job_id=job.id, **fields
        )
        await self._session.commit()
        log.info(
            "handover_created",
            handover_id=str(handover.id),
            job_id=str(job.id),
            template_id=str(template.id) if template else None,
            actor=principal.email,
        )
        return await self.detail(principal, handover.id)

    @staticmethod
    def _check_dates(start_date: date | None, due_date: date | None) -> None:
        if start_date is not None and due_date is not None and due_date < start_date:
            raise InvalidRequestError("due_date must not be before start_date")

    async def detail(self, principal: Principal, handover_id: uuid.UUID) -> dict[str, Any]:
        handover, job = await self._load_visible(principal, handover_id)
        items = await self._progress.list_for_handover(handover.id)
        history = await self._changes.list_for_handover(handover.id)
        can_manage = await self._can_manage(principal, handover)

        view = await self._view(handover, job)
        view["progress_items"] = [progress_view(i) for i in items]
        view["summary"] = progress_summary(items, handover.status)
        view["available_transitions"] = (
            [s.value for s in available_transitions(handover.status)] if can_manage else []
        )
        view["history"] = [status_change_view(c) for c in history]
        return view

    async def update(
        self, principal: Principal, handover_id: uuid.UUID, changes: dict[str, Any]
    ) -> dict[str, Any]:
        handover, _ = await self._load_managed(principal, handover_id)
        self._ensure_open(handover)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidRequestError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        for key in REQUIRED_FIELDS:
            if key in changes and changes[key] is None:
                raise InvalidRequestError(f"{key} cannot be cleared")
        self._check_dates(
            changes.get("start_date", handover.start_date),
            changes.get("due_date", handover.due_date),
        )

        for key, value in changes.items():
            setattr(handover, key, value)
        handover.updated_at = datetime.utcnow()
        await self._session.flush()
        await self._session.commit()
        log.info("handover_updated", handover_id=str(handover.id), fields=sorted(changes), actor=principal.email)
        return await self.detail(principal, handover.id)

    async def delete(self, principal: Principal, handover_id: uuid.UUID) -> None:
        handover, _ = await self._load(handover_id)
        if not principal.is_privileged:
            raise AccessDeniedError("Only HR or admins can delete handovers")
        await self._handovers.delete(handover)
        await self._session.commit()
        log.info("handover_deleted", handover_id=str(handover_id), actor=principal.email)

    async def change_status(
        self,
        principal: Principal,
        handover_id: uuid.UUID,
        *,
        status: HandoverStatus,
        notes: str | None = None,
    ) -> dict[str, Any]:
        handover, job = await self._load_managed(principal, handover_id, for_update=True)
        current = HandoverStatus(handover.status)
        if not can_transition(current, status):
            raise InvalidTransitionError(f"Cannot change status from {current.value} to {status.value}")

        await self._apply_status(handover, current, status, actor=principal.email, notes=notes)
        await self._session.commit()
        return await self._view(handover, job)

    async def _apply_status(
        self,
        handover: Handover,
        current: HandoverStatus,
        target: HandoverStatus,
        *,
        actor: str,
        notes: str | None,
    ) -> None:
        await self._handovers.set_status(handover, target, completed_on=self._today)
        await self._changes.add(
            handover_id=handover.id,
            from_status=current.value,
            to_status=target.value,
            actor=actor,
            notes=notes,
        )
        log.info(
            "handover_status_changed",
            handover_id=str(handover.id),
            from_status=current.value,
            to_status=target.value,
            actor=actor,
        )

    async def history(self, principal: Principal, handover_id: uuid.UUID) -> list[dict[str, Any]]:
        handover, _ = await self._load_visible(principal, handover_id)
        return [status_change_view(c) for c in await self._changes.list_for_handover(handover.id)]

    async def submit(self, principal: Principal, handover_id: uuid.UUID) -> dict[str, Any]:
        """
        Leaving employee hands the checklist over for review.

        Every mandatory item must be completed (or skipped) first; the error body
        lists the ones still open.
        """

        handover, job = await self._load(handover_id, for_update=True)
        if handover.leaving_employee_email.lower() != principal.email:
            raise AccessDeniedError("Only the leaving employee can submit this handover")
        self._ensure_open(handover)

        current = HandoverStatus(handover.status)
        if not can_transition(current, HandoverStatus.pending_review):
            raise InvalidTransitionError(f"Cannot submit a handover that is {current.value}")

        open_items = incomplete_mandatory(await self._progress.list_for_handover(handover.id))
        if open_items:
            raise InvalidRequestError(
                "All required tasks must be completed before submission",
                incomplete_items=[{"id": str(i.id), "title": i.title} for i in open_items],
            )

        await self._apply_status(
            handover,
            current,
            HandoverStatus.pending_review,
            actor=principal.email,
            notes="Submitted for review",
        )
        await self._session.commit()
        return await self._view(handover, job)

    # --- drive folder -------------------------------------------------------

    async def folder(self, principal: Principal, handover_id: uuid.UUID) -> dict[str, Any]:
        handover, _ = await self._load_managed(principal, handover_id)
        if not handover.drive_folder_id:
            raise NotFoundError("No Google Drive folder associated with this handover")
        return {"id": handover.drive_folder_id, "url": handover.drive_folder_url}

    async def create_folder(
        self,
        principal: Principal,
        handover_id: uuid.UUID,
        *,
        drive_factory: Callable[[], DriveClient],
    ) -> dict[str, Any]:
        handover, job = await self._load_managed(principal, handover_id, for_update=True)
        if handover.drive_folder_id:
            raise InvalidRequestError("Handover already has a Google Drive folder")

        drive = drive_factory()
        try:
            folder = await drive.create_handover_folder(
                employee_name=handover.leaving_employee_name,
                job_title=job.title,
                departure_date=handover.due_date.isoformat(),
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Failed to create Drive folder: {e}") from e

        handover.drive_folder_id = folder.id
        handover.drive_folder_url = folder.web_view_link
        handover.updated_at = datetime.utcnow()
        await self._session.flush()
        await self._session.commit()
        log.info("handover_folder_created", handover_id=str(handover.id), drive_folder_id=folder.id)
        return {"id": folder.id, "name": folder.name, "url": folder.web_view_link}

    # --- progress items -----------------------------------------------------

    async def add_item(
        self,
        principal: Principal,
        handover_id: uuid.UUID,
        *,
        title: str,
        is_mandatory: bool = False,
    ) -> dict[str, Any]:
        handover, _ = await self._load_managed(principal, handover_id)
        self._ensure_open(handover)
        item = await self._progress.add(handover_id=handover.id, title=title, is_mandatory=is_mandatory)
        await self._session.commit()
        return progress_view(item)

    async def update_item(
        self,
        principal: Principal,
        handover_id: uuid.UUID,
        progress_id: uuid.UUID,
        *,
        status: ProgressStatus | None = None,
        completion_notes: str | None = None,
    ) -> dict[str, Any]:
        handover, _ = await self._load(handover_id)
        if not await self._can_update_progress(principal, handover):
            raise AccessDeniedError("You do not have permission to update this checklist")
        self._ensure_open(handover)

        item = await self._progress.get(handover_id=handover.id, progress_id=progress_id)
        if item is None:
            raise NotFoundError("Progress item not found")

        if status is not None:
            item.status = status
            if status == ProgressStatus.completed:
                item.completed_at = datetime.utcnow()
                item.completed_by = principal.email
            else:
                item.completed_at = None
                item.completed_by = None
        if completion_notes is not None:
            item.completion_notes = completion_notes
        item.updated_at = datetime.utcnow()

        # Work starting on a fresh handover moves it into progress.
        if (
            status not in (None, ProgressStatus.pending)
            and handover.status == HandoverStatus.created
        ):
            await self._apply_status(
                handover,
                HandoverStatus.created,
                HandoverStatus.in_progress,
                actor=principal.email,
                notes=None,
            )

        await self._session.flush()
        await self._session.commit()
        return progress_view(item)

    async def delete_item(
        self, principal: Principal, handover_id: uuid.UUID, progress_id: uuid.UUID
    ) -> None:
        handover, _ = await self._load_managed(principal, handover_id)
        self._ensure_open(handover)
        item = await self._progress.get(handover_id=handover.id, progress_id=progress_id)
        if item is None:
            raise NotFoundError("Progress item not found")
        await self._progress.delete(item)
        await self._session.commit()

    # --- reporting ----------------------------------------------------------

    async def statistics(self, principal: Principal) -> dict[str, Any]:
        pairs = await self._handovers.list_visible(viewer_email=self._viewer(principal))
        return compute_statistics(pairs, today=self._today)

    async def upcoming(self, principal: Principal, *, days: int = 7) -> list[dict[str, Any]]:
        horizon = self._today + timedelta(days=days)
        pairs = await self._handovers.list_visible(viewer_email=self._viewer(principal))
        due = [(h, j) for h, j in pairs if not h.is_closed and h.due_date <= horizon]
        due.sort(key=lambda pair: pair[0].due_date)
        return await self._views(due)

    async def activity(self, principal: Principal, *, limit: int = 10) -> list[dict[str, Any]]:
        pairs = await self._handovers.list_visible(viewer_email=self._viewer(principal))
        by_id = {h.id: (h, j) for h, j in pairs}
        items = await self._progress.recently_completed(list(by_id), limit=limit)
        out = []
        for item in items:
            handover, job = by_id[item.handover_id]
            out.append(
                {
                    "handover_id": str(handover.id),
                    "handover_name": f"{handover.leaving_employee_name} - {job.title}",
                    "activity_type": "item_completed",
                    "item_title": item.title,
                    "completed_by": item.completed_by,
                    "completed_at": _iso(item.completed_at),
                    "status": ProgressStatus(item.status).value,
                }
            )
        return out
