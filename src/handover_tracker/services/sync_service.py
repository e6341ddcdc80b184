"""
handover_tracker.services.sync_service

Google Sheets -> handovers synchronization (transaction + persistence owner).

Responsibilities:
- Read the departing-employees sheet and create one handover per new, valid row.
- Record every run in `sheets_sync_log` (running -> completed / failed).
- Write row outcomes back to the sheet (processed + handover id, or an error note).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from handover_tracker.db.models import SyncStatus
from handover_tracker.db.repositories.handovers import HandoverRepo
from handover_tracker.db.repositories.organization import OrganizationRepo
from handover_tracker.db.repositories.sync_log import SyncLogRepo
from handover_tracker.db.repositories.templates import TemplateRepo
from handover_tracker.db.repositories.users import UserProfileRepo
from handover_tracker.google_clients.auth import GoogleTokenProvider, ServiceAccount
from handover_tracker.google_clients.drive import DRIVE_SCOPE, DriveClient
from handover_tracker.google_clients.sheet_rows import EmployeeRow, validate_row
from handover_tracker.google_clients.sheets import SHEETS_SCOPE, SheetsClient
from handover_tracker.observability.logging import get_logger
from handover_tracker.services.errors import SyncConfigurationError
from handover_tracker.services.handover_service import open_handover
from handover_tracker.settings import Settings

log = get_logger(__name__)

SYNC_ACTOR = "sheets-sync"


class RowRejected(Exception):
    """A sheet row that cannot become a handover; recorded, never fatal."""


@dataclass(slots=True)
class SyncOutcome:
    sync_log_id: uuid.UUID
    success: bool = True
    processed: int = 0
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    error: str | None = None

    def as_response(self) -> dict[str, Any]:
        if not self.success:
            return {"success": False, "error": self.error, "syncLogId": str(self.sync_log_id)}
        body: dict[str, Any] = {
            "success": True,
            "syncLogId": str(self.sync_log_id),
            "summary": {
                "processed": self.processed,
                "created": self.created,
                "skipped": self.skipped,
                "errors": len(self.errors),
            },
        }
        if self.errors:
            body["errors"] = list(self.errors)
        return body


def build_google_clients(
    settings: Settings, http: httpx.AsyncClient
) -> tuple[SheetsClient, DriveClient | None]:
    """
    Construct the Sheets client (required) and the Drive client (only when a
    parent folder is configured) sharing one token provider.
    """

    if not settings.google_sheets_id:
        raise SyncConfigurationError("Google Sheets id is not configured")
    account = ServiceAccount.from_json(settings.google_service_account_key)
    tokens = GoogleTokenProvider(account=account, scopes=(SHEETS_SCOPE, DRIVE_SCOPE), http=http)

    sheets = SheetsClient(
        http=http,
        tokens=tokens,
        spreadsheet_id=settings.google_sheets_id,
        sheet_name=settings.google_sheet_name,
    )
    drive = None
    if settings.google_drive_parent_folder_id:
        drive = DriveClient(
            http=http, tokens=tokens, parent_folder_id=settings.google_drive_parent_folder_id
        )
    return sheets, drive


def build_drive_client(settings: Settings, http: httpx.AsyncClient) -> DriveClient:
    if not settings.google_drive_parent_folder_id:
        raise SyncConfigurationError("Google Drive parent folder is not configured")
    account = ServiceAccount.from_json(settings.google_service_account_key)
    tokens = GoogleTokenProvider(account=account, scopes=(DRIVE_SCOPE,), http=http)
    return DriveClient(http=http, tokens=tokens, parent_folder_id=settings.google_drive_parent_folder_id)


class SheetsSyncService:
    def __init__(
        self,
        *,
        session: AsyncSession,
        sheets: SheetsClient,
        drive: DriveClient | None = None,
    ) -> None:
        self._session = session
        self._sheets = sheets
        self._drive = drive

        self._log = SyncLogRepo(session)
        self._handovers = HandoverRepo(session)
        self._org = OrganizationRepo(session)
        self._templates = TemplateRepo(session)
        self._users = UserProfileRepo(session)

    async def run(self) -> SyncOutcome:
        entry = await self._log.start()
        await self._session.commit()
        outcome = SyncOutcome(sync_log_id=entry.id)
        log.info("sheets_sync_started", sync_log_id=str(outcome.sync_log_id))

        try:
            return await self._sync(outcome)
        except Exception as e:
            log.exception("sheets_sync_crashed", sync_log_id=str(outcome.sync_log_id))
            await self._session.rollback()
            return await self._fail(outcome, f"Sync failed: {e}")

    async def _sync(self, outcome: SyncOutcome) -> SyncOutcome:
        try:
            rows = await self._sheets.read_departing_employees()
        except (httpx.HTTPError, SyncConfigurationError) as e:
            return await self._fail(outcome, f"Failed to read departing employees: {e}")

        processed_rows: list[tuple[int, str]] = []
        error_rows: list[tuple[int, str]] = []
        for row in rows:
            outcome.processed += 1
            if row.processed:
                outcome.skipped += 1
                continue
            try:
                handover_id = await self._create_from_row(row)
            except RowRejected as e:
                outcome.errors.append(f"Row {row.row_index}: {e}")
                error_rows.append((row.row_index, str(e)))
                continue
            outcome.created += 1
            processed_rows.append((row.row_index, str(handover_id)))

        try:
            await self._sheets.mark_processed(processed_rows)
            await self._sheets.add_error_notes(error_rows)
        except httpx.HTTPError as e:
            outcome.errors.append(f"Failed to update Google Sheets: {e}")
            log.warning("sheets_writeback_failed", sync_log_id=str(outcome.sync_log_id), error=str(e))

        # Row failures may have rolled the session back; reload the log entry.
        entry = await self._log.get(outcome.sync_log_id)
        await self._log.finish(
            entry,
            status=SyncStatus.completed,
            rows_processed=outcome.processed,
            handovers_created=outcome.created,
            error_details=outcome.errors,
        )
        await self._session.commit()
        log.info(
            "sheets_sync_completed",
            sync_log_id=str(outcome.sync_log_id),
            processed=outcome.processed,
            created=outcome.created,
            skipped=outcome.skipped,
            errors=len(outcome.errors),
        )
        return outcome

    async def _fail(self, outcome: SyncOutcome, message: str) -> SyncOutcome:
        outcome.success = False
        outcome.error = message
        entry = await self._log.get(outcome.sync_log_id)
        await self._log.finish(
            entry,
            status=SyncStatus.failed,
            rows_processed=outcome.processed,
            handovers_created=outcome.created,
            error_details=[*outcome.errors, message],
        )
        await self._session.commit()
        log.error("sheets_sync_failed", sync_log_id=str(outcome.sync_log_id), error=message)
        return outcome

    async def _manager_for(self, row: EmployeeRow, department_manager: str | None) -> tuple[str, str]:
        email = row.manager_email or (department_manager or "").lower()
        if not email:
            raise RowRejected("Manager email is required")
        profile = await self._users.get_by_email(email)
        name = profile.full_name if profile is not None and profile.full_name else email
        return name, email

    async def _create_from_row(self, row: EmployeeRow) -> uuid.UUID:
        problems = validate_row(row)
        if problems:
            raise RowRejected(", ".join(problems))

        job = await self._org.get_job_by_code(row.job_code)
        if job is None:
            raise RowRejected(f"Job code {row.job_code} not found")
        template = await self._templates.active_for_job(job.id)
        if template is None:
            raise RowRejected(f"No active template for job code {row.job_code}")
        if await self._handovers.find_for_employee_job(employee_email=row.employee_email, job_id=job.id):
            raise RowRejected("Handover already exists")

        department = await self._org.get_department(job.department_id)
        manager_name, manager_email = await self._manager_for(
            row, department.manager_email if department is not None else None
        )

        folder_id = folder_url = None
        if self._drive is not None:
            try:
                folder = await self._drive.create_handover_folder(
                    employee_name=row.employee_name,
                    job_title=row.job_title or job.title,
                    departure_date=row.departure_date,
                )
            except httpx.HTTPError as e:
                raise RowRejected(f"Failed to create Drive folder: {e}") from e
            folder_id, folder_url = folder.id, folder.web_view_link

        try:
            async with self._session.begin_nested():
                handover = await open_handover(
                    self._session,
                    template=template,
                    created_by=SYNC_ACTOR,
                    job_id=job.id,
                    leaving_employee_name=row.employee_name,
                    leaving_employee_email=row.employee_email,
                    manager_name=manager_name,
                    manager_email=manager_email,
                    due_date=row.departure,
                    drive_folder_id=folder_id,
                    drive_folder_url=folder_url,
                )
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            if folder_id is None:
                raise RowRejected(f"Failed to save handover: {e}") from e
            # The Drive folder already exists; name it so it can be reused or removed.
            log.warning("sheets_sync_folder_orphaned", row=row.row_index, drive_folder_id=folder_id)
            raise RowRejected(f"Failed to save handover (Drive folder {folder_id} left in place): {e}") from e

        log.info(
            "sheets_sync_handover_created",
            handover_id=str(handover.id),
            row=row.row_index,
            job_code=row.job_code,
        )
        return handover.id
