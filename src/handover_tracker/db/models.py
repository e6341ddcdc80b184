"""
handover_tracker.db.models

Persistence schema for handover tracking.

Responsibilities:
- Define the organization hierarchy: Organization -> Plant -> Department -> Job.
- Define templates (with items) that seed a handover's progress checklist.
- Define Handover, HandoverProgress, UserProfile records.
- Keep an append-only StatusChange trail and the Sheets sync log.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid as SAUuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from handover_tracker.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC timestamps keep SQLite and Postgres behavior identical.
    return datetime.utcnow()


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


class HandoverStatus(enum.StrEnum):
    created = "created"
    in_progress = "in_progress"
    pending_review = "pending_review"
    approved = "approved"
    rejected = "rejected"
    completed = "completed"
    cancelled = "cancelled"
    overdue = "overdue"


# Closed handovers land in the "completed" dashboard bucket.
CLOSED_STATUSES = frozenset({HandoverStatus.completed, HandoverStatus.cancelled})


class ProgressStatus(enum.StrEnum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    not_applicable = "not_applicable"
    skipped = "skipped"


class JobLevel(enum.StrEnum):
    junior = "junior"
    senior = "senior"
    manager = "manager"
    director = "director"


class TemplateStatus(enum.StrEnum):
    draft = "draft"
    approved = "approved"
    active = "active"
    archived = "archived"


class UserRole(enum.StrEnum):
    hr = "hr"
    manager = "manager"
    employee = "employee"
    admin = "admin"


class SyncStatus(enum.StrEnum):
    running = "running"
    completed = "completed"
    failed = "failed"


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    settings: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    plants: Mapped[list[Plant]] = relationship(back_populates="organization")


class Plant(Base):
    __tablename__ = "plants"

    id: Mapped[uuid.UUID] = _uuid_pk()
    organization_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    country: Mapped[str] = mapped_column(String(128), nullable=False)
    location: Mapped[str | None] = mapped_column(String(256), nullable=True)
    manager_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    organization: Mapped[Organization] = relationship(back_populates="plants")
    departments: Mapped[list[Department]] = relationship(back_populates="plant")


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = _uuid_pk()
    plant_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("plants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    manager_email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    plant: Mapped[Plant] = relationship(back_populates="departments")
    jobs: Mapped[list[Job]] = relationship(back_populates="department")


class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = _uuid_pk()
    department_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("departments.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    # HR job code as used by the departing-employees sheet, e.g. "HR001".
    code: Mapped[str | None] = mapped_column(String(16), nullable=True, unique=True)
    level: Mapped[JobLevel | None] = mapped_column(Enum(JobLevel), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    department: Mapped[Department] = relationship(back_populates="jobs")
    templates: Mapped[list[Template]] = relationship(back_populates="job")


class Template(Base):
    __tablename__ = "templates"

    id: Mapped[uuid.UUID] = _uuid_pk()
    job_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[TemplateStatus] = mapped_column(
        Enum(TemplateStatus), nullable=False, default=TemplateStatus.draft
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)

    job: Mapped[Job] = relationship(back_populates="templates")
    items: Mapped[list[TemplateItem]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateItem.sort_order",
    )


class TemplateItem(Base):
    __tablename__ = "template_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    template_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("templates.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    template: Mapped[Template] = relationship(back_populates="items")


class Handover(Base):
    __tablename__ = "handovers"

    id: Mapped[uuid.UUID] = _uuid_pk()
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("templates.id"), nullable=True, index=True
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("jobs.id"), nullable=False, index=True
    )

    leaving_employee_name: Mapped[str] = mapped_column(String(256), nullable=False)
    leaving_employee_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    incoming_employee_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    incoming_employee_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    manager_name: Mapped[str] = mapped_column(String(256), nullable=False)
    manager_email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[HandoverStatus] = mapped_column(
        Enum(HandoverStatus), nullable=False, default=HandoverStatus.created, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    drive_folder_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    drive_folder_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    job: Mapped[Job] = relationship()
    template: Mapped[Template | None] = relationship()
    progress: Mapped[list[HandoverProgress]] = relationship(
        back_populates="handover", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_handovers_employee_job", "leaving_employee_email", "job_id"),)

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATUSES


class HandoverProgress(Base):
    __tablename__ = "handover_progress"

    id: Mapped[uuid.UUID] = _uuid_pk()
    handover_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("handovers.id"), nullable=False, index=True
    )
    template_item_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("template_items.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[ProgressStatus] = mapped_column(
        Enum(ProgressStatus), nullable=False, default=ProgressStatus.pending
    )
    completion_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    handover: Mapped[Handover] = relationship(back_populates="progress")


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False, default=UserRole.employee)
    plant_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("plants.id"), nullable=True
    )
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("departments.id"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    department: Mapped[Department | None] = relationship()


class StatusChange(Base):
    __tablename__ = "status_changes"

    id: Mapped[uuid.UUID] = _uuid_pk()
    handover_id: Mapped[uuid.UUID] = mapped_column(SAUuid(as_uuid=True), nullable=False, index=True)
    from_status: Mapped[str] = mapped_column(String(32), nullable=False)
    to_status: Mapped[str] = mapped_column(String(32), nullable=False)
    actor: Mapped[str] = mapped_column(String(320), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_status_changes_handover_created", "handover_id", "created_at"),)


class SyncLog(Base):
    __tablename__ = "sheets_sync_log"

    id: Mapped[uuid.UUID] = _uuid_pk()
    status: Mapped[SyncStatus] = mapped_column(
        Enum(SyncStatus), nullable=False, default=SyncStatus.running
    )
    started_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rows_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    handovers_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_details: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


# --- Module Notes -----------------------------------------------------------
# Dashboard fields such as time_category and completion_percentage are derived at
# read time (see `handover_tracker.dashboard`) rather than stored.
