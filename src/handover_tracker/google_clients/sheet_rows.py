"""
handover_tracker.google_clients.sheet_rows

Row model for the departing-employees sheet.

Responsibilities:
- Map sheet columns A..I onto a typed `EmployeeRow`.
- Validate a row before it is turned into a handover.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

# A=name, B=email, C=job code, D=job title, E=departure date, F=manager email,
# G=processed flag, H=handover id, I=notes.
SHEET_COLUMNS = (
    "employee_name",
    "employee_email",
    "job_code",
    "job_title",
    "departure_date",
    "manager_email",
    "processed",
    "handover_id",
    "notes",
)
FIRST_DATA_ROW = 2

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
JOB_CODE_RE = re.compile(r"^[A-Z]{2,4}\d{3}$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True, slots=True)
class EmployeeRow:
    row_index: int
    employee_name: str
    employee_email: str
    job_code: str
    job_title: str
    departure_date: str
    manager_email: str
    processed: bool = False
    handover_id: str | None = None
    notes: str | None = None

    @property
    def departure(self) -> date:
        return date.fromisoformat(self.departure_date)


def _cell(values: Sequence[Any], index: int) -> str:
    if index >= len(values) or values[index] is None:
        return ""
    return str(values[index]).strip()


def _is_processed(raw: Any) -> bool:
    if raw is True:
        return True
    return str(raw).strip().upper() == "TRUE"


def parse_row(values: Sequence[Any], *, row_index: int) -> EmployeeRow | None:
    """Build a row from raw cell values; fully blank rows yield None."""

    if not any(_cell(values, i) for i in range(len(SHEET_COLUMNS))):
        return None
    return EmployeeRow(
        row_index=row_index,
        employee_name=_cell(values, 0),
        employee_email=_cell(values, 1).lower(),
        job_code=_cell(values, 2).upper(),
        job_title=_cell(values, 3),
        departure_date=_cell(values, 4),
        manager_email=_cell(values, 5).lower(),
        processed=_is_processed(values[6]) if len(values) > 6 else False,
        handover_id=_cell(values, 7) or None,
        notes=_cell(values, 8) or None,
    )


def parse_rows(values: Sequence[Sequence[Any]]) -> list[EmployeeRow]:
    rows = []
    for offset, raw in enumerate(values):
        row = parse_row(raw or [], row_index=FIRST_DATA_ROW + offset)
        if row is not None:
            rows.append(row)
    return rows


def validate_row(row: EmployeeRow) -> list[str]:
    errors: list[str] = []

    if not row.employee_name:
        errors.append("Employee name is required")

    if not row.employee_email:
        errors.append("Employee email is required")
    elif not EMAIL_RE.match(row.employee_email):
        errors.append("Invalid email format")

    if not row.job_code:
        errors.append("Job code is required")
    elif not JOB_CODE_RE.match(row.job_code):
        errors.append("Job code must be in format like HR001, DEV002")

    if not row.departure_date:
        errors.append("Departure date is required")
    elif not DATE_RE.match(row.departure_date):
        errors.append("Departure date must be in YYYY-MM-DD format")
    else:
        try:
            date.fromisoformat(row.departure_date)
        except ValueError:
            errors.append("Invalid departure date")

    if row.manager_email and not EMAIL_RE.match(row.manager_email):
        errors.append("Invalid manager email format")

    return errors
