from __future__ import annotations

from datetime import date

import pytest

from handover_tracker.google_clients.drive import handover_folder_name
from handover_tracker.google_clients.sheet_rows import parse_row, parse_rows, validate_row
from handover_tracker.google_clients.sheets import a1_range

VALID = ["Ada Lovelace", "Ada@Example.com", "eng001", "Backend Engineer", "2026-11-02", "", "", "", ""]


def _with(**changes: str) -> list[str]:
    columns = ["name", "email", "job_code", "title", "departure", "manager"]
    values = list(VALID)
    for key, value in changes.items():
        values[columns.index(key)] = value
    return values


def test_parse_row_normalizes_cells() -> None:
    row = parse_row(VALID, row_index=5)
    assert row is not None
    assert row.row_index == 5
    assert row.employee_email == "ada@example.com"
    assert row.job_code == "ENG001"
    assert row.processed is False
    assert row.handover_id is None
    assert row.departure == date(2026, 11, 2)
    assert validate_row(row) == []


def test_parse_rows_numbers_from_second_row_and_skips_blanks() -> None:
    rows = parse_rows([VALID, [], ["", "  "], VALID[:5] + ["", "TRUE", "h-1"]])
    assert [r.row_index for r in rows] == [2, 5]
    assert rows[1].processed is True
    assert rows[1].handover_id == "h-1"


def test_short_rows_are_padded() -> None:
    row = parse_row(["Only Name"], row_index=2)
    assert row is not None
    assert row.employee_email == ""
    assert "Employee email is required" in validate_row(row)


@pytest.mark.parametrize(
    ("changes", "message"),
    [
        ({"name": ""}, "Employee name is required"),
        ({"email": "not-an-email"}, "Invalid email format"),
        ({"job_code": "ENGINEER"}, "Job code must be in format like HR001, DEV002"),
        ({"job_code": "E1"}, "Job code must be in format like HR001, DEV002"),
        ({"departure": "02/11/2026"}, "Departure date must be in YYYY-MM-DD format"),
        ({"departure": "2026-02-30"}, "Invalid departure date"),
        ({"manager": "boss at example"}, "Invalid manager email format"),
    ],
)
def test_validation_messages(changes: dict[str, str], message: str) -> None:
    row = parse_row(_with(**changes), row_index=2)
    assert row is not None
    assert validate_row(row) == [message]


def test_validation_collects_every_problem() -> None:
    row = parse_row(_with(name="", email="x", departure=""), row_index=2)
    assert row is not None
    assert validate_row(row) == [
        "Employee name is required",
        "Invalid email format",
        "Departure date is required",
    ]


def test_a1_range_quotes_sheet_names() -> None:
    assert a1_range("Departing Employees", "A2:I") == "'Departing Employees'!A2:I"
    assert a1_range("Bob's sheet", "G3:H3") == "'Bob''s sheet'!G3:H3"


def test_handover_folder_name() -> None:
    assert (
        handover_folder_name("Ada Lovelace", "Backend Engineer", "2026-11-02")
        == "Ada Lovelace - Backend Engineer - Handover - 2026-11-02"
    )
    assert handover_folder_name("Ada Lovelace", "") == "Ada Lovelace - Handover"
