"""
handover_tracker.google_clients.sheets

Google Sheets v4 client for the departing-employees sheet.

Responsibilities:
- Read data rows (A2:I) and parse them into `EmployeeRow`s.
- Write sync outcomes back: processed flag + handover id, or an error note.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from urllib.parse import quote

import httpx

from handover_tracker.google_clients.auth import GoogleTokenProvider
from handover_tracker.google_clients.sheet_rows import EmployeeRow, parse_rows

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"


def a1_range(sheet_name: str, cells: str) -> str:
    # Sheet titles are quoted so names with spaces resolve; quotes are doubled.
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


class SheetsClient:
    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        tokens: GoogleTokenProvider,
        spreadsheet_id: str,
        sheet_name: str,
    ) -> None:
        self._http = http
        self._tokens = tokens
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name

    async def read_departing_employees(self) -> list[EmployeeRow]:
        cells = quote(a1_range(self._sheet_name, "A2:I"), safe="")
        r = await self._http.get(
            f"{SHEETS_API}/{self._spreadsheet_id}/values/{cells}",
            headers=await self._tokens.headers(),
        )
        r.raise_for_status()
        return parse_rows(r.json().get("values", []))

    async def _batch_update(self, data: list[dict[str, object]]) -> None:
        if not data:
            return
        r = await self._http.post(
            f"{SHEETS_API}/{self._spreadsheet_id}/values:batchUpdate",
            headers=await self._tokens.headers(),
            json={"valueInputOption": "RAW", "data": data},
        )
        r.raise_for_status()

    async def mark_processed(self, updates: Sequence[tuple[int, str]]) -> None:
        """`updates` holds (row_index, handover_id) pairs; fills columns G:H."""

        await self._batch_update(
            [
                {
                    "range": a1_range(self._sheet_name, f"G{row}:H{row}"),
                    "values": [["TRUE", handover_id]],
                }
                for row, handover_id in updates
            ]
        )

    async def add_error_notes(
        self,
        errors: Sequence[tuple[int, str]],
        *,
        now: datetime | None = None,
    ) -> None:
        stamp = (now or datetime.now(timezone.utc)).isoformat()
        await self._batch_update(
            [
                {
                    "range": a1_range(self._sheet_name, f"I{row}"),
                    "values": [[f"ERROR: {message} ({stamp})"]],
                }
                for row, message in errors
            ]
        )
