"""
handover_tracker.google_clients.drive

Google Drive v3 client limited to folder creation for handovers.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from handover_tracker.google_clients.auth import GoogleTokenProvider
from handover_tracker.observability.logging import get_logger

log = get_logger(__name__)

DRIVE_FILES_API = "https://www.googleapis.com/drive/v3/files"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
HANDOVER_SUBFOLDERS = ("Contacts", "Procedures", "Systems", "Documents")


@dataclass(frozen=True, slots=True)
class DriveFolder:
    id: str
    name: str
    web_view_link: str


def handover_folder_name(employee_name: str, job_title: str, departure_date: str | None = None) -> str:
    parts = [employee_name, job_title, "Handover", departure_date]
    return " - ".join(p for p in parts if p)


class DriveClient:
    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        tokens: GoogleTokenProvider,
        parent_folder_id: str | None = None,
    ) -> None:
        self._http = http
        self._tokens = tokens
        self._parent_folder_id = parent_folder_id

    async def create_folder(self, name: str, *, parent_id: str | None = None) -> DriveFolder:
        metadata: dict[str, object] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]
        r = await self._http.post(
            DRIVE_FILES_API,
            params={"fields": "id,name,webViewLink", "supportsAllDrives": "true"},
            headers=await self._tokens.headers(),
            json=metadata,
        )
        r.raise_for_status()
        body = r.json()
        return DriveFolder(
            id=body["id"],
            name=body.get("name") or name,
            web_view_link=body.get("webViewLink") or f"https://drive.google.com/drive/folders/{body['id']}",
        )

    async def create_handover_folder(
        self,
        *,
        employee_name: str,
        job_title: str,
        departure_date: str | None,
        subfolders: Sequence[str] = HANDOVER_SUBFOLDERS,
    ) -> DriveFolder:
        folder = await self.create_folder(
            handover_folder_name(employee_name, job_title, departure_date),
            parent_id=self._parent_folder_id,
        )
        for name in subfolders:
            # A missing subfolder is cosmetic; the handover folder itself is what gets linked.
            try:
                await self.create_folder(name, parent_id=folder.id)
            except httpx.HTTPError as e:
                log.warning("drive_subfolder_failed", folder_id=folder.id, subfolder=name, error=str(e))
        return folder
