from __future__ import annotations

import io
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from googleapiclient.http import MediaIoBaseUpload

from . import logger as log

_DRIVE_ID_RE = re.compile(r"[-\w]{25,}")


@dataclass(frozen=True)
class StoredFile:
    file_id: str
    name: str
    url: str


class BlobStore(Protocol):
    def create_file(self, content: bytes, mime_type: str, name: str) -> StoredFile: ...

    def get_file(self, file_id: str) -> StoredFile: ...


def extract_drive_file_id(url_or_id: str) -> Optional[str]:
    """Extract a Drive file id from a URL or return the id if already provided."""
    if not url_or_id:
        return None
    m = _DRIVE_ID_RE.search(url_or_id)
    return m.group(0) if m else None


def upload_new_file(
    drive, *, parent_folder_id: str, filename: str, content: bytes, mime_type: str
) -> dict:
    media = MediaIoBaseUpload(io.BytesIO(content), mimetype=mime_type, resumable=False)
    created = (
        drive.files()
        .create(
            body={"name": filename, "parents": [parent_folder_id]},
            media_body=media,
            fields="id,name,webViewLink",
            supportsAllDrives=True,
        )
        .execute()
    )
    return created


def get_file_metadata(drive, file_id: str) -> dict:
    return (
        drive.files()
        .get(fileId=file_id, fields="id,name,webViewLink", supportsAllDrives=True)
        .execute()
    )


def _view_url(meta: dict) -> str:
    return meta.get("webViewLink") or f"https://drive.google.com/file/d/{meta['id']}/view"


class DriveBlobStore:
    """Blob store backed by one Drive folder (Drive v3 resource from googleapiclient)."""

    def __init__(self, drive, folder_id: str):
        self._drive = drive
        self.folder_id = folder_id

    def create_file(self, content: bytes, mime_type: str, name: str) -> StoredFile:
        created = upload_new_file(
            self._drive,
            parent_folder_id=self.folder_id,
            filename=name,
            content=content,
            mime_type=mime_type,
        )
        log.info(
            "Uploaded file: name=%s file_id=%s folder_id=%s bytes=%s",
            created.get("name", name),
            created["id"],
            self.folder_id,
            len(content),
        )
        return StoredFile(
            file_id=created["id"], name=created.get("name", name), url=_view_url(created)
        )

    def get_file(self, file_id: str) -> StoredFile:
        meta = get_file_metadata(self._drive, file_id)
        return StoredFile(file_id=meta["id"], name=meta["name"], url=_view_url(meta))
