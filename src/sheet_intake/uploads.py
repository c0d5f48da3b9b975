from __future__ import annotations

import base64
import binascii
from dataclasses import asdict, dataclass
from typing import Optional

from . import logger as log
from .drive_ops import BlobStore

ALLOWED_EXTENSIONS = ("pdf", "doc", "docx", "xls", "xlsx", "csv", "ppt", "pptx")


@dataclass(frozen=True)
class UploadResult:
    success: bool
    url: Optional[str] = None
    name: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


def file_extension(file_name: str) -> str:
    """Lower-cased text after the last '.', or '' when there is none."""
    if not file_name or "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[1].strip().lower()


def is_allowed_file(file_name: str) -> bool:
    return file_extension(file_name) in ALLOWED_EXTENSIONS


class UploadGateway:
    def __init__(self, blobs: BlobStore):
        self._blobs = blobs

    def upload(self, file_name: str, mime_type: str, base64_data: str) -> UploadResult:
        """Validate the extension, decode and store the file. Never raises."""
        if not is_allowed_file(file_name):
            log.info("Rejected upload: name=%s ext=%s", file_name, file_extension(file_name))
            return UploadResult(
                success=False,
                error=(
                    f"Invalid file type for '{file_name}'. "
                    f"Allowed types: {', '.join(ALLOWED_EXTENSIONS)}"
                ),
            )

        data = base64_data or ""
        if data.startswith("data:") and "," in data:
            # FileReader.readAsDataURL prefix
            data = data.split(",", 1)[1]

        try:
            content = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            log.warning("Rejected upload: name=%s (invalid base64 data)", file_name)
            return UploadResult(success=False, error="File upload failed: invalid file data.")

        try:
            stored = self._blobs.create_file(
                content, mime_type or "application/octet-stream", file_name
            )
        except Exception:
            log.exception("Upload failed: name=%s", file_name)
            return UploadResult(
                success=False, error="File upload failed. Please try again."
            )

        return UploadResult(success=True, url=stored.url, name=stored.name)
