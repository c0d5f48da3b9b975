from __future__ import annotations

from typing import Any, Mapping

from . import logger as log
from .processor import SubmissionCoordinator, SubmitResult
from .session import SessionGuard
from .sheet_state import TabularStore
from .submission_schema import parse_submission
from .uploads import UploadGateway, UploadResult


class IntakeService:
    """The operations the form calls. Every method returns a JSON-ready dict."""

    def __init__(
        self,
        *,
        store: TabularStore,
        coordinator: SubmissionCoordinator,
        uploads: UploadGateway,
        sessions: SessionGuard,
    ):
        self._store = store
        self._coordinator = coordinator
        self._uploads = uploads
        self._sessions = sessions

    def get_sheet_names(self) -> list[str]:
        """Selectable entity sheets (the consolidated sheet is not offered)."""
        consolidated = self._coordinator.consolidated_sheet
        return [n for n in self._store.sheet_names() if n != consolidated]

    def upload_file(self, meta: Mapping[str, Any]) -> dict:
        try:
            return self._uploads.upload(
                str(meta.get("fileName") or ""),
                str(meta.get("mimeType") or ""),
                str(meta.get("data") or ""),
            ).to_dict()
        except Exception:
            log.exception("Upload handler failed")
            return UploadResult(success=False, error="File upload failed. Please try again.").to_dict()

    def submit_data(self, payload: Mapping[str, Any]) -> dict:
        try:
            sub = parse_submission(payload)
        except ValueError as e:
            log.info("Rejected malformed submission: %s", e)
            return SubmitResult(success=False, error=f"Invalid submission: {e}").to_dict()
        return self._coordinator.submit(sub).to_dict()

    def start_session(self, user: str) -> dict:
        self._sessions.start(user)
        return {"success": True}

    def check_session(self, user: str) -> dict:
        return {"expired": self._sessions.check(user)}
