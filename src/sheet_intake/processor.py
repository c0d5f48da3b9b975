from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Optional

from . import logger as log
from .config import DEFAULT_CONSOLIDATED_SHEET, DEFAULT_LOCK_TIMEOUT_SECONDS
from .errors import LockTimeoutError, NotificationError, StoreWriteError, ValidationError
from .locking import LockProvider
from .notifications import NotificationComposer
from .sheet_state import TabularStore, append_rows
from .submission_schema import Submission, build_rows

SUCCESS_MESSAGE = "Data submitted successfully!"
COPY_FAILED_MESSAGE = (
    "Data submitted successfully, but the email copy could not be sent."
)
LOCK_TIMEOUT_MESSAGE = (
    "The system is busy and could not save your submission. "
    "Please contact the administrator."
)
STORE_FAILED_MESSAGE = (
    "A critical error occurred while saving your submission. "
    "Please contact the administrator."
)


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


class SubmissionCoordinator:
    """Serializes submissions: lock -> resolve tables -> append -> optional copy -> unlock."""

    def __init__(
        self,
        *,
        store: TabularStore,
        lock: LockProvider,
        notifier: NotificationComposer,
        consolidated_sheet: str = DEFAULT_CONSOLIDATED_SHEET,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._store = store
        self._lock = lock
        self._notifier = notifier
        self.consolidated_sheet = consolidated_sheet
        self.lock_timeout = lock_timeout
        self._clock = clock

    def submit(self, sub: Submission) -> SubmitResult:
        log.info(
            "Submission received: email=%s sheet=%s entries=%s send_copy=%s",
            sub.email,
            sub.selected_sheet,
            len(sub.entries),
            sub.send_copy,
        )
        try:
            with self._lock.hold(self.lock_timeout):
                return self._submit_locked(sub)
        except LockTimeoutError:
            log.warning("Submission rejected (lock timeout): email=%s", sub.email)
            return SubmitResult(success=False, error=LOCK_TIMEOUT_MESSAGE)
        except ValidationError as e:
            log.info("Submission rejected: email=%s reason=%s", sub.email, e)
            return SubmitResult(success=False, error=str(e))
        except StoreWriteError:
            log.exception(
                "Submission failed while writing: email=%s sheet=%s",
                sub.email,
                sub.selected_sheet,
            )
            return SubmitResult(success=False, error=STORE_FAILED_MESSAGE)
        except Exception:
            log.exception("Submission failed: email=%s", sub.email)
            return SubmitResult(success=False, error=STORE_FAILED_MESSAGE)

    def _submit_locked(self, sub: Submission) -> SubmitResult:
        if not sub.entries:
            raise ValidationError("At least one entry is required.")
        if sub.selected_sheet == self.consolidated_sheet:
            raise ValidationError(f"Sheet '{sub.selected_sheet}' cannot be selected.")

        primary = self._store.get_by_name(sub.selected_sheet)
        consolidated = self._store.get_by_name(self.consolidated_sheet)

        timestamp = self._clock()
        rows = build_rows(sub, timestamp)
        start_row, conso_row = append_rows(primary, consolidated, rows)

        log.info(
            "Submission saved: email=%s sheet=%s rows=%s start_row=%s consolidated_row=%s",
            sub.email,
            sub.selected_sheet,
            len(rows),
            start_row,
            conso_row,
        )

        if not sub.send_copy:
            return SubmitResult(success=True, message=SUCCESS_MESSAGE)

        try:
            self._notifier.send(sub, timestamp)
        except NotificationError:
            # The rows are already written; only the copy is lost.
            log.exception("Confirmation email failed: email=%s", sub.email)
            return SubmitResult(success=True, message=COPY_FAILED_MESSAGE)

        return SubmitResult(success=True, message=SUCCESS_MESSAGE)
