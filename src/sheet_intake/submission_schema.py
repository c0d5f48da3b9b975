from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

ROW_COL_COUNT = 11  # fixed positional output columns
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class RowCols:
    TIMESTAMP = 0
    EMAIL = 1
    SHEET = 2
    NOTE = 3
    START_DATE = 4
    END_DATE = 5
    CHECKBOX_LABEL = 6
    FILE1 = 7
    FILE2 = 8
    FILE3 = 9
    DATE = 10


def normalize_cell(v: Any) -> str:
    """Coerce to string and trim whitespace; None becomes empty string."""
    if v is None:
        return ""
    if isinstance(v, (date, datetime)):
        return v.isoformat()
    return str(v).strip()


def normalize_row(row: Sequence[Any]) -> list[str]:
    """Normalize all values in a row (trim-by-default)."""
    return [normalize_cell(v) for v in row]


@dataclass(frozen=True)
class Entry:
    checkbox_label: str
    file1: Optional[str] = None
    file2: Optional[str] = None
    file3: Optional[str] = None
    date: Optional[str] = None

    @property
    def files(self) -> tuple[Optional[str], Optional[str], Optional[str]]:
        return (self.file1, self.file2, self.file3)


@dataclass(frozen=True)
class Submission:
    email: str
    selected_sheet: str
    note: str = ""
    start_date: str = ""
    end_date: str = ""
    send_copy: bool = False
    entries: tuple[Entry, ...] = field(default_factory=tuple)


def _as_bool(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in ("1", "true", "yes", "on")
    return bool(v)


def _optional(v: Any) -> Optional[str]:
    s = normalize_cell(v)
    return s or None


def parse_entry(raw: Mapping[str, Any]) -> Entry:
    return Entry(
        checkbox_label=normalize_cell(raw.get("checkboxLabel")),
        file1=_optional(raw.get("file1")),
        file2=_optional(raw.get("file2")),
        file3=_optional(raw.get("file3")),
        date=_optional(raw.get("date")),
    )


def parse_submission(payload: Mapping[str, Any]) -> Submission:
    """Parse the form's JSON payload (camelCase keys) into a Submission.

    Raises ValueError when the payload has no email, no sheet, or no entries.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("Submission payload must be an object")

    raw_entries = payload.get("entries") or []
    if not isinstance(raw_entries, Sequence) or isinstance(raw_entries, str):
        raise ValueError("entries must be a list")

    sub = Submission(
        email=normalize_cell(payload.get("email")),
        selected_sheet=normalize_cell(payload.get("selectedSheet")),
        note=normalize_cell(payload.get("note")),
        start_date=normalize_cell(payload.get("startDate")),
        end_date=normalize_cell(payload.get("endDate")),
        send_copy=_as_bool(payload.get("sendCopy")),
        entries=tuple(parse_entry(e) for e in raw_entries if isinstance(e, Mapping)),
    )

    if not sub.email:
        raise ValueError("email is required")
    if not sub.selected_sheet:
        raise ValueError("selectedSheet is required")
    if not sub.entries:
        raise ValueError("at least one entry is required")
    return sub


def format_timestamp(ts: datetime) -> str:
    return ts.strftime(TIMESTAMP_FORMAT)


def build_rows(sub: Submission, timestamp: datetime) -> list[list[str]]:
    """One 11-cell row per entry; every row shares the same timestamp and header fields."""
    ts = format_timestamp(timestamp)
    rows: list[list[str]] = []
    for entry in sub.entries:
        row = [""] * ROW_COL_COUNT
        row[RowCols.TIMESTAMP] = ts
        row[RowCols.EMAIL] = sub.email
        row[RowCols.SHEET] = sub.selected_sheet
        row[RowCols.NOTE] = sub.note
        row[RowCols.START_DATE] = sub.start_date
        row[RowCols.END_DATE] = sub.end_date
        row[RowCols.CHECKBOX_LABEL] = entry.checkbox_label
        row[RowCols.FILE1] = entry.file1 or ""
        row[RowCols.FILE2] = entry.file2 or ""
        row[RowCols.FILE3] = entry.file3 or ""
        row[RowCols.DATE] = entry.date or ""
        rows.append(normalize_row(row))
    return rows
