from __future__ import annotations

from typing import Protocol, Sequence

from gspread.exceptions import WorksheetNotFound
from gspread.utils import rowcol_to_a1

from . import logger as log
from .errors import StoreWriteError, ValidationError
from .submission_schema import ROW_COL_COUNT


class Table(Protocol):
    title: str

    def last_row_index(self) -> int: ...

    def read_range(self, row1: int, col1: int, row2: int, col2: int) -> list[list[str]]: ...

    def write_range(self, row: int, col: int, rows: Sequence[Sequence[str]]) -> None: ...


class TabularStore(Protocol):
    def get_by_name(self, name: str) -> Table: ...

    def sheet_names(self) -> list[str]: ...


class GspreadTable:
    """Row/column addressed view over a gspread Worksheet (1-based, like the Sheets UI)."""

    def __init__(self, ws):
        self._ws = ws
        self.title = ws.title

    def last_row_index(self) -> int:
        # The values API drops trailing empty rows, so the length is the last written row.
        return len(self._ws.get_all_values())

    def read_range(self, row1: int, col1: int, row2: int, col2: int) -> list[list[str]]:
        a1 = f"{rowcol_to_a1(row1, col1)}:{rowcol_to_a1(row2, col2)}"
        values = self._ws.get(a1)
        width = col2 - col1 + 1
        out = [list(r) + [""] * (width - len(r)) for r in values]
        while len(out) < row2 - row1 + 1:
            out.append([""] * width)
        return out

    def write_range(self, row: int, col: int, rows: Sequence[Sequence[str]]) -> None:
        if not rows:
            return
        last_row = row + len(rows) - 1
        last_col = col + max(len(r) for r in rows) - 1
        if last_row > self._ws.row_count:
            self._ws.add_rows(last_row - self._ws.row_count)
        a1 = f"{rowcol_to_a1(row, col)}:{rowcol_to_a1(last_row, last_col)}"
        self._ws.update(
            range_name=a1, values=[list(r) for r in rows], value_input_option="RAW"
        )


class GspreadStore:
    """Tables addressed by worksheet title inside one gspread Spreadsheet."""

    def __init__(self, spreadsheet):
        self._ss = spreadsheet

    def get_by_name(self, name: str) -> GspreadTable:
        try:
            ws = self._ss.worksheet(name)
        except WorksheetNotFound as e:
            raise ValidationError(f"Sheet '{name}' not found.") from e
        return GspreadTable(ws)

    def sheet_names(self) -> list[str]:
        return [ws.title for ws in self._ss.worksheets()]


def _is_blank(row: Sequence[str]) -> bool:
    return "".join(str(c) for c in row[:ROW_COL_COUNT]).strip() == ""


def find_first_blank_row(table: Table) -> int:
    """Return the 1-based index of the first row whose first 11 columns are all blank.

    Gaps left by manual deletion are reused; with no gap the next row after the last
    written one is returned. Columns beyond the 11th are not inspected.
    """
    last_row = table.last_row_index()
    if last_row <= 0:
        return 1

    values = table.read_range(1, 1, last_row, ROW_COL_COUNT)
    for idx, row in enumerate(values, start=1):
        if _is_blank(row):
            return idx
    return last_row + 1


def find_blank_block(table: Table, count: int) -> int:
    """Return the first row that starts `count` consecutive blank rows.

    For a single row this is find_first_blank_row. A gap shorter than the batch is
    skipped so the block never runs into an occupied row.
    """
    if count <= 1:
        return find_first_blank_row(table)

    last_row = table.last_row_index()
    if last_row <= 0:
        return 1

    values = table.read_range(1, 1, last_row, ROW_COL_COUNT)
    run_start = None
    for idx, row in enumerate(values, start=1):
        if not _is_blank(row):
            run_start = None
            continue
        if run_start is None:
            run_start = idx
        if idx - run_start + 1 >= count:
            return run_start
    # a trailing gap continues into the empty rows past the last written one
    return run_start if run_start is not None else last_row + 1


def append_rows(
    primary: Table, consolidated: Table, rows: Sequence[Sequence[str]]
) -> tuple[int, int]:
    """Write `rows` as one bulk block into each table at its own first free block.

    Returns (primary_start_row, consolidated_start_row). There is no rollback: if the
    consolidated write fails the primary rows stay written.
    """
    if not rows:
        raise ValueError("rows must not be empty")

    try:
        start_row = find_blank_block(primary, len(rows))
        conso_row = find_blank_block(consolidated, len(rows))
    except Exception as e:
        raise StoreWriteError(f"Unable to read target tables: {e}") from e

    log.info(
        "Appending rows: count=%s primary=%s start_row=%s consolidated=%s start_row=%s",
        len(rows),
        primary.title,
        start_row,
        consolidated.title,
        conso_row,
    )

    try:
        primary.write_range(start_row, 1, rows)
    except Exception as e:
        raise StoreWriteError(f"Write to '{primary.title}' failed: {e}") from e

    try:
        consolidated.write_range(conso_row, 1, rows)
    except Exception as e:
        log.error(
            "Consolidated write failed after primary write: primary=%s start_row=%s count=%s",
            primary.title,
            start_row,
            len(rows),
        )
        raise StoreWriteError(
            f"Write to '{consolidated.title}' failed after '{primary.title}' was updated: {e}"
        ) from e

    return start_row, conso_row
