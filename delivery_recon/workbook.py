"""
workbook.py: first-sheet access for delivery slips

Supports: .xlsx .xlsm (openpyxl) and .xls (xlrd)

Public API:
    grid = load_first_sheet("path/to/slip.xls")
    grid.cell(4, 1)   # zero-based row/column, None when out of range

Cells keep the reader's native types: None, str, float/int, bool, datetime.
Rows are ragged: trailing empty cells are dropped, so cell_count() varies.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

from openpyxl import load_workbook

from delivery_recon.logging_setup import get_logger
from delivery_recon.models import WorkbookError

logger = get_logger(__name__)

MODERN_WORKBOOK_FORMATS = {".xlsx", ".xlsm"}
LEGACY_WORKBOOK_FORMATS = {".xls"}
SUPPORTED_WORKBOOK_FORMATS = MODERN_WORKBOOK_FORMATS | LEGACY_WORKBOOK_FORMATS


def _trim_row(values) -> list[Any]:
    row = list(values)
    while row and (row[-1] is None or (isinstance(row[-1], str) and row[-1] == "")):
        row.pop()
    return row


class SheetGrid:
    """A read-only, zero-indexed grid of typed cells."""

    def __init__(self, rows: list[list[Any]], name: str = "") -> None:
        self._rows = [_trim_row(row) for row in rows]
        self.name = name

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def cell_count(self, row_idx: int) -> int:
        if 0 <= row_idx < len(self._rows):
            return len(self._rows[row_idx])
        return 0

    def cell(self, row_idx: int, col_idx: int | None) -> Any:
        if col_idx is None or row_idx < 0 or col_idx < 0:
            return None
        if row_idx >= len(self._rows):
            return None
        row = self._rows[row_idx]
        if col_idx >= len(row):
            return None
        return row[col_idx]

    def row(self, row_idx: int) -> list[Any]:
        if 0 <= row_idx < len(self._rows):
            return list(self._rows[row_idx])
        return []

    def iter_rows(self, start: int = 0, stop: int | None = None) -> Iterator[tuple[int, list[Any]]]:
        end = self.row_count if stop is None else min(stop, self.row_count)
        for row_idx in range(max(start, 0), end):
            yield row_idx, self._rows[row_idx]


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT LOADERS
# ══════════════════════════════════════════════════════════════════════════════

def _load_openpyxl(path: Path) -> SheetGrid:
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except Exception as exc:
        raise WorkbookError(f"Could not open workbook: {exc}") from exc

    try:
        if not workbook.worksheets:
            raise WorkbookError("Workbook has no sheets")
        sheet = workbook.worksheets[0]
        rows = [list(values) for values in sheet.iter_rows(values_only=True)]
        name = sheet.title
    except WorkbookError:
        raise
    except Exception as exc:
        raise WorkbookError(f"Could not read worksheet: {exc}") from exc
    finally:
        workbook.close()
    return SheetGrid(rows, name=name)


def _xlrd_value(xlrd, cell, datemode: int) -> Any:
    ctype = cell.ctype
    if ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
        except (xlrd.xldate.XLDateError, ValueError, OverflowError):
            return cell.value
    if ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if ctype == xlrd.XL_CELL_ERROR:
        return xlrd.error_text_from_code.get(cell.value, "#ERROR")
    return cell.value


def _load_xlrd(path: Path) -> SheetGrid:
    # .xls requires xlrd; give a clear error if missing.
    try:
        import xlrd
    except ImportError as exc:
        raise WorkbookError(".xls files require xlrd. Run: pip install xlrd") from exc

    try:
        book = xlrd.open_workbook(str(path), on_demand=True)
    except Exception as exc:
        raise WorkbookError(f"Could not open workbook: {exc}") from exc

    try:
        if book.nsheets == 0:
            raise WorkbookError("Workbook has no sheets")
        sheet = book.sheet_by_index(0)
        rows = [
            [_xlrd_value(xlrd, sheet.cell(row_idx, col_idx), book.datemode) for col_idx in range(sheet.row_len(row_idx))]
            for row_idx in range(sheet.nrows)
        ]
        name = sheet.name
    except WorkbookError:
        raise
    except Exception as exc:
        raise WorkbookError(f"Could not read worksheet: {exc}") from exc
    finally:
        book.release_resources()
    return SheetGrid(rows, name=name)


# ══════════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ══════════════════════════════════════════════════════════════════════════════

def load_first_sheet(path: "str | Path") -> SheetGrid:
    """
    Load the first worksheet of a workbook as a SheetGrid.

    Raises:
        WorkbookError  if the file is missing, has an unsupported suffix,
                       cannot be opened, or contains no worksheet.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix not in SUPPORTED_WORKBOOK_FORMATS:
        supported = ", ".join(sorted(SUPPORTED_WORKBOOK_FORMATS))
        raise WorkbookError(f"Unsupported format '{suffix or '[missing extension]'}'. Supported: {supported}")
    if not path.exists():
        raise WorkbookError(f"File not found: {path}")

    if suffix in MODERN_WORKBOOK_FORMATS:
        grid = _load_openpyxl(path)
    else:
        grid = _load_xlrd(path)
    logger.debug("Loaded sheet %r from %s (%d rows)", grid.name, path, grid.row_count)
    return grid
