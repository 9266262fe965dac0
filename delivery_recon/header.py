from __future__ import annotations

from dataclasses import dataclass

from delivery_recon.cells import text_of
from delivery_recon.config import DEFAULT_SETTINGS, EngineSettings
from delivery_recon.keywords import HEADER_RULES, header_family_of
from delivery_recon.logging_setup import get_logger
from delivery_recon.workbook import SheetGrid

logger = get_logger(__name__)

HEADER_FAMILIES = tuple(rule.name for rule in HEADER_RULES)


@dataclass(frozen=True)
class ColumnMap:
    """Where each item column lives, and the first row of item data.

    ``header_row`` is None when the fixed fallback layout is in use.
    """

    product_name: int | None = None
    spec: int | None = None
    quantity: int | None = None
    unit: int | None = None
    unit_price: int | None = None
    amount: int | None = None
    order_no: int | None = None
    data_start_row: int = 0
    header_row: int | None = None

    @property
    def from_header(self) -> bool:
        return self.header_row is not None

    def as_dict(self) -> dict[str, int | None]:
        return {family: getattr(self, family) for family in HEADER_FAMILIES}


def default_column_map(settings: EngineSettings = DEFAULT_SETTINGS) -> ColumnMap:
    columns = dict(settings.default_columns)
    return ColumnMap(
        product_name=columns.get("product_name"),
        spec=columns.get("spec"),
        quantity=columns.get("quantity"),
        unit=columns.get("unit"),
        data_start_row=settings.default_data_start_row,
    )


def header_columns(values: list) -> dict[str, int]:
    """Map each recognised label family in a row to its first column."""
    columns: dict[str, int] = {}
    for col_idx, value in enumerate(values):
        family = header_family_of(text_of(value))
        if family is not None and family not in columns:
            columns[family] = col_idx
    return columns


def locate_header(sheet: SheetGrid, settings: EngineSettings = DEFAULT_SETTINGS) -> ColumnMap:
    """Find the first row within the scan window that carries column labels.

    Families the header row does not name stay unmapped. Without any labelled
    row the fixed default layout applies.
    """
    for row_idx, values in sheet.iter_rows(0, settings.header_scan_rows):
        columns = header_columns(values)
        if not columns:
            continue
        logger.debug("Header row %d: %s", row_idx, columns)
        return ColumnMap(**columns, data_start_row=row_idx + 1, header_row=row_idx)

    logger.debug(
        "No header row in the first %d rows of %r; using default layout",
        settings.header_scan_rows,
        sheet.name,
    )
    return default_column_map(settings)
