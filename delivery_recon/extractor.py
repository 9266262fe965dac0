from __future__ import annotations

from pathlib import Path
from typing import Any

from delivery_recon.cells import number_of, text_of
from delivery_recon.config import DEFAULT_SETTINGS, EngineSettings
from delivery_recon.header import ColumnMap, locate_header
from delivery_recon.keywords import QUOTE_CHARS, is_totals_label
from delivery_recon.logging_setup import get_logger
from delivery_recon.metadata import SlipMetadata, extract_metadata, inline_order_no
from delivery_recon.models import ExtractionError, Record, WorkbookError
from delivery_recon.workbook import SheetGrid, load_first_sheet

logger = get_logger(__name__)


def product_name_of(value: Any) -> str:
    text = text_of(value).replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    for quote in QUOTE_CHARS:
        text = text.replace(quote, "")
    return text.strip()


def _amount_of(sheet: SheetGrid, row_idx: int, col_idx: int | None) -> float:
    number = number_of(sheet.cell(row_idx, col_idx))
    return 0.0 if number is None else number


def resync_order_no(values: list[Any], current: str) -> str:
    """Pick up a purchase-order number written inside the item table.

    A value found in the row replaces ``current`` only when ``current`` is
    empty or already equal; a conflicting value never displaces the first one.
    """
    for value in values:
        candidate = inline_order_no(text_of(value))
        if not candidate:
            continue
        if not current or current == candidate:
            current = candidate
        else:
            logger.debug("Ignoring conflicting order number %r (keeping %r)", candidate, current)
    return current


def extract_records(
    sheet: SheetGrid,
    source_file: str,
    customer_type: str | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
    *,
    columns: ColumnMap | None = None,
    metadata: SlipMetadata | None = None,
) -> list[Record]:
    """Walk the item rows of a slip and return one Record per qualifying row.

    A row qualifies when it has a non-empty product name and a parseable
    quantity. The walk stops at the totals row.
    """
    columns = columns or locate_header(sheet, settings)
    metadata = metadata or extract_metadata(sheet, settings)
    customer_type = customer_type or settings.default_customer_type
    order_no = metadata.order_no

    records: list[Record] = []
    for row_idx, values in sheet.iter_rows(columns.data_start_row):
        if is_totals_label(text_of(sheet.cell(row_idx, 0))):
            logger.debug("Totals row at %d in %s", row_idx, source_file)
            break

        order_no = resync_order_no(values, order_no)

        product_name = product_name_of(sheet.cell(row_idx, columns.product_name))
        if not product_name:
            continue
        quantity = number_of(sheet.cell(row_idx, columns.quantity))
        if quantity is None:
            continue

        row_order_no = text_of(sheet.cell(row_idx, columns.order_no)) or order_no
        records.append(
            Record(
                product_name=product_name,
                quantity=quantity,
                spec=text_of(sheet.cell(row_idx, columns.spec)),
                unit=text_of(sheet.cell(row_idx, columns.unit)),
                unit_price=_amount_of(sheet, row_idx, columns.unit_price),
                amount=_amount_of(sheet, row_idx, columns.amount),
                customer=metadata.customer,
                date=metadata.date,
                delivery_order_no=metadata.delivery_order_no,
                order_no=row_order_no,
                source_file=source_file,
                customer_type=customer_type,
            )
        )

    logger.debug("Extracted %d records from %s", len(records), source_file)
    return records


def extract_file(
    path: "str | Path",
    customer_type: str | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[Record]:
    """Open ``path`` and extract its records.

    Raises:
        ExtractionError  if the workbook cannot be read.
    """
    try:
        sheet = load_first_sheet(path)
    except WorkbookError as exc:
        raise ExtractionError(str(path), exc) from exc
    return extract_records(sheet, str(path), customer_type, settings)
