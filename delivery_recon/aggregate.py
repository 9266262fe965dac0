from __future__ import annotations

from datetime import datetime
from typing import Iterable

from delivery_recon.cells import ACCEPTED_DATE_FORMATS
from delivery_recon.models import Record, SummaryRow

UNKNOWN_MONTH = "unknown"
YEAR_MONTH_FORMATS = ACCEPTED_DATE_FORMATS + ("%Y-%m-%d %H:%M:%S",)

CustomerMonthKey = tuple[str, str]


def summarize(records: Iterable[Record]) -> list[SummaryRow]:
    """Fold records into one SummaryRow per (product, spec, unit).

    Rows come back by total amount, largest first; equal amounts keep the
    order in which their key was first seen.
    """
    rows: dict[tuple[str, str, str], SummaryRow] = {}
    for record in records:
        key = (record.product_name, record.spec, record.unit)
        row = rows.get(key)
        if row is None:
            row = rows[key] = SummaryRow(*key)
        row.quantity += record.quantity
        row.amount += record.amount
        if record.customer and record.customer not in row.customers:
            row.customers.append(record.customer)

    for row in rows.values():
        row.average_price = round(row.amount / row.quantity, 2) if row.quantity > 0 else 0.0

    return sorted(rows.values(), key=lambda row: row.amount, reverse=True)


def year_month_of(date_text: str) -> str:
    """Return "YYYY-MM" for a record date, a best-effort prefix, or "unknown"."""
    candidate = date_text.strip()
    for fmt in YEAR_MONTH_FORMATS:
        try:
            parsed = datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        return f"{parsed.year:04d}-{parsed.month:02d}"

    first = candidate.find("-")
    if first != -1:
        second = candidate.find("-", first + 1)
        if second != -1:
            return candidate[:second]
    return UNKNOWN_MONTH


def group_by_customer_month(records: Iterable[Record]) -> dict[CustomerMonthKey, list[Record]]:
    groups: dict[CustomerMonthKey, list[Record]] = {}
    for record in records:
        groups.setdefault((record.customer, year_month_of(record.date)), []).append(record)
    return groups


def format_year_month(year_month: str) -> str:
    """Render "2024-01" as the statement title form "2024年1月"."""
    parts = year_month.split("-")
    if len(parts) == 2 and parts[0].isdigit() and parts[1].isdigit():
        return f"{int(parts[0])}年{int(parts[1])}月"
    return year_month
