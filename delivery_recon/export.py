"""Tabular export of reconciled records, summary rows and issues.

.xlsx output gets one sheet per table (Records, Summary, Issues) through the
openpyxl engine. .csv output writes the records to the given path and the
other tables next to it with _summary / _issues suffixes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from delivery_recon.models import Record, SummaryRow, ValidationIssue

RECORD_COLUMNS = [
    "product_name",
    "spec",
    "quantity",
    "unit",
    "unit_price",
    "amount",
    "customer",
    "date",
    "delivery_order_no",
    "order_no",
    "source_file",
    "customer_type",
]
SUMMARY_COLUMNS = ["product_name", "spec", "unit", "quantity", "average_price", "amount", "customers"]
ISSUE_COLUMNS = ["severity", "issue_id", "file", "message"]
EXPORT_FORMATS = {".xlsx", ".csv"}


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    return pd.DataFrame([record.to_dict() for record in records], columns=RECORD_COLUMNS)


def summary_frame(rows: Iterable[SummaryRow]) -> pd.DataFrame:
    return pd.DataFrame([row.to_dict() for row in rows], columns=SUMMARY_COLUMNS)


def issues_frame(issues: Iterable[ValidationIssue]) -> pd.DataFrame:
    return pd.DataFrame([issue.to_dict() for issue in issues], columns=ISSUE_COLUMNS)


def write_export(
    output_path: "str | Path",
    records: list[Record],
    summary_rows: list[SummaryRow],
    issues: list[ValidationIssue] | None = None,
) -> dict[str, str]:
    """Write the export and return a manifest of written files."""
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()
    if suffix not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format '{suffix}'. Supported: {', '.join(sorted(EXPORT_FORMATS))}")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    tables = {
        "Records": records_frame(records),
        "Summary": summary_frame(summary_rows),
        "Issues": issues_frame(issues or []),
    }

    if suffix == ".xlsx":
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            for sheet_name, frame in tables.items():
                frame.to_excel(writer, sheet_name=sheet_name, index=False)
        return {"workbook": str(output_path)}

    manifest = {}
    for sheet_name, frame in tables.items():
        if sheet_name == "Records":
            target = output_path
        else:
            target = output_path.with_name(f"{output_path.stem}_{sheet_name.lower()}.csv")
        frame.to_csv(target, index=False, encoding="utf-8-sig")
        manifest[sheet_name.lower()] = str(target)
    return manifest
