"""
Shared delivery-recon issue taxonomy.

This keeps severity, wording and the explain text for every issue in one place
so the reconciliation step and the CLI do not drift.
"""

from __future__ import annotations

import re
from typing import Iterable

from delivery_recon.models import ValidationIssue

ERROR = "error"
WARNING = "warning"

ISSUE_DEFINITIONS = {
    "parse_failed": {
        "severity": ERROR,
        "description": "The workbook could not be opened or has no worksheet.",
        "evidence": "The spreadsheet reader raised an error for this file.",
        "hint": "Re-save the file from Excel as .xlsx, or install xlrd for legacy .xls files.",
    },
    "invalid_date": {
        "severity": ERROR,
        "description": "A record's date is not in an accepted format, so the whole file is rejected.",
        "evidence": "The slip date is missing or does not parse as YYYY-MM-DD, YYYY/MM/DD or YYYY年MM月DD日.",
        "hint": "Put the slip date next to a 日期/Date label in the header block.",
    },
    "empty_file": {
        "severity": WARNING,
        "description": "The file opened but produced no item rows.",
        "evidence": "No row had both a product name and a numeric quantity.",
        "hint": "Check that the item table carries recognisable column labels.",
    },
    "date_mismatch": {
        "severity": WARNING,
        "description": "The date in the file name differs from the date inside the slip.",
        "evidence": "The file name contains YYYY-MM-DD (or YYYY.MM.DD) that disagrees with the content date.",
        "hint": "Rename the file or correct the slip date.",
    },
    "duplicate_order_no": {
        "severity": WARNING,
        "description": "The same delivery order number appears in two files for one customer.",
        "evidence": "A (customer, delivery order number) pair was already seen in an earlier file.",
        "hint": "Remove the duplicate slip, or correct its number if the slips are distinct.",
    },
}

EMPTY_FILE_MESSAGE = "file contains no valid data or layout mismatch"


def _basename(path: str) -> str:
    return re.split(r"[\\/]", path)[-1] or path


def build_issue(issue_id: str, file: str, message: str) -> ValidationIssue:
    definition = ISSUE_DEFINITIONS[issue_id]
    return ValidationIssue(file=file, message=message, severity=definition["severity"], issue_id=issue_id)


def parse_failed(file: str, cause: str) -> ValidationIssue:
    return build_issue("parse_failed", file, f"parse failed: {cause}")


def invalid_date(file: str, date_text: str) -> ValidationIssue:
    return build_issue("invalid_date", file, f"invalid date '{date_text}': unrecognised date format or impossible date")


def empty_file(file: str) -> ValidationIssue:
    return build_issue("empty_file", file, EMPTY_FILE_MESSAGE)


def date_mismatch(file: str, filename_date: str, content_date: str) -> ValidationIssue:
    return build_issue(
        "date_mismatch",
        file,
        f"date mismatch: filename date ({filename_date}) differs from content date ({content_date})",
    )


def duplicate_order_no(file: str, customer: str, order_no: str, existing_file: str) -> ValidationIssue:
    return build_issue(
        "duplicate_order_no",
        file,
        f"duplicate delivery order number: customer '{customer}' order '{order_no}' "
        f"already appears in '{_basename(existing_file)}'",
    )


def dedupe_issues(issues: Iterable[ValidationIssue]) -> list[ValidationIssue]:
    """Drop repeated (file, message) pairs, keeping first-seen order."""
    seen: set[tuple[str, str]] = set()
    unique = []
    for issue in issues:
        if issue.key in seen:
            continue
        seen.add(issue.key)
        unique.append(issue)
    return unique
