"""
Cell normalisation for raw spreadsheet values.

Cells arrive as whatever the workbook reader produced: None, str, int, float,
bool, or datetime/date. Everything downstream works on the canonical forms
produced here.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any

# Windows Excel epoch; day 60 is the phantom 1900-02-29, so counting from
# 1899-12-30 reproduces the serials Excel writes for every modern date.
EXCEL_EPOCH = date(1899, 12, 30)

PARSE_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y年%m月%d日",
    "%d/%m/%Y",
    "%m/%d/%Y",
)
ACCEPTED_DATE_FORMATS = PARSE_DATE_FORMATS[:3]

LEADING_NUMBER_RE = re.compile(r"^[\d.\-]+")
FILENAME_DATE_RE = re.compile(r"(\d{4})[-.](\d{1,2})[-.](\d{1,2})")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def text_of(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def number_of(value: Any) -> float | None:
    """Return the numeric value of a cell, or None when it carries no number.

    Text cells get a full parse first, then fall back to their leading run of
    digits, '.' and '-' so that "160*1000米" still yields 160.0.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, (datetime, date)):
        return None

    text = str(value).strip().replace(",", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        match = LEADING_NUMBER_RE.match(text)
        if not match:
            return None
        try:
            number = float(match.group(0))
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def serial_to_date_string(serial: float) -> str:
    try:
        day = EXCEL_EPOCH + timedelta(days=int(serial))
    except (OverflowError, ValueError):
        return text_of(serial)
    return day.isoformat()


def parse_date(text: str, formats: tuple[str, ...] = PARSE_DATE_FORMATS) -> date | None:
    candidate = text.strip()
    if not candidate:
        return None
    for fmt in formats:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def parse_accepted_date(text: str) -> date | None:
    return parse_date(text, ACCEPTED_DATE_FORMATS)


def parse_date_text(text: str) -> str:
    """Canonicalise a textual date to YYYY-MM-DD, or return it trimmed but unchanged."""
    parsed = parse_date(text)
    return parsed.isoformat() if parsed else text.strip()


def date_string_of(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bool):
        return text_of(value)
    if isinstance(value, (int, float)):
        return serial_to_date_string(value)
    return parse_date_text(str(value))


def date_from_filename(name: str) -> date | None:
    match = FILENAME_DATE_RE.search(name)
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None
