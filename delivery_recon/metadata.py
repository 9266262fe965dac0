"""
Metadata extraction for the free-form block above a slip's item table.

Four values are hunted independently across the first rows of the sheet:
customer, document date, delivery order number and purchase-order number.
Each is captured once; the first non-empty hit wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable

from delivery_recon.cells import date_string_of, is_blank, parse_date_text, text_of
from delivery_recon.config import DEFAULT_SETTINGS, EngineSettings
from delivery_recon.keywords import KEY_VALUE_SEPARATORS, METADATA_RULES, ORDER_TOKEN_SPLIT_RE
from delivery_recon.logging_setup import get_logger
from delivery_recon.workbook import SheetGrid

logger = get_logger(__name__)

INLINE_VALUE_END_RE = re.compile(r"[\s,，;；、]")
NEXT_LABEL_RE = re.compile(r"(\S+?)\s*[:：]")


@dataclass(frozen=True)
class SlipMetadata:
    customer: str = ""
    date: str = ""
    delivery_order_no: str = ""
    order_no: str = ""


def split_pair(text: str) -> tuple[str, str] | None:
    positions = [text.find(sep) for sep in KEY_VALUE_SEPARATORS if sep in text]
    if not positions:
        return None
    cut = min(positions)
    return text[:cut].strip(), text[cut + 1:].strip()


def split_value(text: str) -> str | None:
    """Text after the first ':' or '：', or None when the cell has no separator."""
    pair = split_pair(text)
    return pair[1] if pair else None


def _label_hit(text: str) -> re.Match | None:
    hits = [hit for hit in (rule.find(text) for rule in METADATA_RULES.values()) if hit]
    return min(hits, key=lambda hit: hit.start()) if hits else None


def _is_labelled_pair(text: str) -> bool:
    pair = split_pair(text)
    if pair is None:
        return False
    return _label_hit(pair[0]) is not None


def cut_at_next_pair(value: str) -> str:
    """Drop a trailing "label: value" pair that shares the cell.

    "DN-1  日期：2024-01-05" becomes "DN-1". A label glued to the value
    ("Acme日期：...") is cut at its keyword; a CJK run before the keyword
    ("收货单位") belongs to the label when whitespace separates it from the value.
    """
    for match in NEXT_LABEL_RE.finditer(value):
        hit = _label_hit(match.group(1))
        if hit is None:
            continue
        token_start = match.start(1)
        label_start = token_start + hit.start()
        if value[:token_start].strip() and not value[token_start:label_start].isascii():
            label_start = token_start
        return value[:label_start].strip()
    return value


def inline_value(text: str) -> str:
    """Value after the cell's first separator, without any following pair."""
    value = split_value(text)
    if not value:
        return ""
    return cut_at_next_pair(value)


def value_to_right(values: list[Any], col_idx: int) -> Any:
    """Nearest non-blank cell to the right; None if that cell is another "label: value" pair."""
    for value in values[col_idx + 1:]:
        if is_blank(value):
            continue
        if isinstance(value, str) and _is_labelled_pair(value):
            return None
        return value
    return None


def in_cell_or_adjacent(text: str, values: list[Any], col_idx: int) -> str:
    inline = inline_value(text)
    if inline:
        return inline
    return text_of(value_to_right(values, col_idx))


def date_in_cell_or_adjacent(text: str, values: list[Any], col_idx: int) -> str:
    inline = inline_value(text)
    if inline:
        return parse_date_text(inline)
    return date_string_of(value_to_right(values, col_idx))


def delivery_order_no_of(text: str, values: list[Any], col_idx: int) -> str:
    tokens = [token for token in ORDER_TOKEN_SPLIT_RE.split(text) if token]
    for idx, token in enumerate(tokens[:-1]):
        if token.lower() == "no" or token.endswith("单号"):
            return tokens[idx + 1]

    if text[:2].lower() == "no":
        remainder = text[2:].strip(" .:：")
        if remainder:
            return remainder

    return text_of(value_to_right(values, col_idx))


def inline_order_no(text: str) -> str:
    """Purchase-order number written inside a single cell, e.g. a remarks cell.

    "备注：订单号：PO-1，急" yields "PO-1": the value is read after the keyword,
    up to the first whitespace or list punctuation.
    """
    hit = METADATA_RULES["order_no"].find(text)
    if hit is None:
        return ""
    value = split_value(text[hit.start():])
    if not value:
        return ""
    return INLINE_VALUE_END_RE.split(value, maxsplit=1)[0]


FIELD_EXTRACTORS: dict[str, Callable[[str, list[Any], int], str]] = {
    "customer": in_cell_or_adjacent,
    "date": date_in_cell_or_adjacent,
    "delivery_order_no": delivery_order_no_of,
    "order_no": in_cell_or_adjacent,
}


def extract_metadata(sheet: SheetGrid, settings: EngineSettings = DEFAULT_SETTINGS) -> SlipMetadata:
    found: dict[str, str] = {}
    for row_idx, values in sheet.iter_rows(0, settings.metadata_scan_rows):
        for col_idx, value in enumerate(values):
            text = text_of(value)
            if not text:
                continue
            for field_name, rule in METADATA_RULES.items():
                if field_name in found:
                    continue
                hit = rule.find(text)
                if hit is None:
                    continue
                # values are read from the keyword onward
                extracted = FIELD_EXTRACTORS[field_name](text[hit.start():], values, col_idx).strip()
                if extracted:
                    found[field_name] = extracted
                    logger.debug("%s=%r at row %d col %d", field_name, extracted, row_idx, col_idx)
        if len(found) == len(METADATA_RULES):
            break
    return SlipMetadata(**found)
