"""
Keyword tables for the slip heuristics.

Each logical field maps to an ordered tuple of regular expressions. Supporting
a new supplier layout should mean adding a pattern here, not a new branch in
the locator or extractor code. Patterns are matched case-insensitively with
``re.search``; a leading ``(?a)`` keeps a pattern ASCII-only.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# ── Header label families ─────────────────────────────────────────────────────
# Order matters: a header cell is claimed by the first family that matches it,
# so the more specific families ("unit price", "order no") come first.
HEADER_FAMILY_HINTS = (
    ("unit_price", (r"单价", r"价格", r"unit\s*price", r"(?a)^price$")),
    ("amount", (r"金额", r"总价", r"(?a)\bamount\b", r"(?a)^total$")),
    ("order_no", (r"订单号", r"订单编号", r"(?a)order\s*(?:no|number|#)", r"(?a)^p\.?o\.?(?:no|#|number)?\.?$")),
    ("product_name", (
        r"货名", r"品名", r"产品名称", r"商品名称", r"货品名称", r"物料名称", r"^名称$",
        r"(?a)product\s*(?:name)?$", r"(?a)^(?:item|description|goods)$",
    )),
    ("spec", (r"规格", r"型号", r"(?a)^spec(?:ification)?s?$")),
    ("quantity", (r"数量", r"(?a)^qty$", r"(?a)quantity")),
    ("unit", (r"^单位$", r"(?a)^unit$", r"(?a)^uom$")),
)

# ── Metadata labels in the block above the item table ─────────────────────────
METADATA_FIELD_HINTS = {
    "customer": {
        "patterns": (r"客户", r"\S单位", r"^单位名称", r"(?a)\bcustomer\b", r"(?a)\bclient\b"),
        "exclude": (r"送货单位", r"发货单位", r"供货单位", r"计量单位", r"订单", r"(?a)order"),
    },
    "date": {
        "patterns": (r"日期", r"(?a)\bdate\b"),
        "exclude": (),
    },
    "delivery_order_no": {
        "patterns": (r"(?<!订)单号", r"(?a)(?<![a-z])no(?![a-z])"),
        "exclude": (
            r"订单", r"电话", r"传真", r"(?a)order", r"(?a)\bp\.?\s?o\b",
            r"(?a)\b(?:tel|phone|fax|mobile)\b",
        ),
    },
    "order_no": {
        "patterns": (r"订单号", r"订单编号", r"(?a)order\s*(?:no|number|#)", r"(?a)\bp\.?\s?o\.?\s?(?:no|#|number)"),
        "exclude": (),
    },
}

# First-cell markers for the row that closes the item table.
TOTALS_ROW_HINTS = (r"合计", r"总计", r"送货单位", r"(?a)\btotal\b")

KEY_VALUE_SEPARATORS = (":", "：")
ORDER_TOKEN_SPLIT_RE = re.compile(r"[:：.\s]+")
QUOTE_CHARS = ('"', "“", "”")


@dataclass(frozen=True)
class KeywordRule:
    name: str
    patterns: tuple[str, ...]
    exclude: tuple[str, ...] = ()
    _compiled: tuple[re.Pattern, ...] = field(default=(), init=False, repr=False, compare=False)
    _compiled_exclude: tuple[re.Pattern, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", tuple(re.compile(p, re.IGNORECASE) for p in self.patterns))
        object.__setattr__(self, "_compiled_exclude", tuple(re.compile(p, re.IGNORECASE) for p in self.exclude))

    def matches(self, text: str) -> bool:
        return self.find(text) is not None

    def find(self, text: str) -> re.Match | None:
        """Earliest pattern hit in ``text``, unless an exclude pattern hits."""
        if not text:
            return None
        if any(pattern.search(text) for pattern in self._compiled_exclude):
            return None
        hits = [hit for hit in (pattern.search(text) for pattern in self._compiled) if hit]
        if not hits:
            return None
        return min(hits, key=lambda hit: hit.start())


HEADER_RULES = tuple(KeywordRule(name, patterns) for name, patterns in HEADER_FAMILY_HINTS)
METADATA_RULES = {
    name: KeywordRule(name, hints["patterns"], hints["exclude"])
    for name, hints in METADATA_FIELD_HINTS.items()
}
TOTALS_RULE = KeywordRule("totals", TOTALS_ROW_HINTS)


def compact(text: str) -> str:
    """Drop all whitespace, so spaced-out labels like "数  量" still match."""
    return "".join(text.split())


def header_family_of(text: str) -> str | None:
    """Return the header family a label cell belongs to, or None."""
    if not text or any(sep in text for sep in KEY_VALUE_SEPARATORS):
        return None
    label = compact(text)
    for rule in HEADER_RULES:
        if rule.matches(label):
            return rule.name
    return None


def is_totals_label(text: str) -> bool:
    return TOTALS_RULE.matches(text)
