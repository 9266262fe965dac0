#!/usr/bin/env python3
"""
Generates a folder of delivery-order slips under sample-data/slips/ for
trying out delivery-recon.

Run from the repo root:
    python sample-data/generate_delivery_slips.py
    delivery-recon scan sample-data/slips

Layout:
  slips/monthly/2024-01-05-acme.xlsx   clean slip, header on row 4
  slips/monthly/2024-01-18-acme.xlsx   reuses acme's delivery number DN-001 (warning)
  slips/monthly/2024-02-02-bright.xlsx filename date differs from content date (warning)
  slips/cash/2024-01-09-walkin.xlsx    no header row, fixed layout from row 8
  slips/cash/2024-01-11-broken.xlsx    impossible date 2024-02-30 (error, file rejected)
  slips/stray.xlsx                     customer type "default", totals row stops extraction
"""

from pathlib import Path
import openpyxl

OUTPUT = Path(__file__).parent / "slips"
HEADER = ["货名", "单价", "规格", "金额", "数量", "单位", "订单号"]


def save(path: Path, rows: list[list]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "送货单"
    for row in rows:
        ws.append(row)
    wb.save(path)
    print(f"Created: {path}")


def headed_slip(customer: str, date: str, delivery_no: str, order_no: str, items: list[list]) -> list[list]:
    return [
        ["送货单"],
        [f"客户：{customer}", None, None, "日期", date],
        [f"送货单号：{delivery_no}", None, None, f"订单号：{order_no}"],
        HEADER,
        *items,
        ["合计", None, None, sum(item[3] for item in items)],
        ["送货单位：某某五金厂"],
    ]


save(
    OUTPUT / "monthly" / "2024-01-05-acme.xlsx",
    headed_slip(
        "Acme Hardware",
        "2024-01-05",
        "DN-001",
        "PO-7781",
        [
            ["Bolt", 0.5, "M8", 50.0, 100, "pcs", None],
            ["Nut", 0.2, "M8", 20.0, 100, "pcs", None],
        ],
    ),
)
save(
    OUTPUT / "monthly" / "2024-01-18-acme.xlsx",
    headed_slip(
        "Acme Hardware",
        "2024-01-18",
        "DN-001",
        "PO-7790",
        [["Washer", 0.1, "M8", 30.0, 300, "pcs", None]],
    ),
)
save(
    OUTPUT / "monthly" / "2024-02-02-bright.xlsx",
    headed_slip(
        "Bright Tools",
        "2024-02-03",
        "DN-014",
        "PO-9001",
        [["Hinge", 3.2, "75mm", 64.0, 20, "pair", None]],
    ),
)

walkin_rows: list[list] = [
    ["送货单"],
    ["客户", "Walk-in"],
    ["日期", 45300],
    ["No.", "C-0091"],
    [],
    [],
    [],
    [],
    ["Cable tie", None, "200mm", None, 500, "pcs"],
    ["Tape", None, "48mm", None, "12卷", "roll"],
]
save(OUTPUT / "cash" / "2024-01-09-walkin.xlsx", walkin_rows)

save(
    OUTPUT / "cash" / "2024-01-11-broken.xlsx",
    headed_slip("Walk-in", "2024-02-30", "C-0099", "", [["Glue", 4.0, "50ml", 8.0, 2, "tube", None]]),
)

save(
    OUTPUT / "stray.xlsx",
    [
        ["客户：Corner Shop", None, None, "日期：2024/03/15"],
        ["单号 S-77"],
        HEADER,
        ["Screw", 0.05, "M4", 10.0, 200, "pcs", "PO-1"],
        ["合计", None, None, 10.0],
        ["Ghost row after totals", 1.0, "", 1.0, 1, "pcs", None],
    ],
)
