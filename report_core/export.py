from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Literal, Mapping, Optional, Tuple

import pandas as pd

ColumnKind = Literal["text", "money", "percent", "count", "date"]

BUDDHIST_ERA_OFFSET = 543
DISPLAY_TIMEZONE = "Asia/Bangkok"
SUMMARY_LABEL = "สรุปรวม"


@dataclass(frozen=True)
class ExportColumn:
    header: str
    field: str
    kind: ColumnKind = "text"


EXPORT_COLUMNS: Dict[str, List[ExportColumn]] = {
    "supplier-performance": [
        ExportColumn("Supplier Name (TH)", "supplier_name_th"),
        ExportColumn("Supplier Name (EN)", "supplier_name_en"),
        ExportColumn("Total Commission", "total_commission", "money"),
        ExportColumn("Net Commission", "total_net_commission", "money"),
        ExportColumn("Total PAX", "total_pax", "count"),
        ExportColumn("Avg Commission Per PAX", "avg_commission_per_pax", "money"),
        ExportColumn("Avg Net Commission Per PAX", "avg_net_commission_per_pax", "money"),
    ],
    "sales-discount": [
        ExportColumn("ชื่อเซลล์", "sales_name"),
        ExportColumn("ค่าคอมมิชชั่น (฿)", "total_commission", "money"),
        ExportColumn("ส่วนลด (฿)", "total_discount", "money"),
        ExportColumn("ส่วนลด (%)", "discount_percentage", "percent"),
        ExportColumn("จำนวน Order", "order_count", "count"),
        ExportColumn("ค่าคอมสุทธิ (฿)", "net_commission", "money"),
    ],
    "order-has-discount": [
        ExportColumn("รหัส Order", "order_code"),
        ExportColumn("วันที่สร้าง Order", "created_at", "date"),
        ExportColumn("ชื่อลูกค้า", "customer_name"),
        ExportColumn("เซลล์", "seller_name"),
        ExportColumn("CRM", "crm_name"),
        ExportColumn("งวดที่ชำระ", "paid_installments", "count"),
        ExportColumn("งวดทั้งหมด", "total_installments", "count"),
        ExportColumn("ยอดสุทธิ (฿)", "net_amount", "money"),
        ExportColumn("ค่าคอมมิชชั่น (฿)", "supplier_commission", "money"),
        ExportColumn("ส่วนลด (฿)", "discount", "money"),
        ExportColumn("ส่วนลด (%)", "discount_percent", "percent"),
    ],
    "order-external-summary": [
        ExportColumn("รหัส Order", "order_code"),
        ExportColumn("วันที่สร้าง Order", "created_at", "date"),
        ExportColumn("ชื่อลูกค้า", "customer_name"),
        ExportColumn("ยอดสุทธิ (฿)", "net_amount", "money"),
        ExportColumn("ค่าคอมมิชชั่น (฿)", "supplier_commission", "money"),
        ExportColumn("ส่วนลด (฿)", "discount", "money"),
        ExportColumn("วันที่ชำระเงิน", "paid_at", "date"),
    ],
}

EXPORT_PREFIXES = {
    "supplier-performance": "supplier-commission",
    "sales-discount": "discount-sales",
    "order-has-discount": "order-discount",
    "order-external-summary": "order-external-summary",
}


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def thai_date(value: object) -> str:
    """``D/M/YYYY`` in the Buddhist era, as seen in Bangkok.

    Zone-aware timestamps are converted to Asia/Bangkok first; naive ones are
    taken as already local.
    """
    if value is None or value == "":
        return ""
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return ""
    if ts.tzinfo is not None:
        ts = ts.tz_convert(DISPLAY_TIMEZONE)
    return f"{ts.day}/{ts.month}/{ts.year + BUDDHIST_ERA_OFFSET}"


def format_cell(value: object, kind: ColumnKind) -> str:
    # Text is wrapped in quotes as-is; embedded quotes are not escaped.
    if kind == "text":
        return f'"{"" if value is None or (isinstance(value, float) and pd.isna(value)) else value}"'
    if kind == "date":
        return thai_date(value)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if kind == "count":
        return str(int(float(value)))
    rounded = round_half_up(value)
    return "" if rounded is None else str(int(rounded))


def encode_csv(
    columns: List[ExportColumn],
    frame: pd.DataFrame,
    summary: Mapping[str, object],
    *,
    label: Optional[str] = None,
) -> bytes:
    """Render rows plus one trailing summary row as UTF-8 CSV with a BOM.

    ``summary`` maps column fields to the values shown in the summary row; the
    first column carries the summary label.
    """
    lines = [",".join(col.header for col in columns)]
    for _, row in frame.iterrows():
        lines.append(",".join(format_cell(row.get(col.field), col.kind) for col in columns))

    label = label or f"{SUMMARY_LABEL} {len(frame)} รายการ"
    cells = [f'"{label}"']
    for col in columns[1:]:
        if col.field in summary and col.kind in {"money", "percent", "count"}:
            cells.append(format_cell(summary[col.field], col.kind))
        else:
            cells.append("")
    lines.append(",".join(cells))
    return "\n".join(lines).encode("utf-8-sig")


def export_filename(prefix: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"{prefix}-{now:%Y-%m-%d}-{now:%H-%M-%S}.csv"


def export_report(
    kind: str,
    frame: pd.DataFrame,
    summary: Mapping[str, object],
    *,
    now: Optional[datetime] = None,
) -> Tuple[bytes, str]:
    if kind not in EXPORT_COLUMNS:
        raise ValueError(f"unknown report kind: {kind!r}")
    return encode_csv(EXPORT_COLUMNS[kind], frame, summary), export_filename(EXPORT_PREFIXES[kind], now)
