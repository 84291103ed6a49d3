from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Literal, Optional

import pandas as pd

SortDirection = Literal["asc", "desc"]

SUPPLIER_SORT_FIELDS = (
    "total_commission",
    "total_net_commission",
    "total_pax",
    "avg_commission_per_pax",
    "avg_net_commission_per_pax",
)
DISCOUNT_SALES_SORT_FIELDS = ("total_commission", "total_discount", "discount_percentage", "order_count", "net_commission")
ORDER_DISCOUNT_SORT_FIELDS = ("net_amount", "supplier_commission", "discount", "discount_percent")
ORDER_EXTERNAL_SORT_FIELDS = ("net_amount", "supplier_commission", "discount")


@dataclass(frozen=True)
class SortState:
    field: Optional[str] = None
    direction: SortDirection = "desc"


def toggle_sort(state: SortState, field: str, allowed: Optional[Collection[str]] = None) -> SortState:
    """Clicking the active column flips its direction; any other column starts descending."""
    if allowed is not None and field not in allowed:
        raise ValueError(f"{field!r} is not a sortable column")
    if state.field == field:
        return SortState(field=field, direction="asc" if state.direction == "desc" else "desc")
    return SortState(field=field, direction="desc")


def sort_frame(frame: pd.DataFrame, state: SortState) -> pd.DataFrame:
    if state.field is None or frame.empty:
        return frame
    if state.field not in frame.columns:
        raise ValueError(f"{state.field!r} is not a column of this report")
    key = pd.to_numeric(frame[state.field], errors="coerce").fillna(0)
    order = key.sort_values(ascending=state.direction == "asc", kind="stable").index
    return frame.loc[order]
