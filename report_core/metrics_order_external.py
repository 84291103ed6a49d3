from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Tuple

import pandas as pd

from report_core.aggregation import TableState, apply_secondary_filters, fold_totals, paginate
from report_core.config import PAGE_SIZE
from report_core.filters import FilterSelection
from report_core.sorting import SortState, sort_frame

TOTAL_COLUMNS = ["net_amount", "supplier_commission", "discount"]


def unpaid_mask(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=bool)
    return ~df["first_installment_paid"].astype(bool)


def order_external_summary(df: pd.DataFrame) -> Dict[str, float]:
    return {**fold_totals(df, TOTAL_COLUMNS), "total_orders": int(len(df))}


def order_external_view(
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    visible = apply_secondary_filters(frame, state, discount_col="discount", unpaid_mask=unpaid_mask(frame))
    visible = sort_frame(visible, sort)
    return visible, order_external_summary(visible)


def compute_order_external(
    filters: FilterSelection,
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
    page_size: int = PAGE_SIZE,
) -> Dict[str, Any]:
    visible, summary = order_external_view(frame.copy(), state=state, sort=sort)
    page_df, pagination = paginate(visible, state.page, page_size)
    return {
        "filters": asdict(filters),
        "state": asdict(state),
        "sort": asdict(sort),
        "summary": summary,
        "rows": page_df.to_dict(orient="records"),
        "pagination": pagination,
    }
