from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Tuple

import pandas as pd

from report_core.aggregation import (
    BUCKETS,
    TableState,
    apply_secondary_filters,
    fold_totals,
    mean_or_zero,
    paginate,
    seller_rankings,
    summarize_groups,
)
from report_core.charts import breakdown_chart, series_bar_chart, to_vega_spec
from report_core.config import PAGE_SIZE
from report_core.filters import FilterSelection
from report_core.sorting import SortState, sort_frame

TOTAL_COLUMNS = ["total_commission", "total_discount", "order_count", "net_commission"]

BAND_LABELS = {
    "no_discount": "0%",
    "discount_1_15": "1-15%",
    "discount_15_20": "15-20%",
    "discount_over_20": ">20%",
}


def discount_sales_summary(df: pd.DataFrame) -> Dict[str, float]:
    # discount_percentage is the plain mean of each row's own percentage.
    return {
        **fold_totals(df, TOTAL_COLUMNS),
        "sales_count": int(len(df)),
        "discount_percentage": mean_or_zero(df["discount_percentage"]) if "discount_percentage" in df.columns else 0.0,
    }


def discount_sales_view(
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    visible = apply_secondary_filters(frame, state, discount_col="total_discount")
    visible = sort_frame(visible, sort)
    return visible, discount_sales_summary(visible)


def discount_sales_groups(frame: pd.DataFrame) -> pd.DataFrame:
    return summarize_groups(
        frame,
        key="sales_name",
        amount_col="total_discount",
        percent_col="discount_percentage",
        net_col="net_commission",
    )


def compute_discount_sales(
    filters: FilterSelection,
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
    page_size: int = PAGE_SIZE,
    top_amount: int = 10,
    top_percent: int = 8,
) -> Dict[str, Any]:
    base = frame.copy()
    groups = discount_sales_groups(base)
    visible, summary = discount_sales_view(base, state=state, sort=sort)
    page_df, pagination = paginate(visible, state.page, page_size)
    rankings = seller_rankings(groups, top_amount=top_amount, top_percent=top_percent)

    charts: Dict[str, Any] = {}
    amount_chart = series_bar_chart(rankings["by_amount"], {"value": "ส่วนลดรวม"})
    if amount_chart is not None:
        charts["top_discount_amount"] = to_vega_spec(amount_chart)
    percent_chart = series_bar_chart(rankings["by_percent"], {"value": "ส่วนลดเฉลี่ย (%)"}, value_format=".1f")
    if percent_chart is not None:
        charts["top_discount_percent"] = to_vega_spec(percent_chart)
    bands = breakdown_chart(groups, list(BUCKETS), BAND_LABELS)
    if bands is not None:
        charts["discount_bands"] = to_vega_spec(bands)

    return {
        "filters": asdict(filters),
        "state": asdict(state),
        "sort": asdict(sort),
        "summary": summary,
        "groups": groups.to_dict(orient="records"),
        "rankings": rankings,
        "rows": page_df.to_dict(orient="records"),
        "pagination": pagination,
        "charts": charts,
    }
