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
from report_core.metrics_discount_sales import BAND_LABELS
from report_core.sorting import SortState, sort_frame

TOTAL_COLUMNS = ["net_amount", "supplier_commission", "discount"]
DISCOUNTED_MIN = 1.0


def unpaid_mask(df: pd.DataFrame) -> pd.Series:
    if df.empty:
        return pd.Series(dtype=bool)
    return df["paid_installments"] < df["total_installments"]


def order_discount_summary(df: pd.DataFrame) -> Dict[str, float]:
    """Totals over the visible orders.

    ``discount_percent`` is the mean of the discounted orders' own
    percentages (discount of at least 1), not total discount over total net.
    """
    totals = fold_totals(df, TOTAL_COLUMNS)
    discounted = df[df["discount"] >= DISCOUNTED_MIN] if not df.empty else df
    return {
        **totals,
        "total_orders": int(len(df)),
        "discounted_orders": int(len(discounted)),
        "discount_percent": mean_or_zero(discounted["discount_percent"]) if not discounted.empty else 0.0,
    }


def order_discount_view(
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    visible = apply_secondary_filters(frame, state, discount_col="discount", unpaid_mask=unpaid_mask(frame))
    visible = sort_frame(visible, sort)
    return visible, order_discount_summary(visible)


def order_discount_groups(frame: pd.DataFrame) -> pd.DataFrame:
    return summarize_groups(
        frame,
        key="seller_name",
        amount_col="discount",
        percent_col="discount_percent",
        net_col="net_amount",
        threshold=DISCOUNTED_MIN,
    )


def compute_order_discount(
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
    # Seller groups always come from the full fetched set, before secondary filters.
    groups = order_discount_groups(base)
    visible, summary = order_discount_view(base, state=state, sort=sort)
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
