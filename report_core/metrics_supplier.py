from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from report_core.aggregation import fold_totals, safe_div, top_n_series
from report_core.charts import series_bar_chart, to_vega_spec
from report_core.filters import FilterSelection
from report_core.sorting import SortState, sort_frame

TOTAL_COLUMNS = ["total_commission", "total_net_commission", "total_pax"]


def supplier_summary(df: pd.DataFrame) -> Dict[str, float]:
    totals = fold_totals(df, TOTAL_COLUMNS)
    return {
        **totals,
        "supplier_count": int(len(df)),
        "avg_commission_per_pax": safe_div(totals["total_commission"], totals["total_pax"]),
        "avg_net_commission_per_pax": safe_div(totals["total_net_commission"], totals["total_pax"]),
    }


def supplier_view(frame: pd.DataFrame, *, sort: SortState = SortState()) -> pd.DataFrame:
    """Rows in display order: commission descending unless a column sort is active."""
    if frame.empty:
        return frame
    df = frame.sort_values("total_commission", ascending=False, kind="stable")
    return sort_frame(df, sort)


def compute_supplier(
    filters: FilterSelection,
    frame: pd.DataFrame,
    *,
    sort: SortState = SortState(),
    top_n: int = 10,
) -> Dict[str, Any]:
    df = supplier_view(frame.copy(), sort=sort)
    summary = supplier_summary(df)
    if df.empty:
        return {"filters": asdict(filters), "sort": asdict(sort), "summary": summary, "rows": [], "chart_series": [], "charts": {}}

    full_name = df["supplier_name_th"].astype(str) + " (" + df["supplier_name_en"].astype(str) + ")"
    series = top_n_series(
        df,
        name_col="supplier_name_th",
        value_col="total_commission",
        n=top_n,
        extra={"net_commission": "total_net_commission"},
        full_name=full_name,
    )
    chart = series_bar_chart(series, {"value": "Total Comm.", "net_commission": "Net Comm."})
    return {
        "filters": asdict(filters),
        "sort": asdict(sort),
        "summary": summary,
        "rows": df.to_dict(orient="records"),
        "chart_series": series,
        "charts": {"commission": to_vega_spec(chart)} if chart is not None else {},
    }
