from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def series_bar_chart(
    series: List[Dict[str, Any]],
    fields: Mapping[str, str],
    *,
    value_format: str = ",.0f",
    height: int = 320,
) -> Optional[alt.Chart]:
    """Grouped bar chart over ``{name, full_name, <field>...}`` series entries.

    ``fields`` maps entry keys to legend titles; entry order is kept on the x axis.
    """
    if not series:
        return None
    df = pd.DataFrame(series)
    order = df["name"].tolist()
    long_df = df.melt(id_vars=["name", "full_name"], value_vars=list(fields), var_name="metric", value_name="amount")
    long_df["metric"] = long_df["metric"].map(dict(fields))
    hover = alt.selection_point(fields=["name"], on="mouseover", empty="all")
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("name:N", sort=order, title=None, axis=alt.Axis(labelAngle=-45, grid=False)),
            xOffset="metric:N",
            y=alt.Y("amount:Q", title=None, axis=alt.Axis(format=value_format, gridDash=[4, 4], domain=False, ticks=False)),
            color=alt.Color("metric:N", title=None),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[
                alt.Tooltip("full_name:N", title="Name"),
                alt.Tooltip("metric:N", title="Metric"),
                alt.Tooltip("amount:Q", title="Value", format=value_format),
            ],
        )
        .add_params(hover)
        .properties(height=height)
    )


def breakdown_chart(groups: pd.DataFrame, buckets: List[str], labels: Mapping[str, str]) -> Optional[alt.Chart]:
    """Stacked bar of the discount-band histogram per seller."""
    if groups.empty:
        return None
    long_df = groups.melt(id_vars=["seller_name"], value_vars=buckets, var_name="band", value_name="orders")
    long_df["band"] = long_df["band"].map(dict(labels))
    return (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            y=alt.Y("seller_name:N", title=None, sort="-x"),
            x=alt.X("orders:Q", stack="zero", title="Orders"),
            color=alt.Color("band:N", title="Discount band", sort=[labels[b] for b in buckets]),
            tooltip=["seller_name", "band", alt.Tooltip("orders:Q", format=",")],
        )
    )
