"""Shared aggregation helpers for the report pages.

Everything here is a pure function of the frame it is given: summaries are
recomputed from the current (filtered) rows every time and nothing is cached
across filter changes.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from report_core.config import PAGE_SIZE

NAME_LIMIT = 15
ELLIPSIS = "..."
UNASSIGNED = "ไม่ระบุ"

BUCKETS = ("no_discount", "discount_1_15", "discount_15_20", "discount_over_20")

SELLER_GROUP_COLUMNS = [
    "seller_name",
    "order_count",
    "total_orders",
    "total_discount",
    "avg_discount_percent",
    "total_net_amount",
    *BUCKETS,
]


def safe_div(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return float(numerator) / float(denominator)


def fold_totals(frame: pd.DataFrame, columns: Iterable[str]) -> Dict[str, float]:
    """Sum each named column; missing columns and empty frames give 0."""
    totals: Dict[str, float] = {}
    for col in columns:
        if col in frame.columns and not frame.empty:
            totals[col] = float(pd.to_numeric(frame[col], errors="coerce").fillna(0).sum())
        else:
            totals[col] = 0.0
    return totals


def mean_or_zero(values: pd.Series) -> float:
    """Arithmetic mean of the values themselves (average-of-ratios), 0 when empty."""
    values = pd.to_numeric(values, errors="coerce").dropna()
    if values.empty:
        return 0.0
    return float(values.sum()) / len(values)


def discount_bucket(percent: float) -> str:
    if percent is None or (isinstance(percent, float) and math.isnan(percent)) or percent <= 0:
        return BUCKETS[0]
    if percent <= 15:
        return BUCKETS[1]
    if percent <= 20:
        return BUCKETS[2]
    return BUCKETS[3]


def bucket_series(percent: pd.Series) -> pd.Series:
    pct = pd.to_numeric(percent, errors="coerce").fillna(0.0)
    labels = np.select([pct <= 0, pct <= 15, pct <= 20], list(BUCKETS[:3]), default=BUCKETS[3])
    return pd.Series(labels, index=percent.index)


def summarize_groups(
    frame: pd.DataFrame,
    *,
    key: str,
    amount_col: str,
    percent_col: str,
    net_col: str,
    qualify_col: Optional[str] = None,
    threshold: float = 1.0,
) -> pd.DataFrame:
    """Roll records up per seller.

    ``order_count`` counts rows whose ``qualify_col`` (default ``amount_col``)
    reaches ``threshold``; ``avg_discount_percent`` averages ``percent_col``
    over those rows only, so undiscounted orders do not dilute it. The four
    bucket columns always add up to ``total_orders``.
    """
    if frame.empty:
        return pd.DataFrame(columns=SELLER_GROUP_COLUMNS)

    qualify_col = qualify_col or amount_col
    df = frame.copy()
    df["seller_name"] = df[key].fillna("").astype(str).str.strip().replace("", UNASSIGNED)
    for col in {amount_col, percent_col, net_col, qualify_col}:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0)

    qualifies = df[qualify_col] >= threshold
    df["_qualifies"] = qualifies.astype(int)
    df["_qualified_pct"] = df[percent_col].where(qualifies, 0.0)
    df["_bucket"] = bucket_series(df[percent_col])

    grouped = (
        df.groupby("seller_name", sort=False)
        .agg(
            order_count=("_qualifies", "sum"),
            total_orders=(amount_col, "size"),
            total_discount=(amount_col, "sum"),
            pct_sum=("_qualified_pct", "sum"),
            total_net_amount=(net_col, "sum"),
        )
        .reset_index()
    )
    grouped["avg_discount_percent"] = (
        grouped["pct_sum"].div(grouped["order_count"].where(grouped["order_count"] > 0)).fillna(0.0)
    )
    breakdown = (
        df.groupby(["seller_name", "_bucket"]).size().unstack(fill_value=0).reindex(columns=list(BUCKETS), fill_value=0)
    )
    grouped = grouped.join(breakdown, on="seller_name")
    for col in ("order_count", "total_orders", *BUCKETS):
        grouped[col] = grouped[col].fillna(0).astype(int)

    grouped = grouped.sort_values("total_discount", ascending=False, kind="stable").reset_index(drop=True)
    return grouped[SELLER_GROUP_COLUMNS]


# ---------------- Chart series ----------------
def truncate_name(name: object, limit: int = NAME_LIMIT) -> str:
    text = "" if name is None else str(name)
    return text if len(text) <= limit else text[:limit] + ELLIPSIS


def top_n_series(
    frame: pd.DataFrame,
    *,
    name_col: str,
    value_col: str,
    n: int = 10,
    sort_by: Optional[str] = None,
    extra: Optional[Mapping[str, str]] = None,
    full_name: Optional[pd.Series] = None,
) -> List[Dict[str, Any]]:
    """Chart-ready ``{name, value, ...}`` entries for the first ``n`` rows.

    With ``sort_by`` the rows are ranked descending on that column first;
    without it the frame's current order is kept.
    """
    if frame.empty or n <= 0:
        return []
    df = frame
    if full_name is not None:
        df = df.assign(_full_name=full_name)
    if sort_by:
        df = df.sort_values(sort_by, ascending=False, kind="stable")
    df = df.head(n)

    out: List[Dict[str, Any]] = []
    for _, row in df.iterrows():
        full = row["_full_name"] if full_name is not None else row[name_col]
        entry: Dict[str, Any] = {
            "name": truncate_name(row[name_col]),
            "value": float(row[value_col]),
            "full_name": str(full),
        }
        for out_key, col in (extra or {}).items():
            entry[out_key] = float(row[col])
        out.append(entry)
    return out


def seller_rankings(groups: pd.DataFrame, *, top_amount: int = 10, top_percent: int = 8) -> Dict[str, List[Dict[str, Any]]]:
    """The two Top-N views over seller groups: by discount amount and by average discount %."""
    extra = {"avg_discount_percent": "avg_discount_percent", "total_discount": "total_discount", "order_count": "order_count"}
    return {
        "by_amount": top_n_series(groups, name_col="seller_name", value_col="total_discount", n=top_amount, sort_by="total_discount", extra=extra),
        "by_percent": top_n_series(
            groups, name_col="seller_name", value_col="avg_discount_percent", n=top_percent, sort_by="avg_discount_percent", extra=extra
        ),
    }


# ---------------- Secondary filters & pagination ----------------
@dataclass(frozen=True)
class TableState:
    """Client-side view state layered on top of an already-fetched dataset."""

    discount_only: bool = False
    min_discount: float = 1.0
    unpaid_only: bool = False
    page: int = 1


def set_secondary_filter(state: TableState, **changes: Any) -> TableState:
    """Change a post-fetch filter; the view always jumps back to page 1."""
    allowed = {"discount_only", "min_discount", "unpaid_only"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"unknown secondary filter(s): {sorted(unknown)}")
    return replace(state, page=1, **changes)


def apply_secondary_filters(
    frame: pd.DataFrame,
    state: TableState,
    *,
    discount_col: Optional[str] = None,
    unpaid_mask: Optional[pd.Series] = None,
) -> pd.DataFrame:
    out = frame
    if state.discount_only and discount_col and discount_col in out.columns:
        out = out[pd.to_numeric(out[discount_col], errors="coerce").fillna(0) >= state.min_discount]
    if state.unpaid_only and unpaid_mask is not None:
        out = out[unpaid_mask.reindex(out.index, fill_value=False)]
    return out


def page_count(total: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, math.ceil(max(0, total) / page_size))


def clamp_page(page: int, total: int, page_size: int = PAGE_SIZE) -> int:
    return max(1, min(int(page), page_count(total, page_size)))


def set_page(state: TableState, page: int, total: int, page_size: int = PAGE_SIZE) -> TableState:
    return replace(state, page=clamp_page(page, total, page_size))


def paginate(frame: pd.DataFrame, page: int, page_size: int = PAGE_SIZE) -> Tuple[pd.DataFrame, Dict[str, int]]:
    total = len(frame)
    current = clamp_page(page, total, page_size)
    start = (current - 1) * page_size
    end = min(start + page_size, total)
    info = {
        "current_page": current,
        "total_pages": page_count(total, page_size),
        "page_size": page_size,
        "total_items": total,
        "start_index": start,
        "end_index": end,
    }
    return frame.iloc[start:end], info
