"""Dispatch from a report kind to its compute / view functions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import pandas as pd

from report_core.aggregation import TableState
from report_core.config import PAGE_SIZE
from report_core.data import get_report_spec
from report_core.export import export_report
from report_core.filters import FilterSelection
from report_core.metrics_discount_sales import compute_discount_sales, discount_sales_view
from report_core.metrics_order_discount import compute_order_discount, order_discount_view
from report_core.metrics_order_external import compute_order_external, order_external_view
from report_core.metrics_supplier import compute_supplier, supplier_summary, supplier_view
from report_core.sorting import (
    DISCOUNT_SALES_SORT_FIELDS,
    ORDER_DISCOUNT_SORT_FIELDS,
    ORDER_EXTERNAL_SORT_FIELDS,
    SUPPLIER_SORT_FIELDS,
    SortState,
)

SORT_FIELDS = {
    "supplier-performance": SUPPLIER_SORT_FIELDS,
    "sales-discount": DISCOUNT_SALES_SORT_FIELDS,
    "order-has-discount": ORDER_DISCOUNT_SORT_FIELDS,
    "order-external-summary": ORDER_EXTERNAL_SORT_FIELDS,
}


def _check_sort(kind: str, sort: SortState) -> None:
    if sort.field is not None and sort.field not in SORT_FIELDS[kind]:
        raise ValueError(f"{sort.field!r} is not sortable in {kind}")


def compute_report(
    kind: str,
    filters: FilterSelection,
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
    page_size: int = PAGE_SIZE,
) -> Dict[str, Any]:
    get_report_spec(kind)
    _check_sort(kind, sort)
    if kind == "supplier-performance":
        return compute_supplier(filters, frame, sort=sort)
    if kind == "sales-discount":
        return compute_discount_sales(filters, frame, state=state, sort=sort, page_size=page_size)
    if kind == "order-has-discount":
        return compute_order_discount(filters, frame, state=state, sort=sort, page_size=page_size)
    return compute_order_external(filters, frame, state=state, sort=sort, page_size=page_size)


def report_view(
    kind: str,
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
) -> Tuple[pd.DataFrame, Dict[str, float]]:
    """The visible rows (filtered and sorted, not paginated) and their summary."""
    get_report_spec(kind)
    _check_sort(kind, sort)
    if kind == "supplier-performance":
        visible = supplier_view(frame, sort=sort)
        return visible, supplier_summary(visible)
    if kind == "sales-discount":
        return discount_sales_view(frame, state=state, sort=sort)
    if kind == "order-has-discount":
        return order_discount_view(frame, state=state, sort=sort)
    return order_external_view(frame, state=state, sort=sort)


def export_view(
    kind: str,
    frame: pd.DataFrame,
    *,
    state: TableState = TableState(),
    sort: SortState = SortState(),
    now: Optional[datetime] = None,
) -> Tuple[bytes, str]:
    visible, summary = report_view(kind, frame, state=state, sort=sort)
    return export_report(kind, visible, summary, now=now)
