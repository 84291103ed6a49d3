"""Per-report compute payloads built from fetched frames."""

import pandas as pd
import pytest

from report_core.aggregation import TableState
from report_core.data import records_to_frame
from report_core.filters import FilterSelection
from report_core.metrics_discount_sales import compute_discount_sales, discount_sales_summary
from report_core.metrics_order_discount import compute_order_discount, order_discount_summary
from report_core.metrics_order_external import compute_order_external
from report_core.metrics_supplier import compute_supplier, supplier_summary
from report_core.records import DiscountSalesRecord, OrderDiscountRecord, SupplierRecord
from report_core.reports import compute_report
from report_core.sorting import SortState

from tests.conftest import order_discount_row, sales_row, supplier_row

FILTERS = FilterSelection(mode="monthly", year=2024, month=5)


def _supplier_frame(n=3):
    rows = [supplier_row(i, name_en=f"S{i}", commission=100 * i, net=80 * i, pax=i) for i in range(1, n + 1)]
    return records_to_frame("supplier-performance", [SupplierRecord.from_payload(r) for r in rows])


def _sales_frame():
    rows = [
        sales_row(1, "Ann", commission=1000, discount=0, pct=0, orders=3, net=1000),
        sales_row(2, "Ben", commission=2000, discount=300, pct=15, orders=4, net=1700),
        sales_row(3, "Cat", commission=500, discount=100, pct=20, orders=1, net=400),
    ]
    return records_to_frame("sales-discount", [DiscountSalesRecord.from_payload(r) for r in rows])


def _order_frame():
    rows = [
        order_discount_row("O1", "Alice", discount=100, pct=5, net=2000, paid=2, total=2),
        order_discount_row("O2", "Alice", discount=0, pct=0, net=1000, paid=0, total=1),
        order_discount_row("O3", "Bob", discount=400, pct=25, net=1600, paid=1, total=3),
    ]
    return records_to_frame("order-has-discount", [OrderDiscountRecord.from_payload(r) for r in rows])


class TestSupplier:
    def test_summary_totals_and_per_pax(self):
        summary = supplier_summary(_supplier_frame())
        assert summary["total_commission"] == 600.0
        assert summary["total_pax"] == 6.0
        assert summary["avg_commission_per_pax"] == 100.0
        assert summary["supplier_count"] == 3

    def test_empty_frame_yields_zero_summary(self):
        payload = compute_supplier(FILTERS, records_to_frame("supplier-performance", []))
        assert payload["rows"] == []
        assert payload["charts"] == {}
        assert payload["summary"]["avg_commission_per_pax"] == 0.0

    def test_rows_sorted_by_commission_and_chart_built(self):
        payload = compute_supplier(FILTERS, _supplier_frame())
        assert [r["supplier_id"] for r in payload["rows"]] == [3, 2, 1]
        assert payload["chart_series"][0]["full_name"] == "ซัพพลายเออร์ (S3)"
        assert "commission" in payload["charts"]
        assert payload["filters"]["month"] == 5

    def test_column_sort_overrides_default(self):
        payload = compute_supplier(FILTERS, _supplier_frame(), sort=SortState("total_pax", "asc"))
        assert [r["supplier_id"] for r in payload["rows"]] == [1, 2, 3]

    def test_top_n_limit(self):
        payload = compute_supplier(FILTERS, _supplier_frame(12))
        assert len(payload["chart_series"]) == 10
        assert len(payload["rows"]) == 12


class TestDiscountSales:
    def test_summary_percentage_is_mean_of_rows(self):
        summary = discount_sales_summary(_sales_frame())
        assert summary["total_discount"] == 400.0
        assert summary["discount_percentage"] == pytest.approx(35 / 3)

    def test_discount_only_filters_rows_and_summary(self):
        payload = compute_discount_sales(FILTERS, _sales_frame(), state=TableState(discount_only=True))
        assert [r["sales_name"] for r in payload["rows"]] == ["Ben", "Cat"]
        assert payload["summary"]["sales_count"] == 2
        assert payload["summary"]["discount_percentage"] == pytest.approx(17.5)

    def test_groups_and_rankings(self):
        payload = compute_discount_sales(FILTERS, _sales_frame())
        assert [g["seller_name"] for g in payload["groups"]] == ["Ben", "Cat", "Ann"]
        assert payload["rankings"]["by_percent"][0]["name"] == "Cat"
        assert set(payload["charts"]) == {"top_discount_amount", "top_discount_percent", "discount_bands"}

    def test_pagination_info(self):
        payload = compute_discount_sales(FILTERS, _sales_frame(), state=TableState(page=5), page_size=2)
        assert payload["pagination"]["current_page"] == 2
        assert len(payload["rows"]) == 1


class TestOrderDiscount:
    def test_summary(self):
        summary = order_discount_summary(_order_frame())
        assert summary["total_orders"] == 3
        assert summary["discounted_orders"] == 2
        assert summary["discount"] == 500.0
        assert summary["discount_percent"] == 15.0

    def test_unpaid_only(self):
        payload = compute_order_discount(FILTERS, _order_frame(), state=TableState(unpaid_only=True))
        assert [r["order_code"] for r in payload["rows"]] == ["O2", "O3"]

    def test_groups_come_from_full_set(self):
        payload = compute_order_discount(FILTERS, _order_frame(), state=TableState(discount_only=True))
        alice = next(g for g in payload["groups"] if g["seller_name"] == "Alice")
        assert alice["total_orders"] == 2
        assert alice["no_discount"] == 1

    def test_sort_by_discount(self):
        payload = compute_order_discount(FILTERS, _order_frame(), sort=SortState("discount", "desc"))
        assert [r["order_code"] for r in payload["rows"]] == ["O3", "O1", "O2"]

    def test_empty(self):
        payload = compute_order_discount(FILTERS, records_to_frame("order-has-discount", []))
        assert payload["summary"]["discount_percent"] == 0.0
        assert payload["groups"] == []
        assert payload["charts"] == {}


class TestOrderExternal:
    def test_summary_and_pagination(self):
        frame = pd.DataFrame(
            {
                "order_code": [f"E{i}" for i in range(60)],
                "created_at": ["2024-05-01"] * 60,
                "customer_name": ["c"] * 60,
                "net_amount": [100.0] * 60,
                "supplier_commission": [10.0] * 60,
                "discount": [1.0] * 60,
                "first_installment_paid": [i % 2 == 0 for i in range(60)],
                "paid_at": [""] * 60,
            }
        )
        payload = compute_order_external(FILTERS, frame, state=TableState(page=2))
        assert payload["summary"]["net_amount"] == 6000.0
        assert payload["summary"]["total_orders"] == 60
        assert payload["pagination"]["total_pages"] == 2
        assert len(payload["rows"]) == 10

        unpaid = compute_order_external(FILTERS, frame, state=TableState(unpaid_only=True))
        assert unpaid["summary"]["total_orders"] == 30


class TestComputeReport:
    def test_dispatch(self):
        payload = compute_report("supplier-performance", FILTERS, _supplier_frame())
        assert payload["summary"]["supplier_count"] == 3

    def test_rejects_unsortable_field(self):
        with pytest.raises(ValueError):
            compute_report("order-external-summary", FILTERS, _order_frame(), sort=SortState("discount_percent"))

    def test_rejects_unknown_kind(self):
        with pytest.raises(ValueError):
            compute_report("nope", FILTERS, pd.DataFrame())
