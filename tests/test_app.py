"""Streamlit dashboard driven through AppTest with the backend client stubbed out."""

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from report_core.client import ReportApiClient

from tests.conftest import OPTION_PAYLOADS, order_discount_row

APP_PATH = str(Path(__file__).resolve().parents[1] / "app.py")
ORDER_ENDPOINT = "/api/reports/order-has-discount"
ORDERS = [order_discount_row(f"O{i:03d}", discount=i, pct=i % 30) for i in range(120)]


@pytest.fixture
def backend_calls(monkeypatch, tmp_path):
    """Endpoints requested by the dashboard, in order."""
    monkeypatch.setenv("REPORT_TOKEN_PATH", str(tmp_path / "token.json"))
    routes = {**OPTION_PAYLOADS, ORDER_ENDPOINT: ORDERS}
    calls = []

    def fake_get_json(self, endpoint, params=None):
        calls.append(endpoint)
        return routes.get(endpoint, [])

    monkeypatch.setattr(ReportApiClient, "get_json", fake_get_json)
    return calls


@pytest.fixture
def order_page(backend_calls):
    at = AppTest.from_file(APP_PATH, default_timeout=60)
    at.run()
    at.sidebar.radio[0].set_value("Order Discount").run()
    assert not at.exception
    return at


class TestOrderDiscountPage:
    def test_page_loads_once(self, order_page, backend_calls):
        assert backend_calls.count(ORDER_ENDPOINT) == 1

    def test_paging_and_sorting_reuse_fetched_rows(self, order_page, backend_calls):
        order_page.button(key="order-has-discount:next").click().run()
        assert not order_page.exception
        assert backend_calls.count(ORDER_ENDPOINT) == 1

        order_page.button(key="order-has-discount:sort:discount").click().run()
        assert not order_page.exception
        assert backend_calls.count(ORDER_ENDPOINT) == 1

    def test_secondary_filter_toggle_reuses_fetched_rows(self, order_page, backend_calls):
        order_page.checkbox(key="order-has-discount:unpaid_only").check().run()
        assert not order_page.exception
        assert backend_calls.count(ORDER_ENDPOINT) == 1
