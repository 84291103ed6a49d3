"""Shared fixtures: an httpx.MockTransport-backed client and sample payloads."""

import json
from typing import Callable, Dict, List

import httpx
import pytest

from report_core.auth import MemoryTokenStore
from report_core.client import ReportApiClient

BASE_URL = "https://reports.test"


# ---------------------------------------------------------------------------
# Sample backend payloads
# ---------------------------------------------------------------------------

def supplier_row(supplier_id=1, name_th="ซัพพลายเออร์", name_en="Supplier", commission=1000, net=800, pax=10):
    return {
        "supplier_id": supplier_id,
        "supplier_name_th": name_th,
        "supplier_name_en": name_en,
        "metrics": {
            "total_commission": commission,
            "total_net_commission": net,
            "total_pax": pax,
            "avg_commission_per_pax": commission / pax if pax else 0,
            "avg_net_commission_per_pax": net / pax if pax else 0,
        },
    }


def sales_row(sales_id=1, name="Sales A", commission=1000, discount=100, pct=10, orders=2, net=900):
    return {
        "sales_id": sales_id,
        "sales_name": name,
        "metrics": {
            "total_commission": commission,
            "total_discount": discount,
            "discount_percentage": pct,
            "order_count": orders,
            "net_commission": net,
        },
    }


def order_discount_row(code="TW001", seller="Alice", discount=100, pct=5, net=2000, paid=1, total=2):
    return {
        "order_info": {
            "order_code": code,
            "created_at": "2024-05-01T10:00:00Z",
            "customer_name": "ลูกค้า",
        },
        "customer_info": {"customer_name": "ลูกค้า"},
        "payment_details": {
            "total_installments": total,
            "paid_installments": paid,
            "status_list": "paid",
        },
        "sales_crm": {"seller_name": seller, "crm_name": "CRM One"},
        "financial_metrics": {
            "net_amount": net,
            "supplier_commission": 300,
            "discount": discount,
            "discount_percent": pct,
        },
    }


def order_external_row(code="EX001", net=1500, commission=200, discount=50, paid=True):
    return {
        "order_code": code,
        "created_at": "2024-05-01T10:00:00Z",
        "customer_name": "ลูกค้า",
        "net_amount": net,
        "supplier_commission": commission,
        "discount": discount,
        "first_installment_paid": paid,
        "paid_at": "2024-05-02T10:00:00Z" if paid else "",
    }


OPTION_PAYLOADS: Dict[str, object] = {
    "/api/countries": {"data": [{"id": 2, "name_th": "ญี่ปุ่น", "name_en": "Japan"}, {"id": 1, "name_th": "จีน", "name_en": "China"}]},
    "/api/teams": [{"team_number": 1}, {"team_number": 2}],
    "/api/job-positions": [{"job_position": "ts"}, {"job_position": "crm"}, {"job_position": "admin"}],
    "/api/users": [
        {"ID": 10, "first_name": "Ann", "last_name": "A", "nickname": "Ann", "job_position": "ts", "team_number": 1},
        {"ID": 11, "first_name": "Bob", "last_name": "B", "nickname": "", "job_position": "crm", "team_number": 2},
    ],
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def json_response(payload: object, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode("utf-8"), headers={"Content-Type": "application/json"})


@pytest.fixture
def token_store():
    return MemoryTokenStore("test-token")


@pytest.fixture
def make_client(token_store) -> Callable[[Callable[[httpx.Request], httpx.Response]], ReportApiClient]:
    """Build a client whose HTTP layer is answered by ``handler``."""
    clients: List[ReportApiClient] = []

    def _make(handler):
        client = ReportApiClient(BASE_URL, token_store, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def routes_client(make_client):
    """Client answering from a path -> payload table; unknown paths give 404."""

    def _make(routes: Dict[str, object]):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path in routes:
                return json_response(routes[request.url.path])
            return json_response({"error": "not found"}, 404)

        return make_client(handler)

    return _make
