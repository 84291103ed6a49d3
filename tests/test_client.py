"""HTTP client: auth headers, payload shapes, failures and session expiry."""

import httpx
import pytest

from report_core.auth import FileTokenStore, MemoryTokenStore, auth_headers, capture_token, is_authenticated
from report_core.client import FetchResult, ReportApiClient, RequestGeneration, SessionExpired, build_url
from report_core.records import SupplierRecord, User, unwrap_payload

from tests.conftest import BASE_URL, json_response, supplier_row


class TestAuthHeaders:
    def test_bearer_added_when_token_present(self):
        headers = auth_headers(MemoryTokenStore("abc"))
        assert headers == {"Content-Type": "application/json", "Authorization": "Bearer abc"}

    def test_no_authorization_without_token(self):
        assert "Authorization" not in auth_headers(MemoryTokenStore())
        assert "Authorization" not in auth_headers(None)

    def test_capture_token_stores_and_redirects_home(self):
        store = MemoryTokenStore()
        assert capture_token(store, "xyz") == "/"
        assert store.get() == "xyz"
        assert is_authenticated(store)

    def test_capture_without_token_keeps_store_empty(self):
        store = MemoryTokenStore()
        assert capture_token(store, None) == "/"
        assert not is_authenticated(store)


class TestBuildUrl:
    def test_no_question_mark_without_params(self):
        assert build_url("/api/teams", {}) == "/api/teams"

    def test_params_encoded(self):
        assert build_url("/api/x", {"year": "2024", "month": "5"}) == "/api/x?year=2024&month=5"


class TestFetchRecords:
    def test_sends_bearer_and_query(self, make_client):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["params"] = dict(request.url.params)
            return json_response([])

        client = make_client(handler)
        client.fetch_records("/api/reports/x", SupplierRecord.from_payload, {"year": "2024"})
        assert seen["auth"] == "Bearer test-token"
        assert seen["params"] == {"year": "2024"}

    def test_envelope_payload(self, make_client):
        client = make_client(lambda request: json_response({"data": [supplier_row(1), supplier_row(2)]}))
        result = client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert result.ok
        assert [r.supplier_id for r in result.records] == [1, 2]

    def test_bare_array_payload(self, make_client):
        client = make_client(lambda request: json_response([supplier_row(5)]))
        result = client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert result.records[0].total_commission == 1000.0

    def test_malformed_payload_is_empty_success(self, make_client):
        client = make_client(lambda request: json_response({"message": "unexpected"}))
        result = client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert result.ok
        assert result.records == []

    def test_server_error_is_failure(self, make_client):
        client = make_client(lambda request: json_response({"error": "boom"}, 500))
        result = client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert not result.ok
        assert result.records == []
        assert "500" in result.error

    def test_invalid_json_is_failure(self, make_client):
        client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
        result = client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert not result.ok

    def test_overflowing_json_number_parses_as_zero(self, make_client):
        body = b'[{"supplier_id": 1, "metrics": {"total_pax": 1e400, "total_commission": 5}}]'
        client = make_client(lambda request: httpx.Response(200, content=body))
        result = client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert result.ok
        assert result.records[0].total_pax == 0
        assert result.records[0].total_commission == 5.0

    def test_transport_error_is_failure(self, make_client):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = make_client(handler).fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert not result.ok

    def test_unauthorized_clears_token_and_raises(self, make_client, token_store):
        client = make_client(lambda request: json_response({"error": "expired"}, 401))
        with pytest.raises(SessionExpired) as excinfo:
            client.fetch_records("/api/reports/x", SupplierRecord.from_payload)
        assert excinfo.value.redirect_to == "/"
        assert token_store.get() is None

    def test_client_context_manager(self, token_store):
        transport = httpx.MockTransport(lambda request: json_response([]))
        with ReportApiClient(BASE_URL, token_store, transport=transport) as client:
            assert client.fetch_records("/api/teams", User.from_payload).ok


class TestRecordParsing:
    def test_missing_numbers_become_zero(self):
        record = SupplierRecord.from_payload({"supplier_id": 3, "metrics": {"total_commission": None}})
        assert record.total_commission == 0.0
        assert record.total_pax == 0
        assert record.supplier_name_th == ""

    def test_user_id_read_from_upper_or_lower_key(self):
        assert User.from_payload({"ID": 4}).id == 4
        assert User.from_payload({"id": 6}).id == 6

    def test_user_display_name_falls_back_to_full_name(self):
        assert User.from_payload({"ID": 1, "first_name": "Bob", "last_name": "B"}).display_name == "Bob B"

    def test_non_finite_numbers_become_zero(self):
        record = SupplierRecord.from_payload(
            {"supplier_id": 1, "metrics": {"total_pax": float("inf"), "total_commission": float("nan"), "total_net_commission": float("-inf")}}
        )
        assert record.total_pax == 0
        assert record.total_commission == 0.0
        assert record.total_net_commission == 0.0

    def test_unwrap_drops_non_dict_rows(self):
        assert unwrap_payload([{"a": 1}, "x", 3]) == [{"a": 1}]


class TestFetchResult:
    def test_success_and_failure(self):
        assert FetchResult.success([1]).ok
        failed = FetchResult.failure("nope")
        assert not failed.ok
        assert failed.records == []


class TestRequestGeneration:
    def test_only_latest_is_current(self):
        gen = RequestGeneration()
        first = gen.issue()
        second = gen.issue()
        assert not gen.is_current(first)
        assert gen.is_current(second)


class TestFileTokenStore:
    def test_round_trip_and_clear(self, tmp_path):
        store = FileTokenStore(tmp_path / "auth" / "token.json")
        assert store.get() is None
        store.set("abc")
        assert FileTokenStore(tmp_path / "auth" / "token.json").get() == "abc"
        store.clear()
        assert store.get() is None

    def test_unreadable_file_means_no_token(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("{not json", encoding="utf-8")
        assert FileTokenStore(path).get() is None
