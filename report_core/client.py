from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, TypeVar
from urllib.parse import urlencode

import httpx

from report_core.auth import DEFAULT_ROUTE, TokenStore, auth_headers
from report_core.records import parse_records

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReportApiError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SessionExpired(ReportApiError):
    """Raised on HTTP 401 after the stored token has been cleared."""

    def __init__(self, message: str = "Unauthorized access", *, redirect_to: str = DEFAULT_ROUTE) -> None:
        super().__init__(message, status_code=401)
        self.redirect_to = redirect_to


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of one fetch: the records, or the reason the fetch failed."""

    records: List[T] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, records: List[T]) -> "FetchResult[T]":
        return cls(records=list(records))

    @classmethod
    def failure(cls, reason: str) -> "FetchResult[T]":
        return cls(records=[], error=reason)


def build_url(endpoint: str, params: Optional[Mapping[str, str]] = None) -> str:
    query = urlencode(dict(params or {}))
    return f"{endpoint}?{query}" if query else endpoint


class ReportApiClient:
    """Thin synchronous client for the report backend."""

    def __init__(
        self,
        base_url: str,
        token_store: Optional[TokenStore] = None,
        *,
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ReportApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_json(self, endpoint: str, params: Optional[Mapping[str, str]] = None) -> Any:
        url = build_url(endpoint, params)
        logger.info("GET %s%s", self.base_url, url)
        try:
            response = self._http.get(url, headers=auth_headers(self.token_store))
        except httpx.HTTPError as exc:
            raise ReportApiError(f"request to {endpoint} failed: {exc}") from exc

        if response.status_code == 401:
            if self.token_store is not None:
                self.token_store.clear()
            logger.warning("Unauthorized response from %s; token cleared", endpoint)
            raise SessionExpired()
        if not response.is_success:
            raise ReportApiError(f"HTTP error! status: {response.status_code}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ReportApiError(f"invalid JSON from {endpoint}") from exc

    def fetch_records(
        self,
        endpoint: str,
        factory: Callable[[Dict[str, Any]], T],
        params: Optional[Mapping[str, str]] = None,
        *,
        label: str = "report",
    ) -> FetchResult[T]:
        """GET ``endpoint`` and parse its rows; only ``SessionExpired`` escapes."""
        try:
            payload = self.get_json(endpoint, params)
        except SessionExpired:
            raise
        except ReportApiError as exc:
            logger.error("Error fetching %s: %s", label, exc)
            return FetchResult.failure(str(exc))
        return FetchResult.success(parse_records(payload, factory, label=label))


class RequestGeneration:
    """Monotonic request counter; only the most recently issued request is current."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest = 0

    def issue(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._latest
