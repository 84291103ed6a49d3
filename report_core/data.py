from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

import pandas as pd

from report_core.client import FetchResult, ReportApiClient, RequestGeneration
from report_core.filters import FilterSelection, build_query_params
from report_core.records import (
    Country,
    DiscountSalesRecord,
    JobPosition,
    OrderDiscountRecord,
    OrderExternalRecord,
    SupplierRecord,
    Team,
    User,
)

logger = logging.getLogger(__name__)

ReportKind = Literal["supplier-performance", "sales-discount", "order-has-discount", "order-external-summary"]


@dataclass(frozen=True)
class ReportSpec:
    kind: str
    endpoint: str
    record_type: type
    label: str


REPORTS: Dict[str, ReportSpec] = {
    "supplier-performance": ReportSpec(
        "supplier-performance", "/api/reports/supplier-performance", SupplierRecord, "supplier performance report"
    ),
    "sales-discount": ReportSpec("sales-discount", "/api/reports/sales-discount", DiscountSalesRecord, "discount sales report"),
    "order-has-discount": ReportSpec(
        "order-has-discount", "/api/reports/order-has-discount", OrderDiscountRecord, "order discount report"
    ),
    "order-external-summary": ReportSpec(
        "order-external-summary", "/api/reports/order-external-summary", OrderExternalRecord, "order external summary"
    ),
}

COUNTRIES_ENDPOINT = "/api/countries"
TEAMS_ENDPOINT = "/api/teams"
JOB_POSITIONS_ENDPOINT = "/api/job-positions"
USERS_ENDPOINT = "/api/users"


def get_report_spec(kind: str) -> ReportSpec:
    try:
        return REPORTS[kind]
    except KeyError:
        raise ValueError(f"unknown report kind: {kind!r}") from None


# ---------------- Report fetch adapters ----------------
def fetch_report(client: ReportApiClient, kind: str, selection: FilterSelection) -> FetchResult:
    spec = get_report_spec(kind)
    params = build_query_params(selection)
    return client.fetch_records(spec.endpoint, spec.record_type.from_payload, params, label=spec.label)


def fetch_supplier_report(client: ReportApiClient, selection: FilterSelection) -> FetchResult[SupplierRecord]:
    return fetch_report(client, "supplier-performance", selection)


def fetch_discount_sales_report(client: ReportApiClient, selection: FilterSelection) -> FetchResult[DiscountSalesRecord]:
    return fetch_report(client, "sales-discount", selection)


def fetch_order_discount_report(client: ReportApiClient, selection: FilterSelection) -> FetchResult[OrderDiscountRecord]:
    return fetch_report(client, "order-has-discount", selection)


def fetch_order_external_summary(client: ReportApiClient, selection: FilterSelection) -> FetchResult[OrderExternalRecord]:
    return fetch_report(client, "order-external-summary", selection)


class ReportLoader:
    """Fetches one report kind and drops responses of superseded requests."""

    def __init__(self, client: ReportApiClient, kind: str) -> None:
        get_report_spec(kind)
        self.client = client
        self.kind = kind
        self.latest: Optional[FetchResult] = None
        self._generation = RequestGeneration()

    def load(self, selection: FilterSelection) -> Optional[FetchResult]:
        generation = self._generation.issue()
        result = fetch_report(self.client, self.kind, selection)
        if not self._generation.is_current(generation):
            logger.info("Discarding superseded %s response (generation %d)", self.kind, generation)
            return None
        self.latest = result
        return result


# ---------------- Filter options ----------------
@dataclass(frozen=True)
class FilterOptions:
    countries: List[Country] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    job_positions: List[JobPosition] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def load_filter_options(client: ReportApiClient) -> FilterOptions:
    """Fetch countries, teams, job positions and users concurrently.

    The four requests are joined; if any of them fails the whole load counts
    as failed and no partial option lists are returned.
    """
    jobs: Dict[str, Callable[[], FetchResult]] = {
        "countries": lambda: client.fetch_records(COUNTRIES_ENDPOINT, Country.from_payload, label="countries"),
        "teams": lambda: client.fetch_records(TEAMS_ENDPOINT, Team.from_payload, label="teams"),
        "job_positions": lambda: client.fetch_records(JOB_POSITIONS_ENDPOINT, JobPosition.from_payload, label="job positions"),
        "users": lambda: client.fetch_records(USERS_ENDPOINT, User.from_payload, label="users"),
    }
    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        futures = {name: pool.submit(job) for name, job in jobs.items()}
        results = {name: future.result() for name, future in futures.items()}

    failed = [f"{name}: {res.error}" for name, res in results.items() if not res.ok]
    if failed:
        reason = "; ".join(failed)
        logger.error("Failed to load initial filter options: %s", reason)
        return FilterOptions(error=reason)
    return FilterOptions(
        countries=results["countries"].records,
        teams=results["teams"].records,
        job_positions=results["job_positions"].records,
        users=results["users"].records,
    )


# ---------------- Frames ----------------
def record_columns(kind: str) -> List[str]:
    return [f.name for f in fields(get_report_spec(kind).record_type)]


def records_to_frame(kind: str, records: Sequence[Any]) -> pd.DataFrame:
    """Flatten typed records into a DataFrame with the report's fixed columns."""
    columns = record_columns(kind)
    if not records:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(r) for r in records], columns=columns)
