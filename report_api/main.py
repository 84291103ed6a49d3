from __future__ import annotations

import logging
import math
from dataclasses import asdict
from functools import lru_cache
from typing import Iterator, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response

from report_api.schemas import ReportRequest, UserOption, UsersResponse
from report_core.aggregation import TableState
from report_core.auth import FileTokenStore, TokenStore, capture_token, is_authenticated
from report_core.client import ReportApiClient, ReportApiError, SessionExpired
from report_core.config import Settings, load_settings
from report_core.data import (
    COUNTRIES_ENDPOINT,
    JOB_POSITIONS_ENDPOINT,
    REPORTS,
    TEAMS_ENDPOINT,
    USERS_ENDPOINT,
    fetch_report,
    load_filter_options,
    records_to_frame,
)
from report_core.filters import (
    FilterSelection,
    apply_dependent_filters,
    job_position_options,
    month_options,
    normalize_filters,
    quarter_options,
    resolve_user_filter,
    sort_countries,
    year_options,
)
from report_core.records import Country, JobPosition, Team, User
from report_core.reports import compute_report, export_view
from report_core.sorting import SortState

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

app = FastAPI(title="Commission Reports API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=load_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


def get_token_store(settings: Settings = Depends(get_settings)) -> TokenStore:
    return FileTokenStore(settings.token_path)


def get_client(
    settings: Settings = Depends(get_settings),
    store: TokenStore = Depends(get_token_store),
) -> Iterator[ReportApiClient]:
    client = ReportApiClient(settings.base_url, store, timeout=settings.timeout)
    try:
        yield client
    finally:
        client.close()


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _unknown_kind(kind: str) -> Optional[JSONResponse]:
    if kind in REPORTS:
        return None
    return JSONResponse(status_code=404, content={"error": f"unknown report kind: {kind}", "type": "NotFound"})


def _selection(request: ReportRequest, client: ReportApiClient) -> FilterSelection:
    """Normalize the requested filters and drop a user outside the chosen team / job position."""
    selection = normalize_filters(request.filters.model_dump())
    if selection.user_id is None:
        return selection
    users = client.fetch_records(USERS_ENDPOINT, User.from_payload, label="users")
    if not users.ok:
        raise ReportApiError(f"cannot validate user filter: {users.error}", status_code=502)
    selection, _ = apply_dependent_filters(selection, users.records)
    return selection


@app.exception_handler(SessionExpired)
def session_expired_handler(request: Request, exc: SessionExpired) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": str(exc), "redirect": exc.redirect_to})


@app.get("/")
def index(store: TokenStore = Depends(get_token_store)):
    return _json({"status": "ok", "authenticated": is_authenticated(store), "reports": sorted(REPORTS)})


@app.get("/auth/token")
def auth_token(token: Optional[str] = Query(default=None), store: TokenStore = Depends(get_token_store)):
    return RedirectResponse(url=capture_token(store, token), status_code=303)


@app.get("/meta/periods")
def meta_periods():
    return _json({"quarters": quarter_options(), "years": year_options(), "months": month_options()})


@app.get("/meta/options")
def meta_options(client: ReportApiClient = Depends(get_client)):
    options = load_filter_options(client)
    if not options.ok:
        return JSONResponse(status_code=502, content={"error": options.error, "type": "FetchFailed"})
    return _json(
        {
            "countries": [asdict(c) for c in sort_countries(options.countries)],
            "teams": [asdict(t) for t in options.teams],
            "job_positions": job_position_options(options.job_positions),
            "users": [UserOption(id=u.id, display_name=u.display_name, job_position=u.job_position, team_number=u.team_number) for u in options.users],
        }
    )


@app.get("/meta/countries")
def meta_countries(client: ReportApiClient = Depends(get_client)):
    result = client.fetch_records(COUNTRIES_ENDPOINT, Country.from_payload, label="countries")
    return _json({"countries": [asdict(c) for c in sort_countries(result.records)], "error": result.error})


@app.get("/meta/teams")
def meta_teams(client: ReportApiClient = Depends(get_client)):
    result = client.fetch_records(TEAMS_ENDPOINT, Team.from_payload, label="teams")
    return _json({"teams": [asdict(t) for t in result.records], "error": result.error})


@app.get("/meta/job-positions")
def meta_job_positions(client: ReportApiClient = Depends(get_client)):
    result = client.fetch_records(JOB_POSITIONS_ENDPOINT, JobPosition.from_payload, label="job positions")
    return _json({"job_positions": job_position_options(result.records), "error": result.error})


@app.get("/meta/users")
def meta_users(
    team_number: Optional[int] = Query(default=None),
    job_position: Optional[str] = Query(default=None),
    user_id: Optional[int] = Query(default=None),
    client: ReportApiClient = Depends(get_client),
):
    result = client.fetch_records(USERS_ENDPOINT, User.from_payload, label="users")
    users, user_id = resolve_user_filter(result.records, team_number, job_position or None, user_id)
    return _json(
        UsersResponse(
            users=[UserOption(id=u.id, display_name=u.display_name, job_position=u.job_position, team_number=u.team_number) for u in users],
            user_id=user_id,
        )
    )


@app.post("/reports/{kind}")
def report(kind: str, request: ReportRequest, client: ReportApiClient = Depends(get_client)):
    missing = _unknown_kind(kind)
    if missing is not None:
        return missing
    try:
        selection = _selection(request, client)
        result = fetch_report(client, kind, selection)
        frame = records_to_frame(kind, result.records)
        payload = compute_report(
            kind,
            selection,
            frame,
            state=TableState(**request.table.model_dump()),
            sort=SortState(**request.sort.model_dump()),
            page_size=get_settings().page_size,
        )
        payload["fetch"] = {"ok": result.ok, "error": result.error}
        return _json(payload)
    except SessionExpired:
        raise
    except ReportApiError as exc:
        return _error(exc, exc.status_code or 502)
    except ValueError as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("%s report failed", kind)
        return _error(exc)


@app.post("/export/{kind}")
def export_report(kind: str, request: ReportRequest, client: ReportApiClient = Depends(get_client)):
    missing = _unknown_kind(kind)
    if missing is not None:
        return missing
    try:
        selection = _selection(request, client)
        result = fetch_report(client, kind, selection)
        frame = records_to_frame(kind, result.records)
        csv_bytes, filename = export_view(
            kind,
            frame,
            state=TableState(**request.table.model_dump()),
            sort=SortState(**request.sort.model_dump()),
        )
    except SessionExpired:
        raise
    except ReportApiError as exc:
        return _error(exc, exc.status_code or 502)
    except ValueError as exc:
        return _error(exc, 400)
    except Exception as exc:
        logger.exception("%s export failed", kind)
        return _error(exc)
    return Response(
        content=csv_bytes,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
