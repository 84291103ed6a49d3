from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from report_core.records import Country, JobPosition, User

FilterMode = Literal["all", "quarterly", "monthly", "yearly"]
FILTER_MODES: Tuple[str, ...] = ("all", "quarterly", "monthly", "yearly")

THAI_MONTHS = [
    "มกราคม",
    "กุมภาพันธ์",
    "มีนาคม",
    "เมษายน",
    "พฤษภาคม",
    "มิถุนายน",
    "กรกฎาคม",
    "สิงหาคม",
    "กันยายน",
    "ตุลาคม",
    "พฤศจิกายน",
    "ธันวาคม",
]

JOB_POSITION_LABELS = {"ts": "เซลล์", "crm": "CRM"}


@dataclass(frozen=True)
class FilterSelection:
    mode: FilterMode = "quarterly"
    year: Optional[int] = None
    quarter: Optional[int] = None
    month: Optional[int] = None
    country_id: Optional[int] = None
    job_position: Optional[str] = None
    team_number: Optional[int] = None
    user_id: Optional[int] = None


def current_quarter(today: Optional[date] = None) -> int:
    today = today or date.today()
    return (today.month - 1) // 3 + 1


def default_selection(today: Optional[date] = None, *, mode: FilterMode = "quarterly") -> FilterSelection:
    """Filter state a report page starts with: current year, quarter and month."""
    today = today or date.today()
    return FilterSelection(mode=mode, year=today.year, quarter=current_quarter(today), month=today.month)


def change_mode(selection: FilterSelection, mode: FilterMode, today: Optional[date] = None) -> FilterSelection:
    """Switch the period mode, resetting the quarter/month to the current one."""
    if mode not in FILTER_MODES:
        raise ValueError(f"unknown filter mode: {mode!r}")
    today = today or date.today()
    if mode == "quarterly":
        return replace(selection, mode=mode, quarter=current_quarter(today))
    if mode == "monthly":
        return replace(selection, mode=mode, month=today.month)
    return replace(selection, mode=mode)


def change_team(selection: FilterSelection, team_number: Optional[int]) -> FilterSelection:
    return replace(selection, team_number=team_number, user_id=None)


def change_job_position(selection: FilterSelection, job_position: Optional[str]) -> FilterSelection:
    return replace(selection, job_position=job_position or None, user_id=None)


def build_query_params(selection: FilterSelection) -> Dict[str, str]:
    """Translate a filter selection into the query parameters the report API expects.

    Period keys follow the mode (``year`` unless ``all``, ``quarter`` only when
    quarterly, ``month`` only when monthly). Unset dimensions are left out
    entirely rather than sent as empty strings. ``job_position`` is passed
    through untouched; the backend is assumed to compare it case-insensitively.
    """
    params: Dict[str, str] = {}
    if selection.mode != "all" and selection.year is not None:
        params["year"] = str(selection.year)
    if selection.mode == "quarterly" and selection.quarter is not None:
        params["quarter"] = str(selection.quarter)
    if selection.mode == "monthly" and selection.month is not None:
        params["month"] = str(selection.month)
    if selection.country_id is not None and selection.country_id > 0:
        params["country_id"] = str(selection.country_id)
    if selection.job_position:
        params["job_position"] = selection.job_position
    if selection.team_number is not None:
        params["team_number"] = str(selection.team_number)
    if selection.user_id is not None:
        params["user_id"] = str(selection.user_id)
    return params


def _as_int(value: object) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _in_range(value: Optional[int], lo: int, hi: int) -> Optional[int]:
    if value is None:
        return None
    return max(lo, min(hi, value))


def normalize_filters(raw: dict, *, today: Optional[date] = None) -> FilterSelection:
    defaults = default_selection(today)

    mode = str(raw.get("mode") or defaults.mode).strip().lower()
    if mode not in FILTER_MODES:
        mode = defaults.mode

    year = _as_int(raw.get("year"))
    quarter = _in_range(_as_int(raw.get("quarter")), 1, 4)
    month = _in_range(_as_int(raw.get("month")), 1, 12)

    job_position = raw.get("job_position")
    job_position = str(job_position).strip() if job_position else None

    return FilterSelection(
        mode=mode,  # type: ignore[arg-type]
        year=year if year is not None else defaults.year,
        quarter=quarter if quarter is not None else defaults.quarter,
        month=month if month is not None else defaults.month,
        country_id=_as_int(raw.get("country_id")),
        job_position=job_position or None,
        team_number=_as_int(raw.get("team_number")),
        user_id=_as_int(raw.get("user_id")),
    )


# ---------------- Dependent filters ----------------
def filter_users(users: Iterable[User], team_number: Optional[int], job_position: Optional[str]) -> List[User]:
    wanted_position = job_position.lower() if job_position else None
    out: List[User] = []
    for user in users:
        if team_number is not None and user.team_number != team_number:
            continue
        if wanted_position is not None and (user.job_position or "").lower() != wanted_position:
            continue
        out.append(user)
    return out


def resolve_user_filter(
    users: Sequence[User],
    team_number: Optional[int],
    job_position: Optional[str],
    user_id: Optional[int],
) -> Tuple[List[User], Optional[int]]:
    """Narrow the user dropdown and drop a selected user that fell out of range.

    Must be re-run whenever the team, the job position or the user list
    changes.
    """
    filtered = filter_users(users, team_number, job_position)
    if user_id is not None and not any(u.id == user_id for u in filtered):
        user_id = None
    return filtered, user_id


def apply_dependent_filters(selection: FilterSelection, users: Sequence[User]) -> Tuple[FilterSelection, List[User]]:
    filtered, user_id = resolve_user_filter(users, selection.team_number, selection.job_position, selection.user_id)
    if user_id != selection.user_id:
        selection = replace(selection, user_id=user_id)
    return selection, filtered


# ---------------- Option lists ----------------
def quarter_options(today: Optional[date] = None) -> List[Dict[str, object]]:
    today = today or date.today()
    quarter_now = current_quarter(today)
    options: List[Dict[str, object]] = []
    for i in range(4):
        quarter = quarter_now - i
        year = today.year
        if quarter <= 0:
            quarter += 4
            year -= 1
        label = f"Q{quarter}/{year} (Current)" if i == 0 else f"Q{quarter}/{year}"
        options.append({"label": label, "year": year, "quarter": quarter})
    return options


def year_options(today: Optional[date] = None) -> List[int]:
    today = today or date.today()
    return [today.year - i for i in range(5)]


def month_options() -> List[Dict[str, object]]:
    return [{"value": i, "label": name} for i, name in enumerate(THAI_MONTHS, start=1)]


def job_position_options(positions: Iterable[JobPosition]) -> List[Dict[str, str]]:
    out = []
    for p in positions:
        key = (p.job_position or "").lower()
        if key in JOB_POSITION_LABELS:
            out.append({"job_position": p.job_position, "display_name": JOB_POSITION_LABELS[key]})
    return out


def sort_countries(countries: Iterable[Country]) -> List[Country]:
    return sorted(countries, key=lambda c: (c.name_th or "").casefold())
