import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from report_core.aggregation import TableState, set_page, set_secondary_filter
from report_core.auth import FileTokenStore, capture_token
from report_core.client import FetchResult, ReportApiClient, SessionExpired
from report_core.config import load_settings
from report_core.data import FilterOptions, ReportLoader, load_filter_options, records_to_frame
from report_core.export import format_cell
from report_core.filters import (
    FilterSelection,
    apply_dependent_filters,
    change_job_position,
    change_mode,
    change_team,
    default_selection,
    job_position_options,
    month_options,
    quarter_options,
    sort_countries,
    year_options,
)
from report_core.reports import SORT_FIELDS, compute_report, export_view
from report_core.sorting import SortState, toggle_sort

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

LOAD_ERROR = "เกิดข้อผิดพลาดในการโหลดข้อมูล กรุณาลองใหม่อีกครั้ง"

PAGES = {
    "Supplier Performance": "supplier-performance",
    "Discount Sales": "sales-discount",
    "Order Discount": "order-has-discount",
    "Order แก้ย้อนหลัง": "order-external-summary",
}

COLUMN_LABELS = {
    "total_commission": "Total Comm.",
    "total_net_commission": "Net Comm.",
    "total_pax": "จำนวนผู้เดินทาง",
    "avg_commission_per_pax": "Avg Comm.(ต่อคน)",
    "avg_net_commission_per_pax": "Avg Net(สุทธิต่อคน)",
    "total_discount": "ส่วนลดรวม",
    "discount_percentage": "ส่วนลด (%)",
    "order_count": "จำนวน Order",
    "net_commission": "ค่าคอมสุทธิ",
    "net_amount": "ยอดสุทธิ",
    "supplier_commission": "ค่าคอมมิชชั่น",
    "discount": "ส่วนลด",
    "discount_percent": "ส่วนลด (%)",
}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selection: FilterSelection) -> str:
    if selection.mode == "all":
        period = "ช่วงเวลา: ทั้งหมด"
    elif selection.mode == "quarterly":
        period = f"Q{selection.quarter}/{selection.year}"
    elif selection.mode == "monthly":
        period = f"{selection.month}/{selection.year}"
    else:
        period = f"ปี {selection.year}"
    chips = [period]
    if selection.country_id:
        chips.append(f"Country #{selection.country_id}")
    if selection.job_position:
        chips.append(selection.job_position.upper())
    if selection.team_number is not None:
        chips.append(f"Team {selection.team_number}")
    if selection.user_id is not None:
        chips.append(f"User #{selection.user_id}")
    return "".join(f"<span class='chip'>{txt}</span>" for txt in chips)


def format_money(value: object) -> str:
    return f"฿{float(value or 0):,.0f}"


def render_page_header(title: str, breadcrumb: str, selection: FilterSelection, export: Optional[tuple] = None):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export is not None:
            data, filename = export
            st.download_button("Export CSV", data=data, file_name=filename, mime="text/csv")
    st.markdown(f"<div class='chip-row'>{format_filter_summary(selection)}</div>", unsafe_allow_html=True)


# ---------- State ----------
@st.cache_resource
def get_client() -> ReportApiClient:
    settings = load_settings()
    return ReportApiClient(settings.base_url, FileTokenStore(settings.token_path), timeout=settings.timeout)


def session_get(key: str, default):
    if key not in st.session_state:
        st.session_state[key] = default
    return st.session_state[key]


def handle_session_expired():
    # Token is already cleared by the client; start over on the default page.
    for key in list(st.session_state.keys()):
        del st.session_state[key]
    st.query_params.clear()
    st.rerun()


def bootstrap_token():
    if "token" not in st.query_params:
        return
    capture_token(get_client().token_store, st.query_params.get("token"))
    st.query_params.clear()
    st.rerun()


# ---------- Sidebar filters ----------
def render_filters(kind: str, options: FilterOptions) -> FilterSelection:
    default_mode = "monthly" if kind == "order-external-summary" else "quarterly"
    selection: FilterSelection = session_get(f"{kind}:selection", default_selection(mode=default_mode))

    modes = ["quarterly", "monthly", "yearly", "all"]
    mode_labels = {"quarterly": "รายไตรมาส", "monthly": "รายเดือน", "yearly": "รายปี", "all": "ทั้งหมด"}
    mode = st.selectbox("รูปแบบรายงาน", modes, index=modes.index(selection.mode), format_func=mode_labels.get)
    if mode != selection.mode:
        selection = change_mode(selection, mode)

    if selection.mode == "quarterly":
        q_opts = quarter_options()
        keys = [(o["year"], o["quarter"]) for o in q_opts]
        current = (selection.year, selection.quarter)
        picked = st.selectbox(
            "ไตรมาส", keys, index=keys.index(current) if current in keys else 0, format_func=lambda k: q_opts[keys.index(k)]["label"]
        )
        selection = replace(selection, year=picked[0], quarter=picked[1])
    elif selection.mode == "monthly":
        m_opts = month_options()
        month = st.selectbox("เดือน", [m["value"] for m in m_opts], index=(selection.month or 1) - 1, format_func=lambda v: m_opts[v - 1]["label"])
        years = year_options()
        year = st.selectbox("ปี", years, index=years.index(selection.year) if selection.year in years else 0)
        selection = replace(selection, month=month, year=year)
    elif selection.mode == "yearly":
        years = year_options()
        year = st.selectbox("ปี", years, index=years.index(selection.year) if selection.year in years else 0)
        selection = replace(selection, year=year)

    countries = sort_countries(options.countries)
    country_ids: List[Optional[int]] = [None] + [c.id for c in countries]
    names = {c.id: c.name_th for c in countries}
    country = st.selectbox(
        "ประเทศ",
        country_ids,
        index=country_ids.index(selection.country_id) if selection.country_id in country_ids else 0,
        format_func=lambda v: "ทุกประเทศ" if v is None else names.get(v, str(v)),
    )
    selection = replace(selection, country_id=country)

    positions = job_position_options(options.job_positions)
    position_values: List[Optional[str]] = [None] + [p["job_position"] for p in positions]
    position_names = {p["job_position"]: p["display_name"] for p in positions}
    position = st.selectbox(
        "👥 ตำแหน่งงาน",
        position_values,
        index=position_values.index(selection.job_position) if selection.job_position in position_values else 0,
        format_func=lambda v: "ทุกตำแหน่ง" if v is None else position_names.get(v, v),
    )
    if position != selection.job_position:
        selection = change_job_position(selection, position)

    team_values: List[Optional[int]] = [None] + [t.team_number for t in options.teams]
    team = st.selectbox(
        "🏢 ทีม",
        team_values,
        index=team_values.index(selection.team_number) if selection.team_number in team_values else 0,
        format_func=lambda v: "ทุกทีม" if v is None else f"Team {v}",
    )
    if team != selection.team_number:
        selection = change_team(selection, team)

    selection, users = apply_dependent_filters(selection, options.users)
    user_values: List[Optional[int]] = [None] + [u.id for u in users]
    user_names = {u.id: u.display_name for u in users}
    user = st.selectbox(
        "👤 ผู้ใช้",
        user_values,
        index=user_values.index(selection.user_id) if selection.user_id in user_values else 0,
        format_func=lambda v: "ทุกคน" if v is None else user_names.get(v, str(v)),
    )
    selection = replace(selection, user_id=user)

    if selection != st.session_state[f"{kind}:selection"]:
        # New fetch: sorting and paging start over.
        st.session_state[f"{kind}:sort"] = SortState()
        st.session_state[f"{kind}:table"] = set_page(st.session_state.get(f"{kind}:table", TableState()), 1, 0)
    st.session_state[f"{kind}:selection"] = selection
    return selection


# ---------- Page renderers ----------
def render_summary_tiles(kind: str, summary: Dict[str, float]):
    if kind == "supplier-performance":
        tiles = [
            ("Total Commission", format_money(summary["total_commission"])),
            ("Net Commission", format_money(summary["total_net_commission"])),
            ("Total PAX", f"{summary['total_pax']:,.0f}"),
            ("Avg Comm./PAX", format_money(summary["avg_commission_per_pax"])),
        ]
    elif kind == "sales-discount":
        tiles = [
            ("ค่าคอมรวม", format_money(summary["total_commission"])),
            ("ส่วนลดรวม", format_money(summary["total_discount"])),
            ("ส่วนลดเฉลี่ย", f"{summary['discount_percentage']:.2f}%"),
            ("จำนวน Order", f"{summary['order_count']:,.0f}"),
        ]
    elif kind == "order-has-discount":
        tiles = [
            ("จำนวน Order", f"{summary['total_orders']:,}"),
            ("Order ที่มีส่วนลด", f"{summary['discounted_orders']:,}"),
            ("ส่วนลดรวม", format_money(summary["discount"])),
            ("ส่วนลดเฉลี่ย", f"{summary['discount_percent']:.2f}%"),
        ]
    else:
        tiles = [
            ("จำนวน Order", f"{summary['total_orders']:,}"),
            ("ยอดสุทธิ", format_money(summary["net_amount"])),
            ("ค่าคอมมิชชั่น", format_money(summary["supplier_commission"])),
            ("ส่วนลด", format_money(summary["discount"])),
        ]
    cols = st.columns(len(tiles))
    for col, (label, value) in zip(cols, tiles):
        col.metric(label, value)


def render_sort_controls(kind: str):
    sort: SortState = session_get(f"{kind}:sort", SortState())
    fields = SORT_FIELDS[kind]
    cols = st.columns(len(fields))
    for col, field in zip(cols, fields):
        arrow = ""
        if sort.field == field:
            arrow = " ↓" if sort.direction == "desc" else " ↑"
        if col.button(f"{COLUMN_LABELS.get(field, field)}{arrow}", key=f"{kind}:sort:{field}"):
            st.session_state[f"{kind}:sort"] = toggle_sort(sort, field, fields)
            st.rerun()


def render_secondary_filters(kind: str):
    table: TableState = session_get(f"{kind}:table", TableState())
    cols = st.columns(2)
    if kind in ("sales-discount", "order-has-discount"):
        discount_only = cols[0].checkbox("แสดงเฉพาะที่มีส่วนลด", value=table.discount_only, key=f"{kind}:discount_only")
        if discount_only != table.discount_only:
            table = set_secondary_filter(table, discount_only=discount_only)
    if kind in ("order-has-discount", "order-external-summary"):
        unpaid_only = cols[1].checkbox("แสดงเฉพาะที่ยังไม่ชำระ", value=table.unpaid_only, key=f"{kind}:unpaid_only")
        if unpaid_only != table.unpaid_only:
            table = set_secondary_filter(table, unpaid_only=unpaid_only)
    st.session_state[f"{kind}:table"] = table


def render_pagination(kind: str, pagination: Dict[str, int]):
    if pagination["total_pages"] <= 1:
        return
    table: TableState = st.session_state[f"{kind}:table"]
    c1, c2, c3 = st.columns([1, 3, 1])
    if c1.button("‹ ก่อนหน้า", key=f"{kind}:prev", disabled=pagination["current_page"] <= 1):
        st.session_state[f"{kind}:table"] = set_page(table, pagination["current_page"] - 1, pagination["total_items"])
        st.rerun()
    c2.caption(
        f"หน้า {pagination['current_page']} / {pagination['total_pages']} "
        f"({pagination['start_index'] + 1}-{pagination['end_index']} จาก {pagination['total_items']})"
    )
    if c3.button("ถัดไป ›", key=f"{kind}:next", disabled=pagination["current_page"] >= pagination["total_pages"]):
        st.session_state[f"{kind}:table"] = set_page(table, pagination["current_page"] + 1, pagination["total_items"])
        st.rerun()


def load_report(kind: str, selection: FilterSelection) -> Optional[FetchResult]:
    """Fetch only when the selection changed; sorting, paging and toggles reuse the last result."""
    cached = st.session_state.get(f"{kind}:result")
    if cached is not None and cached[0] == selection:
        return cached[1]
    loader: ReportLoader = session_get(f"{kind}:loader", ReportLoader(get_client(), kind))
    with st.spinner("กำลังโหลดข้อมูล..."):
        result = loader.load(selection)
    # Failed loads are not kept so the next interaction retries.
    if result is not None and result.ok:
        st.session_state[f"{kind}:result"] = (selection, result)
    return result


def render_report_page(title: str, kind: str, options: FilterOptions):
    with st.sidebar:
        st.markdown("### ตัวกรอง")
        selection = render_filters(kind, options)

    result = load_report(kind, selection)
    if result is None:
        return

    frame = records_to_frame(kind, result.records)
    if kind != "supplier-performance":
        render_secondary_filters(kind)
    table: TableState = session_get(f"{kind}:table", TableState())
    sort: SortState = session_get(f"{kind}:sort", SortState())
    settings = load_settings()
    payload = compute_report(kind, selection, frame, state=table, sort=sort, page_size=settings.page_size)

    export = export_view(kind, frame, state=table, sort=sort) if not frame.empty else None
    render_page_header(title, f"Reports / {title}", selection, export=export)

    if not result.ok:
        st.error(LOAD_ERROR)
        return
    if frame.empty:
        st.info("ไม่พบข้อมูลสำหรับตัวกรองที่เลือก")
        return

    with card("สรุปภาพรวม"):
        render_summary_tiles(kind, payload["summary"])

    charts = payload.get("charts", {})
    if kind == "supplier-performance" and "commission" in charts:
        with card("Top 10 Supplier Commission"):
            st.vega_lite_chart(charts["commission"], use_container_width=True)
    elif charts:
        left, right = st.columns(2)
        with left:
            if "top_discount_amount" in charts:
                with card("Top 10 ส่วนลดรวมตามเซลล์"):
                    st.vega_lite_chart(charts["top_discount_amount"], use_container_width=True)
        with right:
            if "top_discount_percent" in charts:
                with card("Top 8 ส่วนลดเฉลี่ย (%) ตามเซลล์"):
                    st.vega_lite_chart(charts["top_discount_percent"], use_container_width=True)
        if payload.get("groups"):
            with card("สรุปตามเซลล์"):
                st.dataframe(pd.DataFrame(payload["groups"]), hide_index=True, use_container_width=True)
                if "discount_bands" in charts:
                    st.vega_lite_chart(charts["discount_bands"], use_container_width=True)

    with card("รายละเอียด"):
        render_sort_controls(kind)
        rows = pd.DataFrame(payload["rows"])
        if "created_at" in rows.columns:
            rows["created_at"] = rows["created_at"].apply(lambda v: format_cell(v, "date"))
        if "paid_at" in rows.columns:
            rows["paid_at"] = rows["paid_at"].apply(lambda v: format_cell(v, "date"))
        st.dataframe(rows, hide_index=True, use_container_width=True)
        if "pagination" in payload:
            render_pagination(kind, payload["pagination"])


# ---------- UI setup ----------
st.set_page_config(page_title="Commission Reports", layout="wide")
inject_base_styles()
bootstrap_token()

with st.sidebar:
    st.markdown("### Navigate")
    page = st.radio("Navigate", list(PAGES), index=0)
    st.markdown("---")

try:
    if "filter_options" not in st.session_state:
        options = load_filter_options(get_client())
        if options.ok:
            st.session_state["filter_options"] = options
        else:
            logger.error("Filter options unavailable: %s", options.error)
            st.error(LOAD_ERROR)
    else:
        options = st.session_state["filter_options"]
    render_report_page(page, PAGES[page], options)
except SessionExpired:
    handle_session_expired()
