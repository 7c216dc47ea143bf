import asyncio
from contextlib import contextmanager
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st

from core.charts import drill_level_chart
from core.data import COUNT_COLUMN, DatasetSource, get_data_dir, list_datasets, load_dataset
from core.drilldown import DrillDownNavigator, Notification
from core.export import export_table
from core.formatting import NUMBER_FORMATS
from core.pagination import PAGE_SIZE_OPTIONS, ClientPaginator
from core.table import build_table


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        .level-chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.8rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def show_notification(notice: Notification):
    if notice.level == "error":
        st.error(notice.message)
    elif notice.level == "success":
        st.success(notice.message)
    else:
        st.info(notice.message)


def run(coro):
    return asyncio.run(coro)


# ---------- Session state ----------
def get_navigator(dataset: str, hierarchy: List[Dict[str, object]]) -> DrillDownNavigator:
    key = (dataset, tuple((lvl["column"], tuple(lvl["aggregation_columns"])) for lvl in hierarchy))
    if st.session_state.get("_navigator_key") != key:
        source = DatasetSource(load_dataset(dataset), {"hierarchy": hierarchy})
        navigator = DrillDownNavigator({"hierarchy": hierarchy}, source.fetch)
        run(navigator.mount())
        st.session_state["_navigator_key"] = key
        st.session_state["navigator"] = navigator
        st.session_state["paginator"] = ClientPaginator(navigator.rows, page_size=10)
        st.session_state["_seen_notices"] = 0
    return st.session_state["navigator"]


def flush_notifications(navigator: DrillDownNavigator):
    seen = st.session_state.get("_seen_notices", 0)
    for notice in navigator.notifications[seen:]:
        show_notification(notice)
    st.session_state["_seen_notices"] = len(navigator.notifications)


# ---------- UI setup ----------
st.set_page_config(page_title="Drill-Down Table", layout="wide")
inject_base_styles()
st.title("Drill-Down Table")
st.caption("Select a row to drill into the next level; use the breadcrumb to go back.")

datasets = list_datasets()
if not datasets:
    st.error(f"No datasets found. Place CSV or XLSX files in {get_data_dir()}.")
    st.stop()

with st.sidebar:
    st.markdown("### Dataset")
    dataset = st.selectbox("Dataset", options=datasets)
    columns = list(load_dataset(dataset).columns)

    st.markdown("---")
    st.markdown("### Hierarchy")
    level_columns = st.multiselect("Drill levels (in order)", options=columns, default=columns[:2])
    numeric_candidates = [c for c in columns if c not in level_columns]
    aggregation_columns = st.multiselect("Aggregate (sum)", options=numeric_candidates, default=[])

    st.markdown("---")
    with st.expander("Formatting", expanded=False):
        number_format = st.selectbox("Number format", options=NUMBER_FORMATS, index=NUMBER_FORMATS.index("international"))
        precision = st.slider("Decimal places", min_value=0, max_value=6, value=2)
        prefix = st.text_input("Prefix", "")
        suffix = st.text_input("Suffix", "")

if not level_columns:
    st.info("Pick at least one drill level column.")
    st.stop()

hierarchy = [
    {"column": c, "display_name": c.replace("_", " ").title(), "aggregation_columns": aggregation_columns}
    for c in level_columns
]
navigator = get_navigator(dataset, hierarchy)
paginator: ClientPaginator = st.session_state["paginator"]
paginator.set_rows(navigator.rows)

value_columns = aggregation_columns or [COUNT_COLUMN]
value_spec = {"numberFormat": number_format, "precision": precision, "prefix": prefix, "suffix": suffix}
table_config = {"column_formatting": {c: value_spec for c in value_columns}}


def render_breadcrumb():
    crumbs = navigator.breadcrumb()
    if not crumbs.visible:
        return
    cols = st.columns(len(crumbs.crumbs) + 1)
    for i, crumb in enumerate(crumbs.crumbs):
        label = f"🏠 {crumb.label}" if crumb.is_home else crumb.label
        if cols[i].button(label, key=f"crumb_{i}", disabled=not crumb.clickable or navigator.is_loading):
            run(navigator.navigate_to(crumb.level))
            st.rerun()
    cols[-1].markdown(f"<span class='level-chip'>{crumbs.level_indicator}</span>", unsafe_allow_html=True)


def render_actions():
    c1, c2, c3 = st.columns([6, 1, 1])
    if navigator.can_drill:
        next_level = navigator.config.hierarchy[navigator.current_level + 1]
        c1.caption(f"Select a row to drill down to {next_level.label}")
    if c2.button("Reset", disabled=not navigator.can_reset):
        run(navigator.reset())
        st.rerun()
    if navigator.can_export:
        export = export_table(navigator.rows, navigator.path)
        c3.download_button("Export CSV", data=export.as_bytes(), file_name=export.filename, mime="text/csv")


def render_pagination():
    window = paginator.window()
    if not window.show_controls:
        return
    c1, c2, c3, c4, c5, c6, c7 = st.columns([4, 1, 1, 1, 2, 1, 1])
    c1.caption(window.summary)
    size = c2.selectbox("Rows", PAGE_SIZE_OPTIONS, index=PAGE_SIZE_OPTIONS.index(window.page_size) if window.page_size in PAGE_SIZE_OPTIONS else 0, label_visibility="collapsed")
    if size != window.page_size:
        paginator.set_page_size(size)
        st.rerun()
    if c3.button("⏮", disabled=window.is_first_page):
        paginator.go_first()
        st.rerun()
    if c4.button("◀", disabled=window.is_first_page):
        paginator.go_prev()
        st.rerun()
    c5.markdown(f"Page {window.page} of {window.total_pages}")
    if c6.button("▶", disabled=window.is_last_page):
        paginator.go_next()
        st.rerun()
    if c7.button("⏭", disabled=window.is_last_page):
        paginator.go_last()
        st.rerun()


def render_table():
    view = build_table(navigator.rows, table_config, paginator=paginator, drill_column=navigator.drill_column)
    if view.empty_message:
        st.info(view.empty_message)
        return
    display = pd.DataFrame([[cell.text for cell in row] for row in view.rows], columns=view.columns)
    event = st.dataframe(
        display,
        use_container_width=True,
        hide_index=True,
        on_select="rerun" if navigator.can_drill else "ignore",
        selection_mode="single-row",
        key=f"table_{navigator.current_level}_{window_key()}",
    )
    selected = list(getattr(getattr(event, "selection", None), "rows", []) or [])
    selection_key = (navigator.current_level, window_key(), selected[0] if selected else None)
    if selected and navigator.can_drill and st.session_state.get("_handled_selection") != selection_key:
        st.session_state["_handled_selection"] = selection_key
        row = view.window.visible_rows[selected[0]]
        if run(navigator.drill_down(row)):
            st.rerun()
    render_pagination()


def window_key() -> str:
    window = paginator.window()
    return f"{window.page}_{window.page_size}"


def render_chart():
    dimension = navigator.config.hierarchy[navigator.current_level]
    spec = drill_level_chart(navigator.rows, dimension.column, value_columns[0], title=dimension.label, value_format=value_spec)
    if spec:
        st.vega_lite_chart(spec, use_container_width=True)


with card("Drill-down"):
    render_breadcrumb()
    render_actions()
    render_table()

with card("Level chart"):
    render_chart()

flush_notifications(navigator)
