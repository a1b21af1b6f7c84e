# screens/payments/report_table.py
"""
Tuition report: filter form, sortable headers, paged table and CSV export.

All state lives in the ReportQueryEngine kept in st.session_state; this
module only turns widget events into engine calls and renders its rows.
"""

from __future__ import annotations
import logging
import re
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from core.context import PageContext
from core.csv_export import CSV_MIME, CsvExporter, entity_cell
from core.navigation import NavCommand
from core.report_query import (
    ASC,
    REPORT_COLUMNS,
    ReportQueryEngine,
    format_month_cell,
)
from core.ui import render_pagination, run_async, show_error

logger = logging.getLogger(__name__)

MONTH_INPUT_PATTERN = re.compile(r"^\d{4}-\d{2}$")

TEXT_FILTERS = (
    ("student_full_name", "Student"),
    ("payment_reference", "Reference"),
    ("generation", "Generation"),
    ("grade_group", "Group"),
    ("scholar_level", "Level"),
)


def _k(s: str) -> str:
    return f"payments__{s}"


def _schools(ctx: PageContext) -> List[Dict[str, Any]]:
    cache_key = _k("schools")
    cached = st.session_state.get(cache_key)
    if cached is not None and cached.get("lang") == ctx.language:
        return cached["items"]
    try:
        items = ctx.api.school_list(ctx.language)
    except Exception as e:
        logger.warning(f"School list unavailable: {e}")
        items = []
    st.session_state[cache_key] = {"lang": ctx.language, "items": items}
    return items


def _month_or_none(raw: str, label: str) -> Optional[str]:
    value = (raw or "").strip()
    if value and not MONTH_INPUT_PATTERN.match(value):
        st.warning(f"{label} must look like YYYY-MM; ignored.")
        return None
    return value


# ────────────────────────────────────────────────────────────────────────────────
# Filters
# ────────────────────────────────────────────────────────────────────────────────

def _render_filters(ctx: PageContext, engine: ReportQueryEngine):
    state = engine.state
    current = state.filter_map()
    schools = _schools(ctx)
    school_options = [""] + [str(s.get("school_id", s.get("id", ""))) for s in schools]
    school_names = {str(s.get("school_id", s.get("id", ""))): s.get("description") or s.get("name") or "" for s in schools}

    with st.form(_k("filters")):
        cols = st.columns(len(TEXT_FILTERS))
        values: Dict[str, Any] = {}
        for col, (key, label) in zip(cols, TEXT_FILTERS):
            with col:
                values[key] = st.text_input(label, value=current.get(key, ""), key=_k(f"f_{key}"))

        c1, c2, c3, c4 = st.columns(4)
        with c1:
            selected = str(current.get("school_id", ""))
            values["school_id"] = st.selectbox(
                "School",
                school_options,
                index=school_options.index(selected) if selected in school_options else 0,
                format_func=lambda v: school_names.get(v) or v or "All",
                key=_k("f_school"),
            )
        with c2:
            start = st.text_input("From (YYYY-MM)", value=state.start_month, key=_k("f_start"))
        with c3:
            end = st.text_input("To (YYYY-MM)", value=state.end_month, key=_k("f_end"))
        with c4:
            values["group_status"] = st.checkbox("Active groups", value=bool(current.get("group_status")), key=_k("f_group_status"))
            values["user_status"] = st.checkbox("Active students", value=bool(current.get("user_status")), key=_k("f_user_status"))
            debt_only = st.checkbox("Only with debt", value=state.show_debt_only, key=_k("f_debt"))

        apply_col, reset_col = st.columns([0.2, 0.8])
        with apply_col:
            applied = st.form_submit_button("Apply", type="primary")
        with reset_col:
            reset = st.form_submit_button("Reset filters")

    if reset:
        engine.reset()
        for key in list(st.session_state.keys()):
            if key.startswith(_k("f_")):
                del st.session_state[key]
        st.rerun()

    if not applied:
        return

    for key, value in values.items():
        if value != current.get(key):
            engine.apply_filter(key, value)
    start_month = _month_or_none(start, "From")
    if start_month is not None and start_month != state.start_month:
        engine.set_start_month(start_month)
    end_month = _month_or_none(end, "To")
    if end_month is not None and end_month != state.end_month:
        engine.set_end_month(end_month)
    if debt_only != state.show_debt_only:
        engine.set_show_debt_only(debt_only)


# ────────────────────────────────────────────────────────────────────────────────
# Table
# ────────────────────────────────────────────────────────────────────────────────

def _render_sort_headers(ctx: PageContext, engine: ReportQueryEngine):
    cols = st.columns(len(REPORT_COLUMNS))
    for col, column in zip(cols, REPORT_COLUMNS):
        label = ctx.labels.get(column.label_key)
        if engine.state.order_by == column.key:
            label = f"{label} {'▲' if engine.state.order_dir == ASC else '▼'}"
        with col:
            if st.button(label, key=_k(f"sort_{column.key}"), disabled=not column.sortable, use_container_width=True):
                engine.set_sort(column.key)
                st.rerun()


def _table_frame(ctx: PageContext, engine: ReportQueryEngine) -> pd.DataFrame:
    headers = [ctx.labels.get(c.label_key) for c in REPORT_COLUMNS] + engine.dynamic_columns
    records = []
    for row in engine.rows:
        cells = [entity_cell(row, ctx.labels)]
        cells += ["" if row.get(c.key) is None else str(row.get(c.key)) for c in REPORT_COLUMNS[1:]]
        cells += [format_month_cell(row.get(m)) for m in engine.dynamic_columns]
        records.append(cells)
    return pd.DataFrame(records, columns=headers)


def _render_table(ctx: PageContext, engine: ReportQueryEngine):
    if not engine.rows:
        st.info("No records match the current filters.")
        return

    df = _table_frame(ctx, engine)
    event = st.dataframe(
        df,
        hide_index=True,
        use_container_width=True,
        on_select="rerun",
        selection_mode="single-row",
        key=_k("table"),
    )
    selected = list(getattr(getattr(event, "selection", None), "rows", []) or [])
    if selected:
        row = engine.rows[selected[0]]
        student_id = row.get("student_id")
        if student_id is not None:
            ctx.dispatch(NavCommand.student_detail(student_id))
            st.rerun()


def _render_export(ctx: PageContext, engine: ReportQueryEngine):
    if not st.button("⬇️ Export CSV", key=_k("export")):
        return
    exporter = CsvExporter(ctx.api.fetch_report, ctx.labels)
    try:
        with st.spinner("Preparing export…"):
            csv_file = run_async(exporter.export(engine.state, ctx.language))
    except Exception as e:
        show_error(e, "Export")
        return
    st.download_button(
        f"Download {csv_file.filename}",
        csv_file.data,
        file_name=csv_file.filename,
        mime=CSV_MIME,
        key=_k("export_dl"),
    )
    st.caption(f"{csv_file.row_count} row(s) exported.")


def render(ctx: PageContext, engine: ReportQueryEngine):
    _render_filters(ctx, engine)

    if engine.needs_refresh:
        try:
            with st.spinner("Loading report…"):
                committed = run_async(engine.refresh())
        except Exception as e:
            show_error(e, "Report")
            return
        # A smaller result set can leave the current page past the end
        if committed and engine.clamp_page():
            st.rerun()

    if engine.error is not None:
        # Previous rows stay on screen under the message
        show_error(engine.error, "Report")

    _render_sort_headers(ctx, engine)
    _render_table(ctx, engine)

    requested = render_pagination(engine.current_page, engine.total_pages, key=_k("pager"))
    if requested is not None:
        engine.set_page(requested)
        st.rerun()

    st.caption(f"{engine.total_elements} record(s)")
    _render_export(ctx, engine)
