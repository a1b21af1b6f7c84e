# screens/payments/page.py
from __future__ import annotations
import logging

import streamlit as st

from core.context import PageContext
from core.navigation import NavCommand, PAYMENTS_DEFAULT_SECTION
from core.report_query import ReportQueryEngine
from core.routing import SubView
from screens.payments import details, report_table

logger = logging.getLogger(__name__)

SECTIONS = (PAYMENTS_DEFAULT_SECTION, "payments", "requests")

# Non-report tabs open a record by its identifier.
OPENERS = {
    "payments": (("detail.payment", NavCommand.payment_detail),),
    "requests": (
        ("detail.payment_request", NavCommand.payment_request_detail),
        ("detail.payment_request_schedule", NavCommand.payment_request_schedule_detail),
    ),
}


def _engine(ctx: PageContext) -> ReportQueryEngine:
    """One report engine per signed-in session."""
    key = "payments__engine"
    if key not in st.session_state:
        report = ctx.settings.report
        st.session_state[key] = ReportQueryEngine(
            ctx.api.fetch_report,
            ctx.language,
            page_size=report.page_size,
            reportable_tab=report.reportable_tab,
        )
    return st.session_state[key]


def _render_section_picker(ctx: PageContext, section: str):
    options = list(SECTIONS) if section in SECTIONS else [*SECTIONS, section]
    choice = st.radio(
        "Section",
        options,
        index=options.index(section),
        format_func=ctx.labels.section,
        horizontal=True,
        label_visibility="collapsed",
        key=f"payments__section_{section}",
    )
    if choice != section:
        ctx.dispatch(NavCommand.payments_section(choice))
        st.rerun()


def _render_opener(ctx: PageContext, label_key: str, command):
    c1, c2 = st.columns([0.7, 0.3])
    with c1:
        ident = st.text_input(f"{ctx.labels.get(label_key)}: ID", key=f"payments__open_{label_key}")
    with c2:
        st.write("")
        if st.button("Open", key=f"payments__open_btn_{label_key}", disabled=not ident.strip()):
            ctx.dispatch(command(ident.strip()))
            st.rerun()


def render(ctx: PageContext):
    route = ctx.route
    section = route.section_key

    engine = _engine(ctx)
    engine.set_language(ctx.language)
    # Leaving the reportable tab drops filters and rows
    engine.set_active_tab(section if not route.is_detail and route.sub_view is None else "")

    st.title(f"💳 {ctx.labels.page('payments')}")

    if route.is_detail:
        details.render(ctx, route.detail_view)
        return
    st.session_state.pop(details.DETAIL_KEY, None)

    if route.sub_view is SubView.REQUEST_RESULT:
        st.subheader(ctx.labels.get("view.request_result"))
        st.info("Bulk request creation is not part of this console, so there are no results to show.")
        return

    _render_section_picker(ctx, section)

    if engine.is_reportable:
        report_table.render(ctx, engine)
        return

    openers = OPENERS.get(section)
    if not openers:
        st.info(f"{ctx.labels.section(section)}: no records to show.")
        return
    for label_key, command in openers:
        _render_opener(ctx, label_key, command)
