# screens/payments/details.py
from __future__ import annotations
import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
import streamlit as st

from core.context import PageContext
from core.details import (
    PAYMENT_FIELDS,
    PAYMENT_REQUEST_FIELDS,
    REQUEST_STUDENT_FIELDS,
    SCHEDULE_FIELDS,
    DetailPage,
    load_with_logs,
    newest_first,
    payment_label,
    payment_request_label,
    record_fields,
    schedule_label,
)
from core.navigation import NavCommand
from core.routing import PAYMENTS_SECTION, REQUESTS_SECTION, DetailKind, DetailView
from core.ui import run_async, show_error

logger = logging.getLogger(__name__)

DETAIL_KEY = "payments__detail"

# Columns shown for each log feed, in order; missing ones are skipped.
PAYMENT_LOG_COLUMNS = ("updated_at", "log_type_name", "responsable_full_name", "role_name", "changes")
SCHEDULE_LOG_COLUMNS = ("reference_date", "type", "title", "message", "created_count", "duplicate_count")


def _humanize(key: str) -> str:
    return key.replace("_", " ").strip().capitalize()


def _fetch(ctx: PageContext, detail: DetailView):
    api, lang, ident = ctx.api, ctx.language, detail.identifier
    if detail.kind is DetailKind.PAYMENT:
        return load_with_logs(api.payment_detail(ident, lang), api.payment_logs(ident, lang))
    if detail.kind is DetailKind.PAYMENT_REQUEST:
        return load_with_logs(api.payment_request_detail(ident, lang), api.payment_request_logs(ident, lang))
    return load_with_logs(api.schedule_detail(ident), api.schedule_logs(ident, lang))


def _load(ctx: PageContext, detail: DetailView, reload: bool = False) -> Optional[DetailPage]:
    """Detail record and logs for ``detail``, fetched once per identity and language."""
    cached = st.session_state.get(DETAIL_KEY)
    if not reload and cached and cached["view"] == detail and cached["lang"] == ctx.language:
        return cached["page"]
    try:
        with st.spinner("Loading…"):
            page = run_async(_fetch(ctx, detail))
    except Exception as e:
        st.session_state.pop(DETAIL_KEY, None)
        show_error(e, f"Unable to load {ctx.labels.get(f'detail.{detail.kind.value}').lower()}")
        return None
    st.session_state[DETAIL_KEY] = {"view": detail, "lang": ctx.language, "page": page}
    return page


def _breadcrumb_label(ctx: PageContext, detail: DetailView, record: Any) -> str:
    fallback = ctx.labels.get(f"detail.{detail.kind.value}")
    if detail.kind is DetailKind.PAYMENT:
        return payment_label(record, detail.identifier)
    if detail.kind is DetailKind.PAYMENT_REQUEST:
        return payment_request_label(record, fallback, detail.identifier)
    return schedule_label(fallback, detail.identifier)


def _render_fields(title: str, fields: Sequence[Tuple[str, Any]]):
    if not fields:
        return
    st.markdown(f"**{title}**")
    cols = st.columns(3)
    for i, (key, value) in enumerate(fields):
        with cols[i % 3]:
            st.caption(_humanize(key))
            st.write(value if not isinstance(value, (dict, list)) else str(value))


def _render_logs(page: DetailPage, columns: Sequence[str], date_key: str):
    st.markdown("**History**")
    if page.logs_error is not None:
        show_error(page.logs_error, "History unavailable")
        return
    if not page.logs:
        st.caption("No changes recorded.")
        return
    entries: List[Mapping[str, Any]] = newest_first(page.logs, date_key)
    present = [c for c in columns if any(c in e for e in entries)]
    frame = pd.DataFrame([{_humanize(c): _log_cell(e.get(c)) for c in present} for e in entries])
    st.dataframe(frame, hide_index=True, use_container_width=True)


def _log_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(_log_cell(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {v}" for k, v in value.items())
    return str(value)


def _render_record(detail: DetailView, record: Any):
    if detail.kind is DetailKind.PAYMENT:
        if record is None:
            st.info("Payment not found.")
            return
        _render_fields("Payment", record_fields(record, PAYMENT_FIELDS))
    elif detail.kind is DetailKind.PAYMENT_REQUEST:
        _render_fields("Request", record_fields(record.request, PAYMENT_REQUEST_FIELDS))
        _render_fields("Student", record_fields(record.student_record, REQUEST_STUDENT_FIELDS))
    else:
        _render_fields("Schedule", record_fields(record, SCHEDULE_FIELDS))
        for target in ("student_detail", "group_detail", "school_detail"):
            value = record.get(target)
            if isinstance(value, dict) and value:
                _render_fields(_humanize(target), record_fields(value, tuple(value)))


def render(ctx: PageContext, detail: DetailView):
    back_section = PAYMENTS_SECTION if detail.kind is DetailKind.PAYMENT else REQUESTS_SECTION
    left, right = st.columns([0.8, 0.2])
    with left:
        if st.button("← Back", key="payments__back"):
            ctx.dispatch(NavCommand.payments_section(back_section))
            st.rerun()
    with right:
        reload = st.button("↻ Reload", key="payments__detail_reload")

    st.subheader(ctx.labels.get(f"detail.{detail.kind.value}"))
    page = _load(ctx, detail, reload=reload)
    if page is None:
        return

    ctx.detail_labels.remember(detail, _breadcrumb_label(ctx, detail, page.record))
    _render_record(detail, page.record)

    st.markdown("---")
    if detail.kind is DetailKind.PAYMENT_REQUEST_SCHEDULE:
        _render_logs(page, SCHEDULE_LOG_COLUMNS, "reference_date")
    else:
        _render_logs(page, PAYMENT_LOG_COLUMNS, "updated_at")
