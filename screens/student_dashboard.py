# app/screens/student_dashboard.py
from __future__ import annotations
import logging
from typing import Optional

import pandas as pd
import streamlit as st

from core.context import PageContext
from core.details import PROFILE_FIELDS, StudentDashboard, load_student_dashboard, record_fields
from core.ui import run_async, show_error

logger = logging.getLogger(__name__)

DATA_KEY = "student_dashboard__data"

PENDING_COLUMNS = ("payment_request_id", "pt_name", "payment_month", "pr_amount", "pr_pay_by", "ps_pr_name")
PAYMENT_COLUMNS = ("payment_id", "pt_name", "payment_month", "amount", "payment_status_name", "payment_created_at")
PROFILE_LABELS = {
    "paymentReference": "reference",
    "gradeGroup": "column.grade_group",
    "generation": "column.generation",
}


def _load(ctx: PageContext, reload: bool) -> Optional[StudentDashboard]:
    cached = st.session_state.get(DATA_KEY)
    if not reload and cached and cached["lang"] == ctx.language:
        return cached["data"]
    try:
        with st.spinner("Loading your information…"):
            data = run_async(load_student_dashboard(ctx.api, ctx.language))
    except Exception as e:
        st.session_state.pop(DATA_KEY, None)
        show_error(e, "Unable to load your information")
        return None
    st.session_state[DATA_KEY] = {"lang": ctx.language, "data": data}
    return data


def _table(title: str, rows, columns):
    st.markdown(f"**{title}**")
    if not rows:
        st.caption("Nothing to show.")
        return
    present = [c for c in columns if any(c in r for r in rows)] or sorted({k for r in rows for k in r})
    frame = pd.DataFrame([{c: r.get(c) for c in present} for r in rows]).fillna("")
    st.dataframe(frame, hide_index=True, use_container_width=True)


def render(ctx: PageContext):
    session = ctx.session
    st.title(f"🧑‍🎓 {ctx.labels.page('student-dashboard')}")
    reload = st.button("↻ Refresh", key="student_dashboard__reload")

    data = _load(ctx, reload)
    if data is None:
        return

    st.subheader(data.display_name(session.display_name or "Alumno"))
    profile = record_fields(data.profile, PROFILE_FIELDS)
    if profile:
        cols = st.columns(len(profile))
        for col, (key, value) in zip(cols, profile):
            col.metric(ctx.labels.get(PROFILE_LABELS.get(key, key)), str(value))

    st.metric("Pending balance", f"${data.pending_amount:,.2f}")
    _table("Pending payment requests", data.pending_requests, PENDING_COLUMNS)
    _table("Recent payments", data.recent_payments, PAYMENT_COLUMNS)
