# screens/students/page.py
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import streamlit as st

from core.context import PageContext
from core.errors import ValidationError
from core.forms import (
    FORM_FIELDS,
    REQUIRED_FIELDS,
    build_form_state,
    field_errors,
    merge_saved,
    sanitize_payload,
    student_display_name,
    update_target_id,
    validate_student_form,
)
from core.navigation import NavCommand, STUDENTS_DEFAULT_SECTION
from core.routing import DetailView, SubView
from core.ui import field_value, run_async, show_error

logger = logging.getLogger(__name__)

SECTIONS = (STUDENTS_DEFAULT_SECTION, "groups")
DETAIL_KEY = "students__detail"


def _k(s: str) -> str:
    """Per-page key namespace to avoid collisions if rendered twice."""
    return f"students__{s}"


# ────────────────────────────────────────────────────────────────────────────────
# Detail loading
# ────────────────────────────────────────────────────────────────────────────────

def _load_detail(ctx: PageContext, detail: DetailView) -> Optional[Dict[str, Any]]:
    """Student record for ``detail``, fetched once per identity and language."""
    cached = st.session_state.get(DETAIL_KEY)
    if cached and cached["view"] == detail and cached["lang"] == ctx.language:
        return cached["record"]
    try:
        with st.spinner("Loading student…"):
            record = run_async(ctx.api.student_detail(detail.identifier, ctx.language))
    except Exception as e:
        st.session_state.pop(DETAIL_KEY, None)
        show_error(e, "Unable to load student")
        return None
    st.session_state.pop(_k("form_errors"), None)
    st.session_state[DETAIL_KEY] = {"view": detail, "lang": ctx.language, "record": record}
    return record


def _render_summary(record: Dict[str, Any]):
    name = student_display_name(record)
    initials = "".join(p[0].upper() for p in name.split(" ") if p)[:2]
    st.markdown(f"### {initials} · {name}" if initials else f"### {name}")
    active = bool(record.get("school_enabled") and record.get("role_enabled") and record.get("group_enabled"))
    st.caption("🟢 Active access" if active else "🔴 Access disabled")
    meta = {k: record.get(k) for k in ("register_id", "payment_reference", "grade_group", "generation", "scholar_level_name")}
    st.write({k: v for k, v in meta.items() if v not in (None, "")})


def _render_edit_form(ctx: PageContext, detail: DetailView, record: Dict[str, Any]):
    values = build_form_state(record)
    errors = st.session_state.get(_k("form_errors"), {})

    with st.form(_k(f"edit_{detail.raw_identifier}")):
        cols = st.columns(3)
        submitted_values: Dict[str, Any] = {}
        for i, name in enumerate(FORM_FIELDS):
            label = name.replace("_", " ").capitalize()
            if name in REQUIRED_FIELDS:
                label += " *"
            with cols[i % 3]:
                submitted_values[name] = st.text_input(label, value=str(field_value(values, name)), key=_k(f"in_{detail.raw_identifier}_{name}"))
                if name in errors:
                    st.caption(f"⚠️ {errors[name]}")
        saved = st.form_submit_button("Save", type="primary")

    if not saved:
        return

    try:
        validate_student_form(submitted_values)
    except ValidationError as e:
        st.session_state[_k("form_errors")] = e.errors
        show_error(e, "Not saved")
        return
    st.session_state.pop(_k("form_errors"), None)

    payload = sanitize_payload(submitted_values)
    target_id = update_target_id(record, detail.identifier)
    try:
        result = ctx.api.update_student(target_id, payload, ctx.language)
    except Exception as e:
        show_error(e, "Not saved")
        return

    updated = merge_saved(record, payload)
    st.session_state[DETAIL_KEY] = {"view": detail, "lang": ctx.language, "record": updated}
    ctx.detail_labels.remember(detail, student_display_name(updated))
    st.success(result.message or "Student updated")


def _render_detail(ctx: PageContext, detail: DetailView):
    if st.button("← Back", key=_k("back")):
        ctx.dispatch(NavCommand.students_section(STUDENTS_DEFAULT_SECTION))
        st.rerun()

    record = _load_detail(ctx, detail)
    if record is None:
        return

    ctx.detail_labels.remember(detail, student_display_name(record))
    _render_summary(record)

    pending = field_errors(build_form_state(record))
    if pending:
        st.caption(f"{len(pending)} required field(s) missing on file.")
    with st.expander("✏️ Edit student", expanded=bool(st.session_state.get(_k("form_errors")))):
        _render_edit_form(ctx, detail, record)


def _render_section_picker(ctx: PageContext, section: str):
    options = list(SECTIONS) if section in SECTIONS else [*SECTIONS, section]
    choice = st.radio(
        "Section",
        options,
        index=options.index(section),
        format_func=ctx.labels.section,
        horizontal=True,
        label_visibility="collapsed",
        key=_k(f"section_{section}"),
    )
    if choice != section:
        ctx.dispatch(NavCommand.students_section(choice))
        st.rerun()


def render(ctx: PageContext):
    route = ctx.route
    st.title(f"🎓 {ctx.labels.page('students')}")

    if route.detail_view is not None:
        _render_detail(ctx, route.detail_view)
        return
    st.session_state.pop(DETAIL_KEY, None)

    if route.sub_view is SubView.BULK_UPLOAD:
        st.subheader(ctx.labels.get("view.bulk_upload"))
        st.info("Bulk student upload is not part of this console; add students one at a time from the school platform.")
        return

    _render_section_picker(ctx, route.section_key)

    c1, c2 = st.columns([0.7, 0.3])
    with c1:
        student_id = st.text_input("Open student by ID", key=_k("open_id"))
    with c2:
        st.write("")
        if st.button("Open", key=_k("open_btn"), disabled=not student_id.strip()):
            ctx.dispatch(NavCommand.student_detail(student_id.strip()))
            st.rerun()
    if st.button("📤 " + ctx.labels.get("view.bulk_upload"), key=_k("bulk_btn")):
        ctx.dispatch(NavCommand.student_bulk_upload())
        st.rerun()
