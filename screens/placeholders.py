# app/screens/placeholders.py
"""Pages that only carry their title for now (teachers, schedules, grades, communications)."""

from __future__ import annotations
import streamlit as st

from core.context import PageContext
from core.nav_registry import ROUTE_INDEX


def render(ctx: PageContext):
    page = ctx.router.state.active_page
    route = ROUTE_INDEX.get(page)
    icon = route.icon if route else ""
    st.title(f"{icon} {ctx.labels.page(page)}".strip())
    st.info("This section is not available yet.")
