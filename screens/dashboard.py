# app/screens/dashboard.py
from __future__ import annotations
import streamlit as st

from core.context import PageContext
from core.nav_registry import build_menu_items
from core.navigation import NavCommand


def render(ctx: PageContext):
    name = ctx.session.display_name or ctx.labels.get("home")
    st.title(f"👋 {name}")

    items = [m for m in build_menu_items(ctx.labels, ctx.allowed_keys) if m.key != "dashboard"]
    if not items:
        st.info("No modules are enabled for your account.")
        return

    cols = st.columns(min(3, len(items)))
    for i, item in enumerate(items):
        with cols[i % len(cols)]:
            if st.button(f"{item.icon} {item.label}", key=f"dash_{item.key}", use_container_width=True):
                ctx.dispatch(NavCommand.page(item.key))
                st.rerun()
