# app/screens/login.py
from __future__ import annotations
import logging

import streamlit as st

from core.context import PageContext
from core.session import clear_session_scope
from core.ui import hide_sidebar, show_error

logger = logging.getLogger(__name__)


def render(ctx: PageContext):
    hide_sidebar()
    st.title(ctx.settings.app.name)
    st.subheader("Login")

    with st.form("login_form"):
        username = st.text_input("Username or email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login", type="primary")

    if not submitted:
        return

    if not username.strip() or not password:
        st.warning("Enter your username and password.")
        return

    try:
        session = ctx.api.login(username.strip(), password)
    except Exception as e:
        show_error(e, "Login failed")
        return

    ctx.session_store.save(session)
    ctx.router.set_session(session)
    # Menu entitlements, report rows and caches belong to the previous session
    clear_session_scope(st.session_state)
    logger.info(f"Signed in as {session.display_name or 'user'}")
    st.rerun()
