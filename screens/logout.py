# app/screens/logout.py
from __future__ import annotations
import logging

import streamlit as st

from core.context import PageContext
from core.session import ANONYMOUS, SESSION_EXPIRED_FLAG, clear_session_scope

logger = logging.getLogger(__name__)


def end_session(ctx: PageContext, reason: str) -> None:
    """Forget the stored session and every piece of UI state tied to it."""
    ctx.session_store.invalidate()
    ctx.api.session = ANONYMOUS
    ctx.router.set_session(ANONYMOUS)
    dropped = clear_session_scope(st.session_state)
    logger.info(f"{reason}; cleared {len(dropped)} session key(s)")


def logout(ctx: PageContext) -> None:
    end_session(ctx, "Signed out")


def handle_expiry(ctx: PageContext) -> bool:
    """End the session if an API call reported a 401 during this run. True when it did."""
    if not st.session_state.pop(SESSION_EXPIRED_FLAG, False):
        return False
    end_session(ctx, "Session expired")
    return True


def render_button(ctx: PageContext):
    if st.sidebar.button("🚪 Logout", key="logout_btn", use_container_width=True):
        logout(ctx)
        st.rerun()
