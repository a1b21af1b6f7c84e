# app/core/ui.py
from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Optional, Sequence, TypeVar

import streamlit as st

from core.errors import ConsoleError, ExportEmptyError, SessionExpiredError, ValidationError
from core.routing import BreadcrumbItem
from core.session import SESSION_EXPIRED_FLAG

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_async(coro: Awaitable[T]) -> T:
    """Drive one async operation to completion from a Streamlit script run."""
    return asyncio.run(coro)


def hide_sidebar():
    st.markdown("""
        <style>
            section[data-testid="stSidebar"] {
                display: none;
            }
        </style>
    """, unsafe_allow_html=True)


def show_error(e: Exception, context: str = "") -> None:
    """Render an error caught at an operation boundary as a page message."""
    prefix = f"{context}: " if context else ""
    if isinstance(e, ExportEmptyError):
        st.warning(f"{prefix}{e}")
    elif isinstance(e, SessionExpiredError):
        # Picked up by the app after the screen renders; see logout.handle_expiry
        st.session_state[SESSION_EXPIRED_FLAG] = True
        st.warning("Your session has expired. Please sign in again.")
    elif isinstance(e, ValidationError):
        st.error(f"{prefix}{e}")
        for field_name, message in e.errors.items():
            st.caption(f"• **{field_name}**: {message}")
    elif isinstance(e, ConsoleError):
        st.error(f"{prefix}{e}")
    else:
        logger.error(f"Unexpected error {context}: {e}", exc_info=True)
        st.error(f"{prefix}Unexpected error")
        with st.expander("Diagnostics"):
            st.exception(e)


def render_breadcrumbs(items: Sequence[BreadcrumbItem], key: str = "crumb") -> None:
    if not items:
        return
    cols = st.columns(len(items))
    for i, (col, item) in enumerate(zip(cols, items)):
        with col:
            if item.action is None:
                st.markdown(f"**{item.label}**")
            elif st.button(item.label, key=f"{key}_{i}", type="tertiary"):
                item.action()
                st.rerun()


def render_pagination(current_page: int, total_pages: int, key: str) -> Optional[int]:
    """Prev / next controls. Returns the requested page, or None."""
    left, mid, right = st.columns([0.2, 0.6, 0.2])
    requested: Optional[int] = None
    with left:
        if st.button("◀", key=f"{key}_prev", disabled=current_page <= 1):
            requested = current_page - 1
    with mid:
        st.caption(f"Page {current_page} / {total_pages}")
    with right:
        if st.button("▶", key=f"{key}_next", disabled=current_page >= total_pages):
            requested = current_page + 1
    return requested


def field_value(values: dict, key: str) -> Any:
    value = values.get(key)
    return "" if value is None else value
