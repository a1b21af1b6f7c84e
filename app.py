# app.py
from __future__ import annotations
import importlib
import logging
from typing import FrozenSet

import streamlit as st

from core.api import ApiClient
from core.context import PageContext
from core.db import get_engine, init_db
from core.entitlements import EntitlementGate
from core.errors import SessionExpiredError
from core.i18n import get_labels
from core.nav_registry import DEFAULT_ROUTE_KEY, LOGIN_PAGE, ROUTE_INDEX, ROUTES, STUDENT_ROUTE, build_menu_items
from core.navigation import NavCommand, Router, build_path
from core.routing import DetailLabelCache, RouteResolver
from core.session import SESSION_EXPIRED_FLAG, Session, SessionStore, clear_session_scope, read_language, save_language
from core.settings import Settings, load_settings
from core.ui import render_breadcrumbs
from screens import logout as logout_screen

logger = logging.getLogger("app")

LOGIN_SCREEN = "screens.login"


def _ensure_settings() -> Settings:
    if "settings" not in st.session_state:
        settings = load_settings()
        logging.basicConfig(
            level=logging.DEBUG if settings.app.debug else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        st.session_state["settings"] = settings
    return st.session_state["settings"]


def _ensure_engine(settings: Settings):
    if "engine" not in st.session_state:
        st.session_state["engine"] = get_engine(settings.db.url)
    engine = st.session_state["engine"]

    # Run database initialization ONCE per session.
    if "db_initialized" not in st.session_state:
        try:
            init_db(engine)
        except Exception as e:
            logger.error(f"Client store initialization failed: {e}", exc_info=True)
            st.error("Local storage initialization failed. See details below.")
            with st.expander("Diagnostics"):
                st.exception(e)
            st.stop()
        st.session_state["db_initialized"] = True
    return engine


def _sync_query_path(path: str) -> None:
    st.query_params["path"] = path


def _ensure_router(settings: Settings, engine, session: Session) -> Router:
    i18n = settings.i18n
    if "router" not in st.session_state:
        language = read_language(engine, i18n.supported_languages, i18n.fallback_language)
        initial = st.query_params.get("path") or build_path(language, "")
        st.session_state["router"] = Router(
            initial,
            session,
            i18n.supported_languages,
            i18n.fallback_language,
            on_change=_sync_query_path,
        )
        _sync_query_path(st.session_state["router"].path)
    router: Router = st.session_state["router"]

    if session != router.session:
        # Stored session changed outside this run (another tab signed in or out)
        clear_session_scope(st.session_state)
        router.set_session(session)

    # Address bar edited by hand, or browser history
    requested = st.query_params.get("path")
    if requested and requested != router.path:
        router.navigate(requested, replace=True)
    return router


def _ensure_api(settings: Settings, session: Session) -> ApiClient:
    if "api" not in st.session_state:
        st.session_state["api"] = ApiClient(settings.api, session)
    api: ApiClient = st.session_state["api"]
    api.session = session
    return api


def _allowed_keys(api: ApiClient, session: Session) -> FrozenSet[str]:
    if not session.is_authenticated:
        return frozenset()
    if "allowed_keys" not in st.session_state:
        try:
            entitlements = api.access_control()
        except Exception as e:
            logger.warning(f"Access-control lookup failed: {e}")
            if isinstance(e, SessionExpiredError):
                st.session_state[SESSION_EXPIRED_FLAG] = True
            st.sidebar.warning("Modules could not be loaded.")
            return frozenset()
        st.session_state["allowed_keys"] = EntitlementGate().derive(entitlements, session.token)
    return st.session_state["allowed_keys"]


def _render_sidebar(ctx: PageContext):
    with st.sidebar:
        st.markdown(f"### {ctx.settings.app.name}")
        if ctx.session.display_name:
            st.caption(f"Signed in as **{ctx.session.display_name}**")

        if not ctx.session.is_student:
            active = ctx.router.state.active_page
            for item in build_menu_items(ctx.labels, ctx.allowed_keys):
                button_type = "primary" if item.key == active else "secondary"
                if st.button(f"{item.icon} {item.label}", key=f"menu_{item.key}", type=button_type, use_container_width=True):
                    ctx.dispatch(NavCommand.page(item.key))
                    st.rerun()

        st.markdown("---")
        languages = list(ctx.settings.i18n.supported_languages)
        choice = st.selectbox(
            "Language",
            languages,
            index=languages.index(ctx.language) if ctx.language in languages else 0,
            format_func=str.upper,
            key="language_select",
        )
        if choice != ctx.language:
            save_language(ctx.engine, choice)
            ctx.dispatch(NavCommand.language(choice))
            st.rerun()

    logout_screen.render_button(ctx)


def _permitted(ctx: PageContext, page: str) -> bool:
    """Direct URLs obey the same entitlements as the menu once they are known."""
    if page in (DEFAULT_ROUTE_KEY, STUDENT_ROUTE.key) or "allowed_keys" not in st.session_state:
        return True
    return EntitlementGate().permits(ctx.allowed_keys, page)


def _render_not_permitted(ctx: PageContext):
    logger.info(f"Blocked direct navigation to '{ctx.route.active_page}'")
    st.warning(f"{ctx.labels.page(ctx.route.active_page)} is not enabled for your account.")
    if st.button(ctx.labels.get("home"), key="not_permitted_home"):
        ctx.dispatch(NavCommand.page(DEFAULT_ROUTE_KEY))
        st.rerun()


def _screen_module(page: str) -> str:
    if page == LOGIN_PAGE:
        return LOGIN_SCREEN
    if page == STUDENT_ROUTE.key:
        return STUDENT_ROUTE.screen
    return ROUTE_INDEX.get(page, ROUTES[0]).screen


def main():
    settings = _ensure_settings()
    st.set_page_config(page_title=settings.app.name, layout="wide", initial_sidebar_state="auto")

    engine = _ensure_engine(settings)
    store = SessionStore(engine)
    session = store.read()
    router = _ensure_router(settings, engine, session)
    api = _ensure_api(settings, session)

    state = router.state
    labels = get_labels(state.language)
    resolver = RouteResolver(labels, router.dispatch)

    detail_labels: DetailLabelCache = st.session_state.setdefault("detail_labels", DetailLabelCache())
    route = resolver.resolve(state.active_page, state.segments)
    detail_labels.sync(route.detail_view)
    route = resolver.resolve(state.active_page, state.segments, detail_labels.label)

    ctx = PageContext(
        settings=settings,
        engine=engine,
        session=session,
        session_store=store,
        api=api,
        router=router,
        labels=labels,
        resolver=resolver,
        route=route,
        detail_labels=detail_labels,
        allowed_keys=_allowed_keys(api, session),
    )

    # A 401 flagged by the previous run that ended early
    if logout_screen.handle_expiry(ctx):
        st.rerun()

    module = importlib.import_module(_screen_module(state.active_page))
    if state.active_page == LOGIN_PAGE:
        module.render(ctx)
        return

    _render_sidebar(ctx)
    crumbs_slot = st.container()
    if _permitted(ctx, state.active_page):
        module.render(ctx)
    else:
        _render_not_permitted(ctx)

    if logout_screen.handle_expiry(ctx):
        if st.button("Sign in again", type="primary", key="expired_signin"):
            st.rerun()
        return

    # The screen may have learned the detail label while rendering
    with crumbs_slot:
        crumbs = resolver.breadcrumbs(
            route.active_page, route.section_key, route.detail_view, route.sub_view, detail_labels.label
        )
        render_breadcrumbs(crumbs)


if __name__ == "__main__":
    main()
