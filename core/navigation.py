# app/core/navigation.py
"""
Path router for the console.

Paths look like ``/<lang>/<page>/<segments...>``. Every navigation is a
single typed ``NavCommand`` handed to ``Router.dispatch``; the router turns it
into a path, normalises it against the session (logged out -> login, student
-> student dashboard, unknown page -> dashboard) and replaces its RouteState
wholesale.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import quote

from core.nav_registry import DEFAULT_ROUTE_KEY, HOME_PAGES, LOGIN_PAGE, ROUTE_INDEX, STUDENT_ROUTE
from core.session import Session

logger = logging.getLogger(__name__)

PAYMENTS_PAGE = "payments"
STUDENTS_PAGE = "students"
PAYMENTS_DEFAULT_SECTION = ROUTE_INDEX[PAYMENTS_PAGE].default_section
STUDENTS_DEFAULT_SECTION = ROUTE_INDEX[STUDENTS_PAGE].default_section
BULK_UPLOAD_SEGMENT = "bulk-upload"
TAB_SEGMENT = "tab"


def encode_segment(value: str) -> str:
    """Percent-encode one path segment the way browsers' encodeURIComponent does."""
    return quote(str(value), safe="!~*'()")


# ============================================================================
# COMMANDS
# ============================================================================

class NavKind(str, Enum):
    PAGE = "page"
    LANGUAGE = "language"
    STUDENTS_SECTION = "students_section"
    STUDENT_DETAIL = "student_detail"
    STUDENT_BULK_UPLOAD = "student_bulk_upload"
    PAYMENTS_SECTION = "payments_section"
    PAYMENT_DETAIL = "payment_detail"
    PAYMENT_REQUEST_DETAIL = "payment_request_detail"
    PAYMENT_REQUEST_SCHEDULE_DETAIL = "payment_request_schedule_detail"
    PAYMENT_REQUEST_RESULT = "payment_request_result"


@dataclass(frozen=True)
class NavCommand:
    kind: NavKind
    target: str = ""
    sub_path: str = ""
    replace: bool = False

    @classmethod
    def page(cls, page_key: str) -> "NavCommand":
        return cls(NavKind.PAGE, page_key)

    @classmethod
    def language(cls, language: str) -> "NavCommand":
        return cls(NavKind.LANGUAGE, language)

    @classmethod
    def students_section(cls, section: str) -> "NavCommand":
        return cls(NavKind.STUDENTS_SECTION, section)

    @classmethod
    def student_detail(cls, student_id) -> "NavCommand":
        return cls(NavKind.STUDENT_DETAIL, "" if student_id is None else str(student_id))

    @classmethod
    def student_bulk_upload(cls) -> "NavCommand":
        return cls(NavKind.STUDENT_BULK_UPLOAD)

    @classmethod
    def payments_section(cls, section: str, sub_path: str = "", replace: bool = False) -> "NavCommand":
        return cls(NavKind.PAYMENTS_SECTION, section, sub_path=sub_path, replace=replace)

    @classmethod
    def payment_detail(cls, payment_id) -> "NavCommand":
        return cls(NavKind.PAYMENT_DETAIL, "" if payment_id is None else str(payment_id))

    @classmethod
    def payment_request_detail(cls, request_id) -> "NavCommand":
        return cls(NavKind.PAYMENT_REQUEST_DETAIL, "" if request_id is None else str(request_id))

    @classmethod
    def payment_request_schedule_detail(cls, schedule_id) -> "NavCommand":
        return cls(NavKind.PAYMENT_REQUEST_SCHEDULE_DETAIL, "" if schedule_id is None else str(schedule_id))

    @classmethod
    def payment_request_result(cls) -> "NavCommand":
        return cls(NavKind.PAYMENT_REQUEST_RESULT)


Dispatch = Callable[[NavCommand], None]


# ============================================================================
# ROUTE STATE
# ============================================================================

@dataclass(frozen=True)
class RouteState:
    language: str
    active_page: str
    segments: Tuple[str, ...] = ()


def split_path(path: str) -> List[str]:
    return [s for s in (path or "").split("/") if s]


def build_path(language: str, page: str, segments: Sequence[str] = ()) -> str:
    return "/" + "/".join([language, page, *segments])


def resolve_page(raw_page: Optional[str], session: Session) -> str:
    if not session.is_authenticated:
        return LOGIN_PAGE
    if session.is_student:
        return STUDENT_ROUTE.key
    if not raw_page or raw_page == LOGIN_PAGE:
        return DEFAULT_ROUTE_KEY
    return raw_page if raw_page in HOME_PAGES else DEFAULT_ROUTE_KEY


def normalize_path(
    path: str, session: Session, supported: Iterable[str], fallback: str
) -> Tuple[RouteState, Optional[str]]:
    """
    RouteState for ``path`` plus the path the browser should be moved to, or
    None when ``path`` is already canonical.
    """
    segments = split_path(path)
    supported = tuple(supported)
    language_valid = bool(segments) and segments[0] in supported
    language = segments[0] if language_valid else fallback
    rest = segments[1:] if language_valid else segments
    raw_page = rest[0] if rest else None
    detail_segments = tuple(rest[1:])

    page = resolve_page(raw_page, session)

    if page == LOGIN_PAGE:
        state = RouteState(language, LOGIN_PAGE)
        return state, None if raw_page == LOGIN_PAGE else build_path(language, LOGIN_PAGE)

    if page == STUDENT_ROUTE.key:
        state = RouteState(language, page)
        return state, None if raw_page == page else build_path(language, page)

    if page != raw_page:
        return RouteState(language, page), build_path(language, page)

    return RouteState(language, page, detail_segments), None


def path_for(command: NavCommand, state: RouteState, supported: Iterable[str]) -> Optional[str]:
    """Target path for ``command``; None when the command carries nothing to do."""
    lang = state.language
    kind = command.kind
    target = (command.target or "").strip()

    if kind is NavKind.PAGE:
        return build_path(lang, target if target in HOME_PAGES else DEFAULT_ROUTE_KEY)

    if kind is NavKind.LANGUAGE:
        if target not in tuple(supported) or target == lang:
            return None
        return build_path(target, state.active_page, state.segments)

    if kind is NavKind.STUDENTS_SECTION:
        if not target or target == STUDENTS_DEFAULT_SECTION:
            return build_path(lang, STUDENTS_PAGE)
        return build_path(lang, STUDENTS_PAGE, (TAB_SEGMENT, encode_segment(target)))

    if kind is NavKind.STUDENT_BULK_UPLOAD:
        return build_path(lang, STUDENTS_PAGE, (BULK_UPLOAD_SEGMENT,))

    if kind is NavKind.PAYMENTS_SECTION:
        extra: List[str] = []
        if target and target != PAYMENTS_DEFAULT_SECTION:
            extra.append(encode_segment(target))
        extra.extend(encode_segment(s.strip()) for s in split_path(command.sub_path))
        return build_path(lang, PAYMENTS_PAGE, extra)

    if kind is NavKind.PAYMENT_REQUEST_RESULT:
        return build_path(lang, PAYMENTS_PAGE, ("requests", "result"))

    # Remaining kinds all address a detail record and need an identifier.
    if not target:
        return None
    safe_id = encode_segment(command.target)
    if kind is NavKind.STUDENT_DETAIL:
        return build_path(lang, STUDENTS_PAGE, (safe_id,))
    if kind is NavKind.PAYMENT_DETAIL:
        return build_path(lang, PAYMENTS_PAGE, ("payments", safe_id))
    if kind is NavKind.PAYMENT_REQUEST_DETAIL:
        return build_path(lang, PAYMENTS_PAGE, ("requests", safe_id))
    if kind is NavKind.PAYMENT_REQUEST_SCHEDULE_DETAIL:
        return build_path(lang, PAYMENTS_PAGE, ("requests", "scheduled", safe_id))
    raise ValueError(f"Unknown navigation command: {kind}")


# ============================================================================
# ROUTER
# ============================================================================

class Router:
    """Owns the current path and RouteState. The only consumer of NavCommands."""

    def __init__(
        self,
        path: str,
        session: Session,
        supported: Iterable[str],
        fallback: str,
        on_change: Optional[Callable[[str], None]] = None,
    ):
        self.session = session
        self.supported = tuple(supported)
        self.fallback = fallback
        self.on_change = on_change
        self.history: List[str] = []
        self.path = ""
        self.state = RouteState(fallback, LOGIN_PAGE)
        self._apply(path or "/")

    def _apply(self, path: str) -> None:
        state, canonical = normalize_path(path, self.session, self.supported, self.fallback)
        if canonical and canonical != path:
            logger.debug(f"Normalising route {path} -> {canonical}")
            path = canonical
        self.path = path
        self.state = state

    def navigate(self, path: str, replace: bool = False) -> None:
        if path != self.path and not replace:
            self.history.append(self.path)
        self._apply(path)
        if self.on_change is not None:
            self.on_change(self.path)

    def dispatch(self, command: NavCommand) -> None:
        target = path_for(command, self.state, self.supported)
        if target is None:
            return
        self.navigate(target, replace=command.replace)

    def back(self) -> bool:
        if not self.history:
            return False
        self._apply(self.history.pop())
        if self.on_change is not None:
            self.on_change(self.path)
        return True

    def set_session(self, session: Session) -> None:
        """Re-normalise the current path after login/logout."""
        self.session = session
        self.navigate(self.path, replace=True)
