# app/core/routing.py
"""
Route resolver: (active page, path segments) -> section key, detail view and
breadcrumb trail.

Resolution is pure. Breadcrumb actions only wrap the injected dispatch
function; nothing here performs I/O.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote

from core.i18n import Labels
from core.nav_registry import DEFAULT_ROUTE_KEY, HOME_PAGES, STUDENT_ROUTE
from core.navigation import (
    BULK_UPLOAD_SEGMENT,
    PAYMENTS_DEFAULT_SECTION,
    PAYMENTS_PAGE,
    STUDENTS_DEFAULT_SECTION,
    STUDENTS_PAGE,
    TAB_SEGMENT,
    Dispatch,
    NavCommand,
)

logger = logging.getLogger(__name__)

REQUESTS_SECTION = "requests"
PAYMENTS_SECTION = "payments"
SCHEDULED_SEGMENT = "scheduled"
RESULT_SEGMENT = "result"

# Tokens that mean "the default tab" on the payments page.
PAYMENTS_DEFAULT_TOKENS = frozenset({"", PAYMENTS_DEFAULT_SECTION})
# Static sub-resources under /requests; anything else is a request id.
REQUESTS_STATIC_TOKENS = frozenset({SCHEDULED_SEGMENT, RESULT_SEGMENT})
# Static sub-resources on the students page; anything else is a student id.
STUDENTS_STATIC_TOKENS = frozenset({BULK_UPLOAD_SEGMENT, TAB_SEGMENT})


def decode_segment(raw: str) -> str:
    """Percent-decoded segment, or the raw segment when it does not decode."""
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


class DetailKind(str, Enum):
    STUDENT = "student"
    PAYMENT = "payment"
    PAYMENT_REQUEST = "payment_request"
    PAYMENT_REQUEST_SCHEDULE = "payment_request_schedule"


class SubView(str, Enum):
    BULK_UPLOAD = "bulk_upload"
    REQUEST_RESULT = "request_result"


@dataclass(frozen=True)
class DetailView:
    kind: DetailKind
    raw_identifier: str

    @property
    def identifier(self) -> str:
        return decode_segment(self.raw_identifier)


@dataclass(frozen=True)
class BreadcrumbItem:
    label: str
    command: Optional[NavCommand] = None
    action: Optional[Callable[[], None]] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class RouteResolution:
    active_page: str
    section_key: str
    detail_view: Optional[DetailView]
    sub_view: Optional[SubView]
    breadcrumbs: Tuple[BreadcrumbItem, ...]

    @property
    def is_detail(self) -> bool:
        return self.detail_view is not None


class DetailLabelCache:
    """
    Display label of the detail record on screen (e.g. a student's name).

    The label is tied to one DetailView identity; any change of identity, or
    leaving detail mode, drops it so the placeholder shows again.
    """

    def __init__(self):
        self._detail: Optional[DetailView] = None
        self._label: Optional[str] = None

    def sync(self, detail: Optional[DetailView]) -> None:
        if detail != self._detail:
            self._detail = detail
            self._label = None

    def remember(self, detail: DetailView, label: Optional[str]) -> None:
        if detail == self._detail and label:
            self._label = label

    @property
    def label(self) -> Optional[str]:
        return self._label


# ============================================================================
# PER-PAGE SEGMENT RULES
# ============================================================================

Resolved = Tuple[str, Optional[DetailView], Optional[SubView]]


def _segment(segments: Sequence[str], index: int) -> str:
    return (segments[index] or "").strip() if len(segments) > index else ""


def payments_section_key(segments: Sequence[str]) -> str:
    first = _segment(segments, 0)
    if first == REQUESTS_SECTION:
        return REQUESTS_SECTION
    if first == PAYMENTS_SECTION:
        return PAYMENTS_SECTION
    if first in PAYMENTS_DEFAULT_TOKENS:
        return PAYMENTS_DEFAULT_SECTION
    return first


def _resolve_payments(segments: Sequence[str]) -> Resolved:
    section = payments_section_key(segments)
    second = _segment(segments, 1)
    if section == PAYMENTS_SECTION and second:
        return section, DetailView(DetailKind.PAYMENT, second), None
    if section == REQUESTS_SECTION:
        if second == SCHEDULED_SEGMENT:
            third = _segment(segments, 2)
            if third:
                return section, DetailView(DetailKind.PAYMENT_REQUEST_SCHEDULE, third), None
        elif second == RESULT_SEGMENT:
            return section, None, SubView.REQUEST_RESULT
        elif second and second not in REQUESTS_STATIC_TOKENS:
            return section, DetailView(DetailKind.PAYMENT_REQUEST, second), None
    return section, None, None


def _resolve_students(segments: Sequence[str]) -> Resolved:
    first = _segment(segments, 0)
    if not first:
        return STUDENTS_DEFAULT_SECTION, None, None
    if first == TAB_SEGMENT:
        return _segment(segments, 1) or STUDENTS_DEFAULT_SECTION, None, None
    if first == BULK_UPLOAD_SEGMENT:
        return STUDENTS_DEFAULT_SECTION, None, SubView.BULK_UPLOAD
    return STUDENTS_DEFAULT_SECTION, DetailView(DetailKind.STUDENT, first), None


_PAGE_RESOLVERS: Dict[str, Callable[[Sequence[str]], Resolved]] = {
    PAYMENTS_PAGE: _resolve_payments,
    STUDENTS_PAGE: _resolve_students,
}

_SECTION_COMMANDS: Dict[str, Callable[[str], NavCommand]] = {
    PAYMENTS_PAGE: NavCommand.payments_section,
    STUDENTS_PAGE: NavCommand.students_section,
}


# ============================================================================
# RESOLVER
# ============================================================================

class RouteResolver:
    def __init__(self, labels: Labels, dispatch: Dispatch):
        self.labels = labels
        self.dispatch = dispatch

    def resolve(
        self,
        active_page: str,
        segments: Sequence[str],
        detail_label: Optional[str] = None,
    ) -> RouteResolution:
        resolver = _PAGE_RESOLVERS.get(active_page)
        if resolver is not None:
            section, detail, sub_view = resolver(tuple(segments))
        else:
            section, detail, sub_view = "", None, None
        crumbs = self.breadcrumbs(active_page, section, detail, sub_view, detail_label)
        return RouteResolution(active_page, section, detail, sub_view, crumbs)

    def _item(self, label: str, command: NavCommand) -> BreadcrumbItem:
        return BreadcrumbItem(label, command, partial(self.dispatch, command))

    def breadcrumbs(
        self,
        active_page: str,
        section_key: str,
        detail_view: Optional[DetailView],
        sub_view: Optional[SubView] = None,
        detail_label: Optional[str] = None,
    ) -> Tuple[BreadcrumbItem, ...]:
        labels = self.labels
        trail: List[BreadcrumbItem] = [self._item(labels.get("home"), NavCommand.page(DEFAULT_ROUTE_KEY))]

        if active_page not in HOME_PAGES and active_page != STUDENT_ROUTE.key:
            logger.debug(f"No breadcrumb handler for page '{active_page}'")
        trail.append(self._item(labels.page(active_page), NavCommand.page(active_page)))

        section_command = _SECTION_COMMANDS.get(active_page)
        if section_command is not None and section_key:
            trail.append(self._item(labels.section(section_key), section_command(section_key)))

        if sub_view is not None:
            trail.append(BreadcrumbItem(labels.get(f"view.{sub_view.value}")))
        elif detail_view is not None:
            placeholder = labels.get(f"detail.{detail_view.kind.value}")
            trail.append(BreadcrumbItem(detail_label or placeholder))

        # The current location never navigates.
        last = trail[-1]
        trail[-1] = BreadcrumbItem(last.label)
        return tuple(trail)
