# app/core/report_query.py
"""
Query engine behind the tuition report table.

Owns filter / sort / pagination state, derives the (memoized) query string,
fetches one page at a time and discovers the month-coded columns present in
the fetched rows.

Fetch ordering: every request gets a generation number. Issuing a new request
cancels the previous in-flight one, and a response whose generation is no
longer current is discarded on arrival, so only the latest request can touch
rows / error state. Cancellation is silent.
"""

from __future__ import annotations
import asyncio
import json
import logging
import math
import re
from dataclasses import dataclass, replace
from enum import Enum
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

from core.errors import ConsoleError, NetworkError
from core.payloads import ReportPayload

logger = logging.getLogger(__name__)

MONTH_KEY_PATTERN = re.compile(r"^[A-Za-z]{3}-\d{2}$")

# Month bounds become dates by appending a fixed day. The end day is the
# literal 30 for every month; the API contract has not confirmed an
# "end of month" reading, so the literal is kept.
START_DAY_SUFFIX = "-01"
END_DAY_SUFFIX = "-30"

ASC = "ASC"
DESC = "DESC"
EMPTY_MARKER = "--"

# Filter keys sent to /reports/payments/report, with their empty defaults.
DEFAULT_FILTERS: Tuple[Tuple[str, Any], ...] = (
    ("student_full_name", ""),
    ("payment_reference", ""),
    ("generation", ""),
    ("grade_group", ""),
    ("scholar_level", ""),
    ("school_id", ""),
    ("group_status", False),
    ("user_status", False),
)


@dataclass(frozen=True)
class ReportColumn:
    key: str
    label_key: str
    sortable: bool = True


# Canonical columns, in display order: entity, group, generation, level.
REPORT_COLUMNS: Tuple[ReportColumn, ...] = (
    ReportColumn("student_full_name", "column.student"),
    ReportColumn("grade_group", "column.grade_group"),
    ReportColumn("generation", "column.generation"),
    ReportColumn("scholar_level_name", "column.scholar_level"),
)
SORTABLE_COLUMNS = frozenset(c.key for c in REPORT_COLUMNS if c.sortable)


# ============================================================================
# FILTER STATE
# ============================================================================

@dataclass(frozen=True)
class FilterState:
    filters: Tuple[Tuple[str, Any], ...] = DEFAULT_FILTERS
    start_month: str = ""
    end_month: str = ""
    show_debt_only: bool = False
    order_by: str = ""
    order_dir: str = ASC
    offset: int = 0
    limit: int = 10

    @classmethod
    def defaults(cls, limit: int) -> "FilterState":
        return cls(limit=limit)

    def filter_map(self) -> Dict[str, Any]:
        return dict(self.filters)

    def with_filter(self, key: str, value: Any) -> "FilterState":
        merged = self.filter_map()
        merged[key] = value
        return replace(self, filters=tuple(merged.items()), offset=0)


def include_filter_value(value: Any) -> bool:
    """A filter reaches the server only when set: not None, not False, not blank."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _render_value(value: Any) -> str:
    if value is True:
        return "true"
    if isinstance(value, str):
        return value.strip()
    return str(value)


@lru_cache(maxsize=256)
def build_query_string(state: FilterState, language: str, export_all: bool = False) -> str:
    params: List[Tuple[str, str]] = [
        ("lang", language),
        ("offset", str(state.offset)),
        ("limit", str(state.limit)),
        ("export_all", "true" if export_all else "false"),
    ]
    if state.start_month:
        params.append(("start_date", f"{state.start_month}{START_DAY_SUFFIX}"))
    if state.end_month:
        params.append(("end_date", f"{state.end_month}{END_DAY_SUFFIX}"))
    if state.show_debt_only:
        params.append(("show_debt_only", "true"))
    if state.order_by:
        params.append(("order_by", state.order_by))
        params.append(("order_dir", state.order_dir))
    for key, value in state.filters:
        if include_filter_value(value):
            params.append((key, _render_value(value)))
    return urlencode(params)


# ============================================================================
# ROWS
# ============================================================================

def discover_dynamic_columns(rows: Iterable[Mapping[str, Any]]) -> List[str]:
    """Month-coded keys across all rows, each once, in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            if isinstance(key, str) and MONTH_KEY_PATTERN.match(key) and key not in seen:
                seen[key] = None
    return list(seen)


def _normalize_amount(candidate: Any) -> Optional[float]:
    if isinstance(candidate, bool):
        return None
    if isinstance(candidate, (int, float)):
        return float(candidate) if math.isfinite(candidate) else None
    if isinstance(candidate, str) and candidate.strip():
        try:
            parsed = float(candidate.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def month_cell_amount(value: Any) -> Union[float, str, None]:
    """
    Amount shown for one month cell. Cells may be plain numbers, strings, or
    a tuition object (dict or JSON text) carrying ``total_amount``.
    None means the month is absent for the row.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text.startswith("{"):
            amount = _normalize_amount(text)
            return amount if amount is not None else text
        try:
            value = json.loads(text)
        except ValueError:
            logger.warning("Unable to parse tuition cell value")
            return None
    if isinstance(value, Mapping):
        return _normalize_amount(value.get("total_amount", value.get("totalAmount")))
    return _normalize_amount(value)


def format_month_cell(value: Any, empty: str = EMPTY_MARKER) -> str:
    amount = month_cell_amount(value)
    if amount is None:
        return empty
    if isinstance(amount, float):
        return f"{amount:.2f}"
    return amount


# ============================================================================
# ENGINE
# ============================================================================

ReportFetcher = Callable[[str], Awaitable[ReportPayload]]


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class ReportQueryEngine:
    def __init__(
        self,
        fetch: ReportFetcher,
        language: str,
        page_size: int = 10,
        reportable_tab: str = "tuition",
    ):
        self._fetch = fetch
        self.language = language
        self.page_size = page_size
        self.reportable_tab = reportable_tab
        self.active_tab = reportable_tab
        self.state = FilterState.defaults(page_size)

        self.rows: List[Dict[str, Any]] = []
        self.total_elements = 0
        self.dynamic_columns: List[str] = []
        self.error: Optional[ConsoleError] = None
        self.status = FetchStatus.IDLE

        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None
        self._last_requested: Optional[str] = None

    # ────────────────────────────────────────────────────────────────────
    # State transitions
    # ────────────────────────────────────────────────────────────────────

    def apply_filter(self, key: str, value: Any) -> None:
        self.state = self.state.with_filter(key, value)

    def set_start_month(self, month: Optional[str]) -> None:
        self.state = replace(self.state, start_month=(month or "").strip(), offset=0)

    def set_end_month(self, month: Optional[str]) -> None:
        self.state = replace(self.state, end_month=(month or "").strip(), offset=0)

    def set_show_debt_only(self, enabled: bool) -> None:
        self.state = replace(self.state, show_debt_only=bool(enabled), offset=0)

    def set_sort(self, column: str) -> None:
        if not column:
            return
        if column == self.state.order_by:
            direction = DESC if self.state.order_dir == ASC else ASC
        else:
            direction = ASC
        self.state = replace(self.state, order_by=column, order_dir=direction, offset=0)

    def set_page(self, page: int) -> int:
        """Move to ``page`` clamped into [1, total_pages]; returns the page used."""
        target = min(max(int(page), 1), self.total_pages)
        self.state = replace(self.state, offset=(target - 1) * self.state.limit)
        return target

    def clamp_page(self) -> bool:
        """
        Pull the offset back inside the last known page count, e.g. after a
        refresh shrank totalElements. True when the offset moved, which makes
        the engine need another fetch.
        """
        if self.current_page <= self.total_pages:
            return False
        self.set_page(self.current_page)
        return True

    def reset(self) -> None:
        self.state = FilterState.defaults(self.page_size)
        # An explicit reset always re-fetches, even when already at defaults.
        self._last_requested = None

    def set_language(self, language: str) -> None:
        self.language = language

    def set_active_tab(self, tab: str) -> None:
        if tab == self.active_tab:
            return
        leaving = self.active_tab == self.reportable_tab
        self.active_tab = tab
        if leaving:
            self.close()
            self.reset()
            self.rows = []
            self.total_elements = 0
            self.dynamic_columns = []
            self.error = None
            self.status = FetchStatus.IDLE

    # ────────────────────────────────────────────────────────────────────
    # Derived values
    # ────────────────────────────────────────────────────────────────────

    @property
    def query_string(self) -> str:
        return build_query_string(self.state, self.language)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_elements / self.state.limit))

    @property
    def current_page(self) -> int:
        return self.state.offset // self.state.limit + 1

    @property
    def is_reportable(self) -> bool:
        return self.active_tab == self.reportable_tab

    @property
    def needs_refresh(self) -> bool:
        return self.is_reportable and self.query_string != self._last_requested

    # ────────────────────────────────────────────────────────────────────
    # Fetching
    # ────────────────────────────────────────────────────────────────────

    def schedule(self) -> asyncio.Task:
        """Start a fetch for the current query, superseding any in-flight one."""
        self.cancel_pending()
        self._generation += 1
        query = self.query_string
        self._last_requested = query
        self.status = FetchStatus.LOADING
        task = asyncio.ensure_future(self._run(self._generation, query))
        self._inflight = task
        return task

    async def refresh(self) -> bool:
        """
        Fetch the current query. True when this call's response was committed;
        False when it failed or was superseded / cancelled.
        """
        task = self.schedule()
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return False
            raise

    async def refresh_if_needed(self) -> bool:
        if not self.needs_refresh:
            return False
        return await self.refresh()

    def cancel_pending(self) -> None:
        task = self._inflight
        if task is not None and not task.done():
            logger.debug(f"Cancelling report request #{self._generation}")
            task.cancel()
        self._inflight = None

    def close(self) -> None:
        """Teardown: cancel outstanding work; later arrivals are discarded."""
        self.cancel_pending()
        self._generation += 1
        if self.status == FetchStatus.LOADING:
            self.status = FetchStatus.SUCCESS if self.rows else FetchStatus.IDLE

    def _is_current(self, ticket: int) -> bool:
        return ticket == self._generation

    def _fail(self, ticket: int, error: ConsoleError) -> bool:
        # Rows from the last good response stay on screen.
        if not self._is_current(ticket):
            logger.debug(f"Dropping error of superseded report request #{ticket}")
            return False
        logger.warning(f"Report request #{ticket} failed: {error}")
        self.error = error
        self.status = FetchStatus.ERROR
        self._inflight = None
        return False

    async def _run(self, ticket: int, query: str) -> bool:
        logger.debug(f"Report request #{ticket}: {query}")
        try:
            payload = await self._fetch(query)
        except ConsoleError as e:
            return self._fail(ticket, e)
        except Exception as e:
            logger.error(f"Report request #{ticket} raised {type(e).__name__}", exc_info=True)
            return self._fail(ticket, NetworkError(f"Unexpected report failure: {e}"))

        if not self._is_current(ticket):
            logger.debug(f"Discarding stale report response #{ticket}")
            return False

        self.rows = list(payload.content)
        self.total_elements = payload.total_elements
        self.dynamic_columns = discover_dynamic_columns(self.rows)
        self.error = None
        self.status = FetchStatus.SUCCESS
        self._inflight = None
        return True
