# app/core/details.py
"""
Read-only detail pages (payment, payment request, schedule) and the student
dashboard: breadcrumb labels, field selection and log ordering.

Everything here is pure except the two loaders, which only await the API
client and leave rendering to the screens.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.payloads import PaymentRequestDetail

logger = logging.getLogger(__name__)

# Field order shown on each detail card; absent or blank values are skipped.
PAYMENT_FIELDS = (
    "student_full_name", "payment_reference", "grade_group", "generation", "scholar_level_name",
    "pt_name", "payment_concept", "payment_month", "amount", "payment_status_name",
    "payment_created_at", "comments",
)
PAYMENT_REQUEST_FIELDS = (
    "payment_request_id", "pt_name", "ps_pr_name", "payment_month", "pr_amount", "pr_pay_by",
    "fee_type", "late_fee", "late_fee_frequency", "partial_payment", "pr_created_at", "closed_at",
    "pr_comments",
)
REQUEST_STUDENT_FIELDS = (
    "full_name", "student_id", "payment_reference", "grade_group", "generation", "scholar_level_name", "email",
)
SCHEDULE_FIELDS = (
    "payment_request_scheduled_id", "amount", "fee_type", "late_fee", "interval_count",
    "payment_window", "start_date", "next_execution_date", "active",
)
PROFILE_FIELDS = ("paymentReference", "gradeGroup", "generation")

PAYMENT_LABEL_KEYS = ("payment_id", "paymentId", "id")
REQUEST_LABEL_KEYS = ("payment_request_id", "payment_requestId", "id")
STUDENT_NAME_KEYS = ("full_name", "student")


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _first_present(record: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int, float)) and _present(value):
            return str(value).strip()
    return None


def record_fields(record: Optional[Mapping[str, Any]], keys: Sequence[str]) -> List[Tuple[str, Any]]:
    """(key, value) pairs in ``keys`` order, skipping blanks."""
    if not record:
        return []
    return [(key, record[key]) for key in keys if _present(record.get(key))]


# ============================================================================
# BREADCRUMB LABELS
# ============================================================================

def payment_label(record: Optional[Mapping[str, Any]], payment_id: str) -> str:
    """The payment's own id when the record carries one, else the id from the path."""
    return _first_present(record or {}, PAYMENT_LABEL_KEYS) or payment_id


def payment_request_label(detail: PaymentRequestDetail, fallback_label: str, request_id: str) -> str:
    student_name = _first_present(detail.student_record, STUDENT_NAME_KEYS)
    candidate = _first_present(detail.request, REQUEST_LABEL_KEYS)
    if candidate is None and _present(request_id):
        candidate = request_id.strip()
    if candidate:
        return candidate if student_name else f"{fallback_label} → {candidate}"
    return student_name or fallback_label


def schedule_label(fallback_label: str, schedule_id: str) -> str:
    return f"{fallback_label} → {schedule_id}"


# ============================================================================
# LOGS
# ============================================================================

def _timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed.astimezone().replace(tzinfo=None) if parsed.tzinfo else parsed


def newest_first(logs: Sequence[Mapping[str, Any]], date_key: str) -> List[Mapping[str, Any]]:
    """Newest entries first; entries without a readable date go last, in arrival order."""
    dated = [(entry, _timestamp(entry.get(date_key))) for entry in logs]
    known = sorted((p for p in dated if p[1] is not None), key=lambda p: p[1], reverse=True)
    unknown = [p for p in dated if p[1] is None]
    return [entry for entry, _ in known + unknown]


# ============================================================================
# LOADERS
# ============================================================================

@dataclass
class DetailPage:
    """A detail record plus its change history. ``logs_error`` never hides the record."""
    record: Any
    logs: List[Dict[str, Any]] = field(default_factory=list)
    logs_error: Optional[Exception] = None


async def load_with_logs(record_call, logs_call) -> DetailPage:
    """
    Fetch a record and its logs concurrently. A failing record fetch raises;
    a failing log fetch is kept on the page next to the record.
    """
    record, logs = await asyncio.gather(record_call, logs_call, return_exceptions=True)
    if isinstance(record, BaseException):
        raise record
    if isinstance(logs, BaseException):
        logger.warning(f"Log history unavailable: {logs}")
        return DetailPage(record, [], logs)
    return DetailPage(record, logs)


@dataclass
class StudentDashboard:
    profile: Dict[str, Any]
    pending_amount: float
    pending_requests: List[Dict[str, Any]]
    recent_payments: List[Dict[str, Any]]

    def display_name(self, fallback: str) -> str:
        return _first_present(self.profile, ("fullName", "username")) or fallback


async def load_student_dashboard(api, language: str) -> StudentDashboard:
    profile, amount, requests, payments = await asyncio.gather(
        api.student_profile(),
        api.pending_amount(),
        api.pending_requests(),
        api.recent_payments(language),
    )
    return StudentDashboard(profile, amount, requests, payments)
