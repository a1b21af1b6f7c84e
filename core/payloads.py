# app/core/payloads.py
"""
One parser per endpoint.

Each parser knows the exact envelope(s) its endpoint may answer with, in a
fixed order, and raises ShapeError for anything else. The access-control list
is the one exception: a malformed answer means "no modules", so the menu
degrades to empty instead of failing the page.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError as SchemaValidationError

from core.errors import ShapeError

logger = logging.getLogger(__name__)


# ============================================================================
# SCHEMAS
# ============================================================================

class ReportPayload(BaseModel):
    """GET /reports/payments/report"""
    content: List[Dict[str, Any]]
    totalElements: int = 0

    @property
    def total_elements(self) -> int:
        return max(0, self.totalElements)


class UpdateResult(BaseModel):
    """PUT /students/update/{id}"""
    success: Optional[bool] = None
    message: Optional[str] = None


class PaymentRequestDetail(BaseModel):
    """GET /reports/paymentrequest/details"""
    paymentRequest: Dict[str, Any]
    student: Optional[Dict[str, Any]] = None

    @property
    def request(self) -> Dict[str, Any]:
        return self.paymentRequest

    @property
    def student_record(self) -> Dict[str, Any]:
        return self.student or {}


# ============================================================================
# PARSERS
# ============================================================================

LOGIN_TOKEN_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("token",), ("access_token",), ("jwt",), ("data", "token"),
)
LOGIN_USER_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("user",), ("profile",), ("data", "user"),
)
ACCESS_CONTROL_LIST_KEYS = ("data", "modules", "content")
SCHOOL_LIST_KEYS = ("data", "schools", "content", "result", "items")
STUDENT_DETAIL_KEYS = ("data", "result", "student", "details", "response")


def _dig(payload: Any, path: Tuple[str, ...]) -> Any:
    node = payload
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def parse_login(payload: Any) -> Tuple[Optional[str], Dict[str, Any]]:
    """(token, user) from a login answer. The user falls back to the payload itself."""
    if not isinstance(payload, dict):
        raise ShapeError("Login response is not an object")
    token = next((t for t in (_dig(payload, p) for p in LOGIN_TOKEN_PATHS) if isinstance(t, str) and t), None)
    user = next((u for u in (_dig(payload, p) for p in LOGIN_USER_PATHS) if isinstance(u, dict)), None)
    if user is None:
        user = {k: v for k, v in payload.items() if k not in ("token", "access_token", "jwt")}
    if payload.get("role_name") and not user.get("role_name"):
        user = {**user, "role_name": payload["role_name"]}
    return token, user


def parse_access_control(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ACCESS_CONTROL_LIST_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    logger.warning("Access-control payload has no module list; showing no modules")
    return []


def parse_report_page(payload: Any) -> ReportPayload:
    if not isinstance(payload, dict):
        raise ShapeError("Report response is not an object")
    try:
        return ReportPayload(**payload)
    except SchemaValidationError as e:
        raise ShapeError(f"Report response missing content: {e.error_count()} problem(s)") from e


def parse_school_list(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return [s for s in payload if isinstance(s, dict)]
    if isinstance(payload, dict):
        for key in SCHOOL_LIST_KEYS:
            if isinstance(payload.get(key), list):
                return [s for s in payload[key] if isinstance(s, dict)]
    raise ShapeError("School list response has no list")


def parse_student_detail(payload: Any) -> Dict[str, Any]:
    candidates: List[Any] = [payload[0] if isinstance(payload, list) and payload else None]
    if isinstance(payload, dict):
        for key in STUDENT_DETAIL_KEYS:
            value = payload.get(key)
            candidates.append(value[0] if isinstance(value, list) and value else value)
        candidates.append(payload)
    for candidate in candidates:
        if isinstance(candidate, dict) and candidate:
            return candidate
    raise ShapeError("Student detail response has no student record")


def parse_update_result(payload: Any) -> UpdateResult:
    if not isinstance(payload, dict):
        return UpdateResult()
    try:
        return UpdateResult(**payload)
    except SchemaValidationError as e:
        raise ShapeError("Update response is malformed") from e


def parse_payment_detail(payload: Any) -> Optional[Dict[str, Any]]:
    """First record of the ``content`` page, or None when the payment is unknown."""
    content = payload.get("content") if isinstance(payload, dict) else None
    if not isinstance(content, list):
        raise ShapeError("Payment detail response has no content")
    return next((row for row in content if isinstance(row, dict)), None)


def parse_payment_request_detail(payload: Any) -> PaymentRequestDetail:
    if not isinstance(payload, dict):
        raise ShapeError("Payment request detail response is not an object")
    try:
        return PaymentRequestDetail(**payload)
    except SchemaValidationError as e:
        raise ShapeError("Payment request detail has no paymentRequest") from e


def parse_schedule_detail(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict) or not payload:
        raise ShapeError("Schedule detail response is empty")
    return payload


def parse_log_list(payload: Any) -> List[Dict[str, Any]]:
    # Log endpoints answer a bare array; anything else means no history.
    if not isinstance(payload, list):
        return []
    return [entry for entry in payload if isinstance(entry, dict)]


def parse_record_list(payload: Any) -> List[Dict[str, Any]]:
    """A bare array or a ``content`` page; anything else is empty."""
    if isinstance(payload, dict):
        payload = payload.get("content")
    return parse_log_list(payload)


def parse_amount(payload: Any) -> float:
    try:
        return float(payload or 0)
    except (TypeError, ValueError):
        logger.warning(f"Pending amount is not a number: {payload!r}")
        return 0.0
