# app/core/api.py
"""
HTTP client for the school-platform API.

Blocking calls go through ``requests``; the async helpers run them in a
worker thread with ``asyncio.to_thread`` so callers on the event loop can
cancel (abandon) a request the moment it is superseded.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, urlencode

import requests

from core import payloads
from core.errors import NetworkError, SessionExpiredError, ShapeError
from core.session import Session, RoleFound, decode_jwt_claims, enrich_user, resolve_role
from core.settings import ApiConfig

logger = logging.getLogger(__name__)

REPORT_PATH = "/reports/payments/report"
ACCESS_CONTROL_PATH = "/modules/access-control"
SCHOOLS_PATH = "/schools/list"
LOGIN_PATH = "/auth/login"
PAYMENT_DETAIL_PATH = "/reports/payments"
PAYMENT_REQUEST_DETAIL_PATH = "/reports/paymentrequest/details"
SCHEDULE_DETAIL_PATH = "/payment-requests/schedule/details"
SCHEDULE_LOGS_PATH = "/logs/scheduled-jobs"
STUDENT_PROFILE_PATH = "/students/read-only"
PENDING_AMOUNT_PATH = "/payment-requests/pending"
PENDING_REQUESTS_PATH = "/payment-requests/student-pending-payments"
RECENT_PAYMENTS_LIMIT = 10


class ApiClient:
    def __init__(
        self,
        config: ApiConfig,
        session: Session,
        http: Optional[requests.Session] = None,
    ):
        self.base_url = config.base_url.rstrip("/")
        self.timeout = config.timeout_seconds
        self.session = session
        self.http = http or requests.Session()

    # ────────────────────────────────────────────────────────────────────
    # Transport
    # ────────────────────────────────────────────────────────────────────

    def _headers(self, with_body: bool = False) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if with_body:
            headers["Content-Type"] = "application/json"
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def _url(self, path: str, query: str = "") -> str:
        url = f"{self.base_url}{path}"
        return f"{url}?{query}" if query else url

    def request(self, method: str, path: str, query: str = "", body: Optional[Mapping[str, Any]] = None) -> Any:
        url = self._url(path, query)
        logger.debug(f"{method} {self._url(path)}")
        try:
            response = self.http.request(
                method,
                url,
                headers=self._headers(with_body=body is not None),
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(f"Network error: {e}") from e

        # Also runs on worker threads: a 401 is only reported, never acted on here.
        if response.status_code == 401 and self.session.token:
            logger.info(f"{method} {path} answered 401; session expired")
            raise SessionExpiredError()

        if not response.ok:
            raise NetworkError(_error_message(response), status=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ShapeError(f"{method} {path} did not return JSON") from e

    async def request_async(self, method: str, path: str, query: str = "", body: Optional[Mapping[str, Any]] = None) -> Any:
        return await asyncio.to_thread(self.request, method, path, query, body)

    # ────────────────────────────────────────────────────────────────────
    # Endpoints
    # ────────────────────────────────────────────────────────────────────

    def login(self, username_or_email: str, password: str) -> Session:
        payload = self.request("POST", LOGIN_PATH, body={"usernameOrEmail": username_or_email, "password": password})
        token, user = payloads.parse_login(payload)
        if not isinstance(resolve_role(user, decode_jwt_claims(token)), RoleFound):
            raise ShapeError("Unable to determine user role from the server response.")
        session = Session(token=token, user=enrich_user(token, user))
        self.session = session
        return session

    def access_control(self) -> List[Any]:
        return payloads.parse_access_control(self.request("GET", ACCESS_CONTROL_PATH))

    async def fetch_report(self, query: str) -> payloads.ReportPayload:
        payload = await self.request_async("GET", REPORT_PATH, query)
        return payloads.parse_report_page(payload)

    def school_list(self, language: str) -> List[Dict[str, Any]]:
        query = f"lang={quote(language)}&status_filter=-1"
        return payloads.parse_school_list(self.request("GET", SCHOOLS_PATH, query))

    async def student_detail(self, student_id: str, language: str) -> Dict[str, Any]:
        path = f"/students/student-details/{quote(str(student_id), safe='')}"
        payload = await self.request_async("GET", path, f"lang={quote(language)}")
        return payloads.parse_student_detail(payload)

    def update_student(self, target_id: str, body: Mapping[str, Any], language: str) -> payloads.UpdateResult:
        path = f"/students/update/{quote(str(target_id), safe='')}"
        result = payloads.parse_update_result(self.request("PUT", path, f"lang={quote(language)}", body=body))
        if result.success is False:
            raise NetworkError(result.message or "Update rejected", status=200)
        return result

    # ────────────────────────────────────────────────────────────────────
    # Read-only detail pages
    # ────────────────────────────────────────────────────────────────────

    async def payment_detail(self, payment_id: str, language: str) -> Optional[Dict[str, Any]]:
        query = urlencode({"payment_id": payment_id, "lang": language})
        payload = await self.request_async("GET", PAYMENT_DETAIL_PATH, query)
        return payloads.parse_payment_detail(payload)

    async def payment_logs(self, payment_id: str, language: str) -> List[Dict[str, Any]]:
        path = f"/logs/payment/{quote(str(payment_id), safe='')}"
        return payloads.parse_log_list(await self.request_async("GET", path, f"lang={quote(language)}"))

    async def payment_request_detail(self, request_id: str, language: str) -> payloads.PaymentRequestDetail:
        query = urlencode({"lang": language, "payment_request_id": request_id})
        payload = await self.request_async("GET", PAYMENT_REQUEST_DETAIL_PATH, query)
        return payloads.parse_payment_request_detail(payload)

    async def payment_request_logs(self, request_id: str, language: str) -> List[Dict[str, Any]]:
        path = f"/logs/payment-requests/{quote(str(request_id), safe='')}"
        return payloads.parse_log_list(await self.request_async("GET", path, f"lang={quote(language)}"))

    async def schedule_detail(self, schedule_id: str) -> Dict[str, Any]:
        query = urlencode({"payment_request_scheduled_id": schedule_id})
        return payloads.parse_schedule_detail(await self.request_async("GET", SCHEDULE_DETAIL_PATH, query))

    async def schedule_logs(self, schedule_id: str, language: str) -> List[Dict[str, Any]]:
        query = urlencode({"lang": language, "payment_request_scheduled_id": schedule_id})
        return payloads.parse_log_list(await self.request_async("GET", SCHEDULE_LOGS_PATH, query))

    # ────────────────────────────────────────────────────────────────────
    # Student dashboard
    # ────────────────────────────────────────────────────────────────────

    async def student_profile(self) -> Dict[str, Any]:
        payload = await self.request_async("GET", STUDENT_PROFILE_PATH)
        return payload if isinstance(payload, dict) else {}

    async def pending_amount(self) -> float:
        return payloads.parse_amount(await self.request_async("GET", PENDING_AMOUNT_PATH))

    async def pending_requests(self) -> List[Dict[str, Any]]:
        return payloads.parse_record_list(await self.request_async("GET", PENDING_REQUESTS_PATH))

    async def recent_payments(self, language: str) -> List[Dict[str, Any]]:
        query = urlencode({"lang": language, "offset": 0, "limit": RECENT_PAYMENTS_LIMIT, "export_all": "false"})
        return payloads.parse_record_list(await self.request_async("GET", PAYMENT_DETAIL_PATH, query))


def _error_message(response: requests.Response) -> str:
    message = f"Request failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return message
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return message
