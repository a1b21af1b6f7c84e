# app/core/errors.py
"""
Error kinds surfaced by the console.

Every async operation (report fetch, export, detail load, save) catches these
at its own boundary and turns them into a page message. Cancellation is plain
``asyncio.CancelledError`` and never reaches the user.
"""

from __future__ import annotations
from typing import Dict, Optional


class ConsoleError(Exception):
    """Base class for all console errors."""


class NetworkError(ConsoleError):
    """Transport failure or a non-2xx response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SessionExpiredError(NetworkError):
    """The API answered 401; the stored session must be dropped."""

    def __init__(self, message: str = "SESSION_EXPIRED"):
        super().__init__(message, status=401)
        self.code = "SESSION_EXPIRED"


class ShapeError(ConsoleError):
    """A payload is missing the fields we need (role, list, content...)."""


class ValidationError(ConsoleError):
    """Local, field-scoped form errors. Raised before any network call."""

    def __init__(self, errors: Dict[str, str], message: str = "Invalid form"):
        super().__init__(message)
        self.errors = dict(errors)


class ExportEmptyError(ConsoleError):
    """The export query returned no rows. A warning, not a failure."""
