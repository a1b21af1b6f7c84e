# app/core/session.py
"""
Session value, role resolution and persisted client preferences.

The session is an explicit value (token + user) read from and written to the
client store through ``SessionStore``; screens receive it via the page
context instead of reaching into globals.
"""

from __future__ import annotations
import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Union

from sqlalchemy.engine import Engine

from core import client_store

logger = logging.getLogger(__name__)

STUDENT_ROLE = "STUDENT"


# ============================================================================
# JWT CLAIMS
# ============================================================================

def _b64url_decode(segment: str) -> Optional[bytes]:
    if not segment or not isinstance(segment, str):
        return None
    padding = "=" * ((4 - len(segment) % 4) % 4)
    try:
        return base64.urlsafe_b64decode(segment + padding)
    except (binascii.Error, ValueError):
        logger.warning("Failed to decode JWT segment")
        return None


def decode_jwt_claims(token: Optional[str]) -> Dict[str, Any]:
    """Payload claims of a JWT, unverified. Empty dict when unreadable."""
    if not token or not isinstance(token, str):
        return {}
    parts = token.split(".")
    if len(parts) < 2:
        return {}
    raw = _b64url_decode(parts[1])
    if raw is None:
        return {}
    try:
        claims = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        logger.warning("Failed to parse JWT payload")
        return {}
    return claims if isinstance(claims, dict) else {}


# ============================================================================
# ROLE RESOLUTION
# ============================================================================

@dataclass(frozen=True)
class RoleFound:
    role: str


@dataclass(frozen=True)
class RoleNotFound:
    pass


ROLE_NOT_FOUND = RoleNotFound()
RoleLookup = Union[RoleFound, RoleNotFound]


def _nested_name(value: Any) -> Any:
    return value.get("name") if isinstance(value, Mapping) else None


# Precedence, first non-blank string wins.
_ROLE_SOURCES = (
    ("user", lambda d: d.get("role")),
    ("user", lambda d: d.get("role_name")),
    ("user", lambda d: d.get("roleName")),
    ("claims", lambda d: d.get("role")),
    ("claims", lambda d: d.get("role_name")),
    ("claims", lambda d: d.get("roleName")),
    ("claims", lambda d: _nested_name(d.get("role"))),
)


def resolve_role(user: Optional[Mapping[str, Any]], claims: Optional[Mapping[str, Any]]) -> RoleLookup:
    sources = {"user": user or {}, "claims": claims or {}}
    for source, pick in _ROLE_SOURCES:
        candidate = pick(sources[source])
        if isinstance(candidate, str) and candidate.strip():
            return RoleFound(candidate.strip())
    return ROLE_NOT_FOUND


def _first_present(sources: Iterable[Mapping[str, Any]], keys: Iterable[str]) -> Any:
    for source in sources:
        for key in keys:
            value = source.get(key)
            if value is not None:
                return value
    return None


def enrich_user(token: Optional[str], user: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Merge role, role id, username, school id and user id from the token
    claims into the user record, user fields taking precedence.
    """
    if not token:
        return dict(user) if user else None

    claims = decode_jwt_claims(token)
    merged: Dict[str, Any] = dict(user or {})

    lookup = resolve_role(user, claims)
    if isinstance(lookup, RoleFound):
        merged["role"] = lookup.role
        merged["role_name"] = lookup.role

    role_id = _first_present([user or {}], ("role_id", "roleId"))
    if role_id is None:
        role_id = claims.get("role_id", claims.get("roleId"))
        if role_id is None and isinstance(claims.get("role"), Mapping):
            role_id = claims["role"].get("id")
    try:
        merged["role_id"] = int(role_id)
    except (TypeError, ValueError):
        pass

    username = _first_present([user or {}], ("username", "user_name")) or claims.get("sub")
    if username:
        merged["username"] = username

    school_id = _first_present([user or {}, claims], ("school_id", "schoolId"))
    if school_id is not None:
        merged["school_id"] = school_id

    user_id = _first_present([user or {}], ("id", "user_id", "userId"))
    if user_id is None:
        user_id = _first_present([claims], ("user_id", "userId"))
    if user_id is not None:
        merged["user_id"] = user_id

    return merged or None


# ============================================================================
# SESSION
# ============================================================================

@dataclass(frozen=True)
class Session:
    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and bool(self.user)

    @property
    def claims(self) -> Dict[str, Any]:
        return decode_jwt_claims(self.token)

    @property
    def role(self) -> RoleLookup:
        return resolve_role(self.user, self.claims)

    @property
    def is_student(self) -> bool:
        lookup = self.role
        return isinstance(lookup, RoleFound) and lookup.role.upper() == STUDENT_ROLE

    @property
    def display_name(self) -> str:
        u = self.user or {}
        for key in ("first_name", "name", "username"):
            value = u.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""

    @property
    def initials(self) -> str:
        parts = [p for p in self.display_name.split(" ") if p]
        return "".join(p[0].upper() for p in parts[:2])

    def to_dict(self) -> Dict[str, Any]:
        return {"token": self.token, "user": self.user}


ANONYMOUS = Session()


class SessionStore:
    """Read / save / invalidate the persisted ``{token, user}`` session."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def read(self) -> Session:
        stored = client_store.get_json(self.engine, client_store.AUTH_KEY)
        if not isinstance(stored, dict):
            return ANONYMOUS
        token = stored.get("token") or None
        user = stored.get("user") if isinstance(stored.get("user"), dict) else None
        if not token:
            return ANONYMOUS
        return Session(token=token, user=enrich_user(token, user))

    def save(self, session: Session) -> None:
        if not session.token:
            self.invalidate()
            return
        client_store.put_json(self.engine, client_store.AUTH_KEY, session.to_dict())

    def invalidate(self) -> None:
        client_store.delete(self.engine, client_store.AUTH_KEY)
        logger.info("Session invalidated")


# ============================================================================
# SESSION-SCOPED UI STATE
# ============================================================================

# UI state that belongs to one signed-in user. Dropped whenever that session
# ends (logout, expiry) or another one starts; settings, engine and router stay.
SESSION_SCOPED_KEYS = (
    "allowed_keys",
    "detail_labels",
    "payments__engine",
    "payments__schools",
    "payments__detail",
    "students__detail",
    "student_dashboard__data",
)
# Set on the script thread when an API call answered 401.
SESSION_EXPIRED_FLAG = "session_expired"


def clear_session_scope(state: MutableMapping[str, Any]) -> List[str]:
    """Drop every session-scoped key from ``state``; returns the keys dropped."""
    dropped = [key for key in SESSION_SCOPED_KEYS if key in state]
    for key in dropped:
        del state[key]
    return dropped


# ============================================================================
# LANGUAGE PREFERENCE
# ============================================================================

def read_language(engine: Engine, supported: Iterable[str], fallback: str) -> str:
    stored = client_store.get(engine, client_store.LANGUAGE_KEY)
    if stored and stored in set(supported):
        return stored
    return fallback


def save_language(engine: Engine, language: str) -> None:
    client_store.put(engine, client_store.LANGUAGE_KEY, language)
