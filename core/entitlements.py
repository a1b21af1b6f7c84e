# app/core/entitlements.py
"""
Entitlement gate: server-declared modules -> navigation keys the menu may show.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Mapping, Optional

logger = logging.getLogger(__name__)

# Raw module key (lower-cased) -> canonical navigation key
ACCESS_CONTROL_MENU_MAP = {
    "dashboard": "dashboard",
    "payments": "payments",
    "students": "students",
    "teachers": "teachers",
    "schedules": "schedules",
    "grades": "grades",
    "communications": "communications",
}


@dataclass(frozen=True)
class Entitlement:
    module_key: str
    enabled: bool


def _as_entitlement(entry: Any) -> Optional[Entitlement]:
    """Structurally valid entries only: a string module key and an enabled flag."""
    if isinstance(entry, Entitlement):
        return entry
    if not isinstance(entry, Mapping):
        return None
    key = entry.get("moduleKey", entry.get("module_key", entry.get("key")))
    if not isinstance(key, str) or not key.strip():
        return None
    return Entitlement(module_key=key, enabled=entry.get("enabled") is True)


def derive_menu_keys(entitlements: Any) -> FrozenSet[str]:
    """
    Enabled, mappable module keys as canonical navigation keys, deduplicated.
    Anything that is not a list/tuple of entries yields an empty set.
    """
    if not isinstance(entitlements, (list, tuple)):
        return frozenset()

    keys = set()
    for entry in entitlements:
        ent = _as_entitlement(entry)
        if ent is None or ent.enabled is not True:
            continue
        nav_key = ACCESS_CONTROL_MENU_MAP.get(ent.module_key.strip().lower())
        if nav_key is None:
            logger.debug(f"Ignoring unmapped module key '{ent.module_key}'")
            continue
        keys.add(nav_key)
    return frozenset(keys)


class EntitlementGate:
    """Derives the permitted navigation keys for the current session."""

    def derive(self, entitlements: Any, token: Optional[str]) -> FrozenSet[str]:
        if not token:
            return frozenset()
        return derive_menu_keys(entitlements)

    def permits(self, allowed: Iterable[str], nav_key: str) -> bool:
        return nav_key in set(allowed)
