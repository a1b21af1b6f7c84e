# core/nav_registry.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List

from core.i18n import Labels

@dataclass(frozen=True)
class Route:
    key: str                  # stable id, also the first path segment
    icon: str                 # emoji or short string
    screen: str               # module exposing render(ctx)
    default_section: str = ""  # tab a bare /{lang}/{key} path opens on

@dataclass(frozen=True)
class MenuItem:
    key: str
    label: str
    icon: str

# Order here is the menu order.
ROUTES: List[Route] = [
    Route("dashboard",      "📊", "screens.dashboard"),
    Route("payments",       "💳", "screens.payments.page", default_section="tuition"),
    Route("students",       "🎓", "screens.students.page", default_section="students"),
    Route("teachers",       "👨‍🏫", "screens.placeholders"),
    Route("schedules",      "📅", "screens.placeholders"),
    Route("grades",         "📝", "screens.placeholders"),
    Route("communications", "💬", "screens.placeholders"),
]

STUDENT_ROUTE = Route("student-dashboard", "🧑‍🎓", "screens.student_dashboard")
LOGIN_PAGE = "login"

# Index for quick lookup (used by router)
ROUTE_INDEX: Dict[str, Route] = {r.key: r for r in ROUTES}
HOME_PAGES: FrozenSet[str] = frozenset(ROUTE_INDEX)
DEFAULT_ROUTE_KEY = "dashboard"  # after login, where to land

def build_menu_items(labels: Labels, allowed_keys: Iterable[str]) -> List[MenuItem]:
    """Menu entries for the permitted navigation keys, in menu order."""
    allowed = set(allowed_keys or ())
    return [MenuItem(r.key, labels.page(r.key), r.icon) for r in ROUTES if r.key in allowed]
