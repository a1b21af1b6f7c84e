# app/core/context.py
from __future__ import annotations
from dataclasses import dataclass
from typing import FrozenSet

from sqlalchemy.engine import Engine

from core.api import ApiClient
from core.i18n import Labels
from core.navigation import NavCommand, Router
from core.routing import DetailLabelCache, RouteResolution, RouteResolver
from core.session import Session, SessionStore
from core.settings import Settings


@dataclass
class PageContext:
    """Everything a screen's render(ctx) may use. Built once per script run."""
    settings: Settings
    engine: Engine
    session: Session
    session_store: SessionStore
    api: ApiClient
    router: Router
    labels: Labels
    resolver: RouteResolver
    route: RouteResolution
    detail_labels: DetailLabelCache
    allowed_keys: FrozenSet[str]

    @property
    def language(self) -> str:
        return self.router.state.language

    def dispatch(self, command: NavCommand) -> None:
        self.router.dispatch(command)
