from __future__ import annotations
import json
import logging
from typing import Any, Optional
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Fixed storage keys
LANGUAGE_KEY = "language"
AUTH_KEY = "auth"

def get(engine: Engine, key: str) -> Optional[str]:
    with engine.begin() as conn:
        row = conn.execute(sql_text(
            "SELECT value FROM client_state WHERE key=:k"
        ), dict(k=key)).fetchone()
    return row[0] if row else None

def put(engine: Engine, key: str, value: str) -> None:
    with engine.begin() as conn:
        conn.execute(sql_text("""
            INSERT INTO client_state (key, value)
            VALUES (:k, :v)
            ON CONFLICT(key) DO UPDATE
            SET value=excluded.value, updated_at=CURRENT_TIMESTAMP
        """), dict(k=key, v=value))

def delete(engine: Engine, key: str) -> None:
    with engine.begin() as conn:
        conn.execute(sql_text("DELETE FROM client_state WHERE key=:k"), dict(k=key))

def get_json(engine: Engine, key: str) -> Optional[Any]:
    """Stored JSON value, or None when absent or unreadable."""
    raw = get(engine, key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning(f"Discarding unreadable client state under '{key}'")
        return None

def put_json(engine: Engine, key: str, value: Any) -> None:
    put(engine, key, json.dumps(value, ensure_ascii=False))
