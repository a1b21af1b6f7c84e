# app/schemas/client_state_schema.py
from __future__ import annotations
from sqlalchemy import text as sa_text
from core.schema_registry import register

@register
def ensure_client_state_schema(engine):
    with engine.begin() as conn:
        # One row per fixed storage key ('language', 'auth')
        conn.execute(sa_text("""
        CREATE TABLE IF NOT EXISTS client_state (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        );
        """))
