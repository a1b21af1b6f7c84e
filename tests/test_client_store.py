# tests/test_client_store.py
from core import client_store
from core.schema_registry import registered_names


def test_client_state_schema_is_registered(state_engine):
    assert "ensure_client_state_schema" in registered_names()


def test_put_get_delete(state_engine):
    assert client_store.get(state_engine, "language") is None
    client_store.put(state_engine, "language", "en")
    client_store.put(state_engine, "language", "es")
    assert client_store.get(state_engine, "language") == "es"
    client_store.delete(state_engine, "language")
    assert client_store.get(state_engine, "language") is None


def test_json_values(state_engine):
    client_store.put_json(state_engine, "auth", {"token": "t", "user": {"first_name": "Ana"}})
    assert client_store.get_json(state_engine, "auth") == {"token": "t", "user": {"first_name": "Ana"}}

    client_store.put(state_engine, "auth", "{broken")
    assert client_store.get_json(state_engine, "auth") is None
