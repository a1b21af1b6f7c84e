# tests/test_session.py
from core import client_store
from core.session import (
    ANONYMOUS,
    ROLE_NOT_FOUND,
    RoleFound,
    Session,
    SESSION_SCOPED_KEYS,
    SessionStore,
    clear_session_scope,
    decode_jwt_claims,
    enrich_user,
    read_language,
    resolve_role,
    save_language,
)


def test_decode_jwt_claims(token_for):
    assert decode_jwt_claims(token_for({"sub": "ana", "role": "ADMIN"})) == {"sub": "ana", "role": "ADMIN"}
    assert decode_jwt_claims("not-a-token") == {}
    assert decode_jwt_claims("a.!!!.c") == {}
    assert decode_jwt_claims(None) == {}


def test_role_precedence():
    assert resolve_role({"role": "ADMIN", "role_name": "X"}, {"role": "Y"}) == RoleFound("ADMIN")
    assert resolve_role({"roleName": "TEACHER"}, {"role": "Y"}) == RoleFound("TEACHER")
    assert resolve_role({}, {"role_name": "STUDENT"}) == RoleFound("STUDENT")
    assert resolve_role({"role": "  "}, {"role": {"name": "DIRECTOR"}}) == RoleFound("DIRECTOR")
    assert resolve_role({}, {}) is ROLE_NOT_FOUND
    assert resolve_role(None, None) is ROLE_NOT_FOUND


def test_enrich_user_merges_claims(token_for):
    token = token_for({"sub": "ana", "role": {"id": "4", "name": "ADMIN"}, "school_id": 9, "user_id": 31})
    user = enrich_user(token, {"first_name": "Ana"})
    assert user["role"] == "ADMIN"
    assert user["role_id"] == 4
    assert user["username"] == "ana"
    assert user["school_id"] == 9
    assert user["user_id"] == 31
    assert user["first_name"] == "Ana"


def test_session_properties(admin_session, student_session):
    assert admin_session.is_authenticated
    assert not admin_session.is_student
    assert student_session.is_student
    assert admin_session.display_name == "Ana"
    assert Session(token="t", user={"name": "Ana María Díaz"}).initials == "AM"
    assert not ANONYMOUS.is_authenticated


def test_session_store_round_trip(state_engine, admin_session):
    store = SessionStore(state_engine)
    assert store.read() == ANONYMOUS

    store.save(admin_session)
    restored = store.read()
    assert restored.token == admin_session.token
    assert restored.user["first_name"] == "Ana"
    assert restored.user["role"] == "ADMIN"

    store.invalidate()
    assert store.read() == ANONYMOUS


def test_corrupted_auth_degrades_to_logged_out(state_engine):
    client_store.put(state_engine, client_store.AUTH_KEY, "{not json")
    assert SessionStore(state_engine).read() == ANONYMOUS


def test_language_preference_falls_back(state_engine):
    assert read_language(state_engine, ("es", "en"), "es") == "es"
    save_language(state_engine, "en")
    assert read_language(state_engine, ("es", "en"), "es") == "en"
    save_language(state_engine, "fr")
    assert read_language(state_engine, ("es", "en"), "es") == "es"


def test_clear_session_scope_keeps_app_wide_state():
    state = {key: object() for key in SESSION_SCOPED_KEYS}
    state.update({"settings": "s", "engine": "e", "router": "r", "api": "a"})

    dropped = clear_session_scope(state)

    assert set(dropped) == set(SESSION_SCOPED_KEYS)
    assert state == {"settings": "s", "engine": "e", "router": "r", "api": "a"}
    assert clear_session_scope(state) == []
