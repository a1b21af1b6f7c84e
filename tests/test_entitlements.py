# tests/test_entitlements.py
from core.entitlements import Entitlement, EntitlementGate, derive_menu_keys


def test_enabled_keys_are_mapped_case_insensitively_and_deduplicated():
    entitlements = [
        {"moduleKey": "Payments", "enabled": True},
        {"moduleKey": "payments", "enabled": True},
        {"moduleKey": "STUDENTS", "enabled": True},
        {"moduleKey": "grades", "enabled": False},
        {"moduleKey": "library", "enabled": True},
    ]
    assert derive_menu_keys(entitlements) == frozenset({"payments", "students"})


def test_only_strict_true_enables_a_module():
    entitlements = [
        {"moduleKey": "teachers", "enabled": "true"},
        {"moduleKey": "grades", "enabled": 1},
        Entitlement("schedules", True),
    ]
    assert derive_menu_keys(entitlements) == frozenset({"schedules"})


def test_structurally_invalid_entries_are_skipped():
    entitlements = [None, "payments", {"enabled": True}, {"moduleKey": 5, "enabled": True}, {"key": "dashboard", "enabled": True}]
    assert derive_menu_keys(entitlements) == frozenset({"dashboard"})


def test_malformed_input_gives_empty_set():
    assert derive_menu_keys(None) == frozenset()
    assert derive_menu_keys({"data": []}) == frozenset()
    assert derive_menu_keys([]) == frozenset()


def test_gate_requires_a_token():
    gate = EntitlementGate()
    entitlements = [{"moduleKey": "payments", "enabled": True}]
    assert gate.derive(entitlements, None) == frozenset()
    allowed = gate.derive(entitlements, "tok")
    assert allowed == frozenset({"payments"})
    assert gate.permits(allowed, "payments")
    assert not gate.permits(allowed, "students")
