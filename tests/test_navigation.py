# tests/test_navigation.py
from core.nav_registry import ROUTE_INDEX
from core.navigation import NavCommand, RouteState, Router, normalize_path, path_for
from core.session import ANONYMOUS

SUPPORTED = ("es", "en")


def test_logged_out_paths_go_to_login():
    state, canonical = normalize_path("/en/payments/requests", ANONYMOUS, SUPPORTED, "es")
    assert state == RouteState("en", "login")
    assert canonical == "/en/login"


def test_invalid_language_falls_back_and_unknown_page_goes_to_dashboard(admin_session):
    state, canonical = normalize_path("/fr/payments", admin_session, SUPPORTED, "es")
    assert state.language == "es"
    assert state.active_page == "dashboard"
    assert canonical == "/es/dashboard"


def test_students_are_kept_on_their_dashboard(student_session):
    state, canonical = normalize_path("/en/payments", student_session, SUPPORTED, "es")
    assert state.active_page == "student-dashboard"
    assert canonical == "/en/student-dashboard"


def test_canonical_path_keeps_segments(admin_session):
    state, canonical = normalize_path("/en/payments/requests/scheduled/7", admin_session, SUPPORTED, "es")
    assert canonical is None
    assert state == RouteState("en", "payments", ("requests", "scheduled", "7"))


def test_path_for_commands():
    state = RouteState("es", "payments", ("requests",))
    assert path_for(NavCommand.student_detail("a b/c"), state, SUPPORTED) == "/es/students/a%20b%2Fc"
    assert path_for(NavCommand.payments_section("tuition"), state, SUPPORTED) == "/es/payments"
    assert path_for(NavCommand.payments_section("requests"), state, SUPPORTED) == "/es/payments/requests"
    assert path_for(NavCommand.students_section("groups"), state, SUPPORTED) == "/es/students/tab/groups"
    assert path_for(NavCommand.students_section("students"), state, SUPPORTED) == "/es/students"
    assert path_for(NavCommand.payment_request_schedule_detail(7), state, SUPPORTED) == "/es/payments/requests/scheduled/7"
    assert path_for(NavCommand.payment_request_result(), state, SUPPORTED) == "/es/payments/requests/result"
    assert path_for(NavCommand.student_detail(None), state, SUPPORTED) is None


def test_language_change_keeps_page_and_segments():
    state = RouteState("es", "payments", ("payments", "42"))
    assert path_for(NavCommand.language("en"), state, SUPPORTED) == "/en/payments/payments/42"
    assert path_for(NavCommand.language("fr"), state, SUPPORTED) is None
    assert path_for(NavCommand.language("es"), state, SUPPORTED) is None


def test_router_dispatch_history_and_session_change(admin_session):
    seen = []
    router = Router("/es/payments", admin_session, SUPPORTED, "es", on_change=seen.append)
    assert router.path == "/es/payments"

    router.dispatch(NavCommand.student_detail("S-1"))
    assert router.state == RouteState("es", "students", ("S-1",))
    assert seen == ["/es/students/S-1"]

    assert router.back() is True
    assert router.path == "/es/payments"

    router.set_session(ANONYMOUS)
    assert router.path == "/es/login"
    assert router.state.active_page == "login"


def test_default_tabs_come_from_the_route_table(admin_session):
    router = Router("/es/dashboard", admin_session, SUPPORTED, "es")
    router.dispatch(NavCommand.payments_section(ROUTE_INDEX["payments"].default_section))
    assert router.path == "/es/payments"
    router.dispatch(NavCommand.students_section(ROUTE_INDEX["students"].default_section))
    assert router.path == "/es/students"
