# tests/test_routing.py
import pytest

from core.navigation import NavCommand
from core.routing import (
    DetailKind,
    DetailLabelCache,
    DetailView,
    RouteResolver,
    SubView,
    decode_segment,
    payments_section_key,
)


@pytest.fixture
def dispatched():
    return []


@pytest.fixture
def resolver(labels, dispatched):
    return RouteResolver(labels, dispatched.append)


@pytest.mark.parametrize("segments, expected", [
    (["requests", "x"], "requests"),
    (["requests"], "requests"),
    (["payments"], "payments"),
    (["payments", "42"], "payments"),
    ([], "tuition"),
    ([""], "tuition"),
    (["tuition"], "tuition"),
    (["topups"], "topups"),
])
def test_payments_section_priority(segments, expected):
    assert payments_section_key(segments) == expected


@pytest.mark.parametrize("segments, kind, identifier", [
    (["payments", "42"], DetailKind.PAYMENT, "42"),
    (["requests", "9"], DetailKind.PAYMENT_REQUEST, "9"),
    (["requests", "scheduled", "7"], DetailKind.PAYMENT_REQUEST_SCHEDULE, "7"),
])
def test_payments_detail_views(resolver, segments, kind, identifier):
    route = resolver.resolve("payments", segments)
    assert route.detail_view == DetailView(kind, identifier)
    assert route.sub_view is None


def test_payments_request_result_is_a_sub_view(resolver):
    route = resolver.resolve("payments", ["requests", "result"])
    assert route.detail_view is None
    assert route.sub_view is SubView.REQUEST_RESULT
    assert route.section_key == "requests"


@pytest.mark.parametrize("segments, section, kind, sub_view", [
    ([], "students", None, None),
    (["tab", "groups"], "groups", None, None),
    (["bulk-upload"], "students", None, SubView.BULK_UPLOAD),
    (["S-001"], "students", DetailKind.STUDENT, None),
])
def test_students_segments(resolver, segments, section, kind, sub_view):
    route = resolver.resolve("students", segments)
    assert route.section_key == section
    assert (route.detail_view.kind if route.detail_view else None) == kind
    assert route.sub_view == sub_view


def test_detail_identifier_is_decoded_with_raw_fallback():
    assert DetailView(DetailKind.STUDENT, "Ana%20D%C3%ADaz").identifier == "Ana Díaz"
    assert decode_segment("%E0%A4%A") == "%E0%A4%A"


def test_student_detail_breadcrumbs(resolver, dispatched):
    route = resolver.resolve("students", ["S-001"])
    labels = [c.label for c in route.breadcrumbs]
    assert labels == ["Inicio", "Alumnos y grupos", "Alumnos", "Detalle del alumno"]
    assert route.breadcrumbs[-1].action is None
    assert all(c.action is not None for c in route.breadcrumbs[:-1])

    route.breadcrumbs[1].action()
    route.breadcrumbs[2].action()
    assert dispatched == [NavCommand.page("students"), NavCommand.students_section("students")]


def test_breadcrumbs_use_cached_detail_label(resolver):
    route = resolver.resolve("students", ["S-001"], detail_label="Ana Díaz")
    assert route.breadcrumbs[-1].label == "Ana Díaz"


def test_payments_section_breadcrumb_is_last_without_detail(resolver):
    route = resolver.resolve("payments", ["requests"])
    assert [c.label for c in route.breadcrumbs] == ["Inicio", "Pagos y finanzas", "Solicitudes de pago"]
    assert route.breadcrumbs[-1].action is None
    assert route.breadcrumbs[-1].command is None


def test_unknown_page_gets_root_and_generic_label(resolver):
    route = resolver.resolve("reports", ["x"])
    assert [c.label for c in route.breadcrumbs] == ["Inicio", "Reports"]
    assert route.section_key == ""


def test_breadcrumbs_are_deterministic(resolver):
    a = resolver.resolve("payments", ["requests", "scheduled", "7"])
    b = resolver.resolve("payments", ["requests", "scheduled", "7"])
    assert a.breadcrumbs == b.breadcrumbs


def test_detail_label_cache_resets_on_identity_change():
    cache = DetailLabelCache()
    first = DetailView(DetailKind.STUDENT, "1")
    cache.sync(first)
    cache.remember(first, "Ana")
    assert cache.label == "Ana"

    cache.sync(first)
    assert cache.label == "Ana"

    cache.sync(DetailView(DetailKind.STUDENT, "2"))
    assert cache.label is None

    cache.remember(first, "Ana")
    assert cache.label is None

    cache.sync(None)
    assert cache.label is None
