# tests/test_payloads.py
import pytest

from core.errors import ShapeError
from core.payloads import (
    parse_access_control,
    parse_amount,
    parse_log_list,
    parse_login,
    parse_payment_detail,
    parse_payment_request_detail,
    parse_record_list,
    parse_report_page,
    parse_schedule_detail,
    parse_school_list,
    parse_student_detail,
    parse_update_result,
)


def test_login_token_and_user_paths():
    assert parse_login({"token": "t", "user": {"id": 1}}) == ("t", {"id": 1})
    assert parse_login({"data": {"token": "t2", "user": {"id": 2}}}) == ("t2", {"id": 2})
    token, user = parse_login({"access_token": "t3", "first_name": "Ana", "role_name": "ADMIN"})
    assert token == "t3"
    assert user == {"first_name": "Ana", "role_name": "ADMIN"}


def test_login_rejects_non_object():
    with pytest.raises(ShapeError):
        parse_login(["token"])


def test_access_control_envelopes_and_graceful_empty():
    modules = [{"moduleKey": "payments", "enabled": True}]
    assert parse_access_control(modules) == modules
    assert parse_access_control({"data": modules}) == modules
    assert parse_access_control({"modules": modules}) == modules
    assert parse_access_control({"content": modules}) == modules
    assert parse_access_control({"unexpected": True}) == []
    assert parse_access_control("nope") == []


def test_report_page_requires_content():
    page = parse_report_page({"content": [{"student_full_name": "Ana"}], "totalElements": 31})
    assert page.total_elements == 31
    assert parse_report_page({"content": []}).total_elements == 0
    with pytest.raises(ShapeError):
        parse_report_page({"totalElements": 3})
    with pytest.raises(ShapeError):
        parse_report_page([])


def test_school_list_candidate_keys_in_order():
    assert parse_school_list({"schools": [{"school_id": 1}]}) == [{"school_id": 1}]
    assert parse_school_list({"data": [{"school_id": 2}], "items": [{"school_id": 3}]}) == [{"school_id": 2}]
    assert parse_school_list([{"school_id": 4}, "junk"]) == [{"school_id": 4}]
    with pytest.raises(ShapeError):
        parse_school_list({"data": {"school_id": 1}})


def test_student_detail_envelopes():
    assert parse_student_detail({"data": [{"student_id": 1}]}) == {"student_id": 1}
    assert parse_student_detail({"student": {"student_id": 2}}) == {"student_id": 2}
    assert parse_student_detail([{"student_id": 3}]) == {"student_id": 3}
    assert parse_student_detail({"student_id": 4}) == {"student_id": 4}
    with pytest.raises(ShapeError):
        parse_student_detail([])


def test_update_result():
    result = parse_update_result({"success": False, "message": "Duplicated email"})
    assert result.success is False
    assert result.message == "Duplicated email"
    assert parse_update_result(None).success is None


def test_payment_detail_takes_first_record_or_none():
    assert parse_payment_detail({"content": [{"payment_id": 1}, {"payment_id": 2}]}) == {"payment_id": 1}
    assert parse_payment_detail({"content": []}) is None
    with pytest.raises(ShapeError):
        parse_payment_detail({"totalElements": 0})


def test_payment_request_detail_requires_request_block():
    detail = parse_payment_request_detail({"paymentRequest": {"id": 3}, "student": None})
    assert detail.request == {"id": 3}
    assert detail.student_record == {}
    with pytest.raises(ShapeError):
        parse_payment_request_detail({"student": {"full_name": "Ana"}})
    with pytest.raises(ShapeError):
        parse_payment_request_detail([])


def test_schedule_detail_rejects_empty():
    assert parse_schedule_detail({"active": False}) == {"active": False}
    with pytest.raises(ShapeError):
        parse_schedule_detail({})


def test_log_and_record_lists_degrade_to_empty():
    assert parse_log_list([{"a": 1}, "noise", None]) == [{"a": 1}]
    assert parse_log_list({"content": [{"a": 1}]}) == []
    assert parse_record_list({"content": [{"a": 1}]}) == [{"a": 1}]
    assert parse_record_list([{"b": 2}]) == [{"b": 2}]
    assert parse_record_list({"message": "x"}) == []


@pytest.mark.parametrize("payload, expected", [(1250, 1250.0), ("99.5", 99.5), (None, 0.0), ({"x": 1}, 0.0)])
def test_pending_amount(payload, expected):
    assert parse_amount(payload) == expected
