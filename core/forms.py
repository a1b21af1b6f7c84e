# app/core/forms.py
"""Student detail form: binding, validation and payload cleanup."""

from __future__ import annotations
import re
from typing import Any, Dict, Mapping, Optional

from core.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELDS = (
    "first_name",
    "last_name_father",
    "last_name_mother",
    "school_id",
    "group_id",
    "register_id",
    "email",
)
EMAIL_FIELDS = ("email", "personal_email")

# Editable fields, in form order
FORM_FIELDS = (
    "first_name",
    "last_name_father",
    "last_name_mother",
    "birth_date",
    "phone_number",
    "tax_id",
    "curp",
    "street",
    "ext_number",
    "int_number",
    "suburb",
    "locality",
    "municipality",
    "state",
    "personal_email",
    "email",
    "username",
    "school_id",
    "group_id",
    "register_id",
    "payment_reference",
)

REQUIRED_MESSAGE = "This field is required"
EMAIL_MESSAGE = "Enter a valid email address"


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def build_form_state(detail: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Form values from a student-detail record, one field per API field."""
    detail = detail or {}
    state: Dict[str, Any] = {}
    for name in FORM_FIELDS:
        value = detail.get(name)
        state[name] = "" if value is None else value
    return state


def field_errors(values: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        if _blank(values.get(name)):
            errors[name] = REQUIRED_MESSAGE
    for name in EMAIL_FIELDS:
        if name in errors or _blank(values.get(name)):
            continue
        if not EMAIL_PATTERN.match(str(values[name]).strip()):
            errors[name] = EMAIL_MESSAGE
    return errors


def validate_student_form(values: Mapping[str, Any]) -> None:
    errors = field_errors(values)
    if errors:
        raise ValidationError(errors, message=f"{len(errors)} field(s) need attention")


def sanitize_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Trim strings; blanks are sent as None."""
    clean: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, str):
            value = value.strip() or None
        clean[key] = value
    return clean


def student_display_name(detail: Optional[Mapping[str, Any]]) -> str:
    """``full_name`` when present, else the joined name parts."""
    detail = detail or {}
    full_name = detail.get("full_name")
    if isinstance(full_name, str) and full_name.strip():
        return full_name.strip()
    parts = [detail.get(k) for k in ("first_name", "last_name_father", "last_name_mother")]
    return " ".join(str(p).strip() for p in parts if p and str(p).strip())


def update_target_id(detail: Mapping[str, Any], student_id: str) -> str:
    """Updates address the student's user id; the route id is the fallback."""
    user_id = detail.get("user_id")
    return str(user_id) if user_id not in (None, "") else student_id


def merge_saved(detail: Mapping[str, Any], payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Detail record after a successful save of ``payload``."""
    merged = {**detail, **payload}
    name = " ".join(
        str(payload[k]) for k in ("first_name", "last_name_father", "last_name_mother") if payload.get(k)
    )
    merged["full_name"] = name or detail.get("full_name")
    return merged
