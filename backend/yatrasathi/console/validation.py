"""Client-side checks run on the edit buffer before anything is sent."""
from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from .descriptors import FieldDescriptor, FieldType

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_DIGITS = 10
PHONE_CHARS_RE = re.compile(r"[\d\s()+-]+")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value))
    except ValueError:
        return False
    return True


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    text = str(value).strip()
    try:
        date.fromisoformat(text)
    except ValueError:
        try:
            datetime.fromisoformat(text)
        except ValueError:
            return False
    return True


def check_field(field: FieldDescriptor, value: Any) -> list[str]:
    """Messages for one field; empty when the value is acceptable."""
    if is_blank(value):
        if field.required:
            return [f"{field.label} is required"]
        return []

    errors: list[str] = []
    text = str(value)

    if field.type is FieldType.EMAIL and not EMAIL_RE.fullmatch(text):
        errors.append(f"{field.label} must be a valid email address")
    elif field.type is FieldType.TEL:
        digits = re.sub(r"\D", "", text)
        if not PHONE_CHARS_RE.fullmatch(text) or len(digits) != PHONE_DIGITS:
            errors.append(f"{field.label} must be a 10-digit phone number")
    elif field.type is FieldType.NUMBER and not _is_number(value):
        errors.append(f"{field.label} must be a number")
    elif field.type is FieldType.DATE and not _is_date(value):
        errors.append(f"{field.label} must be a valid date")
    elif field.type is FieldType.SELECT and text not in field.choices:
        errors.append(f"{field.label} must be one of: {', '.join(field.choices)}")

    if field.max_length is not None and len(text) > field.max_length:
        errors.append(f"{field.label} must not exceed {field.max_length} characters")

    # Patterns match the whole value, as HTML pattern attributes do
    if field.pattern and not re.fullmatch(field.pattern, text):
        errors.append(f"{field.label}: {field.title or 'Invalid format'}")

    return errors


def validate_record(form_data: Mapping[str, Any], fields: Iterable[FieldDescriptor]) -> list[str]:
    errors: list[str] = []
    for field in fields:
        if field.type is FieldType.CHECKBOX:
            continue
        errors.extend(check_field(field, form_data.get(field.name)))
    return errors
