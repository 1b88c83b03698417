"""
Client-side filtering over already loaded records.

Rules per filter name:
- ``shortName``: case-insensitive substring against any searchable label field
- ``active``: exact flag match on the module's active field
- checkbox, select and dropdown fields: exact match (identifiers and flags)
- every other field: case-insensitive substring

Blank filter values are ignored. Filtering never mutates records.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .descriptors import (
    EXACT_MATCH_TYPES,
    FILTER_ACTIVE,
    FILTER_SHORT_NAME,
    FieldType,
    ModuleDescriptor,
    Record,
)
from .validation import is_blank

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "y"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", "n"})


def as_flag(value: Any) -> int | None:
    """1/0 for anything flag-like, None when it cannot be read as a flag."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return 1 if value else 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return 1
        if lowered in _FALSE_STRINGS:
            return 0
    return None


def _contains(value: Any, needle: str) -> bool:
    if value is None:
        return False
    return needle in str(value).lower()


def _matches(
    record: Mapping[str, Any],
    name: str,
    wanted: Any,
    descriptor: ModuleDescriptor,
    label_fields: Sequence[str],
) -> bool:
    if name == FILTER_SHORT_NAME:
        needle = str(wanted).strip().lower()
        return any(_contains(record.get(field), needle) for field in label_fields)

    if name == FILTER_ACTIVE:
        if descriptor.active_field is None:
            return True
        return as_flag(record.get(descriptor.active_field)) == as_flag(wanted)

    field = descriptor.field(name)
    value = record.get(name)
    if field is not None and field.type is FieldType.CHECKBOX:
        return as_flag(value) == as_flag(wanted)
    if field is not None and field.type in EXACT_MATCH_TYPES:
        return value is not None and str(value) == str(wanted)
    return _contains(value, str(wanted).strip().lower())


def apply_filters(
    records: Iterable[Record],
    descriptor: ModuleDescriptor,
    filters: Mapping[str, Any],
    label_fields: Sequence[str] | None = None,
) -> list[Record]:
    active = {name: value for name, value in filters.items() if not is_blank(value)}
    if not active:
        return list(records)
    searchable = tuple(label_fields) if label_fields is not None else descriptor.label_fields
    return [
        record
        for record in records
        if all(_matches(record, name, value, descriptor, searchable) for name, value in active.items())
    ]
