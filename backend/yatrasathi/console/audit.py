"""Audit trail display: who entered, modified and closed a record, and when."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any

from .descriptors import AuditFields

MISSING = "-"
TIMESTAMP_FORMAT = "%d %b %Y, %I:%M %p"


def format_timestamp(value: Any) -> str:
    """``2024-03-05T14:07:00Z`` -> ``05 Mar 2024, 02:07 PM``.

    Missing values render as ``-``; values that are not timestamps are shown
    as they came.
    """
    if value is None or value == "":
        return MISSING
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return str(value)
    return moment.strftime(TIMESTAMP_FORMAT)


def _text(value: Any) -> str:
    if value is None or value == "":
        return MISSING
    return str(value)


@dataclass(frozen=True)
class AuditTrail:
    entered_on: str = MISSING
    entered_by: str = MISSING
    modified_on: str = MISSING
    modified_by: str = MISSING
    closed_on: str = MISSING
    closed_by: str = MISSING

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def resolve_audit(record: Mapping[str, Any] | None, fields: AuditFields) -> AuditTrail:
    if record is None:
        return AuditTrail()

    def read(name: str | None) -> Any:
        return record.get(name) if name else None

    return AuditTrail(
        entered_on=format_timestamp(read(fields.entered_on)),
        entered_by=_text(read(fields.entered_by)),
        modified_on=format_timestamp(read(fields.modified_on)),
        modified_by=_text(read(fields.modified_by)),
        closed_on=format_timestamp(read(fields.closed_on)),
        closed_by=_text(read(fields.closed_by)),
    )


def new_record_audit(user_id: str | None) -> AuditTrail:
    """Audit shown while a new record is being entered."""
    return AuditTrail(entered_by=_text(user_id))
