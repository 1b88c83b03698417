"""
User-facing notices and the server-error parser.

Backend failures arrive as raw database messages (MySQL wording). They are
matched against known phrasings and re-presented as a category with a
readable description; anything unrecognized keeps its raw text.
"""
from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict

from ..errors import ApiError, ConnectivityError

NoticeType = Literal["error", "warning", "success", "info"]


class Notice(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: NoticeType
    title: str
    description: str


ACCESS_DENIED = Notice(
    type="error",
    title="Access Denied",
    description="You do not have permission to perform this operation.",
)
SELECT_FIRST = Notice(type="warning", title="No Record Selected", description="Please select a record first")
CONFIRM_DELETE = Notice(
    type="warning",
    title="Confirm Delete",
    description="Are you sure you want to delete this record?",
)
SAVED = Notice(type="success", title="Saved", description="Record saved successfully")
DELETED = Notice(type="success", title="Deleted", description="Record deleted successfully")


def validation_notice(errors: Iterable[str]) -> Notice:
    return Notice(type="error", title="Validation Error", description="\n".join(errors))


def _server_message(exc: ApiError) -> str:
    payload = exc.payload
    if isinstance(payload, Mapping):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
        error = payload.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        return json.dumps(payload, default=str)
    if isinstance(payload, str) and payload:
        return payload
    return exc.message


def _duplicate(message: str) -> Notice:
    match = re.search(r"Duplicate entry.*?'([^']+)'.*for key '([^']+)'", message, re.IGNORECASE)
    if match:
        value, field = match.group(1), match.group(2)
    else:
        match = re.search(r"([^=]+?)\s*=\s*'([^']+)'", message)
        if match is None:
            return Notice(type="error", title="Duplicate Entry", description=message)
        field, value = match.group(1).strip(), match.group(2)
    return Notice(
        type="error",
        title="Duplicate Entry",
        description=f"A record with {field} '{value}' already exists.\nPlease use a different value.",
    )


def parse_server_message(message: str) -> Notice:
    if "Duplicate entry" in message or "already exists" in message:
        return _duplicate(message)

    if ("Cannot delete" in message or "referenced by other records" in message
            or "ER_ROW_IS_REFERENCED" in message):
        return Notice(
            type="error",
            title="Cannot Delete Record",
            description="This record is referenced by other records.\nPlease delete dependent records first.",
        )

    if ("Foreign key constraint" in message or "does not exist" in message
            or "ER_NO_REFERENCED_ROW" in message):
        return Notice(
            type="error",
            title="Invalid Reference",
            description="The referenced record does not exist.\nPlease select a valid option.",
        )

    if "Data too long" in message or "exceed" in message:
        match = re.search(r"for column '([^']+)'", message, re.IGNORECASE)
        field = match.group(1) if match else "field"
        return Notice(
            type="error",
            title="Data Too Long",
            description=f"The {field} exceeds the maximum allowed length.\nPlease shorten your input.",
        )

    if "cannot be null" in message or "Required field missing" in message:
        match = re.search(r"'([^']+)'", message)
        field = match.group(1) if match else "field"
        return Notice(
            type="error",
            title="Required Field Missing",
            description=f"The {field} is required.\nPlease provide a value.",
        )

    if "Validation error" in message:
        return Notice(
            type="warning",
            title="Validation Error",
            description=message.replace("Validation error: ", ""),
        )

    if "Access denied" in message or "permission" in message:
        return ACCESS_DENIED

    if "Table" in message and "doesn't exist" in message:
        return Notice(
            type="error",
            title="System Error",
            description="The requested data table does not exist.\nPlease contact system administrator.",
        )

    if "Unknown column" in message:
        return Notice(
            type="error",
            title="System Error",
            description="Invalid field detected.\nPlease contact support.",
        )

    return Notice(type="error", title="Error", description=message)


def parse_error(exc: BaseException) -> Notice:
    """Turn a failed backend call into the notice shown to the user."""
    if isinstance(exc, ConnectivityError):
        if exc.timeout:
            return Notice(
                type="error",
                title="Request Timeout",
                description="The request took too long to complete. Please try again.",
            )
        return Notice(
            type="error",
            title="Connection Error",
            description="Unable to connect to the server. Please check your network connection and try again.",
        )

    if isinstance(exc, ApiError):
        return parse_server_message(_server_message(exc))

    description = str(exc) or "An unexpected error occurred. Please try again."
    return Notice(type="error", title="Unexpected Error", description=description)
