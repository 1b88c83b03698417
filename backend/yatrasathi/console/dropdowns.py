"""Dropdown option sources: loading them and deriving the options per field."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..api.client import ApiClient
from ..errors import ApiError, ConnectivityError
from .descriptors import FieldType, ModuleDescriptor, Record
from .registry import ModuleRegistry
from .validation import is_blank

logger = logging.getLogger("yatrasathi.console.dropdowns")


class Option(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: Any
    label: str


async def _load_source(api: ApiClient, source: ModuleDescriptor) -> list[Record]:
    try:
        rows = await api.list_records(source.endpoint, records_key=source.records_key)
    except (ApiError, ConnectivityError) as exc:
        logger.warning("Dropdown source %s failed to load: %s", source.key, exc.message)
        return []
    # Source rows carry their own computed fields (fullOpId on operations)
    return [source.with_computed(row) for row in rows]


async def load_sources(
    api: ApiClient,
    descriptor: ModuleDescriptor,
    registry: ModuleRegistry,
) -> dict[str, list[Record]]:
    """Fetch every source the module needs, concurrently.

    A failing source yields an empty list without affecting the others.
    """
    names = descriptor.dropdown_sources()
    if not names:
        return {}
    results = await asyncio.gather(
        *(_load_source(api, registry.get_descriptor(name)) for name in names)
    )
    return dict(zip(names, results))


def options_for(
    descriptor: ModuleDescriptor,
    field_name: str,
    form_data: Mapping[str, Any],
    sources: Mapping[str, Sequence[Record]],
) -> list[Option]:
    """Options offered for one field given the current edit buffer.

    A cascading dropdown whose parent is empty offers the full list.
    """
    field = descriptor.field(field_name)
    if field is None:
        return []
    if field.type is FieldType.SELECT:
        return [Option(value=choice, label=choice) for choice in field.choices]
    if field.type is not FieldType.DROPDOWN or not (field.source and field.value_field and field.display_field):
        return []

    rows: Sequence[Record] = sources.get(field.source, ())
    if field.cascade_from is not None and field.cascade_key is not None:
        parent = form_data.get(field.cascade_from)
        if not is_blank(parent):
            rows = [row for row in rows if str(row.get(field.cascade_key)) == str(parent)]

    options = []
    for row in rows:
        value = row.get(field.value_field)
        if value is None:
            continue
        display = row.get(field.display_field)
        options.append(Option(value=value, label=f"{value} - {display if display is not None else ''}"))
    return options
