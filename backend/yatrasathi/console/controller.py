"""
Generic master-detail console driven by module descriptors.

The console holds the state of one admin screen: active module, loaded
records, filters, page, selected record, edit buffer and the current notice.
Backend failures never escape an operation; they become notices and leave
unrelated state untouched. Authorization denials are notices as well.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from ..api.client import ApiClient
from ..errors import ApiError, ConnectivityError, ValidationError
from .audit import AuditTrail, format_timestamp, new_record_audit, resolve_audit
from .descriptors import FieldType, ModuleDescriptor, Record
from .dropdowns import Option, load_sources, options_for
from .filters import apply_filters, as_flag
from .notices import (
    ACCESS_DENIED,
    CONFIRM_DELETE,
    DELETED,
    SAVED,
    SELECT_FIRST,
    Notice,
    parse_error,
    validation_notice,
)
from .registry import DEFAULT_MODULE, REGISTRY, ModuleRegistry
from .validation import validate_record

logger = logging.getLogger("yatrasathi.console")

DEFAULT_PAGE_SIZE = 100

DIRECTIONS: tuple[str, ...] = ("first", "prev", "next", "last")

# (descriptor, verb) -> allowed; verbs are VIEW, NEW, EDIT, SAVE, DELETE
Authorizer = Callable[[ModuleDescriptor, str], bool]


class AdminConsole:
    def __init__(
        self,
        api: ApiClient,
        registry: ModuleRegistry = REGISTRY,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        authorize: Authorizer | None = None,
        user_id: str | None = None,
        module: str = DEFAULT_MODULE,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self.api = api
        self.registry = registry
        self.page_size = page_size
        self.user_id = user_id
        self._authorize = authorize

        self.descriptor: ModuleDescriptor = registry.get_descriptor(module)
        self.records: list[Record] = []
        self.sources: dict[str, list[Record]] = {}
        self.filters: dict[str, Any] = {}
        self.page = 1
        self.selected: Record | None = None
        self.form_data: Record = {}
        self.editing = False
        self.pending_delete = False
        self.notice: Notice | None = None
        self.audit = AuditTrail()
        self.scroll_to: int | None = None
        self.loading = False

        self._request_seq = 0
        self._generation = 0

    async def aclose(self) -> None:
        await self.api.aclose()

    @property
    def is_open(self) -> bool:
        """False until the first module has been opened."""
        return self._generation > 0

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    def _row(self, record: Mapping[str, Any]) -> Record:
        return self.descriptor.with_computed(record, self.sources)

    @property
    def visible_records(self) -> list[Record]:
        rows = [self._row(record) for record in self.records]
        return apply_filters(rows, self.descriptor, self.filters, self.registry.label_fields())

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self.visible_records) / self.page_size))

    @property
    def page_records(self) -> list[Record]:
        start = (self.page - 1) * self.page_size
        return self.visible_records[start:start + self.page_size]

    @property
    def selected_index(self) -> int | None:
        """Position of the selected record within the current page."""
        if self.selected is None:
            return None
        for index, row in enumerate(self.page_records):
            if self.descriptor.same_record(row, self.selected):
                return index
        return None

    def options_for(self, field_name: str) -> list[Option]:
        return options_for(self.descriptor, field_name, self.form_data, self.sources)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def _allowed(self, verb: str, descriptor: ModuleDescriptor | None = None) -> bool:
        if self._authorize is None:
            return True
        target = descriptor or self.descriptor
        if self._authorize(target, verb):
            return True
        logger.info("Console action denied module=%s verb=%s user=%s", target.key, verb, self.user_id)
        self.notice = ACCESS_DENIED
        return False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def open(self, module: str) -> bool:
        """Switch to ``module``: page 1, no selection, no filters, fresh data."""
        descriptor = self.registry.get_descriptor(module)
        if not self._allowed("VIEW", descriptor):
            return False

        self._generation += 1
        self.descriptor = descriptor
        self.records = []
        self.sources = {}
        self.filters = {}
        self.page = 1
        self.selected = None
        self.form_data = {}
        self.editing = False
        self.pending_delete = False
        self.notice = None
        self.audit = AuditTrail()
        self.scroll_to = None

        await self.load_sources()
        await self.load(auto_select=True)
        return True

    async def load_sources(self) -> None:
        generation = self._generation
        sources = await load_sources(self.api, self.descriptor, self.registry)
        if generation != self._generation:
            return
        self.sources = sources

    async def load(self, *, auto_select: bool = False) -> bool:
        """Fetch the module's records.

        On failure the previous list stays and a notice is posted. Responses
        to superseded requests are dropped.
        """
        self._request_seq += 1
        seq = self._request_seq
        descriptor = self.descriptor
        self.loading = True
        try:
            rows = await self.api.list_records(descriptor.endpoint, records_key=descriptor.records_key)
        except (ApiError, ConnectivityError) as exc:
            if seq == self._request_seq:
                self.loading = False
                self.notice = parse_error(exc)
                logger.warning("List load failed module=%s: %s", descriptor.key, exc.message)
            return False

        if seq != self._request_seq:
            logger.debug("Dropping stale list response module=%s seq=%s", descriptor.key, seq)
            return False

        self.loading = False
        self.records = rows
        self.page = min(self.page, self.total_pages)
        if auto_select and self.selected is None and not self.editing:
            visible = self.visible_records
            if visible:
                self.select(visible[0])
        return True

    async def refresh(self) -> bool:
        return await self.load()

    # ------------------------------------------------------------------
    # Filters and pages
    # ------------------------------------------------------------------

    def set_filter(self, name: str, value: Any) -> None:
        if name not in self.descriptor.filter_fields:
            raise ValidationError(f"'{name}' is not a filter of module '{self.descriptor.key}'")
        if value is None or value == "":
            self.filters.pop(name, None)
        else:
            self.filters[name] = value
        self.page = 1

    def set_filters(self, values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            self.set_filter(name, value)

    def clear_filters(self) -> None:
        self.filters = {}
        self.page = 1

    def go_to_page(self, page: int) -> int:
        self.page = min(max(1, page), self.total_pages)
        self.scroll_to = None
        return self.page

    # ------------------------------------------------------------------
    # Selection and edit buffer
    # ------------------------------------------------------------------

    def select(self, record: Mapping[str, Any]) -> None:
        # Computed columns are display-only and never enter the edit buffer
        stored = {
            name: value for name, value in record.items()
            if self.descriptor.computed(name) is None
        }
        self.selected = stored
        self.form_data = dict(stored)
        self.editing = False
        self.pending_delete = False
        self.audit = resolve_audit(self.selected, self.descriptor.audit)

    def select_index(self, index: int) -> bool:
        rows = self.page_records
        if not 0 <= index < len(rows):
            return False
        self.select(rows[index])
        return True

    def select_key(self, key_values: Sequence[Any]) -> bool:
        """Select the visible record whose key fields equal ``key_values``."""
        wanted = [str(value) for value in key_values]
        for row in self.visible_records:
            if [str(value) for value in self.descriptor.key_values(row)] == wanted:
                self.select(row)
                return True
        return False

    def new(self) -> bool:
        """Blank edit buffer seeded with defaults. No request is made."""
        if not self._allowed("NEW"):
            return False
        self.selected = None
        self.form_data = {field.name: field.empty_value() for field in self.descriptor.fields}
        self.editing = True
        self.pending_delete = False
        self.notice = None
        self.audit = new_record_audit(self.user_id)
        return True

    def edit(self) -> bool:
        if self.selected is None:
            self.notice = SELECT_FIRST
            return False
        if not self._allowed("EDIT"):
            return False
        self.editing = True
        self.pending_delete = False
        return True

    def cancel_edit(self) -> None:
        """Drop unsaved changes; the edit buffer shows the selection again."""
        self.editing = False
        self.pending_delete = False
        self.form_data = dict(self.selected) if self.selected is not None else {}

    def set_field(self, name: str, value: Any) -> bool:
        field = self.descriptor.field(name)
        if field is None:
            raise ValidationError(f"Module '{self.descriptor.key}' has no field '{name}'")
        if not self.editing:
            return False
        if field.read_only and self.selected is not None:
            return False
        if field.type is FieldType.CHECKBOX:
            value = as_flag(value) or 0
        self.form_data[name] = value
        return True

    def set_fields(self, values: Mapping[str, Any]) -> list[str]:
        """Apply several field updates; returns the names that were applied."""
        return [name for name, value in values.items() if self.set_field(name, value)]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save(self) -> bool:
        if not self.editing:
            return False
        current = self.selected
        creating = current is None
        if not self._allowed("NEW" if creating else "SAVE"):
            return False

        errors = validate_record(self.form_data, self.descriptor.fields)
        if errors:
            self.notice = validation_notice(errors)
            return False

        descriptor = self.descriptor
        generation = self._generation
        body = dict(self.form_data)
        try:
            if current is None:
                saved = await self.api.create_record(descriptor.endpoint, body)
            else:
                saved = await self.api.update_record(
                    descriptor.endpoint, descriptor.key_values(current), body
                )
        except (ApiError, ConnectivityError) as exc:
            logger.warning("Save failed module=%s: %s", descriptor.key, exc.message)
            self.notice = parse_error(exc)
            return False

        if generation != self._generation:
            return True

        # The server's copy carries generated ids and timestamps
        self.select(saved if saved is not None else body)
        self.notice = SAVED
        await self.load()
        return True

    async def delete(self, *, confirmed: bool = False) -> bool:
        if self.selected is None:
            self.notice = SELECT_FIRST
            return False
        if not self._allowed("DELETE"):
            return False
        if not confirmed:
            self.pending_delete = True
            self.notice = CONFIRM_DELETE
            return False

        descriptor = self.descriptor
        generation = self._generation
        try:
            await self.api.delete_record(descriptor.endpoint, descriptor.key_values(self.selected))
        except (ApiError, ConnectivityError) as exc:
            logger.warning("Delete failed module=%s: %s", descriptor.key, exc.message)
            self.pending_delete = False
            self.notice = parse_error(exc)
            return False

        if generation != self._generation:
            return True

        self.selected = None
        self.form_data = {}
        self.editing = False
        self.pending_delete = False
        self.audit = AuditTrail()
        self.notice = DELETED
        await self.load()
        return True

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def can_navigate(self, direction: str) -> bool:
        rows = self.page_records
        index = self.selected_index
        if index is None:
            # A selection on another page can still jump to either end of this one
            return self.selected is not None and bool(rows) and direction in ("first", "last")
        if direction in ("first", "prev"):
            return index > 0
        if direction in ("next", "last"):
            return index < len(rows) - 1
        return False

    def navigate(self, direction: str) -> bool:
        if direction not in DIRECTIONS:
            raise ValidationError(f"Unknown direction '{direction}'")
        if not self.can_navigate(direction):
            return False
        rows = self.page_records
        if direction == "first":
            target = 0
        elif direction == "last":
            target = len(rows) - 1
        else:
            index = self.selected_index or 0
            target = index - 1 if direction == "prev" else index + 1
        self.select(rows[target])
        self.scroll_to = target
        return True

    def handle_key(self, key: str) -> bool:
        """Keyboard contract of the list/detail screen.

        ArrowUp/ArrowDown move one row and Enter starts editing, both only
        when not editing. Escape cancels an edit in progress.
        """
        if key == "Escape":
            if not self.editing:
                return False
            self.cancel_edit()
            return True
        if self.editing:
            return False
        if key == "ArrowDown":
            return self.navigate("next")
        if key == "ArrowUp":
            return self.navigate("prev")
        if key == "Enter":
            return self.edit()
        return False

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def _display_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        timestamps = self.descriptor.audit.timestamp_names()
        values = {}
        for column in self.descriptor.columns:
            value = row.get(column)
            values[column] = format_timestamp(value) if column in timestamps else value
        return {"key": list(self.descriptor.key_values(row)), "values": values}

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the whole screen."""
        descriptor = self.descriptor
        visible = self.visible_records
        start = (self.page - 1) * self.page_size
        page_rows = visible[start:start + self.page_size]
        return {
            "module": descriptor.key,
            "name": descriptor.name,
            "modules": [{"key": key, "name": item.name} for key, item in self.registry.items()],
            "fields": [field.model_dump(mode="json") for field in descriptor.fields],
            "columns": [
                {"name": name, "label": label}
                for name, label in zip(descriptor.columns, descriptor.column_labels)
            ],
            "filter_fields": list(descriptor.filter_fields),
            "filters": dict(self.filters),
            "rows": [self._display_row(row) for row in page_rows],
            "total_records": len(visible),
            "page": self.page,
            "total_pages": self.total_pages,
            "page_size": self.page_size,
            "selected_key": (
                list(descriptor.key_values(self.selected)) if self.selected is not None else None
            ),
            "selected_index": self.selected_index,
            "form_data": dict(self.form_data),
            "editing": self.editing,
            "pending_delete": self.pending_delete,
            "audit": self.audit.as_dict(),
            "notice": self.notice.model_dump() if self.notice is not None else None,
            "navigation": {direction: self.can_navigate(direction) for direction in DIRECTIONS},
            "options": {
                field.name: [option.model_dump() for option in self.options_for(field.name)]
                for field in descriptor.fields
                if field.type in (FieldType.DROPDOWN, FieldType.SELECT)
            },
            "scroll_to": self.scroll_to,
            "loading": self.loading,
        }
