"""
Module descriptors: the data that drives the generic admin console.

A descriptor names an endpoint, its editable fields, the list columns and
how records are keyed. Adding a module to the console means adding a
descriptor; no console code changes.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Pseudo filter names accepted next to real field names
FILTER_ACTIVE = "active"
FILTER_SHORT_NAME = "shortName"

Record = dict[str, Any]
Sources = Mapping[str, Sequence[Record]]


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    TEL = "tel"
    NUMBER = "number"
    DATE = "date"
    PASSWORD = "password"
    CHECKBOX = "checkbox"
    TEXTAREA = "textarea"
    SELECT = "select"
    DROPDOWN = "dropdown"


# Filters on these types compare exactly instead of by substring
EXACT_MATCH_TYPES = frozenset({FieldType.DROPDOWN, FieldType.SELECT, FieldType.CHECKBOX})


class FieldDescriptor(BaseModel):
    """One editable field. ``type`` decides which other attributes apply.

    ``dropdown`` fields read their options from another module's records
    (``source``); ``select`` fields carry fixed ``choices``. A dropdown with
    ``cascade_from`` only offers options whose ``cascade_key`` equals the
    parent field's current value.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    max_length: int | None = Field(default=None, gt=0)
    pattern: str | None = None
    title: str | None = None
    default_value: Any = None
    read_only: bool = False
    choices: tuple[str, ...] = ()
    source: str | None = None
    value_field: str | None = None
    display_field: str | None = None
    cascade_from: str | None = None
    cascade_key: str | None = None

    @model_validator(mode="after")
    def _check_type_attributes(self) -> "FieldDescriptor":
        if self.type is FieldType.DROPDOWN:
            if not (self.source and self.value_field and self.display_field):
                raise ValueError(
                    f"dropdown field '{self.name}' needs source, value_field and display_field"
                )
        elif self.source or self.cascade_from:
            raise ValueError(f"field '{self.name}' is not a dropdown but declares a source")
        if self.type is FieldType.SELECT and not self.choices:
            raise ValueError(f"select field '{self.name}' needs choices")
        if bool(self.cascade_from) != bool(self.cascade_key):
            raise ValueError(f"field '{self.name}' needs both cascade_from and cascade_key")
        return self

    def empty_value(self) -> Any:
        """Value a new record starts with."""
        if self.default_value is not None:
            return self.default_value
        if self.type is FieldType.CHECKBOX:
            return 0
        return ""


@dataclass(frozen=True)
class ComputedField:
    """Derived column. ``formula`` must not mutate the record."""

    name: str
    label: str
    formula: Callable[[Mapping[str, Any], Sources], Any]
    sources: tuple[str, ...] = ()

    def evaluate(self, record: Mapping[str, Any], sources: Sources | None = None) -> Any:
        return self.formula(record, sources or {})


def concat_fields(*names: str) -> Callable[[Mapping[str, Any], Sources], str]:
    def formula(record: Mapping[str, Any], sources: Sources) -> str:
        return "".join(str(record.get(name) or "") for name in names)

    return formula


def lookup_label(
    source: str, local_field: str, match_field: str, label_field: str
) -> Callable[[Mapping[str, Any], Sources], Any]:
    """Formula that shows ``label_field`` of the ``source`` row whose
    ``match_field`` equals the record's ``local_field``."""

    def formula(record: Mapping[str, Any], sources: Sources) -> Any:
        value = record.get(local_field)
        if value in (None, ""):
            return None
        for row in sources.get(source, ()):
            if str(row.get(match_field)) == str(value):
                return row.get(label_field)
        return None

    return formula


class AuditFields(BaseModel):
    """Explicit audit column names for one module (entered/modified/closed)."""

    model_config = ConfigDict(frozen=True)

    entered_on: str | None = None
    entered_by: str | None = None
    modified_on: str | None = None
    modified_by: str | None = None
    closed_on: str | None = None
    closed_by: str | None = None

    @classmethod
    def for_prefix(cls, prefix: str) -> "AuditFields":
        """Standard ``<prefix>edtm`` / ``<prefix>eby`` ... naming."""
        return cls(
            entered_on=f"{prefix}edtm",
            entered_by=f"{prefix}eby",
            modified_on=f"{prefix}mdtm",
            modified_by=f"{prefix}mby",
            closed_on=f"{prefix}cdtm",
            closed_by=f"{prefix}cby",
        )

    def names(self) -> frozenset[str]:
        return frozenset(value for value in self.model_dump().values() if value)

    def timestamp_names(self) -> frozenset[str]:
        return frozenset(
            name for name in (self.entered_on, self.modified_on, self.closed_on) if name
        )


class ModuleDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    name: str
    endpoint: str
    fields: tuple[FieldDescriptor, ...]
    columns: tuple[str, ...]
    column_labels: tuple[str, ...]
    key_fields: tuple[str, ...]
    filter_fields: tuple[str, ...] = ()
    computed_fields: tuple[ComputedField, ...] = ()
    audit: AuditFields = AuditFields()
    label_fields: tuple[str, ...] = ()
    active_field: str | None = None
    records_key: str | None = None
    permission_module: str
    special_features: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_references(self) -> "ModuleDescriptor":
        field_names = [field.name for field in self.fields]
        if len(set(field_names)) != len(field_names):
            raise ValueError(f"module '{self.key}' declares a field twice")
        known = set(field_names)
        computed = {field.name for field in self.computed_fields}

        if not self.endpoint.startswith("/"):
            raise ValueError(f"module '{self.key}' endpoint must start with '/'")
        if not self.key_fields:
            raise ValueError(f"module '{self.key}' needs at least one key field")
        if len(self.columns) != len(self.column_labels):
            raise ValueError(f"module '{self.key}' has {len(self.columns)} columns but "
                             f"{len(self.column_labels)} column labels")

        errors = []
        for column in self.columns:
            if column not in known and column not in computed and column not in self.audit.names():
                errors.append(f"column '{column}'")
        for name in self.key_fields:
            if name not in known:
                errors.append(f"key field '{name}'")
        for name in self.label_fields:
            if name not in known:
                errors.append(f"label field '{name}'")
        for name in self.filter_fields:
            if name == FILTER_ACTIVE:
                if self.active_field is None:
                    errors.append("filter 'active' without an active_field")
            elif name != FILTER_SHORT_NAME and name not in known:
                errors.append(f"filter field '{name}'")
        if self.active_field is not None and self.active_field not in known:
            errors.append(f"active field '{self.active_field}'")
        for field in self.fields:
            if field.cascade_from is not None and field.cascade_from not in known:
                errors.append(f"cascade parent '{field.cascade_from}' of '{field.name}'")
        if errors:
            raise ValueError(f"module '{self.key}' references unknown " + ", ".join(errors))
        return self

    def field(self, name: str) -> FieldDescriptor | None:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def computed(self, name: str) -> ComputedField | None:
        for computed in self.computed_fields:
            if computed.name == name:
                return computed
        return None

    def dropdown_sources(self) -> tuple[str, ...]:
        """Source modules needed by dropdowns and computed columns, in declared order."""
        names: list[str] = []
        for field in self.fields:
            if field.source and field.source not in names:
                names.append(field.source)
        for computed in self.computed_fields:
            for source in computed.sources:
                if source not in names:
                    names.append(source)
        return tuple(names)

    def key_values(self, record: Mapping[str, Any]) -> tuple[Any, ...]:
        return tuple(record.get(name) for name in self.key_fields)

    def same_record(self, left: Mapping[str, Any] | None, right: Mapping[str, Any] | None) -> bool:
        if left is None or right is None:
            return False
        return self.key_values(left) == self.key_values(right)

    def with_computed(self, record: Mapping[str, Any], sources: Sources | None = None) -> Record:
        """Copy of ``record`` with every computed field filled in."""
        row = dict(record)
        for computed in self.computed_fields:
            row[computed.name] = computed.evaluate(record, sources)
        return row
