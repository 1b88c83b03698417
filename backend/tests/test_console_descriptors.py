"""Tests for module descriptors and the registry that holds them."""
import pytest

from yatrasathi.console.descriptors import (
    AuditFields,
    ComputedField,
    FieldDescriptor,
    FieldType,
    ModuleDescriptor,
    lookup_label,
)
from yatrasathi.console.registry import DEFAULT_MODULE, REGISTRY, ModuleRegistry
from yatrasathi.errors import NotFoundError


def descriptor(**overrides) -> ModuleDescriptor:
    values = dict(
        key="things",
        name="Things",
        endpoint="/things",
        fields=(
            FieldDescriptor(name="th_id", label="ID", required=True),
            FieldDescriptor(name="th_name", label="Name"),
        ),
        columns=("th_id", "th_name"),
        column_labels=("ID", "Name"),
        key_fields=("th_id",),
        permission_module="master-data",
    )
    values.update(overrides)
    return ModuleDescriptor(**values)


class TestFieldDescriptor:
    def test_dropdown_needs_source(self):
        with pytest.raises(ValueError, match="needs source"):
            FieldDescriptor(name="x", label="X", type=FieldType.DROPDOWN)

    def test_source_only_on_dropdowns(self):
        with pytest.raises(ValueError, match="not a dropdown"):
            FieldDescriptor(name="x", label="X", source="things")

    def test_select_needs_choices(self):
        with pytest.raises(ValueError, match="needs choices"):
            FieldDescriptor(name="x", label="X", type=FieldType.SELECT)

    def test_cascade_needs_both_halves(self):
        with pytest.raises(ValueError, match="cascade_from and cascade_key"):
            FieldDescriptor(
                name="x", label="X", type=FieldType.DROPDOWN,
                source="things", value_field="a", display_field="b", cascade_from="y",
            )

    def test_max_length_must_be_positive(self):
        with pytest.raises(ValueError):
            FieldDescriptor(name="x", label="X", max_length=0)

    def test_empty_values(self):
        assert FieldDescriptor(name="x", label="X").empty_value() == ""
        assert FieldDescriptor(name="x", label="X", type=FieldType.CHECKBOX).empty_value() == 0
        assert FieldDescriptor(name="x", label="X", type=FieldType.CHECKBOX, default_value=1).empty_value() == 1


class TestModuleDescriptor:
    def test_valid_descriptor(self):
        assert descriptor().key_values({"th_id": 3, "th_name": "a"}) == (3,)

    def test_unknown_column_rejected(self):
        with pytest.raises(ValueError, match="column 'th_missing'"):
            descriptor(columns=("th_id", "th_missing"), column_labels=("ID", "Missing"))

    def test_audit_column_accepted(self):
        d = descriptor(
            columns=("th_id", "th_edtm"),
            column_labels=("ID", "Entered On"),
            audit=AuditFields.for_prefix("th_"),
        )
        assert d.audit.timestamp_names() == {"th_edtm", "th_mdtm", "th_cdtm"}

    def test_computed_column_accepted(self):
        d = descriptor(
            columns=("th_id", "label"),
            column_labels=("ID", "Label"),
            computed_fields=(ComputedField("label", "Label", lambda r, s: f"#{r['th_id']}"),),
        )
        assert d.with_computed({"th_id": 1})["label"] == "#1"

    def test_label_count_must_match(self):
        with pytest.raises(ValueError, match="column labels"):
            descriptor(column_labels=("ID",))

    def test_key_fields_required(self):
        with pytest.raises(ValueError, match="at least one key field"):
            descriptor(key_fields=())

    def test_endpoint_must_be_absolute(self):
        with pytest.raises(ValueError, match="must start with '/'"):
            descriptor(endpoint="things")

    def test_duplicate_field_rejected(self):
        fields = (FieldDescriptor(name="th_id", label="ID"), FieldDescriptor(name="th_id", label="Again"))
        with pytest.raises(ValueError, match="declares a field twice"):
            descriptor(fields=fields, columns=("th_id",), column_labels=("ID",))

    def test_active_filter_needs_active_field(self):
        with pytest.raises(ValueError, match="filter 'active'"):
            descriptor(filter_fields=("active",))

    def test_unknown_filter_rejected(self):
        with pytest.raises(ValueError, match="filter field 'nope'"):
            descriptor(filter_fields=("nope",))

    def test_same_record_compares_keys(self):
        d = descriptor()
        assert d.same_record({"th_id": 1, "th_name": "a"}, {"th_id": 1, "th_name": "b"})
        assert not d.same_record({"th_id": 1}, {"th_id": 2})
        assert not d.same_record(None, {"th_id": 1})

    def test_with_computed_does_not_mutate(self):
        operations = REGISTRY["operations"]
        record = {"op_apid": "TRV", "op_moid": "BKG", "op_opid": "NEW"}

        row = operations.with_computed(record)

        assert row["fullOpId"] == "TRVBKGNEW"
        assert "fullOpId" not in record


class TestLookupLabel:
    def test_finds_label_in_source(self):
        formula = lookup_label("roles", "fp_fnid", "fn_fnid", "fn_fnshort")
        sources = {"roles": [{"fn_fnid": "ADM", "fn_fnshort": "Administrator"}]}

        assert formula({"fp_fnid": "ADM"}, sources) == "Administrator"
        assert formula({"fp_fnid": "XXX"}, sources) is None
        assert formula({"fp_fnid": ""}, sources) is None
        assert formula({"fp_fnid": "ADM"}, {}) is None


class TestRegistry:
    def test_shipped_modules(self):
        assert list(REGISTRY) == [
            "applications",
            "modules",
            "operations",
            "roles",
            "users",
            "rolePermissions",
            "userPermissions",
            "customers",
            "stations",
            "trains",
            "company",
        ]
        assert DEFAULT_MODULE == "applications"

    def test_operations_keyed_by_three_fields(self):
        operations = REGISTRY.get_descriptor("operations")
        assert operations.endpoint == "/permissions"
        assert operations.key_fields == ("op_apid", "op_moid", "op_opid")
        assert operations.dropdown_sources() == ("applications", "modules")

    def test_user_email_field(self):
        email = REGISTRY["users"].field("us_email")
        assert email is not None
        assert email.label == "Email Address"
        assert email.required is True
        assert email.type is FieldType.EMAIL

    def test_role_permissions_sources(self):
        assert REGISTRY["rolePermissions"].dropdown_sources() == ("roles", "operations")

    def test_unknown_module(self):
        with pytest.raises(NotFoundError, match="Unknown console module"):
            REGISTRY.get_descriptor("nope")

    def test_label_fields_union(self):
        labels = REGISTRY.label_fields()
        assert labels[0] == "ap_apshort"
        assert "us_email" in labels
        assert len(labels) == len(set(labels))

    def test_duplicate_registration(self):
        registry = ModuleRegistry((descriptor(),))
        with pytest.raises(ValueError, match="already registered"):
            registry.register(descriptor())

    def test_unknown_dropdown_source(self):
        dependent = descriptor(
            key="children",
            fields=(
                FieldDescriptor(name="th_id", label="ID"),
                FieldDescriptor(
                    name="th_parent", label="Parent", type=FieldType.DROPDOWN,
                    source="parents", value_field="id", display_field="name",
                ),
            ),
            columns=("th_id", "th_parent"),
            column_labels=("ID", "Parent"),
        )
        with pytest.raises(ValueError, match="unknown module 'parents'"):
            ModuleRegistry((dependent,))
