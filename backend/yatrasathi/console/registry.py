"""
Descriptor registry for the admin console.

The security masters (applications through user permissions) plus the
customer list and the travel master data (stations, trains, company).
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from ..errors import NotFoundError
from .descriptors import (
    FILTER_ACTIVE,
    FILTER_SHORT_NAME,
    AuditFields,
    ComputedField,
    FieldDescriptor as F,
    FieldType,
    ModuleDescriptor,
    concat_fields,
    lookup_label,
)


class ModuleRegistry(Mapping[str, ModuleDescriptor]):
    def __init__(self, descriptors: Iterable[ModuleDescriptor] = ()) -> None:
        self._descriptors: dict[str, ModuleDescriptor] = {}
        for descriptor in descriptors:
            self.register(descriptor)
        self.check_sources()

    def register(self, descriptor: ModuleDescriptor) -> None:
        if descriptor.key in self._descriptors:
            raise ValueError(f"Module '{descriptor.key}' is already registered")
        self._descriptors[descriptor.key] = descriptor

    def check_sources(self) -> None:
        """Every dropdown source must be a registered module."""
        for descriptor in self._descriptors.values():
            for source in descriptor.dropdown_sources():
                if source not in self._descriptors:
                    raise ValueError(
                        f"Module '{descriptor.key}' reads options from unknown module '{source}'"
                    )

    def get_descriptor(self, key: str) -> ModuleDescriptor:
        try:
            return self._descriptors[key]
        except KeyError:
            raise NotFoundError(f"Unknown console module '{key}'") from None

    def label_fields(self) -> tuple[str, ...]:
        """Searchable label fields of all registered modules, in registration order."""
        names: list[str] = []
        for descriptor in self._descriptors.values():
            for name in descriptor.label_fields:
                if name not in names:
                    names.append(name)
        return tuple(names)

    def __getitem__(self, key: str) -> ModuleDescriptor:
        return self._descriptors[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)


# ============================================================================
# SECURITY MASTERS
# ============================================================================

APPLICATIONS = ModuleDescriptor(
    key="applications",
    name="Application",
    endpoint="/security/applications",
    fields=(
        F(name="ap_apid", label="Application ID", required=True, max_length=4),
        F(name="ap_apshort", label="Short Name", required=True, max_length=30),
        F(name="ap_apdesc", label="Application Name/Description", max_length=60),
        F(name="ap_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="ap_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("ap_apid", "ap_apshort", "ap_apdesc", "ap_active", "ap_edtm", "ap_mdtm"),
    column_labels=("ID", "Short Name", "Description", "Active", "Entered On", "Modified On"),
    key_fields=("ap_apid",),
    filter_fields=("ap_apid", FILTER_SHORT_NAME, FILTER_ACTIVE),
    audit=AuditFields.for_prefix("ap_"),
    label_fields=("ap_apshort",),
    active_field="ap_active",
    permission_module="application",
)

MODULES = ModuleDescriptor(
    key="modules",
    name="Module",
    endpoint="/security/modules",
    fields=(
        F(name="mo_apid", label="Application ID", type=FieldType.DROPDOWN, required=True,
          source="applications", value_field="ap_apid", display_field="ap_apshort"),
        F(name="mo_moid", label="Module ID", required=True, max_length=4),
        F(name="mo_moshort", label="Short Name", required=True, max_length=30),
        F(name="mo_modesc", label="Module Description", max_length=60),
        F(name="mo_group", label="Group", max_length=60),
        F(name="mo_grsrl", label="Group Serial", type=FieldType.NUMBER),
        F(name="mo_mhint", label="Module Hint", max_length=320),
        F(name="mo_isform", label="Is Form?", type=FieldType.CHECKBOX),
        F(name="mo_ready", label="Ready?", type=FieldType.CHECKBOX),
        F(name="mo_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="mo_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("mo_apid", "mo_moid", "mo_moshort", "mo_modesc", "mo_group", "mo_ready",
             "mo_active", "mo_edtm"),
    column_labels=("App ID", "Module ID", "Short Name", "Description", "Group", "Ready",
                   "Active", "Entered On"),
    key_fields=("mo_apid", "mo_moid"),
    filter_fields=("mo_apid", "mo_moid", FILTER_SHORT_NAME, "mo_group", FILTER_ACTIVE),
    audit=AuditFields.for_prefix("mo_"),
    label_fields=("mo_moshort",),
    active_field="mo_active",
    permission_module="module",
)

OPERATIONS = ModuleDescriptor(
    key="operations",
    name="Operation",
    endpoint="/permissions",
    fields=(
        F(name="op_apid", label="Application ID", type=FieldType.DROPDOWN, required=True,
          source="applications", value_field="ap_apid", display_field="ap_apshort"),
        F(name="op_moid", label="Module ID", type=FieldType.DROPDOWN, required=True,
          source="modules", value_field="mo_moid", display_field="mo_moshort",
          cascade_from="op_apid", cascade_key="mo_apid"),
        F(name="op_opid", label="Operation ID", required=True, max_length=4),
        F(name="op_opshort", label="Short Name", required=True, max_length=30),
        F(name="op_opdesc", label="Operation Description", max_length=60),
        F(name="op_appop", label="Application Operation?", type=FieldType.CHECKBOX, default_value=1),
        F(name="op_avail", label="Will be Available?", type=FieldType.CHECKBOX),
        F(name="op_ready", label="Ready & Working?", type=FieldType.CHECKBOX),
        F(name="op_secure", label="Secure?", type=FieldType.CHECKBOX, default_value=1),
        F(name="op_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="op_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("op_apid", "op_moid", "op_opid", "op_opshort", "op_opdesc", "op_ready",
             "op_secure", "op_active", "op_edtm"),
    column_labels=("App", "Module", "Operation", "Short Name", "Description", "Ready",
                   "Secure", "Active", "Entered On"),
    key_fields=("op_apid", "op_moid", "op_opid"),
    filter_fields=("op_apid", "op_moid", "op_opid", FILTER_SHORT_NAME, FILTER_ACTIVE),
    computed_fields=(
        ComputedField("fullOpId", "Full Operation ID", concat_fields("op_apid", "op_moid", "op_opid")),
    ),
    audit=AuditFields.for_prefix("op_"),
    label_fields=("op_opshort",),
    active_field="op_active",
    permission_module="operation",
)

ROLES = ModuleDescriptor(
    key="roles",
    name="Role List",
    endpoint="/permissions/roles",
    fields=(
        F(name="fn_fnid", label="Function/Role ID", required=True, max_length=6),
        F(name="fn_fnshort", label="Short Name", required=True, max_length=30),
        F(name="fn_fndesc", label="Description", max_length=60),
        F(name="fn_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="fn_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("fn_fnid", "fn_fnshort", "fn_fndesc", "fn_active", "fn_edtm", "fn_mdtm"),
    column_labels=("Role ID", "Short Name", "Description", "Active", "Entered On", "Modified On"),
    key_fields=("fn_fnid",),
    filter_fields=("fn_fnid", FILTER_SHORT_NAME, FILTER_ACTIVE),
    audit=AuditFields.for_prefix("fn_"),
    label_fields=("fn_fnshort",),
    active_field="fn_active",
    permission_module="role",
)

USERS = ModuleDescriptor(
    key="users",
    name="User List",
    endpoint="/security/users",
    fields=(
        F(name="us_usid", label="User ID", required=True, max_length=15),
        F(name="us_email", label="Email Address", type=FieldType.EMAIL, required=True, max_length=120),
        F(name="us_usname", label="User Name", required=True, max_length=100),
        F(name="us_title", label="Job Title", max_length=100),
        F(name="us_phone", label="Phone", type=FieldType.TEL, max_length=30),
        F(name="us_admin", label="Is Application Administrator?", type=FieldType.CHECKBOX),
        F(name="us_security", label="Is Security Administrator?", type=FieldType.CHECKBOX),
        F(name="us_limit", label="Authorization Limit", type=FieldType.NUMBER),
        F(name="us_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="us_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("us_usid", "us_usname", "us_email", "us_title", "us_phone", "us_admin",
             "us_active", "us_edtm"),
    column_labels=("User ID", "Name", "Email", "Title", "Phone", "Admin", "Active", "Entered On"),
    key_fields=("us_usid",),
    filter_fields=("us_usid", FILTER_SHORT_NAME, "us_title", FILTER_ACTIVE, "us_admin"),
    audit=AuditFields.for_prefix("us_"),
    label_fields=("us_usname", "us_email"),
    active_field="us_active",
    records_key="users",
    permission_module="user",
)

ROLE_PERMISSIONS = ModuleDescriptor(
    key="rolePermissions",
    name="Role Permission",
    endpoint="/security/role-permissions",
    fields=(
        F(name="fp_fnid", label="Function/Role", type=FieldType.DROPDOWN, required=True,
          source="roles", value_field="fn_fnid", display_field="fn_fnshort"),
        F(name="fp_opid", label="Operation ID", type=FieldType.DROPDOWN, required=True,
          source="operations", value_field="fullOpId", display_field="op_opshort"),
        F(name="fp_allow", label="Allow?", type=FieldType.CHECKBOX, default_value=1),
        F(name="fp_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="fp_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("fp_fnid", "roleName", "fp_opid", "operationName", "fp_allow", "fp_active", "fp_edtm"),
    column_labels=("Role ID", "Role Name", "Operation ID", "Operation Name", "Allow/Deny",
                   "Active", "Entered On"),
    key_fields=("fp_fnid", "fp_opid"),
    filter_fields=("fp_fnid", "fp_opid", "fp_allow", FILTER_ACTIVE),
    computed_fields=(
        ComputedField("roleName", "Role Name",
                      lookup_label("roles", "fp_fnid", "fn_fnid", "fn_fnshort"), ("roles",)),
        ComputedField("operationName", "Operation Name",
                      lookup_label("operations", "fp_opid", "fullOpId", "op_opshort"), ("operations",)),
    ),
    audit=AuditFields.for_prefix("fp_"),
    active_field="fp_active",
    permission_module="rolePermission",
    special_features=("bulkAssign", "colorCoding"),
)

USER_PERMISSIONS = ModuleDescriptor(
    key="userPermissions",
    name="User Permission",
    endpoint="/security/user-permissions",
    fields=(
        F(name="up_usid", label="User ID", type=FieldType.DROPDOWN, required=True,
          source="users", value_field="us_usid", display_field="us_usname"),
        F(name="up_opid", label="Operation ID", type=FieldType.DROPDOWN, required=True,
          source="operations", value_field="fullOpId", display_field="op_opshort"),
        F(name="up_allow", label="Allow?", type=FieldType.CHECKBOX, default_value=1),
        F(name="up_rmrks", label="Remarks", type=FieldType.TEXTAREA),
        F(name="up_active", label="Active", type=FieldType.CHECKBOX, default_value=1),
    ),
    columns=("up_usid", "userName", "up_opid", "operationName", "up_allow", "up_active", "up_edtm"),
    column_labels=("User ID", "User Name", "Operation ID", "Operation Name", "Allow/Deny",
                   "Active", "Entered On"),
    key_fields=("up_usid", "up_opid"),
    filter_fields=("up_usid", "up_opid", "up_allow", FILTER_ACTIVE),
    computed_fields=(
        ComputedField("userName", "User Name",
                      lookup_label("users", "up_usid", "us_usid", "us_usname"), ("users",)),
        ComputedField("operationName", "Operation Name",
                      lookup_label("operations", "up_opid", "fullOpId", "op_opshort"), ("operations",)),
    ),
    audit=AuditFields.for_prefix("up_"),
    active_field="up_active",
    permission_module="userPermission",
    special_features=("effectivePermissions", "colorCoding"),
)

# ============================================================================
# CUSTOMERS AND MASTER DATA
# ============================================================================

CUSTOMERS = ModuleDescriptor(
    key="customers",
    name="Customer List",
    endpoint="/security/customers",
    fields=(
        F(name="cu_usid", label="User ID", required=True, read_only=True),
        F(name="cu_custno", label="Customer Number", required=True, read_only=True),
        F(name="cu_name", label="Customer Name", read_only=True),
        F(name="cu_email", label="Email", type=FieldType.EMAIL, read_only=True),
        F(name="cu_phone", label="Phone", type=FieldType.TEL, read_only=True),
        F(name="cu_custtype", label="Customer Type"),
        F(name="cu_company", label="Company Name"),
        F(name="cu_gst", label="GST Number", max_length=15,
          pattern=r"[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][0-9A-Z]Z[0-9A-Z]",
          title="GST number must be 15 characters, e.g. 22AAAAA0000A1Z5"),
        F(name="cu_creditlmt", label="Credit Limit", type=FieldType.NUMBER),
        F(name="cu_status", label="Status"),
    ),
    columns=("cu_custno", "cu_name", "cu_email", "cu_phone", "cu_custtype", "cu_company",
             "cu_status", "edtm"),
    column_labels=("Customer No", "Name", "Email", "Phone", "Type", "Company", "Status",
                   "Registered On"),
    key_fields=("cu_usid",),
    filter_fields=("cu_custno", FILTER_SHORT_NAME, "cu_email", "cu_custtype", "cu_status"),
    # Customer rows carry unprefixed audit columns
    audit=AuditFields(entered_on="edtm", entered_by="eby", modified_on="mdtm", modified_by="mby"),
    label_fields=("cu_name",),
    records_key="customers",
    permission_module="customer",
)

STATIONS = ModuleDescriptor(
    key="stations",
    name="Stations",
    endpoint="/stations",
    fields=(
        F(name="st_stid", label="Station ID", required=True, read_only=True),
        F(name="st_stcode", label="Station Code", required=True),
        F(name="st_stname", label="Station Name", required=True),
        F(name="st_city", label="City", required=True),
        F(name="st_state", label="State"),
    ),
    columns=("st_stid", "st_stcode", "st_stname", "st_city", "st_state"),
    column_labels=("Station ID", "Code", "Name", "City", "State"),
    key_fields=("st_stid",),
    filter_fields=(FILTER_SHORT_NAME,),
    audit=AuditFields.for_prefix("st_"),
    label_fields=("st_stcode", "st_stname"),
    permission_module="master-data",
)

TRAINS = ModuleDescriptor(
    key="trains",
    name="Trains",
    endpoint="/trains",
    fields=(
        F(name="tr_trid", label="Train ID", required=True, read_only=True),
        F(name="tr_trno", label="Train Number", required=True),
        F(name="tr_trname", label="Train Name", required=True),
        F(name="tr_fromst", label="From Station"),
        F(name="tr_tost", label="To Station"),
    ),
    columns=("tr_trid", "tr_trno", "tr_trname", "tr_fromst", "tr_tost"),
    column_labels=("Train ID", "Number", "Name", "From", "To"),
    key_fields=("tr_trid",),
    filter_fields=(FILTER_SHORT_NAME,),
    audit=AuditFields.for_prefix("tr_"),
    label_fields=("tr_trno", "tr_trname"),
    permission_module="master-data",
)

COMPANY = ModuleDescriptor(
    key="company",
    name="Company",
    endpoint="/company",
    fields=(
        F(name="co_coid", label="Company ID", required=True, read_only=True),
        F(name="co_coshort", label="Short Name", required=True),
        F(name="co_codesc", label="Description", required=True),
        F(name="co_city", label="City"),
        F(name="co_state", label="State"),
    ),
    columns=("co_coid", "co_coshort", "co_codesc", "co_city", "co_state"),
    column_labels=("Company ID", "Short Name", "Description", "City", "State"),
    key_fields=("co_coid",),
    filter_fields=(FILTER_SHORT_NAME,),
    audit=AuditFields.for_prefix("co_"),
    label_fields=("co_coshort",),
    permission_module="master-data",
)

DEFAULT_MODULE = APPLICATIONS.key

REGISTRY = ModuleRegistry((
    APPLICATIONS,
    MODULES,
    OPERATIONS,
    ROLES,
    USERS,
    ROLE_PERMISSIONS,
    USER_PERMISSIONS,
    CUSTOMERS,
    STATIONS,
    TRAINS,
    COMPANY,
))
