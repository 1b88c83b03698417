"""
Role permission profiles - static access table for the back-office console.

Every role code maps to a profile of:
- allowed modules
- allowed operation codes per module ("ALL" grants every operation)
- restricted modules (hard deny, wins over everything else)

Profiles are configuration, not runtime state. They are frozen at import
time and validated once; a broken table fails the import instead of
silently granting access.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

WILDCARD: Final[str] = "ALL"


# ============================================================================
# OPERATION CODES
# ============================================================================

OPERATION_PREFIXES: Final[Mapping[str, str]] = MappingProxyType({
    "dashboard": "DASH_",
    "bookings": "BKNG_",
    "payments": "PYMT_",
    "billing": "BILL_",
    "reports": "RPT_",
    "travel-plans": "TPLN_",
    "customer": "CUST_",
    "employee": "EMPL_",
    "application": "APP_",
    "module": "MOD_",
    "operation": "OP_",
    "role": "ROLE_",
    "user": "USR_",
    "rolePermission": "ROLE_PERM_",
    "userPermission": "USR_PERM_",
    "master-data": "MSTR_",
})

# Generic verb -> operation suffix. SAVE shares the EDIT permission.
VERB_SUFFIXES: Final[Mapping[str, str]] = MappingProxyType({
    "NEW": "NEW",
    "EDIT": "EDIT",
    "DELETE": "DELETE",
    "VIEW": "VIEW",
    "SEARCH": "SEARCH",
    "APPROVE": "APPROVE",
    "SAVE": "EDIT",
    "CONFIRM": "CONFIRM",
    "CANCEL": "CANCEL",
    "GENERATE": "GEN",
    "PRINT": "PRINT",
})


def operation_prefix(module: str) -> str:
    return OPERATION_PREFIXES.get(module, "")


def operation_code(module: str, operation: str) -> str:
    """Translate a generic verb into the module-prefixed operation code.

    ``operation_code("bookings", "EDIT")`` -> ``"BKNG_EDIT"``. Modules without
    a known prefix, and strings that are not known verbs, pass through as-is.
    """
    prefix = operation_prefix(module)
    if not prefix:
        return operation
    verb = operation.upper()
    if verb == WILDCARD:
        return WILDCARD
    suffix = VERB_SUFFIXES.get(verb)
    if suffix is None:
        return operation
    return f"{prefix}{suffix}"


# ============================================================================
# PROFILES
# ============================================================================

@dataclass(frozen=True)
class PermissionProfile:
    allowed_modules: frozenset[str]
    allowed_operations: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    restricted_modules: frozenset[str] = frozenset()


def _profile(
    modules: Iterable[str],
    operations: Mapping[str, Iterable[str]] | None = None,
    restricted: Iterable[str] = (),
) -> PermissionProfile:
    return PermissionProfile(
        allowed_modules=frozenset(modules),
        allowed_operations=MappingProxyType(
            {module: frozenset(codes) for module, codes in (operations or {}).items()}
        ),
        restricted_modules=frozenset(restricted),
    )


_SECURITY_MODULES: Final[tuple[str, ...]] = (
    "application",
    "module",
    "operation",
    "role",
    "user",
    "rolePermission",
    "userPermission",
)

ROLE_PROFILES: Final[Mapping[str, PermissionProfile]] = MappingProxyType({
    # Administrator: everything, every operation
    "ADM": _profile(
        modules=(
            "dashboard", "bookings", "travel-plans", "payments", "billing",
            "reports", "admin", "customer", "employee", "master-data",
            *_SECURITY_MODULES,
        ),
        operations={
            module: (WILDCARD,)
            for module in (
                "dashboard", "bookings", "travel-plans", "payments", "billing",
                "reports", "customer", "employee", "master-data",
                *_SECURITY_MODULES,
            )
        },
    ),

    # Administration executive: security masters, customers and employees
    "ADX": _profile(
        modules=(*_SECURITY_MODULES, "customer", "employee", "master-data"),
        operations={
            "application": ("APP_VIEW", "APP_SEARCH", "APP_NEW", "APP_EDIT"),
            "module": ("MOD_VIEW", "MOD_SEARCH", "MOD_NEW", "MOD_EDIT"),
            "operation": ("OP_VIEW", "OP_SEARCH", "OP_NEW", "OP_EDIT"),
            "role": ("ROLE_VIEW", "ROLE_SEARCH", "ROLE_NEW", "ROLE_EDIT"),
            "user": ("USR_VIEW", "USR_SEARCH", "USR_NEW", "USR_EDIT"),
            "rolePermission": (
                "ROLE_PERM_VIEW", "ROLE_PERM_NEW", "ROLE_PERM_EDIT", "ROLE_PERM_DELETE",
            ),
            "userPermission": (
                "USR_PERM_VIEW", "USR_PERM_NEW", "USR_PERM_EDIT", "USR_PERM_DELETE",
            ),
            "customer": ("CUST_VIEW", "CUST_SEARCH"),
            "employee": (
                "EMPL_VIEW", "EMPL_NEW", "EMPL_EDIT", "EMPL_DELETE", "EMPL_SEARCH",
            ),
            "master-data": ("MSTR_VIEW", "MSTR_SEARCH", "MSTR_NEW", "MSTR_EDIT"),
        },
    ),

    # Accounts: billing and payments
    "ACC": _profile(
        modules=("bookings", "payments", "billing", "reports"),
        operations={
            "bookings": ("BKNG_VIEW", "BKNG_SEARCH"),
            "payments": (
                "PYMT_VIEW", "PYMT_NEW", "PYMT_EDIT", "PYMT_APPROVE", "PYMT_SEARCH",
            ),
            "billing": ("BILL_VIEW", "BILL_GEN", "BILL_PRINT", "BILL_EDIT"),
            "reports": ("RPT_VIEW", "RPT_REV", "RPT_PYMT"),
        },
        restricted=("employee", "role", "permission", "config", "admin"),
    ),

    # Travel agent: bookings for assigned customers, no admin dashboard
    "AGT": _profile(
        modules=("dashboard", "bookings", "customer"),
        operations={
            "bookings": ("BKNG_VIEW", "BKNG_NEW", "BKNG_EDIT", "BKNG_SEARCH"),
            "customer": ("CUST_VIEW", "CUST_NEW", "CUST_SEARCH"),
        },
        restricted=("dashboard", "billing", "payments", "admin"),
    ),

    # Customer care: read-only bookings plus support reports
    "CC": _profile(
        modules=("bookings", "reports"),
        operations={
            "bookings": ("BKNG_VIEW", "BKNG_SEARCH"),
            "reports": ("RPT_VIEW",),
        },
        restricted=("billing", "payments", "admin"),
    ),

    "HR": _profile(
        modules=("employee", "reports"),
        operations={
            "employee": ("EMPL_VIEW", "EMPL_NEW", "EMPL_EDIT", "EMPL_SEARCH"),
            "reports": ("RPT_VIEW",),
        },
        restricted=("billing", "payments", "admin"),
    ),

    "MKT": _profile(
        modules=("bookings", "travel-plans", "reports"),
        operations={
            "bookings": ("BKNG_VIEW", "BKNG_SEARCH"),
            "travel-plans": ("TPLN_VIEW",),
            "reports": ("RPT_VIEW",),
        },
        restricted=("billing", "payments", "admin"),
    ),

    # Management: read mostly, approvals, no admin panel
    "MGT": _profile(
        modules=("dashboard", "bookings", "travel-plans", "payments", "billing", "reports"),
        operations={
            "dashboard": ("DASH_VIEW",),
            "bookings": ("BKNG_VIEW", "BKNG_SEARCH", "BKNG_APPROVE"),
            "travel-plans": ("TPLN_VIEW", "TPLN_APPROVE"),
            "payments": ("PYMT_VIEW",),
            "billing": ("BILL_VIEW",),
            "reports": (WILDCARD,),
        },
        restricted=("admin",),
    ),

    "MGR": _profile(
        modules=("dashboard", "bookings", "payments", "travel-plans", "reports"),
        operations={
            "dashboard": ("DASH_VIEW",),
            "bookings": ("BKNG_VIEW", "BKNG_SEARCH", "BKNG_APPROVE"),
            "payments": ("PYMT_VIEW", "PYMT_APPROVE"),
            "travel-plans": ("TPLN_VIEW", "TPLN_APPROVE"),
            "reports": (WILDCARD,),
        },
        restricted=("delete_records", "admin"),
    ),

    # Sales agent
    "SAG": _profile(
        modules=("customer", "bookings", "travel-plans"),
        operations={
            "customer": ("CUST_VIEW", "CUST_NEW", "CUST_EDIT"),
            "bookings": ("BKNG_NEW", "BKNG_EDIT", "BKNG_VIEW", "BKNG_SEARCH"),
            "travel-plans": ("TPLN_VIEW",),
        },
        restricted=("delete_booking", "approve_payment", "reports"),
    ),

    # Operations manager
    "OPM": _profile(
        modules=("bookings", "travel-plans", "reports"),
        operations={
            "bookings": ("BKNG_VIEW", "BKNG_EDIT", "BKNG_CONFIRM", "BKNG_CANCEL"),
            "travel-plans": ("TPLN_NEW", "TPLN_EDIT", "TPLN_DELETE"),
            "reports": ("RPT_BKNG", "RPT_OP"),
        },
    ),

    # Customer self-service
    "CUS": _profile(
        modules=("bookings", "travel-plans", "payments"),
        operations={
            "bookings": ("BKNG_VIEW", "BKNG_NEW", "BKNG_CANCEL"),
            "travel-plans": ("TPLN_VIEW", "TPLN_NEW", "TPLN_EDIT"),
            "payments": ("PYMT_VIEW",),
        },
        restricted=("admin", "reports", "billing", "employee", "dashboard"),
    ),
})


def normalize_role(role: str | None) -> str | None:
    if role is None:
        return None
    role = role.strip().upper()
    return role or None


def get_profile(role: str | None) -> PermissionProfile | None:
    normalized = normalize_role(role)
    if normalized is None:
        return None
    return ROLE_PROFILES.get(normalized)


# ============================================================================
# ACCESS CHECKS
# ============================================================================

def is_module_restricted(role: str | None, module: str) -> bool:
    """True when the role's profile explicitly denies the module.

    Unknown roles have no restrictions on record; access for them is still
    denied by :func:`has_module_access`.
    """
    profile = get_profile(role)
    if profile is None:
        return False
    return module in profile.restricted_modules


def has_module_access(
    role: str | None,
    module: str | None,
    operation: str | None = None,
) -> bool:
    """Decide whether ``role`` may use ``module`` (and optionally ``operation``).

    Fails closed: unknown roles, missing modules and operations requested
    against a module without an operation list all deny. A restricted module
    is denied even when it is also listed as allowed.
    """
    profile = get_profile(role)
    if profile is None or not module:
        return False

    if module not in profile.allowed_modules:
        return False
    if module in profile.restricted_modules:
        return False

    if not operation:
        return True

    allowed_ops = profile.allowed_operations.get(module)
    if not allowed_ops:
        return False
    return WILDCARD in allowed_ops or operation_code(module, operation) in allowed_ops


# ============================================================================
# CONTRACT VALIDATION
# ============================================================================

def _validate_contract() -> None:
    """Validate the profile table at import time."""
    errors = []

    for role, profile in ROLE_PROFILES.items():
        if role != role.upper():
            errors.append(f"Role code '{role}' must be upper case")

        for module, codes in profile.allowed_operations.items():
            if module not in profile.allowed_modules:
                errors.append(
                    f"Role '{role}' lists operations for module '{module}' "
                    "which is not an allowed module"
                )
            prefix = operation_prefix(module)
            for code in codes:
                if code == WILDCARD:
                    continue
                if prefix and not code.startswith(prefix):
                    errors.append(
                        f"Role '{role}' has operation '{code}' without the "
                        f"'{prefix}' prefix of module '{module}'"
                    )

    if errors:
        raise RuntimeError(
            "Permission table validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


_validate_contract()
