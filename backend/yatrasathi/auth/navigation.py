"""
Role feature flags and the navigation menu derived from them.

The permission profiles answer "may this role run this operation"; the
feature flags answer the coarser "which sections does this role see". The
role code takes precedence; principals without a known role code fall back
to their user type, then to the default employee flags.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from ..session.principal import Principal
from .permissions import has_module_access, normalize_role

FEATURES: Final[tuple[str, ...]] = (
    "view_dashboard",
    "view_bookings",
    "view_travel_plans",
    "view_payments",
    "view_billing",
    "view_reports",
    "view_admin_panel",
    "view_employee_dashboard",
    "approve_bookings",
    "modify_financial_values",
    "delete_bookings",
    "generate_bills",
    "process_payments",
    "modify_system_settings",
)


def _flags(*enabled: str) -> frozenset[str]:
    unknown = set(enabled) - set(FEATURES)
    if unknown:
        raise RuntimeError(f"Unknown feature flags: {sorted(unknown)}")
    return frozenset(enabled)


DEFAULT_PROFILE: Final[str] = "employee"

ROLE_FEATURES: Final[Mapping[str, frozenset[str]]] = MappingProxyType({
    "ADM": _flags(*(f for f in FEATURES if f != "view_employee_dashboard")),
    "AGT": _flags("view_bookings", "view_employee_dashboard"),
    "ACC": _flags(
        "view_bookings",
        "view_payments",
        "view_billing",
        "view_reports",
        "view_employee_dashboard",
        "modify_financial_values",
        "generate_bills",
        "process_payments",
    ),
    "HR": _flags("view_reports", "view_employee_dashboard"),
    "CC": _flags("view_bookings", "view_reports", "view_employee_dashboard"),
    "MKT": _flags(
        "view_bookings", "view_travel_plans", "view_reports", "view_employee_dashboard"
    ),
    "MGT": _flags(
        "view_dashboard",
        "view_bookings",
        "view_travel_plans",
        "view_payments",
        "view_billing",
        "view_reports",
        "view_employee_dashboard",
        "approve_bookings",
    ),
    DEFAULT_PROFILE: _flags("view_bookings", "view_employee_dashboard"),
})


@dataclass(frozen=True)
class NavItem:
    path: str
    label: str


# Menu order matters: it is the order the sidebar renders
_MENU: Final[tuple[tuple[str, str, str], ...]] = (
    ("view_dashboard", "/dashboard", "Dashboard"),
    ("view_bookings", "/bookings", "Bookings"),
    ("view_travel_plans", "/travel-plans", "Travel Plans"),
    ("view_payments", "/payments", "Payments"),
    ("view_billing", "/billing", "Billing"),
    ("view_reports", "/reports", "Reports"),
    ("view_admin_panel", "/admin-dashboard", "Admin Panel"),
    ("view_employee_dashboard", "/employee", "Employee Dashboard"),
)

ROUTE_FEATURES: Final[Mapping[str, str]] = MappingProxyType({
    **{path: feature for feature, path, _ in _MENU},
    "/employee/profile": "view_employee_dashboard",
})


def get_user_features(principal: Principal | None) -> frozenset[str]:
    if principal is None:
        return ROLE_FEATURES[DEFAULT_PROFILE]

    role = normalize_role(principal.role)
    if role and role in ROLE_FEATURES:
        return ROLE_FEATURES[role]

    user_type = (principal.user_type or "").strip().lower()
    if user_type == "admin":
        return ROLE_FEATURES["ADM"]
    return ROLE_FEATURES.get(user_type, ROLE_FEATURES[DEFAULT_PROFILE])


def navigation_items(principal: Principal | None) -> list[NavItem]:
    features = get_user_features(principal)
    items = [NavItem(path, label) for feature, path, label in _MENU if feature in features]

    # Profile is always available
    is_employee = principal is not None and (principal.user_type or "").lower() == "employee"
    items.append(NavItem("/employee/profile" if is_employee else "/profile", "Profile"))
    return items


def can_access_route(principal: Principal | None, path: str) -> bool:
    feature = ROUTE_FEATURES.get(path)
    if feature is None:
        return True
    return feature in get_user_features(principal)


def is_element_visible(
    principal: Principal | None,
    *,
    allowed_roles: str | Iterable[str] | None = None,
    module: str | None = None,
    operation: str | None = None,
) -> bool:
    """Visibility rule for a single UI element (button, menu entry)."""
    role = principal.role if principal is not None else None

    if allowed_roles is not None:
        if isinstance(allowed_roles, str):
            allowed = {normalize_role(allowed_roles)}
        else:
            allowed = {normalize_role(r) for r in allowed_roles}
        if role is None or role not in allowed:
            return False

    if module is not None:
        return has_module_access(role, module, operation)
    return True
