"""Guarded page endpoints.

Each page declares its gate in PAGE_GUARDS; the page body itself is owned by
the frontend, so the payload only carries what every page needs (the user
and the menu).
"""
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Final

from fastapi import APIRouter, Depends, Request

from ..auth.navigation import navigation_items
from ..config import Settings
from ..dependencies import enforce_access, get_app_settings, get_session_provider
from ..errors import AuthError, NotFoundError
from ..schemas.auth import NavItemView, PageResponse
from ..session.provider import SessionProvider
from .auth import user_view

ADMIN_ROLES: Final[tuple[str, ...]] = ("ADM", "ADX")

# page -> AccessGuard arguments; an empty mapping means "signed in"
PAGE_GUARDS: Final[Mapping[str, Mapping[str, Any]]] = MappingProxyType({
    "dashboard": {"required_module": "dashboard"},
    "bookings": {"required_module": "bookings"},
    "travel-plans": {"required_module": "travel-plans"},
    "payments": {"required_module": "payments"},
    "billing": {"required_module": "billing"},
    "reports": {"required_module": "reports"},
    "employees": {"required_module": "employee"},
    "admin-dashboard": {"required_role": ADMIN_ROLES},
    "employee": {},
    "profile": {},
})

router = APIRouter(tags=["pages"])


@router.get("/pages/{page}", response_model=PageResponse)
async def guarded_page(
    page: str,
    request: Request,
    provider: SessionProvider = Depends(get_session_provider),
    settings: Settings = Depends(get_app_settings),
) -> PageResponse:
    rule = PAGE_GUARDS.get(page)
    if rule is None:
        raise NotFoundError(f"Unknown page '{page}'")

    state = provider.state
    enforce_access(state, request, settings, **rule)

    principal = state.principal
    user = user_view(principal)
    if principal is None or user is None:
        raise AuthError("Sign in to view this page")
    return PageResponse(
        page=page,
        user=user,
        navigation=[NavItemView(path=item.path, label=item.label) for item in navigation_items(principal)],
    )


@router.get("/unauthorized")
async def unauthorized() -> dict[str, str]:
    return {
        "title": "Access Denied",
        "message": "You do not have permission to view this page.",
    }
