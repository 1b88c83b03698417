"""Authenticated principal and the cached/fresh reconciliation rule."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from ..auth.permissions import normalize_role


# Backend payloads are not consistent about field names: login responses use
# the table column names (us_usid, us_roid...) while the profile endpoint
# uses id/name. Aliases are tried in order.
_PROFILE_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id", "us_usid", "userId"),
    "display_name": ("name", "us_fname", "us_usname", "displayName", "display_name"),
    "role": ("role", "us_roid", "roleId"),
    "email": ("email", "us_email"),
    "user_type": ("us_usertype", "userType", "user_type"),
}


def _first(payload: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def profile_values(payload: dict[str, Any]) -> dict[str, Any]:
    return {name: _first(payload, *aliases) for name, aliases in _PROFILE_ALIASES.items()}


class Principal(BaseModel):
    """The signed-in user as the console sees it.

    Immutable: the session provider replaces it, nobody edits it in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str = ""
    role: str | None = None
    email: str | None = None
    user_type: str | None = None
    session_id: str | None = None
    authenticated: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            raise ValueError("principal id must not be empty")
        return str(value)

    @field_validator("display_name", mode="before")
    @classmethod
    def _coerce_display_name(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> str | None:
        if value is None:
            return None
        return normalize_role(str(value))

    @classmethod
    def from_profile(cls, payload: dict[str, Any]) -> "Principal":
        """Build a principal from a backend profile or login payload."""
        return cls(**profile_values(payload))


class SessionState(BaseModel):
    """What guards and pages read from the session provider."""

    model_config = ConfigDict(frozen=True)

    principal: Principal | None = None
    loading: bool = False

    @property
    def authenticated(self) -> bool:
        return self.principal is not None and self.principal.authenticated

    @property
    def role(self) -> str | None:
        return self.principal.role if self.principal is not None else None


# Field precedence when a revalidated profile meets the cached snapshot:
#
#   field         | fresh present      | fresh missing/empty
#   --------------+--------------------+--------------------
#   id            | fresh              | cached
#   display_name  | fresh              | cached
#   role          | fresh              | cached (never downgraded)
#   email         | fresh              | cached
#   user_type     | fresh              | cached
#   session_id    | cached             | cached
#   authenticated | True               | True
def merge_principal(cached: Principal | None, fresh: dict[str, Any] | Principal) -> Principal:
    """Reconcile an optimistic cached principal with a freshly fetched profile.

    Raises:
        ValueError: If neither side carries a principal id
    """
    if isinstance(fresh, Principal):
        fresh_values = fresh.model_dump(exclude={"authenticated", "session_id"})
    else:
        fresh_values = profile_values(fresh)

    merged: dict[str, Any] = {}
    for name, value in fresh_values.items():
        if value in (None, "") and cached is not None:
            value = getattr(cached, name)
        merged[name] = value
    session_id = cached.session_id if cached is not None else None
    return Principal(**merged, session_id=session_id, authenticated=True)
