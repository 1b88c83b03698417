"""
Route gate: decides whether a page may render for the current session.

The guard never raises for a denial. It returns a decision that tells the
caller to wait, to send the user to the login entry point, to send the user
to the access-denied page, or to render. Anything missing or ambiguous
resolves to denial.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from ..session.principal import SessionState
from .permissions import has_module_access, is_module_restricted, normalize_role

logger = logging.getLogger("yatrasathi.auth.guard")

DEFAULT_LOGIN_PATH = "/auth/employee-login"
DEFAULT_FALLBACK_PATH = "/unauthorized"


class GuardState(str, Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    redirect_to: str | None = None
    replace: bool = False
    return_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.state is GuardState.AUTHORIZED

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None


class GuardRedirect(Exception):
    """Control-flow signal for the HTTP layer: answer with a redirect."""

    def __init__(self, decision: GuardDecision):
        super().__init__(decision.redirect_to)
        self.decision = decision


def login_location(login_path: str, return_to: str | None) -> str:
    if not return_to:
        return login_path
    return f"{login_path}?{urlencode({'next': return_to})}"


class AccessGuard:
    """Role/module gate for one route.

    Args:
        required_role: a role code or a collection of accepted role codes
        required_module: module checked against the permission profiles
        required_operation: optional verb checked on ``required_module``
        fallback_path: where denied users are sent
        login_path: where unauthenticated users are sent
    """

    def __init__(
        self,
        *,
        required_role: str | Iterable[str] | None = None,
        required_module: str | None = None,
        required_operation: str | None = None,
        fallback_path: str = DEFAULT_FALLBACK_PATH,
        login_path: str = DEFAULT_LOGIN_PATH,
    ) -> None:
        if isinstance(required_role, str):
            roles: frozenset[str | None] | None = frozenset({normalize_role(required_role)})
        elif required_role is not None:
            roles = frozenset(normalize_role(role) for role in required_role)
        else:
            roles = None
        self.required_roles = roles
        self.required_module = required_module
        self.required_operation = required_operation
        self.fallback_path = fallback_path
        self.login_path = login_path

    def evaluate(self, session: SessionState, requested_location: str | None = None) -> GuardDecision:
        if session.loading:
            return GuardDecision(GuardState.LOADING)

        if not session.authenticated:
            return GuardDecision(
                GuardState.UNAUTHENTICATED,
                redirect_to=login_location(self.login_path, requested_location),
                replace=True,
                return_to=requested_location,
            )

        if not self._is_authorized(session.role):
            logger.info(
                "Access denied role=%s module=%s operation=%s location=%s",
                session.role,
                self.required_module,
                self.required_operation,
                requested_location,
            )
            return GuardDecision(
                GuardState.UNAUTHORIZED,
                redirect_to=self.fallback_path,
                replace=True,
            )

        return GuardDecision(GuardState.AUTHORIZED)

    def _is_authorized(self, role: str | None) -> bool:
        if self.required_roles is not None:
            if role is None or role not in self.required_roles:
                return False

        if self.required_module is not None:
            if not has_module_access(role, self.required_module, self.required_operation):
                return False
            # Restriction is a hard override
            if is_module_restricted(role, self.required_module):
                return False

        return True
