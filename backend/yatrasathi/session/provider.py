"""Session provider: restores, revalidates and tears down the signed-in principal.

One provider is created per request from the presented bearer token. The
stored snapshot gives an immediate optimistic principal; the backend profile
endpoint then confirms or refutes it.
"""
from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..api.client import ApiClient, unwrap_record
from ..errors import ApiError, AuthError, ConnectivityError
from .principal import Principal, SessionState, merge_principal
from .storage import SessionStore

logger = logging.getLogger("yatrasathi.session")


class SessionProvider:
    def __init__(self, store: SessionStore, api: ApiClient, token: str | None = None) -> None:
        self._store = store
        self._api = api
        self._token = token or None
        self._principal: Principal | None = None
        self._loading = False
        if self._token:
            self._api.set_token(self._token)

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def state(self) -> SessionState:
        return SessionState(principal=self._principal, loading=self._loading)

    async def start(self) -> SessionState:
        """Adopt the stored snapshot, if any, as the optimistic principal.

        The state stays ``loading`` until ``revalidate`` settles it.
        """
        if not self._token:
            self._principal = None
            self._loading = False
            return self.state
        snapshot = await self._store.load(self._token)
        self._principal = snapshot
        self._loading = True
        return self.state

    async def revalidate(self) -> SessionState:
        if not self._token:
            self._loading = False
            return self.state

        try:
            profile = await self._api.get_profile()
        except ApiError as exc:
            if exc.is_auth_failure:
                logger.info("Session rejected by backend status=%s, tearing down", exc.upstream_status)
                await self._teardown()
            else:
                logger.warning(
                    "Profile revalidation failed status=%s, keeping cached principal",
                    exc.upstream_status,
                )
            self._loading = False
            return self.state
        except ConnectivityError as exc:
            logger.warning("Profile revalidation unreachable (%s), keeping cached principal", exc.message)
            self._loading = False
            return self.state

        try:
            principal = merge_principal(self._principal, profile)
        except PydanticValidationError:
            logger.warning("Profile response carried no usable user id, keeping cached principal")
            self._loading = False
            return self.state

        self._principal = principal
        self._loading = False
        await self._store.save(self._token, principal)
        return self.state

    async def restore(self) -> SessionState:
        await self.start()
        return await self.revalidate()

    async def login(self, token: str, principal: Principal) -> SessionState:
        if not token:
            raise AuthError("Login response carried no token")
        self._token = token
        self._api.set_token(token)
        self._principal = principal
        self._loading = False
        await self._store.save(token, principal)
        logger.info("Session started user=%s role=%s", principal.id, principal.role)
        return self.state

    async def authenticate(self, email: str, password: str, *, employee: bool = True) -> SessionState:
        """Sign in against the backend and start a session from its response.

        Raises:
            AuthError: If the backend rejects the credentials or answers
                without a token and user
            ConnectivityError: If the backend cannot be reached
        """
        try:
            payload = await self._api.login(email, password, employee=employee)
        except ApiError as exc:
            raise AuthError(exc.message) from exc

        body: dict[str, Any] = unwrap_record(payload) or {}
        token = body.get("token")
        user = body.get("user")
        if not isinstance(token, str) or not isinstance(user, dict):
            raise AuthError("Login response was incomplete")

        try:
            principal = Principal.from_profile(user)
        except PydanticValidationError as exc:
            raise AuthError("Login response carried no user id") from exc

        session_id = body.get("sessionId")
        if session_id is not None:
            principal = principal.model_copy(update={"session_id": str(session_id)})
        return await self.login(token, principal)

    async def logout(self) -> SessionState:
        """Invalidate the backend session when possible; local state always goes."""
        session_id = self._principal.session_id if self._principal is not None else None
        try:
            if self._token:
                await self._api.logout(session_id)
        except (ApiError, ConnectivityError) as exc:
            logger.warning("Backend logout failed: %s", exc.message)
        finally:
            await self._teardown()
        return self.state

    async def _teardown(self) -> None:
        if self._token:
            await self._store.clear(self._token)
        self._principal = None
        self._token = None
        self._api.set_token(None)
