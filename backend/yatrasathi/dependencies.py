from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .api.client import ApiClient
from .auth.guard import AccessGuard, GuardRedirect
from .auth.permissions import has_module_access
from .config import Settings, get_settings
from .console.controller import AdminConsole
from .console.descriptors import ModuleDescriptor
from .console.workspaces import ConsoleWorkspaces
from .errors import AuthError
from .infrastructure.redis import get_redis
from .session.principal import SessionState
from .session.provider import SessionProvider
from .session.storage import MemorySessionStore, RedisSessionStore, SessionStore, session_key

TOKEN_COOKIE = "ys_token"

bearer_scheme = HTTPBearer(auto_error=False)

# Process-wide state, created on first use and closed by the app lifespan
_memory_store: MemorySessionStore | None = None
_workspaces: ConsoleWorkspaces | None = None


def get_app_settings() -> Settings:
    return get_settings()


def get_session_store(settings: Settings = Depends(get_app_settings)) -> SessionStore:
    global _memory_store
    if settings.redis_url:
        return RedisSessionStore(get_redis(), ttl_seconds=settings.session_ttl_seconds)
    if _memory_store is None:
        _memory_store = MemorySessionStore(ttl_seconds=settings.session_ttl_seconds)
    return _memory_store


def get_api_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for backend calls; None means a real network connection."""
    return None


def get_workspaces(settings: Settings = Depends(get_app_settings)) -> ConsoleWorkspaces:
    global _workspaces
    if _workspaces is None:
        _workspaces = ConsoleWorkspaces(idle_seconds=settings.session_ttl_seconds)
    return _workspaces


async def close_workspaces() -> None:
    global _workspaces
    if _workspaces is not None:
        workspaces, _workspaces = _workspaces, None
        await workspaces.close_all()


def get_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Bearer header first, then the session cookie."""
    if credentials is not None and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(TOKEN_COOKIE) or None


def build_api_client(
    settings: Settings,
    token: str | None,
    transport: httpx.AsyncBaseTransport | None,
) -> ApiClient:
    return ApiClient(settings.api_base_url, token=token, transport=transport)


async def get_login_provider(
    token: str | None = Depends(get_token),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
    transport: httpx.AsyncBaseTransport | None = Depends(get_api_transport),
) -> AsyncIterator[SessionProvider]:
    """Provider without a restored session, for signing in."""
    api = build_api_client(settings, token, transport)
    try:
        yield SessionProvider(store, api, token)
    finally:
        await api.aclose()


async def get_session_provider(
    token: str | None = Depends(get_token),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
    transport: httpx.AsyncBaseTransport | None = Depends(get_api_transport),
    workspaces: ConsoleWorkspaces = Depends(get_workspaces),
) -> AsyncIterator[SessionProvider]:
    """Provider with the session restored and revalidated for this request.

    A presented token that does not survive revalidation takes its console
    workspace with it.
    """
    api = build_api_client(settings, token, transport)
    try:
        provider = SessionProvider(store, api, token)
        state = await provider.restore()
        if token and not state.authenticated:
            await workspaces.discard(session_key(token))
        yield provider
    finally:
        await api.aclose()


def requested_location(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def enforce_access(
    state: SessionState,
    request: Request,
    settings: Settings,
    *,
    required_role: str | Iterable[str] | None = None,
    required_module: str | None = None,
    required_operation: str | None = None,
) -> None:
    """Raise GuardRedirect unless the guard authorizes ``state``."""
    guard = AccessGuard(
        required_role=required_role,
        required_module=required_module,
        required_operation=required_operation,
        fallback_path=settings.unauthorized_path,
        login_path=settings.login_path,
    )
    decision = guard.evaluate(state, requested_location(request))
    if not decision.allowed:
        raise GuardRedirect(decision)


def require_access(
    *,
    required_role: str | Iterable[str] | None = None,
    required_module: str | None = None,
    required_operation: str | None = None,
) -> Callable:
    """
    Gate a route on the current session.

    Unauthenticated requests are redirected to the login path with the
    requested location attached; authenticated requests that fail the role
    or module check are redirected to the unauthorized path.

    Returns:
        Dependency resolving to the authorized SessionState
    """

    async def dependency(
        request: Request,
        provider: SessionProvider = Depends(get_session_provider),
        settings: Settings = Depends(get_app_settings),
    ) -> SessionState:
        state = provider.state
        enforce_access(
            state,
            request,
            settings,
            required_role=required_role,
            required_module=required_module,
            required_operation=required_operation,
        )
        return state

    return dependency


def role_authorizer(role: str | None) -> Callable[[ModuleDescriptor, str], bool]:
    def authorize(descriptor: ModuleDescriptor, verb: str) -> bool:
        return has_module_access(role, descriptor.permission_module, verb)

    return authorize


def console_factory(
    state: SessionState,
    token: str,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None,
) -> Callable:
    async def factory() -> AdminConsole:
        principal = state.principal
        if principal is None:
            raise AuthError("Sign in to use the admin console")
        return AdminConsole(
            build_api_client(settings, token, transport),
            page_size=settings.console_page_size,
            authorize=role_authorizer(principal.role),
            user_id=principal.id,
        )

    return factory
