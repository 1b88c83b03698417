from fastapi import APIRouter, Depends, Response

from ..auth.navigation import get_user_features, navigation_items
from ..config import Settings
from ..console.workspaces import ConsoleWorkspaces
from ..dependencies import (
    TOKEN_COOKIE,
    get_app_settings,
    get_login_provider,
    get_session_provider,
    get_token,
    get_workspaces,
)
from ..errors import AuthError
from ..schemas.auth import (
    LoginRequest,
    LoginResponse,
    NavigationResponse,
    NavItemView,
    SessionResponse,
    UserView,
)
from ..session.principal import Principal, SessionState
from ..session.provider import SessionProvider
from ..session.storage import session_key

router = APIRouter(tags=["auth"])

DEFAULT_LANDING = "/dashboard"


def user_view(principal: Principal | None) -> UserView | None:
    if principal is None:
        return None
    return UserView(
        id=principal.id,
        display_name=principal.display_name,
        role=principal.role,
        email=principal.email,
        user_type=principal.user_type,
    )


def session_response(state: SessionState) -> SessionResponse:
    return SessionResponse(
        authenticated=state.authenticated,
        loading=state.loading,
        user=user_view(state.principal),
    )


def _safe_next(target: str | None) -> str:
    # Only same-site paths; never an absolute URL
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return DEFAULT_LANDING


@router.post("/auth/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    provider: SessionProvider = Depends(get_login_provider),
    settings: Settings = Depends(get_app_settings),
) -> LoginResponse:
    state = await provider.authenticate(payload.email, payload.password, employee=payload.employee)
    token = provider.token
    if token is None:
        raise AuthError("Login response carried no token")
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=not settings.debug,
    )
    return LoginResponse(
        authenticated=state.authenticated,
        loading=state.loading,
        user=user_view(state.principal),
        token=token,
        redirect_to=_safe_next(payload.next),
    )


@router.post("/auth/logout", response_model=SessionResponse)
async def logout(
    response: Response,
    token: str | None = Depends(get_token),
    provider: SessionProvider = Depends(get_session_provider),
    workspaces: ConsoleWorkspaces = Depends(get_workspaces),
) -> SessionResponse:
    state = await provider.logout()
    if token:
        await workspaces.discard(session_key(token))
    response.delete_cookie(TOKEN_COOKIE)
    return session_response(state)


@router.get("/auth/session", response_model=SessionResponse)
async def current_session(
    provider: SessionProvider = Depends(get_session_provider),
) -> SessionResponse:
    return session_response(provider.state)


@router.get("/navigation", response_model=NavigationResponse)
async def navigation(
    provider: SessionProvider = Depends(get_session_provider),
) -> NavigationResponse:
    principal = provider.state.principal
    return NavigationResponse(
        items=[NavItemView(path=item.path, label=item.label) for item in navigation_items(principal)],
        features=sorted(get_user_features(principal)),
    )
