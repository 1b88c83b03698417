from typing import Any

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=120)
    password: str = Field(..., min_length=1)
    employee: bool = True
    next: str | None = None


class UserView(BaseModel):
    id: str
    display_name: str
    role: str | None = None
    email: str | None = None
    user_type: str | None = None


class SessionResponse(BaseModel):
    authenticated: bool
    loading: bool = False
    user: UserView | None = None


class LoginResponse(SessionResponse):
    token: str
    redirect_to: str


class NavItemView(BaseModel):
    path: str
    label: str


class NavigationResponse(BaseModel):
    items: list[NavItemView]
    features: list[str]


class PageResponse(BaseModel):
    page: str
    user: UserView
    navigation: list[NavItemView]
    details: dict[str, Any] = Field(default_factory=dict)
