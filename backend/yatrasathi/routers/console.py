"""HTTP binding of the admin console. Every action answers with the snapshot."""
from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import APIRouter, Depends

from ..config import Settings
from ..console.controller import AdminConsole
from ..console.workspaces import ConsoleWorkspaces
from ..dependencies import (
    console_factory,
    get_api_transport,
    get_app_settings,
    get_token,
    get_workspaces,
    require_access,
)
from ..errors import AuthError, ValidationError
from ..schemas.console import (
    DeleteRequest,
    FieldsRequest,
    FiltersRequest,
    KeyRequest,
    ModuleRequest,
    NavigateRequest,
    PageRequest,
    SelectRequest,
)
from ..session.principal import SessionState
from ..session.storage import session_key
from .pages import ADMIN_ROLES

router = APIRouter(prefix="/admin/console", tags=["console"])

Snapshot = dict[str, Any]


class ConsoleAccess:
    def __init__(
        self,
        state: SessionState,
        token: str,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None,
        workspaces: ConsoleWorkspaces,
    ) -> None:
        self._key = session_key(token)
        self._factory = console_factory(state, token, settings, transport)
        self._workspaces = workspaces

    @asynccontextmanager
    async def console(self) -> AsyncIterator[AdminConsole]:
        async with self._workspaces.use(self._key, self._factory) as console:
            if not console.is_open:
                await console.open(console.descriptor.key)
            yield console


async def console_access(
    state: SessionState = Depends(require_access(required_role=ADMIN_ROLES)),
    token: str | None = Depends(get_token),
    settings: Settings = Depends(get_app_settings),
    transport: httpx.AsyncBaseTransport | None = Depends(get_api_transport),
    workspaces: ConsoleWorkspaces = Depends(get_workspaces),
) -> ConsoleAccess:
    if token is None:
        raise AuthError("Sign in to use the admin console")
    return ConsoleAccess(state, token, settings, transport, workspaces)


@router.get("")
async def snapshot(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        return console.snapshot()


@router.post("/module")
async def open_module(payload: ModuleRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        await console.open(payload.module)
        return console.snapshot()


@router.post("/filters")
async def set_filters(payload: FiltersRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.set_filters(payload.filters)
        return console.snapshot()


@router.post("/filters/clear")
async def clear_filters(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.clear_filters()
        return console.snapshot()


@router.post("/select")
async def select(payload: SelectRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    if payload.index is None and payload.key is None:
        raise ValidationError("Either index or key is required")
    async with access.console() as console:
        if payload.key is not None:
            console.select_key(payload.key)
        elif payload.index is not None:
            console.select_index(payload.index)
        return console.snapshot()


@router.post("/new")
async def new_record(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.new()
        return console.snapshot()


@router.post("/edit")
async def edit_record(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.edit()
        return console.snapshot()


@router.post("/cancel")
async def cancel_edit(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.cancel_edit()
        return console.snapshot()


@router.patch("/fields")
async def update_fields(payload: FieldsRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.set_fields(payload.values)
        return console.snapshot()


@router.post("/save")
async def save_record(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        await console.save()
        return console.snapshot()


@router.post("/delete")
async def delete_record(payload: DeleteRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        await console.delete(confirmed=payload.confirmed)
        return console.snapshot()


@router.post("/navigate")
async def navigate(payload: NavigateRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.navigate(payload.direction)
        return console.snapshot()


@router.post("/keys")
async def handle_key(payload: KeyRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.handle_key(payload.key)
        return console.snapshot()


@router.post("/page")
async def go_to_page(payload: PageRequest, access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        console.go_to_page(payload.page)
        return console.snapshot()


@router.post("/refresh")
async def refresh(access: ConsoleAccess = Depends(console_access)) -> Snapshot:
    async with access.console() as console:
        await console.refresh()
        return console.snapshot()
