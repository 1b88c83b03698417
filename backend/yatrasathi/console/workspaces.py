"""One admin console per signed-in session, kept between requests.

A workspace goes away on logout, when its session is rejected by the
backend, or after it has been idle longer than ``idle_seconds``.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator

from .controller import AdminConsole

logger = logging.getLogger("yatrasathi.console.workspaces")

ConsoleFactory = Callable[[], Awaitable[AdminConsole]]


class _Workspace:
    def __init__(self, console: AdminConsole, now: float) -> None:
        self.console = console
        self.lock = asyncio.Lock()
        self.last_used = now


class ConsoleWorkspaces:
    """Session key -> console. Actions on one console are serialized."""

    def __init__(
        self,
        idle_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._workspaces: dict[str, _Workspace] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, key: object) -> bool:
        return key in self._workspaces

    def __len__(self) -> int:
        return len(self._workspaces)

    def _take_idle(self, now: float) -> list[_Workspace]:
        # Caller holds self._lock; consoles in the middle of an action are kept
        if self.idle_seconds is None:
            return []
        expired = [
            key for key, workspace in self._workspaces.items()
            if now - workspace.last_used >= self.idle_seconds and not workspace.lock.locked()
        ]
        return [self._workspaces.pop(key) for key in expired]

    async def _get_or_create(self, key: str, factory: ConsoleFactory) -> _Workspace:
        async with self._lock:
            now = self._clock()
            idle = self._take_idle(now)
            workspace = self._workspaces.get(key)
            if workspace is None:
                workspace = _Workspace(await factory(), now)
                self._workspaces[key] = workspace
                logger.debug("Console workspace created (%d open)", len(self._workspaces))
            workspace.last_used = now
        if idle:
            logger.info("Evicting %d idle console workspaces", len(idle))
            await self._close(idle)
        return workspace

    @asynccontextmanager
    async def use(self, key: str, factory: ConsoleFactory) -> AsyncIterator[AdminConsole]:
        """Yield the session's console, holding its lock for the duration."""
        workspace = await self._get_or_create(key, factory)
        async with workspace.lock:
            try:
                yield workspace.console
            finally:
                workspace.last_used = self._clock()

    async def discard(self, key: str) -> None:
        async with self._lock:
            workspace = self._workspaces.pop(key, None)
        if workspace is not None:
            await self._close([workspace])

    async def evict_idle(self) -> int:
        """Close every workspace idle past ``idle_seconds``; returns how many."""
        async with self._lock:
            idle = self._take_idle(self._clock())
        await self._close(idle)
        return len(idle)

    async def close_all(self) -> None:
        async with self._lock:
            workspaces = list(self._workspaces.values())
            self._workspaces.clear()
        await self._close(workspaces)
        if workspaces:
            logger.info("Closed %d console workspaces", len(workspaces))

    @staticmethod
    async def _close(workspaces: list[_Workspace]) -> None:
        for workspace in workspaces:
            await workspace.console.aclose()
