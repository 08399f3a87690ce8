from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

from audioctl.config.const import SESSIONS_REFRESH_INTERVAL

from .bus import AUTH_ERROR, PAIRING_SUCCESS, AuthSignal, AuthSignalBus
from .client import ApiClient
from .errors import ApiError, RevokeRejectedError
from .models import Session
from .store import SessionStore

__all__ = ["SessionListCache"]

_log = logging.getLogger("audioctl.sessions")


class SessionListCache:
    """
    Read-only projection of ``GET /api/sessions``:
      * refreshed every ``refresh_interval`` seconds while authenticated;
      * refreshed at once after pairing, revoke and logout, emptied on auth-error;
      * never edits a Session locally.
    """

    def __init__(
        self,
        client: ApiClient,
        store: SessionStore,
        bus: AuthSignalBus,
        *,
        refresh_interval: float = SESSIONS_REFRESH_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._store = store
        self.refresh_interval = float(refresh_interval)
        self._sleep = sleep
        self._sessions: tuple[Session, ...] = ()
        self._fetched_at: datetime | None = None
        self._task: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe = [
            bus.subscribe(PAIRING_SUCCESS, self._on_pairing_success),
            bus.subscribe(AUTH_ERROR, self._on_auth_error),
        ]

    @property
    def sessions(self) -> Sequence[Session]:
        return self._sessions

    @property
    def fetched_at(self) -> datetime | None:
        return self._fetched_at

    @property
    def current(self) -> Session | None:
        for session in self._sessions:
            if session.is_current:
                return session
        return None

    def get(self, session_id: str) -> Session | None:
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    async def refresh(self) -> Sequence[Session]:
        sessions = tuple(await self._client.list_sessions())
        current = sum(1 for item in sessions if item.is_current)
        if sessions and current != 1:
            _log.warning("session list flags %d entries as current", current)
        self._sessions = sessions
        self._fetched_at = datetime.now(tz=timezone.utc)
        _log.debug("session list refreshed count=%d", len(sessions))
        return self._sessions

    async def invalidate(self) -> Sequence[Session]:
        if not self._store.is_authenticated():
            self._clear()
            return self._sessions
        return await self.refresh()

    async def revoke(self, session_id: str) -> None:
        target = self.get(session_id)
        if target is not None and target.is_current:
            raise RevokeRejectedError("the current session cannot be revoked; log out instead")
        await self._client.revoke_session(session_id)
        _log.info("session revoked id=%s", session_id)
        await self.invalidate()

    async def logout(self) -> None:
        await self._client.logout()
        await self.invalidate()

    # ---------- background refresh ----------------------------------------------
    async def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="audioctl-sessions-refresh")
        _log.info("session refresh started interval=%ss", self.refresh_interval)

    async def stop(self) -> None:
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe = []
        tasks = [t for t in (self._task, *self._pending) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._pending.clear()

    async def _run(self) -> None:
        try:
            while True:
                await self._sleep(self.refresh_interval)
                if not self._store.is_authenticated():
                    continue
                try:
                    await self.refresh()
                except ApiError as exc:
                    _log.warning("session refresh failed kind=%s: %s", exc.kind.value, exc.message)
        except asyncio.CancelledError:  # pragma: no cover - controlled shutdown
            pass
        finally:
            _log.info("session refresh stopped")

    def _clear(self) -> None:
        self._sessions = ()
        self._fetched_at = None

    def _on_pairing_success(self, signal: AuthSignal) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self._refresh_quietly(), name="audioctl-sessions-invalidate")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _on_auth_error(self, signal: AuthSignal) -> None:
        self._clear()

    async def _refresh_quietly(self) -> None:
        try:
            await self.invalidate()
        except ApiError as exc:
            _log.warning("session refresh after pairing failed kind=%s", exc.kind.value)
