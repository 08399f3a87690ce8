from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from audioctl.config.const import HEALTH_CHECK_INTERVAL
from audioctl.services.auth.client import ApiClient
from audioctl.services.auth.enums import ConnectionState
from audioctl.services.auth.errors import ApiError

__all__ = ["ConnectionMonitor"]

_log = logging.getLogger("audioctl.health")


class ConnectionMonitor:
    """Polls ``GET /health``; the endpoint is judged by HTTP status only."""

    def __init__(
        self,
        client: ApiClient,
        *,
        interval: float = HEALTH_CHECK_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self.interval = float(interval)
        self._sleep = sleep
        self.state = ConnectionState.CHECKING
        self.last_check: datetime | None = None
        self.last_error: str | None = None
        self.details: dict = {}
        self._task: asyncio.Task | None = None

    async def check(self) -> ConnectionState:
        self.state = ConnectionState.CHECKING
        try:
            self.details = await self._client.health()
        except ApiError as exc:
            if self.last_error != exc.message:
                _log.warning("service unreachable kind=%s: %s", exc.kind.value, exc.message)
            self.state = ConnectionState.DISCONNECTED
            self.last_error = exc.message
        else:
            if self.last_error is not None:
                _log.info("service reachable again")
            self.state = ConnectionState.CONNECTED
            self.last_error = None
        self.last_check = datetime.now(tz=timezone.utc)
        return self.state

    async def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run(), name="audioctl-health")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self) -> None:
        while True:
            await self.check()
            await self._sleep(self.interval)
