from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import httpx
import pytest

from audioctl.services.auth.bus import AuthSignalBus
from audioctl.services.auth.client import ApiClient
from audioctl.services.auth.store import MemorySessionStore

BASE_URL = "http://audio.test"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_audioctl_logger():
    yield
    logger = logging.getLogger("audioctl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def ok(**data: Any) -> httpx.Response:
    return httpx.Response(200, json={"success": True, **data})


def fail(status: int, code: str | None = None, error: str = "failed", headers: dict | None = None) -> httpx.Response:
    body: dict[str, Any] = {"success": False, "error": error}
    if code:
        body["code"] = code
    return httpx.Response(status, json=body, headers=headers)


class FakeService:
    """Route table for httpx.MockTransport; the last queued response for a route repeats."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, method: str, path: str, *responses: Any) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and r.url.path == path]

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"success": False, "error": "not found"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def block_forever(_delay: float) -> None:
    await asyncio.Event().wait()


async def wait_until(predicate: Callable[[], bool], rounds: int = 500) -> None:
    for _ in range(rounds):
        if predicate():
            return
        await asyncio.sleep(0)
    assert predicate(), "condition not reached"


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def bus() -> AuthSignalBus:
    return AuthSignalBus()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def client(store, bus, service, sleeps) -> ApiClient:
    return ApiClient(store, bus, base_url=BASE_URL, transport=service.transport(), sleep=sleeps)
