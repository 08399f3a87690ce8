from __future__ import annotations

import asyncio

import pytest

from conftest import block_forever, fail, ok, wait_until

from audioctl.services.auth.bus import AUTH_ERROR, PAIRING_SUCCESS
from audioctl.services.auth.errors import GenericApiError, RevokeRejectedError
from audioctl.services.auth.models import SessionMeta
from audioctl.services.auth.sessions import SessionListCache

SESSIONS = ok(
    sessions=[
        {
            "id": "s-1",
            "deviceName": "Desk",
            "createdAt": "2026-10-01T08:00:00Z",
            "lastUsedAt": "2026-10-18T09:00:00Z",
            "expiresAt": "2026-10-31T08:00:00Z",
            "isCurrent": True,
        },
        {
            "id": "s-2",
            "deviceName": "Phone",
            "createdAt": "2026-10-05T08:00:00Z",
            "lastUsedAt": "2026-10-17T09:00:00Z",
            "expiresAt": "2026-11-04T08:00:00Z",
            "isCurrent": False,
        },
    ]
)


@pytest.fixture
async def cache(client, store, bus, anyio_backend):
    store.set_auth("tok", SessionMeta(id="s-1", device_name="Desk"))
    cache = SessionListCache(client, store, bus, sleep=block_forever)
    yield cache
    await cache.stop()


@pytest.mark.anyio
async def test_refresh_populates_the_list(cache, service):
    service.route("GET", "/api/sessions", SESSIONS)

    sessions = await cache.refresh()

    assert [s.device_name for s in sessions] == ["Desk", "Phone"]
    assert cache.current.id == "s-1"
    assert cache.get("s-2").device_name == "Phone"
    assert cache.get("missing") is None
    assert cache.fetched_at is not None


@pytest.mark.anyio
async def test_revoking_current_session_is_rejected_locally(cache, service):
    service.route("GET", "/api/sessions", SESSIONS)
    await cache.refresh()

    with pytest.raises(RevokeRejectedError):
        await cache.revoke("s-1")
    assert service.calls("DELETE", "/api/sessions/s-1") == []


@pytest.mark.anyio
async def test_revoke_refreshes_from_server(cache, service):
    remaining = ok(sessions=[{"id": "s-1", "deviceName": "Desk", "isCurrent": True}])
    service.route("GET", "/api/sessions", SESSIONS, remaining)
    service.route("DELETE", "/api/sessions/s-2", ok())
    await cache.refresh()

    await cache.revoke("s-2")

    assert len(service.calls("DELETE", "/api/sessions/s-2")) == 1
    assert len(service.calls("GET", "/api/sessions")) == 2
    assert [s.id for s in cache.sessions] == ["s-1"]


@pytest.mark.anyio
async def test_failed_revoke_leaves_list_untouched(cache, service):
    service.route("GET", "/api/sessions", SESSIONS)
    service.route("DELETE", "/api/sessions/s-2", fail(404, error="Session not found"))
    await cache.refresh()

    with pytest.raises(GenericApiError):
        await cache.revoke("s-2")
    assert len(cache.sessions) == 2
    assert len(service.calls("GET", "/api/sessions")) == 1


@pytest.mark.anyio
async def test_logout_clears_credential_and_list(cache, store, service):
    service.route("GET", "/api/sessions", SESSIONS)
    service.route("POST", "/api/sessions/logout", ok())
    await cache.refresh()

    await cache.logout()

    assert store.get_token() is None
    assert cache.sessions == ()
    assert len(service.calls("GET", "/api/sessions")) == 1


@pytest.mark.anyio
async def test_failed_logout_keeps_credential(cache, store, service):
    service.route("POST", "/api/sessions/logout", fail(500))

    with pytest.raises(GenericApiError):
        await cache.logout()
    assert store.get_token() == "tok"
    assert len(service.calls("POST", "/api/sessions/logout")) == 1


@pytest.mark.anyio
async def test_auth_error_empties_the_list(cache, bus, service):
    service.route("GET", "/api/sessions", SESSIONS)
    await cache.refresh()

    bus.publish(AUTH_ERROR, {"kind": "UNAUTHORIZED"})

    assert cache.sessions == ()
    assert cache.fetched_at is None


@pytest.mark.anyio
async def test_pairing_success_triggers_refresh(cache, bus, service):
    service.route("GET", "/api/sessions", SESSIONS)

    bus.publish(PAIRING_SUCCESS, {"session_id": "s-1"})

    await wait_until(lambda: len(cache.sessions) == 2)
    assert len(service.calls("GET", "/api/sessions")) == 1


@pytest.mark.anyio
async def test_background_refresh_runs_while_authenticated(client, store, bus, service):
    store.set_auth("tok", SessionMeta(id="s-1", device_name="Desk"))
    service.route("GET", "/api/sessions", fail(500), SESSIONS)
    ticks = 0

    async def limited(_delay):
        nonlocal ticks
        ticks += 1
        if ticks > 3:
            await asyncio.Event().wait()
        await asyncio.sleep(0)

    cache = SessionListCache(client, store, bus, refresh_interval=0.01, sleep=limited)
    try:
        await cache.start()
        await wait_until(lambda: len(cache.sessions) == 2, rounds=2000)
    finally:
        await cache.stop()
