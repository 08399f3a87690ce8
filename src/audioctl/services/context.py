from __future__ import annotations

from dataclasses import dataclass

import httpx

from audioctl.services.audio.api import AudioApi
from audioctl.services.auth.bus import AuthSignalBus, get_bus
from audioctl.services.auth.client import ApiClient
from audioctl.services.auth.pairing import PairingMachine
from audioctl.services.auth.retry import ExponentialBackoff
from audioctl.services.auth.sessions import SessionListCache
from audioctl.services.auth.store import FileSessionStore, KeyringSessionStore, MemorySessionStore, SessionStore
from audioctl.services.client_config import ClientConfig
from audioctl.services.health import ConnectionMonitor

__all__ = ["AppContext", "build_context", "build_store"]


@dataclass
class AppContext:
    config: ClientConfig
    store: SessionStore
    bus: AuthSignalBus
    client: ApiClient
    pairing: PairingMachine
    sessions: SessionListCache
    health: ConnectionMonitor
    audio: AudioApi

    async def start(self) -> None:
        await self.sessions.start()
        await self.health.start()

    async def aclose(self) -> None:
        await self.health.stop()
        await self.sessions.stop()
        await self.pairing.close()


def build_store(config: ClientConfig) -> SessionStore:
    api_key = config.api.api_key
    backend = config.storage.backend
    if backend == "memory":
        return MemorySessionStore(api_key=api_key)
    if backend == "keyring":
        return KeyringSessionStore(api_key=api_key)
    return FileSessionStore(config.storage_path(), api_key=api_key)


def build_context(
    config: ClientConfig,
    *,
    store: SessionStore | None = None,
    bus: AuthSignalBus | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppContext:
    store = store or build_store(config)
    bus = bus or get_bus()
    policy = ExponentialBackoff(
        max_attempts=config.retry.max_attempts,
        base_delay_ms=config.retry.base_delay_ms,
        max_delay_ms=config.retry.max_delay_ms,
    )
    client = ApiClient(
        store,
        bus,
        base_url=config.api.base_url,
        timeout=config.api.timeout,
        retry_policy=policy,
        transport=transport,
    )
    return AppContext(
        config=config,
        store=store,
        bus=bus,
        client=client,
        pairing=PairingMachine(client, store, bus),
        sessions=SessionListCache(client, store, bus, refresh_interval=config.sessions.refresh_interval),
        health=ConnectionMonitor(client, interval=config.health.interval),
        audio=AudioApi(client),
    )
