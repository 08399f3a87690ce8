# src/audioctl/services/auth/client.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, MutableMapping
from urllib.parse import quote

import httpx

from audioctl.config.const import DEFAULT_API_URL, DEFAULT_TIMEOUT

from .bus import AUTH_ERROR, AuthSignalBus
from .errors import (
    ApiError,
    GenericApiError,
    SessionAuthError,
    SessionStoreError,
    classify_response,
    classify_transport,
)
from .models import PairingStatus, Session
from .retry import DEFAULT_RETRY_POLICY, NoRetry, RetryPolicy
from .store import SessionStore

__all__ = ["ApiClient"]

_log = logging.getLogger("audioctl.http")

Sleep = Callable[[float], Awaitable[Any]]


class ApiClient:
    """Request Layer for the audio-control service.

    Injects the stored credential, classifies every outcome and, on a session-auth
    failure, clears the store and publishes ``auth-error`` before raising.
    """

    def __init__(
        self,
        store: SessionStore,
        bus: AuthSignalBus,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.bus = bus
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_policy = retry_policy
        self._transport = transport
        self._sleep = sleep

    # ---------- request core ---------------------------------------------------
    def _credentials(self) -> tuple[MutableMapping[str, str], int]:
        headers: MutableMapping[str, str] = {"Content-Type": "application/json"}
        token = self.store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        elif self.store.api_key:
            headers["X-API-Key"] = self.store.api_key
        return headers, self.store.revision

    async def call(
        self,
        path: str,
        method: str = "GET",
        body: Mapping[str, Any] | None = None,
        *,
        params: Mapping[str, Any] | None = None,
        envelope: bool = True,
        retry: bool | None = None,
    ) -> Any:
        """
        Issue one logical call and return the decoded JSON body.

        Retries follow ``retry_policy`` and apply to GET requests unless ``retry``
        says otherwise. Raises an :class:`ApiError` subclass on failure.
        """
        method = method.upper()
        use_retry = (method == "GET") if retry is None else retry
        policy: RetryPolicy = self.retry_policy if use_retry else NoRetry()
        attempt = 0
        while True:
            try:
                return await self._request(method, path, body=body, params=params, envelope=envelope)
            except ApiError as exc:
                attempt += 1
                decision = policy(attempt, exc)
                if not decision.retry:
                    raise
                _log.info(
                    "retrying %s %s after %s (attempt=%d delay_ms=%d)",
                    method,
                    path,
                    exc.kind.value,
                    attempt,
                    decision.delay_ms,
                )
                await self._sleep(decision.delay_ms / 1000)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Mapping[str, Any] | None,
        params: Mapping[str, Any] | None,
        envelope: bool,
    ) -> Any:
        headers, revision = self._credentials()
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(
                    method,
                    path,
                    json=dict(body) if body is not None else None,
                    params=params,
                    headers=headers,
                )
        except httpx.RequestError as exc:
            _log.warning("%s %s unreachable: %s", method, path, exc)
            raise classify_transport(exc, method=method, path=path) from exc

        content: Any | None = None
        if response.content:
            try:
                content = response.json()
            except ValueError:
                content = response.text

        error = classify_response(response.status_code, content, response.headers, envelope=envelope)
        if error is None:
            _log.debug("%s %s -> %d", method, path, response.status_code)
            return content if content is not None else {}

        _log.info("%s %s -> %d %s", method, path, response.status_code, error.kind.value)
        if isinstance(error, SessionAuthError):
            self._deauthenticate(error, revision)
        raise error

    def _deauthenticate(self, error: ApiError, revision: int) -> None:
        if self.store.revision != revision:
            # another failure or a fresh pairing already replaced the credential
            _log.debug("credential changed since request was sent; skipping deauthentication")
            return
        try:
            self.store.clear()
        except SessionStoreError:
            _log.error("failed to remove stored credential after %s; dropped in memory only", error.kind.value, exc_info=True)
        self.bus.publish(AUTH_ERROR, {"kind": error.kind.value, "status_code": error.status_code})

    # ---------- endpoints -------------------------------------------------------
    async def health(self) -> dict:
        result = await self.call("/health", envelope=False, retry=False)
        return dict(result) if isinstance(result, Mapping) else {}

    async def get_pairing_status(self) -> PairingStatus:
        result = await self.call("/api/pairing/status")
        return PairingStatus.from_mapping(result)

    async def initiate_pairing(self, device_name: str | None = None) -> dict:
        payload: dict[str, Any] = {}
        if device_name:
            payload["deviceName"] = device_name
        result = await self.call("/api/pairing/initiate", "POST", payload, retry=False)
        session_id = result.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            raise GenericApiError("pairing response is missing sessionId", payload=result)
        return dict(result)

    async def complete_pairing(self, code: str, session_id: str) -> dict:
        payload = {"code": code, "sessionId": session_id}
        result = await self.call("/api/pairing/complete", "POST", payload, retry=False)
        if not isinstance(result.get("token"), str) or not result.get("token"):
            raise GenericApiError("pairing response is missing token", payload=result)
        return dict(result)

    async def list_sessions(self) -> list[Session]:
        result = await self.call("/api/sessions")
        items = result.get("sessions") or []
        return [Session.from_mapping(item) for item in items if isinstance(item, Mapping)]

    async def current_session(self) -> Session | None:
        result = await self.call("/api/sessions/current")
        session = result.get("session")
        if not isinstance(session, Mapping):
            return None
        return Session.from_mapping({**session, "isCurrent": True})

    async def revoke_session(self, session_id: str) -> None:
        await self.call(f"/api/sessions/{quote(session_id, safe='')}", "DELETE")

    async def logout(self) -> None:
        """Revoke the caller's own session; the local credential is cleared only once the server confirms."""
        await self.call("/api/sessions/logout", "POST")
        self.store.clear()
