"""Pairing handshake: negotiate a short-lived code into a stored bearer token."""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable

from audioctl.config.const import DEFAULT_CODE_LENGTH, PAIRING_TICK_SECONDS

from .bus import AUTH_ERROR, PAIRING_SUCCESS, AuthSignal, AuthSignalBus
from .client import ApiClient
from .enums import ErrorKind, PairingState
from .errors import (
    ApiError,
    NetworkUnreachableError,
    PairingCodeExpiredError,
    PairingCodeInvalidError,
    PairingRateLimitedError,
    PairingStateError,
    SessionLimitReachedError,
    SessionStoreError,
)
from .models import PairingAttempt, PairingStatus, SessionMeta
from .store import SessionStore

__all__ = ["PairingMachine", "normalize_code", "describe_error"]

_log = logging.getLogger("audioctl.pairing")

MSG_CODE_INVALID = "invalid code, try again"
MSG_CODE_EXPIRED = "code expired, restart pairing"
MSG_SESSION_LIMIT = "maximum paired devices reached"
MSG_UNREACHABLE = "service unreachable"
MSG_COUNTDOWN_EXPIRED = "pairing code expired, try again"

_NON_CODE = re.compile(r"[^A-Z0-9]")


def normalize_code(code: str) -> str:
    """Upper-case and keep only ASCII letters and digits."""
    return _NON_CODE.sub("", (code or "").upper())


def describe_error(error: ApiError) -> str:
    """User-facing text for an error raised during pairing."""
    if isinstance(error, PairingCodeInvalidError):
        return MSG_CODE_INVALID
    if isinstance(error, PairingCodeExpiredError):
        return MSG_CODE_EXPIRED
    if isinstance(error, SessionLimitReachedError):
        return MSG_SESSION_LIMIT
    if isinstance(error, PairingRateLimitedError):
        seconds = max(1, round(error.retry_after_ms / 1000))
        return f"too many pairing attempts, wait {seconds} seconds"
    if isinstance(error, NetworkUnreachableError):
        return MSG_UNREACHABLE
    return error.message or "pairing failed"


class PairingMachine:
    """
    States: IDLE -> INITIATING -> AWAITING_CODE -> COMPLETING -> PAIRED | FAILED | EXPIRED | CANCELLED.

    ``attempt`` is set only while a handshake is in progress. Terminal states keep
    ``last_error`` for display and accept a new ``initiate()`` like IDLE does.
    """

    def __init__(
        self,
        client: ApiClient,
        store: SessionStore,
        bus: AuthSignalBus,
        *,
        tick_interval: float = PAIRING_TICK_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._store = store
        self._bus = bus
        self.tick_interval = tick_interval
        self._sleep = sleep
        self._attempt: PairingAttempt | None = None
        self._state = PairingState.IDLE
        self._last_error: str | None = None
        self._error_kind: ErrorKind | None = None
        self._status: PairingStatus | None = None
        self._timer: asyncio.Task | None = None
        self._unsubscribe = bus.subscribe(AUTH_ERROR, self._on_auth_error)

    # ---------- read model ------------------------------------------------------
    @property
    def attempt(self) -> PairingAttempt | None:
        return self._attempt

    @property
    def state(self) -> PairingState:
        return self._attempt.status if self._attempt is not None else self._state

    @property
    def last_error(self) -> str | None:
        return self._attempt.last_error if self._attempt is not None else self._last_error

    @property
    def error_kind(self) -> ErrorKind | None:
        return self._attempt.error_kind if self._attempt is not None else self._error_kind

    @property
    def session_id(self) -> str | None:
        return self._attempt.session_id if self._attempt is not None else None

    @property
    def time_remaining(self) -> int:
        return self._attempt.time_remaining if self._attempt is not None else 0

    @property
    def status(self) -> PairingStatus | None:
        return self._status

    @property
    def code_length(self) -> int:
        return self._status.code_length if self._status is not None else DEFAULT_CODE_LENGTH

    @property
    def needs_pairing(self) -> bool:
        return not self._store.is_authenticated()

    # ---------- actions ---------------------------------------------------------
    async def refresh_status(self) -> PairingStatus | None:
        """Fetch the server's pairing capabilities; skipped once authenticated."""
        if self._store.is_authenticated():
            return self._status
        self._status = await self._client.get_pairing_status()
        return self._status

    async def initiate(self, device_name: str | None = None) -> PairingAttempt:
        self._discard_current("superseded")
        attempt = PairingAttempt(device_name=device_name, code_length=self.code_length)
        self._attempt = attempt
        _log.info("pairing initiate device=%s", device_name or "-")
        try:
            result = await self._client.initiate_pairing(device_name)
        except ApiError as exc:
            if attempt is not self._attempt:
                _log.debug("dropping initiate failure of a discarded attempt")
                return attempt
            _log.warning("pairing initiate failed kind=%s", exc.kind.value)
            attempt.discard_code()
            attempt.fail(PairingState.FAILED, describe_error(exc), exc.kind)
            self._finish(attempt)
            return attempt

        if attempt is not self._attempt:
            _log.debug("dropping initiate response of a discarded attempt")
            return attempt

        fallback = self._status.code_expiry_seconds if self._status is not None else 0
        try:
            expires_in = int(result.get("expiresIn") or fallback)
        except (TypeError, ValueError):
            expires_in = fallback
        attempt.session_id = str(result["sessionId"])
        attempt.expires_in = max(expires_in, 0)
        attempt.time_remaining = attempt.expires_in
        attempt.status = PairingState.AWAITING_CODE
        _log.info("pairing awaiting code session=%s expires_in=%ss", attempt.session_id, attempt.expires_in)
        if attempt.time_remaining <= 0:
            self._expire(attempt)
        else:
            self._arm_timer(attempt)
        return attempt

    async def complete(self, code: str) -> bool:
        attempt = self._attempt
        if attempt is None or attempt.status != PairingState.AWAITING_CODE or not attempt.session_id:
            raise PairingStateError(f"cannot submit a code while {self.state.value}")

        normalized = normalize_code(code)
        if len(normalized) != attempt.code_length:
            attempt.last_error = MSG_CODE_INVALID
            attempt.error_kind = ErrorKind.PAIRING_CODE_INVALID
            return False

        attempt.status = PairingState.COMPLETING
        attempt.last_error = None
        attempt.error_kind = None
        try:
            result = await self._client.complete_pairing(normalized, attempt.session_id)
        except ApiError as exc:
            if not self._still_completing(attempt):
                _log.debug("dropping completion failure of a discarded attempt")
                return False
            _log.info("pairing code rejected kind=%s", exc.kind.value)
            attempt.status = PairingState.AWAITING_CODE
            attempt.last_error = describe_error(exc)
            attempt.error_kind = exc.kind
            return False

        if not self._still_completing(attempt):
            _log.info("dropping pairing completion for a discarded attempt")
            return False

        meta = SessionMeta.from_mapping(result.get("session") or {})
        try:
            self._store.set_auth(result["token"], meta)
        except SessionStoreError as exc:
            attempt.discard_code()
            attempt.fail(PairingState.FAILED, f"could not store credential: {exc}")
            self._finish(attempt)
            raise

        attempt.discard_code()
        attempt.status = PairingState.PAIRED
        self._finish(attempt)
        _log.info("pairing complete session=%s", meta.id)
        self._bus.publish(PAIRING_SUCCESS, {"session_id": meta.id, "device_name": meta.device_name})
        return True

    def cancel(self) -> bool:
        attempt = self._attempt
        if attempt is None or not attempt.status.in_progress:
            return False
        attempt.discard_code()
        attempt.fail(PairingState.CANCELLED, None)
        self._finish(attempt)
        _log.info("pairing cancelled")
        return True

    def tick(self) -> None:
        """Advance the countdown by one second."""
        attempt = self._attempt
        if attempt is None or attempt.status not in (PairingState.AWAITING_CODE, PairingState.COMPLETING):
            return
        attempt.time_remaining = max(attempt.time_remaining - 1, 0)
        if attempt.time_remaining == 0:
            self._expire(attempt)

    async def close(self) -> None:
        self._unsubscribe()
        timer = self._timer
        self._discard_current("closed")
        if timer is not None and not timer.done():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass

    # ---------- internals -------------------------------------------------------
    def _still_completing(self, attempt: PairingAttempt) -> bool:
        return attempt is self._attempt and attempt.status == PairingState.COMPLETING

    def _expire(self, attempt: PairingAttempt) -> None:
        attempt.discard_code()
        attempt.fail(PairingState.EXPIRED, MSG_COUNTDOWN_EXPIRED, ErrorKind.PAIRING_CODE_EXPIRED)
        self._finish(attempt)
        _log.info("pairing code expired")

    def _finish(self, attempt: PairingAttempt) -> None:
        self._cancel_timer()
        self._state = attempt.status
        self._last_error = attempt.last_error
        self._error_kind = attempt.error_kind
        if attempt is self._attempt:
            self._attempt = None

    def _discard_current(self, reason: str) -> None:
        attempt = self._attempt
        self._cancel_timer()
        if attempt is None:
            return
        _log.debug("discarding pairing attempt (%s)", reason)
        attempt.discard_code()
        attempt.fail(PairingState.CANCELLED, None)
        self._attempt = None
        self._state = PairingState.IDLE
        self._last_error = None
        self._error_kind = None

    def _arm_timer(self, attempt: PairingAttempt) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(self._countdown(attempt), name="audioctl-pairing-countdown")

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _countdown(self, attempt: PairingAttempt) -> None:
        while attempt is self._attempt:
            await self._sleep(self.tick_interval)
            if attempt is not self._attempt:
                return
            self.tick()

    def _on_auth_error(self, signal: AuthSignal) -> None:
        self._status = None
        if self._attempt is None and self._state == PairingState.PAIRED:
            self._state = PairingState.IDLE
        _log.info("credential rejected (%s); pairing required", signal.payload.get("kind"))
