"""Closed error taxonomy for the remote audio service and the classifier that produces it."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping

from audioctl.config.const import RATE_LIMIT_DEFAULT_MS

from .enums import ErrorKind

__all__ = [
    "ApiError",
    "NetworkUnreachableError",
    "RateLimitedError",
    "SessionAuthError",
    "UnauthorizedError",
    "SessionInvalidError",
    "SessionExpiredError",
    "PairingError",
    "PairingCodeInvalidError",
    "PairingCodeExpiredError",
    "PairingRateLimitedError",
    "SessionLimitReachedError",
    "GenericApiError",
    "SessionStoreError",
    "PairingStateError",
    "RevokeRejectedError",
    "classify_response",
    "classify_transport",
    "parse_retry_after",
    "is_success",
]


class ApiError(RuntimeError):
    """Base class for classified failures of a Request Layer call."""

    kind: ErrorKind = ErrorKind.GENERIC

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        code: str | None = None,
        payload: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.payload = payload

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"{type(self).__name__}(kind={self.kind.value}, status_code={self.status_code}, message={self.message!r})"


class NetworkUnreachableError(ApiError):
    kind = ErrorKind.NETWORK_UNREACHABLE


class RateLimitedError(ApiError):
    """HTTP 429. Never clears stored authentication."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, *, retry_after_ms: int = RATE_LIMIT_DEFAULT_MS, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after_ms = retry_after_ms


class SessionAuthError(ApiError):
    """Failures that invalidate the locally stored credential."""


class UnauthorizedError(SessionAuthError):
    kind = ErrorKind.UNAUTHORIZED


class SessionInvalidError(SessionAuthError):
    kind = ErrorKind.SESSION_INVALID


class SessionExpiredError(SessionAuthError):
    kind = ErrorKind.SESSION_EXPIRED


class PairingError(ApiError):
    """Failures local to a pairing handshake; never touch an existing session."""


class PairingCodeInvalidError(PairingError):
    kind = ErrorKind.PAIRING_CODE_INVALID


class PairingCodeExpiredError(PairingError):
    kind = ErrorKind.PAIRING_CODE_EXPIRED


class PairingRateLimitedError(RateLimitedError, PairingError):
    kind = ErrorKind.PAIRING_RATE_LIMITED


class SessionLimitReachedError(PairingError):
    kind = ErrorKind.SESSION_LIMIT_REACHED


class GenericApiError(ApiError):
    kind = ErrorKind.GENERIC


class SessionStoreError(RuntimeError):
    """Raised when the durable session storage cannot be read or written."""


class PairingStateError(RuntimeError):
    """Raised when a pairing action is not valid in the current state."""


class RevokeRejectedError(RuntimeError):
    """Raised when revoking the session that backs the current client."""


_SESSION_AUTH_CODES: dict[str, type[SessionAuthError]] = {
    "UNAUTHORIZED": UnauthorizedError,
    "SESSION_INVALID": SessionInvalidError,
    "SESSION_EXPIRED": SessionExpiredError,
}

_PAIRING_CODES: dict[str, type[PairingError]] = {
    "PAIRING_CODE_INVALID": PairingCodeInvalidError,
    "PAIRING_CODE_EXPIRED": PairingCodeExpiredError,
    "SESSION_LIMIT_REACHED": SessionLimitReachedError,
}


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> int:
    """Return the ``Retry-After`` interval in milliseconds (delta-seconds or HTTP-date)."""
    if value is None:
        return RATE_LIMIT_DEFAULT_MS
    text = value.strip()
    if not text:
        return RATE_LIMIT_DEFAULT_MS
    try:
        seconds = float(text)
    except ValueError:
        try:
            moment = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return RATE_LIMIT_DEFAULT_MS
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        seconds = (moment - (now or datetime.now(tz=timezone.utc))).total_seconds()
    millis = seconds * 1000
    if not math.isfinite(millis):
        return RATE_LIMIT_DEFAULT_MS
    return max(int(millis), 0)


def is_success(status_code: int, body: Any, *, envelope: bool = True) -> bool:
    if not 200 <= status_code < 300:
        return False
    if not envelope:
        return True
    return isinstance(body, Mapping) and body.get("success") is True


def _message(body: Any, status_code: int) -> str:
    if isinstance(body, Mapping):
        for key in ("error", "message", "detail"):
            detail = body.get(key)
            if isinstance(detail, str) and detail:
                return detail
    if isinstance(body, str) and body.strip():
        return body.strip()
    if status_code:
        return f"HTTP {status_code}"
    return "API request failed"


def classify_response(
    status_code: int,
    body: Any,
    headers: Mapping[str, str] | None = None,
    *,
    envelope: bool = True,
) -> ApiError | None:
    """Map an HTTP outcome to exactly one error kind, or ``None`` when it succeeded.

    ``envelope=False`` is used for the health endpoint, which is judged by status only.
    """
    if is_success(status_code, body, envelope=envelope):
        return None

    code: str | None = None
    if isinstance(body, Mapping):
        raw_code = body.get("code")
        if isinstance(raw_code, str) and raw_code:
            code = raw_code.upper()
    message = _message(body, status_code)
    kwargs: dict[str, Any] = {"status_code": status_code, "code": code, "payload": body}

    if status_code == 429:
        retry_after = None
        if headers is not None:
            retry_after = headers.get("Retry-After") or headers.get("retry-after")
        retry_after_ms = parse_retry_after(retry_after)
        if code == "PAIRING_RATE_LIMITED":
            return PairingRateLimitedError(message, retry_after_ms=retry_after_ms, **kwargs)
        return RateLimitedError(message, retry_after_ms=retry_after_ms, **kwargs)

    if code in _SESSION_AUTH_CODES:
        return _SESSION_AUTH_CODES[code](message, **kwargs)
    if status_code == 401:
        return UnauthorizedError(message, **kwargs)
    if code == "PAIRING_RATE_LIMITED":
        return PairingRateLimitedError(message, retry_after_ms=RATE_LIMIT_DEFAULT_MS, **kwargs)
    if code in _PAIRING_CODES:
        return _PAIRING_CODES[code](message, **kwargs)
    return GenericApiError(message, **kwargs)


def classify_transport(exc: BaseException, *, method: str, path: str) -> NetworkUnreachableError:
    return NetworkUnreachableError(f"{method} {path} failed: {exc}")
