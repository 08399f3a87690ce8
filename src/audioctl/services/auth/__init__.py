"""Pairing and session authentication client for the audio-control service."""
from .bus import AUTH_ERROR, PAIRING_SUCCESS, AuthSignal, AuthSignalBus, get_bus
from .client import ApiClient
from .enums import ConnectionState, ErrorKind, PairingState
from .errors import (
    ApiError,
    GenericApiError,
    NetworkUnreachableError,
    PairingCodeExpiredError,
    PairingCodeInvalidError,
    PairingError,
    PairingRateLimitedError,
    PairingStateError,
    RateLimitedError,
    RevokeRejectedError,
    SessionAuthError,
    SessionExpiredError,
    SessionInvalidError,
    SessionLimitReachedError,
    SessionStoreError,
    UnauthorizedError,
    classify_response,
)
from .models import PairingAttempt, PairingStatus, Session, SessionMeta
from .pairing import PairingMachine, normalize_code
from .retry import DEFAULT_RETRY_POLICY, ExponentialBackoff, NoRetry, RetryDecision
from .sessions import SessionListCache
from .store import FileSessionStore, KeyringSessionStore, MemorySessionStore, SessionStore

__all__ = [
    "AUTH_ERROR",
    "PAIRING_SUCCESS",
    "AuthSignal",
    "AuthSignalBus",
    "get_bus",
    "ApiClient",
    "ConnectionState",
    "ErrorKind",
    "PairingState",
    "ApiError",
    "GenericApiError",
    "NetworkUnreachableError",
    "PairingCodeExpiredError",
    "PairingCodeInvalidError",
    "PairingError",
    "PairingRateLimitedError",
    "PairingStateError",
    "RateLimitedError",
    "RevokeRejectedError",
    "SessionAuthError",
    "SessionExpiredError",
    "SessionInvalidError",
    "SessionLimitReachedError",
    "SessionStoreError",
    "UnauthorizedError",
    "classify_response",
    "PairingAttempt",
    "PairingStatus",
    "Session",
    "SessionMeta",
    "PairingMachine",
    "normalize_code",
    "DEFAULT_RETRY_POLICY",
    "ExponentialBackoff",
    "NoRetry",
    "RetryDecision",
    "SessionListCache",
    "FileSessionStore",
    "KeyringSessionStore",
    "MemorySessionStore",
    "SessionStore",
]
