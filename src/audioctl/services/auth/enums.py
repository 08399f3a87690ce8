"""Enumerations describing error kinds and pairing progress for the auth client."""
from __future__ import annotations

from enum import Enum

__all__ = [
    "ErrorKind",
    "PairingState",
    "ConnectionState",
]


class _StrEnum(str, Enum):
    """Simple ``str``-backed enum compatible with Python 3.10."""

    def __str__(self) -> str:  # pragma: no cover - convenience for logging only
        return str(self.value)


class ErrorKind(_StrEnum):
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    RATE_LIMITED = "RATE_LIMITED"
    UNAUTHORIZED = "UNAUTHORIZED"
    PAIRING_CODE_INVALID = "PAIRING_CODE_INVALID"
    PAIRING_CODE_EXPIRED = "PAIRING_CODE_EXPIRED"
    PAIRING_RATE_LIMITED = "PAIRING_RATE_LIMITED"
    SESSION_INVALID = "SESSION_INVALID"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SESSION_LIMIT_REACHED = "SESSION_LIMIT_REACHED"
    GENERIC = "GENERIC"


class PairingState(_StrEnum):
    IDLE = "idle"
    INITIATING = "initiating"
    AWAITING_CODE = "awaiting_code"
    COMPLETING = "completing"
    PAIRED = "paired"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def in_progress(self) -> bool:
        return self in _IN_PROGRESS


_IN_PROGRESS = frozenset({PairingState.INITIATING, PairingState.AWAITING_CODE, PairingState.COMPLETING})


class ConnectionState(_StrEnum):
    CHECKING = "checking"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
