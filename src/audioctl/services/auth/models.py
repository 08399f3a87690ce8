"""Dataclasses for sessions, persisted session metadata and pairing attempts."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from audioctl.config.const import DEFAULT_CODE_LENGTH

from .enums import ErrorKind, PairingState

__all__ = [
    "Session",
    "SessionMeta",
    "PairingStatus",
    "PairingAttempt",
    "parse_timestamp",
]


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp as sent by the service (``Z`` suffix allowed)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(text)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _isoformat(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Session:
    """Server-issued device binding as listed by ``GET /api/sessions``."""

    id: str
    device_name: str
    created_at: datetime | None
    last_used_at: datetime | None
    expires_at: datetime | None
    is_current: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Session":
        current = data.get("isCurrent", data.get("current", False))
        return cls(
            id=str(data.get("id", "")),
            device_name=str(data.get("deviceName") or "Unknown device"),
            created_at=parse_timestamp(data.get("createdAt")),
            last_used_at=parse_timestamp(data.get("lastUsedAt")),
            expires_at=parse_timestamp(data.get("expiresAt")),
            is_current=bool(current),
        )

    def is_expired(self, *, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or _utcnow())


@dataclass(frozen=True, slots=True)
class SessionMeta:
    """Metadata persisted next to the bearer token after a successful pairing."""

    id: str
    device_name: str
    created_at: str | None = None
    expires_at: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SessionMeta":
        return cls(
            id=str(data.get("id", "")),
            device_name=str(data.get("deviceName") or data.get("device_name") or ""),
            created_at=_isoformat(parse_timestamp(data.get("createdAt") or data.get("created_at"))),
            expires_at=_isoformat(parse_timestamp(data.get("expiresAt") or data.get("expires_at"))),
        )

    def as_json(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class PairingStatus:
    pairing_enabled: bool
    code_length: int = DEFAULT_CODE_LENGTH
    code_expiry_seconds: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PairingStatus":
        try:
            code_length = int(data.get("codeLength") or DEFAULT_CODE_LENGTH)
        except (TypeError, ValueError):
            code_length = DEFAULT_CODE_LENGTH
        try:
            expiry = int(data.get("codeExpiry", data.get("codeExpirySeconds")) or 0)
        except (TypeError, ValueError):
            expiry = 0
        return cls(
            pairing_enabled=bool(data.get("pairingEnabled", False)),
            code_length=max(code_length, 1),
            code_expiry_seconds=max(expiry, 0),
        )


@dataclass(slots=True, eq=False)
class PairingAttempt:
    """One pairing handshake. Never persisted; compared by identity."""

    device_name: str | None
    code_length: int = DEFAULT_CODE_LENGTH
    session_id: str | None = None
    expires_in: int = 0
    time_remaining: int = 0
    status: PairingState = PairingState.INITIATING
    last_error: str | None = None
    error_kind: ErrorKind | None = None
    started_at: datetime = field(default_factory=_utcnow)

    def fail(self, status: PairingState, message: str | None, kind: ErrorKind | None = None) -> None:
        self.status = status
        self.last_error = message
        self.error_kind = kind

    def discard_code(self) -> None:
        self.session_id = None
        self.time_remaining = 0
