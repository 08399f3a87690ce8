from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from audioctl.config.const import (
    API_KEY_ENV,
    API_URL_ENV,
    CONFIG_FILENAME,
    DEFAULT_API_URL,
    DEFAULT_TIMEOUT,
    HEALTH_CHECK_INTERVAL,
    HOME_ENV,
    LOG_LEVEL_ENV,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY_MS,
    SESSIONS_REFRESH_INTERVAL,
)

__all__ = [
    "ConfigError",
    "ClientConfig",
    "ApiSettings",
    "StorageSettings",
    "SessionsSettings",
    "HealthSettings",
    "RetrySettings",
    "LoggingSettings",
    "base_dir",
    "config_path",
    "load_config",
    "save_config",
]

STORAGE_BACKENDS = ("file", "keyring", "memory")


class ConfigError(RuntimeError):
    """Raised when client.yaml cannot be parsed."""


def base_dir() -> Path:
    raw = os.environ.get(HOME_ENV)
    path = Path(raw).expanduser() if raw else Path.home() / ".audioctl"
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    return base_dir() / CONFIG_FILENAME


@dataclass
class ApiSettings:
    base_url: str = DEFAULT_API_URL
    # static fallback credential for headless use; sent as X-API-Key when no token is stored
    api_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class StorageSettings:
    backend: str = "file"
    # relative paths resolve against base_dir()
    path: str = "session.json"


@dataclass
class SessionsSettings:
    refresh_interval: float = SESSIONS_REFRESH_INTERVAL


@dataclass
class HealthSettings:
    interval: float = HEALTH_CHECK_INTERVAL


@dataclass
class RetrySettings:
    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay_ms: int = RETRY_BASE_DELAY_MS
    max_delay_ms: int = RETRY_MAX_DELAY_MS


@dataclass
class LoggingSettings:
    level: str = "INFO"
    file: str | None = "logs/audioctl.log"
    max_bytes: int = 5_000_000
    backup_count: int = 3


@dataclass
class ClientConfig:
    api: ApiSettings = field(default_factory=ApiSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    sessions: SessionsSettings = field(default_factory=SessionsSettings)
    health: HealthSettings = field(default_factory=HealthSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    def ensure_defaults(self) -> bool:
        changed = False
        if not self.api.base_url:
            self.api.base_url = DEFAULT_API_URL
            changed = True
        if self.api.timeout <= 0:
            self.api.timeout = DEFAULT_TIMEOUT
            changed = True
        if self.storage.backend not in STORAGE_BACKENDS:
            self.storage.backend = "file"
            changed = True
        if not self.storage.path:
            self.storage.path = "session.json"
            changed = True
        if self.retry.max_attempts < 1:
            self.retry.max_attempts = 1
            changed = True
        return changed

    def apply_env(self, environ: Mapping[str, str] | None = None) -> None:
        env = os.environ if environ is None else environ
        if env.get(API_URL_ENV):
            self.api.base_url = env[API_URL_ENV]
        if env.get(API_KEY_ENV):
            self.api.api_key = env[API_KEY_ENV]
        if env.get(LOG_LEVEL_ENV):
            self.logging.level = env[LOG_LEVEL_ENV].upper()

    def storage_path(self) -> Path:
        return _expand_path(self.storage.path)

    def log_path(self) -> Path | None:
        if not self.logging.file:
            return None
        return _expand_path(self.logging.file)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _expand_path(value: str) -> Path:
    candidate = Path(value).expanduser()
    if candidate.is_absolute():
        return candidate
    return base_dir() / candidate


def _section(cls, data: Any):
    if not isinstance(data, Mapping):
        return cls()
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


def _from_mapping(data: Mapping[str, Any]) -> ClientConfig:
    try:
        return ClientConfig(
            api=_section(ApiSettings, data.get("api")),
            storage=_section(StorageSettings, data.get("storage")),
            sessions=_section(SessionsSettings, data.get("sessions")),
            health=_section(HealthSettings, data.get("health")),
            retry=_section(RetrySettings, data.get("retry")),
            logging=_section(LoggingSettings, data.get("logging")),
        )
    except TypeError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc


def load_config(path: Path | None = None, *, environ: Mapping[str, str] | None = None) -> ClientConfig:
    """Read client.yaml (creating it with defaults on first use) and apply env overrides."""
    target = path or config_path()
    if target.exists():
        try:
            raw = yaml.safe_load(target.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"failed to parse {target}: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{target} must contain a mapping")
        config = _from_mapping(raw)
        if config.ensure_defaults():
            save_config(config, target)
    else:
        config = ClientConfig()
        save_config(config, target)
    config.apply_env(environ)
    return config


def save_config(config: ClientConfig, path: Path | None = None) -> Path:
    target = path or config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.safe_dump(config.to_dict(), allow_unicode=True, sort_keys=False), encoding="utf-8")
    return target
