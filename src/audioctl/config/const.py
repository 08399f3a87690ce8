# src/audioctl/config/const.py
from __future__ import annotations

# Hard defaults; user-facing overrides live in client.yaml and the environment.
DEFAULT_API_URL: str = "http://localhost:3001"
DEFAULT_TIMEOUT: float = 10.0

# Fixed identifiers for the persisted credential pair.
TOKEN_STORAGE_KEY: str = "audioctl.auth_token"
SESSION_STORAGE_KEY: str = "audioctl.session"
KEYRING_SERVICE_PREFIX: str = "audioctl"

DEFAULT_CODE_LENGTH: int = 6
PAIRING_TICK_SECONDS: float = 1.0

SESSIONS_REFRESH_INTERVAL: float = 30.0
HEALTH_CHECK_INTERVAL: float = 30.0

RETRY_MAX_ATTEMPTS: int = 3
RETRY_BASE_DELAY_MS: int = 1000
RETRY_MAX_DELAY_MS: int = 30_000
RATE_LIMIT_DEFAULT_MS: int = 60_000

CONFIG_FILENAME: str = "client.yaml"
HOME_ENV: str = "AUDIOCTL_HOME"
API_URL_ENV: str = "AUDIOCTL_API_URL"
API_KEY_ENV: str = "AUDIOCTL_API_KEY"
LOG_LEVEL_ENV: str = "AUDIOCTL_LOG_LEVEL"
