"""Durable storage for the bearer token and the metadata of the session it belongs to."""
from __future__ import annotations

import abc
import json
import logging
import os
import socket
import tempfile
from pathlib import Path
from typing import Any

from audioctl.config.const import KEYRING_SERVICE_PREFIX, SESSION_STORAGE_KEY, TOKEN_STORAGE_KEY

from .errors import SessionStoreError
from .models import SessionMeta

__all__ = [
    "SessionStore",
    "MemorySessionStore",
    "FileSessionStore",
    "KeyringSessionStore",
]

_log = logging.getLogger("audioctl.store")


class SessionStore(abc.ABC):
    """Single point of truth for the client's credential.

    ``revision`` grows by one on every successful ``set_auth`` and every ``clear``
    so callers can tell whether the credential they used is still the stored one.
    ``clear`` always forgets the in-memory credential, even when removing the
    durable copy fails and ``SessionStoreError`` is raised.
    """

    def __init__(self, *, api_key: str | None = None) -> None:
        self._api_key = api_key or None
        self.revision = 0

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @abc.abstractmethod
    def get_token(self) -> str | None: ...

    @abc.abstractmethod
    def get_session_meta(self) -> SessionMeta | None: ...

    @abc.abstractmethod
    def _save(self, token: str, meta: SessionMeta) -> None: ...

    @abc.abstractmethod
    def _erase(self) -> None: ...

    def set_auth(self, token: str, meta: SessionMeta) -> None:
        if not isinstance(token, str) or not token:
            raise SessionStoreError("refusing to store an empty token")
        self._save(token, meta)
        self.revision += 1
        _log.info("session stored id=%s device=%s", meta.id, meta.device_name)

    def clear(self) -> None:
        try:
            self._erase()
        finally:
            self.revision += 1
        _log.info("session cleared")

    def has_token(self) -> bool:
        return self.get_token() is not None

    def is_authenticated(self) -> bool:
        return self.has_token() or self._api_key is not None


class MemorySessionStore(SessionStore):
    """In-process store for tests and headless use."""

    def __init__(self, *, api_key: str | None = None) -> None:
        super().__init__(api_key=api_key)
        self._state: tuple[str, SessionMeta] | None = None

    def get_token(self) -> str | None:
        return self._state[0] if self._state else None

    def get_session_meta(self) -> SessionMeta | None:
        return self._state[1] if self._state else None

    def _save(self, token: str, meta: SessionMeta) -> None:
        self._state = (token, meta)

    def _erase(self) -> None:
        self._state = None


class FileSessionStore(SessionStore):
    """JSON document keyed by the two fixed storage identifiers, written atomically."""

    def __init__(self, path: Path, *, api_key: str | None = None) -> None:
        super().__init__(api_key=api_key)
        self._path = Path(path)
        self._state = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> tuple[str, SessionMeta] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise SessionStoreError(f"failed to read session state from {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SessionStoreError(f"unexpected session state in {self._path}")
        token = data.get(TOKEN_STORAGE_KEY)
        meta = data.get(SESSION_STORAGE_KEY)
        if not isinstance(token, str) or not token:
            return None
        if not isinstance(meta, dict):
            meta = {}
        _log.debug("session restored from %s", self._path)
        return token, SessionMeta.from_mapping(meta)

    def _write(self, payload: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".session-", dir=str(self._path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, ensure_ascii=False, indent=2)
                try:
                    os.chmod(tmp_name, 0o600)
                except PermissionError:
                    _log.warning("could not restrict permissions of %s", self._path)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise SessionStoreError(f"failed to write session state to {self._path}: {exc}") from exc

    def get_token(self) -> str | None:
        return self._state[0] if self._state else None

    def get_session_meta(self) -> SessionMeta | None:
        return self._state[1] if self._state else None

    def _save(self, token: str, meta: SessionMeta) -> None:
        self._write({TOKEN_STORAGE_KEY: token, SESSION_STORAGE_KEY: meta.as_json()})
        self._state = (token, meta)

    def _erase(self) -> None:
        self._state = None
        if self._path.exists():
            try:
                self._path.unlink()
            except OSError as exc:
                raise SessionStoreError(f"failed to remove {self._path}: {exc}") from exc


def _require_keyring():
    try:
        import keyring  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise SessionStoreError("system keyring is unavailable") from exc
    return keyring


class KeyringSessionStore(SessionStore):
    """Credential kept in the OS keyring under the two fixed identifiers."""

    def __init__(self, *, service: str | None = None, api_key: str | None = None) -> None:
        super().__init__(api_key=api_key)
        self._service = service or f"{KEYRING_SERVICE_PREFIX}/{socket.gethostname()}"
        self._keyring = _require_keyring()
        self._state = self._load()

    def _get(self, key: str) -> str | None:
        try:
            return self._keyring.get_password(self._service, key) or None
        except Exception as exc:  # pragma: no cover - backend specific errors
            raise SessionStoreError(f"failed to read {key} from keyring") from exc

    def _set(self, key: str, value: str) -> None:
        try:
            self._keyring.set_password(self._service, key, value)
        except Exception as exc:  # pragma: no cover - backend specific errors
            raise SessionStoreError(f"failed to write {key} to keyring") from exc

    def _delete(self, key: str) -> None:
        try:
            self._keyring.delete_password(self._service, key)
        except self._keyring.errors.PasswordDeleteError:  # type: ignore[attr-defined]
            return
        except Exception as exc:  # pragma: no cover
            raise SessionStoreError(f"failed to delete {key} from keyring") from exc

    def _load(self) -> tuple[str, SessionMeta] | None:
        token = self._get(TOKEN_STORAGE_KEY)
        if not token:
            return None
        raw_meta = self._get(SESSION_STORAGE_KEY)
        try:
            meta = json.loads(raw_meta) if raw_meta else {}
        except json.JSONDecodeError:
            meta = {}
        return token, SessionMeta.from_mapping(meta if isinstance(meta, dict) else {})

    def get_token(self) -> str | None:
        return self._state[0] if self._state else None

    def get_session_meta(self) -> SessionMeta | None:
        return self._state[1] if self._state else None

    def _save(self, token: str, meta: SessionMeta) -> None:
        previous_meta = self._get(SESSION_STORAGE_KEY)
        self._set(SESSION_STORAGE_KEY, json.dumps(meta.as_json(), ensure_ascii=False))
        try:
            self._set(TOKEN_STORAGE_KEY, token)
        except SessionStoreError:
            if previous_meta is None:
                self._delete(SESSION_STORAGE_KEY)
            else:
                self._set(SESSION_STORAGE_KEY, previous_meta)
            raise
        self._state = (token, meta)

    def _erase(self) -> None:
        self._state = None
        self._delete(TOKEN_STORAGE_KEY)
        self._delete(SESSION_STORAGE_KEY)
