from __future__ import annotations

import json
import os
import stat
import sys
from types import SimpleNamespace

import pytest
from keyring.errors import PasswordDeleteError

from audioctl.config.const import SESSION_STORAGE_KEY, TOKEN_STORAGE_KEY
from audioctl.services.auth import store as store_module
from audioctl.services.auth.errors import SessionStoreError
from audioctl.services.auth.models import SessionMeta
from audioctl.services.auth.store import FileSessionStore, KeyringSessionStore, MemorySessionStore

META = SessionMeta(id="s-1", device_name="Desk", created_at="2026-10-18T10:00:00Z", expires_at="2026-11-17T10:00:00Z")


def test_memory_store_set_and_clear_bump_revision():
    store = MemorySessionStore()
    assert store.revision == 0
    assert not store.is_authenticated()

    store.set_auth("tok", META)
    assert store.get_token() == "tok"
    assert store.get_session_meta() == META
    assert store.revision == 1

    store.clear()
    assert store.get_token() is None
    assert store.get_session_meta() is None
    assert store.revision == 2


def test_empty_token_is_rejected_without_side_effects():
    store = MemorySessionStore()
    with pytest.raises(SessionStoreError):
        store.set_auth("", META)
    assert store.revision == 0
    assert store.get_session_meta() is None


def test_api_key_counts_as_authenticated():
    store = MemorySessionStore(api_key="static")
    assert store.api_key == "static"
    assert not store.has_token()
    assert store.is_authenticated()


def test_file_store_survives_restart(tmp_path):
    path = tmp_path / "state" / "session.json"
    FileSessionStore(path).set_auth("tok", META)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data[TOKEN_STORAGE_KEY] == "tok"
    assert data[SESSION_STORAGE_KEY]["id"] == "s-1"

    reloaded = FileSessionStore(path)
    assert reloaded.get_token() == "tok"
    assert reloaded.get_session_meta() == META


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
def test_file_store_is_private(tmp_path):
    path = tmp_path / "session.json"
    FileSessionStore(path).set_auth("tok", META)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_file_store_clear_removes_file(tmp_path):
    path = tmp_path / "session.json"
    store = FileSessionStore(path)
    store.set_auth("tok", META)
    store.clear()
    assert not path.exists()
    assert FileSessionStore(path).get_token() is None


def test_file_store_clear_forgets_token_when_unlink_fails(tmp_path, monkeypatch):
    path = tmp_path / "session.json"
    store = FileSessionStore(path)
    store.set_auth("tok", META)

    def refuse(self, *args, **kwargs):
        raise PermissionError("read-only")

    monkeypatch.setattr(type(path), "unlink", refuse)

    with pytest.raises(SessionStoreError):
        store.clear()
    assert store.get_token() is None
    assert store.get_session_meta() is None
    assert store.revision == 2


def test_file_store_rejects_corrupt_state(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(SessionStoreError):
        FileSessionStore(path)


def test_file_store_ignores_metadata_without_token(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({SESSION_STORAGE_KEY: {"id": "s-1"}}), encoding="utf-8")
    assert FileSessionStore(path).get_session_meta() is None


class _FakeKeyring:
    errors = SimpleNamespace(PasswordDeleteError=PasswordDeleteError)

    def __init__(self) -> None:
        self.items: dict[tuple[str, str], str] = {}
        self.fail_on: str | None = None
        self.fail_delete_on: str | None = None

    def get_password(self, service, key):
        return self.items.get((service, key))

    def set_password(self, service, key, value):
        if key == self.fail_on:
            raise RuntimeError("backend locked")
        self.items[(service, key)] = value

    def delete_password(self, service, key):
        if key == self.fail_delete_on:
            raise RuntimeError("backend locked")
        if (service, key) not in self.items:
            raise PasswordDeleteError(key)
        del self.items[(service, key)]


@pytest.fixture
def fake_keyring(monkeypatch):
    backend = _FakeKeyring()
    monkeypatch.setattr(store_module, "_require_keyring", lambda: backend)
    return backend


def test_keyring_store_round_trip(fake_keyring):
    store = KeyringSessionStore(service="audioctl/test")
    store.set_auth("tok", META)
    assert fake_keyring.items[("audioctl/test", TOKEN_STORAGE_KEY)] == "tok"

    reloaded = KeyringSessionStore(service="audioctl/test")
    assert reloaded.get_token() == "tok"
    assert reloaded.get_session_meta() == META

    reloaded.clear()
    reloaded.clear()
    assert fake_keyring.items == {}


def test_keyring_store_rolls_back_metadata_when_token_write_fails(fake_keyring):
    fake_keyring.fail_on = TOKEN_STORAGE_KEY
    store = KeyringSessionStore(service="audioctl/test")
    with pytest.raises(SessionStoreError):
        store.set_auth("tok", META)
    assert fake_keyring.items == {}
    assert store.get_token() is None
    assert store.revision == 0


def test_keyring_store_clear_forgets_token_when_metadata_delete_fails(fake_keyring):
    store = KeyringSessionStore(service="audioctl/test")
    store.set_auth("tok", META)
    fake_keyring.fail_delete_on = SESSION_STORAGE_KEY

    with pytest.raises(SessionStoreError):
        store.clear()

    assert ("audioctl/test", TOKEN_STORAGE_KEY) not in fake_keyring.items
    assert store.get_token() is None
    assert store.get_session_meta() is None


def test_keyring_store_clear_forgets_token_when_token_delete_fails(fake_keyring):
    store = KeyringSessionStore(service="audioctl/test")
    store.set_auth("tok", META)
    fake_keyring.fail_delete_on = TOKEN_STORAGE_KEY

    with pytest.raises(SessionStoreError):
        store.clear()

    assert store.get_token() is None
    assert store.revision == 2
