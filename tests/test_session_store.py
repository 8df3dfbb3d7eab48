from __future__ import annotations

import sqlite3

import httpx
import pytest

from compliance_client.clients import (
    MemoryCredentialStore,
    SQLiteCredentialStore,
    TokenCipher,
)
from compliance_client.clients.credential_store import ACCESS_TOKEN_KEY
from compliance_client.schemas import CredentialPair, UserProfile
from compliance_client.services import SessionState, SessionStore
from stubs import USER_PAYLOAD, accept_token, refresh_issuing


def _pair(access: str = "a-1", refresh: str = "r-1") -> CredentialPair:
    return CredentialPair(access=access, refresh=refresh)


def test_memory_store_round_trips_pair():
    store = MemoryCredentialStore()
    store.save(_pair())

    loaded = store.load()

    assert loaded == _pair()


def test_memory_store_purges_lone_token():
    store = MemoryCredentialStore()
    store._values = {ACCESS_TOKEN_KEY: "orphan"}

    assert store.load() is None
    assert store.raw_values() == {}


def test_sqlite_store_persists_across_instances(tmp_path):
    db_path = tmp_path / "session.db"
    SQLiteCredentialStore(str(db_path)).save(_pair("a-2", "r-2"))

    reopened = SQLiteCredentialStore(str(db_path))

    assert reopened.load() == _pair("a-2", "r-2")


def test_sqlite_store_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "session.db"

    SQLiteCredentialStore(str(db_path)).save(_pair())

    assert db_path.exists()


def test_sqlite_store_purges_lone_token(tmp_path):
    db_path = tmp_path / "session.db"
    store = SQLiteCredentialStore(str(db_path))
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT INTO session_values (key, value) VALUES (?, ?)",
            (ACCESS_TOKEN_KEY, "orphan"),
        )

    assert store.load() is None
    with sqlite3.connect(db_path) as conn:
        remaining = conn.execute("SELECT COUNT(*) FROM session_values").fetchone()[0]
    assert remaining == 0


def test_sqlite_store_encrypts_values_at_rest(tmp_path):
    db_path = tmp_path / "session.db"
    store = SQLiteCredentialStore(str(db_path), cipher=TokenCipher(secret="s3cret"))
    store.save(_pair("plain-access", "plain-refresh"))

    with sqlite3.connect(db_path) as conn:
        stored = [row[0] for row in conn.execute("SELECT value FROM session_values")]

    assert "plain-access" not in stored
    assert "plain-refresh" not in stored
    assert store.load() == _pair("plain-access", "plain-refresh")


def test_sqlite_store_drops_values_written_with_another_secret(tmp_path):
    db_path = tmp_path / "session.db"
    SQLiteCredentialStore(str(db_path), cipher=TokenCipher(secret="old")).save(_pair())

    store = SQLiteCredentialStore(str(db_path), cipher=TokenCipher(secret="new"))

    assert store.load() is None
    assert SQLiteCredentialStore(str(db_path)).load() is None


def test_token_cipher_requires_secret():
    with pytest.raises(ValueError, match="COMPLIANCE_TOKEN_SECRET"):
        TokenCipher(secret="")


def test_session_starts_bootstrapping_with_persisted_pair():
    session = SessionStore(MemoryCredentialStore(_pair()))

    assert session.state is SessionState.BOOTSTRAPPING
    assert session.loading is True
    assert session.access_token == "a-1"
    assert session.refresh_token == "r-1"
    assert session.profile is None


def test_set_session_persists_pair_and_authenticates():
    store = MemoryCredentialStore()
    session = SessionStore(store)
    profile = UserProfile.model_validate(USER_PAYLOAD)

    session.set_session(profile, _pair("a-9", "r-9"))

    assert session.is_authenticated
    assert session.profile == profile
    assert store.load() == _pair("a-9", "r-9")


def test_replace_access_token_keeps_refresh_token():
    store = MemoryCredentialStore(_pair())
    session = SessionStore(store)

    assert session.replace_access_token("a-2") is True

    assert session.credentials == _pair("a-2", "r-1")
    assert store.load() == _pair("a-2", "r-1")


def test_replace_access_token_without_session_is_ignored():
    store = MemoryCredentialStore()
    session = SessionStore(store)

    assert session.replace_access_token("a-2") is False
    assert store.raw_values() == {}


def test_set_profile_requires_credentials():
    session = SessionStore(MemoryCredentialStore())

    with pytest.raises(ValueError):
        session.set_profile(UserProfile.model_validate(USER_PAYLOAD))


def test_clear_is_idempotent():
    store = MemoryCredentialStore(_pair())
    session = SessionStore(store)

    session.clear()
    session.clear()

    assert session.state is SessionState.ANONYMOUS
    assert session.credentials is None
    assert store.raw_values() == {}


@pytest.mark.asyncio
async def test_bootstrap_without_credentials_is_anonymous(backend, api):
    session = SessionStore(MemoryCredentialStore())

    profile = await session.bootstrap(api)

    assert profile is None
    assert session.state is SessionState.ANONYMOUS
    assert backend.requests == []


@pytest.mark.asyncio
async def test_bootstrap_loads_profile(backend, api, session):
    backend.route("GET", "/accounts/users/", accept_token("expired-access", USER_PAYLOAD))

    profile = await session.bootstrap(api)

    assert profile is not None
    assert profile.email == "ada@example.com"
    assert session.is_authenticated
    assert session.profile == profile


@pytest.mark.asyncio
async def test_bootstrap_refreshes_expired_access_token(backend, api, session, credential_store):
    backend.route("GET", "/accounts/users/", accept_token("fresh-access", USER_PAYLOAD))
    backend.route("POST", "/token/refresh/", refresh_issuing("fresh-access"))

    await session.bootstrap(api)

    assert session.is_authenticated
    assert credential_store.load() == _pair("fresh-access", "refresh-1")


@pytest.mark.asyncio
async def test_bootstrap_failure_clears_session_without_raising(backend, api, session):
    backend.route("GET", "/accounts/users/", httpx.Response(500, json={"detail": "boom"}))

    profile = await session.bootstrap(api)

    assert profile is None
    assert session.state is SessionState.ANONYMOUS
    assert session.credentials is None


@pytest.mark.asyncio
async def test_bootstrap_with_rejected_refresh_ends_anonymous(backend, api, session):
    backend.route("GET", "/accounts/users/", httpx.Response(401, json={"detail": "expired"}))
    backend.route("POST", "/token/refresh/", httpx.Response(401, json={"detail": "expired"}))

    assert await session.bootstrap(api) is None
    assert session.state is SessionState.ANONYMOUS


@pytest.mark.asyncio
async def test_bootstrap_runs_once(backend, api, session):
    backend.route("GET", "/accounts/users/", accept_token("expired-access", USER_PAYLOAD))

    await session.bootstrap(api)
    await session.bootstrap(api)

    assert len(backend.calls_to("/accounts/users/")) == 1
