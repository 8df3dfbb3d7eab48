"""Persistence backends for the access/refresh token pair."""

from __future__ import annotations

import base64
import hashlib
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Protocol

from cryptography.fernet import Fernet, InvalidToken

from compliance_client.schemas import CredentialPair

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


def _fernet_for(secret: str) -> Fernet:
    # Fernet needs 32 url-safe base64 bytes; any passphrase is stretched to that.
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest()))


class TokenCipher:
    """Seals the session's access/refresh values before they reach the SQLite file.

    Only ``SQLiteCredentialStore`` uses this, and only when
    ``COMPLIANCE_TOKEN_SECRET`` is set. A value written under one secret
    cannot be read back under another; the store treats that as a signed-out
    session rather than an error.
    """

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("COMPLIANCE_TOKEN_SECRET is empty; cannot seal session tokens.")
        self._fernet = _fernet_for(secret)

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Raise ``ValueError`` for a row sealed under another secret or altered on disk."""
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError("Stored token could not be decrypted.") from exc
        return plaintext.decode("utf-8")


class CredentialStore(Protocol):
    """Key-value area holding the two persisted token values."""

    def load(self) -> Optional[CredentialPair]: ...

    def save(self, credentials: CredentialPair) -> None: ...

    def clear(self) -> None: ...


class MemoryCredentialStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self, credentials: CredentialPair | None = None) -> None:
        self._values: Dict[str, str] = {}
        if credentials is not None:
            self.save(credentials)

    def load(self) -> Optional[CredentialPair]:
        access = self._values.get(ACCESS_TOKEN_KEY)
        refresh = self._values.get(REFRESH_TOKEN_KEY)
        if not access or not refresh:
            self._values.clear()
            return None
        return CredentialPair(access=access, refresh=refresh)

    def save(self, credentials: CredentialPair) -> None:
        self._values = {
            ACCESS_TOKEN_KEY: credentials.access_token,
            REFRESH_TOKEN_KEY: credentials.refresh_token,
        }

    def clear(self) -> None:
        self._values.clear()

    def raw_values(self) -> Dict[str, str]:
        return dict(self._values)


class SQLiteCredentialStore:
    """Token store backed by a two-row key-value table in a SQLite file."""

    def __init__(self, db_path: str, cipher: TokenCipher | None = None) -> None:
        self._db_path = Path(db_path).expanduser()
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._cipher = cipher
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS session_values (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def _encode(self, value: str) -> str:
        return self._cipher.encrypt(value) if self._cipher else value

    def _decode(self, value: str) -> str:
        return self._cipher.decrypt(value) if self._cipher else value

    def load(self) -> Optional[CredentialPair]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT key, value FROM session_values WHERE key IN (?, ?)",
                (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY),
            ).fetchall()
        values = {row["key"]: row["value"] for row in rows}
        if ACCESS_TOKEN_KEY not in values or REFRESH_TOKEN_KEY not in values:
            if values:
                self.clear()
            return None
        try:
            access = self._decode(values[ACCESS_TOKEN_KEY])
            refresh = self._decode(values[REFRESH_TOKEN_KEY])
        except ValueError:
            self.clear()
            return None
        return CredentialPair(access=access, refresh=refresh)

    def save(self, credentials: CredentialPair) -> None:
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO session_values (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (
                    (ACCESS_TOKEN_KEY, self._encode(credentials.access_token)),
                    (REFRESH_TOKEN_KEY, self._encode(credentials.refresh_token)),
                ),
            )

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM session_values WHERE key IN (?, ?)",
                (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY),
            )


__all__ = [
    "ACCESS_TOKEN_KEY",
    "CredentialStore",
    "MemoryCredentialStore",
    "REFRESH_TOKEN_KEY",
    "SQLiteCredentialStore",
    "TokenCipher",
]
