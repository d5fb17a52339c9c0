"""SQLite-backed credential cache."""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional

from ..errors import CredentialNotFound, StoreError
from .base import Clock, CredentialCache, validate_entry

LOGGER = logging.getLogger(__name__)


class SQLiteCredentialCache(CredentialCache):
    """Durable cache keeping one row per key with an absolute expiry timestamp."""

    def __init__(self, db_path: Path, clock: Optional[Clock] = None) -> None:
        self.db_path = db_path
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self.conn: Optional[sqlite3.Connection] = None
        self.init_db()

    def init_db(self) -> None:
        """Open the database and create the schema."""
        if self.db_path.parent != Path("."):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.conn = sqlite3.connect(
                str(self.db_path),
                timeout=5,
                check_same_thread=False,
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA busy_timeout=5000")
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS credentials (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    expires_at REAL NOT NULL
                )
                """
            )
            self.conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to open credential store {self.db_path}: {exc}") from exc

    def get(self, key: str) -> bytes:
        with self._lock:
            try:
                row = self._connection().execute(
                    "SELECT value, expires_at FROM credentials WHERE key = ?",
                    (key,),
                ).fetchone()
                if row is None:
                    raise CredentialNotFound(key)
                value, expires_at = row
                if self._clock() >= expires_at:
                    self._connection().execute("DELETE FROM credentials WHERE key = ?", (key,))
                    self._connection().commit()
                    raise CredentialNotFound(key)
            except sqlite3.Error as exc:
                raise StoreError(f"failed to read credential for {key}: {exc}") from exc
        return bytes(value)

    def set(self, key: str, value: bytes, ttl: float) -> None:
        validate_entry(key, value)
        expires_at = self._clock() + ttl
        with self._lock:
            try:
                self._connection().execute(
                    """
                    INSERT INTO credentials (key, value, expires_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        expires_at = excluded.expires_at
                    """,
                    (key, sqlite3.Binary(value), expires_at),
                )
                self._connection().commit()
            except sqlite3.Error as exc:
                raise StoreError(f"failed to write credential for {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        with self._lock:
            try:
                self._connection().execute("DELETE FROM credentials WHERE key = ?", (key,))
                self._connection().commit()
            except sqlite3.Error as exc:
                raise StoreError(f"failed to delete credential for {key}: {exc}") from exc

    def purge_expired(self) -> int:
        """Delete every expired row and return how many were removed."""
        with self._lock:
            try:
                cursor = self._connection().execute(
                    "DELETE FROM credentials WHERE expires_at <= ?",
                    (self._clock(),),
                )
                self._connection().commit()
            except sqlite3.Error as exc:
                raise StoreError(f"failed to purge credentials: {exc}") from exc
        if cursor.rowcount:
            LOGGER.debug("Purged %s expired credentials", cursor.rowcount)
        return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            if self.conn:
                self.conn.close()
            self.conn = None

    def _connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StoreError("credential store is closed")
        return self.conn
