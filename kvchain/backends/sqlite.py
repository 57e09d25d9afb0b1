"""SQLite storage backend with native expiration."""

import logging
import re
import sqlite3
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from kvchain.base import Store

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteBackend(Store):
    """SQLite-based store.

    Keys are text, values are anything SQLite stores natively (bytes, str,
    int, float). Entries carry an optional ``expires_at`` column, so ttls are
    honored without the expires middleware. Expired rows are removed when
    read or by :meth:`purge_expired`.
    """

    supports_expiry = True

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        table: str = "kvchain",
        clock: Callable[[], float] = time.time,
    ):
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.table = table
        self.clock = clock
        self._lock = threading.RLock()
        self.conn: sqlite3.Connection | None = sqlite3.connect(
            self.db_path, check_same_thread=False
        )
        self.initialize()

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the connection, ensuring it exists."""
        if self.conn is None:
            raise RuntimeError("Database connection not initialized")
        return self.conn

    def initialize(self) -> None:
        """Create database schema."""
        with self._lock:
            if self.db_path != ":memory:":
                self.connection.execute("PRAGMA journal_mode=WAL")
            self.connection.executescript(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    value BLOB NOT NULL,
                    expires_at REAL
                );

                CREATE INDEX IF NOT EXISTS idx_{self.table}_expires
                    ON {self.table}(expires_at);
            """)
            self.connection.commit()

    def get(self, key: Any, default: Any = None) -> Any:
        """Read a live entry."""
        with self._lock:
            row = self.connection.execute(
                f"SELECT value, expires_at FROM {self.table} WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return default
            value, expires_at = row
            if expires_at is not None and expires_at <= self.clock():
                self.delete(key)
                return default
            return value

    def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        """Write entry to database."""
        if ttl is not None and ttl < 0:
            raise ValueError(f"ttl must not be negative: {ttl}")
        expires_at = None if ttl is None else self.clock() + ttl
        with self._lock:
            self.connection.execute(
                f"""
                INSERT INTO {self.table} (key, value, expires_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    expires_at = excluded.expires_at
                """,
                (key, value, expires_at),
            )
            self.connection.commit()

    def delete(self, key: Any) -> None:
        """Delete entry from database."""
        with self._lock:
            self.connection.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
            self.connection.commit()

    def exists(self, key: Any) -> bool:
        """Check if a live entry exists."""
        with self._lock:
            cursor = self.connection.execute(
                f"SELECT 1 FROM {self.table} WHERE key = ? "
                "AND (expires_at IS NULL OR expires_at > ?) LIMIT 1",
                (key, self.clock()),
            )
            return cursor.fetchone() is not None

    def keys(self) -> list[str]:
        """Get all keys, expired rows included."""
        with self._lock:
            cursor = self.connection.execute(
                f"SELECT key FROM {self.table} ORDER BY key"
            )
            return [row[0] for row in cursor]

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self.connection.execute(f"DELETE FROM {self.table}")
            self.connection.commit()

    def purge_expired(self) -> int:
        """Delete every expired row, returning how many were removed."""
        with self._lock:
            cursor = self.connection.execute(
                f"DELETE FROM {self.table} WHERE expires_at <= ?", (self.clock(),)
            )
            self.connection.commit()
            if cursor.rowcount:
                logger.debug(f"Purged {cursor.rowcount} expired rows from {self.table}")
            return cursor.rowcount

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self.conn:
                self.connection.close()
                self.conn = None
