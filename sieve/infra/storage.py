"""Key/value stores backing the request cache."""

from __future__ import annotations

import json
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Protocol

Clock = Callable[[], float]


@dataclass(slots=True)
class CacheRecord:
    key: str
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class KeyValueStore(Protocol):
    """Store behaviour expected by :class:`sieve.engine.cache.Cache`."""

    def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or ``None``."""

    def put(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` for ``ttl`` seconds."""

    def delete(self, key: str) -> None:
        """Drop ``key`` if present."""

    def clear(self) -> None:
        """Drop every record."""


class MemoryStore:
    """In-process dictionary with per-record expiry."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.monotonic
        self._records: Dict[str, CacheRecord] = {}

    def get(self, key: str) -> Any | None:
        record = self._records.get(key)
        if record is None:
            return None
        if record.expired(self._clock()):
            del self._records[key]
            return None
        return record.value

    def put(self, key: str, value: Any, ttl: float) -> None:
        self._records[key] = CacheRecord(key, value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class SQLiteManager:
    """Manage SQLite connections with basic schema guarantees."""

    def __init__(self) -> None:
        self._connections: Dict[Path, sqlite3.Connection] = {}
        self._lock = Lock()

    def connect(self, path: Path) -> sqlite3.Connection:
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            if path not in self._connections:
                conn = sqlite3.connect(path, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                self._connections[path] = conn
                self._ensure_schema(conn)
            return self._connections[path]

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS cache_records (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at REAL NOT NULL
            )
            """
        )
        conn.commit()

    def release(self, path: Path) -> None:
        with self._lock:
            conn = self._connections.pop(path, None)
            if conn is not None:
                conn.close()

    def reset(self, path: Path) -> None:
        self.release(path)
        if path.exists():
            path.unlink()

    def close_all(self) -> None:
        with self._lock:
            for conn in self._connections.values():
                conn.close()
            self._connections.clear()


class SQLiteStore:
    """Persistent store keeping JSON-encoded values in a SQLite file."""

    def __init__(
        self,
        path: Path,
        manager: SQLiteManager | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.path = path
        self.manager = manager or SQLiteManager()
        # Wall-clock time, since records outlive the process
        self._clock = clock or time.time
        self._conn = self.manager.connect(path)

    def get(self, key: str) -> Any | None:
        row = self._conn.execute(
            "SELECT value, expires_at FROM cache_records WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        if self._clock() >= row["expires_at"]:
            self.delete(key)
            return None
        return json.loads(row["value"])

    def put(self, key: str, value: Any, ttl: float) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO cache_records(key, value, expires_at) VALUES (?, ?, ?)",
            (key, json.dumps(value, ensure_ascii=False), self._clock() + ttl),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache_records WHERE key = ?", (key,))
        self._conn.commit()

    def clear(self) -> None:
        self._conn.execute("DELETE FROM cache_records")
        self._conn.commit()

    def purge_expired(self) -> int:
        cur = self._conn.execute(
            "DELETE FROM cache_records WHERE expires_at <= ?", (self._clock(),)
        )
        self._conn.commit()
        return cur.rowcount

    def close(self) -> None:
        self.manager.release(self.path)


__all__ = ["CacheRecord", "KeyValueStore", "MemoryStore", "SQLiteManager", "SQLiteStore"]
