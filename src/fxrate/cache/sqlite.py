"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

SQLite-backed response cache that survives process restarts.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path
from threading import Lock

from .base import (
    CacheBackend,
    CacheBackendError,
    CacheEntry,
    Clock,
    decode_value,
    encode_value,
)

logger = logging.getLogger("fxrate.cache.sqlite")

SCHEMA_VERSION = "1"

_CREATE_META = """
CREATE TABLE IF NOT EXISTS cache_meta (
    name TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

_CREATE_ROWS = """
CREATE TABLE IF NOT EXISTS response_cache (
    cache_key TEXT PRIMARY KEY,
    value BLOB NOT NULL,
    cached_at INTEGER NOT NULL,
    expires_at INTEGER NOT NULL
)
"""

_UPSERT = """
INSERT INTO response_cache (cache_key, value, cached_at, expires_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(cache_key) DO UPDATE SET
    value = excluded.value,
    cached_at = excluded.cached_at,
    expires_at = excluded.expires_at
"""


def _to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


class SQLiteCache(CacheBackend):
    """
    Durable cache backend storing one row per cache key.

    Timestamps are stored as integer epoch milliseconds. The file carries a
    ``schema_version`` marker; opening a file written with another version
    drops the cached rows instead of misreading them.
    """

    backend_id = "sqlite"

    def __init__(self, path: str | Path, *, clock: Clock = time.time) -> None:
        self._path = Path(path)
        self._clock = clock
        self._lock = Lock()
        try:
            if str(path) != ":memory:":
                self._path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
            self._init_schema()
        except (OSError, sqlite3.Error) as exc:
            raise CacheBackendError(
                f"Failed to open SQLite cache at '{self._path}': {exc}"
            ) from exc

    @property
    def path(self) -> Path:
        return self._path

    def _init_schema(self) -> None:
        with self._conn:
            self._conn.execute(_CREATE_META)
            row = self._conn.execute(
                "SELECT value FROM cache_meta WHERE name = 'schema_version'"
            ).fetchone()
            if row is not None and row[0] != SCHEMA_VERSION:
                logger.warning(
                    "cache schema version %s does not match %s; resetting %s",
                    row[0],
                    SCHEMA_VERSION,
                    self._path,
                )
                self._conn.execute("DROP TABLE IF EXISTS response_cache")
            self._conn.execute(_CREATE_ROWS)
            self._conn.execute(
                "INSERT OR REPLACE INTO cache_meta (name, value) VALUES ('schema_version', ?)",
                (SCHEMA_VERSION,),
            )

    def schema_version(self) -> str | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM cache_meta WHERE name = 'schema_version'"
            ).fetchone()
        return row[0] if row is not None else None

    async def get(self, key: str) -> CacheEntry | None:
        now_ms = _to_ms(self._clock())
        with self._lock:
            try:
                row = self._conn.execute(
                    "SELECT value, cached_at, expires_at FROM response_cache WHERE cache_key = ?",
                    (key,),
                ).fetchone()
                if row is None:
                    return None
                blob, cached_at, expires_at = row
                if now_ms >= expires_at:
                    with self._conn:
                        self._conn.execute(
                            "DELETE FROM response_cache WHERE cache_key = ?", (key,)
                        )
                    return None
                value = decode_value(blob)
                if value is None:
                    logger.warning("dropping undecodable cache row %s", key)
                    with self._conn:
                        self._conn.execute(
                            "DELETE FROM response_cache WHERE cache_key = ?", (key,)
                        )
                    return None
            except sqlite3.Error as exc:
                raise CacheBackendError(f"SQLite cache read failed: {exc}") from exc

        return CacheEntry(
            value=value,
            cached_at_s=cached_at / 1000,
            expires_at_s=expires_at / 1000,
        )

    async def put(self, key: str, entry: CacheEntry) -> None:
        params = (
            key,
            encode_value(entry.value),
            _to_ms(entry.cached_at_s),
            _to_ms(entry.expires_at_s),
        )
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(_UPSERT, params)
            except sqlite3.Error as exc:
                raise CacheBackendError(f"SQLite cache write failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM response_cache WHERE cache_key = ?", (key,))
            except sqlite3.Error as exc:
                raise CacheBackendError(f"SQLite cache delete failed: {exc}") from exc

    async def clear(self) -> None:
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute("DELETE FROM response_cache")
            except sqlite3.Error as exc:
                raise CacheBackendError(f"SQLite cache clear failed: {exc}") from exc

    def purge_expired(self) -> int:
        """Delete every expired row and return how many were removed."""
        now_ms = _to_ms(self._clock())
        with self._lock:
            try:
                with self._conn:
                    cursor = self._conn.execute(
                        "DELETE FROM response_cache WHERE expires_at <= ?", (now_ms,)
                    )
            except sqlite3.Error as exc:
                raise CacheBackendError(f"SQLite cache purge failed: {exc}") from exc
        return cursor.rowcount

    def close(self) -> None:
        with self._lock:
            self._conn.close()
