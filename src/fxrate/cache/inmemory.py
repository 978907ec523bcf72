"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/inmemory.py.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Lock

from .base import CacheBackend, CacheEntry, Clock


@dataclass(slots=True)
class InMemoryCache(CacheBackend):
    """Process-local cache backend; entries are lost on process exit."""

    backend_id: str = "inmemory"
    clock: Clock = field(default=time.time, repr=False)
    _rows: dict[str, CacheEntry] = field(default_factory=dict, init=False, repr=False)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    async def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self._rows.get(key)
            if row is None:
                return None
            if not row.is_valid(self.clock()):
                self._rows.pop(key, None)
                return None
            return row

    async def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._rows[key] = entry

    async def delete(self, key: str) -> None:
        with self._lock:
            self._rows.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._rows.clear()

    def purge_expired(self) -> int:
        """Drop every expired row and return how many were removed."""
        now = self.clock()
        with self._lock:
            stale = [key for key, row in self._rows.items() if not row.is_valid(now)]
            for key in stale:
                del self._rows[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)
