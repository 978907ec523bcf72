"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/base.py.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ..models import JSONObject

Clock = Callable[[], float]


class CacheBackendError(RuntimeError):
    """Raised when a cache backend cannot read or write its storage."""


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One cached response payload with expiration metadata."""

    value: JSONObject
    cached_at_s: float
    expires_at_s: float

    def is_valid(self, now_s: float) -> bool:
        return now_s < self.expires_at_s


class CacheBackend(Protocol):
    """Protocol implemented by cache backends used by the API client."""

    backend_id: str

    async def get(self, key: str) -> CacheEntry | None: ...

    async def put(self, key: str, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...


def make_cache_key(operation: str, params: list[str] | tuple[str, ...] = ()) -> str:
    """Build deterministic cache key for one operation + ordered parameters."""
    encoded = json.dumps(list(params), ensure_ascii=True, separators=(",", ":"))
    return f"{operation}:{encoded}"


def encode_value(value: JSONObject) -> bytes:
    return json.dumps(value, ensure_ascii=True, separators=(",", ":")).encode("utf-8")


def decode_value(blob: bytes | str) -> JSONObject | None:
    """Decode one stored payload, returning None for undecodable rows."""
    try:
        row = json.loads(blob)
    except (TypeError, ValueError, UnicodeDecodeError):
        return None
    return row if isinstance(row, dict) else None
