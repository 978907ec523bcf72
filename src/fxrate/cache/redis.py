"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/redis.py.
"""

from __future__ import annotations

import json
import math
import time

from .base import CacheBackend, CacheBackendError, CacheEntry, Clock


class RedisCache(CacheBackend):
    """Redis-backed cache backend for multi-process deployments."""

    backend_id = "redis"

    def __init__(
        self,
        redis_client,
        *,
        prefix: str = "fxrate:cache",
        clock: Clock = time.time,
    ) -> None:
        self._redis = redis_client
        self._prefix = prefix
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> CacheEntry | None:
        try:
            blob = await self._redis.get(self._key(key))
        except Exception as exc:  # noqa: BLE001
            raise CacheBackendError(f"Redis cache read failed: {exc}") from exc
        if blob is None:
            return None
        try:
            row = json.loads(blob)
            entry = CacheEntry(
                value=row["value"],
                cached_at_s=float(row["cached_at_s"]),
                expires_at_s=float(row["expires_at_s"]),
            )
        except (TypeError, ValueError, KeyError):
            return None
        if not isinstance(entry.value, dict) or not entry.is_valid(self._clock()):
            return None
        return entry

    async def put(self, key: str, entry: CacheEntry) -> None:
        payload = {
            "value": entry.value,
            "cached_at_s": entry.cached_at_s,
            "expires_at_s": entry.expires_at_s,
        }
        ttl_ms = max(1, math.ceil((entry.expires_at_s - entry.cached_at_s) * 1000))
        try:
            await self._redis.set(
                self._key(key),
                json.dumps(payload, ensure_ascii=True),
                px=ttl_ms,
            )
        except Exception as exc:  # noqa: BLE001
            raise CacheBackendError(f"Redis cache write failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._key(key))
        except Exception as exc:  # noqa: BLE001
            raise CacheBackendError(f"Redis cache delete failed: {exc}") from exc

    async def clear(self) -> None:
        try:
            keys = [key async for key in self._redis.scan_iter(match=f"{self._prefix}:*")]
            if keys:
                await self._redis.delete(*keys)
        except Exception as exc:  # noqa: BLE001
            raise CacheBackendError(f"Redis cache clear failed: {exc}") from exc
