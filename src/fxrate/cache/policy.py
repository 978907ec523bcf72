"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Cache configuration and the TTL policy wrapped around one backend.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from ..models import JSONObject
from .base import CacheBackend, CacheEntry, Clock

logger = logging.getLogger("fxrate.cache")

DEFAULT_TTL_S = 24 * 60 * 60.0


@dataclass(frozen=True, slots=True)
class CacheConfig:
    """Response cache controls."""

    enabled: bool = True
    default_ttl_s: float = DEFAULT_TTL_S

    def __post_init__(self) -> None:
        if not self.default_ttl_s > 0:
            raise ValueError("default_ttl_s must be positive")


class ResponseCache:
    """
    Enable/disable switch and TTL resolution around one cache backend.

    A disabled config or a missing backend turns every lookup into a miss and
    every store into a no-op, so call sites never branch on caching.
    """

    def __init__(
        self,
        backend: CacheBackend | None,
        config: CacheConfig | None = None,
        *,
        clock: Clock = time.time,
    ) -> None:
        self._backend = backend
        self._config = config or CacheConfig()
        self._clock = clock

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def backend(self) -> CacheBackend | None:
        return self._backend

    @property
    def active(self) -> bool:
        """Whether lookups can ever hit."""
        return self._config.enabled and self._backend is not None

    async def get(self, key: str) -> JSONObject | None:
        if not self.active:
            return None
        entry = await self._backend.get(key)
        if entry is None:
            logger.debug("cache miss %s", key)
            return None
        logger.debug("cache hit %s", key)
        return entry.value

    def ttl_until(self, deadline_s: float | None) -> float | None:
        """
        TTL that ends at `deadline_s` (epoch seconds), capped by the default TTL.

        Returns None, meaning the default TTL, when there is no deadline or it
        has already passed.
        """
        if not deadline_s:
            return None
        remaining = deadline_s - self._clock()
        if remaining <= 0:
            return None
        return min(self._config.default_ttl_s, remaining)

    async def put(self, key: str, value: JSONObject, *, ttl_s: float | None = None) -> None:
        """Store `value` under `key` for `ttl_s` seconds (default TTL when omitted)."""
        if not self.active:
            return
        ttl = self._config.default_ttl_s if ttl_s is None else ttl_s
        if not ttl > 0:
            raise ValueError("ttl_s must be positive")
        now = self._clock()
        await self._backend.put(
            key,
            CacheEntry(value=value, cached_at_s=now, expires_at_s=now + ttl),
        )

    async def clear(self) -> None:
        if self._backend is not None:
            await self._backend.clear()
