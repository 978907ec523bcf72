"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/registry.py.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from .base import CacheBackend, Clock
from .inmemory import InMemoryCache

_ALIASES: dict[str, str] = {
    "none": "none",
    "off": "none",
    "disabled": "none",
    "inmemory": "inmemory",
    "in_memory": "inmemory",
    "in-memory": "inmemory",
    "memory": "inmemory",
    "mem": "inmemory",
    "sqlite": "sqlite",
    "file": "sqlite",
    "persistent": "sqlite",
    "persistent-file": "sqlite",
    "redis": "redis",
}


class CacheConfigurationError(ValueError):
    """Raised when cache backend resolution fails."""


def default_cache_path() -> Path:
    """Default location of the persistent cache file."""
    return Path.home() / ".cache" / "fxrate" / "cache.sqlite3"


def resolve_backend_id(name: str) -> str:
    """Normalize one backend id or alias to its canonical id."""
    key = name.strip().lower()
    resolved = _ALIASES.get(key)
    if resolved is None:
        raise CacheConfigurationError(f"Unknown cache backend '{name}'")
    return resolved


def create_cache_backend(
    backend: str | CacheBackend | None = None,
    *,
    path: str | Path | None = None,
    redis_client: Any | None = None,
    redis_url: str | None = None,
    redis_prefix: str = "fxrate:cache",
    clock: Clock = time.time,
) -> CacheBackend | None:
    """
    Resolve a cache backend instance from id/instance/default.

    Backends:
    - `none`: no caching (returns None)
    - `inmemory` (default)
    - `sqlite`: file at `path`, or `default_cache_path()`
    - `redis`: uses `redis_client`, or builds one from `redis_url`

    Every call returns a fresh instance; callers pass it to the client explicitly.
    """
    if backend is None:
        return InMemoryCache(clock=clock)

    if not isinstance(backend, str):
        return backend

    key = resolve_backend_id(backend)
    if key == "none":
        return None

    if key == "inmemory":
        return InMemoryCache(clock=clock)

    if key == "sqlite":
        from .sqlite import SQLiteCache

        return SQLiteCache(path or default_cache_path(), clock=clock)

    from .redis import RedisCache

    client = redis_client
    if client is None:
        if not redis_url:
            raise CacheConfigurationError("Redis cache backend requires a redis URL")
        try:
            import redis.asyncio as redis
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise CacheConfigurationError(
                "Redis cache backend requires `redis` to be installed."
            ) from exc
        client = redis.Redis.from_url(redis_url)
    return RedisCache(client, prefix=redis_prefix, clock=clock)


def list_cache_backends() -> list[str]:
    """List canonical cache backend ids."""
    return sorted(set(_ALIASES.values()))
