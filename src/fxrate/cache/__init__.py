"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: cache/__init__.py.
"""

from .base import (
    CacheBackend,
    CacheBackendError,
    CacheEntry,
    make_cache_key,
)
from .inmemory import InMemoryCache
from .policy import DEFAULT_TTL_S, CacheConfig, ResponseCache
from .redis import RedisCache
from .registry import (
    CacheConfigurationError,
    create_cache_backend,
    default_cache_path,
    list_cache_backends,
    resolve_backend_id,
)
from .sqlite import SQLiteCache

__all__ = [
    "CacheBackend",
    "CacheBackendError",
    "CacheEntry",
    "make_cache_key",
    "InMemoryCache",
    "SQLiteCache",
    "RedisCache",
    "CacheConfig",
    "ResponseCache",
    "DEFAULT_TTL_S",
    "CacheConfigurationError",
    "create_cache_backend",
    "default_cache_path",
    "list_cache_backends",
    "resolve_backend_id",
]
