"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: builder.py.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any

import httpx

from .cache.base import CacheBackend
from .cache.policy import CacheConfig
from .client import ExchangeRateClient
from .settings import ClientSettings
from .transport import AuthMethod


class ExchangeRateClientBuilder:
    """Builder-first DX for creating configured exchange-rate clients."""

    def __init__(self, settings: ClientSettings | None = None) -> None:
        self._settings = settings or ClientSettings()
        self._cache_backend: str | CacheBackend | None = None
        self._cache_path: str | Path | None = None
        self._redis_client: Any | None = None
        self._http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_env(cls) -> "ExchangeRateClientBuilder":
        """Start from `ClientSettings.from_env()`."""
        return cls(ClientSettings.from_env())

    def settings(self, settings: ClientSettings) -> "ExchangeRateClientBuilder":
        """Replace builder settings with an explicit `ClientSettings` instance."""
        self._settings = settings
        return self

    def api_key(self, api_key: str) -> "ExchangeRateClientBuilder":
        self._settings = replace(self._settings, api_key=api_key)
        return self

    def auth_method(self, auth_method: AuthMethod | str) -> "ExchangeRateClientBuilder":
        self._settings = replace(self._settings, auth_method=AuthMethod.parse(auth_method))
        return self

    def base_url(self, base_url: str) -> "ExchangeRateClientBuilder":
        """Override the API root (useful for tests or a relocated API)."""
        self._settings = replace(self._settings, base_url=base_url)
        return self

    def timeout(self, timeout_s: float) -> "ExchangeRateClientBuilder":
        self._settings = replace(self._settings, timeout_s=timeout_s)
        return self

    def with_cache(
        self,
        cache_backend: str | CacheBackend,
        *,
        path: str | Path | None = None,
        redis_client: Any | None = None,
    ) -> "ExchangeRateClientBuilder":
        """Select one cache backend instance or backend id."""
        self._cache_backend = cache_backend
        self._cache_path = path
        self._redis_client = redis_client
        self._settings = replace(self._settings, cache_enabled=True)
        return self

    def cache_config(self, config: CacheConfig) -> "ExchangeRateClientBuilder":
        self._settings = replace(
            self._settings,
            cache_enabled=config.enabled,
            cache_ttl_s=config.default_ttl_s,
        )
        return self

    def disable_cache(self) -> "ExchangeRateClientBuilder":
        self._settings = replace(self._settings, cache_enabled=False)
        return self

    def with_http_client(self, http_client: httpx.AsyncClient) -> "ExchangeRateClientBuilder":
        """Inject a pre-configured `httpx.AsyncClient` (not closed by the client)."""
        self._http_client = http_client
        return self

    def build(self) -> ExchangeRateClient:
        """Materialize one configured `ExchangeRateClient` instance."""
        settings = self._settings
        if self._cache_path is not None:
            settings = replace(settings, cache_path=str(self._cache_path))
        return ExchangeRateClient.from_settings(
            settings,
            cache_backend=self._cache_backend,
            http_client=self._http_client,
            redis_client=self._redis_client,
        )
