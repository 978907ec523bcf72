"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Client settings and explicit environment loading.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .cache.policy import DEFAULT_TTL_S, CacheConfig
from .transport import DEFAULT_BASE_URL, AuthMethod

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_first(*names: str, default: str | None = None) -> str | None:
    """
    Return the first non-empty environment variable in `names`.

    Args:
        *names: Environment variable names to check in order.
        default: Value returned if no non-empty variable is found.
    """
    for name in names:
        raw = os.getenv(name)
        if raw is None:
            continue
        value = raw.strip()
        if value:
            return value
    return default


def parse_bool(value: str) -> bool:
    """Parse a yes/no style flag value."""
    key = value.strip().lower()
    if key in _TRUE:
        return True
    if key in _FALSE:
        return False
    raise ValueError(f"Invalid boolean value: {value}. Use 'true' or 'false'.")


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Explicit settings used to build one exchange-rate client."""

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    auth_method: AuthMethod = AuthMethod.BEARER_TOKEN
    timeout_s: float = 30.0

    cache_backend: str = "inmemory"
    cache_enabled: bool = True
    cache_ttl_s: float = DEFAULT_TTL_S
    cache_path: str | None = None
    redis_url: str | None = None

    @staticmethod
    def from_env() -> "ClientSettings":
        """Load settings from `FXRATE_*` environment variables."""
        return ClientSettings(
            api_key=_env_first("FXRATE_API_KEY", "EXCHANGE_RATE_API_KEY"),
            base_url=_env_first("FXRATE_BASE_URL", default=DEFAULT_BASE_URL)
            or DEFAULT_BASE_URL,
            auth_method=AuthMethod.parse(
                _env_first("FXRATE_AUTH_METHOD", default="bearer") or "bearer"
            ),
            timeout_s=float(_env_first("FXRATE_TIMEOUT_S", default="30") or "30"),
            cache_backend=_env_first("FXRATE_CACHE_BACKEND", default="inmemory")
            or "inmemory",
            cache_enabled=parse_bool(
                _env_first("FXRATE_CACHE_ENABLED", default="true") or "true"
            ),
            cache_ttl_s=float(
                _env_first("FXRATE_CACHE_TTL_S", default=str(DEFAULT_TTL_S))
                or DEFAULT_TTL_S
            ),
            cache_path=_env_first("FXRATE_CACHE_PATH"),
            redis_url=_env_first("FXRATE_REDIS_URL", "REDIS_URL"),
        )

    def cache_config(self) -> CacheConfig:
        """Adapt settings into the immutable cache policy config."""
        return CacheConfig(enabled=self.cache_enabled, default_ttl_s=self.cache_ttl_s)
