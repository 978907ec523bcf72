"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: __init__.py.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .builder import ExchangeRateClientBuilder
from .cache import (
    CacheBackend,
    CacheConfig,
    InMemoryCache,
    RedisCache,
    ResponseCache,
    SQLiteCache,
    create_cache_backend,
)
from .client import ExchangeRateClient
from .errors import (
    ExchangeRateError,
    InactiveAccountError,
    InvalidKeyError,
    MalformedRequestError,
    MissingApiKeyError,
    NetworkError,
    ParseError,
    QuotaReachedError,
    UnknownError,
    UnsupportedCodeError,
)
from .models import CurrencyInfo, PairConversion, RatesResponse, SupportedCodes
from .settings import ClientSettings
from .transport import AuthMethod

__all__ = [
    "__version__",
    "ExchangeRateClient",
    "ExchangeRateClientBuilder",
    "ClientSettings",
    "AuthMethod",
    "CacheBackend",
    "CacheConfig",
    "ResponseCache",
    "InMemoryCache",
    "SQLiteCache",
    "RedisCache",
    "create_cache_backend",
    "RatesResponse",
    "PairConversion",
    "SupportedCodes",
    "CurrencyInfo",
    "ExchangeRateError",
    "MissingApiKeyError",
    "InvalidKeyError",
    "InactiveAccountError",
    "QuotaReachedError",
    "UnsupportedCodeError",
    "NetworkError",
    "ParseError",
    "UnknownError",
    "MalformedRequestError",
]
