"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Async client for the exchange-rate REST API with response caching.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from collections.abc import Callable, Mapping
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from .cache.base import CacheBackend, CacheBackendError, make_cache_key
from .cache.policy import CacheConfig, ResponseCache
from .cache.registry import create_cache_backend
from .errors import (
    InvalidKeyError,
    MissingApiKeyError,
    NetworkError,
    ParseError,
    QuotaReachedError,
    UnknownError,
    UnsupportedCodeError,
    error_from_api,
)
from .models import (
    JSONObject,
    PairConversion,
    RatesResponse,
    SupportedCodes,
    normalize_code,
)
from .settings import ClientSettings
from .transport import DEFAULT_BASE_URL, AuthMethod, build_request_target

logger = logging.getLogger("fxrate.client")

ModelT = TypeVar("ModelT")


def _format_amount(amount: float) -> str:
    value = float(amount)
    if not math.isfinite(value):
        raise ValueError("amount must be a finite number")
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


class ExchangeRateClient:
    """
    Client for the ExchangeRate-API v6 endpoints.

    Every operation computes a cache key from its name and normalized
    parameters and consults the response cache before touching the network.
    Latest-rate entries expire no later than the API's next scheduled update.
    On a miss the response is fetched, parsed and stored; failed requests
    are never cached. Concurrent identical misses are not de-duplicated.

    Example:
        async with ExchangeRateClient(api_key, cache=InMemoryCache()) as client:
            rates = await client.get_latest_rates("usd")
            eur = rates.convert_from_base(100.0, "EUR")
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        auth_method: AuthMethod | str = AuthMethod.BEARER_TOKEN,
        timeout_s: float | None = 30.0,
        cache: ResponseCache | CacheBackend | None = None,
        cache_config: CacheConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise MissingApiKeyError()
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._auth_method = AuthMethod.parse(auth_method)

        if isinstance(cache, ResponseCache):
            self._cache = cache
        else:
            self._cache = ResponseCache(cache, cache_config)

        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        *,
        cache_backend: str | CacheBackend | None = None,
        http_client: httpx.AsyncClient | None = None,
        redis_client: Any | None = None,
    ) -> "ExchangeRateClient":
        """
        Build one client, and its cache backend, from explicit settings.

        `cache_backend` overrides `settings.cache_backend` with an id or instance.
        """
        if not settings.api_key:
            raise MissingApiKeyError()
        backend = None
        if settings.cache_enabled:
            backend = create_cache_backend(
                cache_backend if cache_backend is not None else settings.cache_backend,
                path=settings.cache_path,
                redis_client=redis_client,
                redis_url=settings.redis_url,
            )
        return cls(
            settings.api_key,
            base_url=settings.base_url,
            auth_method=settings.auth_method,
            timeout_s=settings.timeout_s,
            cache=ResponseCache(backend, settings.cache_config()),
            http_client=http_client,
        )

    @property
    def auth_method(self) -> AuthMethod:
        return self._auth_method

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    async def __aenter__(self) -> "ExchangeRateClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    def _redact(self, url: str) -> str:
        quoted = quote(self._api_key, safe="")
        return url.replace(quoted, "***").replace(self._api_key, "***")

    async def _request(
        self,
        endpoint: str,
        params: tuple[str, ...],
        *,
        code: str | None,
    ) -> JSONObject:
        """Issue one GET and return the decoded success body or raise its mapped error."""
        target = build_request_target(
            base_url=self._base_url,
            api_key=self._api_key,
            auth_method=self._auth_method,
            endpoint=endpoint,
            params=params,
        )
        logger.debug("GET %s", self._redact(target.url))
        try:
            response = await self._http.get(target.url, headers=target.headers)
        except httpx.HTTPError as exc:
            raise NetworkError(detail=str(exc) or type(exc).__name__) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, Mapping) and body.get("result") == "error":
            raise error_from_api(body.get("error-type"), code=code)

        status = response.status_code
        if status in (401, 403):
            raise InvalidKeyError(detail=f"HTTP {status}")
        if status == 429:
            raise QuotaReachedError(detail=f"HTTP {status}")
        if not response.is_success:
            raise NetworkError(detail=f"HTTP {status}")
        if not isinstance(body, Mapping):
            raise ParseError(detail="response body is not a JSON object")
        return dict(body)

    async def _cache_get(self, key: str) -> JSONObject | None:
        try:
            return await self._cache.get(key)
        except CacheBackendError as exc:
            raise UnknownError(detail=f"cache read failed: {exc}") from exc

    async def _cache_put(self, key: str, value: JSONObject, *, ttl_s: float | None = None) -> None:
        try:
            await self._cache.put(key, value, ttl_s=ttl_s)
        except CacheBackendError as exc:
            raise UnknownError(detail=f"cache write failed: {exc}") from exc

    async def _fetch(
        self,
        operation: str,
        params: tuple[str, ...],
        parse: Callable[[JSONObject], ModelT],
        *,
        code: str | None = None,
        ttl_for: Callable[[ModelT], float | None] | None = None,
    ) -> ModelT:
        key = make_cache_key(operation, params)
        cached = await self._cache_get(key)
        if cached is not None:
            return parse(cached)

        payload = await self._request(operation, params, code=code)
        result = parse(payload)
        ttl_s = ttl_for(result) if ttl_for is not None else None
        await self._cache_put(key, payload, ttl_s=ttl_s)
        return result

    async def get_latest_rates(self, base_code: str) -> RatesResponse:
        """
        Get the latest conversion rates for `base_code`.

        Raises:
            UnsupportedCodeError: Unknown or malformed base code.
            InvalidKeyError: The API rejected the key.
            QuotaReachedError: The account quota is exhausted.
            NetworkError, ParseError, UnknownError: Transport, payload or cache failures.
        """
        code = normalize_code(base_code)

        def _parse(payload: JSONObject) -> RatesResponse:
            rates = RatesResponse.from_payload(payload)
            if rates.base_code != code:
                raise ParseError(
                    detail=f"expected base '{code}', response carried '{rates.base_code}'"
                )
            return rates

        return await self._fetch(
            "latest",
            (code,),
            _parse,
            code=code,
            ttl_for=lambda rates: self._cache.ttl_until(rates.time_next_update_unix),
        )

    async def convert(self, amount: float, from_code: str, to_code: str) -> float:
        """Convert `amount` from one currency into another using the latest rates."""
        target = normalize_code(to_code)
        rates = await self.get_latest_rates(from_code)
        converted = rates.convert_from_base(amount, target)
        if converted is None:
            raise UnsupportedCodeError(target)
        return converted

    async def get_pair_conversion(
        self,
        from_code: str,
        to_code: str,
        amount: float | None = None,
    ) -> PairConversion:
        """Get the direct conversion rate between two currencies, optionally for an amount."""
        base = normalize_code(from_code)
        target = normalize_code(to_code)
        params: tuple[str, ...] = (base, target)
        if amount is not None:
            params = (*params, _format_amount(amount))
        return await self._fetch(
            "pair",
            params,
            PairConversion.from_payload,
            code=f"{base}/{target}",
        )

    async def get_supported_codes(self) -> SupportedCodes:
        """List every currency code the API supports."""
        return await self._fetch("codes", (), SupportedCodes.from_payload)

    async def clear_cache(self) -> None:
        """Drop every cached response held by the configured backend."""
        try:
            await self._cache.clear()
        except CacheBackendError as exc:
            raise UnknownError(detail=f"cache clear failed: {exc}") from exc

