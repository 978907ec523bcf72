from __future__ import annotations

import asyncio
import logging
from urllib.parse import quote

import httpx
import pytest

from fxrate import (
    AuthMethod,
    ClientSettings,
    ExchangeRateClient,
    ExchangeRateClientBuilder,
    InMemoryCache,
    SQLiteCache,
)
from fxrate.cache import CacheBackendError, CacheConfig, CacheEntry, ResponseCache
from fxrate.errors import (
    InactiveAccountError,
    InvalidKeyError,
    MissingApiKeyError,
    NetworkError,
    ParseError,
    QuotaReachedError,
    UnknownError,
    UnsupportedCodeError,
)

API_KEY = "test-key-123456"
BASE = "https://api.test/v6"

LATEST_USD = {
    "result": "success",
    "base_code": "USD",
    "time_last_update_unix": 1_700_000_000,
    "time_last_update_utc": "Tue, 14 Nov 2023 22:13:20 +0000",
    "time_next_update_unix": 1_700_086_400,
    "time_next_update_utc": "Wed, 15 Nov 2023 22:13:20 +0000",
    "conversion_rates": {"EUR": 0.9, "JPY": 140.0},
}

PAIR_EUR_GBP = {
    "result": "success",
    "base_code": "EUR",
    "target_code": "GBP",
    "conversion_rate": 0.85,
    "time_last_update_unix": 1_700_000_000,
}

CODES = {
    "result": "success",
    "supported_codes": [["USD", "United States Dollar"], ["EUR", "Euro"]],
}


def run_async(coro):
    return asyncio.run(coro)


class _Clock:
    def __init__(self, now: float = 10_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class _Api:
    """Route table standing in for the remote service."""

    def __init__(self, routes: dict[str, httpx.Response | Exception] | None = None) -> None:
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for suffix, response in self.routes.items():
            if path.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return httpx.Response(
                    response.status_code,
                    headers=response.headers,
                    content=response.content,
                )
        return httpx.Response(404, text="not found")

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class _BrokenBackend:
    backend_id = "broken"

    async def get(self, key):
        raise CacheBackendError("disk on fire")

    async def put(self, key, entry):
        raise CacheBackendError("disk on fire")

    async def delete(self, key):
        return None

    async def clear(self):
        raise CacheBackendError("disk on fire")


def _client(api: _Api, **kwargs) -> ExchangeRateClient:
    kwargs.setdefault("cache", InMemoryCache())
    return ExchangeRateClient(API_KEY, base_url=BASE, http_client=api.http_client(), **kwargs)


def test_missing_api_key_is_rejected():
    with pytest.raises(MissingApiKeyError):
        ExchangeRateClient(None)
    with pytest.raises(MissingApiKeyError):
        ExchangeRateClient("")


def test_bearer_auth_sends_key_in_header_only():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with _client(api, auth_method="bearer") as client:
            rates = await client.get_latest_rates("usd")
        assert rates.base_code == "USD"

    run_async(scenario())
    request = api.requests[0]
    assert str(request.url) == f"{BASE}/latest/USD"
    assert request.headers["Authorization"] == f"Bearer {API_KEY}"
    assert API_KEY not in str(request.url)


def test_in_url_auth_embeds_key_in_path():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with _client(api, auth_method=AuthMethod.IN_URL) as client:
            await client.get_latest_rates("USD")

    run_async(scenario())
    request = api.requests[0]
    assert str(request.url) == f"{BASE}/{API_KEY}/latest/USD"
    assert "Authorization" not in request.headers


def test_repeated_calls_hit_cache_once():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with _client(api) as client:
            first = await client.get_latest_rates("USD")
            second = await client.get_latest_rates("usd")
            assert first == second

    run_async(scenario())
    assert len(api.requests) == 1


def test_cache_ttl_window_controls_refetch():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})
    clock = _Clock()

    async def scenario() -> None:
        cache = ResponseCache(
            InMemoryCache(clock=clock), CacheConfig(default_ttl_s=3600), clock=clock
        )
        async with _client(api, cache=cache) as client:
            first = await client.get_latest_rates("USD")
            clock.advance(10 * 60)
            second = await client.get_latest_rates("USD")
            assert second == first
            assert len(api.requests) == 1

            clock.advance(110 * 60)
            await client.get_latest_rates("USD")
            assert len(api.requests) == 2

    run_async(scenario())


def test_disabled_cache_always_fetches():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        backend = InMemoryCache()
        async with _client(api, cache=backend, cache_config=CacheConfig(enabled=False)) as client:
            await client.get_latest_rates("USD")
            await client.get_latest_rates("USD")
        assert len(backend) == 0

    run_async(scenario())
    assert len(api.requests) == 2


def test_no_cache_backend_always_fetches():
    api = _Api({"/codes": httpx.Response(200, json=CODES)})

    async def scenario() -> None:
        async with ExchangeRateClient(
            API_KEY, base_url=BASE, cache=None, http_client=api.http_client()
        ) as client:
            await client.get_supported_codes()
            await client.get_supported_codes()

    run_async(scenario())
    assert len(api.requests) == 2


def test_convert_uses_latest_rates():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with _client(api) as client:
            converted = await client.convert(100, "USD", "EUR")
            rates = await client.get_latest_rates("USD")
            assert converted == rates.convert_from_base(100, "EUR")
            assert converted == pytest.approx(90.0)
            with pytest.raises(UnsupportedCodeError) as exc_info:
                await client.convert(100, "USD", "GBP")
            assert exc_info.value.code == "GBP"

    run_async(scenario())
    assert len(api.requests) == 1


def test_malformed_code_fails_before_any_request():
    api = _Api()

    async def scenario() -> None:
        async with _client(api) as client:
            with pytest.raises(UnsupportedCodeError):
                await client.get_latest_rates("US")
            with pytest.raises(UnsupportedCodeError):
                await client.get_pair_conversion("EUR", "GB1")

    run_async(scenario())
    assert api.requests == []


def test_pair_conversion_with_and_without_amount():
    with_amount = dict(PAIR_EUR_GBP, conversion_result=8.5)
    api = _Api(
        {
            "/pair/EUR/GBP/10": httpx.Response(200, json=with_amount),
            "/pair/EUR/GBP": httpx.Response(200, json=PAIR_EUR_GBP),
        }
    )

    async def scenario() -> None:
        async with _client(api) as client:
            bare = await client.get_pair_conversion("eur", "gbp")
            assert bare.conversion_rate == pytest.approx(0.85)
            assert bare.conversion_result is None

            priced = await client.get_pair_conversion("EUR", "GBP", 10)
            assert priced.conversion_result == pytest.approx(8.5)

            await client.get_pair_conversion("EUR", "GBP", 10.0)

    run_async(scenario())
    assert [r.url.path for r in api.requests] == ["/v6/pair/EUR/GBP", "/v6/pair/EUR/GBP/10"]


def test_supported_codes_are_parsed_and_cached():
    api = _Api({"/codes": httpx.Response(200, json=CODES)})

    async def scenario() -> None:
        async with _client(api) as client:
            codes = await client.get_supported_codes()
            assert codes.name_for("EUR") == "Euro"
            assert len(await client.get_supported_codes()) == 2

    run_async(scenario())
    assert len(api.requests) == 1


@pytest.mark.parametrize(
    ("error_type", "expected"),
    [
        ("invalid-key", InvalidKeyError),
        ("inactive-account", InactiveAccountError),
        ("quota-reached", QuotaReachedError),
        ("unsupported-code", UnsupportedCodeError),
        ("malformed-request", UnknownError),
        ("brand-new-error", UnknownError),
    ],
)
def test_api_error_bodies_map_to_typed_errors(error_type, expected):
    body = {"result": "error", "error-type": error_type}
    api = _Api({"/latest/USD": httpx.Response(400, json=body)})

    async def scenario() -> None:
        async with _client(api) as client:
            with pytest.raises(expected):
                await client.get_latest_rates("USD")

    run_async(scenario())


@pytest.mark.parametrize(
    ("response", "expected"),
    [
        (httpx.Response(401, text="denied"), InvalidKeyError),
        (httpx.Response(403, text="denied"), InvalidKeyError),
        (httpx.Response(429, text="slow down"), QuotaReachedError),
        (httpx.Response(502, text="bad gateway"), NetworkError),
        (httpx.Response(200, text="<html>"), ParseError),
        (httpx.Response(200, json=[1, 2]), ParseError),
        (httpx.Response(200, json={"result": "success"}), ParseError),
    ],
)
def test_non_api_failures_map_by_status(response, expected):
    api = _Api({"/latest/USD": response})

    async def scenario() -> None:
        async with _client(api) as client:
            with pytest.raises(expected):
                await client.get_latest_rates("USD")

    run_async(scenario())


def test_transport_failure_raises_network_error():
    api = _Api({"/latest/USD": httpx.ConnectError("connection refused")})

    async def scenario() -> None:
        async with _client(api) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.get_latest_rates("USD")
            assert "connection refused" in str(exc_info.value)

    run_async(scenario())


def test_base_code_mismatch_is_a_parse_error():
    api = _Api({"/latest/USD": httpx.Response(200, json=dict(LATEST_USD, base_code="EUR"))})

    async def scenario() -> None:
        async with _client(api) as client:
            with pytest.raises(ParseError):
                await client.get_latest_rates("USD")

    run_async(scenario())


def test_failed_responses_are_not_cached():
    quota = {"result": "error", "error-type": "quota-reached"}
    api = _Api({"/latest/USD": httpx.Response(200, json=quota)})

    async def scenario() -> None:
        backend = InMemoryCache()
        async with _client(api, cache=backend) as client:
            with pytest.raises(QuotaReachedError):
                await client.get_latest_rates("USD")
            assert len(backend) == 0

            api.routes["/latest/USD"] = httpx.Response(200, json=LATEST_USD)
            rates = await client.get_latest_rates("USD")
            assert rates.get_rate("EUR") == 0.9

    run_async(scenario())
    assert len(api.requests) == 2


def test_cache_failures_surface_as_unknown_error():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with _client(api, cache=_BrokenBackend()) as client:
            with pytest.raises(UnknownError) as exc_info:
                await client.get_latest_rates("USD")
            assert "disk on fire" in str(exc_info.value)
            with pytest.raises(UnknownError):
                await client.clear_cache()

    run_async(scenario())


def test_corrupt_cached_payload_raises_parse_error():
    api = _Api()

    async def scenario() -> None:
        backend = InMemoryCache()
        await backend.put(
            'latest:["USD"]',
            CacheEntry(value={"base_code": "USD"}, cached_at_s=0.0, expires_at_s=1e12),
        )
        async with _client(api, cache=backend) as client:
            with pytest.raises(ParseError):
                await client.get_latest_rates("USD")

    run_async(scenario())
    assert api.requests == []


def test_clear_cache_forces_refetch():
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with _client(api) as client:
            await client.get_latest_rates("USD")
            await client.clear_cache()
            await client.get_latest_rates("USD")

    run_async(scenario())
    assert len(api.requests) == 2


def test_sqlite_cache_is_shared_across_client_instances(tmp_path):
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})
    path = tmp_path / "cache.sqlite3"

    async def scenario() -> None:
        first = SQLiteCache(path)
        async with _client(api, cache=first) as client:
            await client.get_latest_rates("USD")
        first.close()

        second = SQLiteCache(path)
        async with _client(api, cache=second) as client:
            rates = await client.get_latest_rates("USD")
            assert rates.get_rate("JPY") == 140.0
        second.close()

    run_async(scenario())
    assert len(api.requests) == 1


def test_from_settings_and_builder_configure_client(tmp_path, monkeypatch):
    monkeypatch.setenv("FXRATE_API_KEY", "env-key")
    monkeypatch.setenv("FXRATE_AUTH_METHOD", "url")
    monkeypatch.setenv("FXRATE_CACHE_TTL_S", "120")
    settings = ClientSettings.from_env()
    assert settings.api_key == "env-key"
    assert settings.auth_method is AuthMethod.IN_URL
    assert settings.cache_config().default_ttl_s == 120.0

    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        client = ExchangeRateClient.from_settings(settings, http_client=api.http_client())
        assert isinstance(client.cache.backend, InMemoryCache)
        await client.get_latest_rates("USD")
        await client.aclose()

        built = (
            ExchangeRateClientBuilder.from_env()
            .auth_method("bearer")
            .base_url(BASE)
            .with_cache("sqlite", path=tmp_path / "b.sqlite3")
            .with_http_client(api.http_client())
            .build()
        )
        assert built.auth_method is AuthMethod.BEARER_TOKEN
        assert isinstance(built.cache.backend, SQLiteCache)
        await built.get_latest_rates("USD")
        built.cache.backend.close()

        uncached = ExchangeRateClientBuilder().api_key("k").disable_cache().build()
        assert not uncached.cache.active
        await uncached.aclose()

    run_async(scenario())
    assert str(api.requests[0].url).endswith("/env-key/latest/USD")
    assert api.requests[1].headers["Authorization"] == "Bearer env-key"


def test_env_api_key_fallback(monkeypatch):
    monkeypatch.delenv("FXRATE_API_KEY", raising=False)
    monkeypatch.setenv("EXCHANGE_RATE_API_KEY", "legacy-key")
    assert ClientSettings.from_env().api_key == "legacy-key"


def test_bearer_and_in_url_auth_parse_identically():
    pair = dict(PAIR_EUR_GBP, conversion_result=8.5)
    api = _Api(
        {
            "/latest/USD": httpx.Response(200, json=LATEST_USD),
            "/pair/EUR/GBP/10": httpx.Response(200, json=pair),
            "/codes": httpx.Response(200, json=CODES),
        }
    )

    async def fetch_all(auth_method):
        async with _client(api, auth_method=auth_method) as client:
            return (
                await client.get_latest_rates("USD"),
                await client.get_pair_conversion("EUR", "GBP", 10),
                await client.get_supported_codes(),
            )

    async def scenario() -> None:
        by_header = await fetch_all(AuthMethod.BEARER_TOKEN)
        by_path = await fetch_all(AuthMethod.IN_URL)
        assert by_header == by_path

    run_async(scenario())
    assert len(api.requests) == 6


def test_pair_amount_is_sent_without_rounding():
    def _pair_response(amount):
        return httpx.Response(200, json=dict(PAIR_EUR_GBP, conversion_result=amount * 0.85))

    api = _Api(
        {
            "/pair/EUR/GBP/0.00001": _pair_response(0.00001),
            "/pair/EUR/GBP/1.23456": _pair_response(1.23456),
            "/pair/EUR/GBP/1.23459": _pair_response(1.23459),
        }
    )

    async def scenario() -> None:
        backend = InMemoryCache()
        async with _client(api, cache=backend) as client:
            tiny = await client.get_pair_conversion("EUR", "GBP", 0.00001)
            first = await client.get_pair_conversion("EUR", "GBP", 1.23456)
            second = await client.get_pair_conversion("EUR", "GBP", 1.23459)

        assert tiny.conversion_result == pytest.approx(0.0000085)
        assert first.conversion_result != second.conversion_result
        assert await backend.get('pair:["EUR","GBP","0.00001"]') is not None
        assert await backend.get('pair:["EUR","GBP","1.23456"]') is not None
        assert await backend.get('pair:["EUR","GBP","1.23459"]') is not None

    run_async(scenario())
    assert [r.url.path for r in api.requests] == [
        "/v6/pair/EUR/GBP/0.00001",
        "/v6/pair/EUR/GBP/1.23456",
        "/v6/pair/EUR/GBP/1.23459",
    ]


def test_latest_rates_expire_at_next_api_update():
    clock = _Clock(now=LATEST_USD["time_next_update_unix"] - 600)
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        backend = InMemoryCache(clock=clock)
        cache = ResponseCache(backend, CacheConfig(default_ttl_s=3600), clock=clock)
        async with _client(api, cache=cache) as client:
            await client.get_latest_rates("USD")
            entry = await backend.get('latest:["USD"]')
            assert entry.expires_at_s == LATEST_USD["time_next_update_unix"]

            clock.advance(599)
            await client.get_latest_rates("USD")
            assert len(api.requests) == 1

            clock.advance(2)
            await client.get_latest_rates("USD")
            assert len(api.requests) == 2

    run_async(scenario())


def test_debug_log_redacts_url_encoded_api_key(caplog):
    key = "k3y/with+special=chars"
    api = _Api({"/latest/USD": httpx.Response(200, json=LATEST_USD)})

    async def scenario() -> None:
        async with ExchangeRateClient(
            key,
            base_url=BASE,
            auth_method=AuthMethod.IN_URL,
            cache=None,
            http_client=api.http_client(),
        ) as client:
            await client.get_latest_rates("USD")

    with caplog.at_level(logging.DEBUG, logger="fxrate.client"):
        run_async(scenario())

    messages = [r.getMessage() for r in caplog.records if r.name == "fxrate.client"]
    assert any(m.endswith("/***/latest/USD") for m in messages)
    for message in messages:
        assert key not in message
        assert quote(key, safe="") not in message
