"""
caching.py — Response caching with fxrate.

Repeated calls with the same parameters are served from the cache; a
different base currency or operation uses its own cache key. Swap the
backend for `"sqlite"` to keep entries across runs.

Usage:
    export FXRATE_API_KEY=...
    python examples/caching.py
"""

import time

from fxrate import CacheConfig, ExchangeRateClientBuilder, InMemoryCache


async def timed(label: str, call) -> object:
    start = time.perf_counter()
    result = await call
    print(f"{label}: {(time.perf_counter() - start) * 1000:.1f} ms")
    return result


async def main() -> None:
    client = (
        ExchangeRateClientBuilder.from_env()
        .with_cache(InMemoryCache())
        .cache_config(CacheConfig(default_ttl_s=3600))
        .build()
    )
    async with client:
        await timed("latest USD (network)", client.get_latest_rates("USD"))
        await timed("latest USD (cached)", client.get_latest_rates("USD"))
        await timed("latest EUR (network)", client.get_latest_rates("EUR"))
        await timed("pair USD/EUR (network)", client.get_pair_conversion("USD", "EUR"))
        pair = await timed("pair USD/EUR (cached)", client.get_pair_conversion("USD", "EUR"))
        print(f"USD -> EUR direct rate: {pair.conversion_rate}")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
