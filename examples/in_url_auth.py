"""
in_url_auth.py — Sending the API key in the request path.

Bearer-header auth is the default; `AuthMethod.IN_URL` places the key in
the URL instead, for proxies that strip Authorization headers.

Usage:
    export FXRATE_API_KEY=...
    python examples/in_url_auth.py
"""

import os

from fxrate import AuthMethod, ExchangeRateClient


async def main() -> None:
    async with ExchangeRateClient(
        os.environ["FXRATE_API_KEY"],
        auth_method=AuthMethod.IN_URL,
    ) as client:
        rates = await client.get_latest_rates("GBP")
        print(f"GBP -> USD: {rates.get_rate('USD')}")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
