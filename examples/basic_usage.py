"""
basic_usage.py — Minimal fxrate example.

Fetches the latest USD rates, converts an amount and lists a few codes.

Usage:
    export FXRATE_API_KEY=...
    python examples/basic_usage.py
"""

from fxrate import ExchangeRateClientBuilder


async def main() -> None:
    async with ExchangeRateClientBuilder.from_env().build() as client:
        rates = await client.get_latest_rates("USD")
        print(f"Base: {rates.base_code} (updated {rates.time_last_update_utc})")
        print(f"USD -> EUR: {rates.get_rate('EUR')}")

        amount = await client.convert(100, "USD", "JPY")
        print(f"100 USD = {amount:.2f} JPY")

        pair = await client.get_pair_conversion("EUR", "GBP", 25)
        print(f"25 EUR = {pair.conversion_result} GBP")

        codes = await client.get_supported_codes()
        for row in list(codes)[:5]:
            print(f"{row.code}: {row.name}")
        print(f"... {len(codes)} currencies in total")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
