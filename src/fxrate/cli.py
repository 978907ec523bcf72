"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Command line interface for the exchange-rate client.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
import os
import sys
from dataclasses import replace
from typing import TextIO

import httpx

from . import __version__
from .cache.base import CacheBackendError
from .cache.registry import CacheConfigurationError, create_cache_backend, list_cache_backends
from .client import ExchangeRateClient
from .config import (
    CONFIG_KEYS,
    CliConfig,
    CliError,
    config_path,
    load_config,
    save_config,
    set_config_value,
)
from .errors import ExchangeRateError, UnsupportedCodeError
from .formatters import (
    format_conversion,
    format_currency_codes,
    format_latest_rates,
    format_pair_rate,
)
from .models import normalize_code
from .settings import ClientSettings, _env_first
from .transport import AuthMethod

logger = logging.getLogger("fxrate.cli")


def _finite_float(value: str) -> float:
    try:
        amount = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid amount: {value}") from None
    if not math.isfinite(amount):
        raise argparse.ArgumentTypeError(f"amount must be finite: {value}")
    return amount


def _positive_float(value: str) -> float:
    amount = _finite_float(value)
    if amount <= 0:
        raise argparse.ArgumentTypeError(f"value must be positive: {value}")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fxrate",
        description=(
            "Currency conversion and exchange rates from the ExchangeRate-API "
            "(https://www.exchangerate-api.com/). Requires an API key."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--api-key",
        help="API key (defaults to FXRATE_API_KEY / EXCHANGE_RATE_API_KEY, then the config file)",
    )
    parser.add_argument(
        "--auth-method",
        choices=[m.value for m in AuthMethod],
        help="'bearer' sends the key in the Authorization header, 'url' embeds it in the path",
    )
    parser.add_argument("--format", choices=("text", "json", "csv"), help="output format")
    parser.add_argument("--no-color", action="store_true", help="disable ANSI colors")
    parser.add_argument("--no-cache", action="store_true", help="disable response caching")
    parser.add_argument("--cache-backend", choices=list_cache_backends(), help="cache backend")
    parser.add_argument(
        "--cache-ttl", type=_positive_float, metavar="SECONDS", help="cache time-to-live"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="log progress to stderr (-vv for debug)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    latest = sub.add_parser("latest", help="latest exchange rates for a base currency")
    latest.add_argument("base_currency", help="3-letter base currency code, e.g. USD")

    convert = sub.add_parser("convert", help="convert an amount between two currencies")
    convert.add_argument("amount", type=_finite_float)
    convert.add_argument("from_currency")
    convert.add_argument("to_currency")

    pair = sub.add_parser("pair", help="direct conversion rate between two currencies")
    pair.add_argument("from_currency")
    pair.add_argument("to_currency")
    pair.add_argument("amount", nargs="?", type=_finite_float, default=None)

    sub.add_parser("codes", help="list supported currency codes")

    config = sub.add_parser("config", help="view, set or reset configuration")
    config_sub = config.add_subparsers(dest="config_action")
    config_sub.add_parser("view", help="show current configuration")
    config_set = config_sub.add_parser("set", help="set one configuration value")
    config_set.add_argument("key", choices=CONFIG_KEYS)
    config_set.add_argument("value")
    config_sub.add_parser("reset", help="reset configuration to defaults")

    cache = sub.add_parser("cache", help="manage the response cache")
    cache_sub = cache.add_subparsers(dest="cache_action", required=True)
    cache_clear = cache_sub.add_parser("clear", help="delete cached responses")
    cache_clear.add_argument(
        "--expired-only", action="store_true", help="only delete expired entries"
    )

    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(format="%(levelname)s %(name)s %(message)s", stream=sys.stderr)
    logging.getLogger("fxrate").setLevel(level)


def resolve_settings(args: argparse.Namespace, config: CliConfig) -> ClientSettings:
    """Merge flags, environment and config file into client settings (in that order)."""
    env = ClientSettings.from_env()
    return replace(
        env,
        api_key=args.api_key or env.api_key or config.api_key,
        auth_method=AuthMethod.parse(
            args.auth_method or _env_first("FXRATE_AUTH_METHOD") or config.auth_method
        ),
        cache_enabled=False
        if args.no_cache
        else (env.cache_enabled if _env_first("FXRATE_CACHE_ENABLED") else config.use_cache),
        cache_backend=args.cache_backend
        or _env_first("FXRATE_CACHE_BACKEND")
        or config.cache_backend,
        cache_ttl_s=args.cache_ttl
        or (env.cache_ttl_s if _env_first("FXRATE_CACHE_TTL_S") else config.cache_ttl_s),
    )


def _use_color(args: argparse.Namespace, config: CliConfig) -> bool:
    if args.no_color or os.getenv("NO_COLOR"):
        return False
    return config.use_color


def _config_command(args: argparse.Namespace, config: CliConfig, out: TextIO) -> None:
    action = args.config_action or "view"
    if action == "view":
        out.write("Current Configuration:\n")
        out.write(f"API Key: {config.masked_api_key()}\n")
        out.write(f"Auth Method: {config.auth_method}\n")
        out.write(f"Default Format: {config.default_format}\n")
        out.write(f"Use Color: {config.use_color}\n")
        out.write(f"Use Cache: {config.use_cache}\n")
        out.write(f"Cache Backend: {config.cache_backend}\n")
        out.write(f"Cache TTL (s): {config.cache_ttl_s:g}\n")
        out.write(f"\nConfig File Location:\n{config_path()}\n")
        return

    if action == "set":
        updated = set_config_value(config, args.key, args.value)
        save_config(updated)
        shown = "updated" if args.key == "api_key" else f"set to {getattr(updated, args.key)}"
        out.write(f"{args.key} {shown}\n")
        logger.info("configuration saved to %s", config_path())


def _close_backend(backend: object) -> None:
    close = getattr(backend, "close", None)
    if callable(close):
        close()


async def _cache_command(args: argparse.Namespace, settings: ClientSettings, out: TextIO) -> None:
    backend = create_cache_backend(
        settings.cache_backend,
        path=settings.cache_path,
        redis_url=settings.redis_url,
    )
    if backend is None:
        out.write("Caching is disabled; nothing to clear\n")
        return
    try:
        if args.expired_only:
            purge = getattr(backend, "purge_expired", None)
            if purge is None:
                raise CliError(f"Backend '{backend.backend_id}' expires entries on its own")
            out.write(f"Removed {purge()} expired cache entries\n")
            return
        await backend.clear()
        out.write(f"Cleared {backend.backend_id} cache\n")
    finally:
        _close_backend(backend)


async def run_command(
    args: argparse.Namespace,
    settings: ClientSettings,
    *,
    fmt: str,
    color: bool,
    out: TextIO,
    http_client: httpx.AsyncClient | None = None,
) -> None:
    """Execute one API subcommand and write its rendered output."""
    client = ExchangeRateClient.from_settings(settings, http_client=http_client)
    try:
        await _dispatch(args, client, settings, fmt=fmt, color=color, out=out)
    finally:
        await client.aclose()
        _close_backend(client.cache.backend)


async def _dispatch(
    args: argparse.Namespace,
    client: ExchangeRateClient,
    settings: ClientSettings,
    *,
    fmt: str,
    color: bool,
    out: TextIO,
) -> None:
    logger.info(
        "using %s authentication, cache %s",
        client.auth_method.value,
        settings.cache_backend if client.cache.active else "disabled",
    )

    if args.command == "latest":
        rates = await client.get_latest_rates(args.base_currency)
        out.write(format_latest_rates(rates, fmt, color=color))

    elif args.command == "convert":
        target = normalize_code(args.to_currency)
        rates = await client.get_latest_rates(args.from_currency)
        rate = rates.get_rate(target)
        if rate is None:
            raise UnsupportedCodeError(target)
        out.write(
            format_conversion(
                args.amount,
                rates.base_code,
                target,
                args.amount * rate,
                rate,
                fmt,
                color=color,
            )
        )

    elif args.command == "pair":
        pair = await client.get_pair_conversion(
            args.from_currency, args.to_currency, args.amount
        )
        out.write(format_pair_rate(pair, fmt, amount=args.amount, color=color))

    elif args.command == "codes":
        codes = await client.get_supported_codes()
        out.write(format_currency_codes(codes, fmt, color=color))


def main(
    argv: list[str] | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    color = not args.no_color
    try:
        if args.command == "config" and args.config_action == "reset":
            save_config(CliConfig())
            out.write("Configuration reset to defaults\n")
            return 0

        config = load_config()
        color = _use_color(args, config)

        if args.command == "config":
            _config_command(args, config, out)
            return 0

        settings = resolve_settings(args, config)
        if args.command == "cache":
            asyncio.run(_cache_command(args, settings, out))
            return 0

        fmt = args.format or config.default_format
        asyncio.run(
            run_command(args, settings, fmt=fmt, color=color, out=out, http_client=http_client)
        )
    except (
        ExchangeRateError,
        CliError,
        CacheBackendError,
        CacheConfigurationError,
        ValueError,
    ) as exc:
        label = "\033[1;31mError:\033[0m" if color else "Error:"
        err.write(f"{label} {exc}\n")
        return 1
    return 0


def entrypoint() -> None:
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()
