"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Text, JSON and CSV renderers for API responses.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from enum import Enum

from .models import PairConversion, RatesResponse, SupportedCodes

_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "AUD": "A$",
    "CAD": "C$",
    "CHF": "Fr",
    "INR": "₹",
}


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    CSV = "csv"

    @classmethod
    def parse(cls, value: "str | OutputFormat | None") -> "OutputFormat":
        if value is None:
            return cls.TEXT
        if isinstance(value, OutputFormat):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid output format: {value}. Valid values are 'text', 'json', or 'csv'."
            ) from None


def currency_symbol(code: str) -> str:
    return _SYMBOLS.get(code.upper(), "")


def format_currency_amount(amount: float, code: str) -> str:
    """Format an amount with its currency symbol and two decimals."""
    return f"{currency_symbol(code)}{amount:.2f}"


class _Style:
    def __init__(self, color: bool) -> None:
        self._color = color

    def c(self, text: str, code: str) -> str:
        if not self._color:
            return text
        return f"\033[{code}m{text}\033[0m"

    def label(self, text: str) -> str:
        return self.c(text, "1;32")

    def head(self, text: str) -> str:
        return self.c(text, "1")


def _table(headers: Sequence[str], rows: Sequence[Sequence[str]], style: _Style) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    lines = [
        "  ".join(style.head(h.ljust(widths[i])) for i, h in enumerate(headers)).rstrip(),
        "  ".join("-" * w for w in widths),
    ]
    for row in rows:
        lines.append("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
    return "\n".join(lines)


def _csv(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue()


def _json(payload: object) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def format_latest_rates(
    rates: RatesResponse,
    fmt: str | OutputFormat | None = None,
    *,
    color: bool = True,
) -> str:
    """Render one rate table, sorted by currency code."""
    output = OutputFormat.parse(fmt)
    ordered = sorted(rates.conversion_rates.items())

    if output is OutputFormat.JSON:
        return _json(
            {
                "base_currency": rates.base_code,
                "last_updated": rates.time_last_update_utc,
                "next_update": rates.time_next_update_utc,
                "rates": dict(ordered),
            }
        )
    if output is OutputFormat.CSV:
        return _csv(["Currency Code", "Rate"], [(code, f"{rate:.4f}") for code, rate in ordered])

    style = _Style(color)
    lines = [
        f"{style.label('Base Currency:')} {rates.base_code}",
        f"{style.label('Last Updated:')} {rates.time_last_update_utc or '-'}",
        f"{style.label('Next Update:')} {rates.time_next_update_utc or '-'}",
        "",
        _table(["Code", "Rate"], [(code, f"{rate:.4f}") for code, rate in ordered], style),
        "",
        f"{style.label('Total Currencies:')} {len(ordered)}",
    ]
    return "\n".join(lines) + "\n"


def format_conversion(
    amount: float,
    from_code: str,
    to_code: str,
    converted_amount: float,
    rate: float,
    fmt: str | OutputFormat | None = None,
    *,
    color: bool = True,
) -> str:
    output = OutputFormat.parse(fmt)

    if output is OutputFormat.JSON:
        return _json(
            {
                "amount": amount,
                "from_currency": from_code,
                "to_currency": to_code,
                "converted_amount": converted_amount,
                "rate": rate,
            }
        )
    if output is OutputFormat.CSV:
        return _csv(
            ["Amount", "From Currency", "To Currency", "Converted Amount", "Rate"],
            [(f"{amount:.2f}", from_code, to_code, f"{converted_amount:.2f}", f"{rate:.4f}")],
        )

    style = _Style(color)
    return (
        f"{style.label('Conversion:')} "
        f"{format_currency_amount(amount, from_code)} {from_code} = "
        f"{format_currency_amount(converted_amount, to_code)} {to_code}\n"
        f"{style.label('Rate:')} {rate:.4f} {to_code} per {from_code}\n"
    )


def format_pair_rate(
    pair: PairConversion,
    fmt: str | OutputFormat | None = None,
    *,
    amount: float | None = None,
    color: bool = True,
) -> str:
    output = OutputFormat.parse(fmt)

    if output is OutputFormat.JSON:
        payload: dict[str, object] = {
            "from_currency": pair.base_code,
            "to_currency": pair.target_code,
            "rate": pair.conversion_rate,
        }
        if pair.conversion_result is not None:
            payload["amount"] = amount
            payload["converted_amount"] = pair.conversion_result
        return _json(payload)
    if output is OutputFormat.CSV:
        headers = ["From Currency", "To Currency", "Rate"]
        row: list[object] = [pair.base_code, pair.target_code, f"{pair.conversion_rate:.4f}"]
        if pair.conversion_result is not None:
            headers.append("Converted Amount")
            row.append(f"{pair.conversion_result:.2f}")
        return _csv(headers, [row])

    style = _Style(color)
    text = (
        f"{style.label('Conversion Rate:')} 1 {pair.base_code} = "
        f"{pair.conversion_rate:.4f} {pair.target_code}\n"
    )
    if pair.conversion_result is not None and amount is not None:
        text += (
            f"{style.label('Conversion:')} "
            f"{format_currency_amount(amount, pair.base_code)} {pair.base_code} = "
            f"{format_currency_amount(pair.conversion_result, pair.target_code)} "
            f"{pair.target_code}\n"
        )
    return text


def format_currency_codes(
    codes: SupportedCodes,
    fmt: str | OutputFormat | None = None,
    *,
    color: bool = True,
) -> str:
    output = OutputFormat.parse(fmt)
    rows = codes.pairs()

    if output is OutputFormat.JSON:
        return _json({"currencies": dict(rows), "count": len(rows)})
    if output is OutputFormat.CSV:
        return _csv(["Code", "Currency"], rows)

    style = _Style(color)
    return (
        f"{style.label('Supported Currency Codes')}\n\n"
        f"{_table(['Code', 'Currency'], rows, style)}\n\n"
        f"{style.label('Total Currencies:')} {len(rows)}\n"
    )
