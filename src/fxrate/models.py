"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Typed response models for the exchange-rate API endpoints.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, TypeAlias

from .errors import ParseError, UnsupportedCodeError

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]

CurrencyCode: TypeAlias = str

_CODE_RE = re.compile(r"^[A-Za-z]{3}$")


def normalize_code(code: str) -> CurrencyCode:
    """
    Normalize one ISO-4217 style code to uppercase.

    Raises:
        UnsupportedCodeError: When `code` is not exactly three ASCII letters.
    """
    value = (code or "").strip() if isinstance(code, str) else ""
    if not _CODE_RE.match(value):
        raise UnsupportedCodeError(str(code))
    return value.upper()


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ParseError(detail=f"missing or invalid '{key}'")
    return value


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    return value if isinstance(value, str) else None


def _optional_int(payload: Mapping[str, Any], key: str) -> int | None:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(detail=f"invalid '{key}'")
    return int(value)


def _rate(value: Any, *, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParseError(detail=f"non-numeric rate for '{label}'")
    rate = float(value)
    if not math.isfinite(rate) or rate <= 0:
        raise ParseError(detail=f"rate for '{label}' must be positive and finite")
    return rate


def _from_unix(ts: int | None) -> datetime | None:
    if not ts:
        return None
    return datetime.fromtimestamp(ts, tz=UTC)


@dataclass(frozen=True, slots=True)
class RatesResponse:
    """Latest conversion rates for one base currency."""

    base_code: CurrencyCode
    conversion_rates: dict[CurrencyCode, float]
    time_last_update_unix: int
    time_next_update_unix: int | None = None
    time_last_update_utc: str | None = None
    time_next_update_utc: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RatesResponse":
        """Validate and build a model from one decoded ``latest`` body."""
        base_code = _require_str(payload, "base_code").upper()
        raw_rates = payload.get("conversion_rates")
        if not isinstance(raw_rates, Mapping):
            raise ParseError(detail="missing or invalid 'conversion_rates'")
        rates = {
            str(code).upper(): _rate(value, label=str(code))
            for code, value in raw_rates.items()
        }
        last_update = _optional_int(payload, "time_last_update_unix")
        if last_update is None:
            raise ParseError(detail="missing 'time_last_update_unix'")
        return cls(
            base_code=base_code,
            conversion_rates=rates,
            time_last_update_unix=last_update,
            time_next_update_unix=_optional_int(payload, "time_next_update_unix"),
            time_last_update_utc=_optional_str(payload, "time_last_update_utc"),
            time_next_update_utc=_optional_str(payload, "time_next_update_utc"),
        )

    @property
    def last_updated(self) -> datetime | None:
        return _from_unix(self.time_last_update_unix)

    @property
    def next_update(self) -> datetime | None:
        return _from_unix(self.time_next_update_unix)

    def get_rate(self, code: str) -> float | None:
        """Return the rate for `code`, or None when the table has no entry."""
        key = code.upper()
        rate = self.conversion_rates.get(key)
        if rate is None and key == self.base_code:
            return 1.0
        return rate

    def convert_from_base(self, amount: float, target_code: str) -> float | None:
        """Convert `amount` of the base currency into `target_code`."""
        rate = self.get_rate(target_code)
        if rate is None:
            return None
        return amount * rate

    def convert(self, amount: float, from_code: str, to_code: str) -> float | None:
        """Convert between any two codes in the table through the base currency."""
        if from_code.upper() == self.base_code:
            return self.convert_from_base(amount, to_code)
        from_rate = self.get_rate(from_code)
        to_rate = self.get_rate(to_code)
        if from_rate is None or to_rate is None:
            return None
        return amount / from_rate * to_rate

    def to_dict(self) -> JSONObject:
        return {
            "base_code": self.base_code,
            "conversion_rates": dict(self.conversion_rates),
            "time_last_update_unix": self.time_last_update_unix,
            "time_next_update_unix": self.time_next_update_unix,
            "time_last_update_utc": self.time_last_update_utc,
            "time_next_update_utc": self.time_next_update_utc,
        }


@dataclass(frozen=True, slots=True)
class PairConversion:
    """Direct conversion rate between exactly two currencies."""

    base_code: CurrencyCode
    target_code: CurrencyCode
    conversion_rate: float
    conversion_result: float | None = None
    time_last_update_unix: int | None = None
    time_next_update_unix: int | None = None
    time_last_update_utc: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PairConversion":
        """Validate and build a model from one decoded ``pair`` body."""
        base_code = _require_str(payload, "base_code").upper()
        target_code = _require_str(payload, "target_code").upper()
        if "conversion_rate" not in payload:
            raise ParseError(detail="missing 'conversion_rate'")
        rate = _rate(payload["conversion_rate"], label=target_code)

        result = payload.get("conversion_result")
        if result is not None:
            if isinstance(result, bool) or not isinstance(result, (int, float)):
                raise ParseError(detail="invalid 'conversion_result'")
            result = float(result)

        return cls(
            base_code=base_code,
            target_code=target_code,
            conversion_rate=rate,
            conversion_result=result,
            time_last_update_unix=_optional_int(payload, "time_last_update_unix"),
            time_next_update_unix=_optional_int(payload, "time_next_update_unix"),
            time_last_update_utc=_optional_str(payload, "time_last_update_utc"),
        )

    @property
    def last_updated(self) -> datetime | None:
        return _from_unix(self.time_last_update_unix)

    def to_dict(self) -> JSONObject:
        return {
            "base_code": self.base_code,
            "target_code": self.target_code,
            "conversion_rate": self.conversion_rate,
            "conversion_result": self.conversion_result,
            "time_last_update_unix": self.time_last_update_unix,
            "time_next_update_unix": self.time_next_update_unix,
            "time_last_update_utc": self.time_last_update_utc,
        }


@dataclass(frozen=True, slots=True)
class CurrencyInfo:
    """One supported currency code with its display name."""

    code: CurrencyCode
    name: str


@dataclass(frozen=True, slots=True)
class SupportedCodes:
    """
    Ordered supported currency listing, unique on code.

    Malformed rows are skipped and later duplicates of a code are dropped.
    """

    currencies: tuple[CurrencyInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SupportedCodes":
        """Validate and build a model from one decoded ``codes`` body."""
        rows = payload.get("supported_codes")
        if not isinstance(rows, list):
            raise ParseError(detail="missing or invalid 'supported_codes'")

        seen: set[str] = set()
        out: list[CurrencyInfo] = []
        for row in rows:
            if not isinstance(row, (list, tuple)) or len(row) < 2:
                continue
            code, name = row[0], row[1]
            if not isinstance(code, str) or not isinstance(name, str):
                continue
            key = code.upper()
            if key in seen:
                continue
            seen.add(key)
            out.append(CurrencyInfo(code=key, name=name))
        return cls(currencies=tuple(out))

    def __iter__(self) -> Iterator[CurrencyInfo]:
        return iter(self.currencies)

    def __len__(self) -> int:
        return len(self.currencies)

    def __contains__(self, code: object) -> bool:
        if not isinstance(code, str):
            return False
        return self.name_for(code) is not None

    def name_for(self, code: str) -> str | None:
        """Return the display name for `code` if listed."""
        key = code.upper()
        for row in self.currencies:
            if row.code == key:
                return row.name
        return None

    def pairs(self) -> list[tuple[str, str]]:
        return [(row.code, row.name) for row in self.currencies]

    def to_dict(self) -> JSONObject:
        return {"supported_codes": [[row.code, row.name] for row in self.currencies]}
