"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error hierarchy for the exchange-rate client.
"""

from __future__ import annotations

from typing import ClassVar


class ExchangeRateError(RuntimeError):
    """
    Base error for every failure surfaced by the client.

    Attributes:
        kind: Stable tag identifying the failure variant.
        detail: Optional raw diagnostic detail (error-type, HTTP status, ...).
    """

    kind: ClassVar[str] = "unknown"

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        if self.detail:
            return f"{self.kind}: {self.detail}"
        return self.kind


class MissingApiKeyError(ExchangeRateError):
    """Raised when a client is built without an API key."""

    kind = "missing_api_key"

    def default_message(self) -> str:
        return (
            "API key not provided. Use --api-key or set the "
            "FXRATE_API_KEY environment variable"
        )


class InvalidKeyError(ExchangeRateError):
    """Raised when the API rejects the configured key."""

    kind = "invalid_key"

    def default_message(self) -> str:
        return "Invalid API key"


class InactiveAccountError(InvalidKeyError):
    """Raised when the key belongs to an account that is not active."""

    def default_message(self) -> str:
        return "Inactive account"


class QuotaReachedError(ExchangeRateError):
    """Raised when the account exhausted its request quota."""

    kind = "quota_reached"

    def default_message(self) -> str:
        return "API quota reached"


class UnsupportedCodeError(ExchangeRateError):
    """Raised when a currency code is unknown to the API or missing from a rate table."""

    kind = "unsupported_code"

    def __init__(self, code: str | None = None, *, detail: str | None = None) -> None:
        self.code = code
        super().__init__(detail=detail)

    def default_message(self) -> str:
        if self.code:
            return f"Unsupported currency code: {self.code}"
        return "Unsupported currency code"


class NetworkError(ExchangeRateError):
    """Raised when the HTTP exchange itself fails."""

    kind = "network"

    def default_message(self) -> str:
        return f"Network error: {self.detail or 'request failed'}"


class ParseError(ExchangeRateError):
    """Raised when a response body does not match the documented shape."""

    kind = "parse"

    def default_message(self) -> str:
        return f"Invalid API response: {self.detail or 'unexpected payload'}"


class UnknownError(ExchangeRateError):
    """Raised for unrecognized API errors and cache-layer failures."""

    kind = "unknown"

    def default_message(self) -> str:
        return f"Unexpected error: {self.detail or 'unknown failure'}"


class MalformedRequestError(UnknownError):
    """Raised when the API reports the request path as malformed."""

    def default_message(self) -> str:
        return "Malformed request"


_ERROR_TYPES: dict[str, type[ExchangeRateError]] = {
    "invalid-key": InvalidKeyError,
    "inactive-account": InactiveAccountError,
    "quota-reached": QuotaReachedError,
    "unsupported-code": UnsupportedCodeError,
    "malformed-request": MalformedRequestError,
}


def error_from_api(error_type: str | None, *, code: str | None = None) -> ExchangeRateError:
    """
    Map one documented API ``error-type`` string to its error instance.

    Args:
        error_type: Raw ``error-type`` field from the response body.
        code: Currency code(s) of the request, attached to unsupported-code errors.
    """
    raw = (error_type or "").strip()
    error_cls = _ERROR_TYPES.get(raw)
    if error_cls is None:
        return UnknownError(detail=raw or "unspecified API error")
    if error_cls is UnsupportedCodeError:
        return UnsupportedCodeError(code, detail=raw)
    return error_cls(detail=raw)
