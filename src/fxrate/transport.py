"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Authentication styles and request target construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import quote

DEFAULT_BASE_URL = "https://v6.exchangerate-api.com/v6"


class AuthMethod(str, Enum):
    """Where the API key travels on each request."""

    BEARER_TOKEN = "bearer"
    IN_URL = "url"

    @classmethod
    def parse(cls, value: "str | AuthMethod") -> "AuthMethod":
        """Resolve an enum member from its value or name, case-insensitively."""
        if isinstance(value, AuthMethod):
            return value
        key = value.strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ValueError(f"Invalid auth method '{value}'. Valid values are 'bearer' or 'url'.")


@dataclass(frozen=True, slots=True)
class RequestTarget:
    """Fully shaped GET request: URL plus headers."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)


def build_request_target(
    *,
    base_url: str,
    api_key: str,
    auth_method: AuthMethod,
    endpoint: str,
    params: tuple[str, ...] | list[str] = (),
) -> RequestTarget:
    """
    Build the URL and headers for one endpoint call.

    Both auth styles address the same logical endpoint; only the key
    placement differs (path segment vs. ``Authorization`` header).
    """
    segments = [endpoint, *(quote(str(p), safe="") for p in params)]
    headers = {"Accept": "application/json"}
    root = base_url.rstrip("/")

    if auth_method is AuthMethod.IN_URL:
        url = "/".join([root, quote(api_key, safe=""), *segments])
    else:
        url = "/".join([root, *segments])
        headers["Authorization"] = f"Bearer {api_key}"

    return RequestTarget(url=url, headers=headers)
