"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Persistent CLI configuration stored as JSON under the user's config dir.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .cache.policy import DEFAULT_TTL_S
from .cache.registry import CacheConfigurationError, resolve_backend_id
from .settings import parse_bool

CONFIG_KEYS = (
    "api_key",
    "auth_method",
    "default_format",
    "use_color",
    "use_cache",
    "cache_backend",
    "cache_ttl_s",
)


class CliError(RuntimeError):
    """Raised for CLI usage and configuration failures."""


class CliConfig(BaseModel):
    """Options persisted between CLI invocations."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    api_key: str | None = None
    auth_method: Literal["bearer", "url"] = "bearer"
    default_format: Literal["text", "json", "csv"] = "text"
    use_color: bool = True
    use_cache: bool = True
    cache_backend: str = "sqlite"
    cache_ttl_s: float = Field(default=DEFAULT_TTL_S, gt=0)

    @field_validator("auth_method", "default_format", mode="before")
    @classmethod
    def _lower(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("cache_backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        try:
            return resolve_backend_id(value)
        except CacheConfigurationError as exc:
            raise ValueError(str(exc)) from exc

    def masked_api_key(self) -> str:
        if not self.api_key:
            return "Not set"
        return f"{self.api_key[:8]}..."


def config_path() -> Path:
    """Location of the config file (`FXRATE_CONFIG_PATH` overrides)."""
    override = os.getenv("FXRATE_CONFIG_PATH", "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "fxrate" / "config.json"


def load_config(path: Path | None = None) -> CliConfig:
    """Load config from disk, returning defaults when the file is absent."""
    target = path or config_path()
    if not target.exists():
        return CliConfig()
    try:
        return CliConfig.model_validate_json(target.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CliError(f"Failed to read config file {target}: {exc}") from exc
    except ValidationError as exc:
        raise CliError(f"Failed to parse config file {target}: {exc}") from exc


def save_config(config: CliConfig, path: Path | None = None) -> Path:
    target = path or config_path()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(config.model_dump_json(indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        raise CliError(f"Failed to write config file {target}: {exc}") from exc
    return target


def set_config_value(config: CliConfig, key: str, value: str) -> CliConfig:
    """
    Return a copy of `config` with `key` set from its string form.

    Raises:
        CliError: Unknown key or a value the key does not accept.
    """
    if key not in CONFIG_KEYS:
        valid = ", ".join(f"'{k}'" for k in CONFIG_KEYS)
        raise CliError(f"Invalid configuration key: {key}. Valid keys are {valid}.")

    updated = config.model_copy()
    try:
        if key in ("use_color", "use_cache"):
            setattr(updated, key, parse_bool(value))
        else:
            setattr(updated, key, value)
    except (ValidationError, ValueError) as exc:
        raise CliError(f"Invalid value for {key}: {value}") from exc
    return updated
