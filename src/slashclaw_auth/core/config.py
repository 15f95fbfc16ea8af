"""Configuration for the auth services."""

import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigurationError

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

# Environment variable -> config field
ENV_VARS = {
    "CHALLENGE_TTL": "challenge_ttl",
    "TOKEN_TTL": "token_ttl",
    "DATABASE_PATH": "database_path",
    "ADMIN_SECRET": "admin_secret",
}


def parse_duration(value: Any) -> timedelta:
    """Parse a duration.

    Accepts a ``timedelta``, a number of seconds, or a Go-style duration
    string such as ``"90s"``, ``"5m"`` or ``"1h30m"``.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid duration: {value!r}")

    text = value.strip()
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return timedelta(seconds=float(text))

    pos = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"Invalid duration: {value!r}")
    return timedelta(seconds=total)


class AuthConfig(BaseModel):
    """Settings for challenge/token lifetimes and storage."""

    challenge_ttl: timedelta = Field(
        default=timedelta(minutes=5), description="How long a challenge can be answered"
    )
    token_ttl: timedelta = Field(
        default=timedelta(hours=24), description="How long an access token is valid"
    )
    database_path: str = Field(
        default="slashclaw.db", description="SQLite database path (or :memory:)"
    )
    admin_secret: Optional[str] = Field(
        default=None, description="Shared secret for admin endpoints"
    )

    @field_validator("challenge_ttl", "token_ttl", mode="before")
    @classmethod
    def parse_ttl(cls, v: Any) -> timedelta:
        """Parse Go-style duration strings and plain seconds."""
        return parse_duration(v)

    @field_validator("challenge_ttl", "token_ttl")
    @classmethod
    def ttl_positive(cls, v: timedelta) -> timedelta:
        """Lifetimes must be positive."""
        if v <= timedelta(0):
            raise ValueError("duration must be positive")
        return v

    @field_validator("admin_secret")
    @classmethod
    def empty_secret_disables_admin(cls, v: Optional[str]) -> Optional[str]:
        """An empty admin secret means admin endpoints are disabled."""
        return v or None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AuthConfig":
        """Build a config from a mapping, wrapping validation failures.

        Raises:
            ConfigurationError: If a value is invalid
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AuthConfig":
        """Load configuration from environment variables.

        Reads ``CHALLENGE_TTL``, ``TOKEN_TTL``, ``DATABASE_PATH`` and
        ``ADMIN_SECRET``. Unset or empty variables keep their defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If a variable has an invalid value
        """
        if environ is None:
            environ = os.environ
        data = {
            field: environ[name]
            for name, field in ENV_VARS.items()
            if environ.get(name)
        }
        return cls.from_mapping(data)

    @classmethod
    def from_config(cls, config_path: str | Path) -> "AuthConfig":
        """Load configuration from a YAML file.

        Args:
            config_path: Path to YAML config file

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load config: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {config_path}")
        return cls.from_mapping(data)
