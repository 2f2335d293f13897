"""Configuration loading and parsing."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import yaml

from pot_provider.fetcher import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
)
from pot_provider.solver import DEFAULT_REQUEST_KEY

DEFAULT_TOKEN_TTL_HOURS = 6


@dataclass
class FetchConfig:
    """Retry policy for outbound requests."""
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass
class Config:
    """Full provider configuration."""
    token_ttl_hours: int = DEFAULT_TOKEN_TTL_HOURS
    request_key: str = DEFAULT_REQUEST_KEY
    fetch: FetchConfig = field(default_factory=FetchConfig)
    solver: str | None = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR} patterns with environment variable values."""
    pattern = r'\$\{([^}]+)\}'

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)
        if env_value is None:
            raise ValueError(f"Environment variable not set: {var_name}")
        return env_value

    return re.sub(pattern, replacer, value)


def _substitute_env_vars_recursive(obj):
    """Recursively substitute env vars in a data structure."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _substitute_env_vars_recursive(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars_recursive(item) for item in obj]
    return obj


def _positive_int(value, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {number}")
    return number


def _non_negative_float(value, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if number < 0:
        raise ValueError(f"{name} must not be negative, got {number}")
    return number


def parse_config(raw: dict, environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from raw mapping data plus environment overrides.

    TOKEN_TTL (hours) and POT_SOLVER take precedence over the file.
    """
    environ = os.environ if environ is None else environ
    raw = raw or {}

    fetch_raw = raw.get("fetch") or {}
    fetch = FetchConfig(
        max_attempts=_positive_int(
            fetch_raw.get("max_attempts", DEFAULT_MAX_ATTEMPTS), "fetch.max_attempts"
        ),
        retry_delay_seconds=_non_negative_float(
            fetch_raw.get("retry_delay_seconds", DEFAULT_RETRY_DELAY_SECONDS),
            "fetch.retry_delay_seconds",
        ),
        timeout_seconds=_non_negative_float(
            fetch_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS), "fetch.timeout_seconds"
        ),
    )

    ttl = raw.get("token_ttl_hours", DEFAULT_TOKEN_TTL_HOURS)
    if environ.get("TOKEN_TTL"):
        ttl = environ["TOKEN_TTL"]

    solver = environ.get("POT_SOLVER") or raw.get("solver")

    return Config(
        token_ttl_hours=_positive_int(ttl, "token_ttl_hours"),
        request_key=str(raw.get("request_key") or DEFAULT_REQUEST_KEY),
        fetch=fetch,
        solver=solver,
    )


def load_config(config_path: str | None = None) -> Config:
    """Load configuration from a YAML file, or from the environment alone."""
    raw = {}
    if config_path:
        path = Path(config_path)
        raw = yaml.safe_load(path.read_text()) or {}

    # Substitute environment variables
    raw = _substitute_env_vars_recursive(raw)

    return parse_config(raw)
