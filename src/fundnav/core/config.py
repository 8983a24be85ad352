"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from fundnav.core.exceptions import ConfigError
from fundnav.core.models import CorrectionRule


class SourceConfig(BaseModel):
    """Upstream NAV provider access configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.mfapi.in/mf"
    request_timeout: float = 30.0
    rate_limit: int = 5
    max_retries: int = 3
    retry_backoff: float = 1.0
    max_retry_after: float = 30.0

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("request_timeout", "max_retry_after")
    @classmethod
    def seconds_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0 seconds")
        return v

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def retries_non_negative(cls, v: int) -> int:
        if v < 0 or v > 10:
            raise ValueError("max_retries must be between 0 and 10")
        return v

    @field_validator("retry_backoff")
    @classmethod
    def backoff_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry_backoff must be >= 0")
        return v


class RefreshConfig(BaseModel):
    """Scheduled job intervals, in seconds."""

    model_config = ConfigDict(frozen=True)

    directory_interval: float = 30 * 24 * 3600.0
    series_interval: float = 24 * 3600.0

    @field_validator("directory_interval", "series_interval")
    @classmethod
    def interval_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("refresh intervals must be > 0 seconds")
        return v


class SearchConfig(BaseModel):
    """Fuzzy search tuning."""

    model_config = ConfigDict(frozen=True)

    threshold: float = 0.3
    max_results: int = 50

    @field_validator("threshold")
    @classmethod
    def threshold_in_range(cls, v: float) -> float:
        if v < 0 or v > 2:
            raise ValueError("threshold must be between 0 and 2")
        return v

    @field_validator("max_results")
    @classmethod
    def max_results_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_results must be >= 1")
        return v


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 4000


class FundNavConfig(BaseModel):
    """Root configuration for the fundnav service."""

    model_config = ConfigDict(frozen=True)

    source: SourceConfig = SourceConfig()
    refresh: RefreshConfig = RefreshConfig()
    search: SearchConfig = SearchConfig()
    corrections: tuple[CorrectionRule, ...] = ()
    corrections_path: str | None = None
    api: APIConfig = APIConfig()


DEFAULT_CONFIG_FILE = "fundnav.yml"
CONFIG_ENV_VAR = "FUNDNAV_CONFIG"


def load_config(
    config_path: str | None = None,
    env_prefix: str = "FUNDNAV_",
) -> FundNavConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (FUNDNAV_SOURCE__BASE_URL, etc.)
    2. YAML file: ``config_path``, then $FUNDNAV_CONFIG, then ./fundnav.yml
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        FUNDNAV_REFRESH__SERIES_INTERVAL=3600  ->  refresh.series_interval = 3600

    A relative ``corrections_path`` in the YAML file is resolved against the
    file's directory; one from the environment is resolved against the cwd.
    The correction table must exist when the config is loaded.

    Raises:
        ConfigError: Missing or malformed file, invalid values, or a missing
            correction table.
    """
    yaml_path = _resolve_config_path(config_path)
    settings: dict = {}
    if yaml_path is not None:
        settings = _load_yaml(yaml_path)
        _anchor_corrections_path(settings, yaml_path.parent)

    settings = _merge_env_vars(settings, env_prefix)
    try:
        config = FundNavConfig.model_validate(settings)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid fundnav configuration: {e}",
            context={"source": str(yaml_path) if yaml_path else "environment"},
        ) from e

    _check_corrections_path(config.corrections_path)
    return config


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Pick the YAML file to read, or None to run on env vars and defaults."""
    candidates = (
        ("config_path", explicit),
        (CONFIG_ENV_VAR, os.environ.get(CONFIG_ENV_VAR) or None),
    )
    for field, value in candidates:
        if value is None:
            continue
        path = Path(value)
        if not path.is_file():
            raise ConfigError(
                f"Config file from {field} not found: {value}",
                context={"field": field, "value": value},
            )
        return path

    default = Path(DEFAULT_CONFIG_FILE)
    return default if default.is_file() else None


def _load_yaml(path: Path) -> dict:
    """Parse a YAML mapping. An empty file yields {}."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            f"Cannot read config file: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config must be a mapping, got {type(data).__name__}",
            context={"field": "config_file", "value": str(path)},
        )
    return data


def _anchor_corrections_path(settings: dict, base_dir: Path) -> None:
    raw = settings.get("corrections_path")
    if isinstance(raw, str) and raw and not Path(raw).is_absolute():
        settings["corrections_path"] = str(base_dir / raw)


def _check_corrections_path(path: str | None) -> None:
    if path is not None and not Path(path).is_file():
        raise ConfigError(
            f"Correction table not found: {path}",
            context={"field": "corrections_path", "value": path},
        )


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay ``{prefix}SECTION__KEY`` environment variables onto ``base``.

    Returns a new dict; nested sections touched by an override are copied
    so ``base`` is left as loaded. Values go through :func:`_auto_cast`.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = [part.lower() for part in key[len(prefix) :].split("__")]
        if path == ["config"]:
            continue
        _set_nested(result, path, _auto_cast(value))

    return result


def _set_nested(target: dict, path: list[str], value: object) -> None:
    for section in path[:-1]:
        existing = target.get(section)
        target[section] = dict(existing) if isinstance(existing, dict) else {}
        target = target[section]
    target[path[-1]] = value


def _auto_cast(value: str) -> str | int | float | bool:
    """Cast an env var string: true/false to bool, then int, then float."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value
