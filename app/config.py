"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external CRM connectors.

    ``max_attempts`` is one budget shared by rate-limit waits and transient
    error retries.
    """

    timeout_seconds: float = 15.0
    max_attempts: int = 3
    backoff_initial_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    backoff_max_seconds: float = 30.0
    rate_limit_default_wait_seconds: float = 5.0
    rate_limit_max_wait_seconds: float = 120.0


@dataclass(frozen=True)
class AccuLynxSettings:
    """
    AccuLynx connector settings.
    """

    base_url: str = "https://api.acculynx.com/api/v2"
    page_size: int = 100
    source_name: str = "acculynx"


@dataclass(frozen=True)
class MigrationSettings:
    """
    Runtime settings for migration orchestration.
    """

    stale_run_minutes: int = 120
    preview_sample_size: int = 100


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_attempts=max(1, _get_int_env("EXTERNAL_HTTP_MAX_ATTEMPTS", 3)),
        backoff_initial_seconds=max(0.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 1.0)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        backoff_max_seconds=max(0.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MAX_SECONDS", 30.0)),
        rate_limit_default_wait_seconds=max(
            0.0, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_DEFAULT_WAIT_SECONDS", 5.0)
        ),
        rate_limit_max_wait_seconds=max(
            1.0, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_MAX_WAIT_SECONDS", 120.0)
        ),
    )


@lru_cache(maxsize=1)
def get_acculynx_settings() -> AccuLynxSettings:
    """
    Return AccuLynx connector settings from environment variables.
    """

    return AccuLynxSettings(
        base_url=_get_str_env("ACCULYNX_BASE_URL", "https://api.acculynx.com/api/v2"),
        page_size=min(500, max(1, _get_int_env("ACCULYNX_PAGE_SIZE", 100))),
        source_name=_get_str_env("ACCULYNX_SOURCE_NAME", "acculynx").lower(),
    )


@lru_cache(maxsize=1)
def get_migration_settings() -> MigrationSettings:
    """
    Return migration orchestration settings from environment variables.
    """

    return MigrationSettings(
        stale_run_minutes=max(1, _get_int_env("MIGRATION_STALE_RUN_MINUTES", 120)),
        preview_sample_size=min(500, max(10, _get_int_env("MIGRATION_PREVIEW_SAMPLE_SIZE", 100))),
    )
