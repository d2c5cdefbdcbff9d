"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Loads the YAML settings file and parses it into the frozen dataclasses of
``stock_config.schema``, then applies environment overrides.  Runtime
callers go through ``stock_config.get_active_config()``.

Invariants enforced
-------------------
* Missing required keys raise ``KeyError``; out-of-range values raise
  ``ValueError``.  There are no silent defaults for required fields.
* Every parsed object is a frozen dataclass.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    DatabaseSettings,
    HubConfig,
    LoggingSettings,
    ReservationSettings,
)

ENV_DATABASE_URL = "DATABASE_URL"
ENV_LOG_LEVEL = "STOCK_LOG_LEVEL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _positive_int(data: Mapping[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"{key} must be a positive integer, got {value!r}")
    return value


def _non_negative_float(data: Mapping[str, Any], key: str, default: float) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValueError(f"{key} must be a non-negative number, got {value!r}")
    return float(value)


def parse_database(data: Mapping[str, Any]) -> DatabaseSettings:
    return DatabaseSettings(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=_positive_int(data, "pool_size", 20),
        max_overflow=int(data.get("max_overflow", 10)),
        pool_timeout=_positive_int(data, "pool_timeout", 30),
        pool_recycle=_positive_int(data, "pool_recycle", 1800),
        sqlite_busy_timeout=_non_negative_float(data, "sqlite_busy_timeout", 30.0),
    )


def parse_reservation(data: Mapping[str, Any]) -> ReservationSettings:
    return ReservationSettings(
        max_storage_attempts=_positive_int(data, "max_storage_attempts", 3),
        compensation_attempts=_positive_int(data, "compensation_attempts", 5),
        retry_backoff_seconds=_non_negative_float(data, "retry_backoff_seconds", 0.05),
    )


def parse_logging(data: Mapping[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"unknown log level: {level!r}")
    return LoggingSettings(level=level)


def parse_config(
    data: Mapping[str, Any],
    env: Mapping[str, str] | None = None,
    source: str = "",
) -> HubConfig:
    """
    Build a HubConfig from a parsed YAML mapping plus environment overrides.

    ``DATABASE_URL`` replaces ``database.url``; ``STOCK_LOG_LEVEL`` replaces
    ``logging.level``.
    """
    env = env or {}

    database = dict(data["database"])
    if env.get(ENV_DATABASE_URL):
        database["url"] = env[ENV_DATABASE_URL]

    logging_data = dict(data.get("logging") or {})
    if env.get(ENV_LOG_LEVEL):
        logging_data["level"] = env[ENV_LOG_LEVEL]

    return HubConfig(
        database=parse_database(database),
        reservation=parse_reservation(data.get("reservation") or {}),
        logging=parse_logging(logging_data),
        source=source,
    )


def load_config(path: Path, env: Mapping[str, str] | None = None) -> HubConfig:
    return parse_config(load_yaml_file(path), env=env, source=str(path))
