"""
Hub configuration schema.

Frozen dataclasses the loader parses ``settings.yaml`` into.  Values here are
plain data; stock_config.bridges turns them into kernel constructor inputs.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseSettings:
    """Where the ledger lives and how the connection pool behaves."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: float = 30.0


@dataclass(frozen=True)
class ReservationSettings:
    """Retry budgets for the reservation engine."""

    max_storage_attempts: int = 3
    compensation_attempts: int = 5
    retry_backoff_seconds: float = 0.05


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class HubConfig:
    """Root configuration object returned by get_active_config()."""

    database: DatabaseSettings
    reservation: ReservationSettings
    logging: LoggingSettings
    source: str = ""
