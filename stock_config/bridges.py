"""
Config -> Kernel Bridges.

Functions that turn HubConfig values into kernel inputs.  They live here
because the kernel must never import stock_config.

Usage:
    config = get_active_config()
    init_database(config.database)
    engine = build_reservation_engine(config.reservation, store, role_directory)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from stock_config.schema import DatabaseSettings, HubConfig, ReservationSettings
from stock_kernel.db.engine import init_engine_from_url
from stock_kernel.logging_config import configure_logging
from stock_kernel.services.identity_service import RoleDirectory
from stock_kernel.services.reservation_engine import ReservationEngine
from stock_kernel.services.stock_ledger_store import StockLedgerStore


def init_database(settings: DatabaseSettings) -> Engine:
    return init_engine_from_url(
        settings.url,
        echo=settings.echo,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
        sqlite_busy_timeout=settings.sqlite_busy_timeout,
    )


def build_reservation_engine(
    settings: ReservationSettings,
    store: StockLedgerStore,
    role_directory: RoleDirectory,
) -> ReservationEngine:
    return ReservationEngine(
        store,
        role_directory,
        max_storage_attempts=settings.max_storage_attempts,
        compensation_attempts=settings.compensation_attempts,
        retry_backoff_seconds=settings.retry_backoff_seconds,
    )


def apply_logging(config: HubConfig) -> None:
    configure_logging(level=config.logging.level)
