"""Services for the stock kernel (write side)."""

from stock_kernel.services.catalog_service import CatalogService, ProductInfo
from stock_kernel.services.identity_service import (
    AccountInfo,
    AccountService,
    Principal,
    RoleDirectory,
    SessionRoleDirectory,
    SqlRoleDirectory,
    StaticTokenVerifier,
    TokenVerifier,
)
from stock_kernel.services.reservation_engine import ReservationEngine
from stock_kernel.services.stock_ledger_store import StockLedgerStore

__all__ = [
    "AccountInfo",
    "AccountService",
    "CatalogService",
    "Principal",
    "ProductInfo",
    "ReservationEngine",
    "RoleDirectory",
    "SessionRoleDirectory",
    "SqlRoleDirectory",
    "StaticTokenVerifier",
    "StockLedgerStore",
    "TokenVerifier",
]
