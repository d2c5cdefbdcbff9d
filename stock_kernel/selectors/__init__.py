"""Selectors for the stock kernel (read side)."""

from stock_kernel.selectors.ledger_selector import (
    ImporterProductTotal,
    LedgerSelector,
    ProductImporter,
    StockPosition,
)

__all__ = [
    "ImporterProductTotal",
    "LedgerSelector",
    "ProductImporter",
    "StockPosition",
]
