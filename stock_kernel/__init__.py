"""
Stock Kernel - inventory reservation and import ledger.

Exporters list products with a stock counter; importers reserve stock, which
moves it from the counter into an append-only ledger of import records:
- Atomic conditional decrement (no read-then-write races)
- Append-only ledger with one-way reversal flag
- Compensation when a multi-step mutation fails partway
- Ledger/stock reconciliation
"""

__version__ = "0.1.0"
