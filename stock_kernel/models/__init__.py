"""Domain models for the stock kernel."""

from stock_kernel.models.account import Account
from stock_kernel.models.import_record import IMPORT_RECORD_MUTABLE_FIELDS, ImportRecord
from stock_kernel.models.product import Product

__all__ = [
    "Account",
    "ImportRecord",
    "IMPORT_RECORD_MUTABLE_FIELDS",
    "Product",
]
