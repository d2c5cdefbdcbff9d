"""Utility modules for the stock kernel."""

from stock_kernel.utils.retry import RetryExhaustedError, retry_call

__all__ = [
    "RetryExhaustedError",
    "retry_call",
]
