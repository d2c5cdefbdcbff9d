"""HTTP transport for the import-export hub."""

from stock_api.app import create_app

__all__ = ["create_app"]
