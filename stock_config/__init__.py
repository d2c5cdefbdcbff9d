"""
stock_config -- single public entrypoint for hub configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Nothing else reads the settings file or the
    ``DATABASE_URL`` / ``STOCK_LOG_LEVEL`` environment variables.

Architecture position:
    Configuration sits above ``stock_kernel`` and below ``stock_api``.  The
    kernel MUST NEVER import from ``stock_config``; ``stock_config.bridges``
    translates settings into kernel constructor arguments.

Failure modes:
    - ``FileNotFoundError`` -- settings file missing.
    - ``KeyError`` -- required key missing (e.g. ``database.url``).
    - ``ValueError`` -- out-of-range value.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from stock_config.loader import load_config
from stock_config.schema import (
    DatabaseSettings,
    HubConfig,
    LoggingSettings,
    ReservationSettings,
)

_logger = logging.getLogger("stock_kernel.config")

ENV_CONFIG_PATH = "STOCK_CONFIG_PATH"
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "settings.yaml"


def get_active_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> HubConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Settings file.  Defaults to ``$STOCK_CONFIG_PATH`` or
            the packaged ``settings.yaml``.
        env: Environment mapping for overrides.  Defaults to ``os.environ``.

    Returns:
        Frozen HubConfig.
    """
    env = os.environ if env is None else env
    path = config_path or Path(env.get(ENV_CONFIG_PATH) or _DEFAULT_CONFIG_PATH)

    config = load_config(path, env=env)

    _logger.info(
        "config_loaded",
        extra={
            "config_source": config.source,
            "dialect": config.database.url.split(":", 1)[0],
            "max_storage_attempts": config.reservation.max_storage_attempts,
            "compensation_attempts": config.reservation.compensation_attempts,
        },
    )
    return config


__all__ = [
    "DatabaseSettings",
    "HubConfig",
    "LoggingSettings",
    "ReservationSettings",
    "get_active_config",
]
