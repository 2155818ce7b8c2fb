"""
inventory_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain settings.  No other
    component reads configuration files or environment variables.

Architecture position:
    Sits above ``inventory_kernel``.  The kernel never imports from here;
    ``inventory_kernel.db.engine.init_engine_from_config()`` accepts the
    returned object by shape.

Failure modes:
    - ``FileNotFoundError`` -- config file missing.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful call emits an ``INVENTORY_CONFIG_TRACE`` log entry with
    the source file and effective settings (password redacted).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from inventory_config.loader import load_config
from inventory_config.schema import InventoryConfig
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> InventoryConfig:
    """
    Load the active configuration.

    Args:
        path: YAML file to load.  Defaults to ``inventory_config/defaults.yaml``.
        environ: Environment mapping for overrides.  Defaults to ``os.environ``.

    Returns:
        A frozen, validated InventoryConfig.
    """
    source = path or DEFAULT_CONFIG_PATH
    config = load_config(source, os.environ if environ is None else environ)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "source": str(source),
            "database_url": config.redacted_database_url,
            "lock_timeout_ms": config.lock_timeout_ms,
            "pool_size": config.pool_size,
            "log_level": config.log_level,
        },
    )
    return config


__all__ = ["InventoryConfig", "get_active_config", "DEFAULT_CONFIG_PATH"]
