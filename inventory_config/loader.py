"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML file, applies environment overrides, and parses the result into
a frozen ``InventoryConfig``.  Callers use ``inventory_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys, bad types or bad values  -> ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import InventoryConfig

# Environment variable -> (config field, parser).  First match wins per field.
ENV_OVERRIDES: tuple[tuple[str, str], ...] = (
    ("INVENTORY_DATABASE_URL", "database_url"),
    ("DATABASE_URL", "database_url"),
    ("INVENTORY_LOCK_TIMEOUT_MS", "lock_timeout_ms"),
    ("INVENTORY_POOL_SIZE", "pool_size"),
    ("INVENTORY_LOG_LEVEL", "log_level"),
    ("INVENTORY_DB_ECHO", "echo"),
)

_INT_FIELDS = frozenset({"pool_size", "max_overflow", "pool_timeout", "lock_timeout_ms"})
_BOOL_FIELDS = frozenset({"echo"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with environment values applied."""
    merged = dict(data)
    seen: set[str] = set()
    for env_name, field_name in ENV_OVERRIDES:
        if field_name in seen or env_name not in environ:
            continue
        raw = environ[env_name]
        if field_name in _INT_FIELDS:
            try:
                merged[field_name] = int(raw)
            except ValueError:
                raise ValueError(f"{env_name} must be an integer, got {raw!r}") from None
        elif field_name in _BOOL_FIELDS:
            merged[field_name] = _parse_bool(raw)
        elif field_name == "log_level":
            merged[field_name] = raw.upper()
        else:
            merged[field_name] = raw
        seen.add(field_name)
    return merged


def parse_config(data: Mapping[str, Any]) -> InventoryConfig:
    """Build an InventoryConfig from a mapping, rejecting unknown keys."""
    known = {f.name for f in fields(InventoryConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
    values = dict(data)
    if "log_level" in values and isinstance(values["log_level"], str):
        values["log_level"] = values["log_level"].upper()
    return InventoryConfig(**values)


def load_config(path: Path, environ: Mapping[str, str]) -> InventoryConfig:
    """Load ``path``, apply overrides from ``environ``, and validate."""
    data = load_yaml_file(path)
    section = data.get("inventory", data)
    if not isinstance(section, dict):
        raise ValueError(f"{path}: 'inventory' section must be a mapping")
    return parse_config(apply_env_overrides(section, environ))
