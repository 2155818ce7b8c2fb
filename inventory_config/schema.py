"""
InventoryConfig schema.

Frozen runtime settings for the inventory kernel.  YAML files are parsed into
this type by the loader; nothing else in the system reads configuration files
or environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class InventoryConfig:
    """Database, locking and logging settings."""

    database_url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    lock_timeout_ms: int = 5000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required")
        for name in ("pool_size", "pool_timeout", "lock_timeout_ms"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if isinstance(self.max_overflow, bool) or not isinstance(self.max_overflow, int) \
                or self.max_overflow < 0:
            raise ValueError(
                f"max_overflow must be a non-negative integer, got {self.max_overflow!r}"
            )
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(VALID_LOG_LEVELS)}, "
                f"got {self.log_level!r}"
            )

    @property
    def redacted_database_url(self) -> str:
        """database_url with any password masked, for logs."""
        scheme, sep, rest = self.database_url.partition("://")
        if not sep or "@" not in rest:
            return self.database_url
        credentials, _, host = rest.rpartition("@")
        user = credentials.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"
