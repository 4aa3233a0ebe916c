"""
Configuration management using pydantic-settings.

Loads store configuration from IGNITEDOWN_* environment variables and .env
files, validates it, and builds StoreOptions for a store handle.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ignitedown.exceptions import ConfigurationError
from ignitedown.types import Location, StoreOptions


class Settings(BaseSettings):
    """Store settings loaded from environment variables.

    Optional (all prefixed with IGNITEDOWN_):
        LOCATION: Backend location, e.g. ignite://127.0.0.1:10800/kv
        KEY_SIZE: Key column width in characters
        VALUE_SIZE: Value column width in characters
        MAX_ATTEMPTS: Attempts per statement before giving up
        POLL_INTERVAL: Seconds between connection-state checks
        CONNECT_TIMEOUT: Seconds to wait for a connection (unset waits forever)
        UPSERT: merge | update_insert
        TABLE_TEMPLATE: Ignite cache template for the backing table
        BACKUPS: Ignite backup count for the backing table
        LOG_LEVEL: Logging level
        LOG_FILE: JSON log file path
    """

    model_config = SettingsConfigDict(
        env_prefix="IGNITEDOWN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    LOCATION: str = Field(
        default="ignite://127.0.0.1:10800/kvstore",
        description="Backend location descriptor",
    )
    KEY_SIZE: int = Field(default=256, ge=1, description="Key column width")
    VALUE_SIZE: int = Field(default=1024, ge=1, description="Value column width")

    MAX_ATTEMPTS: int = Field(
        default=3, ge=1, le=20, description="Attempts per statement"
    )
    POLL_INTERVAL: float = Field(
        default=0.1, gt=0.0, le=10.0, description="Connection poll interval (seconds)"
    )
    CONNECT_TIMEOUT: float | None = Field(
        default=None, gt=0.0, description="Connection wait deadline (seconds)"
    )
    UPSERT: Literal["merge", "update_insert"] = Field(
        default="merge", description="Upsert strategy for put"
    )

    TABLE_TEMPLATE: str = Field(default="partitioned", description="Ignite cache template")
    BACKUPS: int = Field(default=1, ge=0, description="Ignite backup count")

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON log file")

    @field_validator("LOCATION")
    @classmethod
    def validate_location(cls, v: str) -> str:
        """Validate that LOCATION parses as scheme://host:port/name.

        The name may be empty: a prefix such as ``ignite://h:10800/`` is
        completed by the location passed to ``IgniteDown.open``.
        """
        try:
            Location.parse(v, require_name=False)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v

    def store_options(self, location: str | None = None) -> StoreOptions:
        """Build StoreOptions, optionally replacing the configured location."""
        return StoreOptions(
            location=location or self.LOCATION,
            key_size=self.KEY_SIZE,
            value_size=self.VALUE_SIZE,
            max_attempts=self.MAX_ATTEMPTS,
            poll_interval=self.POLL_INTERVAL,
            connect_timeout=self.CONNECT_TIMEOUT,
            upsert=self.UPSERT,
            table_template=self.TABLE_TEMPLATE,
            backups=self.BACKUPS,
        )

    def display(self) -> dict[str, str | int | float | None]:
        """Return settings as a flat dict for display."""
        return {
            "LOCATION": self.LOCATION,
            "KEY_SIZE": self.KEY_SIZE,
            "VALUE_SIZE": self.VALUE_SIZE,
            "MAX_ATTEMPTS": self.MAX_ATTEMPTS,
            "POLL_INTERVAL": self.POLL_INTERVAL,
            "CONNECT_TIMEOUT": self.CONNECT_TIMEOUT,
            "UPSERT": self.UPSERT,
            "TABLE_TEMPLATE": self.TABLE_TEMPLATE,
            "BACKUPS": self.BACKUPS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
