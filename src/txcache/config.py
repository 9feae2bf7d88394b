"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """txcache settings loaded from environment variables.

    Optional:
        CACHE_BLOCKING: Wrap shared caches in a LockingCache
        CACHE_LOCK_TIMEOUT_MS: Bound on per-key lock waits (0 waits forever)
        CACHE_CANCEL_POLL_MS: How often a blocked wait checks for cancellation
        LOG_LEVEL: Logging level
        LOG_FILE: JSON-lines log file (console only when unset)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Locking
    CACHE_BLOCKING: bool = Field(
        default=True, description="Wrap shared caches in a LockingCache"
    )
    CACHE_LOCK_TIMEOUT_MS: int = Field(
        default=0, ge=0, description="Per-key lock wait bound in ms (0 = no timeout)"
    )
    CACHE_CANCEL_POLL_MS: int = Field(
        default=50, gt=0, le=10_000, description="Cancellation poll interval in ms"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def lock_timeout_ms(self) -> int | None:
        """Lock wait bound, or None when waits are unbounded."""
        return self.CACHE_LOCK_TIMEOUT_MS or None

    def display(self) -> dict[str, str | int | bool | None]:
        """Return settings as a plain dict for display."""
        return {
            "CACHE_BLOCKING": self.CACHE_BLOCKING,
            "CACHE_LOCK_TIMEOUT_MS": self.CACHE_LOCK_TIMEOUT_MS,
            "CACHE_CANCEL_POLL_MS": self.CACHE_CANCEL_POLL_MS,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
