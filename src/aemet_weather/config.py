"""
Application settings.

Values come from environment variables prefixed with ``AEMET_`` or from a
``.env`` file in the working directory::

    AEMET_API_KEY=eyJhbGciOi...
    AEMET_TIMEOUT=15
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://opendata.aemet.es/opendata/api"


class Settings(BaseSettings):
    """Runtime configuration for the AEMET client and CLI."""

    model_config = SettingsConfigDict(
        env_prefix="AEMET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "aemet-weather"
    api_key: str = Field(default="", description="AEMET OpenData API key")
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=10.0, gt=0, description="Per-request timeout (seconds)")

    # Retry policy for transient connection drops
    max_attempts: int = Field(default=12, ge=1)
    backoff_base: float = Field(default=1.0, ge=0)
    backoff_cap: float = Field(default=10.0, ge=0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    debug: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (read once)."""
    return Settings()
