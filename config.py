"""
Configuration settings for study-tracker.

Uses Pydantic Settings for environment variable management with .env file support.
All variables are read with the STUDY_TRACKER_ prefix, e.g. STUDY_TRACKER_REMOTE_URL.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STUDY_TRACKER_",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Remote persistence (PostgREST / Supabase)
    # ========================================
    remote_url: str = Field(
        default="http://localhost:54321",
        description="Base URL of the persistence service (without /rest/v1)",
    )
    remote_api_key: str = Field(
        default="",
        description="Project API key sent in the apikey header",
    )
    remote_access_token: str | None = Field(
        default=None,
        description="User access token; falls back to the API key when unset",
    )
    subjects_table: str = Field(
        default="subjects",
        description="Collection holding subject records",
    )
    rows_table: str = Field(
        default="study_rows",
        description="Collection holding row records",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout for remote calls",
    )

    # ========================================
    # Tracker
    # ========================================
    total_rounds: int = Field(
        default=8,
        ge=1,
        description="Number of repetition rounds tracked per row",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def has_remote_configured(self) -> bool:
        """Check if the persistence service credentials are set."""
        return bool(self.remote_url and self.remote_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
