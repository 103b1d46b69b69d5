"""
Configuration Management for Trend Sync

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what the sync layer talks to and
ensures required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TrendApiSettings(BaseSettings):
    """Trend backend REST API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TREND_API_",
        extra="ignore"
    )

    base_url: str = Field(
        ...,
        description="Base URL of the Trend backend (e.g. https://api.example.com/api)"
    )
    token: Optional[str] = Field(
        default=None,
        description="Bearer token of an already authenticated session"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )

    # Retry policy for transient failures (network errors, 5xx)
    max_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts per request, including the first one"
    )
    retry_min_wait_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Minimum backoff between attempts"
    )
    retry_max_wait_seconds: float = Field(
        default=8.0,
        ge=0,
        description="Maximum backoff between attempts"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are joined with a leading slash."""
        return v.rstrip("/")


class SyncSettings(BaseSettings):
    """Behaviour of the local synchronization layer."""

    model_config = SettingsConfigDict(
        env_prefix="TREND_SYNC_",
        extra="ignore"
    )

    temp_id_prefix: str = Field(
        default="temp_",
        min_length=1,
        description="Prefix marking identifiers the backend has not assigned yet"
    )

    # Category rendering fallbacks
    fallback_category_icon: str = Field(
        default="albums-outline",
        description="Icon used when the backend omits one"
    )
    fallback_category_color: str = Field(
        default="#4ECDC4",
        description="Color used when the backend omits one"
    )
    fallback_categories_enabled: bool = Field(
        default=False,
        description="Offer built-in categories while the backend is unreachable"
    )

    max_description_length: int = Field(
        default=200,
        ge=1,
        description="Longest description a transaction may carry"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Level for the local structured log"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def trend_api(self) -> TrendApiSettings:
        return TrendApiSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("trend_api", "sync", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
