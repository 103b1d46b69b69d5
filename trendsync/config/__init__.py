"""Configuration package."""

from trendsync.config.settings import (
    AppSettings,
    Settings,
    SyncSettings,
    TrendApiSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "Settings",
    "SyncSettings",
    "TrendApiSettings",
    "get_settings",
    "validate_all_settings",
]
