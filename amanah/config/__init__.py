"""Configuration package."""

from amanah.config.settings import (
    REMINDER_THRESHOLDS_DAYS,
    AppSettings,
    LoggingSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "REMINDER_THRESHOLDS_DAYS",
    "AppSettings",
    "LoggingSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
