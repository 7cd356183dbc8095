"""Configuration package."""

from household_tracker.config.settings import (
    AppSettings,
    EngineSettings,
    Settings,
    TimezoneSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "EngineSettings",
    "Settings",
    "TimezoneSettings",
    "get_settings",
    "validate_all_settings",
]
