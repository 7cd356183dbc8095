"""
Configuration Management for Household Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself takes plain arguments; these settings only provide
the defaults the orchestrator wires in.
"""

from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TimezoneSettings(BaseSettings):
    """Device timezone configuration for the date codec."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    device_timezone: Optional[str] = Field(
        default=None,
        description="IANA timezone of the device (e.g. America/Chicago)"
    )
    fallback_timezone: str = Field(
        default="America/New_York",
        description="Timezone used when the device timezone is unavailable"
    )

    @field_validator('fallback_timezone')
    @classmethod
    def validate_fallback_timezone(cls, v: str) -> str:
        """The fallback must always resolve, otherwise there is nothing to fall back to."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown fallback timezone: {v}")
        return v


class EngineSettings(BaseSettings):
    """Recurring event engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    window_weeks: int = Field(
        default=6,
        ge=1,
        le=52,
        description="Length of the forward-looking occurrence window in weeks"
    )
    merge_policy: str = Field(
        default="keep_all",
        pattern="^(keep_all|suppress_matched)$",
        description="Whether recorded events suppress matching generated occurrences"
    )

    # Collaborator-side retry. The engine itself never retries.
    fetch_retry_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per fetch (1 = no retry)"
    )
    fetch_retry_max_wait_seconds: float = Field(
        default=10.0,
        ge=0.0,
        le=120.0,
        description="Upper bound on the exponential backoff between attempts"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
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

    @property
    def timezone(self) -> TimezoneSettings:
        return TimezoneSettings()

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    "<name>_error" entries describing any failure.
    """
    results = {}

    settings = get_settings()

    for name in ("timezone", "engine", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
