"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
For nested settings, use double underscore: MEMBERSHIPS__MONTHLY_VISIBLE_PERIODS=12
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DatabaseSettings(BaseModel):
    """Database configuration."""

    url: str = Field("sqlite:///./subscribe.sqlite", description="SQLAlchemy database URL")
    echo: bool = Field(False, description="Echo SQL statements")
    pool_pre_ping: bool = Field(True, description="Test connections before use")


class ObservabilitySettings(BaseModel):
    """Logging configuration."""

    log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
    log_format: str = Field("json", description="Log format (json or text)")


class MembershipSettings(BaseModel):
    """Membership lifecycle and schedule configuration."""

    # Schedule visibility horizons (number of periods shown past the first)
    yearly_visible_periods: int = Field(5, ge=0, description="Horizon for yearly plans")
    monthly_visible_periods: int = Field(14, ge=0, description="Horizon for monthly plans")
    daily_visible_periods: int = Field(
        24, ge=0, description="Horizon for daily plans with a short interval"
    )
    daily_long_visible_periods: int = Field(
        18, ge=0, description="Horizon for daily plans with a long interval"
    )
    daily_interval_threshold: int = Field(
        15, ge=1, description="Largest day interval still treated as a short interval"
    )

    # Cancellation
    cancel_at_period_end_default: bool = Field(
        True, description="Schedule cancellations for the end of the current period"
    )

    # Money
    currency: str = Field("USD", description="Currency for plan prices")
    locale: str = Field("en_US", description="Locale used to format amounts")

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Normalise currency code."""
        return v.upper()


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]
    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]
    memberships: MembershipSettings = MembershipSettings()  # type: ignore[call-arg]


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


def reset_settings() -> None:
    """Reset settings (mainly for testing)."""
    global _settings
    _settings = None


# Convenience export
settings = get_settings()
