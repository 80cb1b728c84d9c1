"""
Configuration Management for Grocery Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The hosted backend and third-party integrations are configured by the
surrounding application; only the knobs this core owns live here.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when a settings section fails validation at startup."""
    pass


class HouseholdSettings(BaseSettings):
    """Household invitation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HOUSEHOLD_",
        extra="ignore"
    )

    invite_code_length: int = Field(
        default=6,
        ge=4,
        le=16,
        description="Number of characters in a household invite code"
    )
    # No 0/O or 1/I/L so codes can be read out loud
    invite_code_alphabet: str = Field(
        default="ABCDEFGHJKLMNPQRSTUVWXYZ23456789",
        min_length=2,
        description="Characters invite codes are drawn from"
    )
    invite_code_max_attempts: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many random codes to try before accepting a collision"
    )

    @field_validator('invite_code_alphabet')
    @classmethod
    def validate_alphabet(cls, v: str) -> str:
        """Invite codes are compared upper-cased, so the alphabet must be too."""
        if v != v.upper():
            raise ValueError("Invite code alphabet must be upper-case")
        if len(set(v)) != len(v):
            raise ValueError("Invite code alphabet must not repeat characters")
        return v


class StorageSettings(BaseSettings):
    """Retry policy applied by the storage collaborator layer."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per storage call on connection failures"
    )
    retry_wait_min_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum backoff between attempts"
    )
    retry_wait_max_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum backoff between attempts"
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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
    def household(self) -> HouseholdSettings:
        return HouseholdSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Returns a dict of {setting_name: is_valid}, plus an
    "<name>_error" entry for every section that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("household", "storage", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
