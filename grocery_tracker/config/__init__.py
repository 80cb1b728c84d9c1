"""Configuration package."""

from grocery_tracker.config.settings import (
    AppSettings,
    ConfigurationError,
    HouseholdSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ConfigurationError",
    "HouseholdSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
