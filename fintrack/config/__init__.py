"""Configuration package."""

from fintrack.config.settings import (
    AppSettings,
    GeminiSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from fintrack.config.context import DEFAULT_CONTEXT, DisplayContext

__all__ = [
    "AppSettings",
    "DEFAULT_CONTEXT",
    "DisplayContext",
    "GeminiSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
