"""
Configuration Management for FinTrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
User-facing preferences (language, currency, API key) are NOT here: they
live in the profile store and travel with exports. This module only holds
process-level defaults and service knobs.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local key/value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".fintrack",
        description="Directory holding one JSON file per storage key"
    )
    audit_log_limit: int = Field(
        default=500,
        ge=10,
        le=10000,
        description="How many recent audit events are kept in the store"
    )

    @field_validator('data_dir')
    @classmethod
    def expand_data_dir(cls, v: Path) -> Path:
        """Allow '~' in the configured path."""
        return v.expanduser()


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    # Optional here: the key normally comes from the user's preferences
    api_key: Optional[str] = Field(
        default=None,
        description="Fallback Gemini API key when none is stored in preferences"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per insight request before giving up"
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

    # Profiles
    default_profile_name: str = Field(
        default="Default",
        min_length=1,
        description="Profile created on first run; can never be deleted"
    )

    # Display defaults (used until the user picks their own)
    default_language: str = Field(
        default="en",
        pattern="^(en|de|ar)$",
        description="Initial UI language"
    )
    default_currency: str = Field(
        default="EUR",
        pattern="^(EUR|USD|GBP)$",
        description="Initial display currency"
    )

    # Projection windows
    cashflow_window_months: int = Field(
        default=12,
        ge=1,
        le=60,
        description="Trailing months shown in the cashflow trend"
    )
    projection_years: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Years covered by the long-term balance projection"
    )
    upcoming_payments_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many upcoming payments the dashboard lists"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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
    Useful for startup checks and the Settings page.
    """
    results = {}

    settings = get_settings()

    sections = {
        "storage": lambda: settings.storage,
        "gemini": lambda: settings.gemini,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except ValueError as e:
            # pydantic.ValidationError subclasses ValueError
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
