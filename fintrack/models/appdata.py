"""
Application-level Models

Preferences, the export bundle and the import validation report.

The export bundle is a single JSON document holding every profile's data
plus the app settings. Importing one replaces all local profiles.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from fintrack.models.finance import (
    Currency,
    FinTrackModel,
    Language,
    ProfileData,
    utc_now,
)


class AppPreferences(FinTrackModel):
    """User-chosen display settings and the optional Gemini API key."""

    language: Language = Language.EN
    currency: Currency = Currency.EUR
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Stored locally; never included in logs"
    )

    @field_validator('gemini_api_key', mode='before')
    @classmethod
    def blank_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class AppBundle(FinTrackModel):
    """
    Export/import document.

    Shape (camelCase on disk):
        {activeProfile, profiles, profileData: {name: ProfileData}, settings}
    """

    active_profile: str = Field(..., min_length=1)
    profiles: list[str] = Field(..., min_length=1)
    profile_data: dict[str, ProfileData] = Field(default_factory=dict)
    settings: AppPreferences = Field(default_factory=AppPreferences)
    exported_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_profiles(self) -> 'AppBundle':
        """Profiles are unique and the active one is among them."""
        if len(set(self.profiles)) != len(self.profiles):
            raise ValueError("Profile names must be unique")
        if self.active_profile not in self.profiles:
            raise ValueError(
                f"Active profile '{self.active_profile}' is not in the profile list"
            )
        return self


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(FinTrackModel):
    """A single problem found (and usually repaired) while importing."""

    field: str = Field(
        ...,
        description="Path of the offending value, e.g. 'profileData.Home.income[2].id'"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'dropped')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(FinTrackModel):
    """
    Result of the two-stage import validation.

    Stage 1: Structure (rejects the whole import)
    Stage 2: Coercion (repairs and reports)
    """

    validated_at: datetime = Field(default_factory=utc_now)

    structure_valid: bool = Field(
        ...,
        description="Did the top-level document have the required shape?"
    )
    legacy_format: bool = Field(
        default=False,
        description="Were split income/expenses/payments arrays converted?"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "warning")

    @property
    def repaired(self) -> bool:
        """True when stage 2 had to change anything."""
        return bool(self.issues)
