"""
Profile Repository

Owns the storage key layout and the JSON shape of everything FinTrack
persists. Backends (file, memory) only move strings.

Key layout:
    fintrack_profiles         JSON list of profile names
    fintrack_activeProfile    name of the active profile (raw string)
    fintrack_data_<name>      ProfileData document for one profile
    fintrack_language         raw string
    fintrack_currency         raw string
    fintrack_geminiApiKey     raw string, absent when unset

DESIGN DECISION: Reading never raises on bad data. An unparseable key is
logged and replaced by its default, so one damaged document cannot lock
the user out of the app. Writing always propagates StorageError.
"""

import json
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from fintrack.config import get_settings
from fintrack.config.settings import AppSettings
from fintrack.models.appdata import AppBundle, AppPreferences, ValidationIssue
from fintrack.models.finance import Currency, Language, ProfileData
from fintrack.services.storage.interface import (
    DuplicateError,
    InvalidNameError,
    KeyValueStore,
    NotFoundError,
    ProtectedProfileError,
)
from fintrack.validation.importer import ImportValidator


logger = structlog.get_logger(__name__)

PROFILES_KEY = "fintrack_profiles"
ACTIVE_PROFILE_KEY = "fintrack_activeProfile"
DATA_KEY_PREFIX = "fintrack_data_"
LANGUAGE_KEY = "fintrack_language"
CURRENCY_KEY = "fintrack_currency"
API_KEY_KEY = "fintrack_geminiApiKey"


def data_key(profile: str) -> str:
    return f"{DATA_KEY_PREFIX}{profile}"


class ProfileRepository:
    """
    Named profiles and preferences on top of a KeyValueStore.

    Profile rules:
    - names are trimmed and must be non-empty and unique
    - the default profile and the last remaining profile cannot be deleted
    - deleting or renaming the active profile keeps `active` valid
    """

    def __init__(
        self,
        store: KeyValueStore,
        app_settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._app = app_settings or get_settings().app
        self._coercer = ImportValidator(default_preferences=self.default_preferences())

    @property
    def default_profile(self) -> str:
        return self._app.default_profile_name

    def default_preferences(self) -> AppPreferences:
        return AppPreferences(
            language=Language(self._app.default_language),
            currency=Currency(self._app.default_currency),
        )

    # =========================================================================
    # Raw access
    # =========================================================================

    def _read_json(self, key: str, default: Any) -> Any:
        raw = self._store.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("storage_value_unreadable", key=key)
            return default

    def _write_json(self, key: str, value: Any) -> None:
        self._store.set(key, json.dumps(value))

    # =========================================================================
    # Profiles
    # =========================================================================

    def list_profiles(self) -> list[str]:
        profiles = self._read_json(PROFILES_KEY, None)
        if (
            not isinstance(profiles, list)
            or not profiles
            or not all(isinstance(p, str) for p in profiles)
        ):
            return [self.default_profile]
        return profiles

    def get_active_profile(self) -> str:
        """Stored active profile, or the first profile if it is missing or stale."""
        profiles = self.list_profiles()
        active = self._store.get(ACTIVE_PROFILE_KEY)
        if active in profiles:
            return active
        return profiles[0]

    def set_active_profile(self, name: str) -> None:
        if name not in self.list_profiles():
            raise NotFoundError(f"Profile not found: {name}")
        self._store.set(ACTIVE_PROFILE_KEY, name)
        logger.info("active_profile_changed", profile=name)

    def load_profile(self, name: str) -> ProfileData:
        """
        Load a profile's data.

        Missing data gives an empty profile. Damaged entries are repaired
        or dropped (and logged), never raised.
        """
        raw = self._read_json(data_key(name), None)
        if raw is None:
            return ProfileData()

        try:
            return ProfileData.model_validate(raw)
        except ValidationError:
            issues: list[ValidationIssue] = []
            profile, _ = self._coercer.coerce_profile(raw, name, issues)
            logger.warning(
                "profile_data_repaired",
                profile=name,
                issues=[f"{i.field}: {i.message}" for i in issues if i.severity != "info"],
            )
            return profile

    def save_profile(self, name: str, data: ProfileData) -> None:
        self._write_json(data_key(name), data.to_json_dict())

    def _clean_name(self, name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidNameError("Profile name cannot be empty")
        return cleaned

    def create_profile(self, name: str, data: Optional[ProfileData] = None) -> str:
        """
        Add a profile with empty (or the given) data.

        Returns:
            The trimmed profile name

        Raises:
            InvalidNameError: If the name is blank
            DuplicateError: If the name is taken
        """
        name = self._clean_name(name)
        profiles = self.list_profiles()
        if name in profiles:
            raise DuplicateError(f"Profile already exists: {name}")

        self.save_profile(name, data or ProfileData())
        self._write_json(PROFILES_KEY, profiles + [name])
        logger.info("profile_created", profile=name)
        return name

    def delete_profile(self, name: str) -> str:
        """
        Remove a profile and its data.

        Returns:
            The active profile after deletion

        Raises:
            ProtectedProfileError: For the default or the last profile
            NotFoundError: If the profile does not exist
        """
        profiles = self.list_profiles()
        if name not in profiles:
            raise NotFoundError(f"Profile not found: {name}")
        if name == self.default_profile:
            raise ProtectedProfileError(f"The '{name}' profile cannot be deleted")
        if len(profiles) == 1:
            raise ProtectedProfileError("The last profile cannot be deleted")

        was_active = self.get_active_profile() == name
        remaining = [p for p in profiles if p != name]
        self._write_json(PROFILES_KEY, remaining)
        self._store.delete(data_key(name))
        if was_active:
            self._store.set(ACTIVE_PROFILE_KEY, remaining[0])

        logger.info("profile_deleted", profile=name)
        return self.get_active_profile()

    def rename_profile(self, old_name: str, new_name: str) -> str:
        """
        Rename a profile, moving its data. Renaming to the same name is a no-op.

        Raises:
            NotFoundError: If `old_name` does not exist
            InvalidNameError: If `new_name` is blank
            DuplicateError: If `new_name` belongs to another profile
        """
        new_name = self._clean_name(new_name)
        profiles = self.list_profiles()
        if old_name not in profiles:
            raise NotFoundError(f"Profile not found: {old_name}")
        if new_name == old_name:
            return new_name
        if new_name in profiles:
            raise DuplicateError(f"Profile already exists: {new_name}")

        was_active = self.get_active_profile() == old_name
        self.save_profile(new_name, self.load_profile(old_name))
        self._write_json(
            PROFILES_KEY,
            [new_name if p == old_name else p for p in profiles],
        )
        self._store.delete(data_key(old_name))
        if was_active:
            self._store.set(ACTIVE_PROFILE_KEY, new_name)

        logger.info("profile_renamed", old_name=old_name, new_name=new_name)
        return new_name

    def duplicate_profile(self, source: str, new_name: str) -> str:
        """Create `new_name` holding a copy of `source`'s data."""
        if source not in self.list_profiles():
            raise NotFoundError(f"Profile not found: {source}")
        return self.create_profile(new_name, self.load_profile(source).model_copy(deep=True))

    # =========================================================================
    # Preferences
    # =========================================================================

    def load_preferences(self) -> AppPreferences:
        """Stored preferences; unknown values fall back to the defaults."""
        defaults = self.default_preferences()

        language = self._store.get(LANGUAGE_KEY)
        currency = self._store.get(CURRENCY_KEY)
        try:
            language = Language(language) if language else defaults.language
        except ValueError:
            logger.warning("stored_language_unsupported", value=language)
            language = defaults.language
        try:
            currency = Currency(currency) if currency else defaults.currency
        except ValueError:
            logger.warning("stored_currency_unsupported", value=currency)
            currency = defaults.currency

        return AppPreferences(
            language=language,
            currency=currency,
            gemini_api_key=self._store.get(API_KEY_KEY),
        )

    def save_preferences(self, preferences: AppPreferences) -> None:
        self._store.set(LANGUAGE_KEY, preferences.language.value)
        self._store.set(CURRENCY_KEY, preferences.currency.value)
        if preferences.gemini_api_key:
            self._store.set(API_KEY_KEY, preferences.gemini_api_key)
        else:
            self._store.delete(API_KEY_KEY)

    # =========================================================================
    # Export / import
    # =========================================================================

    def export_bundle(self) -> AppBundle:
        profiles = self.list_profiles()
        return AppBundle(
            active_profile=self.get_active_profile(),
            profiles=profiles,
            profile_data={name: self.load_profile(name) for name in profiles},
            settings=self.load_preferences(),
        )

    def import_bundle(self, bundle: AppBundle) -> None:
        """
        Replace every local profile and the preferences with the bundle.

        Data keys of profiles that are not in the bundle are removed.
        """
        for name in self.list_profiles():
            if name not in bundle.profiles:
                self._store.delete(data_key(name))

        for name in bundle.profiles:
            self.save_profile(name, bundle.profile_data.get(name) or ProfileData())
        self._write_json(PROFILES_KEY, list(bundle.profiles))
        self._store.set(ACTIVE_PROFILE_KEY, bundle.active_profile)
        self.save_preferences(bundle.settings)

        logger.info("bundle_imported", profiles=bundle.profiles)
