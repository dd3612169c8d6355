"""Tests for the key/value stores, the audit store and the profile repository."""

import json
import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from fintrack.config.settings import AppSettings
from fintrack.models import (
    AppPreferences,
    AuditEventBuilder,
    AuditEventType,
    Currency,
    Income,
    Language,
    ProfileData,
)
from fintrack.services.storage import (
    DuplicateError,
    FileKeyValueStore,
    InvalidNameError,
    KeyValueAuditStorage,
    MemoryKeyValueStore,
    NotFoundError,
    ProfileRepository,
    ProtectedProfileError,
)
from fintrack.services.storage.repository import (
    ACTIVE_PROFILE_KEY,
    API_KEY_KEY,
    LANGUAGE_KEY,
    PROFILES_KEY,
    data_key,
)


class TestMemoryStore:
    """In-memory backend."""

    def test_get_set_delete(self, store):
        assert store.get("a") is None
        store.set("a", "1")
        assert store.get("a") == "1"
        assert store.contains("a")
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert not store.contains("a")

    def test_keys_sorted(self):
        store = MemoryKeyValueStore({"b": "2", "a": "1"})
        assert store.keys() == ["a", "b"]


class TestFileStore:
    """One file per key in a directory."""

    def test_round_trip(self, tmp_path):
        store = FileKeyValueStore(tmp_path / "data")
        store.set("fintrack_profiles", '["Default"]')
        assert store.get("fintrack_profiles") == '["Default"]'
        assert (tmp_path / "data").is_dir()

    def test_unusual_key_names(self, tmp_path):
        """Spaces, slashes and umlauts survive as file names."""
        store = FileKeyValueStore(tmp_path)
        key = data_key("Küche / Haus 2")
        store.set(key, "{}")
        assert store.get(key) == "{}"
        assert store.keys() == [key]

    def test_missing_key(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        assert store.get("nope") is None
        assert store.delete("nope") is False

    def test_delete(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        store.set("a", "1")
        assert store.delete("a") is True
        assert store.keys() == []

    def test_overwrite_leaves_no_temp_files(self, tmp_path):
        store = FileKeyValueStore(tmp_path)
        store.set("a", "1")
        store.set("a", "2")
        assert store.get("a") == "2"
        assert [p.name for p in tmp_path.iterdir()] == ["a.json"]


def _created(profile: str, correlation_id=None):
    return AuditEventBuilder.profile_event(
        AuditEventType.PROFILE_CREATED, profile, f"Profile created: {profile}",
        correlation_id=correlation_id,
    )


class TestAuditStorage:
    """Capped audit list, newest first."""

    def test_cap_and_order(self, store):
        storage = KeyValueAuditStorage(store, limit=3)
        for index in range(5):
            storage.append_event(AuditEventBuilder.balance_updated(
                "Default", str(index), str(index + 1)
            ))

        events = storage.get_recent_events()
        assert len(events) == 3
        assert [e.details["new_balance"] for e in events] == ["5", "4", "3"]

    def test_filter_by_profile(self, store):
        storage = KeyValueAuditStorage(store)
        storage.append_event(_created("Home"))
        storage.append_event(_created("Work"))
        assert [e.profile for e in storage.get_recent_events(profile="Work")] == ["Work"]

    def test_by_correlation_id(self, store):
        storage = KeyValueAuditStorage(store)
        correlation_id = uuid4()
        event = _created("Home", correlation_id)
        storage.append_event(event)
        storage.append_event(_created("Work", uuid4()))
        found = storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_id for e in found] == [event.event_id]

    def test_corrupt_log_reads_empty(self, store):
        store.set(KeyValueAuditStorage.AUDIT_KEY, "not json")
        storage = KeyValueAuditStorage(store)
        assert storage.get_recent_events() == []
        assert storage.append_event(_created("Home"))
        assert len(storage.get_recent_events()) == 1


class TestProfileRules:
    """Create, rename, duplicate and delete."""

    def test_defaults_on_empty_store(self, repository):
        assert repository.list_profiles() == ["Default"]
        assert repository.get_active_profile() == "Default"
        assert repository.load_profile("Default") == ProfileData()

    def test_create_trims_name(self, repository, store):
        assert repository.create_profile("  Holiday ") == "Holiday"
        assert repository.list_profiles() == ["Default", "Holiday"]
        assert store.contains(data_key("Holiday"))

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_create_rejects_blank(self, repository, name):
        with pytest.raises(InvalidNameError):
            repository.create_profile(name)

    def test_create_rejects_duplicate(self, repository):
        repository.create_profile("Holiday")
        with pytest.raises(DuplicateError):
            repository.create_profile("Holiday")

    def test_default_profile_is_protected(self, repository):
        repository.create_profile("Holiday")
        with pytest.raises(ProtectedProfileError):
            repository.delete_profile("Default")

    def test_last_profile_is_protected(self, store):
        repository = ProfileRepository(store, AppSettings(default_profile_name="Main"))
        store.set(PROFILES_KEY, json.dumps(["Solo"]))
        with pytest.raises(ProtectedProfileError):
            repository.delete_profile("Solo")

    def test_delete_active_switches_to_first_remaining(self, repository, store):
        repository.create_profile("Holiday")
        repository.set_active_profile("Holiday")

        assert repository.delete_profile("Holiday") == "Default"
        assert repository.list_profiles() == ["Default"]
        assert not store.contains(data_key("Holiday"))

    def test_delete_unknown(self, repository):
        with pytest.raises(NotFoundError):
            repository.delete_profile("Nope")

    def test_rename_moves_data_and_active(self, repository, store):
        data = ProfileData(current_balance=Decimal("42"))
        repository.create_profile("Old", data)
        repository.set_active_profile("Old")

        assert repository.rename_profile("Old", " New ") == "New"
        assert repository.list_profiles() == ["Default", "New"]
        assert repository.get_active_profile() == "New"
        assert repository.load_profile("New").current_balance == Decimal("42")
        assert not store.contains(data_key("Old"))

    def test_rename_to_same_name_is_noop(self, repository):
        repository.create_profile("Home")
        assert repository.rename_profile("Home", "Home") == "Home"
        assert repository.list_profiles() == ["Default", "Home"]

    def test_rename_to_taken_name(self, repository):
        repository.create_profile("Home")
        with pytest.raises(DuplicateError):
            repository.rename_profile("Home", "Default")

    def test_duplicate_copies_data(self, repository):
        source = ProfileData(transactions=[
            Income(name="Salary", amount=Decimal("3000"), date=date(2024, 1, 1)),
        ])
        repository.save_profile("Default", source)

        repository.duplicate_profile("Default", "Copy")
        copy = repository.load_profile("Copy")
        assert copy == source

        copy.set_current_balance(Decimal("99"))
        repository.save_profile("Copy", copy)
        assert repository.load_profile("Default").current_balance == Decimal("0")

    def test_set_active_unknown(self, repository):
        with pytest.raises(NotFoundError):
            repository.set_active_profile("Nope")

    def test_stale_active_falls_back(self, repository, store):
        store.set(ACTIVE_PROFILE_KEY, "Gone")
        assert repository.get_active_profile() == "Default"


class TestDamagedData:
    """Bad stored documents degrade to defaults instead of raising."""

    def test_corrupt_profile_list(self, repository, store):
        store.set(PROFILES_KEY, "{broken")
        assert repository.list_profiles() == ["Default"]

    def test_corrupt_profile_data(self, repository, store):
        store.set(data_key("Default"), "not json")
        assert repository.load_profile("Default") == ProfileData()

    def test_damaged_entries_are_repaired(self, repository, store):
        store.set(data_key("Default"), json.dumps({
            "transactions": [
                {"category": "income", "recurrence": "monthly", "name": "Salary",
                 "amount": 3000, "date": "2024-01-01"},
                {"category": "expense", "name": "Broken", "amount": -5, "date": "2024-01-01"},
            ],
            "currentBalance": 100,
        }))
        profile = repository.load_profile("Default")
        assert [t.name for t in profile.transactions] == ["Salary"]
        assert profile.transactions[0].id
        assert profile.current_balance == Decimal("100")

    def test_non_finite_balance_is_reset(self, repository, store):
        store.set(data_key("Default"), '{"currentBalance": "Infinity", "transactions": []}')
        assert repository.load_profile("Default").current_balance == Decimal("0")


class TestPreferences:
    """Language, currency and the API key."""

    def test_defaults(self, repository):
        assert repository.load_preferences() == AppPreferences()

    def test_round_trip(self, repository, store):
        repository.save_preferences(AppPreferences(
            language=Language.DE, currency=Currency.GBP, gemini_api_key="secret",
        ))
        prefs = repository.load_preferences()
        assert prefs.language == Language.DE
        assert prefs.currency == Currency.GBP
        assert prefs.gemini_api_key == "secret"

        repository.save_preferences(prefs.model_copy(update={"gemini_api_key": None}))
        assert not store.contains(API_KEY_KEY)

    def test_unsupported_stored_language(self, repository, store):
        store.set(LANGUAGE_KEY, "fr")
        assert repository.load_preferences().language == Language.EN

    def test_configured_defaults(self, store):
        repository = ProfileRepository(
            store, AppSettings(default_language="ar", default_currency="USD")
        )
        prefs = repository.load_preferences()
        assert (prefs.language, prefs.currency) == (Language.AR, Currency.USD)


class TestBundle:
    """Export and import of everything at once."""

    def test_export(self, repository, salary_and_rent):
        repository.save_profile("Default", salary_and_rent)
        repository.create_profile("Holiday")

        bundle = repository.export_bundle()
        assert bundle.profiles == ["Default", "Holiday"]
        assert bundle.active_profile == "Default"
        assert bundle.profile_data["Default"] == salary_and_rent
        assert bundle.profile_data["Holiday"] == ProfileData()

    def test_import_replaces_everything(self, repository, store, salary_and_rent):
        repository.create_profile("Stale")
        bundle = repository.export_bundle().model_copy(update={
            "profiles": ["Work"],
            "active_profile": "Work",
            "profile_data": {"Work": salary_and_rent},
            "settings": AppPreferences(language=Language.DE),
        })

        repository.import_bundle(bundle)
        assert repository.list_profiles() == ["Work"]
        assert repository.get_active_profile() == "Work"
        assert repository.load_profile("Work") == salary_and_rent
        assert repository.load_preferences().language == Language.DE
        assert not store.contains(data_key("Stale"))
        assert not store.contains(data_key("Default"))
