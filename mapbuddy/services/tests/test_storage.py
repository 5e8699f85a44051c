"""Tests for persisted state slots."""

import json

import pytest

from mapbuddy.config import Settings
from mapbuddy.models import Budget, GroupSize, UserPreferences
from mapbuddy.services.errors import PreferencesFormatError
from mapbuddy.services.storage import (
    CREDENTIAL_SLOT,
    PREFERENCES_SLOT,
    InMemoryStateStore,
    SQLiteStateStore,
    clear_credential,
    clear_preferences,
    has_profile,
    load_preferences,
    resolve_credential,
    save_credential,
    save_preferences,
    update_preferences,
)


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def profile():
    return UserPreferences(
        name="Olena",
        age="28",
        location="Kyiv",
        interests=["music", "food"],
        budget=Budget.MEDIUM,
        group_size=GroupSize.SMALL_GROUP,
        languages=["Ukrainian", "English"],
    )


class TestCredentialSlot:
    """The reasoning credential."""

    def test_missing_credential_is_empty(self, store, settings) -> None:
        assert resolve_credential(store, settings) == ""

    def test_saved_credential_is_trimmed(self, store, settings) -> None:
        save_credential(store, "  sk-or-test  ")
        assert store.get(CREDENTIAL_SLOT) == "sk-or-test"
        assert resolve_credential(store, settings) == "sk-or-test"

    def test_environment_wins(self, store) -> None:
        save_credential(store, "sk-or-stored")
        settings = Settings(_env_file=None, openrouter_api_key="sk-or-env")
        assert resolve_credential(store, settings) == "sk-or-env"

    def test_clear(self, store, settings) -> None:
        save_credential(store, "sk-or-test")
        clear_credential(store)
        assert resolve_credential(store, settings) == ""


class TestPreferencesSlot:
    """The serialized user profile."""

    def test_nothing_stored(self, store) -> None:
        assert load_preferences(store) is None
        assert has_profile(store) is False

    def test_saved_with_camel_case_keys(self, store, profile) -> None:
        save_preferences(store, profile)
        data = json.loads(store.get(PREFERENCES_SLOT))
        assert data["groupSize"] == "small-group"
        assert data["preferredTime"] == "any"
        assert "group_size" not in data

    def test_load_returns_equal_profile(self, store, profile) -> None:
        save_preferences(store, profile)
        assert load_preferences(store) == profile
        assert has_profile(store) is True

    def test_loads_record_written_by_web_client(self, store) -> None:
        store.set(
            PREFERENCES_SLOT,
            json.dumps(
                {
                    "name": "Taras",
                    "age": "34",
                    "location": "Kyiv",
                    "interests": ["tech"],
                    "budget": "low",
                    "preferredTime": "evening",
                    "groupSize": "solo",
                    "activityLevel": "high",
                    "languages": [],
                    "dietaryRestrictions": ["vegetarian"],
                    "accessibility": [],
                    "somethingNew": True,
                }
            ),
        )
        preferences = load_preferences(store)
        assert preferences.name == "Taras"
        assert preferences.preferred_time.value == "evening"
        assert preferences.dietary_restrictions == ["vegetarian"]

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"', '{"budget": "unlimited"}'])
    def test_unreadable_record_raises(self, store, raw: str) -> None:
        store.set(PREFERENCES_SLOT, raw)
        with pytest.raises(PreferencesFormatError):
            load_preferences(store)
        assert has_profile(store) is False

    def test_update_existing_profile(self, store, profile) -> None:
        save_preferences(store, profile)
        updated = update_preferences(store, budget=Budget.HIGH, interests=["art"])
        assert updated.budget == Budget.HIGH
        assert load_preferences(store).interests == ["art"]
        assert load_preferences(store).name == "Olena"

    def test_update_without_profile_does_nothing(self, store) -> None:
        assert update_preferences(store, name="Nobody") is None
        assert store.get(PREFERENCES_SLOT) is None

    def test_incomplete_profile_is_not_a_profile(self, store) -> None:
        save_preferences(store, UserPreferences(name="Olena"))
        assert has_profile(store) is False

    def test_clear(self, store, profile) -> None:
        save_preferences(store, profile)
        clear_preferences(store)
        assert load_preferences(store) is None


class TestSQLiteStateStore:
    """Slots survive a new store instance on the same file."""

    def test_persists_across_instances(self, tmp_path, profile) -> None:
        db_path = tmp_path / "state" / "mapbuddy.db"
        first = SQLiteStateStore(db_path)
        save_credential(first, "sk-or-test")
        save_preferences(first, profile)

        second = SQLiteStateStore(db_path)
        assert second.get(CREDENTIAL_SLOT) == "sk-or-test"
        assert load_preferences(second) == profile

    def test_overwrite_and_delete(self, tmp_path) -> None:
        store = SQLiteStateStore(tmp_path / "mapbuddy.db")
        store.set("slot", "a")
        store.set("slot", "b")
        assert store.get("slot") == "b"
        store.delete("slot")
        assert store.get("slot") is None
        store.delete("slot")
