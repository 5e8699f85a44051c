"""
Persisted state slots.

Two independent opaque string slots survive restarts: the reasoning
credential and the serialized user preference record. Supports SQLite
persistence (when STATE_DB_PATH is set) and in-memory storage otherwise.
"""

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from mapbuddy.config import Settings, get_settings
from mapbuddy.models import UserPreferences
from mapbuddy.services.errors import PreferencesFormatError

logger = logging.getLogger(__name__)

CREDENTIAL_SLOT = "openRouterApiKey"
PREFERENCES_SLOT = "mapBuddyUserPreferences"


class InMemoryStateStore:
    """Slot storage that lives only as long as the process."""

    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._slots.get(key)

    def set(self, key: str, value: str) -> None:
        self._slots[key] = value

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)


class SQLiteStateStore:
    """Slot storage backed by a single SQLite table."""

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS state_slots (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> str | None:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM state_slots WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO state_slots (key, value) VALUES (?, ?)", (key, value)
            )

    def delete(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM state_slots WHERE key = ?", (key,))


StateStore = Union[InMemoryStateStore, SQLiteStateStore]


# ============================================================================
# Credential slot
# ============================================================================


def resolve_credential(store: StateStore, settings: Settings | None = None) -> str:
    """Return the reasoning credential; the environment wins over the stored slot."""
    if settings is None:
        settings = get_settings()
    if settings.openrouter_api_key:
        return settings.openrouter_api_key
    return store.get(CREDENTIAL_SLOT) or ""


def save_credential(store: StateStore, api_key: str) -> None:
    store.set(CREDENTIAL_SLOT, api_key.strip())
    logger.info("Stored reasoning credential")


def clear_credential(store: StateStore) -> None:
    store.delete(CREDENTIAL_SLOT)


# ============================================================================
# Preferences slot
# ============================================================================


def load_preferences(store: StateStore) -> UserPreferences | None:
    """
    Load the stored preference record.

    Returns:
        The parsed profile, or None when nothing has been saved

    Raises:
        PreferencesFormatError: If the slot holds something that is not a profile
    """
    raw = store.get(PREFERENCES_SLOT)
    if raw is None:
        return None

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PreferencesFormatError(f"Stored preferences are not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PreferencesFormatError("Stored preferences must be a JSON object")

    try:
        return UserPreferences.model_validate(data)
    except ValidationError as e:
        raise PreferencesFormatError(f"Stored preferences are invalid: {e}") from e


def save_preferences(store: StateStore, preferences: UserPreferences) -> None:
    store.set(PREFERENCES_SLOT, preferences.model_dump_json(by_alias=True))
    logger.info("Saved user preferences for %s", preferences.name or "anonymous user")


def update_preferences(store: StateStore, **changes: Any) -> UserPreferences | None:
    """Apply field changes to an existing profile; does nothing when none is stored."""
    current = load_preferences(store)
    if current is None:
        return None
    merged = {**current.model_dump(), **changes}
    updated = UserPreferences.model_validate(merged)
    save_preferences(store, updated)
    return updated


def clear_preferences(store: StateStore) -> None:
    store.delete(PREFERENCES_SLOT)


def has_profile(store: StateStore) -> bool:
    """Check if the user has completed profile setup."""
    try:
        preferences = load_preferences(store)
    except PreferencesFormatError:
        logger.warning("Ignoring unreadable stored preferences", exc_info=True)
        return False
    return preferences is not None and preferences.is_complete


# Global store instance
_state_store: StateStore | None = None


def get_state_store() -> StateStore:
    """Get the global state store, choosing SQLite when a path is configured."""
    global _state_store
    if _state_store is None:
        settings = get_settings()
        if settings.has_persistence:
            _state_store = SQLiteStateStore(settings.state_db_path)
            logger.info("State store initialized with SQLite persistence: %s", settings.state_db_path)
        else:
            _state_store = InMemoryStateStore()
            logger.info("State store initialized in non-persisted (in-memory) mode")
    return _state_store


def init_state_store(store: StateStore) -> StateStore:
    """Replace the global state store (application startup and tests)."""
    global _state_store
    _state_store = store
    return _state_store
