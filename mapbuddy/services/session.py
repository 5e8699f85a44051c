"""
Session management for discovery chat.

A discovery session binds one conversation manager, one highlight broker and
the date currently selected in the list/map view. Sessions live in memory
for the lifetime of the process and are torn down explicitly.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Union

import httpx

from mapbuddy.agents.base import IntentMatcher
from mapbuddy.agents.selection import select_matcher
from mapbuddy.config import Settings, get_settings
from mapbuddy.models import Event, UserPreferences
from mapbuddy.services.catalog import Catalog, get_catalog
from mapbuddy.services.conversation import ConversationManager
from mapbuddy.services.errors import PreferencesFormatError
from mapbuddy.services.highlight import HighlightBroker
from mapbuddy.services.storage import (
    StateStore,
    get_state_store,
    load_preferences,
    resolve_credential,
)
from mapbuddy.services.temporal import DateResolver

logger = logging.getLogger(__name__)


@dataclass
class DiscoverySession:
    """Everything one open map view needs."""

    session_id: str
    catalog: Catalog
    resolver: DateResolver
    broker: HighlightBroker
    conversation: ConversationManager = field(init=False)
    selected_date: date | None = None

    def visible_events(self) -> list[Event]:
        """The catalog slice for the selected date (today when none is selected)."""
        today = self.resolver.today()
        return self.catalog.visible_on(self.selected_date or today, today)


class SessionManager:
    """
    Manages discovery sessions keyed by id.

    Usage:
        manager = SessionManager()
        session = manager.get_session("device-123")
        await session.conversation.submit("any jazz tonight?")
        await manager.close_session("device-123")
    """

    def __init__(
        self,
        catalog: Catalog | None = None,
        store: StateStore | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the session manager.

        Args:
            catalog: Event catalog shared by all sessions. Defaults to the seed catalog
            store: Persisted slots for credential and preferences
            settings: Application settings
            http_client: Transport handed to reasoning clients (tests inject a mock)
        """
        self.catalog = catalog or get_catalog()
        self.store = store if store is not None else get_state_store()
        self.settings = settings or get_settings()
        self._http_client = http_client
        self._sessions: dict[str, DiscoverySession] = {}
        # Matchers swapped out mid-turn, closed once that turn is over
        self._retiring: dict[asyncio.Task[None], IntentMatcher] = {}

    @property
    def http_client(self) -> httpx.AsyncClient | None:
        return self._http_client

    @property
    def has_credential(self) -> bool:
        return bool(resolve_credential(self.store, self.settings))

    def get_session(self, session_id: str) -> DiscoverySession:
        """Get or create the session for ``session_id``."""
        session = self._sessions.get(session_id)
        if session is not None:
            return session

        session = DiscoverySession(
            session_id=session_id,
            catalog=self.catalog,
            resolver=DateResolver(self.settings.user_timezone),
            broker=HighlightBroker(default_ttl=self.settings.highlight_ttl_seconds),
        )
        session.conversation = ConversationManager(
            matcher=self._new_matcher(),
            broker=session.broker,
            events_provider=session.visible_events,
            preferences_provider=self._preferences,
            highlight_ttl=self.settings.highlight_ttl_seconds,
        )
        self._sessions[session_id] = session
        logger.info(
            "Created session %s with %s matcher", session_id, session.conversation.matcher.name
        )
        return session

    def find_session(self, session_id: str) -> DiscoverySession | None:
        return self._sessions.get(session_id)

    async def close_session(self, session_id: str) -> bool:
        """
        Tear down a session; replies still in flight are discarded.

        Returns:
            True if the session existed
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.conversation.close()
        await self._close_matcher(session.conversation.matcher)
        logger.info("Closed session %s", session_id)
        return True

    async def refresh_matchers(self) -> None:
        """
        Re-run strategy selection for every session after the credential changed.

        A turn already in flight finishes on the matcher it started with, which
        is closed once that turn is over.
        """
        for session in list(self._sessions.values()):
            conversation = session.conversation
            old = conversation.use_matcher(self._new_matcher())
            if conversation.is_busy:
                task = asyncio.create_task(self._close_when_idle(conversation, old))
                self._retiring[task] = old
                task.add_done_callback(self._forget_retiring)
            else:
                await self._close_matcher(old)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close_session(session_id)
        for task, matcher in list(self._retiring.items()):
            task.cancel()
            await self._close_matcher(matcher)
        self._retiring.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def _new_matcher(self) -> IntentMatcher:
        credential = resolve_credential(self.store, self.settings)
        return select_matcher(credential, settings=self.settings, http_client=self._http_client)

    async def _close_matcher(self, matcher: object) -> None:
        # Injected transports are owned by whoever injected them.
        if self._http_client is None and hasattr(matcher, "close"):
            await matcher.close()

    async def _close_when_idle(self, conversation: ConversationManager, matcher: IntentMatcher) -> None:
        await conversation.wait_idle()
        logger.debug("Closing %s matcher replaced during a turn", matcher.name)
        await self._close_matcher(matcher)

    def _forget_retiring(self, task: asyncio.Task[None]) -> None:
        self._retiring.pop(task, None)

    def _preferences(self) -> UserPreferences | None:
        try:
            return load_preferences(self.store)
        except PreferencesFormatError:
            logger.warning("Stored preferences are unreadable, matching without a profile", exc_info=True)
            return None


# Global session manager instance
_session_manager: Union[SessionManager, None] = None


def get_session_manager() -> SessionManager:
    """
    Get the global session manager instance.

    Returns a singleton SessionManager for dependency injection in FastAPI.
    """
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager()
    return _session_manager


def init_session_manager(
    catalog: Catalog | None = None,
    store: StateStore | None = None,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> SessionManager:
    """
    Initialize the global session manager with custom collaborators.

    Call this at application startup (or in tests) to inject a catalog,
    state store, settings or HTTP transport.
    """
    global _session_manager
    _session_manager = SessionManager(
        catalog=catalog, store=store, settings=settings, http_client=http_client
    )
    return _session_manager
