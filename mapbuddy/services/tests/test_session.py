"""Tests for discovery session management."""

import asyncio
from collections.abc import Sequence
from datetime import date
from unittest.mock import patch

import httpx
import pytest

from mapbuddy.agents.heuristic import HeuristicMatcher
from mapbuddy.config import Settings
from mapbuddy.models import Event, MatchResult, PromptTurn, UserPreferences
from mapbuddy.services.session import SessionManager
from mapbuddy.services.storage import (
    PREFERENCES_SLOT,
    InMemoryStateStore,
    save_credential,
    save_preferences,
)


def reply_handler(content: str):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "id": "gen-1",
                "object": "chat.completion",
                "created": 1760000000,
                "model": "deepseek/deepseek-r1:free",
                "choices": [
                    {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
                ],
            },
        )

    return handler


class GatedMatcher:
    """Remote-style matcher whose reply waits on a gate and which records being closed."""

    name = "delegated"

    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.closed = asyncio.Event()

    async def match(
        self,
        query: str,
        events: Sequence[Event],
        preferences: UserPreferences | None = None,
        history: Sequence[PromptTurn] = (),
    ) -> MatchResult:
        await self.gate.wait()
        if self.closed.is_set():
            raise RuntimeError("matcher used after close")
        return MatchResult(reply="Try [Jazz Night](event:1)", candidate_ids=("1",))

    async def close(self) -> None:
        self.closed.set()


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


class TestSessionLifecycle:
    """Creating, finding and closing sessions."""

    def test_get_session_creates_once(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        first = manager.get_session("device-1")
        assert manager.get_session("device-1") is first
        assert manager.find_session("device-1") is first
        assert manager.find_session("device-2") is None
        assert len(manager) == 1

    def test_sessions_are_isolated(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        a = manager.get_session("a")
        b = manager.get_session("b")
        assert a.broker is not b.broker
        assert a.conversation is not b.conversation

    @pytest.mark.asyncio
    async def test_close_session(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        session = manager.get_session("device-1")
        assert await manager.close_session("device-1") is True
        assert session.conversation.is_closed
        assert manager.find_session("device-1") is None
        assert await manager.close_session("device-1") is False

    @pytest.mark.asyncio
    async def test_close_all(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        manager.get_session("a")
        manager.get_session("b")
        await manager.close_all()
        assert len(manager) == 0


class TestStrategySelection:
    """The credential decides which matcher a session uses."""

    def test_heuristic_without_credential(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        assert manager.has_credential is False
        assert manager.get_session("s").conversation.matcher.name == "heuristic"

    def test_delegated_with_stored_credential(self, store, settings) -> None:
        save_credential(store, "sk-or-test")
        manager = SessionManager(store=store, settings=settings)
        assert manager.has_credential is True
        assert manager.get_session("s").conversation.matcher.name == "delegated"

    def test_delegated_with_environment_credential(self, store) -> None:
        manager = SessionManager(store=store, settings=Settings(_env_file=None, openrouter_api_key="sk-or-env"))
        assert manager.get_session("s").conversation.matcher.name == "delegated"

    @pytest.mark.asyncio
    async def test_refresh_switches_open_sessions(self, store, settings) -> None:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(reply_handler("hi")))
        manager = SessionManager(store=store, settings=settings, http_client=http_client)
        session = manager.get_session("s")
        assert session.conversation.matcher.name == "heuristic"

        save_credential(store, "sk-or-test")
        await manager.refresh_matchers()

        assert session.conversation.matcher.name == "delegated"
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_refresh_mid_turn_closes_old_matcher_after_reply(self, store, settings) -> None:
        old = GatedMatcher()
        with patch("mapbuddy.services.session.select_matcher", side_effect=[old, HeuristicMatcher()]):
            manager = SessionManager(store=store, settings=settings)
            session = manager.get_session("s")
            pending = asyncio.create_task(session.conversation.submit("I like jazz"))
            await asyncio.sleep(0)

            await manager.refresh_matchers()

        assert session.conversation.matcher.name == "heuristic"
        assert not old.closed.is_set()

        old.gate.set()
        reply = await pending

        assert reply.candidate_ids == ("1",)
        assert reply.text == "Try [Jazz Night](event:1)"
        await asyncio.wait_for(old.closed.wait(), 1)
        await manager.close_all()

    @pytest.mark.asyncio
    async def test_refresh_when_idle_closes_old_matcher_at_once(self, store, settings) -> None:
        old = GatedMatcher()
        with patch("mapbuddy.services.session.select_matcher", side_effect=[old, HeuristicMatcher()]):
            manager = SessionManager(store=store, settings=settings)
            manager.get_session("s")
            await manager.refresh_matchers()

        assert old.closed.is_set()
        await manager.close_all()

    @pytest.mark.asyncio
    async def test_close_all_closes_matcher_still_waiting_on_a_turn(self, store, settings) -> None:
        old = GatedMatcher()
        with patch("mapbuddy.services.session.select_matcher", side_effect=[old, HeuristicMatcher()]):
            manager = SessionManager(store=store, settings=settings)
            session = manager.get_session("s")
            pending = asyncio.create_task(session.conversation.submit("I like jazz"))
            await asyncio.sleep(0)
            await manager.refresh_matchers()

        await manager.close_all()

        assert old.closed.is_set()
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending


class TestSessionConversation:
    """Sessions wire date, preferences and highlight into the conversation."""

    @pytest.mark.asyncio
    async def test_selected_date_limits_matcher_events(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        session = manager.get_session("s")
        session.selected_date = session.resolver.today()

        reply = await session.conversation.submit("concerts")
        visible_ids = {event.id for event in session.visible_events()}
        assert set(reply.candidate_ids) <= visible_ids
        await manager.close_all()

    def test_visible_events_follow_selected_date(self, store, settings) -> None:
        manager = SessionManager(store=store, settings=settings)
        session = manager.get_session("s")
        # 2026-10-21 is a Wednesday, but "today" is whatever the clock says,
        # so only check the recurring weekday entries.
        session.selected_date = date(2026, 10, 21)
        ids = {event.id for event in session.visible_events()}
        assert "6" in ids
        assert "12" not in ids

    @pytest.mark.asyncio
    async def test_delegated_reply_highlights_referenced_events(self, store, settings) -> None:
        save_credential(store, "sk-or-test")
        save_preferences(store, UserPreferences(name="Olena", interests=["music"]))
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                reply_handler("Hey Olena! Try [Jazz Night](event:1) or [Live Music Jam](event:12).")
            )
        )
        manager = SessionManager(store=store, settings=settings, http_client=http_client)
        session = manager.get_session("s")

        reply = await session.conversation.submit("I like jazz")

        assert reply.candidate_ids == ("1", "12")
        assert session.broker.current() == ("1", "12")
        await manager.close_all()
        await http_client.aclose()

    @pytest.mark.asyncio
    async def test_unreadable_preferences_do_not_break_matching(self, store, settings) -> None:
        store.set(PREFERENCES_SLOT, "{broken")
        manager = SessionManager(store=store, settings=settings)
        session = manager.get_session("s")
        reply = await session.conversation.submit("xyzzy")
        assert reply is not None
        assert not reply.text.startswith("Hey")
        await manager.close_all()
