"""Tests for the delegated matcher and strategy selection."""

import json

import httpx
import pytest

from mapbuddy.agents import IntentMatcher, select_matcher
from mapbuddy.agents.delegated import DelegatedMatcher
from mapbuddy.agents.heuristic import HeuristicMatcher
from mapbuddy.config import Settings
from mapbuddy.models import PromptTurn, Role, UserPreferences
from mapbuddy.services.catalog import Catalog
from mapbuddy.services.errors import InvalidCredential, NetworkFailure
from mapbuddy.services.reasoning import ReasoningClient


class FakeReasoningService:
    """Mock transport handler that answers with a fixed reply."""

    def __init__(self, content: str = "", status: int = 200):
        self.content = content
        self.status = status
        self.payloads: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.payloads.append(json.loads(request.content))
        if self.status != 200:
            return httpx.Response(self.status, json={"error": {"message": "nope", "code": self.status}})
        return httpx.Response(
            200,
            json={
                "id": "gen-1",
                "object": "chat.completion",
                "created": 1760000000,
                "model": "deepseek/deepseek-r1:free",
                "choices": [
                    {"index": 0, "message": {"role": "assistant", "content": self.content}, "finish_reason": "stop"}
                ],
            },
        )


@pytest.fixture
def settings():
    return Settings(_env_file=None)


def make_matcher(service, settings) -> DelegatedMatcher:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(service))
    return DelegatedMatcher(ReasoningClient("sk-or-test", settings=settings, http_client=http_client))


class TestDelegatedMatcher:
    """Test delegated matching against a mocked service."""

    @pytest.mark.asyncio
    async def test_ids_come_from_reply_references(self, settings):
        """Candidate ids are read out of the reply in order."""
        service = FakeReasoningService(
            "Hey! Try [Live Music Jam](event:12) and [Jazz Night](event:1). Want more?"
        )
        matcher = make_matcher(service, settings)
        result = await matcher.match("I like jazz", Catalog().all())
        assert result.candidate_ids == ("12", "1")
        assert result.reply.startswith("Hey!")

    @pytest.mark.asyncio
    async def test_reply_without_references(self, settings):
        """A reply with no references has no candidates."""
        matcher = make_matcher(FakeReasoningService("Could you tell me more?"), settings)
        result = await matcher.match("hmm", Catalog().all())
        assert result.candidate_ids == ()

    @pytest.mark.asyncio
    async def test_request_carries_instructions_and_history(self, settings):
        """System prompt lists events and profile; history precedes the query."""
        service = FakeReasoningService("ok")
        matcher = make_matcher(service, settings)
        history = [
            PromptTurn(role=Role.USER, content="hello"),
            PromptTurn(role=Role.ASSISTANT, content="hi there"),
        ]
        profile = UserPreferences(name="Olena", interests=["art"])

        await matcher.match("art please", Catalog().all()[:2], profile, history)

        messages = service.payloads[0]["messages"]
        assert messages[0]["role"] == "system"
        assert "(ID: 1)" in messages[0]["content"]
        assert "(ID: 3)" not in messages[0]["content"]
        assert "- Name: Olena" in messages[0]["content"]
        assert messages[1:] == [
            {"role": "user", "content": "hello"},
            {"role": "assistant", "content": "hi there"},
            {"role": "user", "content": "art please"},
        ]

    @pytest.mark.asyncio
    async def test_failures_propagate(self, settings):
        """Remote failures surface as reasoning errors."""
        matcher = make_matcher(FakeReasoningService(status=401), settings)
        with pytest.raises(InvalidCredential):
            await matcher.match("jazz", Catalog().all())

    @pytest.mark.asyncio
    async def test_network_failure(self, settings):
        """Transport errors surface as NetworkFailure."""

        def handler(request):
            raise httpx.ConnectTimeout("timed out")

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        matcher = DelegatedMatcher(ReasoningClient("sk-or-test", settings=settings, http_client=http_client))
        with pytest.raises(NetworkFailure):
            await matcher.match("jazz", Catalog().all())


class TestSelectMatcher:
    """Test strategy selection."""

    def test_without_credential(self, settings):
        """No credential selects the heuristic strategy."""
        matcher = select_matcher("", settings=settings)
        assert isinstance(matcher, HeuristicMatcher)
        assert isinstance(matcher, IntentMatcher)

    def test_with_credential(self, settings):
        """A credential selects the delegated strategy."""
        matcher = select_matcher("sk-or-test", settings=settings)
        assert isinstance(matcher, DelegatedMatcher)
        assert isinstance(matcher, IntentMatcher)
        assert matcher.client.api_key == "sk-or-test"
