"""Common interface for intent matchers."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from mapbuddy.models import Event, MatchResult, PromptTurn, UserPreferences


@runtime_checkable
class IntentMatcher(Protocol):
    """Turns a free-text query into reply text and the event ids it refers to."""

    name: str

    async def match(
        self,
        query: str,
        events: Sequence[Event],
        preferences: UserPreferences | None = None,
        history: Sequence[PromptTurn] = (),
    ) -> MatchResult: ...
