"""
Conversation manager for the discovery chat.

Drives one session's turns: the user message is shown immediately, the
matcher is asked for a reply, and on success the reply is shown and its event
ids are emphasized on the map. Only one request may be in flight; anything
submitted meanwhile is ignored rather than queued.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence

from mapbuddy.agents.base import IntentMatcher
from mapbuddy.models import (
    ConversationState,
    Event,
    Message,
    PromptTurn,
    Role,
    UserPreferences,
)
from mapbuddy.services.errors import ReasoningError
from mapbuddy.services.highlight import HighlightBroker

logger = logging.getLogger(__name__)

GREETING = (
    "Hi! I'm your AI assistant. I can help you find events and people nearby. "
    "Try asking me something like 'Find jazz events tonight' or "
    "'Show me photographers in the area'."
)

EventsProvider = Callable[[], Sequence[Event]]
PreferencesProvider = Callable[[], UserPreferences | None]
StateListener = Callable[[ConversationState], None]


def format_failure(error: ReasoningError) -> str:
    """Assistant message text for a failed turn."""
    return f"Sorry, I couldn't get an answer this time. {error.user_message}"


class ConversationManager:
    """
    Turn state machine for one chat session.

    Owns two histories that are always replaced in full:

    - ``messages``: what the chat UI shows, including failures
    - ``prompt_history``: role/text pairs replayed to the reasoning service,
      which only ever receives successful turns
    """

    def __init__(
        self,
        matcher: IntentMatcher,
        broker: HighlightBroker,
        events_provider: EventsProvider,
        preferences_provider: PreferencesProvider | None = None,
        highlight_ttl: float | None = None,
        greeting: str | None = GREETING,
    ):
        self._matcher = matcher
        self._broker = broker
        self._events_provider = events_provider
        self._preferences_provider = preferences_provider
        self._highlight_ttl = highlight_ttl
        self._greeting = greeting

        self._state = ConversationState.IDLE
        self._messages: tuple[Message, ...] = self._initial_messages()
        self._prompt_history: tuple[PromptTurn, ...] = ()
        self._state_listeners: list[StateListener] = []
        self._idle = asyncio.Event()
        self._idle.set()
        # Bumped on reset/close so replies for an old view are dropped.
        self._epoch = 0
        self._closed = False

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._messages

    @property
    def prompt_history(self) -> tuple[PromptTurn, ...]:
        return self._prompt_history

    @property
    def matcher(self) -> IntentMatcher:
        return self._matcher

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_busy(self) -> bool:
        return self._state != ConversationState.IDLE

    def use_matcher(self, matcher: IntentMatcher) -> IntentMatcher:
        """
        Swap the matching strategy, e.g. after the credential changed.

        A turn already in flight keeps the matcher it started with.

        Returns:
            The matcher that was replaced
        """
        previous, self._matcher = self._matcher, matcher
        return previous

    def on_state_change(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    async def submit(self, text: str) -> Message | None:
        """
        Run one turn.

        Args:
            text: The user's message

        Returns:
            The assistant message that was appended, or None when the input
            was ignored (blank, busy, closed) or its reply arrived for a view
            that has since been reset or closed
        """
        if self._closed:
            logger.info("Ignoring submission on a closed conversation")
            return None
        if self._state != ConversationState.IDLE:
            logger.info("Ignoring submission while a reply is pending")
            return None

        query = text.strip()
        if not query:
            return None

        epoch = self._epoch
        history = self._prompt_history
        # A matcher swapped in mid-turn only takes effect on the next turn.
        matcher = self._matcher
        self._append(Message(role=Role.USER, text=query))
        self._set_state(ConversationState.AWAITING_REPLY)

        # IDLE is announced only once the turn's messages and highlight are in place.
        try:
            try:
                result = await matcher.match(
                    query,
                    list(self._events_provider()),
                    self._load_preferences(),
                    history,
                )
            except ReasoningError as e:
                if epoch != self._epoch:
                    logger.info("Dropping failed reply for a view that is gone")
                    return None
                self._set_state(ConversationState.ERROR)
                logger.warning(
                    "Matcher %s failed: %s (%s)", matcher.name, type(e).__name__, e.user_message
                )
                reply = Message(role=Role.ASSISTANT, text=format_failure(e))
                self._append(reply)
                return reply

            if epoch != self._epoch:
                logger.info("Dropping reply for a view that is gone")
                return None

            reply = Message(
                role=Role.ASSISTANT,
                text=result.reply,
                candidate_ids=result.candidate_ids,
                interactive=bool(result.candidate_ids),
            )
            self._append(reply)
            self._broker.emphasize(result.candidate_ids, self._highlight_ttl)
            self._prompt_history = (
                *history,
                PromptTurn(role=Role.USER, content=query),
                PromptTurn(role=Role.ASSISTANT, content=result.reply),
            )
            return reply
        finally:
            self._set_state(ConversationState.IDLE)

    async def wait_idle(self) -> None:
        """Wait until no turn is in flight."""
        await self._idle.wait()

    def reset(self) -> None:
        """Start over: clear both histories and the map emphasis."""
        self._epoch += 1
        self._messages = self._initial_messages()
        self._prompt_history = ()
        self._broker.clear()
        logger.info("Conversation reset")

    def close(self) -> None:
        """Tear down; a reply still in flight will be discarded."""
        self._epoch += 1
        self._closed = True
        self._broker.close()

    def _initial_messages(self) -> tuple[Message, ...]:
        if not self._greeting:
            return ()
        return (Message(role=Role.ASSISTANT, text=self._greeting),)

    def _append(self, message: Message) -> None:
        self._messages = (*self._messages, message)

    def _load_preferences(self) -> UserPreferences | None:
        if self._preferences_provider is None:
            return None
        return self._preferences_provider()

    def _set_state(self, state: ConversationState) -> None:
        if state == self._state:
            return
        logger.debug("Conversation state %s -> %s", self._state.value, state.value)
        self._state = state
        if state == ConversationState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        for listener in list(self._state_listeners):
            listener(state)
