"""
Delegated matcher that hands the query to the remote reasoning service.

The model sees every visible event and the user's profile, and must point at
events with the inline reference syntax so the ids can be read back out of
its reply.
"""

import logging
from collections.abc import Sequence

from mapbuddy.models import (
    Event,
    MatchResult,
    PromptTurn,
    UserPreferences,
    render_preferences,
)
from mapbuddy.services.reasoning import ReasoningClient
from mapbuddy.services.references import extract_event_ids

logger = logging.getLogger(__name__)


# ============================================================================
# Instructions
# ============================================================================

DISCOVERY_INSTRUCTIONS_TEMPLATE = """You are an AI assistant helping users find events and people in Kyiv, Ukraine. You have access to the following events and people:

{events}

{profile}

IMPORTANT RULES:
1. Always respond in a friendly, helpful tone and use the user's name when available
2. When suggesting events, use the format: [Event Name](event:ID) for clickable links
3. Include relevant event IDs in your response for highlighting on the map
4. Keep responses concise but informative
5. Personalize recommendations based on the user's interests, budget, preferred time, and group size
6. If no events match the user's request, suggest alternatives or ask for clarification
7. Always end your response with a question or suggestion to keep the conversation engaging
8. Consider the user's location when suggesting nearby events
9. Match events to the user's interests and preferences when possible
10. NEVER invent events or IDs that are not in the list above

Response format:
- Use markdown-style links: [Event Name](event:ID)
- Include event IDs in your response for map highlighting
- Keep it conversational and helpful
- Personalize based on user profile when available"""


def format_event_line(event: Event) -> str:
    """Serialize one catalog entry for the instructions."""
    categories = ", ".join(event.categories) if event.categories else "None"
    return (
        f"- {event.name} (ID: {event.id}): {event.description}"
        f" | Date: {event.schedule or 'No date'}"
        f" | Type: {event.kind.value}"
        f" | Categories: {categories}"
    )


def build_instructions(events: Sequence[Event], preferences: UserPreferences | None) -> str:
    """Render the system instructions for one delegated turn."""
    events_context = "\n".join(format_event_line(event) for event in events)
    return DISCOVERY_INSTRUCTIONS_TEMPLATE.format(
        events=events_context or "(no events are visible right now)",
        profile=render_preferences(preferences),
    )


class DelegatedMatcher:
    """Remote reasoning strategy.

    Failures propagate as ``ReasoningError`` subclasses; deciding what the
    user sees is left to the conversation manager.
    """

    name = "delegated"

    def __init__(self, client: ReasoningClient):
        self.client = client

    async def match(
        self,
        query: str,
        events: Sequence[Event],
        preferences: UserPreferences | None = None,
        history: Sequence[PromptTurn] = (),
    ) -> MatchResult:
        instructions = build_instructions(events, preferences)
        reply = await self.client.complete(instructions, history, query)
        candidate_ids = extract_event_ids(reply)
        logger.debug("Delegated reply references %d event(s)", len(candidate_ids))
        return MatchResult(reply=reply, candidate_ids=tuple(candidate_ids))

    async def close(self) -> None:
        await self.client.close()
