"""Data models for the Map Buddy discovery core."""

from .conversation import ConversationState, MatchResult, Message, PromptTurn, Role
from .events import Event, EventKind
from .highlight import HighlightCause, HighlightSet
from .preferences import (
    NO_PROFILE_MARKER,
    ActivityLevel,
    Budget,
    GroupSize,
    TimeOfDay,
    UserPreferences,
    render_preferences,
)

__all__ = [
    "ActivityLevel",
    "Budget",
    "ConversationState",
    "Event",
    "EventKind",
    "GroupSize",
    "HighlightCause",
    "HighlightSet",
    "MatchResult",
    "Message",
    "NO_PROFILE_MARKER",
    "PromptTurn",
    "Role",
    "TimeOfDay",
    "UserPreferences",
    "render_preferences",
]
