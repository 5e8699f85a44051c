"""
Keyword matcher used when no reasoning credential is configured.

Queries are split into words and tested against fixed keyword buckets in
priority order; the first bucket with a keyword hit decides the reply. The
matcher is total: any query, including an empty one, gets a canned reply and
(as long as there are events to show) a non-empty set of ids.
"""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from mapbuddy.models import Event, MatchResult, PromptTurn, UserPreferences
from mapbuddy.services.references import format_reference

logger = logging.getLogger(__name__)

DEFAULT_PICK_COUNT = 3

_WORD_PATTERN = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class KeywordBucket:
    """A family of queries and the canned reply that answers them."""

    name: str
    keywords: frozenset[str]
    reply_template: str
    """Formatted with ``greeting`` and ``links``."""

    tags: frozenset[str] = frozenset()
    """Events with any of these categories belong to the bucket."""

    selector: Callable[[Sequence[Event]], list[Event]] | None = None
    """Custom selection, used instead of ``tags`` when set."""

    def select(self, events: Sequence[Event]) -> list[Event]:
        if self.selector is not None:
            return self.selector(events)
        return [event for event in events if event.has_category(*self.tags)]


def _most_attended(events: Sequence[Event], limit: int = DEFAULT_PICK_COUNT) -> list[Event]:
    """Busiest events first; ties keep catalog order."""
    ranked = sorted(events, key=lambda event: event.attendees or 0, reverse=True)
    return ranked[:limit]


# Priority order: when a query hits several buckets, the earliest one wins.
BUCKETS: tuple[KeywordBucket, ...] = (
    KeywordBucket(
        name="music",
        keywords=frozenset(
            {"jazz", "music", "live", "concert", "concerts", "band", "gig", "gigs", "jam"}
        ),
        tags=frozenset({"music", "jazz"}),
        reply_template=(
            "{greeting}Great pick! 🎵 For music lovers there's {links}. "
            "Want me to check what else is on tonight?"
        ),
    ),
    KeywordBucket(
        name="food",
        keywords=frozenset(
            {"food", "eat", "eating", "hungry", "restaurant", "restaurants", "dinner", "lunch", "market", "snack"}
        ),
        tags=frozenset({"food"}),
        reply_template=(
            "{greeting}Perfect timing! 🍕 You can eat well at {links}. "
            "Shall I find something to do afterwards?"
        ),
    ),
    KeywordBucket(
        name="art",
        keywords=frozenset(
            {"art", "arts", "gallery", "galleries", "culture", "cultural", "exhibition", "museum"}
        ),
        tags=frozenset({"art", "culture"}),
        reply_template=(
            "{greeting}For art and culture, don't miss {links}. 🎨 "
            "Interested in anything else creative?"
        ),
    ),
    KeywordBucket(
        name="tech",
        keywords=frozenset(
            {"tech", "technology", "meetup", "meetups", "startup", "startups", "networking", "developer", "developers"}
        ),
        tags=frozenset({"technology", "networking"}),
        reply_template=(
            "{greeting}Tech crowd spotted! 💻 Check out {links}. Want more networking ideas?"
        ),
    ),
    KeywordBucket(
        name="photography",
        keywords=frozenset({"photo", "photos", "photographer", "photographers", "photography"}),
        tags=frozenset({"photography"}),
        reply_template=(
            "{greeting}📸 You might want to meet {links}. Should I look for photogenic spots too?"
        ),
    ),
    KeywordBucket(
        name="coffee",
        keywords=frozenset({"coffee", "cafe", "cafes", "espresso"}),
        tags=frozenset({"coffee"}),
        reply_template=(
            "{greeting}☕ Coffee lovers should connect with {links}. Anything else you're craving?"
        ),
    ),
    KeywordBucket(
        name="wellness",
        keywords=frozenset({"yoga", "fitness", "workout", "gym", "exercise", "wellness"}),
        tags=frozenset({"yoga", "wellness", "fitness"}),
        reply_template=(
            "{greeting}Stay active with {links}. 🧘 Want something for later in the day?"
        ),
    ),
    KeywordBucket(
        name="popular",
        keywords=frozenset({"popular", "trending", "busy", "hot", "crowd"}),
        selector=_most_attended,
        reply_template=(
            "{greeting}The hottest spots right now are {links}. 🔥 Want details on any of them?"
        ),
    ),
)

FALLBACK_TEMPLATE = (
    "{greeting}I can help you find specific events or people! Here are some popular picks "
    "to start with: {links}. Try asking about 'jazz music', 'photographers', 'food events', "
    "or 'tech meetups'."
)

EMPTY_TEMPLATE = (
    "{greeting}There's nothing on the map for this day yet. Try picking another date!"
)


def _join_links(events: Sequence[Event]) -> str:
    links = [format_reference(event.name, event.id) for event in events]
    if len(links) <= 1:
        return "".join(links)
    return f"{', '.join(links[:-1])} and {links[-1]}"


def _greeting(preferences: UserPreferences | None) -> str:
    if preferences is not None and preferences.name:
        return f"Hey {preferences.name}! "
    return ""


def find_bucket(query: str) -> KeywordBucket | None:
    """
    Return the first bucket (in priority order) with a keyword in ``query``.

    A word hits a keyword when it starts with it, so "jazzy" counts as jazz
    and "photographer's" as photographer. Keywords in the middle of a word
    ("heart") do not count.
    """
    words = set(_WORD_PATTERN.findall(query.lower()))
    for bucket in BUCKETS:
        if any(word.startswith(keyword) for word in words for keyword in bucket.keywords):
            return bucket
    return None


class HeuristicMatcher:
    """Local keyword strategy; needs no network and never fails."""

    name = "heuristic"

    async def match(
        self,
        query: str,
        events: Sequence[Event],
        preferences: UserPreferences | None = None,
        history: Sequence[PromptTurn] = (),
    ) -> MatchResult:
        return self.match_sync(query, events, preferences)

    def match_sync(
        self,
        query: str,
        events: Sequence[Event],
        preferences: UserPreferences | None = None,
    ) -> MatchResult:
        greeting = _greeting(preferences)
        bucket = find_bucket(query)

        selected: list[Event] = []
        if bucket is not None:
            selected = bucket.select(events)
            logger.debug("Query matched bucket %s with %d event(s)", bucket.name, len(selected))

        if selected:
            template = bucket.reply_template
        else:
            selected = _most_attended(events)
            template = FALLBACK_TEMPLATE if selected else EMPTY_TEMPLATE

        reply = template.format(greeting=greeting, links=_join_links(selected))
        return MatchResult(reply=reply, candidate_ids=tuple(event.id for event in selected))
