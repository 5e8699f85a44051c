"""
In-memory event catalog.

The catalog is loaded once from the seed entries below and never changes
afterwards, so it is shared freely between sessions without locking.
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import date, datetime

from mapbuddy.models import Event, EventKind
from mapbuddy.services.schedule import filter_visible

logger = logging.getLogger(__name__)


SEED_EVENTS: tuple[Event, ...] = (
    Event(
        id="1",
        name="Jazz Night at Podil",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5194, 50.4501),
        description=(
            "Live jazz music in the heart of Podil. Experience intimate performances "
            "by local and touring artists in a cozy underground venue."
        ),
        source="https://t.me/kyivjazz",
        time="8:00 PM",
        attendees=45,
        schedule="Today",
        location="Jazz Club, Podil",
        categories=("Music", "Jazz", "Nightlife"),
        price="₴200",
    ),
    Event(
        id="2",
        name="Maria - Coffee Enthusiast",
        kind=EventKind.PERSON,
        coordinates=(30.5152, 50.4478),
        description=(
            "Looking for coffee shop recommendations and travel buddies. Passionate "
            "about specialty coffee and exploring unique cafes around Kyiv."
        ),
        source="https://facebook.com/kyivcoffee",
        location="Podil, Kyiv",
        categories=("Coffee", "Social", "Travel"),
    ),
    Event(
        id="3",
        name="Contemporary Art Exhibition",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5221, 50.4532),
        description=(
            "Exclusive preview of contemporary Ukrainian art collection featuring "
            "works from emerging artists exploring modern themes."
        ),
        source="https://www.eventbrite.com/kyivart",
        time="7:00 PM",
        attendees=120,
        schedule="Tomorrow",
        location="Modern Art Gallery, Kyiv",
        categories=("Art", "Culture", "Contemporary"),
        price="Free",
    ),
    Event(
        id="4",
        name="Ukrainian Food Festival",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5168, 50.4456),
        description=(
            "Traditional Ukrainian cuisine and street food from around the world. "
            "Over 30 food vendors serving everything from borscht to gourmet burgers."
        ),
        source="https://t.me/kyivfood",
        time="12:00 PM - 9:00 PM",
        attendees=200,
        schedule="This Weekend",
        location="Independence Square",
        categories=("Food", "Festival", "Family"),
        price="₴50-150 per item",
    ),
    Event(
        id="5",
        name="Oleksandr - Photographer",
        kind=EventKind.PERSON,
        coordinates=(30.5247, 50.4519),
        description=(
            "Street photographer looking to collaborate on projects and share "
            "techniques with fellow photography enthusiasts."
        ),
        source="https://instagram.com/oleksandrphoto",
        location="Pechersk, Kyiv",
        categories=("Photography", "Creative", "Collaboration"),
    ),
    Event(
        id="6",
        name="Tech Meetup Kyiv",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5183, 50.4489),
        description=(
            "Weekly networking event for developers and entrepreneurs. Featuring "
            "talks on latest tech trends, startup pitches, and networking opportunities."
        ),
        source="https://meetup.com/kyivtech",
        time="7:00 PM",
        attendees=85,
        schedule="Every Wednesday",
        location="Tech Hub, Kyiv",
        categories=("Technology", "Networking", "Professional"),
        price="Free",
    ),
    Event(
        id="7",
        name="Anna - Fitness Trainer",
        kind=EventKind.PERSON,
        coordinates=(30.5209, 50.4567),
        description=(
            "Personal trainer offering outdoor workout sessions and group fitness "
            "classes in Mariinsky Park."
        ),
        source="https://facebook.com/annafitkyiv",
        location="Mariinsky Park, Kyiv",
        categories=("Fitness", "Health", "Outdoor"),
    ),
    Event(
        id="8",
        name="Yoga in Mariinsky Park",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5176, 50.4592),
        description=(
            "Free outdoor yoga class for all skill levels. Bring your own mat and "
            "enjoy morning meditation and stretching in a peaceful park setting."
        ),
        source="https://eventbrite.com/yogakyiv",
        time="7:00 AM",
        attendees=30,
        schedule="Daily",
        location="Mariinsky Park, Kyiv",
        categories=("Yoga", "Wellness", "Outdoor"),
        price="Free",
    ),
    Event(
        id="9",
        name="Dmytro - Tour Guide",
        kind=EventKind.PERSON,
        coordinates=(30.5231, 50.4473),
        description=(
            "Local expert specializing in hidden city gems and historical walking "
            "tours of Kyiv's ancient streets."
        ),
        source="https://tripadvisor.com/dmytrotours",
        location="Old Kyiv",
        categories=("Tours", "History", "Local Guide"),
    ),
    Event(
        id="10",
        name="Kyiv Night Market",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5218, 50.4625),
        description=(
            "Local vendors selling handmade crafts and street food. A vibrant evening "
            "market featuring local artisans, food vendors, and live entertainment."
        ),
        source="https://t.me/kyivnightmarket",
        time="6:00 PM - 11:00 PM",
        attendees=150,
        schedule="Friday & Saturday",
        location="Andriyivsky Uzviz",
        categories=("Market", "Crafts", "Food"),
        price="Free entry",
    ),
    Event(
        id="11",
        name="Kateryna - Book Club",
        kind=EventKind.PERSON,
        coordinates=(30.5164, 50.4548),
        description=(
            "Literature enthusiast organizing weekly book discussions and reading "
            "groups for various genres."
        ),
        source="https://goodreads.com/katerynabookclub",
        location="Shevchenko District, Kyiv",
        categories=("Books", "Literature", "Social"),
    ),
    Event(
        id="12",
        name="Live Music Jam Kyiv",
        kind=EventKind.ACTIVITY,
        coordinates=(30.5251, 50.4497),
        description=(
            "Open mic night for musicians and music lovers. Bring your instrument or "
            "just enjoy the performances in an intimate venue."
        ),
        source="https://facebook.com/events/kyivmusicjam",
        time="8:30 PM",
        attendees=65,
        schedule="Every Thursday",
        location="Music Club, Kyiv",
        categories=("Music", "Open Mic", "Community"),
        price="₴100 cover",
    ),
)


class Catalog:
    """Read-only table of events keyed by id."""

    def __init__(self, events: Iterable[Event] = SEED_EVENTS):
        self._events = tuple(events)
        self._by_id: dict[str, Event] = {}
        for event in self._events:
            if event.id in self._by_id:
                raise ValueError(f"Duplicate event id '{event.id}' in catalog")
            self._by_id[event.id] = event

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._by_id

    def all(self) -> list[Event]:
        return list(self._events)

    def get(self, event_id: str) -> Event | None:
        """Get a specific event by id."""
        return self._by_id.get(event_id)

    def visible_on(self, reference_date: date | datetime, today: date | datetime) -> list[Event]:
        """Events whose schedule applies to ``reference_date``."""
        return filter_visible(self._events, reference_date, today)

    def search(
        self,
        query: str = "",
        kinds: Iterable[EventKind] | None = None,
        events: Iterable[Event] | None = None,
    ) -> list[Event]:
        """
        Filter events by free text and kind, as the list view does.

        Args:
            query: Case-insensitive substring matched against name and description
            kinds: Kinds to keep; None or empty keeps every kind
            events: Slice to search, defaults to the whole catalog

        Returns:
            Matching events in catalog order
        """
        needle = query.strip().lower()
        wanted = set(kinds) if kinds else None
        source = self._events if events is None else events
        return [
            event
            for event in source
            if (not needle or needle in event.name.lower() or needle in event.description.lower())
            and (wanted is None or event.kind in wanted)
        ]


# Singleton instance
_catalog: Catalog | None = None


def get_catalog() -> Catalog:
    """Get the process-wide catalog, loading the seed set on first use."""
    global _catalog
    if _catalog is None:
        _catalog = Catalog()
        logger.info("Loaded event catalog with %d entries", len(_catalog))
    return _catalog
