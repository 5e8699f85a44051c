"""Catalog entry models for events and people shown on the map."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """What a catalog entry represents."""

    ACTIVITY = "activity"
    PERSON = "person"


class Event(BaseModel):
    """An activity or person pinned on the map."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: EventKind
    description: str
    coordinates: tuple[float, float] = Field(description="(longitude, latitude)")
    schedule: str | None = Field(
        default=None, description="Human-readable recurrence, e.g. 'Every Wednesday'"
    )
    time: str | None = Field(default=None, description="Time of day, e.g. '8:00 PM'")
    attendees: int | None = None
    categories: tuple[str, ...] = ()
    price: str | None = None
    source: str | None = Field(default=None, description="External page for the entry")
    location: str | None = None

    def has_category(self, *tags: str) -> bool:
        """Check whether any of ``tags`` is among the categories (case-insensitive)."""
        wanted = {tag.lower() for tag in tags}
        return any(category.lower() in wanted for category in self.categories)
