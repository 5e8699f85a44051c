"""Models for map marker emphasis."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class HighlightCause(str, Enum):
    """Why the emphasized set changed."""

    EMPHASIZED = "emphasized"
    CLEARED = "cleared"
    EXPIRED = "expired"


class HighlightSet(BaseModel):
    """The event ids currently emphasized on the map and when that ends."""

    model_config = ConfigDict(frozen=True)

    ids: tuple[str, ...] = ()
    expires_at: datetime | None = None

    @property
    def is_empty(self) -> bool:
        return not self.ids
