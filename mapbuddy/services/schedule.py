"""
Schedule resolver for human-readable recurrence text.

Decides whether an event described as "Every Wednesday", "This Weekend",
"Tomorrow" or "Daily" takes place on a given calendar date. Unrecognized
text is treated as always visible: the list should show an event rather than
hide it because its schedule could not be read.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from mapbuddy.models import Event

# Day name to weekday number (Monday=0, Sunday=6)
_DAY_NAMES = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

_ALWAYS = frozenset({"today", "daily"})
_WEEKEND = frozenset({"this weekend", "friday & saturday"})
_WEEKEND_DAYS = frozenset({_DAY_NAMES["friday"], _DAY_NAMES["saturday"]})

# Tested in this order; the first name found decides.
_NAMED_DAYS = ("wednesday", "thursday", "friday", "saturday")

_EVERY_PATTERN = re.compile(r"every\s+(\w+)", re.IGNORECASE)


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def applies(
    schedule_text: str | None,
    reference_date: date | datetime,
    today: date | datetime,
) -> bool:
    """
    Check whether a schedule applies to ``reference_date``.

    Args:
        schedule_text: Free-form schedule description, may be None or empty
        reference_date: The calendar date being viewed
        today: The current date, used for relative phrases like "tomorrow"

    Returns:
        True if the event should be shown on ``reference_date``
    """
    if not schedule_text:
        return True

    text = schedule_text.strip().lower()
    reference = _as_date(reference_date)
    weekday = reference.weekday()

    if text in _ALWAYS:
        return True

    if text == "tomorrow":
        return reference == _as_date(today) + timedelta(days=1)

    if text in _WEEKEND:
        return weekday in _WEEKEND_DAYS

    for day_name in _NAMED_DAYS:
        if day_name in text:
            return weekday == _DAY_NAMES[day_name]

    match = _EVERY_PATTERN.search(text)
    if match:
        day_name = match.group(1).lower()
        if day_name in _DAY_NAMES:
            return weekday == _DAY_NAMES[day_name]

    return True


def filter_visible(
    events: Iterable[Event],
    reference_date: date | datetime,
    today: date | datetime,
) -> list[Event]:
    """Return the events whose schedule applies to ``reference_date``, in order."""
    return [event for event in events if applies(event.schedule, reference_date, today)]
