"""
Date resolver for the list and map date picker.

Turns expressions like 'tomorrow', 'this weekend', 'next Thursday' or an ISO
date into the calendar date whose events should be shown.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

import dateparser
from pydantic import BaseModel
from zoneinfo import ZoneInfo

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


class DateResolution(BaseModel):
    """Result of resolving a date expression."""

    success: bool
    day: date | None = None
    explanation: str
    original_phrase: str
    needs_clarification: bool = False
    question: str | None = None


class DateResolver:
    """
    Resolve natural language date selections into calendar dates.

    Uses dateparser with custom handlers for the phrases the date picker
    offers ('today', 'tomorrow', 'this weekend').
    """

    def __init__(self, user_timezone: str = "Europe/Kyiv") -> None:
        self.tz = ZoneInfo(user_timezone)

        # Checked in order; the first phrase contained in the input wins
        self._phrase_handlers: dict[str, Callable[[date], DateResolution]] = {
            "tomorrow": self._resolve_tomorrow,
            "this weekend": self._resolve_weekend,
            "the weekend": self._resolve_weekend,
            "weekend": self._resolve_weekend,
            "today": self._resolve_today,
            "tonight": self._resolve_today,
            "this evening": self._resolve_today,
        }

    def today(self) -> date:
        """The current date in the user's timezone."""
        return datetime.now(self.tz).date()

    def resolve(self, user_input: str, now: datetime | None = None) -> DateResolution:
        """
        Resolve a date expression relative to ``now``.

        Args:
            user_input: Natural language date or ISO date string
            now: Reference time, defaults to the current time in the user's timezone

        Returns:
            DateResolution with the resolved day and a human-readable explanation
        """
        if now is None:
            now = datetime.now(self.tz)
        today = now.date()
        user_input_lower = user_input.lower().strip()

        for phrase, handler in self._phrase_handlers.items():
            if phrase in user_input_lower:
                return handler(today)

        next_day_result = self._resolve_next_day(user_input_lower, today)
        if next_day_result:
            return next_day_result

        try:
            day = date.fromisoformat(user_input_lower)
        except ValueError:
            day = None
        if day is not None:
            return DateResolution(
                success=True,
                day=day,
                explanation=f"Showing {day.strftime('%A, %B %d')}",
                original_phrase=user_input,
            )

        # Fall back to dateparser for other expressions
        settings: dict[str, Any] = {
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": now.replace(tzinfo=None),
        }
        parsed = dateparser.parse(user_input, settings=settings)
        if parsed:
            day = parsed.date()
            return DateResolution(
                success=True,
                day=day,
                explanation=f"Interpreted as {day.strftime('%A, %B %d')}",
                original_phrase=user_input,
            )

        return DateResolution(
            success=False,
            explanation=f'Could not understand "{user_input}"',
            original_phrase=user_input,
            needs_clarification=True,
            question=f'Which day do you mean by "{user_input}"? For example, "tomorrow" or "next Friday".',
        )

    def _resolve_today(self, today: date) -> DateResolution:
        return DateResolution(
            success=True,
            day=today,
            explanation=f"Showing today, {today.strftime('%A')}",
            original_phrase="today",
        )

    def _resolve_tomorrow(self, today: date) -> DateResolution:
        tomorrow = today + timedelta(days=1)
        return DateResolution(
            success=True,
            day=tomorrow,
            explanation=f"Showing tomorrow, {tomorrow.strftime('%A')}",
            original_phrase="tomorrow",
        )

    def _resolve_weekend(self, today: date) -> DateResolution:
        """Resolve 'this weekend' to its Friday, or today when the weekend has started."""
        weekday = today.weekday()
        if weekday in (_DAY_NAMES["friday"], _DAY_NAMES["saturday"], _DAY_NAMES["sunday"]):
            day = today
        else:
            day = today + timedelta(days=_DAY_NAMES["friday"] - weekday)
        return DateResolution(
            success=True,
            day=day,
            explanation=f"Interpreted 'this weekend' as {day.strftime('%A, %B %d')}",
            original_phrase="this weekend",
        )

    def _resolve_next_day(self, user_input: str, today: date) -> DateResolution | None:
        """Resolve 'next <day>' pattern, e.g., 'next Thursday'."""
        match = re.search(r"\bnext\s+(\w+)", user_input)
        if not match:
            return None

        day_name = match.group(1).lower()
        if day_name not in _DAY_NAMES:
            return None

        target_weekday = _DAY_NAMES[day_name]
        current_weekday = today.weekday()

        # "next <day>" always means the occurrence in the next week
        days_until = (target_weekday - current_weekday) % 7
        if days_until == 0:
            days_until = 7
        elif days_until <= (6 - current_weekday):
            days_until += 7

        target = today + timedelta(days=days_until)
        return DateResolution(
            success=True,
            day=target,
            explanation=f"Interpreted 'next {day_name.title()}' as {target.strftime('%A, %B %d')}",
            original_phrase=f"next {day_name}",
        )
