"""Tests for the date resolver."""

from datetime import date, datetime

import pytest
from zoneinfo import ZoneInfo

from mapbuddy.services.temporal import DateResolver

KYIV = ZoneInfo("Europe/Kyiv")


@pytest.fixture
def resolver():
    return DateResolver("Europe/Kyiv")


@pytest.fixture
def monday_evening():
    return datetime(2026, 10, 19, 19, 0, tzinfo=KYIV)


class TestPhrases:
    """Phrases offered by the date picker."""

    @pytest.mark.parametrize("phrase", ["today", "Tonight", "this evening"])
    def test_today(self, resolver, monday_evening, phrase: str) -> None:
        result = resolver.resolve(phrase, now=monday_evening)
        assert result.success
        assert result.day == date(2026, 10, 19)

    def test_tomorrow(self, resolver, monday_evening) -> None:
        result = resolver.resolve("tomorrow", now=monday_evening)
        assert result.day == date(2026, 10, 20)
        assert "Tuesday" in result.explanation

    @pytest.mark.parametrize("phrase", ["this weekend", "the weekend", "Weekend"])
    def test_weekend_on_a_weekday_is_friday(self, resolver, monday_evening, phrase: str) -> None:
        result = resolver.resolve(phrase, now=monday_evening)
        assert result.day == date(2026, 10, 23)
        assert result.day.weekday() == 4

    def test_weekend_once_started_is_today(self, resolver) -> None:
        saturday = datetime(2026, 10, 24, 12, 0, tzinfo=KYIV)
        assert resolver.resolve("this weekend", now=saturday).day == date(2026, 10, 24)


class TestNextDay:
    """'next <day>' means the occurrence in the following week."""

    def test_next_thursday_from_monday(self, resolver, monday_evening) -> None:
        result = resolver.resolve("next Thursday", now=monday_evening)
        assert result.day == date(2026, 10, 29)

    def test_next_monday_from_monday(self, resolver, monday_evening) -> None:
        result = resolver.resolve("next monday", now=monday_evening)
        assert result.day == date(2026, 10, 26)

    def test_next_non_day_falls_through(self, resolver, monday_evening) -> None:
        result = resolver.resolve("next banana", now=monday_evening)
        assert result.original_phrase == "next banana"


class TestExplicitDates:
    """ISO dates and unparseable input."""

    def test_iso_date(self, resolver, monday_evening) -> None:
        result = resolver.resolve("2026-10-21", now=monday_evening)
        assert result.success
        assert result.day == date(2026, 10, 21)
        assert "Wednesday" in result.explanation

    def test_gibberish_asks_for_clarification(self, resolver, monday_evening) -> None:
        result = resolver.resolve("qwzx plorf", now=monday_evening)
        assert not result.success
        assert result.day is None
        assert result.needs_clarification
        assert "qwzx plorf" in result.question

    def test_today_uses_configured_timezone(self, resolver) -> None:
        assert resolver.today() == datetime.now(KYIV).date()
