"""
Highlight broker for map marker emphasis.

Owns the single "currently emphasized event ids" value for a session. Chat
results and list/search selections both go through ``emphasize`` so the map
has exactly one source of truth, and every emphasis carries one expiry timer
that is cancelled and rescheduled whenever the set is replaced.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from mapbuddy.models import HighlightCause, HighlightSet

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5.0

HighlightListener = Callable[[HighlightSet, HighlightCause], None]


class HighlightBroker:
    """
    Single writer of a session's HighlightSet.

    The set is always replaced in full, so readers never see a half-updated
    value. A generation counter guards the expiry callback: a timer belonging
    to a replaced set can never clear its successor.

    Usage:
        broker = HighlightBroker(default_ttl=5.0)
        broker.emphasize(["1", "12"])
        broker.current()  # ("1", "12")
    """

    def __init__(self, default_ttl: float = DEFAULT_TTL_SECONDS) -> None:
        self.default_ttl = default_ttl
        self._current = HighlightSet()
        self._timer: asyncio.TimerHandle | None = None
        self._generation = 0
        self._listeners: list[HighlightListener] = []

    def current(self) -> tuple[str, ...]:
        """Ids currently emphasized."""
        return self._current.ids

    def snapshot(self) -> HighlightSet:
        """The full current HighlightSet, including its deadline."""
        return self._current

    @property
    def has_pending_expiry(self) -> bool:
        return self._timer is not None

    def emphasize(self, ids: Iterable[str], ttl: float | None = None) -> HighlightSet:
        """
        Replace the emphasized set and restart the expiry timer.

        Must be called from a running event loop. An empty ``ids`` clears the
        visual emphasis but still schedules a (no-op) expiry.

        Args:
            ids: Event ids to emphasize; duplicates are dropped, order kept
            ttl: Seconds until the set expires, defaults to ``default_ttl``

        Returns:
            The new HighlightSet
        """
        loop = asyncio.get_running_loop()
        if ttl is None:
            ttl = self.default_ttl
        ttl = max(ttl, 0.0)

        self._cancel_timer()
        self._generation += 1
        generation = self._generation

        self._current = HighlightSet(
            ids=tuple(dict.fromkeys(ids)),
            expires_at=datetime.now(UTC) + timedelta(seconds=ttl),
        )
        self._timer = loop.call_later(ttl, self._expire, generation)
        logger.debug(
            "Emphasized %d event(s) for %.1fs (generation %d)",
            len(self._current.ids),
            ttl,
            generation,
        )
        self._notify(HighlightCause.EMPHASIZED)
        return self._current

    def select(self, event_id: str, ttl: float | None = None) -> HighlightSet:
        """Emphasize a single event picked from a list or search result."""
        return self.emphasize([event_id], ttl)

    def clear(self) -> None:
        """Drop the emphasis immediately and cancel any pending expiry."""
        self._cancel_timer()
        self._generation += 1
        self._current = HighlightSet()
        self._notify(HighlightCause.CLEARED)

    def subscribe(self, listener: HighlightListener) -> Callable[[], None]:
        """
        Register a callback for every replacement of the set.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Tear down: cancel the timer and forget listeners without notifying."""
        self._cancel_timer()
        self._generation += 1
        self._current = HighlightSet()
        self._listeners.clear()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _expire(self, generation: int) -> None:
        if generation != self._generation:
            logger.debug("Ignoring stale highlight expiry (generation %d)", generation)
            return
        self._timer = None
        self._current = HighlightSet()
        self._notify(HighlightCause.EXPIRED)

    def _notify(self, cause: HighlightCause) -> None:
        snapshot = self._current
        for listener in list(self._listeners):
            try:
                listener(snapshot, cause)
            except Exception:
                logger.exception("Highlight listener failed on %s", cause.value)
