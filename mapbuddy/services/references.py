"""
Inline event references in reply text.

Replies point at catalog entries with ``[Display Text](event:ID)``. This
module scans reply text into literal and reference tokens. Id extraction and
clickable rendering both consume the same token stream, and anything that is
not a complete reference is kept as literal text instead of being dropped.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

_OPEN = "["
_TARGET_PREFIX = "](event:"
_CLOSE = ")"


@dataclass(frozen=True)
class TextToken:
    """Literal text between references."""

    text: str


@dataclass(frozen=True)
class ReferenceToken:
    """A complete ``[label](event:id)`` reference."""

    label: str
    event_id: str
    raw: str


Token = TextToken | ReferenceToken


def _reference_at(text: str, start: int) -> ReferenceToken | None:
    """Parse a reference whose ``[`` sits at ``start``, or return None."""
    label_end = text.find("]", start + 1)
    if label_end == -1 or label_end == start + 1:
        return None
    if not text.startswith(_TARGET_PREFIX, label_end):
        return None

    id_start = label_end + len(_TARGET_PREFIX)
    id_end = text.find(_CLOSE, id_start)
    if id_end == -1 or id_end == id_start:
        return None

    return ReferenceToken(
        label=text[start + 1 : label_end],
        event_id=text[id_start:id_end],
        raw=text[start : id_end + 1],
    )


class ReferenceTokens:
    """
    Lazy token stream over a reply.

    Iterating twice rescans the text, so one instance can feed several
    consumers.

    Usage:
        for token in ReferenceTokens("see [Jazz](event:1)!"):
            ...
    """

    def __init__(self, text: str | None):
        self.text = text or ""

    def __iter__(self) -> Iterator[Token]:
        text = self.text
        literal_start = 0
        cursor = 0

        while True:
            start = text.find(_OPEN, cursor)
            if start == -1:
                break

            reference = _reference_at(text, start)
            if reference is None:
                cursor = start + 1
                continue

            if start > literal_start:
                yield TextToken(text[literal_start:start])
            yield reference
            cursor = literal_start = start + len(reference.raw)

        if literal_start < len(text):
            yield TextToken(text[literal_start:])


def extract_event_ids(text: str | None) -> list[str]:
    """Referenced event ids, de-duplicated in order of first appearance."""
    seen: dict[str, None] = {}
    for token in ReferenceTokens(text):
        if isinstance(token, ReferenceToken):
            seen.setdefault(token.event_id, None)
    return list(seen)


def render_segments(text: str | None) -> list[dict[str, str]]:
    """
    Convert reply text into segments a chat client can render.

    Returns:
        List of ``{"type": "text", "text": ...}`` and
        ``{"type": "event", "label": ..., "event_id": ...}`` dicts
    """
    segments: list[dict[str, str]] = []
    for token in ReferenceTokens(text):
        if isinstance(token, ReferenceToken):
            segments.append({"type": "event", "label": token.label, "event_id": token.event_id})
        else:
            segments.append({"type": "text", "text": token.text})
    return segments


def format_reference(label: str, event_id: str) -> str:
    """Build the reference syntax for ``event_id``."""
    return f"[{label}](event:{event_id})"
