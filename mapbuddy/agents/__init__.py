"""Intent matchers for Map Buddy discovery chat."""

from .base import IntentMatcher
from .delegated import DISCOVERY_INSTRUCTIONS_TEMPLATE, DelegatedMatcher, build_instructions
from .heuristic import BUCKETS, HeuristicMatcher, find_bucket
from .selection import select_matcher

__all__ = [
    "BUCKETS",
    "DISCOVERY_INSTRUCTIONS_TEMPLATE",
    "DelegatedMatcher",
    "HeuristicMatcher",
    "IntentMatcher",
    "build_instructions",
    "find_bucket",
    "select_matcher",
]
