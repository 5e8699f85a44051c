"""Capability check that picks the matcher strategy for a session."""

import logging

import httpx

from mapbuddy.config import Settings
from mapbuddy.services.reasoning import ReasoningClient

from .base import IntentMatcher
from .delegated import DelegatedMatcher
from .heuristic import HeuristicMatcher

logger = logging.getLogger(__name__)


def select_matcher(
    credential: str,
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> IntentMatcher:
    """Pick the delegated strategy when a credential is available, else the heuristic one."""
    if credential:
        logger.debug("Using delegated matcher")
        return DelegatedMatcher(
            ReasoningClient(credential, settings=settings, http_client=http_client)
        )
    logger.debug("No reasoning credential configured, using heuristic matcher")
    return HeuristicMatcher()
