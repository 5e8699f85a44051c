"""Pytest configuration for mapbuddy tests."""

import os

import pytest

from mapbuddy.config import get_settings


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables and cached settings between tests."""
    original = os.environ.copy()
    os.environ.pop("OPENROUTER_API_KEY", None)
    os.environ.pop("STATE_DB_PATH", None)
    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(original)
    get_settings.cache_clear()
