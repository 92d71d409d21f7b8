"""Shared fixtures for PrepAI tests."""

import pytest

from prepai.config import reset_config

from helpers import FakeClock, RecordingSleep


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Isolate tests from the developer's environment and runtime config."""
    for var in (
        "GEMINI_API_KEY",
        "PREPAI_GEMINI_MODEL",
        "PREPAI_RETRY_POLICY_JSON",
        "PREPAI_ENV",
        "PREPAI_API_KEY",
        "PREPAI_CACHE_TTL_SECONDS",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
