"""Shared test fixtures for the lead engine."""

import sys
from pathlib import Path
from typing import Callable

import httpx
import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.settings_store import SettingsStore
from src.email_engine.dispatcher.subscribers import SubscriberStore


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings_store(tmp_path) -> SettingsStore:
    """Settings store backed by a temporary JSON file."""
    return SettingsStore(path=tmp_path / "settings.json")


@pytest.fixture
def subscriber_store(tmp_path) -> SubscriberStore:
    """Subscriber store backed by a temporary JSON file."""
    return SubscriberStore(path=tmp_path / "subscribers.json")


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]:
    """Factory for httpx clients whose requests are answered by a handler."""
    def factory(handler):
        return httpx.Client(transport=httpx.MockTransport(handler))
    return factory


@pytest.fixture
def sample_post_html() -> str:
    """A generated post body with four sections and an FAQ."""
    return (
        "<p>Intro paragraph about attraction.</p>\n"
        "<h2>Why He Pulls Away</h2>\n"
        "<p>Research shows that men often withdraw under stress.</p>\n"
        "<h2>What It Means</h2>\n"
        "<p>Second section body.</p>\n"
        "<h2>What To Do</h2>\n"
        "<p>Third section body.</p>\n"
        "<h2>Frequently Asked Questions</h2>\n"
        "<p><strong>Will he come back?</strong> Often, yes.</p>\n"
    )
