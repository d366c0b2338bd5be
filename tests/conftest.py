"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

# Settings are read at import time; keep tests away from real services
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./tierpay-test.db")
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("INSTANCE_ID", "test-runner")

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.events import EventBus


@pytest.fixture
def mock_session():
    """Mock AsyncSession for tests without a database."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def event_recorder():
    """
    Fresh event bus that records every emitted event.

    Returns:
        (EventBus, list of received events)
    """
    bus = EventBus()
    received = []
    bus.subscribe(EventBus.WILDCARD, received.append)
    return bus, received
