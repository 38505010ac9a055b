"""Shared fixtures for store-backed integration tests.

Each test gets a fresh SQLite database file driven through aiosqlite, and
a notification queue wired to an in-memory fake transport.
"""

import asyncio
import os
import sys
from typing import Optional

import pytest
import pytest_asyncio

# Ensure repo root is on sys.path so imports work correctly
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../.."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from leadintake.errors import TransportTransientError
from leadintake.models import Base, create_test_engine
from leadintake.notifications import NotificationQueue
from leadintake.store import RecordStore

ADMIN_EMAIL = "ops@terra.example"
FROM_EMAIL = "noreply@terra.example"


# ============================================================================
# Fake transports
# ============================================================================

class RecordingTransport:
    """Transport that accepts every message and records it."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def send(self, to_email, from_email, subject, html_content=None, text_content=None):
        self.sent.append({
            "to": to_email,
            "from": from_email,
            "subject": subject,
            "html": html_content,
            "text": text_content,
        })
        return f"fake-{len(self.sent)}"


class FailingTransport:
    """Transport that rejects every message."""

    def __init__(self) -> None:
        self.calls = 0

    async def send(self, to_email, from_email, subject, html_content=None, text_content=None):
        self.calls += 1
        raise TransportTransientError("SendGrid returned status code 503", status_code=503)


class BlockingTransport(RecordingTransport):
    """Transport that holds each send until released."""

    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def send(self, to_email, from_email, subject, html_content=None, text_content=None):
        self.started.set()
        await self.release.wait()
        return await super().send(to_email, from_email, subject, html_content, text_content)


# ============================================================================
# Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def store(tmp_path):
    """Record store on a fresh SQLite database."""
    engine = create_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'leadintake.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield RecordStore.from_engine(engine)

    await engine.dispose()


@pytest.fixture
def transport():
    """Transport that always succeeds."""
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    """Transport that always fails."""
    return FailingTransport()


@pytest.fixture
def blocking_transport():
    """Transport that waits for an explicit release."""
    return BlockingTransport()


@pytest.fixture
def queue(store, transport):
    """Notification queue wired to the recording transport."""
    return NotificationQueue(store, transport, from_email=FROM_EMAIL)


@pytest.fixture
def make_queue(store):
    """Factory for queues around a specific transport (None = unconfigured)."""

    def factory(transport: Optional[object]) -> NotificationQueue:
        return NotificationQueue(store, transport, from_email=FROM_EMAIL)

    return factory
