"""Shared pytest fixtures."""

from __future__ import annotations

import os
import random
import tempfile
from datetime import UTC, datetime

# Isolate the database before any emotion_nudge module reads settings.
_TMP_DIR = tempfile.mkdtemp(prefix="emotion-nudge-tests-")
os.environ.setdefault("NUDGE_DATA_DIR", _TMP_DIR)
os.environ.setdefault("NUDGE_DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")
os.environ.setdefault("NUDGE_SCHEDULER_ENABLED", "false")
os.environ.setdefault("NUDGE_SUBSCRIBER_ID", "test-subscriber")

import pytest  # noqa: E402

from emotion_nudge.config import Settings  # noqa: E402
from emotion_nudge.context import NudgeContext, create_context  # noqa: E402
from emotion_nudge.delivery.gateway import (  # noqa: E402
    DeliveryGateway,
    DeliveryRequest,
    Recipient,
)
from emotion_nudge.storage.database import Base, _get_engine, dispose_engine, init_db  # noqa: E402
from emotion_nudge.store.events import BehaviorStore  # noqa: E402


class RecordingGateway(DeliveryGateway):
    """Gateway double that remembers every request."""

    name = "recording"

    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.requests: list[DeliveryRequest] = []

    async def send(self, request: DeliveryRequest) -> bool:
        self.requests.append(request)
        return self.ok

    @property
    def immediate(self) -> list[DeliveryRequest]:
        return [r for r in self.requests if r.send_after is None]

    @property
    def delayed(self) -> list[DeliveryRequest]:
        return [r for r in self.requests if r.send_after is not None]


@pytest.fixture
def now() -> datetime:
    # Wednesday 14:00 UTC
    return datetime(2026, 3, 4, 14, 0, tzinfo=UTC)


@pytest.fixture
def settings() -> Settings:
    return Settings(scheduler_enabled=False, subscriber_id="test-subscriber")


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def recipient() -> Recipient:
    return Recipient(subscriber_id="test-subscriber")


@pytest.fixture
def store() -> BehaviorStore:
    return BehaviorStore()


@pytest.fixture
def ctx(settings: Settings, gateway: RecordingGateway, recipient: Recipient) -> NudgeContext:
    """In-memory engine context (no database) with a recording gateway."""
    return create_context(
        settings,
        gateway=gateway,
        recipient=recipient,
        rng=random.Random(7),
        persist=False,
    )


@pytest.fixture
async def db():
    """Fresh tables for one test."""
    await init_db()
    yield
    async with _get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await dispose_engine()
