"""Tests for the bounded histories and the behaviour store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from emotion_nudge.models import (
    BehaviorEvent,
    BehaviorKind,
    Emotion,
    EmotionEvent,
    InterventionType,
    day_of_week,
)
from emotion_nudge.store import BehaviorStore, BoundedHistory


class TestBoundedHistory:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            BoundedHistory(0)

    def test_evicts_oldest_first(self):
        h: BoundedHistory[int] = BoundedHistory(3)
        h.extend([1, 2, 3, 4, 5])
        assert h.snapshot() == [3, 4, 5]
        assert len(h) == 3


class TestBehaviorStore:
    def test_capacity_eviction(self, now):
        store = BehaviorStore(capacity=5000)
        events = [
            BehaviorEvent(
                timestamp=now + timedelta(seconds=i),
                kind=BehaviorKind.USAGE,
                hour=14,
                day_of_week=4,
            )
            for i in range(5001)
        ]
        for e in events:
            store.append(e)

        kept = store.behavior.snapshot()
        assert len(kept) == 5000
        assert kept[0].id == events[1].id
        assert kept[-1].id == events[-1].id
        assert events[0].id not in {e.id for e in kept}

    def test_record_emotion_derives_hour_and_weekday(self, store, now):
        event = store.record_emotion(Emotion.FEAR, 0.6, 0.4, {"source": "voice"}, now=now)
        assert event.hour == 14
        assert event.day_of_week == 4  # Wednesday
        assert event.context == {"source": "voice"}
        assert store.emotions.snapshot() == [event]

    def test_completion_context(self, store, now):
        event = store.record_intervention_completion("box_breathing", 120.0, 0.9, "calmer", now=now)
        assert event.kind is BehaviorKind.INTERVENTION_COMPLETION
        assert event.technique == "box_breathing"
        assert event.effectiveness == 0.9

    def test_engagement_delay(self, store, now):
        event = store.record_engagement(
            Emotion.SADNESS,
            InterventionType.SELF_COMPASSION_BREAK,
            now,
            now + timedelta(minutes=7, seconds=30),
        )
        assert event.delay_minutes == 7
        assert event.engaged is True

    def test_window_excludes_old_events(self, now):
        store = BehaviorStore(window=timedelta(days=30))
        store.record_emotion(Emotion.JOY, 0.9, 0.5, now=now - timedelta(days=31))
        recent = store.record_emotion(Emotion.JOY, 0.9, 0.5, now=now - timedelta(days=1))
        assert store.recent_emotions(now) == [recent]

    @pytest.mark.asyncio
    async def test_flush_without_repository_is_noop(self, store, now):
        store.record_usage(9, 2, now=now)
        assert await store.flush() == 0
        assert await store.load() == 0

    def test_naive_times_are_read_as_utc(self, store, now):
        naive = datetime(2026, 3, 4, 13, 0)
        engagement = store.record_engagement(
            Emotion.JOY, InterventionType.GRATITUDE_PRACTICE, naive, naive + timedelta(minutes=2)
        )
        emotion = store.record_emotion(Emotion.SADNESS, 0.9, 0.5, now=naive)

        assert engagement.scheduled_time == datetime(2026, 3, 4, 13, 0, tzinfo=UTC)
        assert emotion.timestamp.tzinfo is not None
        assert emotion.hour == 13
        # mixed naive and aware inputs still compare inside the window
        assert store.recent_engagements(now) == [engagement]
        assert store.recent_emotions(naive.replace(hour=14)) == [emotion]


class FlakyRepository:
    """Accepts writes until told to fail."""

    def __init__(self, fail_on: int) -> None:
        self.fail_on = fail_on
        self.written: list = []

    async def append(self, event) -> None:
        if len(self.written) + 1 == self.fail_on:
            raise SQLAlchemyError("database is locked")
        self.written.append(event)


class TestFlush:
    @pytest.mark.asyncio
    async def test_failed_write_keeps_the_rest_queued(self, now):
        repo = FlakyRepository(fail_on=2)
        store = BehaviorStore(repository=repo)  # type: ignore[arg-type]
        events = [store.record_usage(h, 4, now=now) for h in (9, 10, 11)]

        assert await store.flush() == 1
        assert store.pending == 2

        repo.fail_on = 0
        assert await store.flush() == 2
        assert store.pending == 0
        assert repo.written == events


def test_day_of_week_sunday_is_one(now):
    sunday = now + timedelta(days=4)  # 2026-03-08
    assert day_of_week(sunday) == 1
    assert day_of_week(sunday + timedelta(days=6)) == 7


def test_events_are_immutable(now):
    event = EmotionEvent.observed(Emotion.JOY, 0.5, 0.5, at=now)
    with pytest.raises(ValidationError):
        event.confidence = 0.9  # type: ignore[misc]
