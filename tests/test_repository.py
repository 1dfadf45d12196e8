"""Tests for the SQLAlchemy repositories."""

from __future__ import annotations

from datetime import timedelta

import pytest

from emotion_nudge.models import (
    Emotion,
    EmotionEvent,
    InterventionType,
    NotificationHistoryItem,
    NotificationPriority,
)
from emotion_nudge.storage.repository import EventLogRepository, NotificationHistoryRepository
from emotion_nudge.store import BehaviorStore

pytestmark = pytest.mark.usefixtures("db")


class TestEventLogRepository:
    async def test_capped_per_stream(self, now):
        repo = EventLogRepository(capacity=3)
        for i in range(5):
            await repo.append(
                EmotionEvent.observed(Emotion.FEAR, 0.5 + i / 10, 0.5, at=now + timedelta(minutes=i))
            )

        assert await repo.count("emotion") == 3
        events = await repo.recent_emotions()
        assert [e.confidence for e in events] == pytest.approx([0.7, 0.8, 0.9])
        assert events[0].timestamp == now + timedelta(minutes=2)

    async def test_streams_are_independent(self, now):
        repo = EventLogRepository(capacity=2)
        store = BehaviorStore(repository=repo)
        store.record_usage(9, 4, duration=30.0, now=now)
        store.record_intervention_completion("gratitude", 60.0, 0.8, now=now)
        store.record_engagement(
            Emotion.JOY, InterventionType.GRATITUDE_PRACTICE, now, now + timedelta(minutes=4)
        )
        assert await store.flush() == 3

        assert await repo.count("behavior") == 2
        assert await repo.count("emotion") == 0
        (engagement,) = await repo.recent_engagements()
        assert engagement.delay_minutes == 4
        behavior = await repo.recent_behavior()
        assert behavior[1].context["intervention"] == "gratitude"

    async def test_query_recent(self, now):
        repo = EventLogRepository()
        await repo.append(EmotionEvent.observed(Emotion.JOY, 0.9, 0.4, at=now - timedelta(days=3)))
        await repo.append(EmotionEvent.observed(Emotion.ANGER, 0.9, 0.9, at=now))

        recent = await repo.query_recent("emotion", now - timedelta(days=1))
        assert [e.emotion for e in recent] == [Emotion.ANGER]

    async def test_store_reload(self, now):
        repo = EventLogRepository()
        first = BehaviorStore(repository=repo)
        first.record_emotion(Emotion.SADNESS, 0.9, 0.8, now=now)
        await first.flush()

        second = BehaviorStore(repository=repo)
        assert await second.load() == 1
        (event,) = second.emotions.snapshot()
        assert event.emotion is Emotion.SADNESS
        assert event.timestamp == now


class TestNotificationHistoryRepository:
    async def test_save_list_mark_read(self, now):
        repo = NotificationHistoryRepository()
        older = NotificationHistoryItem(
            title="🎉 Milestone",
            body="Keep going!",
            type="achievement",
            received_at=now - timedelta(hours=1),
        )
        newer = NotificationHistoryItem(
            title="💙 Gentle Support",
            body="You're not alone.",
            type="emotion_triggered",
            received_at=now,
            emotion=Emotion.SADNESS,
            intervention=InterventionType.SELF_COMPASSION_BREAK,
            custom_data={"emotion": "sadness"},
            priority=NotificationPriority.HIGH,
        )
        await repo.save(older)
        await repo.save(newer)

        items = await repo.list_recent()
        assert [i.id for i in items] == [newer.id, older.id]
        assert items[0].emotion is Emotion.SADNESS
        assert items[0].custom_data == {"emotion": "sadness"}
        assert items[0].priority is NotificationPriority.HIGH
        assert not items[0].is_read

        assert await repo.mark_read(newer.id)
        assert not await repo.mark_read("missing")
        assert (await repo.list_recent(limit=1))[0].is_read
