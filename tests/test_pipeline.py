"""Tests for the event pipeline, timer service and engine context."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from emotion_nudge.campaigns import CampaignType, templates
from emotion_nudge.models import Achievement, Emotion, Goal, InterventionType
from emotion_nudge.scheduler.service import SchedulerService
from emotion_nudge.streaming.commands import (
    CelebrateAchievement,
    CelebrateGoal,
    ListCampaigns,
    RecordCompletion,
    RecordEmotion,
    RecordEngagement,
    RecordOpen,
    RecordUsage,
    Tick,
    TickKind,
)
from emotion_nudge.streaming.pipeline import EventPipeline


@pytest.fixture
async def pipeline():
    p = EventPipeline()
    task = asyncio.create_task(p.start())
    yield p
    await p.stop()
    task.cancel()


class TestEventPipeline:
    async def test_commands_processed_in_order(self, pipeline: EventPipeline):
        seen: list[int] = []

        async def handler(cmd: RecordUsage) -> int:
            seen.append(cmd.hour)
            return cmd.hour * 2

        pipeline.register(RecordUsage, handler)
        futures = [pipeline.submit(RecordUsage(hour=h, day_of_week=2)) for h in range(5)]
        results = await asyncio.gather(*futures)

        assert seen == [0, 1, 2, 3, 4]
        assert results == [0, 2, 4, 6, 8]
        assert pipeline.processed == 5

    async def test_handler_error_lands_on_future(self, pipeline: EventPipeline):
        async def broken(cmd: RecordOpen) -> None:
            raise RuntimeError("boom")

        async def ok(cmd: RecordUsage) -> str:
            return "ok"

        pipeline.register(RecordOpen, broken)
        pipeline.register(RecordUsage, ok)

        with pytest.raises(RuntimeError, match="boom"):
            await pipeline.submit(RecordOpen(campaign_id="c1"))
        # the consumer keeps running after a failure
        assert await pipeline.submit(RecordUsage(hour=1, day_of_week=1)) == "ok"

    async def test_unregistered_command(self, pipeline: EventPipeline):
        with pytest.raises(LookupError):
            await pipeline.submit(Tick(kind=TickKind.CLEANUP))

    async def test_drain(self, pipeline: EventPipeline):
        done: list[int] = []

        async def slow(cmd: RecordUsage) -> None:
            await asyncio.sleep(0.01)
            done.append(cmd.hour)

        pipeline.register(RecordUsage, slow)
        for h in range(3):
            pipeline.submit(RecordUsage(hour=h, day_of_week=1))
        await pipeline.drain()
        assert done == [0, 1, 2]
        assert pipeline.pending == 0


class TestSchedulerService:
    async def test_tick_submits_and_counts(self, pipeline: EventPipeline):
        kinds: list[TickKind] = []

        async def on_tick(cmd: Tick) -> str:
            kinds.append(cmd.kind)
            return cmd.kind.value

        pipeline.register(Tick, on_tick)
        service = SchedulerService(pipeline.submit, {TickKind.OPTIMIZATION: 3600})

        assert await service.tick(TickKind.OPTIMIZATION) == "optimization"
        assert kinds == [TickKind.OPTIMIZATION]
        assert service.stats["optimization"] == 1
        assert service.stats["last_tick"] is not None

    async def test_timers_fire_until_stopped(self, pipeline: EventPipeline):
        fired = asyncio.Event()

        async def on_tick(cmd: Tick) -> None:
            fired.set()

        pipeline.register(Tick, on_tick)
        service = SchedulerService(pipeline.submit, {TickKind.CLEANUP: 0.01})
        await service.start()
        assert service.is_running
        await asyncio.wait_for(fired.wait(), timeout=2)
        await service.stop()
        assert not service.is_running
        assert service.stats["cleanup"] >= 1


class TestContext:
    async def test_start_initializes_campaigns(self, ctx):
        await ctx.start()
        try:
            assert ctx.scheduler.initialized
            assert len(ctx.registry) == 9
            assert ctx.analyzer.last_refresh is not None
            assert not ctx.service.is_running
        finally:
            await ctx.stop()

    async def test_emotion_command_flows_to_gateway(self, ctx, gateway, now):
        await ctx.start()
        try:
            outcome = await ctx.submit(
                RecordEmotion(emotion=Emotion.ANGER, confidence=0.93, intensity=0.9, at=now)
            )
            assert outcome.sent
            assert gateway.immediate[0].title == "🔥 Channel Your Energy"
            assert ctx.store.emotions.snapshot()[-1].hour == 14
        finally:
            await ctx.stop()

    async def test_ingestion_commands(self, ctx, now):
        await ctx.start()
        try:
            await ctx.submit(RecordUsage(hour=9, day_of_week=4, duration=120.0, at=now))
            await ctx.submit(
                RecordEngagement(
                    emotion=Emotion.JOY,
                    intervention=InterventionType.GRATITUDE_PRACTICE,
                    scheduled_time=now - timedelta(minutes=5),
                    actual_time=now,
                )
            )
            credited = await ctx.submit(
                RecordCompletion(technique="gratitude", duration=90.0, effectiveness=0.9, at=now)
            )
            joy = ctx.registry.emotion_campaign(Emotion.JOY)
            assert credited == joy.id
            assert await ctx.submit(RecordOpen(campaign_id=joy.id))
            assert joy.analytics.opened == 1

            assert len(ctx.store.behavior) == 2
            assert ctx.store.engagements.snapshot()[0].delay_minutes == 5
        finally:
            await ctx.stop()

    async def test_celebrations(self, ctx, gateway):
        await ctx.start()
        try:
            achievement_id = await ctx.submit(
                CelebrateAchievement(achievement=Achievement(id="a9", title="Milestone"))
            )
            goal_id = await ctx.submit(CelebrateGoal(goal=Goal(id="g9", title="Sleep early")))
            assert achievement_id == "achievement_a9"
            assert goal_id == "goal_g9"
            # the daily check-in queued at start plus both celebrations
            assert len(gateway.delayed) == 3
        finally:
            await ctx.stop()

    async def test_ticks(self, ctx, now):
        await ctx.start()
        try:
            report = await ctx.submit(Tick(kind=TickKind.OPTIMIZATION, at=now))
            assert report["evaluated"] == 9
            assert await ctx.submit(Tick(kind=TickKind.CLEANUP, at=now)) == []
            tags = await ctx.submit(Tick(kind=TickKind.PATTERN_REFRESH, at=now))
            assert tags["notification_preferences"] == "emotion_aware"
        finally:
            await ctx.stop()

    async def test_start_queues_daily_checkin(self, ctx, gateway):
        await ctx.start()
        try:
            checkin = ctx.registry.by_type(CampaignType.DAILY_CHECKIN)[0]
            assert [r.send_after for r in gateway.delayed] == [checkin.schedule.scheduled_time]
            assert gateway.delayed[0].title in {title for title, _ in templates.DAILY_VARIANTS}

            # an engaged check-in keeps its slot; the daily tick re-arms it
            checkin.analytics.opened = checkin.analytics.sent
            await ctx.submit(Tick(kind=TickKind.OPTIMIZATION, at=ctx.now() + timedelta(days=1)))
            assert len(gateway.delayed) == 2
            assert gateway.delayed[1].send_after == checkin.schedule.scheduled_time
        finally:
            await ctx.stop()

    async def test_naive_engagement_then_trigger(self, ctx, gateway, now):
        await ctx.start()
        try:
            await ctx.submit(
                RecordEngagement(
                    emotion=Emotion.JOY,
                    intervention=InterventionType.GRATITUDE_PRACTICE,
                    scheduled_time=datetime(2026, 3, 4, 13, 0),
                    actual_time=datetime(2026, 3, 4, 13, 4),
                )
            )
            outcome = await ctx.submit(
                RecordEmotion(emotion=Emotion.SADNESS, confidence=0.95, intensity=0.8, at=now)
            )
            assert outcome.sent
            assert len(gateway.immediate) == 1
        finally:
            await ctx.stop()

    async def test_campaign_listing_is_a_snapshot(self, ctx):
        await ctx.start()
        try:
            campaigns = await ctx.submit(ListCampaigns())
            assert len(campaigns) == 9
            campaigns[0].analytics.sent = 99
            assert ctx.registry.list()[0].analytics.sent == 0
        finally:
            await ctx.stop()
