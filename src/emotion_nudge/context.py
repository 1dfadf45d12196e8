"""Engine context — every component wired once, at startup.

``create_context()`` builds the store, analyzer, registry, predictor,
personalizer, gateway, signal hub, scheduler engine, event pipeline and
timer service, and registers one pipeline handler per command type.  The
API server and the CLI each own exactly one :class:`NudgeContext`.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

import structlog

from emotion_nudge.analysis.patterns import PatternAnalyzer
from emotion_nudge.campaigns.registry import CampaignRegistry
from emotion_nudge.config import Settings
from emotion_nudge.delivery.gateway import DeliveryGateway, Recipient, create_gateway
from emotion_nudge.delivery.hooks import SignalHub
from emotion_nudge.campaigns.models import Campaign
from emotion_nudge.models import EmotionEvent, ensure_aware
from emotion_nudge.personalization.engine import PersonalizationEngine
from emotion_nudge.prediction.base import PredictorAdapter
from emotion_nudge.prediction.rules import RuleBasedPredictor
from emotion_nudge.scheduler.engine import CampaignScheduler, TriggerOutcome
from emotion_nudge.scheduler.policies import create_policy
from emotion_nudge.scheduler.service import SchedulerService
from emotion_nudge.storage.repository import EventLogRepository, NotificationHistoryRepository
from emotion_nudge.store.events import BehaviorStore
from emotion_nudge.streaming.commands import (
    CelebrateAchievement,
    CelebrateGoal,
    Command,
    Initialize,
    ListCampaigns,
    ReadInsights,
    ReadPatterns,
    RecordCompletion,
    RecordEmotion,
    RecordEngagement,
    RecordOpen,
    RecordUsage,
    Tick,
    TickKind,
)
from emotion_nudge.streaming.pipeline import EventPipeline

logger = structlog.get_logger(__name__)


class NudgeContext:
    """Owns the engine's components and the pipeline consumer task."""

    def __init__(
        self,
        *,
        settings: Settings,
        store: BehaviorStore,
        analyzer: PatternAnalyzer,
        registry: CampaignRegistry,
        scheduler: CampaignScheduler,
        pipeline: EventPipeline,
        service: SchedulerService,
        history: NotificationHistoryRepository | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.analyzer = analyzer
        self.registry = registry
        self.scheduler = scheduler
        self.pipeline = pipeline
        self.service = service
        self.history = history
        self._tz = ZoneInfo(settings.timezone)
        self._consumer: asyncio.Task | None = None

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def _at(self, value: datetime | None) -> datetime:
        return ensure_aware(value) if value else self.now()

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        if self._consumer is not None:
            return
        await self.store.load(self.settings.store_reload_limit)
        self._consumer = asyncio.create_task(self.pipeline.start())
        await self.submit(Tick(kind=TickKind.PATTERN_REFRESH))
        await self.submit(Initialize())
        if self.settings.scheduler_enabled:
            await self.service.start()
        logger.info("context.started", campaigns=len(self.registry))

    async def stop(self) -> None:
        await self.service.stop()
        if self._consumer is not None:
            await self.pipeline.drain()
            await self.pipeline.stop()
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
        await self.store.flush()
        await self.scheduler.gateway.close()
        logger.info("context.stopped")

    def submit(self, command: Command) -> asyncio.Future[Any]:
        return self.pipeline.submit(command)

    # ── Handlers (run on the pipeline consumer) ───────────────

    async def _on_usage(self, cmd: RecordUsage) -> str:
        event = self.store.record_usage(
            cmd.hour, cmd.day_of_week, duration=cmd.duration, now=self._at(cmd.at)
        )
        await self.store.flush()
        return event.id

    async def _on_emotion(self, cmd: RecordEmotion) -> TriggerOutcome:
        now = self._at(cmd.at)
        event = EmotionEvent.observed(cmd.emotion, cmd.confidence, cmd.intensity, cmd.context, at=now)
        outcome = await self.scheduler.handle_emotion(event, now)
        await self.store.flush()
        return outcome

    async def _on_engagement(self, cmd: RecordEngagement) -> str:
        event = self.store.record_engagement(
            cmd.emotion, cmd.intervention, cmd.scheduled_time, cmd.actual_time
        )
        await self.store.flush()
        return event.id

    async def _on_completion(self, cmd: RecordCompletion) -> str | None:
        self.store.record_intervention_completion(
            cmd.technique,
            cmd.duration,
            cmd.effectiveness,
            cmd.feedback,
            now=self._at(cmd.at),
        )
        await self.store.flush()
        return self.scheduler.record_conversion(cmd.technique, cmd.effectiveness)

    async def _on_open(self, cmd: RecordOpen) -> bool:
        return self.scheduler.record_open(cmd.campaign_id)

    async def _on_achievement(self, cmd: CelebrateAchievement) -> str:
        campaign = await self.scheduler.create_achievement_campaign(cmd.achievement, self.now())
        return campaign.id

    async def _on_goal(self, cmd: CelebrateGoal) -> str:
        campaign = await self.scheduler.create_goal_campaign(cmd.goal, self.now())
        return campaign.id

    async def _on_tick(self, cmd: Tick) -> Any:
        now = self._at(cmd.at)
        if cmd.kind is TickKind.PATTERN_REFRESH:
            return self.scheduler.refresh_patterns(now)
        if cmd.kind is TickKind.OPTIMIZATION:
            report = await self.scheduler.optimize(now)
            await self.scheduler.schedule_daily_checkin(now)
            return report.to_dict()
        return await self.scheduler.cleanup(now)

    async def _on_initialize(self, cmd: Initialize) -> int:
        now = self._at(cmd.at)
        created = await self.scheduler.initialize(now)
        await self.scheduler.schedule_daily_checkin(now)
        return created

    async def _on_list_campaigns(self, cmd: ListCampaigns) -> list[Campaign]:
        return [c.model_copy(deep=True) for c in self.registry.list()]

    async def _on_read_patterns(self, cmd: ReadPatterns) -> dict[str, Any]:
        now = self.now()
        return {
            "behavior": self.analyzer.behavior_pattern(now).model_dump(mode="json"),
            "emotional": self.analyzer.emotional_patterns(now).model_dump(mode="json"),
            "engagement": self.analyzer.engagement_metrics(now).model_dump(mode="json"),
            "segmentation_tags": dict(self.scheduler.segmentation_tags),
        }

    async def _on_read_insights(self, cmd: ReadInsights) -> dict[str, Any]:
        return self.analyzer.insights(self.now()).model_dump(mode="json")

    def _register_handlers(self) -> None:
        self.pipeline.register(RecordUsage, self._on_usage)
        self.pipeline.register(RecordEmotion, self._on_emotion)
        self.pipeline.register(RecordEngagement, self._on_engagement)
        self.pipeline.register(RecordCompletion, self._on_completion)
        self.pipeline.register(RecordOpen, self._on_open)
        self.pipeline.register(CelebrateAchievement, self._on_achievement)
        self.pipeline.register(CelebrateGoal, self._on_goal)
        self.pipeline.register(Tick, self._on_tick)
        self.pipeline.register(Initialize, self._on_initialize)
        self.pipeline.register(ListCampaigns, self._on_list_campaigns)
        self.pipeline.register(ReadPatterns, self._on_read_patterns)
        self.pipeline.register(ReadInsights, self._on_read_insights)


def create_context(
    settings: Settings,
    *,
    gateway: DeliveryGateway | None = None,
    predictor: PredictorAdapter | None = None,
    recipient: Recipient | None = None,
    rng: random.Random | None = None,
    persist: bool = True,
) -> NudgeContext:
    """Wire every component from *settings*.

    Collaborators may be injected (tests pass a recording gateway and a
    seeded ``rng``).  With ``persist=False`` nothing touches the database.
    """
    events = EventLogRepository(capacity=settings.store_reload_limit) if persist else None
    history = NotificationHistoryRepository() if persist else None

    store = BehaviorStore(
        capacity=settings.store_max_events,
        window=timedelta(days=settings.analysis_window_days),
        repository=events,
    )
    analyzer = PatternAnalyzer(store, min_data_points=settings.min_data_points)
    registry = CampaignRegistry()
    signals = SignalHub()
    if history is not None:
        signals.on_history(history.save)

    scheduler = CampaignScheduler(
        store=store,
        analyzer=analyzer,
        registry=registry,
        predictor=predictor
        or RuleBasedPredictor(confidence_threshold=settings.prediction_confidence_threshold),
        personalizer=PersonalizationEngine(rng),
        gateway=gateway or create_gateway(settings),
        signals=signals,
        recipient=recipient
        or Recipient(
            subscriber_id=settings.subscriber_id,
            opted_in=settings.recipient_opted_in,
            permission_granted=settings.notification_permission_granted,
        ),
        settings=settings,
        policy=create_policy(settings),
    )

    pipeline = EventPipeline()
    service = SchedulerService(
        pipeline.submit,
        {
            TickKind.PATTERN_REFRESH: settings.pattern_refresh_seconds,
            TickKind.OPTIMIZATION: settings.optimization_interval_seconds,
            TickKind.CLEANUP: settings.cleanup_interval_seconds,
        },
    )

    ctx = NudgeContext(
        settings=settings,
        store=store,
        analyzer=analyzer,
        registry=registry,
        scheduler=scheduler,
        pipeline=pipeline,
        service=service,
        history=history,
    )
    ctx._register_handlers()
    return ctx
