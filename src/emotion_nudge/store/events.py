"""Behaviour / emotion store — the engine's in-memory event log.

Three bounded histories (behaviour, emotion, engagement) hold raw events.
Everything derived from them lives in :mod:`emotion_nudge.analysis`; the
store itself only appends and answers windowed queries.

An optional :class:`~emotion_nudge.storage.repository.EventLogRepository`
can be attached for durability.  Reloading is capped (``reload_limit`` per
stream) so a long-lived database never floods memory on startup.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from emotion_nudge.models import (
    BehaviorEvent,
    BehaviorKind,
    Emotion,
    EmotionEvent,
    EngagementEvent,
    InterventionType,
    day_of_week,
    ensure_aware,
    utcnow,
)
from emotion_nudge.store.history import BoundedHistory

if TYPE_CHECKING:
    from emotion_nudge.storage.repository import EventLogRepository

logger = structlog.get_logger(__name__)

DEFAULT_CAPACITY = 5000
DEFAULT_RELOAD_LIMIT = 1000
DEFAULT_WINDOW = timedelta(days=30)

AnyEvent = BehaviorEvent | EmotionEvent | EngagementEvent


class BehaviorStore:
    """Append-only, capped event log for a single user."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        window: timedelta = DEFAULT_WINDOW,
        repository: EventLogRepository | None = None,
    ) -> None:
        self.behavior: BoundedHistory[BehaviorEvent] = BoundedHistory(capacity)
        self.emotions: BoundedHistory[EmotionEvent] = BoundedHistory(capacity)
        self.engagements: BoundedHistory[EngagementEvent] = BoundedHistory(capacity)
        self._window = window
        self._repository = repository
        self._pending: list[AnyEvent] = []

    @property
    def window(self) -> timedelta:
        return self._window

    @property
    def pending(self) -> int:
        """Events recorded but not yet written to the repository."""
        return len(self._pending)

    # ── Recording ─────────────────────────────────────────────

    def record_usage(
        self,
        hour: int,
        day_of_week: int,
        *,
        duration: float | None = None,
        now: datetime | None = None,
    ) -> BehaviorEvent:
        event = BehaviorEvent(
            timestamp=now or utcnow(),
            kind=BehaviorKind.USAGE,
            hour=hour,
            day_of_week=day_of_week,
            duration=duration,
            context={"session_start": True},
        )
        return self.append(event)

    def record_emotion(
        self,
        emotion: Emotion,
        confidence: float,
        intensity: float,
        context: dict[str, Any] | None = None,
        *,
        now: datetime | None = None,
    ) -> EmotionEvent:
        return self.append(EmotionEvent.observed(emotion, confidence, intensity, context, at=now))

    def record_engagement(
        self,
        emotion: Emotion,
        intervention: InterventionType,
        scheduled_time: datetime,
        actual_time: datetime,
    ) -> EngagementEvent:
        event = EngagementEvent(
            scheduled_time=scheduled_time,
            actual_engagement_time=actual_time,
            emotion=emotion,
            intervention=intervention,
            engaged=True,
        )
        return self.append(event)

    def record_intervention_completion(
        self,
        technique: str,
        duration: float,
        effectiveness_score: float,
        feedback: str | None = None,
        *,
        now: datetime | None = None,
    ) -> BehaviorEvent:
        ts = ensure_aware(now) if now else utcnow()
        event = BehaviorEvent(
            timestamp=ts,
            kind=BehaviorKind.INTERVENTION_COMPLETION,
            hour=ts.hour,
            day_of_week=day_of_week(ts),
            duration=duration,
            context={
                "intervention": technique,
                "effectiveness": effectiveness_score,
                "feedback": feedback or "",
            },
        )
        return self.append(event)

    def append(self, event: AnyEvent) -> AnyEvent:
        """Route *event* into its history and queue it for persistence."""
        if isinstance(event, BehaviorEvent):
            self.behavior.append(event)
        elif isinstance(event, EmotionEvent):
            self.emotions.append(event)
        else:
            self.engagements.append(event)
        if self._repository is not None:
            self._pending.append(event)
        return event

    # ── Windowed reads ────────────────────────────────────────

    def _cutoff(self, now: datetime | None) -> datetime:
        return (ensure_aware(now) if now else utcnow()) - self._window

    def recent_behavior(self, now: datetime | None = None) -> list[BehaviorEvent]:
        cutoff = self._cutoff(now)
        return self.behavior.since(cutoff, key=lambda e: e.timestamp)

    def recent_emotions(self, now: datetime | None = None) -> list[EmotionEvent]:
        cutoff = self._cutoff(now)
        return self.emotions.since(cutoff, key=lambda e: e.timestamp)

    def recent_engagements(self, now: datetime | None = None) -> list[EngagementEvent]:
        cutoff = self._cutoff(now)
        return self.engagements.since(cutoff, key=lambda e: e.scheduled_time)

    # ── Persistence ───────────────────────────────────────────

    async def flush(self) -> int:
        """Write queued events to the attached repository.

        An event leaves the queue only after its write succeeds.  A database
        error is logged and the unwritten events wait for the next flush.
        """
        if self._repository is None:
            return 0
        written = 0
        while self._pending:
            event = self._pending[0]
            try:
                await self._repository.append(event)
            except SQLAlchemyError as exc:
                logger.error(
                    "store.flush_failed",
                    event_id=event.id,
                    pending=len(self._pending),
                    error=str(exc),
                )
                break
            self._pending.pop(0)
            written += 1
        if written:
            logger.debug("store.flushed", events=written)
        return written

    async def load(self, limit: int = DEFAULT_RELOAD_LIMIT) -> int:
        """Reload up to *limit* recent events per stream from the repository."""
        if self._repository is None:
            return 0
        loaded = 0
        for events in (
            await self._repository.recent_behavior(limit=limit),
            await self._repository.recent_emotions(limit=limit),
            await self._repository.recent_engagements(limit=limit),
        ):
            for event in events:
                if isinstance(event, BehaviorEvent):
                    self.behavior.append(event)
                elif isinstance(event, EmotionEvent):
                    self.emotions.append(event)
                else:
                    self.engagements.append(event)
            loaded += len(events)
        logger.info("store.loaded", events=loaded, limit=limit)
        return loaded
