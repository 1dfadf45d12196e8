"""Data-access layer — thin async wrappers around SQLAlchemy queries."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Literal, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from emotion_nudge.models import (
    BehaviorEvent,
    BehaviorKind,
    Emotion,
    EmotionEvent,
    EngagementEvent,
    InterventionType,
    NotificationHistoryItem,
    NotificationPriority,
)
from emotion_nudge.storage.database import (
    BehaviorEventRow,
    EmotionEventRow,
    EngagementEventRow,
    NotificationHistoryRow,
    get_session_factory,
)

StreamKind = Literal["behavior", "emotion", "engagement"]

_ROW_FOR: dict[str, type] = {
    "behavior": BehaviorEventRow,
    "emotion": EmotionEventRow,
    "engagement": EngagementEventRow,
}


def _to_db(dt: datetime) -> datetime:
    """Store naive UTC (SQLite has no tz-aware column type)."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _from_db(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


class BaseRepository:
    """Shared base with session management for all repositories."""

    def __init__(
        self,
        session: AsyncSession | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        self._external_session = session
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._external_session is not None:
            yield self._external_session
            return
        factory = self._session_factory or get_session_factory()
        async with factory() as session:
            yield session


class EventLogRepository(BaseRepository):
    """Capped, append-only log for the three event streams.

    Each stream keeps at most ``capacity`` rows; appending beyond that
    deletes the oldest rows (by insertion sequence).
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        capacity: int = 1000,
    ) -> None:
        super().__init__(session, session_factory)
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    # ── Write ─────────────────────────────────────────────────

    async def append(self, event: BehaviorEvent | EmotionEvent | EngagementEvent) -> None:
        if isinstance(event, BehaviorEvent):
            kind: StreamKind = "behavior"
            row = BehaviorEventRow(
                id=event.id,
                timestamp=_to_db(event.timestamp),
                kind=event.kind.value,
                hour=event.hour,
                day_of_week=event.day_of_week,
                duration=event.duration,
                context_json=json.dumps(event.context, default=str),
            )
        elif isinstance(event, EmotionEvent):
            kind = "emotion"
            row = EmotionEventRow(
                id=event.id,
                timestamp=_to_db(event.timestamp),
                emotion=event.emotion.value,
                confidence=event.confidence,
                intensity=event.intensity,
                hour=event.hour,
                day_of_week=event.day_of_week,
                context_json=json.dumps(event.context, default=str),
            )
        else:
            kind = "engagement"
            row = EngagementEventRow(
                id=event.id,
                scheduled_time=_to_db(event.scheduled_time),
                actual_engagement_time=_to_db(event.actual_engagement_time),
                emotion=event.emotion.value,
                intervention=event.intervention.value,
                engaged=event.engaged,
            )

        async with self._session() as session:
            session.add(row)
            await session.flush()
            await self._trim(session, kind)
            await session.commit()

    async def _trim(self, session: AsyncSession, kind: StreamKind) -> None:
        """Delete rows older than the newest ``capacity`` entries."""
        table = _ROW_FOR[kind]
        cutoff_stmt = (
            select(table.seq)
            .order_by(table.seq.desc())
            .offset(self._capacity)
            .limit(1)
        )
        cutoff = (await session.execute(cutoff_stmt)).scalar()
        if cutoff is not None:
            await session.execute(delete(table).where(table.seq <= cutoff))

    # ── Read ──────────────────────────────────────────────────

    async def count(self, kind: StreamKind) -> int:
        table = _ROW_FOR[kind]
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(table))
            return result.scalar() or 0

    async def _latest(
        self,
        kind: StreamKind,
        limit: int,
        since: datetime | None = None,
    ) -> Sequence:
        table = _ROW_FOR[kind]
        stmt = select(table).order_by(table.seq.desc()).limit(limit)
        if since is not None:
            column = table.scheduled_time if kind == "engagement" else table.timestamp
            stmt = stmt.where(column >= _to_db(since))
        async with self._session() as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())
        rows.reverse()  # oldest first
        return rows

    async def recent_behavior(
        self, limit: int = 1000, since: datetime | None = None
    ) -> list[BehaviorEvent]:
        rows = await self._latest("behavior", limit, since)
        return [
            BehaviorEvent(
                id=r.id,
                timestamp=_from_db(r.timestamp),
                kind=BehaviorKind(r.kind),
                hour=r.hour,
                day_of_week=r.day_of_week,
                duration=r.duration,
                context=json.loads(r.context_json or "{}"),
            )
            for r in rows
        ]

    async def recent_emotions(
        self, limit: int = 1000, since: datetime | None = None
    ) -> list[EmotionEvent]:
        rows = await self._latest("emotion", limit, since)
        return [
            EmotionEvent(
                id=r.id,
                timestamp=_from_db(r.timestamp),
                emotion=Emotion(r.emotion),
                confidence=r.confidence,
                intensity=r.intensity,
                hour=r.hour,
                day_of_week=r.day_of_week,
                context=json.loads(r.context_json or "{}"),
            )
            for r in rows
        ]

    async def recent_engagements(
        self, limit: int = 1000, since: datetime | None = None
    ) -> list[EngagementEvent]:
        rows = await self._latest("engagement", limit, since)
        return [
            EngagementEvent(
                id=r.id,
                scheduled_time=_from_db(r.scheduled_time),
                actual_engagement_time=_from_db(r.actual_engagement_time),
                emotion=Emotion(r.emotion),
                intervention=InterventionType(r.intervention),
                engaged=r.engaged,
            )
            for r in rows
        ]

    async def query_recent(
        self, kind: StreamKind, since: datetime, limit: int = 1000
    ) -> list[BehaviorEvent] | list[EmotionEvent] | list[EngagementEvent]:
        """Return events of *kind* at or after *since*, oldest first."""
        if kind == "behavior":
            return await self.recent_behavior(limit, since)
        if kind == "emotion":
            return await self.recent_emotions(limit, since)
        return await self.recent_engagements(limit, since)


class NotificationHistoryRepository(BaseRepository):
    """Write-back target for successfully delivered notifications."""

    async def save(self, item: NotificationHistoryItem) -> None:
        async with self._session() as session:
            session.add(
                NotificationHistoryRow(
                    id=item.id,
                    title=item.title,
                    body=item.body,
                    received_at=_to_db(item.received_at),
                    type=item.type,
                    is_read=item.is_read,
                    emotion=item.emotion.value if item.emotion else None,
                    intervention=item.intervention.value if item.intervention else None,
                    custom_data_json=json.dumps(item.custom_data),
                    priority=item.priority.value,
                )
            )
            await session.commit()

    async def list_recent(self, limit: int = 50) -> list[NotificationHistoryItem]:
        stmt = (
            select(NotificationHistoryRow)
            .order_by(NotificationHistoryRow.received_at.desc())
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()
        return [
            NotificationHistoryItem(
                id=r.id,
                title=r.title,
                body=r.body,
                received_at=_from_db(r.received_at),
                type=r.type,
                is_read=r.is_read,
                emotion=Emotion(r.emotion) if r.emotion else None,
                intervention=InterventionType(r.intervention) if r.intervention else None,
                custom_data=json.loads(r.custom_data_json or "{}"),
                priority=NotificationPriority(r.priority),
            )
            for r in rows
        ]

    async def mark_read(self, item_id: str) -> bool:
        stmt = (
            update(NotificationHistoryRow)
            .where(NotificationHistoryRow.id == item_id)
            .values(is_read=True)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            await session.commit()
            return (result.rowcount or 0) > 0
