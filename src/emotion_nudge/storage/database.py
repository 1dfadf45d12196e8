"""SQLAlchemy async engine, session factory, and ORM table definitions."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, func
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from emotion_nudge.config import get_settings

# ── Base ──────────────────────────────────────────────────────


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


# ── Event log tables ──────────────────────────────────────────


class BehaviorEventRow(Base):
    """Persisted app-usage / intervention-completion event."""

    __tablename__ = "behavior_events"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, index=True)
    kind: Mapped[str] = mapped_column(String(32))
    hour: Mapped[int] = mapped_column(Integer)
    day_of_week: Mapped[int] = mapped_column(Integer)
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    context_json: Mapped[str] = mapped_column(Text, default="{}")


class EmotionEventRow(Base):
    """Persisted emotion classification."""

    __tablename__ = "emotion_events"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime, index=True)
    emotion: Mapped[str] = mapped_column(String(16), index=True)
    confidence: Mapped[float] = mapped_column(Float)
    intensity: Mapped[float] = mapped_column(Float)
    hour: Mapped[int] = mapped_column(Integer)
    day_of_week: Mapped[int] = mapped_column(Integer)
    context_json: Mapped[str] = mapped_column(Text, default="{}")


class EngagementEventRow(Base):
    """Persisted notification engagement."""

    __tablename__ = "engagement_events"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True)
    scheduled_time: Mapped[datetime] = mapped_column(DateTime, index=True)
    actual_engagement_time: Mapped[datetime] = mapped_column(DateTime)
    emotion: Mapped[str] = mapped_column(String(16))
    intervention: Mapped[str] = mapped_column(String(32))
    engaged: Mapped[bool] = mapped_column(Boolean, default=True)


# ── Notification history ──────────────────────────────────────


class NotificationHistoryRow(Base):
    """A delivered notification, as shown in the in-app history list."""

    __tablename__ = "notification_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(256))
    body: Mapped[str] = mapped_column(Text)
    received_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    type: Mapped[str] = mapped_column(String(32))
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    emotion: Mapped[str | None] = mapped_column(String(16), nullable=True)
    intervention: Mapped[str | None] = mapped_column(String(32), nullable=True)
    custom_data_json: Mapped[str] = mapped_column(Text, default="{}")
    priority: Mapped[str] = mapped_column(String(16), default="medium")
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


# ── Engine & session ──────────────────────────────────────────

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(get_settings().database_url, echo=False)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(_get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency-injectable async session generator (for FastAPI)."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def init_db() -> None:
    """Create all tables (idempotent)."""
    url = get_settings().database_url
    if url.startswith("sqlite") and ":memory:" not in url:
        # URL format: sqlite+aiosqlite:///path/to/db
        Path(url.split("///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)

    async with _get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections (shutdown hook)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
