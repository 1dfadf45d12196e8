"""Shared Pydantic models and enums used across the engine."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# ── Enums ─────────────────────────────────────────────────────


class Emotion(str, Enum):
    """The seven emotion categories produced by upstream classifiers.

    Declaration order is significant: it breaks ties when picking a
    dominant emotion.
    """

    JOY = "joy"
    SADNESS = "sadness"
    ANGER = "anger"
    FEAR = "fear"
    SURPRISE = "surprise"
    DISGUST = "disgust"
    NEUTRAL = "neutral"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class InterventionType(str, Enum):
    """Micro-interventions a notification can point the user to."""

    GRATITUDE_PRACTICE = "gratitude_practice"
    SELF_COMPASSION_BREAK = "self_compassion_break"
    COOLING_BREATH = "cooling_breath"
    GROUNDING_EXERCISE = "grounding_exercise"
    MINDFULNESS_CHECK = "mindfulness_check"
    EMOTIONAL_RESET = "emotional_reset"
    BALANCE_MAINTENANCE = "balance_maintenance"
    BREATHING_EXERCISE = "breathing_exercise"
    VOICE_GUIDED_MEDITATION = "voice_guided_meditation"


class BehaviorKind(str, Enum):
    USAGE = "usage"
    INTERVENTION_COMPLETION = "intervention_completion"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AchievementType(str, Enum):
    DAILY_GOAL = "daily_goal"
    WEEKLY_GOAL = "weekly_goal"
    STREAK = "streak"
    MILESTONE = "milestone"


# Analytics treat disgust as negative; the auto-trigger set does not.
NEGATIVE_EMOTIONS: frozenset[Emotion] = frozenset(
    {Emotion.ANGER, Emotion.FEAR, Emotion.SADNESS, Emotion.DISGUST}
)
RECOVERY_EMOTIONS: frozenset[Emotion] = frozenset({Emotion.JOY, Emotion.NEUTRAL})
EMERGENCY_EMOTIONS: frozenset[Emotion] = frozenset(
    {Emotion.ANGER, Emotion.FEAR, Emotion.SADNESS}
)

# Completed technique name → intervention family
_TECHNIQUE_MAP: dict[str, InterventionType] = {
    "gratitude": InterventionType.GRATITUDE_PRACTICE,
    "self_compassion": InterventionType.SELF_COMPASSION_BREAK,
    "box_breathing": InterventionType.BREATHING_EXERCISE,
    "equal_breathing": InterventionType.BREATHING_EXERCISE,
    "5_4_3_2_1": InterventionType.GROUNDING_EXERCISE,
    "thought_observation": InterventionType.MINDFULNESS_CHECK,
    "body_awareness": InterventionType.MINDFULNESS_CHECK,
    "emotional_processing": InterventionType.EMOTIONAL_RESET,
    "loving_kindness": InterventionType.BALANCE_MAINTENANCE,
}


def intervention_from_technique(name: str) -> InterventionType:
    """Map a completed technique name onto its intervention family.

    Unknown names fall back to :attr:`InterventionType.MINDFULNESS_CHECK`.
    """
    return _TECHNIQUE_MAP.get(name, InterventionType.MINDFULNESS_CHECK)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Read a naive datetime as UTC; aware values pass through unchanged."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def day_of_week(dt: datetime) -> int:
    """Return the weekday as 1..7 with Sunday = 1."""
    return dt.isoweekday() % 7 + 1


# ── Events (immutable once recorded) ──────────────────────────


class BehaviorEvent(BaseModel):
    """App usage or a completed intervention."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    kind: BehaviorKind
    hour: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=1, le=7)
    duration: float | None = None  # seconds
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @property
    def technique(self) -> str:
        return str(self.context.get("intervention", ""))

    @property
    def effectiveness(self) -> float:
        return float(self.context.get("effectiveness", 0.0))


class EmotionEvent(BaseModel):
    """A classified emotional state."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=utcnow)
    emotion: Emotion
    confidence: float = Field(ge=0.0, le=1.0)
    intensity: float = Field(ge=0.0, le=1.0)
    hour: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=1, le=7)
    context: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @classmethod
    def observed(
        cls,
        emotion: Emotion,
        confidence: float,
        intensity: float,
        context: dict[str, Any] | None = None,
        *,
        at: datetime | None = None,
    ) -> EmotionEvent:
        """Build an event whose hour and weekday come from *at*."""
        ts = ensure_aware(at) if at else utcnow()
        return cls(
            timestamp=ts,
            emotion=emotion,
            confidence=confidence,
            intensity=intensity,
            hour=ts.hour,
            day_of_week=day_of_week(ts),
            context=context or {},
        )


class EngagementEvent(BaseModel):
    """User interaction with a delivered notification."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    scheduled_time: datetime
    actual_engagement_time: datetime
    emotion: Emotion
    intervention: InterventionType
    engaged: bool = True

    @field_validator("scheduled_time", "actual_engagement_time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def delay_minutes(self) -> int:
        return int((self.actual_engagement_time - self.scheduled_time).total_seconds() / 60)


# ── Notification history ──────────────────────────────────────


class NotificationHistoryItem(BaseModel):
    """A record written back after every successful send."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    body: str
    received_at: datetime = Field(default_factory=utcnow)
    type: str
    is_read: bool = False
    emotion: Emotion | None = None
    intervention: InterventionType | None = None
    custom_data: dict[str, str] = Field(default_factory=dict)
    priority: NotificationPriority = NotificationPriority.MEDIUM

    @field_validator("received_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)


# ── Celebration inputs ────────────────────────────────────────


class Achievement(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str
    description: str = ""
    type: AchievementType = AchievementType.MILESTONE


class Goal(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str | None = None
    category: str | None = None
