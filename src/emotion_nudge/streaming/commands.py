"""Typed commands accepted by the event pipeline.

One command per ingestion operation, plus read commands so that snapshots
are taken between writes.  :class:`Initialize` and :class:`Tick` drive
start-up and the periodic timers.  Commands are immutable value objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from emotion_nudge.models import Achievement, Emotion, Goal, InterventionType


class TickKind(str, Enum):
    PATTERN_REFRESH = "pattern_refresh"
    OPTIMIZATION = "optimization"
    CLEANUP = "cleanup"


@dataclass(frozen=True, slots=True)
class RecordUsage:
    hour: int
    day_of_week: int
    duration: float | None = None
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RecordEmotion:
    emotion: Emotion
    confidence: float
    intensity: float
    context: dict[str, Any] = field(default_factory=dict)
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RecordEngagement:
    emotion: Emotion
    intervention: InterventionType
    scheduled_time: datetime
    actual_time: datetime


@dataclass(frozen=True, slots=True)
class RecordCompletion:
    technique: str
    duration: float
    effectiveness: float
    feedback: str | None = None
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RecordOpen:
    campaign_id: str


@dataclass(frozen=True, slots=True)
class CelebrateAchievement:
    achievement: Achievement


@dataclass(frozen=True, slots=True)
class CelebrateGoal:
    goal: Goal


@dataclass(frozen=True, slots=True)
class Tick:
    kind: TickKind
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class Initialize:
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ListCampaigns:
    pass


@dataclass(frozen=True, slots=True)
class ReadPatterns:
    pass


@dataclass(frozen=True, slots=True)
class ReadInsights:
    pass


Command = (
    RecordUsage
    | RecordEmotion
    | RecordEngagement
    | RecordCompletion
    | RecordOpen
    | CelebrateAchievement
    | CelebrateGoal
    | Tick
    | Initialize
    | ListCampaigns
    | ReadPatterns
    | ReadInsights
)
