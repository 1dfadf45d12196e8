"""Derived pattern models.

Everything here is recomputed from the store on demand and never stored
authoritatively.  Empty inputs produce the documented neutral defaults.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from emotion_nudge.models import Emotion, InterventionType, utcnow


class RecoveryMethod(str, Enum):
    NATURAL = "natural"  # < 30 min
    TIME_BASED = "time_based"  # < 60 min
    INTERVENTION_BASED = "intervention_based"


class SessionPatterns(BaseModel):
    average_duration: float = 0.0
    sessions_per_day: float = 0.0
    peak_usage_hours: list[int] = Field(default_factory=list)


class BehaviorPattern(BaseModel):
    """Snapshot of a user's habits over the analysis window."""

    usage_hours: list[int] = Field(default_factory=list)
    emotional_peak_hours: list[int] = Field(default_factory=list)
    preferred_interventions: list[InterventionType] = Field(default_factory=list)
    engagement_history: list[float] = Field(default_factory=list)
    session_patterns: SessionPatterns = Field(default_factory=SessionPatterns)
    last_updated: datetime = Field(default_factory=utcnow)


class EmotionTransition(BaseModel):
    from_emotion: Emotion
    to_emotion: Emotion
    interval_seconds: float
    timestamp: datetime


class TriggerPattern(BaseModel):
    """A recurring hour of day correlated with negative emotions."""

    hour: int
    dominant_emotion: Emotion
    frequency: int
    confidence: float


class RecoveryPattern(BaseModel):
    from_emotion: Emotion
    to_emotion: Emotion
    recovery_seconds: float
    method: RecoveryMethod


class EmotionalPatternAnalysis(BaseModel):
    stability: float = 1.0
    transitions: list[EmotionTransition] = Field(default_factory=list)
    trigger_patterns: list[TriggerPattern] = Field(default_factory=list)
    recovery_patterns: list[RecoveryPattern] = Field(default_factory=list)
    last_analyzed: datetime = Field(default_factory=utcnow)


class ResponseTimePatterns(BaseModel):
    average_minutes: float = 0.0
    median_minutes: float = 0.0
    quick_response_rate: float = 0.0


class EngagementMetrics(BaseModel):
    overall_rate: float = 0.0
    by_hour: dict[int, float] = Field(default_factory=dict)
    by_emotion: dict[Emotion, float] = Field(default_factory=dict)
    response_times: ResponseTimePatterns = Field(default_factory=ResponseTimePatterns)
    last_calculated: datetime = Field(default_factory=utcnow)


class EmotionalPatternInsights(BaseModel):
    dominant_emotion: Emotion = Emotion.NEUTRAL
    stress_peak_hours: list[int] = Field(default_factory=list)
    optimal_intervention_times: list[int] = Field(default_factory=list)
    volatility: float = 0.0
    weekly_patterns: dict[int, Emotion] = Field(default_factory=dict)
    confidence: float = 0.0
