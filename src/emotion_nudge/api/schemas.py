"""Request / response models shared across API route modules."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field

from emotion_nudge.models import Emotion, InterventionType


class UsageRequest(BaseModel):
    hour: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=1, le=7)  # Sunday = 1
    duration: float | None = None
    timestamp: AwareDatetime | None = None


class EmotionRequest(BaseModel):
    emotion: Emotion
    confidence: float = Field(ge=0.0, le=1.0)
    intensity: float = Field(ge=0.0, le=1.0)
    context: dict[str, Any] = {}
    timestamp: AwareDatetime | None = None


class EngagementRequest(BaseModel):
    emotion: Emotion
    intervention: InterventionType
    scheduled_time: AwareDatetime
    actual_time: AwareDatetime


class CompletionRequest(BaseModel):
    """A finished intervention session."""
    technique: str
    duration: float
    effectiveness_score: float = Field(ge=0.0, le=1.0)
    feedback: str | None = None
    timestamp: AwareDatetime | None = None


class CampaignSummary(BaseModel):
    id: str
    name: str
    type: str
    target_emotion: Emotion
    state: str
    is_active: bool
    scheduled_time: datetime
    sent: int
    opened: int
    conversions: int
    engagement_rate: float
    conversion_rate: float
    needs_timing_adjustment: bool
    needs_content_adjustment: bool
