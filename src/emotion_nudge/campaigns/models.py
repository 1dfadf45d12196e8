"""Campaign data model.

A campaign is the single mutable aggregate in the engine.  Its lifecycle
state is derived from ``is_active`` and ``last_triggered_at``; only the
scheduler mutates campaigns.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from emotion_nudge.campaigns.segmentation import Segmentation
from emotion_nudge.models import Emotion, utcnow

DEFAULT_COOLDOWN = timedelta(hours=1)


class CampaignType(str, Enum):
    EMOTION_TRIGGERED = "emotion_triggered"
    PREDICTIVE = "predictive"
    DAILY_CHECKIN = "daily_checkin"
    ACHIEVEMENT = "achievement"
    RE_ENGAGEMENT = "re_engagement"


class CampaignState(str, Enum):
    ACTIVE = "active"
    COOLDOWN = "cooldown"
    IDLE = "idle"
    PAUSED = "paused"


class ActionKind(str, Enum):
    OPEN_APP = "open_app"
    OPEN_SCREEN = "open_screen"
    OPEN_INTERVENTION = "open_intervention"
    REMIND_LATER = "remind_later"
    SHARE_ACHIEVEMENT = "share_achievement"


class CampaignAction(BaseModel):
    kind: ActionKind
    target: str = ""  # screen, intervention, achievement id or delay seconds


class ActionButton(BaseModel):
    id: str
    text: str
    action: CampaignAction


class RichMedia(BaseModel):
    image_url: str | None = None
    video_url: str | None = None
    sound_name: str | None = None


class CampaignContent(BaseModel):
    title: str
    body: str
    action_buttons: list[ActionButton] = Field(default_factory=list)
    custom_data: dict[str, str] = Field(default_factory=dict)
    rich_media: RichMedia | None = None


class TriggerType(str, Enum):
    EMOTION_DETECTED = "emotion_detected"
    CONFIDENCE_THRESHOLD = "confidence_threshold"
    PREDICTED_EMOTION = "predicted_emotion"
    PREDICTION_CONFIDENCE = "prediction_confidence"
    TIME_OF_DAY = "time_of_day"
    USER_ACTIVITY = "user_activity"
    ENGAGEMENT_SCORE = "engagement_score"


class CampaignTrigger(BaseModel):
    """Descriptive trigger condition attached to a campaign."""

    type: TriggerType
    condition: str
    value: str


class CampaignSchedule(BaseModel):
    scheduled_time: datetime
    repeat_interval: float | None = None  # seconds
    timezone: str = "UTC"


class CampaignAnalytics(BaseModel):
    """Per-campaign counters.  Derived rates are zero-safe and in ``[0, 1]``."""

    sent: int = 0
    opened: int = 0
    conversions: int = 0
    effectiveness_sum: float = 0.0

    @property
    def engagement_rate(self) -> float:
        if self.sent <= 0:
            return 0.0
        return min(1.0, self.opened / self.sent)

    @property
    def conversion_rate(self) -> float:
        if self.opened <= 0:
            return 0.0
        return min(1.0, self.conversions / self.opened)

    @property
    def average_effectiveness(self) -> float:
        if self.conversions <= 0:
            return 0.0
        return max(0.0, min(1.0, self.effectiveness_sum / self.conversions))


class Campaign(BaseModel):
    id: str
    name: str
    type: CampaignType
    target_emotion: Emotion
    content: CampaignContent
    triggers: list[CampaignTrigger] = Field(default_factory=list)
    segmentation: Segmentation = ()
    schedule: CampaignSchedule
    analytics: CampaignAnalytics = Field(default_factory=CampaignAnalytics)
    is_active: bool = True
    one_shot: bool = False  # retired after its single send
    created_at: datetime = Field(default_factory=utcnow)
    last_triggered_at: datetime | None = None
    needs_timing_adjustment: bool = False
    needs_content_adjustment: bool = False

    def in_cooldown(self, now: datetime | None = None, period: timedelta = DEFAULT_COOLDOWN) -> bool:
        if self.last_triggered_at is None:
            return False
        return (now or utcnow()) - self.last_triggered_at < period

    def state(self, now: datetime | None = None, period: timedelta = DEFAULT_COOLDOWN) -> CampaignState:
        if not self.is_active:
            return CampaignState.PAUSED
        if self.in_cooldown(now, period):
            return CampaignState.COOLDOWN
        if self.last_triggered_at is not None:
            return CampaignState.IDLE
        return CampaignState.ACTIVE
