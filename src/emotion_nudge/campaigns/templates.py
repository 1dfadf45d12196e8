"""Static campaign templates and one factory per campaign kind.

Tables here are the only place copy, imagery and segmentation for
campaigns are defined.  Factories are pure apart from id generation and
the ``now`` they are given.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from emotion_nudge.analysis.models import BehaviorPattern
from emotion_nudge.campaigns.models import (
    ActionButton,
    ActionKind,
    Campaign,
    CampaignAction,
    CampaignContent,
    CampaignSchedule,
    CampaignTrigger,
    CampaignType,
    RichMedia,
    TriggerType,
)
from emotion_nudge.campaigns.segmentation import Segmentation, tags
from emotion_nudge.models import Achievement, AchievementType, Emotion, Goal, InterventionType
from emotion_nudge.prediction.base import Prediction
from emotion_nudge.scheduler.timing import DEFAULT_HOUR, OPTIMAL_HOURS, next_occurrence

TWEMOJI_BASE = "https://twemoji.maxcdn.com/v/14.0.2/72x72"
HIGH_CONFIDENCE = 0.8
EMOTION_CONFIDENCE_TRIGGER = "0.8"
ACHIEVEMENT_DELAY = timedelta(seconds=300)
GOAL_DELAY = timedelta(seconds=30)
DAILY = 86400.0
WEEKLY = 86400.0 * 7
REENGAGEMENT_DELAY = timedelta(days=3)


def twemoji(code_point: str) -> str:
    return f"{TWEMOJI_BASE}/{code_point}.png"


# ── Tables ────────────────────────────────────────────────────

OPTIMAL_INTERVENTIONS: dict[Emotion, tuple[InterventionType, ...]] = {
    Emotion.JOY: (InterventionType.GRATITUDE_PRACTICE, InterventionType.BALANCE_MAINTENANCE),
    Emotion.SADNESS: (InterventionType.SELF_COMPASSION_BREAK, InterventionType.BREATHING_EXERCISE),
    Emotion.ANGER: (InterventionType.COOLING_BREATH, InterventionType.EMOTIONAL_RESET),
    Emotion.FEAR: (InterventionType.GROUNDING_EXERCISE, InterventionType.BREATHING_EXERCISE),
    Emotion.SURPRISE: (InterventionType.MINDFULNESS_CHECK, InterventionType.EMOTIONAL_RESET),
    Emotion.DISGUST: (InterventionType.EMOTIONAL_RESET, InterventionType.MINDFULNESS_CHECK),
    Emotion.NEUTRAL: (InterventionType.BALANCE_MAINTENANCE, InterventionType.MINDFULNESS_CHECK),
}

EMOTION_COPY: dict[Emotion, tuple[str, str]] = {
    Emotion.JOY: (
        "✨ Amplify Your Joy",
        "You're feeling great! Let's make this positive energy last even longer.",
    ),
    Emotion.SADNESS: (
        "💙 Gentle Support",
        "I noticed you might be feeling down. You're not alone - let's work through this together.",
    ),
    Emotion.ANGER: (
        "🔥 Channel Your Energy",
        "Feeling intense emotions? Let's transform that energy into something positive.",
    ),
    Emotion.FEAR: (
        "🛡️ Build Your Courage",
        "Feeling anxious? You're stronger than you know. Let's practice some grounding techniques.",
    ),
    Emotion.SURPRISE: (
        "⚡ Process the Unexpected",
        "Something caught you off guard? Let's help you process these new feelings.",
    ),
    Emotion.DISGUST: (
        "🌱 Reset and Refresh",
        "Feeling uncomfortable? Let's clear the air and reset your emotional state.",
    ),
    Emotion.NEUTRAL: (
        "⚖️ Maintain Balance",
        "You're in a good emotional space. Let's keep this balance going strong.",
    ),
}

BUTTON_TEXT: dict[InterventionType, str] = {
    InterventionType.GRATITUDE_PRACTICE: "Practice Gratitude",
    InterventionType.SELF_COMPASSION_BREAK: "Self-Compassion",
    InterventionType.COOLING_BREATH: "Cooling Breath",
    InterventionType.GROUNDING_EXERCISE: "Grounding",
    InterventionType.MINDFULNESS_CHECK: "Mindfulness",
    InterventionType.EMOTIONAL_RESET: "Reset",
    InterventionType.BALANCE_MAINTENANCE: "Maintain Balance",
    InterventionType.BREATHING_EXERCISE: "Breathing",
    InterventionType.VOICE_GUIDED_MEDITATION: "Voice Meditation",
}

EMOTION_IMAGES: dict[Emotion, str] = {
    Emotion.JOY: "1f60a",
    Emotion.SADNESS: "1f622",
    Emotion.ANGER: "1f621",
    Emotion.FEAR: "1f628",
    Emotion.SURPRISE: "1f632",
    Emotion.DISGUST: "1f922",
    Emotion.NEUTRAL: "1f610",
}

ACHIEVEMENT_IMAGES: dict[AchievementType, str] = {
    AchievementType.DAILY_GOAL: "1f3c6",
    AchievementType.WEEKLY_GOAL: "1f947",
    AchievementType.STREAK: "1f525",
    AchievementType.MILESTONE: "2b50",
}

GOAL_IMAGES: dict[str, str] = {
    "emotional_awareness": "1f60a",
    "stress_management": "1f4aa",
    "relationships": "1f91d",
    "self_compassion": "1f496",
    "mindfulness": "1f4ab",
    "communication": "1f4ac",
    "resilience": "1f6e1",
    "happiness": "1f31e",
}
DEFAULT_GOAL_IMAGE = "1f3c6"

GOAL_VARIANTS: tuple[tuple[str, str], ...] = (
    ("🎯 Goal Achieved!", "Congratulations! You've completed '{t}'. Your dedication is inspiring!"),
    ("🌟 Mission Accomplished", "You did it! '{t}' is now complete. Time to celebrate your success!"),
    ("🏆 Goal Completed", "Amazing work! You've successfully achieved '{t}'. Keep up the momentum!"),
    ("✨ Achievement Unlocked", "Fantastic! '{t}' is done. Your emotional growth journey continues!"),
)

DAILY_VARIANTS: tuple[tuple[str, str], ...] = (
    ("🌅 Morning Check-in", "How are you feeling today? Let's start with a quick emotional check-in."),
    ("💫 Daily Reflection", "Take a moment to connect with your emotions. Your wellbeing matters."),
    ("🎯 Emotional Awareness", "Ready to explore your emotional landscape today?"),
    ("🌱 Growth Moment", "Every check-in is a step toward greater emotional intelligence."),
)


# ── Building blocks ───────────────────────────────────────────


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4()}"


def _screen(button_id: str, text: str, screen: str) -> ActionButton:
    return ActionButton(
        id=button_id,
        text=text,
        action=CampaignAction(kind=ActionKind.OPEN_SCREEN, target=screen),
    )


def intervention_button(intervention: InterventionType) -> ActionButton:
    return ActionButton(
        id=intervention.value,
        text=BUTTON_TEXT[intervention],
        action=CampaignAction(kind=ActionKind.OPEN_INTERVENTION, target=intervention.value),
    )


def emotion_media(emotion: Emotion) -> RichMedia:
    return RichMedia(image_url=twemoji(EMOTION_IMAGES[emotion]), sound_name="default")


def emotion_content(emotion: Emotion) -> CampaignContent:
    title, body = EMOTION_COPY[emotion]
    interventions = OPTIMAL_INTERVENTIONS[emotion]
    return CampaignContent(
        title=title,
        body=body,
        action_buttons=[intervention_button(i) for i in interventions],
        custom_data={
            "emotion": emotion.value,
            "campaign_type": "emotion_triggered",
            "interventions": ",".join(i.value for i in interventions),
        },
        rich_media=emotion_media(emotion),
    )


def predictive_content(prediction: Prediction) -> CampaignContent:
    likelihood = "highly likely" if prediction.confidence > HIGH_CONFIDENCE else "might"
    emotion_name = prediction.predicted_emotion.display_name.lower()
    return CampaignContent(
        title="🔮 Proactive Emotional Support",
        body=f"Based on your patterns, you {likelihood} benefit from some {emotion_name} support soon.",
        action_buttons=[
            ActionButton(
                id="start_intervention",
                text="Start Session",
                action=CampaignAction(
                    kind=ActionKind.OPEN_INTERVENTION,
                    target=prediction.recommended_intervention.value,
                ),
            ),
            ActionButton(
                id="remind_later",
                text="Remind Later",
                action=CampaignAction(kind=ActionKind.REMIND_LATER, target="3600"),
            ),
        ],
        custom_data={
            "predicted_emotion": prediction.predicted_emotion.value,
            "confidence": str(prediction.confidence),
            "campaign_type": "predictive",
        },
    )


def achievement_content(achievement: Achievement) -> CampaignContent:
    return CampaignContent(
        title=f"🎉 {achievement.title}",
        body=f"{achievement.description} Keep up the amazing progress!",
        action_buttons=[
            _screen("view_progress", "View Progress", "insights"),
            ActionButton(
                id="share_achievement",
                text="Share",
                action=CampaignAction(kind=ActionKind.SHARE_ACHIEVEMENT, target=achievement.id),
            ),
        ],
        custom_data={
            "achievement_id": achievement.id,
            "achievement_type": achievement.type.value,
            "campaign_type": "achievement",
        },
        rich_media=RichMedia(
            image_url=twemoji(ACHIEVEMENT_IMAGES[achievement.type]),
            sound_name="achievement_celebration.wav",
        ),
    )


def goal_content(goal: Goal, variant: int) -> CampaignContent:
    """Goal-completion copy using ``GOAL_VARIANTS[variant]``."""
    goal_title = goal.title or "Your Goal"
    category = goal.category or "personal"
    title, body = GOAL_VARIANTS[variant]
    return CampaignContent(
        title=title,
        body=body.format(t=goal_title),
        action_buttons=[
            _screen("view_goals", "View Goals", "coaching"),
            _screen("set_new_goal", "Set New Goal", "coaching"),
        ],
        custom_data={
            "goal_id": goal.id,
            "goal_title": goal_title,
            "goal_category": category,
            "campaign_type": "goal_completion",
        },
        rich_media=RichMedia(
            image_url=twemoji(GOAL_IMAGES.get(category.lower(), DEFAULT_GOAL_IMAGE)),
            sound_name="goal_celebration.wav",
        ),
    )


def daily_checkin_content(variant: int | None = None) -> CampaignContent:
    if variant is None:
        title, body = "🌅 Daily Check-in", "Time for your emotional wellness check-in"
    else:
        title, body = DAILY_VARIANTS[variant]
    return CampaignContent(
        title=title,
        body=body,
        action_buttons=[
            _screen("quick_checkin", "Quick Check-in", "quick_checkin"),
            _screen("voice_analysis", "Voice Analysis", "voice_analysis"),
        ],
        custom_data={"campaign_type": "daily_checkin"},
    )


def re_engagement_content() -> CampaignContent:
    return CampaignContent(
        title="💙 We Miss You",
        body="Your emotional wellbeing journey is important. Ready to reconnect with your inner wisdom?",
        action_buttons=[
            ActionButton(
                id="return_to_app",
                text="Continue Journey",
                action=CampaignAction(kind=ActionKind.OPEN_APP),
            ),
            _screen("quick_session", "Quick Session", "voice_analysis"),
        ],
        custom_data={"campaign_type": "reengagement", "days_inactive": "3+"},
    )


# ── Segmentation & triggers per kind ──────────────────────────


def emotion_segmentation(emotion: Emotion) -> Segmentation:
    return tags(
        emotion_prone=emotion.value,
        notification_preferences="emotion_aware",
        subscription_tier="premium",
    )


def predictive_segmentation(prediction: Prediction) -> Segmentation:
    return tags(
        predictive_enabled="true",
        ml_confidence="high" if prediction.confidence > HIGH_CONFIDENCE else "medium",
        predicted_emotion=prediction.predicted_emotion.value,
    )


def daily_checkin_segmentation() -> Segmentation:
    return tags(
        daily_checkin_enabled="true",
        engagement_level="active",
        notification_preferences="emotion_aware",
    )


def re_engagement_segmentation() -> Segmentation:
    return tags(
        engagement_level="inactive",
        days_since_last_activity="3+",
        reengagement_eligible="true",
    )


def _trigger(kind: TriggerType, condition: str, value: str) -> CampaignTrigger:
    return CampaignTrigger(type=kind, condition=condition, value=value)


# ── Factories ─────────────────────────────────────────────────


def emotion_campaign(emotion: Emotion, now: datetime, tz: str = "UTC") -> Campaign:
    return Campaign(
        id=_new_id(f"emotion_{emotion.value}"),
        name=f"{emotion.display_name} Support Campaign",
        type=CampaignType.EMOTION_TRIGGERED,
        target_emotion=emotion,
        content=emotion_content(emotion),
        triggers=[
            _trigger(TriggerType.EMOTION_DETECTED, "emotion_equals", emotion.value),
            _trigger(
                TriggerType.CONFIDENCE_THRESHOLD,
                "confidence_greater_than",
                EMOTION_CONFIDENCE_TRIGGER,
            ),
        ],
        segmentation=emotion_segmentation(emotion),
        schedule=CampaignSchedule(
            scheduled_time=next_occurrence(OPTIMAL_HOURS[emotion], now), timezone=tz
        ),
        created_at=now,
    )


def predictive_campaign(prediction: Prediction, now: datetime, tz: str = "UTC") -> Campaign:
    emotion = prediction.predicted_emotion
    return Campaign(
        id=_new_id(f"predictive_{emotion.value}"),
        name=f"Predictive {emotion.display_name} Support",
        type=CampaignType.PREDICTIVE,
        target_emotion=emotion,
        content=predictive_content(prediction),
        triggers=[
            _trigger(TriggerType.PREDICTED_EMOTION, "predicted_emotion_equals", emotion.value),
            _trigger(
                TriggerType.PREDICTION_CONFIDENCE,
                "prediction_confidence_greater_than",
                str(prediction.confidence),
            ),
        ],
        segmentation=predictive_segmentation(prediction),
        schedule=CampaignSchedule(scheduled_time=prediction.optimal_time, timezone=tz),
        created_at=now,
    )


def scheduled_predictive_campaign(prediction: Prediction, now: datetime, tz: str = "UTC") -> Campaign:
    """One-shot campaign backing a single queued predictive send."""
    emotion = prediction.predicted_emotion
    return Campaign(
        id=_new_id("scheduled_predictive"),
        name=f"Scheduled {emotion.display_name} Prevention",
        type=CampaignType.PREDICTIVE,
        target_emotion=emotion,
        content=predictive_content(prediction),
        schedule=CampaignSchedule(scheduled_time=prediction.optimal_time, timezone=tz),
        one_shot=True,
        created_at=now,
    )


def daily_checkin_campaign(pattern: BehaviorPattern, now: datetime, tz: str = "UTC") -> Campaign:
    hour = pattern.usage_hours[0] if pattern.usage_hours else DEFAULT_HOUR
    content = daily_checkin_content()
    content.custom_data["timestamp"] = now.isoformat()
    return Campaign(
        id=_new_id("daily_checkin"),
        name="Daily Emotional Check-in",
        type=CampaignType.DAILY_CHECKIN,
        target_emotion=Emotion.NEUTRAL,
        content=content,
        triggers=[
            _trigger(TriggerType.TIME_OF_DAY, "hour_equals", str(DEFAULT_HOUR)),
            _trigger(TriggerType.USER_ACTIVITY, "last_activity_hours_ago_greater_than", "12"),
        ],
        segmentation=daily_checkin_segmentation(),
        schedule=CampaignSchedule(
            scheduled_time=next_occurrence(hour, now), repeat_interval=DAILY, timezone=tz
        ),
        created_at=now,
    )


def re_engagement_campaign(now: datetime, tz: str = "UTC") -> Campaign:
    return Campaign(
        id=_new_id("reengagement"),
        name="Re-engagement Campaign",
        type=CampaignType.RE_ENGAGEMENT,
        target_emotion=Emotion.NEUTRAL,
        content=re_engagement_content(),
        triggers=[
            _trigger(TriggerType.USER_ACTIVITY, "last_activity_days_ago_greater_than", "3"),
            _trigger(TriggerType.ENGAGEMENT_SCORE, "engagement_score_less_than", "0.3"),
        ],
        segmentation=re_engagement_segmentation(),
        schedule=CampaignSchedule(
            scheduled_time=now + REENGAGEMENT_DELAY, repeat_interval=WEEKLY, timezone=tz
        ),
        created_at=now,
    )


def achievement_campaign(achievement: Achievement, now: datetime, tz: str = "UTC") -> Campaign:
    return Campaign(
        id=f"achievement_{achievement.id}",
        name=f"Achievement: {achievement.title}",
        type=CampaignType.ACHIEVEMENT,
        target_emotion=Emotion.JOY,
        content=achievement_content(achievement),
        schedule=CampaignSchedule(scheduled_time=now + ACHIEVEMENT_DELAY, timezone=tz),
        one_shot=True,
        created_at=now,
    )


def goal_campaign(goal: Goal, content: CampaignContent, now: datetime, tz: str = "UTC") -> Campaign:
    return Campaign(
        id=f"goal_{goal.id}",
        name=f"Goal Completed: {goal.title or 'Unknown Goal'}",
        type=CampaignType.ACHIEVEMENT,
        target_emotion=Emotion.JOY,
        content=content,
        schedule=CampaignSchedule(scheduled_time=now + GOAL_DELAY, timezone=tz),
        one_shot=True,
        created_at=now,
    )
