"""Tests for the personalization engine."""

from __future__ import annotations

import random

from emotion_nudge.campaigns import templates
from emotion_nudge.models import Emotion, Goal, InterventionType, NotificationPriority
from emotion_nudge.personalization import PersonalizationEngine


class TestPersonalize:
    def test_narrows_to_preferred(self):
        content = templates.emotion_content(Emotion.SADNESS)
        result = PersonalizationEngine().personalize(content, [InterventionType.BREATHING_EXERCISE])
        assert [b.id for b in result.action_buttons] == ["breathing_exercise"]
        # the template itself is not mutated
        assert len(content.action_buttons) == 2

    def test_falls_back_to_all_buttons(self):
        content = templates.emotion_content(Emotion.ANGER)
        engine = PersonalizationEngine()
        assert engine.personalize(content, []).action_buttons == content.action_buttons
        assert (
            engine.personalize(content, [InterventionType.GRATITUDE_PRACTICE]).action_buttons
            == content.action_buttons
        )


class TestEmotionPayload:
    def test_adds_requested_intervention(self):
        content = PersonalizationEngine().emotion_payload(
            Emotion.SADNESS, InterventionType.GROUNDING_EXERCISE, 0.9
        )
        assert [b.id for b in content.action_buttons] == [
            "self_compassion_break",
            "breathing_exercise",
            "grounding_exercise",
        ]
        assert content.custom_data == {
            "emotion": "sadness",
            "intervention": "grounding_exercise",
            "confidence": "0.9",
            "campaign_type": "emotion_triggered",
        }
        assert content.rich_media is not None

    def test_preferences_applied(self):
        content = PersonalizationEngine().emotion_payload(
            Emotion.FEAR,
            InterventionType.GROUNDING_EXERCISE,
            0.95,
            [InterventionType.BREATHING_EXERCISE],
        )
        assert [b.id for b in content.action_buttons] == ["breathing_exercise"]


class TestVariants:
    def test_goal_variant_follows_rng(self):
        expected = templates.GOAL_VARIANTS[random.Random(3).randrange(len(templates.GOAL_VARIANTS))]
        content = PersonalizationEngine(random.Random(3)).goal_completion_content(Goal(title="Run"))
        assert content.title == expected[0]
        assert content.body == expected[1].format(t="Run")

    def test_daily_checkin_variant(self):
        content = PersonalizationEngine(random.Random(1)).daily_checkin_content()
        assert content.title in {title for title, _ in templates.DAILY_VARIANTS}
        assert [b.id for b in content.action_buttons] == ["quick_checkin", "voice_analysis"]


def test_priority_for():
    assert PersonalizationEngine.priority_for(Emotion.SADNESS) is NotificationPriority.HIGH
    assert PersonalizationEngine.priority_for(Emotion.JOY) is NotificationPriority.MEDIUM
    assert PersonalizationEngine.priority_for(Emotion.NEUTRAL) is NotificationPriority.LOW
