"""Tests for the pattern analyzer."""

from __future__ import annotations

from datetime import timedelta

import pytest

from emotion_nudge.analysis import PatternAnalyzer, RecoveryMethod
from emotion_nudge.analysis.patterns import (
    dominant_emotion,
    emotional_stability,
    emotional_volatility,
)
from emotion_nudge.models import Emotion, EmotionEvent, InterventionType
from emotion_nudge.store import BehaviorStore


def _emotion(now, emotion, intensity=0.5, *, minutes=0, hour=None):
    at = now + timedelta(minutes=minutes)
    if hour is not None:
        at = at.replace(hour=hour)
    return EmotionEvent.observed(emotion, 0.9, intensity, at=at)


@pytest.fixture
def analyzer(store: BehaviorStore) -> PatternAnalyzer:
    return PatternAnalyzer(store, min_data_points=20)


class TestEmotionalDynamics:
    def test_trigger_pattern_for_recurring_hour(self, store, analyzer, now):
        yesterday = now - timedelta(days=1)
        for i, (hour, intensity) in enumerate(
            [(14, 0.9), (14, 0.8), (14, 0.75), (15, 0.5), (16, 0.5)]
        ):
            store.append(_emotion(yesterday, Emotion.SADNESS, intensity, minutes=i, hour=hour))

        result = analyzer.emotional_patterns(now)
        assert len(result.trigger_patterns) == 1
        pattern = result.trigger_patterns[0]
        assert pattern.hour == 14
        assert pattern.frequency == 3
        assert pattern.confidence == pytest.approx(0.3)
        assert pattern.dominant_emotion is Emotion.SADNESS

        assert analyzer.behavior_pattern(now).emotional_peak_hours == [14]

    def test_positive_emotions_never_form_triggers(self, store, analyzer, now):
        for i in range(5):
            store.append(_emotion(now - timedelta(hours=1), Emotion.JOY, minutes=i))
        assert analyzer.emotional_patterns(now).trigger_patterns == []

    def test_stability(self, now):
        events = [
            _emotion(now, Emotion.JOY, 0.5),
            _emotion(now, Emotion.JOY, 0.6, minutes=1),
            _emotion(now, Emotion.SADNESS, 0.95, minutes=2),
        ]
        assert emotional_stability(events) == pytest.approx(0.5)

    def test_stability_counts_each_pair_once(self, now):
        # emotion changed but intensity held: the pair is stable
        assert emotional_stability(
            [_emotion(now, Emotion.JOY, 0.5), _emotion(now, Emotion.SADNESS, 0.5, minutes=1)]
        ) == 1.0
        # same emotion with a large jump is also stable
        assert emotional_stability(
            [_emotion(now, Emotion.FEAR, 0.1), _emotion(now, Emotion.FEAR, 0.9, minutes=1)]
        ) == 1.0
        assert emotional_stability(
            [_emotion(now, Emotion.JOY, 0.1), _emotion(now, Emotion.ANGER, 0.9, minutes=1)]
        ) == 0.0

    def test_stability_defaults(self, now):
        assert emotional_stability([]) == 1.0
        assert emotional_stability([_emotion(now, Emotion.ANGER)]) == 1.0

    def test_volatility(self, now):
        events = [_emotion(now, Emotion.JOY, 0.2), _emotion(now, Emotion.JOY, 0.4)]
        assert emotional_volatility(events) == pytest.approx(0.1)
        assert emotional_volatility(events[:1]) == 0.0

    def test_dominant_emotion_tie_uses_enum_order(self, now):
        events = [_emotion(now, Emotion.SADNESS), _emotion(now, Emotion.JOY)]
        assert dominant_emotion(events) is Emotion.JOY
        assert dominant_emotion([]) is Emotion.NEUTRAL

    def test_transitions_only_on_change(self, store, analyzer, now):
        base = now - timedelta(hours=2)
        store.append(_emotion(base, Emotion.JOY))
        store.append(_emotion(base, Emotion.JOY, minutes=5))
        store.append(_emotion(base, Emotion.FEAR, minutes=15))

        transitions = analyzer.emotional_patterns(now).transitions
        assert len(transitions) == 1
        assert transitions[0].from_emotion is Emotion.JOY
        assert transitions[0].to_emotion is Emotion.FEAR
        assert transitions[0].interval_seconds == 600

    def test_recovery_methods(self, store, analyzer, now):
        base = now - timedelta(hours=6)
        store.append(_emotion(base, Emotion.SADNESS))
        store.append(_emotion(base, Emotion.NEUTRAL, minutes=20))
        store.append(_emotion(base, Emotion.FEAR, minutes=60))
        store.append(_emotion(base, Emotion.JOY, minutes=105))
        store.append(_emotion(base, Emotion.ANGER, minutes=120))
        store.append(_emotion(base, Emotion.JOY, minutes=240))

        recoveries = analyzer.emotional_patterns(now).recovery_patterns
        assert [r.method for r in recoveries] == [
            RecoveryMethod.NATURAL,
            RecoveryMethod.TIME_BASED,
            RecoveryMethod.INTERVENTION_BASED,
        ]
        assert recoveries[0].recovery_seconds == 1200

    def test_unrecovered_negative_event_is_skipped(self, store, analyzer, now):
        store.append(_emotion(now - timedelta(hours=1), Emotion.DISGUST))
        assert analyzer.emotional_patterns(now).recovery_patterns == []


class TestBehaviorPattern:
    def test_usage_hours_above_mean(self, store, analyzer, now):
        for hour in [9, 9, 9, 14, 20]:
            store.record_usage(hour, 4, duration=60.0, now=now - timedelta(hours=1))
        pattern = analyzer.behavior_pattern(now)
        assert pattern.usage_hours == [9]
        assert pattern.session_patterns.average_duration == 60.0
        assert pattern.session_patterns.sessions_per_day == 5.0
        assert pattern.session_patterns.peak_usage_hours == [9, 14, 20]

    def test_preferred_interventions_by_frequency(self, store, analyzer, now):
        at = now - timedelta(hours=1)
        for technique in ["unknown", "gratitude", "unknown", "box_breathing", "gratitude", "unknown"]:
            store.record_intervention_completion(technique, 60.0, 0.5, now=at)
        assert analyzer.behavior_pattern(now).preferred_interventions == [
            InterventionType.MINDFULNESS_CHECK,
            InterventionType.GRATITUDE_PRACTICE,
            InterventionType.BREATHING_EXERCISE,
        ]

    def test_engagement_history_last_seven_days(self, store, analyzer, now):
        for days_ago in (0, 1):
            at = now - timedelta(days=days_ago, hours=1)
            store.record_engagement(Emotion.JOY, InterventionType.GRATITUDE_PRACTICE, at, at)
        history = analyzer.behavior_pattern(now).engagement_history
        assert history == [0.0, 0.0, 0.0, 0.0, 0.0, 1.0, 1.0]

    def test_empty_store_defaults(self, analyzer, now):
        pattern = analyzer.behavior_pattern(now)
        assert pattern.usage_hours == []
        assert pattern.emotional_peak_hours == []
        assert pattern.preferred_interventions == []
        assert pattern.engagement_history == [0.0] * 7
        assert pattern.session_patterns.sessions_per_day == 0.0


class TestEngagementMetrics:
    def test_response_times(self, store, analyzer, now):
        scheduled = now - timedelta(hours=3)
        store.record_engagement(
            Emotion.SADNESS,
            InterventionType.SELF_COMPASSION_BREAK,
            scheduled,
            scheduled + timedelta(minutes=2),
        )
        store.record_engagement(
            Emotion.JOY,
            InterventionType.GRATITUDE_PRACTICE,
            scheduled,
            scheduled + timedelta(minutes=10),
        )
        metrics = analyzer.engagement_metrics(now)
        assert metrics.overall_rate == 1.0
        assert metrics.by_hour == {11: 1.0}
        assert set(metrics.by_emotion) == {Emotion.SADNESS, Emotion.JOY}
        assert metrics.response_times.average_minutes == pytest.approx(6.0)
        assert metrics.response_times.median_minutes == 10.0
        assert metrics.response_times.quick_response_rate == 0.5

    def test_empty_metrics_are_zero(self, analyzer, now):
        metrics = analyzer.engagement_metrics(now)
        assert metrics.overall_rate == 0.0
        assert metrics.by_hour == {}
        assert metrics.response_times.median_minutes == 0.0


class TestInsights:
    def test_insufficient_data_returns_defaults(self, analyzer, now):
        insights = analyzer.insights(now)
        assert insights.dominant_emotion is Emotion.NEUTRAL
        assert insights.stress_peak_hours == []
        assert insights.weekly_patterns == {}
        assert insights.confidence == 0.0

    def test_confidence_scales_with_data(self, store, analyzer, now):
        for i in range(10):
            store.append(_emotion(now - timedelta(hours=1), Emotion.FEAR, minutes=i))
        insights = analyzer.insights(now)
        assert insights.confidence == pytest.approx(0.5)
        assert insights.dominant_emotion is Emotion.FEAR
        assert insights.weekly_patterns == {4: Emotion.FEAR}

    def test_optimal_intervention_times(self, store, analyzer, now):
        day = now - timedelta(days=1)
        store.record_intervention_completion("gratitude", 60, 0.9, now=day.replace(hour=8))
        store.record_intervention_completion("gratitude", 60, 0.95, now=day.replace(hour=8))
        store.record_intervention_completion("box_breathing", 60, 0.8, now=day.replace(hour=20))
        store.record_intervention_completion("box_breathing", 60, 0.5, now=day.replace(hour=10))
        assert analyzer.insights(now).optimal_intervention_times == [8, 20]

    def test_pattern_confidence_caps_at_one(self, analyzer):
        assert analyzer.pattern_confidence(40) == 1.0
        assert analyzer.pattern_confidence(5) == 0.25


def test_segmentation_tags(store, now):
    analyzer = PatternAnalyzer(store)
    for hour in [9, 9, 18]:
        store.record_usage(hour, 4, now=now - timedelta(hours=2))
    tags = analyzer.segmentation_tags(now)
    assert tags["peak_usage_hours"] == "9"
    assert tags["notification_preferences"] == "emotion_aware"
    assert tags["emotional_volatility"] == "low"
    assert tags["stress_prone"] == "false"
