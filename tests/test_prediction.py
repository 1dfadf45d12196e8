"""Tests for the rule-based predictor."""

from __future__ import annotations

from datetime import timedelta

import pytest

from emotion_nudge.analysis.models import BehaviorPattern
from emotion_nudge.models import Emotion, InterventionType
from emotion_nudge.prediction import RuleBasedPredictor, estimate_effectiveness
from emotion_nudge.prediction.rules import context_factors, optimal_hour, predict_shift


class TestPredictShift:
    @pytest.mark.parametrize(
        ("current", "hour", "dow", "expected"),
        [
            (Emotion.SADNESS, 8, 4, Emotion.NEUTRAL),
            (Emotion.NEUTRAL, 10, 4, Emotion.JOY),
            (Emotion.JOY, 11, 4, Emotion.JOY),
            (Emotion.JOY, 20, 4, Emotion.NEUTRAL),
            (Emotion.ANGER, 19, 4, Emotion.SADNESS),
            (Emotion.FEAR, 15, 1, Emotion.NEUTRAL),
            (Emotion.NEUTRAL, 15, 7, Emotion.JOY),
            (Emotion.SADNESS, 15, 1, Emotion.SADNESS),
            (Emotion.FEAR, 15, 4, Emotion.FEAR),
        ],
    )
    def test_rules(self, current, hour, dow, expected):
        assert predict_shift(current, hour, dow) is expected

    def test_time_of_day_rule_wins_over_weekend(self):
        # evening rule matches first and leaves fear unchanged
        assert predict_shift(Emotion.FEAR, 20, 7) is Emotion.FEAR


def test_context_factors():
    assert context_factors(7, 4) == ["morning_routine", "weekday"]
    assert context_factors(13, 1) == ["lunch_break", "weekend"]
    assert context_factors(21, 6) == ["wind_down", "weekday"]
    assert context_factors(3, 7) == ["weekend"]


def test_optimal_hour():
    assert optimal_hour(Emotion.SADNESS, []) == 15
    assert optimal_hour(Emotion.SADNESS, [9, 16]) == 16
    assert optimal_hour(Emotion.SADNESS, [9]) == 15
    assert optimal_hour(Emotion.SURPRISE, [20, 9]) == 20


class TestEffectiveness:
    def test_history_wins(self):
        assert estimate_effectiveness(InterventionType.COOLING_BREATH, Emotion.ANGER, 0.6) == 0.6

    def test_base_scaled_by_responsiveness(self):
        assert estimate_effectiveness(
            InterventionType.SELF_COMPASSION_BREAK, Emotion.SADNESS
        ) == pytest.approx(0.675)
        assert estimate_effectiveness(
            InterventionType.COOLING_BREATH, Emotion.ANGER, responsiveness=1.0
        ) == pytest.approx(0.9)

    def test_breathing_applies_to_any_emotion(self):
        assert estimate_effectiveness("box_breathing", Emotion.FEAR) == pytest.approx(0.525)

    def test_unknown_default(self):
        assert estimate_effectiveness("journaling", Emotion.JOY) == pytest.approx(0.45)


class TestRuleBasedPredictor:
    async def test_confident_input_yields_every_horizon(self, now):
        predictions = await RuleBasedPredictor().predict_future_needs(
            Emotion.SADNESS, 0.95, 14, 4, now=now
        )
        assert [p.optimal_time - now for p in predictions] == [
            timedelta(hours=h) for h in (1, 2, 4, 8, 24, 48)
        ]
        assert all(p.confidence == pytest.approx(0.76) for p in predictions)
        assert all(p.predicted_emotion is Emotion.SADNESS for p in predictions)
        assert predictions[0].recommended_intervention is InterventionType.SELF_COMPASSION_BREAK

    async def test_shift_evaluated_at_target_hour(self, now):
        predictions = await RuleBasedPredictor().predict_future_needs(
            Emotion.ANGER, 0.95, 17, 4, now=now
        )
        assert [p.predicted_emotion for p in predictions] == [
            Emotion.SADNESS,
            Emotion.SADNESS,
            Emotion.SADNESS,
            Emotion.ANGER,
            Emotion.ANGER,
            Emotion.ANGER,
        ]
        assert predictions[0].context_factors == ["evening_transition", "weekday"]

    async def test_low_confidence_filtered(self, now):
        predictor = RuleBasedPredictor()
        assert await predictor.predict_future_needs(Emotion.FEAR, 0.5, 9, 3, now=now) == []

    async def test_confidence_floor(self, now):
        predictor = RuleBasedPredictor(confidence_threshold=0.3, horizons=(1,))
        (prediction,) = await predictor.predict_future_needs(Emotion.FEAR, 0.1, 9, 3, now=now)
        assert prediction.confidence == pytest.approx(0.3)

    async def test_optimal_time(self, now):
        predictor = RuleBasedPredictor()
        with_usage = await predictor.predict_optimal_time(
            Emotion.SADNESS, BehaviorPattern(usage_hours=[16]), now=now
        )
        assert with_usage == now.replace(hour=16)
        without = await predictor.predict_optimal_time(Emotion.JOY, BehaviorPattern(), now=now)
        assert without == (now + timedelta(days=1)).replace(hour=10)
