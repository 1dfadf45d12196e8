"""Rule-based predictor — time-of-day and weekday heuristics.

Used as the default :class:`PredictorAdapter`.  Emotion shifts are
evaluated at the *target* hour of each horizon; confidence is discounted
to reflect that no model backs the forecast.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from emotion_nudge.analysis.models import BehaviorPattern
from emotion_nudge.models import Emotion, InterventionType, utcnow
from emotion_nudge.prediction.base import Prediction, PredictorAdapter
from emotion_nudge.scheduler.timing import next_occurrence

logger = structlog.get_logger(__name__)

HORIZONS_HOURS: tuple[int, ...] = (1, 2, 4, 8, 24, 48)
CONFIDENCE_THRESHOLD = 0.7
CONFIDENCE_DISCOUNT = 0.8
CONFIDENCE_FLOOR = 0.3

OPTIMAL_INTERVENTION: dict[Emotion, InterventionType] = {
    Emotion.JOY: InterventionType.GRATITUDE_PRACTICE,
    Emotion.SADNESS: InterventionType.SELF_COMPASSION_BREAK,
    Emotion.ANGER: InterventionType.COOLING_BREATH,
    Emotion.FEAR: InterventionType.GROUNDING_EXERCISE,
    Emotion.SURPRISE: InterventionType.MINDFULNESS_CHECK,
    Emotion.DISGUST: InterventionType.EMOTIONAL_RESET,
    Emotion.NEUTRAL: InterventionType.BALANCE_MAINTENANCE,
}

# (usage-hour range, fallback hour) when usage data exists
_USAGE_WINDOWS: dict[Emotion, tuple[range, int]] = {
    Emotion.SADNESS: (range(14, 18), 15),
    Emotion.FEAR: (range(14, 18), 15),
    Emotion.ANGER: (range(18, 21), 19),
    Emotion.JOY: (range(9, 13), 10),
}

# Hour per emotion when nothing is known about usage
DEFAULT_HOURS: dict[Emotion, int] = {
    Emotion.JOY: 10,
    Emotion.SADNESS: 15,
    Emotion.ANGER: 19,
    Emotion.FEAR: 16,
    Emotion.SURPRISE: 12,
    Emotion.DISGUST: 17,
    Emotion.NEUTRAL: 14,
}

# (intervention keyword, emotion or None for any) → base effectiveness
_BASE_EFFECTIVENESS: list[tuple[str, Emotion | None, float]] = [
    ("gratitude", Emotion.JOY, 0.9),
    ("gratitude", Emotion.SADNESS, 0.8),
    ("self_compassion", Emotion.SADNESS, 0.9),
    ("self_compassion", Emotion.ANGER, 0.7),
    ("cooling", Emotion.ANGER, 0.9),
    ("grounding", Emotion.FEAR, 0.9),
    ("mindfulness", Emotion.NEUTRAL, 0.8),
    ("breathing", None, 0.7),
]
DEFAULT_EFFECTIVENESS = 0.6


def predict_shift(current: Emotion, hour: int, day_of_week: int) -> Emotion:
    """Apply the first matching time-of-day / weekend rule."""
    if 6 <= hour <= 12:
        if current in (Emotion.SADNESS, Emotion.ANGER, Emotion.FEAR):
            return Emotion.NEUTRAL
        if current is Emotion.NEUTRAL:
            return Emotion.JOY
        return current
    if 18 <= hour <= 22:
        if current is Emotion.JOY:
            return Emotion.NEUTRAL
        if current is Emotion.ANGER:
            return Emotion.SADNESS
        return current
    if day_of_week in (1, 7):
        if current in (Emotion.ANGER, Emotion.FEAR):
            return Emotion.NEUTRAL
        if current is Emotion.NEUTRAL:
            return Emotion.JOY
    return current


def context_factors(hour: int, day_of_week: int) -> list[str]:
    factors: list[str] = []
    if 6 <= hour <= 9:
        factors.append("morning_routine")
    elif 12 <= hour <= 14:
        factors.append("lunch_break")
    elif 17 <= hour <= 19:
        factors.append("evening_transition")
    elif 20 <= hour <= 22:
        factors.append("wind_down")
    factors.append("weekday" if 2 <= day_of_week <= 6 else "weekend")
    return factors


def optimal_hour(emotion: Emotion, usage_hours: list[int]) -> int:
    if not usage_hours:
        return DEFAULT_HOURS[emotion]
    window = _USAGE_WINDOWS.get(emotion)
    if window is None:
        return usage_hours[0]
    hours, fallback = window
    return next((h for h in usage_hours if h in hours), fallback)


def estimate_effectiveness(
    intervention: InterventionType | str,
    emotion: Emotion,
    history_avg: float = 0.0,
    responsiveness: float = 0.5,
) -> float:
    """Expected effectiveness of *intervention* for *emotion* in ``[0, 1]``.

    A positive historical average wins outright; otherwise a base value is
    scaled by the user's responsiveness.
    """
    if history_avg > 0:
        return history_avg
    name = intervention.value if isinstance(intervention, InterventionType) else intervention
    base = DEFAULT_EFFECTIVENESS
    for keyword, target, value in _BASE_EFFECTIVENESS:
        if keyword in name and (target is None or target is emotion):
            base = value
            break
    return min(1.0, base * (0.5 + responsiveness * 0.5))


class RuleBasedPredictor(PredictorAdapter):
    """Deterministic predictor used when no trained model is configured."""

    name = "rules"

    def __init__(
        self,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        horizons: tuple[int, ...] = HORIZONS_HOURS,
    ) -> None:
        self._threshold = confidence_threshold
        self._horizons = horizons

    async def predict_future_needs(
        self,
        current_emotion: Emotion,
        confidence: float,
        hour: int,
        day_of_week: int,
        *,
        now: datetime | None = None,
    ) -> list[Prediction]:
        now = now or utcnow()
        predicted_confidence = max(CONFIDENCE_FLOOR, confidence * CONFIDENCE_DISCOUNT)

        predictions: list[Prediction] = []
        for hours_ahead in self._horizons:
            target_hour = (hour + hours_ahead) % 24
            emotion = predict_shift(current_emotion, target_hour, day_of_week)
            prediction = Prediction(
                predicted_emotion=emotion,
                confidence=predicted_confidence,
                optimal_time=now + timedelta(hours=hours_ahead),
                recommended_intervention=OPTIMAL_INTERVENTION[emotion],
                context_factors=context_factors(target_hour, day_of_week),
            )
            if prediction.confidence >= self._threshold:
                predictions.append(prediction)

        logger.debug(
            "predictor.forecast",
            emotion=current_emotion.value,
            confidence=confidence,
            kept=len(predictions),
        )
        return predictions

    async def predict_optimal_time(
        self,
        emotion: Emotion,
        pattern: BehaviorPattern,
        *,
        now: datetime | None = None,
    ) -> datetime | None:
        now = now or utcnow()
        return next_occurrence(optimal_hour(emotion, pattern.usage_hours), now)
