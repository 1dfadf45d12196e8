"""Predictor adapter contract.

A predictor answers two questions for the scheduler: *which emotional
states are coming up* and *when is the best moment to reach the user*.
Implementations may be rule-based or backed by a trained model; the
scheduler only depends on this interface.

Adding a predictor
~~~~~~~~~~~~~~~~~~
1. Subclass ``PredictorAdapter``.
2. Implement ``predict_future_needs`` and ``predict_optimal_time``.
3. Pass it to :func:`emotion_nudge.context.create_context`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, Field

from emotion_nudge.analysis.models import BehaviorPattern
from emotion_nudge.models import Emotion, InterventionType


class Prediction(BaseModel):
    """A forecast emotional state at a future instant."""

    predicted_emotion: Emotion
    confidence: float = Field(ge=0.0, le=1.0)
    optimal_time: datetime
    recommended_intervention: InterventionType
    context_factors: list[str] = Field(default_factory=list)


class PredictorAdapter(ABC):
    """Contract for emotional-need predictors."""

    name: str = "base"

    @abstractmethod
    async def predict_future_needs(
        self,
        current_emotion: Emotion,
        confidence: float,
        hour: int,
        day_of_week: int,
        *,
        now: datetime | None = None,
    ) -> list[Prediction]:
        """Return predictions above the confidence threshold."""

    @abstractmethod
    async def predict_optimal_time(
        self,
        emotion: Emotion,
        pattern: BehaviorPattern,
        *,
        now: datetime | None = None,
    ) -> datetime | None:
        """Return the best future send time for *emotion*, or ``None``."""
