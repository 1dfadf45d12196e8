"""Emotional-need predictors."""

from emotion_nudge.prediction.base import Prediction, PredictorAdapter
from emotion_nudge.prediction.rules import RuleBasedPredictor, estimate_effectiveness

__all__ = ["Prediction", "PredictorAdapter", "RuleBasedPredictor", "estimate_effectiveness"]
