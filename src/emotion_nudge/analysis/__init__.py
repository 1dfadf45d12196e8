"""Pattern analysis over the behaviour / emotion store."""

from emotion_nudge.analysis.models import (
    BehaviorPattern,
    EmotionalPatternAnalysis,
    EmotionalPatternInsights,
    EngagementMetrics,
    RecoveryMethod,
    RecoveryPattern,
    TriggerPattern,
)
from emotion_nudge.analysis.patterns import PatternAnalyzer

__all__ = [
    "BehaviorPattern",
    "EmotionalPatternAnalysis",
    "EmotionalPatternInsights",
    "EngagementMetrics",
    "PatternAnalyzer",
    "RecoveryMethod",
    "RecoveryPattern",
    "TriggerPattern",
]
