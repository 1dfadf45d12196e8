"""Per-user notification content."""

from emotion_nudge.personalization.engine import PersonalizationEngine

__all__ = ["PersonalizationEngine"]
