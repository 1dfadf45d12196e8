"""Behaviour / emotion store — bounded, append-only event histories."""

from emotion_nudge.store.events import BehaviorStore
from emotion_nudge.store.history import BoundedHistory

__all__ = ["BehaviorStore", "BoundedHistory"]
