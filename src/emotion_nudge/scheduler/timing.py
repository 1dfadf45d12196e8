"""Send-time helpers.

All functions work in the timezone of the ``now`` / ``base`` datetime they
are given; pass an aware datetime in the user's zone.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from emotion_nudge.models import Emotion

QUIET_START = 22
QUIET_END = 7
DEFAULT_HOUR = 9

# Best hour of day to reach the user per emotion
OPTIMAL_HOURS: dict[Emotion, int] = {
    Emotion.JOY: 10,
    Emotion.SADNESS: 14,
    Emotion.ANGER: 16,
    Emotion.FEAR: 11,
    Emotion.SURPRISE: 12,
    Emotion.DISGUST: 15,
    Emotion.NEUTRAL: 9,
}


def at_hour(day: datetime, hour: int) -> datetime:
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


def next_occurrence(hour: int, now: datetime) -> datetime:
    """The next ``hh:00`` strictly after *now*."""
    candidate = at_hour(now, hour)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def in_quiet_hours(hour: int) -> bool:
    return hour >= QUIET_START or hour < QUIET_END


def rule_based_send_time(base: datetime, emotion: Emotion) -> datetime:
    """Pick a send time for *emotion* relative to *base*.

    During quiet hours the send moves to the next 09:00; otherwise it goes
    to the emotion's optimal hour today, or tomorrow if already passed.
    """
    if in_quiet_hours(base.hour):
        return next_occurrence(DEFAULT_HOUR, base)
    return next_occurrence(OPTIMAL_HOURS[emotion], base)
