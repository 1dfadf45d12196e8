"""Send rate-limit policies.

The engine keeps the timestamps of recent successful sends and asks the
configured policy whether another send is allowed at a given instant.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from emotion_nudge.config import Settings


class RateLimitPolicy(ABC):
    name: str = "base"

    @abstractmethod
    def allows(self, sent_times: Sequence[datetime], at: datetime) -> bool:
        """Return ``True`` if a send at *at* is permitted."""


class UnlimitedPolicy(RateLimitPolicy):
    """Only campaign cooldowns limit sends."""

    name = "unlimited"

    def allows(self, sent_times: Sequence[datetime], at: datetime) -> bool:  # noqa: ARG002
        return True


class DailyCapPolicy(RateLimitPolicy):
    """At most *max_per_day* sends per calendar day, spaced by *min_interval*.

    Both checks use delivery times, so a send queued for tomorrow counts
    against tomorrow and is compared with its nearest neighbour in time.
    """

    name = "daily_cap"

    def __init__(self, max_per_day: int = 5, min_interval: timedelta = timedelta(hours=1)) -> None:
        self.max_per_day = max_per_day
        self.min_interval = min_interval

    def allows(self, sent_times: Sequence[datetime], at: datetime) -> bool:
        same_day = [t for t in sent_times if t.astimezone(at.tzinfo).date() == at.date()]
        if len(same_day) >= self.max_per_day:
            return False
        if sent_times and min(abs(at - t) for t in sent_times) < self.min_interval:
            return False
        return True


def create_policy(settings: Settings) -> RateLimitPolicy:
    if settings.rate_limit_policy == "daily_cap":
        return DailyCapPolicy(
            max_per_day=settings.max_daily_notifications,
            min_interval=timedelta(seconds=settings.min_notification_interval_seconds),
        )
    return UnlimitedPolicy()
