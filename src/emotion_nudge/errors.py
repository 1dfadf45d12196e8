"""Soft-failure taxonomy.

None of these errors is fatal.  They are raised by small guard helpers and
caught at the scheduler seam, where they become a structured log event and a
``False`` / skipped outcome.  The only value that crosses the delivery
boundary is a boolean.
"""

from __future__ import annotations


class NudgeError(Exception):
    """Base class for all engine errors."""

    reason: str = "nudge_error"

    def __init__(self, message: str = "", *, reason: str | None = None) -> None:
        super().__init__(message or self.reason)
        if reason is not None:
            self.reason = reason


class NotificationPermissionError(NudgeError):
    """Recipient has no subscriber id, has not opted in, or denied permission."""

    reason = "permission"


class QuotaError(NudgeError):
    """Cooldown or rate limit not yet satisfied."""

    reason = "quota"


class DeliveryError(NudgeError):
    """Transport / backend failure for a single send."""

    reason = "delivery"


class DataInsufficientError(NudgeError):
    """Too few events for a trustworthy aggregate."""

    reason = "insufficient_data"


class ScheduleRangeError(NudgeError):
    """Requested send time lies outside ``(now, now + horizon]``."""

    reason = "schedule_range"
