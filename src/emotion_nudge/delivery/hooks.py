"""Outbound signals fired by the scheduler.

Three listener lists:

* **feedback** — called once per successful immediate send with the
  triggering emotion (e.g. haptics in a client app).
* **state** — called on every campaign state transition made by the
  engine.
* **history** — called with a :class:`NotificationHistoryItem` after
  every successful send.

Listeners may be plain callables or coroutine functions.  Each one is
isolated: an exception is logged and the remaining listeners still run.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable

import structlog

from emotion_nudge.campaigns.models import CampaignState
from emotion_nudge.models import Emotion, NotificationHistoryItem

logger = structlog.get_logger(__name__)

FeedbackHook = Callable[[Emotion], Awaitable[None] | None]
StateListener = Callable[[str, CampaignState | None, CampaignState | None], Awaitable[None] | None]
HistoryWriter = Callable[[NotificationHistoryItem], Awaitable[Any] | Any]


class SignalHub:
    def __init__(self) -> None:
        self._feedback: list[FeedbackHook] = []
        self._state: list[StateListener] = []
        self._history: list[HistoryWriter] = []

    # ── Registration ──────────────────────────────────────────

    def on_feedback(self, hook: FeedbackHook) -> None:
        self._feedback.append(hook)

    def on_state_change(self, listener: StateListener) -> None:
        self._state.append(listener)

    def on_history(self, writer: HistoryWriter) -> None:
        self._history.append(writer)

    # ── Emission ──────────────────────────────────────────────

    async def feedback(self, emotion: Emotion) -> int:
        return await self._emit("feedback", self._feedback, emotion)

    async def state_changed(
        self,
        campaign_id: str,
        old: CampaignState | None,
        new: CampaignState | None,
    ) -> int:
        """Notify listeners; ``new=None`` means the campaign was removed."""
        logger.info(
            "campaign.state_changed",
            campaign_id=campaign_id,
            old=old.value if old else None,
            new=new.value if new else "removed",
        )
        return await self._emit("state", self._state, campaign_id, old, new)

    async def history(self, item: NotificationHistoryItem) -> int:
        return await self._emit("history", self._history, item)

    @staticmethod
    async def _emit(signal: str, listeners: list[Callable[..., Any]], *args: Any) -> int:
        """Invoke every listener; return how many completed without error."""
        ok = 0
        for listener in listeners:
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
                ok += 1
            except Exception:
                logger.exception(
                    "signal.listener_error",
                    signal=signal,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                )
        return ok
