"""Scheduler service — wall-clock timers for the periodic engine jobs.

Architecture
~~~~~~~~~~~~
The ``SchedulerService`` runs as a background component within the
FastAPI lifespan (or the CLI).  It owns three independent timers:

1. **pattern_refresh** (hourly) — recompute derived behaviour patterns
   and segmentation tags.
2. **optimization** (daily) — re-time, flag or pause campaigns.
3. **cleanup** (daily) — drop old inactive campaigns.

A timer never calls engine code directly: it only submits a
:class:`~emotion_nudge.streaming.commands.Tick` to the event pipeline,
whose single consumer runs the job.  Overlapping ticks therefore queue
up instead of racing.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Any, Callable

import structlog

from emotion_nudge.streaming.commands import Command, Tick, TickKind

logger = structlog.get_logger(__name__)

Submit = Callable[[Command], "asyncio.Future[Any]"]


class SchedulerService:
    """Background timers feeding :class:`Tick` commands into the pipeline.

    Integration::

        service = SchedulerService(pipeline.submit, intervals)
        await service.start()
        ...
        await service.stop()
    """

    def __init__(self, submit: Submit, intervals: dict[TickKind, float]) -> None:
        self._submit = submit
        self._intervals = dict(intervals)
        self._running = False
        self._tasks: list[asyncio.Task] = []

        self._stats: dict[str, Any] = {kind.value: 0 for kind in self._intervals}
        self._stats["last_tick"] = None

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start one timer task per configured tick kind."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._run_timer(kind, seconds), name=f"timer:{kind.value}")
            for kind, seconds in self._intervals.items()
        ]
        logger.info(
            "scheduler.started",
            timers={kind.value: seconds for kind, seconds in self._intervals.items()},
        )

    async def stop(self) -> None:
        """Cancel every timer and wait for them to finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("scheduler.stopped")

    @property
    def stats(self) -> dict[str, Any]:
        return dict(self._stats)

    @property
    def is_running(self) -> bool:
        return self._running

    # ── Timers ────────────────────────────────────────────────

    async def _run_timer(self, kind: TickKind, seconds: float) -> None:
        while self._running:
            await asyncio.sleep(seconds)
            self.tick(kind)

    def tick(self, kind: TickKind) -> asyncio.Future[Any]:
        """Submit one :class:`Tick` of *kind* (also used for manual triggers)."""
        future = self._submit(Tick(kind=kind))
        future.add_done_callback(lambda f, k=kind: self._tick_done(k, f))
        self._stats[kind.value] = self._stats.get(kind.value, 0) + 1
        self._stats["last_tick"] = datetime.now(UTC).isoformat()
        return future

    @staticmethod
    def _tick_done(kind: TickKind, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("scheduler.tick_failed", kind=kind.value, error=str(exc))
