"""Event pipeline — the engine's single serialization point.

Producers (API routes, timers) submit typed commands; one consumer task
runs the registered handler for each command to completion before taking
the next, so handlers never mutate shared state concurrently.  Each
``submit()`` returns a future resolved with the handler's result (or its
exception).
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

import structlog

from emotion_nudge.streaming.commands import Command

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Awaitable[Any]]


class EventPipeline:
    """Single-consumer command queue with per-type handlers."""

    def __init__(self, maxsize: int = 10_000) -> None:
        self._queue: asyncio.Queue[tuple[Command, asyncio.Future[Any]]] = asyncio.Queue(
            maxsize=maxsize
        )
        self._handlers: dict[type, Handler] = {}
        self._running = False
        self._processed_total = 0
        self._failed_total = 0

    # ── Configuration ─────────────────────────────────────────

    def register(self, command_type: type, handler: Handler) -> None:
        """Route every command of *command_type* to *handler*."""
        self._handlers[command_type] = handler

    # ── Producer side ─────────────────────────────────────────

    def submit(self, command: Command) -> asyncio.Future[Any]:
        """Enqueue *command*; the returned future resolves with the result."""
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((command, future))
        return future

    # ── Consumer loop ─────────────────────────────────────────

    async def start(self) -> None:
        """Run the consumer loop (run as a background task)."""
        self._running = True
        logger.info("event_pipeline.started", handlers=len(self._handlers))
        last_stats_time = time.monotonic()

        while self._running:
            try:
                command, future = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self._process(command, future)
            finally:
                self._queue.task_done()

            now = time.monotonic()
            if now - last_stats_time >= 60:
                logger.info(
                    "event_pipeline.stats",
                    processed_total=self._processed_total,
                    failed_total=self._failed_total,
                    queue_pending=self._queue.qsize(),
                )
                last_stats_time = now

    async def _process(self, command: Command, future: asyncio.Future[Any]) -> None:
        handler = self._handlers.get(type(command))
        try:
            if handler is None:
                raise LookupError(f"no handler registered for {type(command).__name__}")
            result = await handler(command)
        except Exception as exc:
            self._failed_total += 1
            logger.error(
                "event_pipeline.handler_error",
                command=type(command).__name__,
                error=str(exc),
            )
            if not future.done():
                future.set_exception(exc)
        else:
            if not future.done():
                future.set_result(result)
        self._processed_total += 1

    async def drain(self) -> None:
        """Wait until every queued command has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        """Gracefully stop the consumer loop."""
        self._running = False
        logger.info("event_pipeline.stopped", processed_total=self._processed_total)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def processed(self) -> int:
        return self._processed_total
