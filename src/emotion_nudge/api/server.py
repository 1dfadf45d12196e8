"""FastAPI application — event ingestion and engine inspection.

The lifespan builds one :class:`~emotion_nudge.context.NudgeContext`
(store, analyzer, registry, scheduler engine, pipeline and timers),
stores it on ``app.state.ctx`` and tears it down on shutdown.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request

from emotion_nudge.api.routes.campaigns import router as campaigns_router
from emotion_nudge.api.routes.events import router as events_router
from emotion_nudge.api.routes.insights import router as insights_router
from emotion_nudge.config import get_settings
from emotion_nudge.context import create_context
from emotion_nudge.storage.database import dispose_engine, init_db

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    settings = get_settings()

    # 1. Database
    await init_db()
    logger.info("server.db_ready")

    # 2. Engine
    ctx = create_context(settings)
    await ctx.start()
    app.state.ctx = ctx
    logger.info("server.started", port=settings.api_port, campaigns=len(ctx.registry))

    yield  # ← application runs

    # Shutdown
    app.state.ctx = None
    await ctx.stop()
    await dispose_engine()
    logger.info("server.stopped")


app = FastAPI(
    title="Emotion Nudge API",
    description="Emotion-aware notification scheduling engine.",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Routers ───────────────────────────────────────────────────
app.include_router(events_router)
app.include_router(campaigns_router)
app.include_router(insights_router)


# ── Health ────────────────────────────────────────────────────

@app.get("/health", tags=["system"])
async def health(request: Request):
    ctx = getattr(request.app.state, "ctx", None)
    return {
        "status": "ok",
        "pipeline_pending": ctx.pipeline.pending if ctx else 0,
        "campaigns": len(ctx.registry) if ctx else 0,
        "scheduler": ctx.service.stats if ctx else {},
    }
