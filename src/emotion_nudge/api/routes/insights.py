"""Derived pattern and notification-history routes (read-only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from emotion_nudge.api.deps import get_context
from emotion_nudge.context import NudgeContext
from emotion_nudge.streaming.commands import ReadInsights, ReadPatterns

router = APIRouter(tags=["insights"])


@router.get("/patterns")
async def patterns(ctx: NudgeContext = Depends(get_context)):
    return await ctx.submit(ReadPatterns())


@router.get("/insights")
async def insights(ctx: NudgeContext = Depends(get_context)):
    return await ctx.submit(ReadInsights())


@router.get("/notifications/history")
async def notification_history(
    limit: int = Query(50, ge=1, le=500),
    ctx: NudgeContext = Depends(get_context),
):
    if ctx.history is None:
        return []
    items = await ctx.history.list_recent(limit)
    return [item.model_dump(mode="json") for item in items]
