"""Event ingestion routes.

Every write is submitted to the event pipeline and awaited, so the
response reflects the state after the command was processed.
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from emotion_nudge.api.deps import get_context
from emotion_nudge.api.schemas import (
    CompletionRequest,
    EmotionRequest,
    EngagementRequest,
    UsageRequest,
)
from emotion_nudge.context import NudgeContext
from emotion_nudge.streaming.commands import (
    RecordCompletion,
    RecordEmotion,
    RecordEngagement,
    RecordUsage,
)

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/usage", status_code=201)
async def record_usage(req: UsageRequest, ctx: NudgeContext = Depends(get_context)):
    event_id = await ctx.submit(
        RecordUsage(hour=req.hour, day_of_week=req.day_of_week, duration=req.duration, at=req.timestamp)
    )
    return {"id": event_id}


@router.post("/emotion", status_code=201)
async def record_emotion(req: EmotionRequest, ctx: NudgeContext = Depends(get_context)):
    """Record a classified emotion; may trigger an immediate notification."""
    outcome = await ctx.submit(
        RecordEmotion(
            emotion=req.emotion,
            confidence=req.confidence,
            intensity=req.intensity,
            context=req.context,
            at=req.timestamp,
        )
    )
    return asdict(outcome)


@router.post("/engagement", status_code=201)
async def record_engagement(req: EngagementRequest, ctx: NudgeContext = Depends(get_context)):
    event_id = await ctx.submit(
        RecordEngagement(
            emotion=req.emotion,
            intervention=req.intervention,
            scheduled_time=req.scheduled_time,
            actual_time=req.actual_time,
        )
    )
    return {"id": event_id}


@router.post("/interventions", status_code=201)
async def record_completion(req: CompletionRequest, ctx: NudgeContext = Depends(get_context)):
    campaign_id = await ctx.submit(
        RecordCompletion(
            technique=req.technique,
            duration=req.duration,
            effectiveness=req.effectiveness_score,
            feedback=req.feedback,
            at=req.timestamp,
        )
    )
    return {"credited_campaign": campaign_id}
