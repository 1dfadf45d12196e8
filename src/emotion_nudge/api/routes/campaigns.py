"""Campaign inspection, feedback and celebration routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from emotion_nudge.api.deps import get_context
from emotion_nudge.api.schemas import CampaignSummary
from emotion_nudge.campaigns.models import Campaign
from emotion_nudge.context import NudgeContext
from emotion_nudge.models import Achievement, Goal
from emotion_nudge.streaming.commands import (
    CelebrateAchievement,
    CelebrateGoal,
    ListCampaigns,
    RecordOpen,
    Tick,
    TickKind,
)

router = APIRouter(tags=["campaigns"])


def _summary(campaign: Campaign, ctx: NudgeContext) -> CampaignSummary:
    analytics = campaign.analytics
    return CampaignSummary(
        id=campaign.id,
        name=campaign.name,
        type=campaign.type.value,
        target_emotion=campaign.target_emotion,
        state=campaign.state(ctx.now(), ctx.scheduler.cooldown).value,
        is_active=campaign.is_active,
        scheduled_time=campaign.schedule.scheduled_time,
        sent=analytics.sent,
        opened=analytics.opened,
        conversions=analytics.conversions,
        engagement_rate=analytics.engagement_rate,
        conversion_rate=analytics.conversion_rate,
        needs_timing_adjustment=campaign.needs_timing_adjustment,
        needs_content_adjustment=campaign.needs_content_adjustment,
    )


@router.get("/campaigns", response_model=list[CampaignSummary])
async def list_campaigns(ctx: NudgeContext = Depends(get_context)):
    campaigns = await ctx.submit(ListCampaigns())
    return [_summary(c, ctx) for c in campaigns]


@router.post("/campaigns/{campaign_id}/open")
async def open_campaign(campaign_id: str, ctx: NudgeContext = Depends(get_context)):
    if not await ctx.submit(RecordOpen(campaign_id=campaign_id)):
        raise HTTPException(404, f"Campaign {campaign_id} not found.")
    return {"campaign_id": campaign_id, "opened": True}


@router.post("/campaigns/optimize")
async def optimize_campaigns(ctx: NudgeContext = Depends(get_context)):
    """Run the optimisation pass now instead of waiting for the daily tick."""
    return await ctx.service.tick(TickKind.OPTIMIZATION)


@router.post("/campaigns/cleanup")
async def cleanup_campaigns(ctx: NudgeContext = Depends(get_context)):
    removed = await ctx.submit(Tick(kind=TickKind.CLEANUP))
    return {"removed": removed}


@router.post("/achievements", status_code=201)
async def celebrate_achievement(achievement: Achievement, ctx: NudgeContext = Depends(get_context)):
    campaign_id = await ctx.submit(CelebrateAchievement(achievement=achievement))
    return {"campaign_id": campaign_id}


@router.post("/goals", status_code=201)
async def celebrate_goal(goal: Goal, ctx: NudgeContext = Depends(get_context)):
    campaign_id = await ctx.submit(CelebrateGoal(goal=goal))
    return {"campaign_id": campaign_id}
