"""Campaign sub-package — model, registry, segmentation and templates."""

from emotion_nudge.campaigns.models import (
    Campaign,
    CampaignAnalytics,
    CampaignContent,
    CampaignState,
    CampaignType,
)
from emotion_nudge.campaigns.registry import CampaignRegistry

__all__ = [
    "Campaign",
    "CampaignAnalytics",
    "CampaignContent",
    "CampaignRegistry",
    "CampaignState",
    "CampaignType",
]
