"""Campaign registry — the engine's set of live campaigns."""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from emotion_nudge.campaigns.models import Campaign, CampaignType
from emotion_nudge.models import Emotion, InterventionType, utcnow

logger = structlog.get_logger(__name__)

CLEANUP_AGE = timedelta(hours=24)


def hour_slot(dt: datetime) -> datetime:
    return dt.replace(minute=0, second=0, microsecond=0)


class CampaignRegistry:
    """Insertion-ordered collection of campaigns keyed by id."""

    def __init__(self) -> None:
        self._campaigns: dict[str, Campaign] = {}

    def __len__(self) -> int:
        return len(self._campaigns)

    def __contains__(self, campaign_id: object) -> bool:
        return campaign_id in self._campaigns

    def add(self, campaign: Campaign) -> Campaign:
        self._campaigns[campaign.id] = campaign
        logger.debug("registry.added", campaign_id=campaign.id, type=campaign.type.value)
        return campaign

    def get(self, campaign_id: str) -> Campaign | None:
        return self._campaigns.get(campaign_id)

    def remove(self, campaign_id: str) -> Campaign | None:
        return self._campaigns.pop(campaign_id, None)

    def list(self) -> list[Campaign]:
        return list(self._campaigns.values())

    def by_type(self, campaign_type: CampaignType) -> list[Campaign]:
        return [c for c in self._campaigns.values() if c.type is campaign_type]

    def emotion_campaign(self, emotion: Emotion) -> Campaign | None:
        """The emotion-triggered campaign targeting *emotion*, if any."""
        for campaign in self._campaigns.values():
            if campaign.type is CampaignType.EMOTION_TRIGGERED and campaign.target_emotion is emotion:
                return campaign
        return None

    def queued_prediction(self, emotion: Emotion, slot: datetime) -> Campaign | None:
        """A one-shot predictive send for *emotion* already delivered for the hour at *slot*."""
        for campaign in self._campaigns.values():
            if (
                campaign.one_shot
                and campaign.type is CampaignType.PREDICTIVE
                and campaign.target_emotion is emotion
                and campaign.analytics.sent > 0
                and hour_slot(campaign.schedule.scheduled_time) == slot
            ):
                return campaign
        return None

    def find_by_button(self, intervention: InterventionType | str) -> list[Campaign]:
        """Campaigns offering an action button with the intervention's id."""
        button_id = intervention.value if isinstance(intervention, InterventionType) else intervention
        return [
            c
            for c in self._campaigns.values()
            if any(b.id == button_id for b in c.content.action_buttons)
        ]

    def cleanup(self, now: datetime | None = None, max_age: timedelta = CLEANUP_AGE) -> list[Campaign]:
        """Remove inactive campaigns created more than *max_age* ago."""
        cutoff = (now or utcnow()) - max_age
        expired = [
            c for c in self._campaigns.values() if c.created_at < cutoff and not c.is_active
        ]
        for campaign in expired:
            del self._campaigns[campaign.id]
        if expired:
            logger.info("registry.cleaned", removed=len(expired), remaining=len(self._campaigns))
        return expired
