"""Personalization engine — turns templates into a per-user payload.

Everything here is a pure function of its inputs except the celebratory
and check-in variants, which are drawn from an injectable
:class:`random.Random` so tests can pin the choice.
"""

from __future__ import annotations

import random
from typing import Iterable

from emotion_nudge.campaigns import templates
from emotion_nudge.campaigns.models import CampaignContent
from emotion_nudge.models import Emotion, Goal, InterventionType, NotificationPriority

_PRIORITY: dict[Emotion, NotificationPriority] = {
    Emotion.SADNESS: NotificationPriority.HIGH,
    Emotion.ANGER: NotificationPriority.HIGH,
    Emotion.FEAR: NotificationPriority.HIGH,
    Emotion.JOY: NotificationPriority.MEDIUM,
    Emotion.SURPRISE: NotificationPriority.MEDIUM,
    Emotion.DISGUST: NotificationPriority.LOW,
    Emotion.NEUTRAL: NotificationPriority.LOW,
}


class PersonalizationEngine:
    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def personalize(
        self,
        content: CampaignContent,
        preferred: Iterable[InterventionType],
    ) -> CampaignContent:
        """Narrow action buttons to the user's preferred interventions.

        Falls back to the full button list when nothing matches, so the
        result is never empty.
        """
        wanted = {p.value for p in preferred}
        kept = [b for b in content.action_buttons if b.id in wanted]
        return content.model_copy(update={"action_buttons": kept or list(content.action_buttons)})

    def emotion_payload(
        self,
        emotion: Emotion,
        intervention: InterventionType,
        confidence: float,
        preferred: Iterable[InterventionType] = (),
    ) -> CampaignContent:
        title, body = templates.EMOTION_COPY[emotion]
        interventions = list(templates.OPTIMAL_INTERVENTIONS[emotion])
        if intervention not in interventions:
            interventions.append(intervention)

        content = CampaignContent(
            title=title,
            body=body,
            action_buttons=[templates.intervention_button(i) for i in interventions],
            custom_data={
                "emotion": emotion.value,
                "intervention": intervention.value,
                "confidence": str(confidence),
                "campaign_type": "emotion_triggered",
            },
            rich_media=templates.emotion_media(emotion),
        )
        return self.personalize(content, preferred)

    def goal_completion_content(self, goal: Goal) -> CampaignContent:
        variant = self._rng.randrange(len(templates.GOAL_VARIANTS))
        return templates.goal_content(goal, variant)

    def daily_checkin_content(self) -> CampaignContent:
        return templates.daily_checkin_content(self._rng.randrange(len(templates.DAILY_VARIANTS)))

    @staticmethod
    def priority_for(emotion: Emotion) -> NotificationPriority:
        return _PRIORITY[emotion]
