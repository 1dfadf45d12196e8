"""Campaign scheduler — eligibility, cooldown, timing and optimisation.

Architecture
~~~~~~~~~~~~
The ``CampaignScheduler`` owns no global state: every collaborator is
passed in by :func:`emotion_nudge.context.create_context`.  All public
operations are expected to run on the single event-pipeline consumer, so
no two of them ever mutate campaigns or the store concurrently.

Send path
~~~~~~~~~
1. Guard checks raise a :class:`~emotion_nudge.errors.NudgeError`
   subclass (cooldown / rate limit / recipient) that is caught here and
   turned into a skipped :class:`TriggerOutcome`.
2. Content is personalised and handed to the delivery gateway.
3. Only when the gateway reports success are ``last_triggered_at``,
   ``analytics.sent``, the notification history and the feedback hook
   updated.  A failed send leaves the campaign untouched; there is no
   retry, the next natural trigger is the retry.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

import structlog

from emotion_nudge.campaigns import templates
from emotion_nudge.campaigns.models import Campaign, CampaignContent, CampaignState, CampaignType
from emotion_nudge.campaigns.registry import hour_slot
from emotion_nudge.campaigns.segmentation import build_filters
from emotion_nudge.delivery.gateway import DeliveryRequest
from emotion_nudge.errors import (
    DeliveryError,
    NotificationPermissionError,
    NudgeError,
    QuotaError,
    ScheduleRangeError,
)
from emotion_nudge.models import (
    EMERGENCY_EMOTIONS,
    Achievement,
    Emotion,
    EmotionEvent,
    Goal,
    InterventionType,
    NotificationHistoryItem,
    NotificationPriority,
    day_of_week,
    ensure_aware,
    intervention_from_technique,
    utcnow,
)
from emotion_nudge.prediction.rules import estimate_effectiveness
from emotion_nudge.scheduler.timing import in_quiet_hours, next_occurrence, rule_based_send_time

if TYPE_CHECKING:
    from emotion_nudge.analysis.models import BehaviorPattern
    from emotion_nudge.analysis.patterns import PatternAnalyzer
    from emotion_nudge.campaigns.registry import CampaignRegistry
    from emotion_nudge.config import Settings
    from emotion_nudge.delivery.gateway import DeliveryGateway, Recipient
    from emotion_nudge.delivery.hooks import SignalHub
    from emotion_nudge.personalization.engine import PersonalizationEngine
    from emotion_nudge.prediction.base import Prediction, PredictorAdapter
    from emotion_nudge.scheduler.policies import RateLimitPolicy
    from emotion_nudge.store.events import BehaviorStore

logger = structlog.get_logger(__name__)

# Optimisation thresholds
HEALTHY_ENGAGEMENT = 0.8
LOW_ENGAGEMENT = 0.3
LOW_CONVERSION = 0.2
PAUSE_ENGAGEMENT = 0.1
PAUSE_MIN_SENT = 10

# Seed prediction used at start-up
_SEED_EMOTION = Emotion.NEUTRAL
_SEED_CONFIDENCE = 0.7

_SENT_HISTORY = 100

# Used until engagement data says otherwise
DEFAULT_RESPONSIVENESS = 0.5


# ── Results ───────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TriggerOutcome:
    """Result of evaluating one emotion event for an immediate send."""

    sent: bool
    reason: str
    campaign_id: str | None = None


@dataclass(slots=True)
class OptimizationReport:
    evaluated: int = 0
    untouched: list[str] = field(default_factory=list)
    timing_adjusted: list[str] = field(default_factory=list)
    content_adjusted: list[str] = field(default_factory=list)
    paused: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluated": self.evaluated,
            "untouched": list(self.untouched),
            "timing_adjusted": list(self.timing_adjusted),
            "content_adjusted": list(self.content_adjusted),
            "paused": list(self.paused),
        }


# ── Scheduler ─────────────────────────────────────────────────


class CampaignScheduler:
    """Decide when and what to send for a single user."""

    def __init__(
        self,
        *,
        store: BehaviorStore,
        analyzer: PatternAnalyzer,
        registry: CampaignRegistry,
        predictor: PredictorAdapter,
        personalizer: PersonalizationEngine,
        gateway: DeliveryGateway,
        signals: SignalHub,
        recipient: Recipient,
        settings: Settings,
        policy: RateLimitPolicy,
    ) -> None:
        self.store = store
        self.analyzer = analyzer
        self.registry = registry
        self.predictor = predictor
        self.personalizer = personalizer
        self.gateway = gateway
        self.signals = signals
        self.recipient = recipient
        self.policy = policy

        self._emergency_threshold = settings.emergency_threshold
        self._joy_threshold = settings.high_confidence_threshold
        self._cooldown = timedelta(seconds=settings.campaign_cooldown_seconds)
        self._horizon = timedelta(hours=settings.prediction_horizon_hours)
        self._tz_name = settings.timezone
        self._tz = ZoneInfo(settings.timezone)

        self._sent_times: deque[datetime] = deque(maxlen=_SENT_HISTORY)
        self._checkin_slot: datetime | None = None
        self._initialized = False
        self.segmentation_tags: dict[str, str] = {}

    @property
    def cooldown(self) -> timedelta:
        return self._cooldown

    @property
    def initialized(self) -> bool:
        return self._initialized

    def _now(self, now: datetime | None) -> datetime:
        return ensure_aware(now) if now else utcnow().astimezone(self._tz)

    # ── Start-up ──────────────────────────────────────────────

    async def initialize(self, now: datetime | None = None) -> int:
        """Create the standing campaigns.  Safe to call more than once."""
        if self._initialized:
            return 0
        now = self._now(now)
        created = 0

        for emotion in Emotion:
            self.registry.add(templates.emotion_campaign(emotion, now, self._tz_name))
            created += 1

        predictions = await self.predictor.predict_future_needs(
            _SEED_EMOTION, _SEED_CONFIDENCE, now.hour, day_of_week(now), now=now
        )
        for prediction in predictions:
            self.registry.add(templates.predictive_campaign(prediction, now, self._tz_name))
            created += 1

        pattern = self.analyzer.behavior_pattern(now)
        self.registry.add(templates.daily_checkin_campaign(pattern, now, self._tz_name))
        self.registry.add(templates.re_engagement_campaign(now, self._tz_name))
        created += 2

        self._initialized = True
        logger.info("scheduler.initialized", campaigns=created, predictive=len(predictions))
        return created

    async def schedule_daily_checkin(self, now: datetime | None = None) -> Campaign | None:
        """Queue the next daily check-in with a random copy variant.

        A schedule time already in the past rolls forward by the campaign's
        repeat interval.  A slot that was queued once is never queued again,
        so the daily tick can call this freely.
        """
        now = self._now(now)
        campaign = next(iter(self.registry.by_type(CampaignType.DAILY_CHECKIN)), None)
        if campaign is None or not campaign.is_active:
            return None

        schedule = campaign.schedule
        if schedule.scheduled_time <= now and schedule.repeat_interval:
            step = timedelta(seconds=schedule.repeat_interval)
            schedule.scheduled_time += step * ((now - schedule.scheduled_time) // step + 1)
        if schedule.scheduled_time == self._checkin_slot:
            return None
        try:
            self._check_window(schedule.scheduled_time, now)
        except ScheduleRangeError as exc:
            logger.debug("scheduler.checkin_dropped", campaign_id=campaign.id, reason=exc.reason)
            return None

        result = await self._send(
            campaign,
            self.personalizer.daily_checkin_content(),
            self.personalizer.priority_for(campaign.target_emotion),
            now,
            send_after=schedule.scheduled_time,
        )
        if result != "sent":
            return None
        self._checkin_slot = schedule.scheduled_time
        logger.info("scheduler.checkin_queued", send_after=schedule.scheduled_time.isoformat())
        return campaign

    # ── Emotion handling ──────────────────────────────────────

    def should_trigger_immediate(self, event: EmotionEvent) -> bool:
        if event.emotion in EMERGENCY_EMOTIONS:
            return event.confidence >= self._emergency_threshold
        if event.emotion is Emotion.JOY:
            return event.confidence >= self._joy_threshold
        return False

    async def handle_emotion(self, event: EmotionEvent, now: datetime | None = None) -> TriggerOutcome:
        """Record *event*, maybe send immediately, then schedule follow-ups.

        Follow-ups are skipped while the emotion's campaign is cooling down;
        the send that started the cooldown already queued them.
        """
        now = self._now(now)
        self.store.append(event)

        if self.should_trigger_immediate(event):
            outcome = await self._trigger_immediate(event, now)
        else:
            outcome = TriggerOutcome(sent=False, reason="below_threshold")

        if outcome.reason != "cooldown":
            await self._schedule_followups(event, now)
        return outcome

    async def _trigger_immediate(self, event: EmotionEvent, now: datetime) -> TriggerOutcome:
        campaign = self.registry.emotion_campaign(event.emotion)
        if campaign is None:
            logger.warning("scheduler.no_campaign", emotion=event.emotion.value)
            return TriggerOutcome(sent=False, reason="no_campaign")
        if not campaign.is_active:
            return TriggerOutcome(sent=False, reason="paused", campaign_id=campaign.id)

        try:
            self._check_cooldown(campaign, now)
        except QuotaError as exc:
            logger.info(
                "scheduler.trigger_skipped",
                campaign_id=campaign.id,
                emotion=event.emotion.value,
                reason=exc.reason,
            )
            return TriggerOutcome(sent=False, reason=exc.reason, campaign_id=campaign.id)

        pattern = self.analyzer.behavior_pattern(now)
        intervention = self._choose_intervention(event.emotion, now)
        content = self.personalizer.emotion_payload(
            event.emotion,
            intervention,
            event.confidence,
            pattern.preferred_interventions,
        )

        previous = campaign.state(now, self._cooldown)
        result = await self._send(
            campaign,
            content,
            self.personalizer.priority_for(event.emotion),
            now,
            intervention=intervention,
        )
        if result != "sent":
            return TriggerOutcome(sent=False, reason=result, campaign_id=campaign.id)

        await self.signals.feedback(event.emotion)
        await self.signals.state_changed(campaign.id, previous, campaign.state(now, self._cooldown))
        logger.info(
            "scheduler.triggered",
            campaign_id=campaign.id,
            emotion=event.emotion.value,
            confidence=event.confidence,
        )
        return TriggerOutcome(sent=True, reason="sent", campaign_id=campaign.id)

    def _choose_intervention(self, emotion: Emotion, now: datetime) -> InterventionType:
        """The candidate with the best expected effectiveness; ties keep template order."""
        history = self.analyzer.intervention_effectiveness(now)
        metrics = self.analyzer.engagement_metrics(now)
        responsiveness = metrics.overall_rate if metrics.by_hour else DEFAULT_RESPONSIVENESS
        return max(
            templates.OPTIMAL_INTERVENTIONS[emotion],
            key=lambda i: estimate_effectiveness(i, emotion, history.get(i, 0.0), responsiveness),
        )

    async def _schedule_followups(self, event: EmotionEvent, now: datetime) -> list[Campaign]:
        predictions = await self.predictor.predict_future_needs(
            event.emotion, event.confidence, event.hour, event.day_of_week, now=now
        )
        scheduled: list[Campaign] = []
        for prediction in predictions:
            campaign = await self.schedule_prediction(prediction, now)
            if campaign is not None:
                scheduled.append(campaign)
        return scheduled

    # ── Predictive & celebratory sends ────────────────────────

    async def schedule_prediction(
        self,
        prediction: Prediction,
        now: datetime | None = None,
    ) -> Campaign | None:
        """Queue a one-shot send at ``prediction.optimal_time``.

        Returns ``None`` when the time falls outside ``(now, now + horizon]``
        or a send for the same emotion is already queued in that hour.
        """
        now = self._now(now)
        try:
            self._check_window(prediction.optimal_time, now)
        except ScheduleRangeError as exc:
            logger.debug(
                "scheduler.prediction_dropped",
                reason=exc.reason,
                emotion=prediction.predicted_emotion.value,
                optimal_time=prediction.optimal_time.isoformat(),
            )
            return None

        slot = hour_slot(prediction.optimal_time)
        queued = self.registry.queued_prediction(prediction.predicted_emotion, slot)
        if queued is not None:
            logger.debug("scheduler.prediction_duplicate", campaign_id=queued.id, slot=slot.isoformat())
            return None

        campaign = self.registry.add(
            templates.scheduled_predictive_campaign(prediction, now, self._tz_name)
        )
        await self._send_once(
            campaign,
            campaign.content,
            self.personalizer.priority_for(prediction.predicted_emotion),
            now,
            send_after=prediction.optimal_time,
            intervention=prediction.recommended_intervention,
        )
        return campaign

    async def create_achievement_campaign(
        self,
        achievement: Achievement,
        now: datetime | None = None,
    ) -> Campaign:
        now = self._now(now)
        campaign = self.registry.add(templates.achievement_campaign(achievement, now, self._tz_name))
        await self._send_once(
            campaign,
            campaign.content,
            NotificationPriority.MEDIUM,
            now,
            send_after=campaign.schedule.scheduled_time,
        )
        return campaign

    async def create_goal_campaign(self, goal: Goal, now: datetime | None = None) -> Campaign:
        now = self._now(now)
        content = self.personalizer.goal_completion_content(goal)
        campaign = self.registry.add(templates.goal_campaign(goal, content, now, self._tz_name))
        await self._send_once(
            campaign,
            content,
            NotificationPriority.MEDIUM,
            now,
            send_after=campaign.schedule.scheduled_time,
        )
        return campaign

    # ── Guards ────────────────────────────────────────────────

    def _check_cooldown(self, campaign: Campaign, now: datetime) -> None:
        if campaign.in_cooldown(now, self._cooldown):
            raise QuotaError(f"campaign {campaign.id} in cooldown", reason="cooldown")

    def _check_rate(self, at: datetime) -> None:
        if not self.policy.allows(list(self._sent_times), at):
            raise QuotaError(f"{self.policy.name} policy refused send", reason="rate_limited")

    def _check_recipient(self) -> None:
        if not self.recipient.subscriber_id:
            raise NotificationPermissionError("no subscriber id", reason="no_subscriber")
        if not self.recipient.opted_in:
            raise NotificationPermissionError("recipient opted out", reason="opted_out")
        if not self.recipient.permission_granted:
            raise NotificationPermissionError("notification permission denied")

    def _check_window(self, target: datetime, now: datetime) -> None:
        if not now < target <= now + self._horizon:
            raise ScheduleRangeError(f"{target.isoformat()} outside ({now.isoformat()}, +{self._horizon}]")

    # ── Delivery ──────────────────────────────────────────────

    async def _send(
        self,
        campaign: Campaign,
        content: CampaignContent,
        priority: NotificationPriority,
        now: datetime,
        *,
        send_after: datetime | None = None,
        intervention: InterventionType | None = None,
    ) -> str:
        """Deliver *content* for *campaign*; return ``"sent"`` or a skip reason.

        The rate policy sees the delivery time, so a delayed send counts
        against the day it lands on.
        """
        deliver_at = send_after or now
        try:
            self._check_rate(deliver_at)
            self._check_recipient()
        except NudgeError as exc:
            logger.info("scheduler.send_skipped", campaign_id=campaign.id, reason=exc.reason)
            return exc.reason

        request = DeliveryRequest(
            target_id=self.recipient.subscriber_id,
            title=content.title,
            body=content.body,
            buttons=[{"id": b.id, "text": b.text} for b in content.action_buttons],
            custom_data=content.custom_data,
            tag_filters=build_filters(campaign.segmentation),
            send_after=send_after,
            priority=priority,
            rich_media=content.rich_media,
        )
        if not await self.gateway.send(request):
            exc = DeliveryError(f"gateway {self.gateway.name} did not accept the send")
            logger.warning(
                "scheduler.delivery_failed",
                campaign_id=campaign.id,
                gateway=self.gateway.name,
                reason=exc.reason,
            )
            return exc.reason

        campaign.last_triggered_at = now
        campaign.analytics.sent += 1
        self._sent_times.append(deliver_at)

        await self.signals.history(
            NotificationHistoryItem(
                title=content.title,
                body=content.body,
                received_at=deliver_at,
                type=campaign.type.value,
                emotion=campaign.target_emotion,
                intervention=intervention,
                custom_data=content.custom_data,
                priority=priority,
            )
        )
        return "sent"

    async def _send_once(self, campaign: Campaign, *args: Any, **kwargs: Any) -> str:
        """Send a one-shot campaign and retire it so cleanup can reclaim it."""
        result = await self._send(campaign, *args, **kwargs)
        campaign.is_active = False
        return result

    # ── Feedback from the user ────────────────────────────────

    def record_open(self, campaign_id: str) -> bool:
        campaign = self.registry.get(campaign_id)
        if campaign is None:
            return False
        campaign.analytics.opened += 1
        return True

    def record_conversion(self, technique: str, effectiveness: float) -> str | None:
        """Credit the first active campaign offering the technique's intervention."""
        intervention = intervention_from_technique(technique)
        for campaign in self.registry.find_by_button(intervention):
            if campaign.is_active:
                campaign.analytics.conversions += 1
                campaign.analytics.effectiveness_sum += effectiveness
                return campaign.id
        return None

    # ── Periodic jobs ─────────────────────────────────────────

    async def optimize(self, now: datetime | None = None) -> OptimizationReport:
        """Daily pass over active campaigns: retime, flag content, pause."""
        now = self._now(now)
        report = OptimizationReport()
        pattern = self.analyzer.behavior_pattern(now)
        best_hour = self._best_engagement_hour(now)

        for campaign in self.registry.list():
            if not campaign.is_active:
                continue
            report.evaluated += 1
            analytics = campaign.analytics
            engagement = analytics.engagement_rate

            if engagement > HEALTHY_ENGAGEMENT:
                report.untouched.append(campaign.id)
                continue

            if engagement < LOW_ENGAGEMENT:
                campaign.needs_timing_adjustment = True
                campaign.schedule.scheduled_time = await self._retime(campaign, pattern, best_hour, now)
                report.timing_adjusted.append(campaign.id)

            if analytics.conversion_rate < LOW_CONVERSION:
                campaign.needs_content_adjustment = True
                report.content_adjusted.append(campaign.id)

            if engagement < PAUSE_ENGAGEMENT and analytics.sent > PAUSE_MIN_SENT:
                previous = campaign.state(now, self._cooldown)
                campaign.is_active = False
                report.paused.append(campaign.id)
                await self.signals.state_changed(campaign.id, previous, CampaignState.PAUSED)

        logger.info(
            "scheduler.optimized",
            evaluated=report.evaluated,
            retimed=len(report.timing_adjusted),
            content=len(report.content_adjusted),
            paused=len(report.paused),
        )
        return report

    async def _retime(
        self,
        campaign: Campaign,
        pattern: BehaviorPattern,
        best_hour: int | None,
        now: datetime,
    ) -> datetime:
        """Observed engagement first, then the predictor, then the rule table.

        A target inside quiet hours moves to the next morning slot.
        """
        emotion = campaign.target_emotion
        if best_hour is not None:
            target = next_occurrence(best_hour, now)
        else:
            target = await self.predictor.predict_optimal_time(emotion, pattern, now=now)
        if target is None:
            target = rule_based_send_time(now, emotion)
        if in_quiet_hours(target.hour):
            target = rule_based_send_time(target, emotion)
        return target

    def _best_engagement_hour(self, now: datetime) -> int | None:
        by_hour = self.analyzer.engagement_metrics(now).by_hour
        if not by_hour:
            return None
        return max(by_hour, key=lambda h: (by_hour[h], -h))

    async def cleanup(self, now: datetime | None = None) -> list[str]:
        now = self._now(now)
        removed = self.registry.cleanup(now)
        for campaign in removed:
            await self.signals.state_changed(campaign.id, CampaignState.PAUSED, None)
        return [c.id for c in removed]

    def refresh_patterns(self, now: datetime | None = None) -> dict[str, str]:
        now = self._now(now)
        self.analyzer.refresh(now)
        self.segmentation_tags = self.analyzer.segmentation_tags(now)
        return dict(self.segmentation_tags)
