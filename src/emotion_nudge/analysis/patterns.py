"""Pattern analysis — statistics derived from the behaviour store.

Key responsibilities
--------------------
1. **Behaviour pattern** — above-average usage hours, emotional peak hours,
   preferred interventions, a rolling 7-day engagement history and session
   statistics.
2. **Emotional dynamics** — stability, transitions, hour-of-day trigger
   patterns for negative emotions, and negative → positive recovery
   patterns.
3. **Engagement metrics** — overall / per-hour / per-emotion engagement
   rates and response-time distribution.
4. **Insights** — dominant emotion, stress peaks, optimal intervention
   hours, volatility and weekly patterns, with a data-volume confidence.

The analyzer is total over its input domain: empty or short histories
return neutral defaults (``stability = 1.0``, empty lists) and are logged,
never raised.
"""

from __future__ import annotations

import statistics
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Iterable

import structlog

from emotion_nudge.analysis.models import (
    BehaviorPattern,
    EmotionalPatternAnalysis,
    EmotionalPatternInsights,
    EmotionTransition,
    EngagementMetrics,
    RecoveryMethod,
    RecoveryPattern,
    ResponseTimePatterns,
    SessionPatterns,
    TriggerPattern,
)
from emotion_nudge.errors import DataInsufficientError
from emotion_nudge.models import (
    NEGATIVE_EMOTIONS,
    RECOVERY_EMOTIONS,
    BehaviorEvent,
    BehaviorKind,
    Emotion,
    EmotionEvent,
    EngagementEvent,
    InterventionType,
    intervention_from_technique,
    utcnow,
)
from emotion_nudge.store.events import BehaviorStore

logger = structlog.get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────

HIGH_INTENSITY = 0.7
STABLE_INTENSITY_DELTA = 0.3
TRIGGER_MIN_EVENTS = 3
TRIGGER_CONFIDENCE_SCALE = 10.0
NATURAL_RECOVERY_SECONDS = 1800
TIME_BASED_RECOVERY_SECONDS = 3600
EFFECTIVE_INTERVENTION = 0.7
QUICK_RESPONSE_MINUTES = 5.0
MIN_DATA_POINTS = 20

_EMOTION_ORDER = {e: i for i, e in enumerate(Emotion)}


# ── Pure helpers ──────────────────────────────────────────────


def dominant_emotion(events: Iterable[EmotionEvent]) -> Emotion:
    """Mode of the emotions; ties go to the earlier enum member."""
    counts = Counter(e.emotion for e in events)
    if not counts:
        return Emotion.NEUTRAL
    return max(counts, key=lambda emo: (counts[emo], -_EMOTION_ORDER[emo]))


def top_hours(hours: Iterable[int], n: int) -> list[int]:
    """The *n* most frequent hours, count descending then hour ascending."""
    counts = Counter(hours)
    return [h for h, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]]


def above_average_hours(hours: Iterable[int]) -> list[int]:
    """Hours whose count exceeds the mean count of the hours present."""
    counts = Counter(hours)
    if not counts:
        return []
    mean = sum(counts.values()) / len(counts)
    return sorted(h for h, c in counts.items() if c > mean)


def emotional_stability(events: list[EmotionEvent]) -> float:
    """Fraction of adjacent pairs with an unchanged emotion or a small intensity delta."""
    if len(events) < 2:
        return 1.0
    stable = sum(
        1
        for prev, cur in zip(events, events[1:])
        if prev.emotion == cur.emotion
        or abs(cur.intensity - prev.intensity) < STABLE_INTENSITY_DELTA
    )
    return stable / (len(events) - 1)


def emotional_volatility(events: list[EmotionEvent]) -> float:
    """Population standard deviation of intensity."""
    if len(events) <= 1:
        return 0.0
    return statistics.pstdev(e.intensity for e in events)


def recovery_method(elapsed_seconds: float) -> RecoveryMethod:
    if elapsed_seconds < NATURAL_RECOVERY_SECONDS:
        return RecoveryMethod.NATURAL
    if elapsed_seconds < TIME_BASED_RECOVERY_SECONDS:
        return RecoveryMethod.TIME_BASED
    return RecoveryMethod.INTERVENTION_BASED


def _rate(events: list[EngagementEvent]) -> float:
    if not events:
        return 0.0
    return sum(1 for e in events if e.engaged) / len(events)


def _local(dt: datetime, ref: datetime) -> datetime:
    """Express *dt* in *ref*'s timezone when both are aware."""
    if dt.tzinfo is not None and ref.tzinfo is not None:
        return dt.astimezone(ref.tzinfo)
    return dt


# ── Analyzer ─────────────────────────────────────────────────


class PatternAnalyzer:
    """Derive behaviour and emotion statistics from a :class:`BehaviorStore`.

    Parameters
    ----------
    store : BehaviorStore
        Source of raw events.
    min_data_points : int
        Event count at which aggregate confidence saturates at 1.0.
    """

    def __init__(self, store: BehaviorStore, min_data_points: int = MIN_DATA_POINTS) -> None:
        self._store = store
        self._min_points = min_data_points

        # Last snapshot taken by refresh()
        self.pattern: BehaviorPattern = BehaviorPattern()
        self.emotional: EmotionalPatternAnalysis = EmotionalPatternAnalysis()
        self.engagement: EngagementMetrics = EngagementMetrics()
        self.last_refresh: datetime | None = None

    # ── Confidence ────────────────────────────────────────────

    def pattern_confidence(self, data_points: int) -> float:
        return min(1.0, data_points / self._min_points)

    def require_data(self, data_points: int, what: str = "events") -> None:
        """Raise :class:`DataInsufficientError` below the minimum threshold."""
        if data_points < self._min_points:
            raise DataInsufficientError(
                f"{data_points} {what} < {self._min_points} required",
            )

    # ── Behaviour pattern ─────────────────────────────────────

    def behavior_pattern(self, now: datetime | None = None) -> BehaviorPattern:
        now = now or utcnow()
        behavior = self._store.recent_behavior(now)
        emotions = self._store.recent_emotions(now)
        usage = [e for e in behavior if e.kind is BehaviorKind.USAGE]

        return BehaviorPattern(
            usage_hours=above_average_hours(e.hour for e in usage),
            emotional_peak_hours=top_hours(
                (e.hour for e in emotions if e.intensity > HIGH_INTENSITY), 5
            ),
            preferred_interventions=self._preferred_interventions(behavior),
            engagement_history=self._engagement_history(now),
            session_patterns=self._session_patterns(usage),
            last_updated=now,
        )

    @staticmethod
    def _preferred_interventions(behavior: list[BehaviorEvent]) -> list[InterventionType]:
        counts = Counter(
            intervention_from_technique(e.technique)
            for e in behavior
            if e.kind is BehaviorKind.INTERVENTION_COMPLETION
        )
        return [itype for itype, _ in counts.most_common(5)]

    def _engagement_history(self, now: datetime) -> list[float]:
        """1.0 / 0.0 per calendar day for the last 7 days, oldest first."""
        engaged_days = {
            _local(e.actual_engagement_time, now).date()
            for e in self._store.recent_engagements(now)
        }
        history = [
            1.0 if (now - timedelta(days=offset)).date() in engaged_days else 0.0
            for offset in range(7)
        ]
        history.reverse()
        return history

    @staticmethod
    def _session_patterns(usage: list[BehaviorEvent]) -> SessionPatterns:
        durations = [e.duration for e in usage if e.duration is not None]
        days = {e.timestamp.date() for e in usage}
        return SessionPatterns(
            average_duration=sum(durations) / len(durations) if durations else 0.0,
            sessions_per_day=len(usage) / len(days) if days else 0.0,
            peak_usage_hours=top_hours((e.hour for e in usage), 3),
        )

    # ── Emotional dynamics ────────────────────────────────────

    def emotional_patterns(self, now: datetime | None = None) -> EmotionalPatternAnalysis:
        now = now or utcnow()
        emotions = self._store.recent_emotions(now)
        return EmotionalPatternAnalysis(
            stability=emotional_stability(emotions),
            transitions=self.transitions(emotions),
            trigger_patterns=self.trigger_patterns(emotions),
            recovery_patterns=self.recovery_patterns(emotions),
            last_analyzed=now,
        )

    @staticmethod
    def transitions(emotions: list[EmotionEvent]) -> list[EmotionTransition]:
        return [
            EmotionTransition(
                from_emotion=prev.emotion,
                to_emotion=cur.emotion,
                interval_seconds=(cur.timestamp - prev.timestamp).total_seconds(),
                timestamp=cur.timestamp,
            )
            for prev, cur in zip(emotions, emotions[1:])
            if prev.emotion != cur.emotion
        ]

    @staticmethod
    def trigger_patterns(emotions: list[EmotionEvent]) -> list[TriggerPattern]:
        """Hours with at least three negative-emotion events."""
        by_hour: dict[int, list[EmotionEvent]] = defaultdict(list)
        for e in emotions:
            if e.emotion in NEGATIVE_EMOTIONS:
                by_hour[e.hour].append(e)

        patterns: list[TriggerPattern] = []
        for hour in sorted(by_hour):
            group = by_hour[hour]
            if len(group) < TRIGGER_MIN_EVENTS:
                continue
            patterns.append(
                TriggerPattern(
                    hour=hour,
                    dominant_emotion=dominant_emotion(group),
                    frequency=len(group),
                    confidence=min(1.0, len(group) / TRIGGER_CONFIDENCE_SCALE),
                )
            )
        return patterns

    @staticmethod
    def recovery_patterns(emotions: list[EmotionEvent]) -> list[RecoveryPattern]:
        """For each negative event, the first later joy / neutral event."""
        patterns: list[RecoveryPattern] = []
        for i, start in enumerate(emotions):
            if start.emotion not in NEGATIVE_EMOTIONS:
                continue
            for end in emotions[i + 1:]:
                if end.emotion in RECOVERY_EMOTIONS:
                    elapsed = (end.timestamp - start.timestamp).total_seconds()
                    patterns.append(
                        RecoveryPattern(
                            from_emotion=start.emotion,
                            to_emotion=end.emotion,
                            recovery_seconds=elapsed,
                            method=recovery_method(elapsed),
                        )
                    )
                    break
        return patterns

    # ── Engagement ────────────────────────────────────────────

    def engagement_metrics(self, now: datetime | None = None) -> EngagementMetrics:
        now = now or utcnow()
        engagements = self._store.recent_engagements(now)

        by_hour: dict[int, list[EngagementEvent]] = defaultdict(list)
        by_emotion: dict[Emotion, list[EngagementEvent]] = defaultdict(list)
        for e in engagements:
            by_hour[_local(e.scheduled_time, now).hour].append(e)
            by_emotion[e.emotion].append(e)

        return EngagementMetrics(
            overall_rate=_rate(engagements),
            by_hour={h: _rate(by_hour[h]) for h in sorted(by_hour)},
            by_emotion={emo: _rate(by_emotion[emo]) for emo in Emotion if emo in by_emotion},
            response_times=self._response_times(engagements),
            last_calculated=now,
        )

    @staticmethod
    def _response_times(engagements: list[EngagementEvent]) -> ResponseTimePatterns:
        delays = [float(e.delay_minutes) for e in engagements if e.engaged]
        if not delays:
            return ResponseTimePatterns()
        ordered = sorted(delays)
        return ResponseTimePatterns(
            average_minutes=sum(delays) / len(delays),
            median_minutes=ordered[len(ordered) // 2],
            quick_response_rate=sum(1 for d in delays if d <= QUICK_RESPONSE_MINUTES) / len(delays),
        )

    # ── Insights ──────────────────────────────────────────────

    def insights(self, now: datetime | None = None) -> EmotionalPatternInsights:
        now = now or utcnow()
        emotions = self._store.recent_emotions(now)
        try:
            self.require_data(len(emotions), "emotion events")
        except DataInsufficientError as exc:
            logger.debug("analyzer.insufficient_data", reason=exc.reason, detail=str(exc))

        weekly = {
            dow: dominant_emotion(e for e in emotions if e.day_of_week == dow)
            for dow in range(1, 8)
            if any(e.day_of_week == dow for e in emotions)
        }
        return EmotionalPatternInsights(
            dominant_emotion=dominant_emotion(emotions),
            stress_peak_hours=above_average_hours(
                e.hour for e in emotions if e.emotion in NEGATIVE_EMOTIONS
            ),
            optimal_intervention_times=self.optimal_intervention_times(),
            volatility=emotional_volatility(emotions),
            weekly_patterns=weekly,
            confidence=self.pattern_confidence(len(emotions)),
        )

    def optimal_intervention_times(self) -> list[int]:
        """Top three hours of highly effective completed interventions."""
        return top_hours(
            (
                e.hour
                for e in self._store.behavior
                if e.kind is BehaviorKind.INTERVENTION_COMPLETION
                and e.effectiveness > EFFECTIVE_INTERVENTION
            ),
            3,
        )

    def intervention_effectiveness(self, now: datetime | None = None) -> dict[InterventionType, float]:
        """Mean reported effectiveness of completed interventions, per family."""
        scores: dict[InterventionType, list[float]] = defaultdict(list)
        for e in self._store.recent_behavior(now or utcnow()):
            if e.kind is BehaviorKind.INTERVENTION_COMPLETION:
                scores[intervention_from_technique(e.technique)].append(e.effectiveness)
        return {itype: sum(values) / len(values) for itype, values in scores.items()}

    # ── Snapshots ─────────────────────────────────────────────

    def refresh(self, now: datetime | None = None) -> BehaviorPattern:
        """Recompute and cache every derived view (hourly timer)."""
        now = now or utcnow()
        self.pattern = self.behavior_pattern(now)
        self.emotional = self.emotional_patterns(now)
        self.engagement = self.engagement_metrics(now)
        self.last_refresh = now
        logger.info(
            "analyzer.refreshed",
            usage_hours=self.pattern.usage_hours,
            peak_hours=self.pattern.emotional_peak_hours,
            stability=round(self.emotional.stability, 3),
            triggers=len(self.emotional.trigger_patterns),
        )
        return self.pattern

    def segmentation_tags(self, now: datetime | None = None) -> dict[str, str]:
        """Recipient tags describing this user for backend-side segmentation."""
        now = now or utcnow()
        pattern = self.behavior_pattern(now)
        emotional = self.emotional_patterns(now)
        return {
            "avg_daily_sessions": str(pattern.session_patterns.sessions_per_day),
            "peak_usage_hours": ",".join(str(h) for h in pattern.usage_hours),
            "emotional_stability": f"{emotional.stability:.2f}",
            "engagement_score": f"{(pattern.engagement_history or [0.5])[-1]:.2f}",
            "preferred_interventions": ",".join(i.value for i in pattern.preferred_interventions),
            "optimal_intervention_times": ",".join(str(h) for h in pattern.emotional_peak_hours),
            "emotional_volatility": "high" if len(emotional.transitions) > 5 else "low",
            "stress_prone": "true" if len(pattern.emotional_peak_hours) > 3 else "false",
            "notification_preferences": "emotion_aware",
        }
