"""Typed audience segmentation.

A campaign's audience is a tuple of :class:`TagFilter` predicates over
recipient tags.  Filters are validated on construction and rendered into
delivery-backend filter dicts by :func:`build_filters`, which always
prepends the base ``notification_preferences = emotion_aware`` filter.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class FilterField(str, Enum):
    TAG = "tag"


class SegmentKey(str, Enum):
    NOTIFICATION_PREFERENCES = "notification_preferences"
    EMOTION_PRONE = "emotion_prone"
    SUBSCRIPTION_TIER = "subscription_tier"
    PREDICTIVE_ENABLED = "predictive_enabled"
    ML_CONFIDENCE = "ml_confidence"
    PREDICTED_EMOTION = "predicted_emotion"
    DAILY_CHECKIN_ENABLED = "daily_checkin_enabled"
    ENGAGEMENT_LEVEL = "engagement_level"
    DAYS_SINCE_LAST_ACTIVITY = "days_since_last_activity"
    REENGAGEMENT_ELIGIBLE = "reengagement_eligible"
    STRESS_PRONE = "stress_prone"
    EMOTIONAL_VOLATILITY = "emotional_volatility"


class Relation(str, Enum):
    EQ = "="
    NE = "!="
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class TagFilter(BaseModel):
    """A single ``tag <relation> value`` predicate."""

    model_config = ConfigDict(frozen=True)

    field: FilterField = FilterField.TAG
    key: SegmentKey
    relation: Relation = Relation.EQ
    value: str = ""

    @model_validator(mode="after")
    def _check_value(self) -> TagFilter:
        if self.relation in (Relation.EQ, Relation.NE) and not self.value:
            raise ValueError(f"relation {self.relation.value!r} on {self.key.value} needs a value")
        if self.relation in (Relation.EXISTS, Relation.NOT_EXISTS) and self.value:
            raise ValueError(f"relation {self.relation.value!r} takes no value")
        return self

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "field": self.field.value,
            "key": self.key.value,
            "relation": self.relation.value,
        }
        if self.value:
            out["value"] = self.value
        return out


Segmentation = tuple[TagFilter, ...]

BASE_FILTER = TagFilter(key=SegmentKey.NOTIFICATION_PREFERENCES, value="emotion_aware")


def tags(**pairs: str) -> Segmentation:
    """Shorthand for a conjunction of equality filters."""
    return tuple(TagFilter(key=SegmentKey(k), value=v) for k, v in pairs.items())


def build_filters(segmentation: Segmentation) -> list[dict[str, Any]]:
    """Render *segmentation* as backend filters, base filter first, AND-combined."""
    kept: list[TagFilter] = [BASE_FILTER]
    for f in segmentation:
        if f not in kept:
            kept.append(f)
    return [f.to_dict() for f in kept]
