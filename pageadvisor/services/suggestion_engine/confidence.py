"""Confidence grading for a measured improvement.

Additive point score from three weak signals: sample size, time since
implementation, and how many metrics moved in the positive direction.
Thresholds are plain integers so results are reproducible.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .impact_calculator import calculate_improvement
from .models import AnalyticsSnapshot, ConfidenceLevel

# (minimum page views in both snapshots, points)
VOLUME_POINTS = ((1000, 3), (100, 2), (10, 1))
# (minimum days since implementation, points)
AGE_POINTS = ((30, 2), (14, 1))
# (minimum number of positive metric deltas, points)
CONSISTENCY_POINTS = ((3, 2), (2, 1))

HIGH_CONFIDENCE_SCORE = 6
MEDIUM_CONFIDENCE_SCORE = 3


def _points(value: float, table) -> int:
    for threshold, points in table:
        if value >= threshold:
            return points
    return 0


def implementation_age_days(
    created_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> float:
    if created_at is None:
        return 0.0
    now = now or datetime.now(timezone.utc)
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return (now - created_at).total_seconds() / 86400


def confidence_score(
    before: AnalyticsSnapshot,
    after: AnalyticsSnapshot,
    age_days: float,
) -> int:
    score = _points(min(before.page_views, after.page_views), VOLUME_POINTS)
    score += _points(age_days, AGE_POINTS)

    improvement = calculate_improvement(before, after)
    positive_metrics = sum(1 for change in improvement.metric_changes() if change > 0)
    score += _points(positive_metrics, CONSISTENCY_POINTS)

    return score


def grade_confidence(score: int) -> ConfidenceLevel:
    if score >= HIGH_CONFIDENCE_SCORE:
        return ConfidenceLevel.HIGH
    if score >= MEDIUM_CONFIDENCE_SCORE:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def calculate_confidence(
    before: AnalyticsSnapshot,
    after: AnalyticsSnapshot,
    implemented_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> ConfidenceLevel:
    """Grade how much to trust the before/after comparison."""
    age = implementation_age_days(implemented_at, now)
    return grade_confidence(confidence_score(before, after, age))
