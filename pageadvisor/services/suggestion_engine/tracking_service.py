"""
SuggestionTrackingService - how users respond to suggestions over time.

The aggregation is done by the pure functions summarize_effectiveness and
find_follow_ups; the service only loads rows (with embedded implementation
and feedback rows) and hands them over.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from ...core.exceptions import PersistenceError
from .models import (
    EffectivenessReport,
    FollowUpReport,
    PriorityEffectiveness,
    SuggestionStatus,
    TrackedSuggestion,
    TypeEffectiveness,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

SUGGESTIONS_TABLE = "ai_suggestions"

MEASUREMENT_DUE_DAYS = 7
STALE_PENDING_DAYS = 7
FEEDBACK_DUE_DAYS = 30


def _aware(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _parse_time(value) -> Optional[datetime]:
    return parse_timestamp(value) if value is not None else None


def summarize_effectiveness(suggestions: Sequence[TrackedSuggestion]) -> EffectivenessReport:
    """Implementation and dismissal rates by type and priority, plus mean rating."""
    by_type: Dict[str, TypeEffectiveness] = {}
    by_priority: Dict[str, PriorityEffectiveness] = {}
    days_to_implement: Dict[str, List[float]] = {}
    ratings: List[int] = []
    implemented_total = 0

    for suggestion in suggestions:
        type_stats = by_type.setdefault(suggestion.suggestion_type.value, TypeEffectiveness())
        priority_stats = by_priority.setdefault(suggestion.priority.value, PriorityEffectiveness())
        type_stats.total += 1
        priority_stats.total += 1

        if suggestion.status == SuggestionStatus.IMPLEMENTED:
            implemented_total += 1
            type_stats.implemented += 1
            priority_stats.implemented += 1
            implemented_at = (
                _parse_time(suggestion.implementations[0].get("created_at"))
                if suggestion.implementations
                else None
            )
            created_at = _aware(suggestion.created_at)
            if implemented_at and created_at:
                days_to_implement.setdefault(suggestion.priority.value, []).append(
                    (implemented_at - created_at).total_seconds() / 86400
                )
        elif suggestion.status == SuggestionStatus.DISMISSED:
            type_stats.dismissed += 1

        rating = suggestion.feedback[0].get("rating") if suggestion.feedback else None
        if rating:
            ratings.append(rating)

    for stats in by_type.values():
        stats.success_rate = stats.implemented / stats.total * 100 if stats.total else 0.0
    for priority, stats in by_priority.items():
        durations = days_to_implement.get(priority, [])
        stats.avg_days_to_implement = sum(durations) / len(durations) if durations else 0.0

    total = len(suggestions)
    most_effective = max(by_type.items(), key=lambda item: item[1].success_rate)[0] if by_type else "none"

    return EffectivenessReport(
        by_type=by_type,
        by_priority=by_priority,
        total_suggestions=total,
        implementation_rate=implemented_total / total * 100 if total else 0.0,
        avg_user_rating=sum(ratings) / len(ratings) if ratings else 0.0,
        most_effective_type=most_effective,
    )


def find_follow_ups(
    suggestions: Sequence[TrackedSuggestion],
    now: Optional[datetime] = None,
) -> FollowUpReport:
    """Sort suggestions into the three follow-up buckets.

    - needing_measurement: implemented at least 7 days ago, not yet measured
    - old_pending: still pending after 7 days
    - needing_feedback: implemented over 30 days ago with no feedback
    """
    now = now or datetime.now(timezone.utc)
    report = FollowUpReport()

    for suggestion in suggestions:
        implemented_at = _aware(suggestion.implemented_at)
        created_at = _aware(suggestion.created_at)

        if suggestion.status == SuggestionStatus.IMPLEMENTED and implemented_at:
            if (
                suggestion.implementations
                and now - implemented_at >= timedelta(days=MEASUREMENT_DUE_DAYS)
                and not suggestion.implementations[0].get("impact_measured_at")
            ):
                report.needing_measurement.append(suggestion)
            if not suggestion.feedback and implemented_at < now - timedelta(days=FEEDBACK_DUE_DAYS):
                report.needing_feedback.append(suggestion)

        if (
            suggestion.status == SuggestionStatus.PENDING
            and created_at
            and created_at < now - timedelta(days=STALE_PENDING_DAYS)
        ):
            report.old_pending.append(suggestion)

    return report


class SuggestionTrackingService:
    """Effectiveness and follow-up views over a user's suggestions."""

    def __init__(self, supabase_client=None, clock=None):
        if supabase_client is None:
            from ...core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_suggestion_effectiveness(
        self,
        user_id: UUID,
        landing_page_id: Optional[UUID] = None,
    ) -> EffectivenessReport:
        rows = self._load(
            user_id,
            landing_page_id,
            "*, suggestion_implementations(created_at), suggestion_feedback(rating, is_helpful)",
            "load suggestion effectiveness",
        )
        return summarize_effectiveness(rows)

    def get_suggestions_needing_follow_up(
        self,
        user_id: UUID,
        landing_page_id: Optional[UUID] = None,
    ) -> FollowUpReport:
        rows = self._load(
            user_id,
            landing_page_id,
            "*, suggestion_implementations(*), suggestion_feedback(*)",
            "load suggestions needing follow-up",
        )
        report = find_follow_ups(rows, now=self._clock())
        logger.info(
            f"Follow-ups for user {user_id}: {len(report.needing_measurement)} to measure, "
            f"{len(report.old_pending)} stale, {len(report.needing_feedback)} awaiting feedback"
        )
        return report

    def _load(
        self,
        user_id: UUID,
        landing_page_id: Optional[UUID],
        columns: str,
        operation: str,
    ) -> List[TrackedSuggestion]:
        query = self.supabase.table(SUGGESTIONS_TABLE).select(columns).eq("user_id", str(user_id))
        if landing_page_id:
            query = query.eq("landing_page_id", str(landing_page_id))
        try:
            result = query.execute()
        except Exception as e:
            raise PersistenceError(operation, str(e)) from e
        return [TrackedSuggestion.model_validate(row) for row in result.data or []]
