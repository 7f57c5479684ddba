"""
ImpactOrchestrator - measures what implemented suggestions actually did.

An implementation becomes eligible for measurement once it has a
before-snapshot, has not been measured yet, and is at least
Config.IMPACT_MIN_AGE_DAYS old. Measuring reads the current snapshot,
scores the change, and writes after_analytics + impact_measured_at.
Re-measuring overwrites both (last write wins).

Nothing here schedules itself; `pageadvisor impact measure` or a dashboard
load triggers measure_pending_impacts().
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import ValidationError

from ...core.config import Config
from ...core.exceptions import MissingBaselineError, NotFoundError, PersistenceError
from ...core.observability import get_logfire
from .confidence import calculate_confidence
from .impact_calculator import calculate_improvement, generate_insights
from .models import (
    CategoryPerformance,
    ImpactMeasurement,
    ImpactSummary,
    ImplementationComparison,
    MeasurementBatchResult,
    MeasurementDetail,
    RankedImplementation,
    SuggestionImplementation,
)
from .snapshot_reader import SnapshotReader

logger = logging.getLogger(__name__)

IMPLEMENTATIONS_TABLE = "suggestion_implementations"

# Columns pulled from ai_suggestions through the inner join
SUGGESTION_JOIN = (
    "*, ai_suggestions!inner(id, title, suggestion_type, priority, "
    "user_id, landing_page_id, implemented_at)"
)

TIMEFRAME_DAYS = {"week": 7, "month": 30, "quarter": 90}
RANKING_SIZE = 3


def _row_id(row: Any) -> Optional[UUID]:
    try:
        return UUID(str(row["id"]))
    except (KeyError, TypeError, ValueError):
        return None


class ImpactOrchestrator:
    """Finds, measures and summarizes suggestion implementations."""

    def __init__(
        self,
        supabase_client=None,
        snapshot_reader: Optional[SnapshotReader] = None,
        clock=None,
        min_age_days: Optional[int] = None,
    ):
        if supabase_client is None:
            from ...core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client
        self.snapshot_reader = snapshot_reader or SnapshotReader(supabase_client)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.min_age_days = min_age_days if min_age_days is not None else Config.IMPACT_MIN_AGE_DAYS

    # ============================================
    # Measurement
    # ============================================

    async def measure_pending_impacts(
        self,
        user_id: UUID,
        landing_page_id: Optional[UUID] = None,
    ) -> MeasurementBatchResult:
        """Measure every eligible implementation for a user (optionally one page).

        Per-item failures are recorded in the result, never raised.

        Raises:
            PersistenceError: If the eligible implementations cannot be listed
        """
        lf = get_logfire()
        with lf.span(
            "measure_pending_impacts",
            user_id=str(user_id),
            landing_page_id=str(landing_page_id) if landing_page_id else None,
        ):
            cutoff = self._eligibility_cutoff()
            rows = self._query_eligible(user_id, landing_page_id, cutoff)
            logger.info(f"Checking {len(rows)} candidate implementations for user {user_id}")

            batch = MeasurementBatchResult()
            for row in rows:
                row_id = _row_id(row)
                try:
                    # A corrupt stored row fails only itself
                    implementation = self._parse_eligible(row, cutoff)
                    if implementation is None:
                        continue
                    measurement = await self._measure(implementation)
                except Exception as e:
                    logger.warning(f"Impact measurement failed for {row_id}: {e}")
                    batch.failed += 1
                    batch.details.append(
                        MeasurementDetail(
                            implementation_id=row_id,
                            success=False,
                            error=str(e) or type(e).__name__,
                        )
                    )
                    continue

                batch.measured += 1
                batch.details.append(
                    MeasurementDetail(
                        implementation_id=implementation.id,
                        success=True,
                        overall_improvement=measurement.improvement.overall_improvement,
                        confidence=measurement.confidence,
                    )
                )

            logger.info(f"Impact batch done: {batch.measured} measured, {batch.failed} failed")
            return batch

    async def measure_implementation_impact(self, implementation_id: UUID) -> ImpactMeasurement:
        """Measure one implementation regardless of its age.

        Raises:
            NotFoundError: Unknown implementation id
            MissingBaselineError: No before-snapshot was captured
            SnapshotReadError: Current analytics could not be read
            PersistenceError: Result could not be saved
        """
        implementation = self._get_implementation(implementation_id)
        return await self._measure(implementation)

    async def _measure(self, implementation: SuggestionImplementation) -> ImpactMeasurement:
        if implementation.before_analytics is None:
            raise MissingBaselineError(
                f"Implementation {implementation.id} has no before-snapshot"
            )

        ref = implementation.suggestion
        user_id = ref.user_id if ref and ref.user_id else implementation.user_id
        if ref is None or ref.landing_page_id is None:
            raise NotFoundError("Suggestion", str(implementation.suggestion_id))

        # A failed read must not be replaced by zeros: that would record a fake decline
        current = (await self.snapshot_reader.read(user_id, ref.landing_page_id)).unwrap()
        after = current.analytics
        before = implementation.before_analytics
        now = self._clock()

        improvement = calculate_improvement(before, after)
        confidence = calculate_confidence(before, after, implementation.created_at, now=now)
        insights = generate_insights(
            improvement,
            suggestion_type=ref.suggestion_type,
            partial_implementation=implementation.partial_implementation,
        )

        try:
            (
                self.supabase.table(IMPLEMENTATIONS_TABLE)
                .update({
                    "after_analytics": after.model_dump(mode="json"),
                    "impact_measured_at": now.isoformat(),
                })
                .eq("id", str(implementation.id))
                .execute()
            )
        except Exception as e:
            raise PersistenceError("save impact measurement", str(e)) from e

        logger.info(
            f"Implementation {implementation.id}: {improvement.overall_improvement:.1f}% "
            f"overall ({confidence.value} confidence)"
        )
        return ImpactMeasurement(
            implementation_id=implementation.id,
            improvement=improvement,
            confidence=confidence,
            insights=insights,
            after_analytics=after,
            measured_at=now,
        )

    # ============================================
    # Reporting
    # ============================================

    def compare_implementations(
        self,
        user_id: UUID,
        landing_page_id: UUID,
        timeframe: str = "month",
    ) -> ImplementationComparison:
        """Rank measured implementations from the timeframe by overall improvement."""
        if timeframe not in TIMEFRAME_DAYS:
            raise ValueError(f"timeframe must be one of {', '.join(TIMEFRAME_DAYS)}")

        since = self._clock() - timedelta(days=TIMEFRAME_DAYS[timeframe])
        implementations = self._get_measured(user_id, landing_page_id, since=since)

        ranked = [
            RankedImplementation(
                implementation=impl,
                improvement=calculate_improvement(
                    impl.before_analytics, impl.after_analytics
                ).overall_improvement,
                category=(impl.suggestion.suggestion_type if impl.suggestion else None) or "unknown",
            )
            for impl in implementations
        ]
        ranked.sort(key=lambda r: r.improvement, reverse=True)

        by_category: Dict[str, List[float]] = OrderedDict()
        for item in ranked:
            by_category.setdefault(item.category, []).append(item.improvement)
        category_averages = sorted(
            (
                CategoryPerformance(
                    category=category,
                    average_improvement=sum(values) / len(values),
                    count=len(values),
                )
                for category, values in by_category.items()
            ),
            key=lambda c: c.average_improvement,
            reverse=True,
        )

        insights: List[str] = []
        if ranked:
            improvements = [r.improvement for r in ranked]
            average = sum(improvements) / len(improvements)
            insights.append(f"Average improvement across all implementations: {average:.1f}%")
            best = category_averages[0]
            insights.append(
                f"{best.category} suggestions perform best with "
                f"{best.average_improvement:.1f}% average improvement"
            )
            success_rate = sum(1 for i in improvements if i > 0) / len(improvements) * 100
            insights.append(f"{success_rate:.0f}% of implementations had positive impact")

        return ImplementationComparison(
            best_performing=ranked[:RANKING_SIZE],
            worst_performing=list(reversed(ranked[-RANKING_SIZE:])),
            category_averages=category_averages,
            insights=insights,
        )

    def get_impact_summary(self, user_id: UUID, landing_page_id: UUID) -> ImpactSummary:
        """Dashboard aggregates; all zeros when nothing has been measured yet."""
        measured = self._get_measured(user_id, landing_page_id)
        pending = self._get_eligible(user_id, landing_page_id)

        improvements = [
            calculate_improvement(impl.before_analytics, impl.after_analytics).overall_improvement
            for impl in measured
        ]

        summary = ImpactSummary(pending_measurements=len(pending))
        if improvements:
            summary.total_measured_implementations = len(improvements)
            summary.average_improvement = sum(improvements) / len(improvements)
            summary.best_improvement = max(improvements)
            summary.worst_improvement = min(improvements)
            summary.success_rate = sum(1 for i in improvements if i > 0) / len(improvements) * 100

            if summary.average_improvement > 5:
                summary.insights.append("Your implementations are driving strong positive results")
            elif summary.average_improvement > 0:
                summary.insights.append("Your implementations show modest positive impact")
            else:
                summary.insights.append("Recent implementations may need optimization")

            if summary.success_rate > 75:
                summary.insights.append("High success rate - keep implementing similar suggestions")
            elif summary.success_rate < 50:
                summary.insights.append(
                    "Consider being more selective with which suggestions to implement"
                )

        if summary.pending_measurements > 0:
            summary.insights.append(
                f"{summary.pending_measurements} implementations ready for impact measurement"
            )
        return summary

    # ============================================
    # Queries
    # ============================================

    def _eligibility_cutoff(self) -> datetime:
        return self._clock() - timedelta(days=self.min_age_days)

    def _is_eligible(self, implementation: SuggestionImplementation, cutoff: datetime) -> bool:
        created_at = implementation.created_at
        if created_at is None:
            return False
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return (
            implementation.before_analytics is not None
            and implementation.impact_measured_at is None
            and created_at < cutoff
        )

    def _parse_eligible(
        self,
        row: Dict[str, Any],
        cutoff: datetime,
    ) -> Optional[SuggestionImplementation]:
        """The row as an implementation, or None when it is not due yet.

        Raises:
            ValidationError: The stored row does not parse
        """
        implementation = SuggestionImplementation.model_validate(row)
        return implementation if self._is_eligible(implementation, cutoff) else None

    def _get_eligible(
        self,
        user_id: UUID,
        landing_page_id: Optional[UUID] = None,
    ) -> List[SuggestionImplementation]:
        cutoff = self._eligibility_cutoff()
        eligible = []
        for row in self._query_eligible(user_id, landing_page_id, cutoff):
            try:
                implementation = self._parse_eligible(row, cutoff)
            except ValidationError as e:
                logger.warning(f"Skipping unreadable implementation {_row_id(row)}: {e}")
                continue
            if implementation is not None:
                eligible.append(implementation)
        return eligible

    def _query_eligible(
        self,
        user_id: UUID,
        landing_page_id: Optional[UUID],
        cutoff: datetime,
    ) -> List[Dict[str, Any]]:
        query = (
            self.supabase.table(IMPLEMENTATIONS_TABLE)
            .select(SUGGESTION_JOIN)
            .eq("user_id", str(user_id))
            .is_("impact_measured_at", "null")
            .not_.is_("before_analytics", "null")
            .lt("created_at", cutoff.isoformat())
        )
        if landing_page_id:
            query = query.eq("ai_suggestions.landing_page_id", str(landing_page_id))

        return self._execute(query, "find pending implementations")

    def _get_measured(
        self,
        user_id: UUID,
        landing_page_id: UUID,
        since: Optional[datetime] = None,
    ) -> List[SuggestionImplementation]:
        query = (
            self.supabase.table(IMPLEMENTATIONS_TABLE)
            .select(SUGGESTION_JOIN)
            .eq("user_id", str(user_id))
            .eq("ai_suggestions.landing_page_id", str(landing_page_id))
            .not_.is_("impact_measured_at", "null")
            .not_.is_("before_analytics", "null")
            .not_.is_("after_analytics", "null")
        )
        if since is not None:
            query = query.gte("created_at", since.isoformat())

        rows = self._execute(query, "load measured implementations")
        implementations = [SuggestionImplementation.model_validate(row) for row in rows]
        return [
            impl for impl in implementations
            if impl.before_analytics is not None and impl.after_analytics is not None
        ]

    def _get_implementation(self, implementation_id: UUID) -> SuggestionImplementation:
        query = (
            self.supabase.table(IMPLEMENTATIONS_TABLE)
            .select(SUGGESTION_JOIN)
            .eq("id", str(implementation_id))
        )
        rows = self._execute(query, "get implementation")
        if not rows:
            raise NotFoundError("Implementation", str(implementation_id))
        return SuggestionImplementation.model_validate(rows[0])

    def _execute(self, query, operation: str) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as e:
            logger.error(f"Failed to {operation}: {e}")
            raise PersistenceError(operation, str(e)) from e
        return result.data or []
