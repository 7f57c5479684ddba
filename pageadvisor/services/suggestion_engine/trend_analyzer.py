"""Time-windowed trend classification for page analytics.

A series is split in half by index, each half is averaged, and the
percent change between the two averages decides the direction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Sequence, Tuple
from uuid import UUID

from ...core.exceptions import PersistenceError
from .models import (
    AnalyticsTrends,
    PageTrend,
    TrendDirection,
    TrendInsights,
    TrendPoint,
    TrendResult,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

# |change| below this percentage counts as flat
STABLE_CHANGE_THRESHOLD = 5.0
DEFAULT_TREND_DAYS = 30


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def trend_direction(series: Sequence[TrendPoint]) -> TrendResult:
    """Compare the mean of the second half of a series to the first half."""
    if len(series) < 2:
        return TrendResult(direction=TrendDirection.STABLE, change_pct=0.0)

    middle = len(series) // 2
    first_avg = _mean([p.value for p in series[:middle]])
    second_avg = _mean([p.value for p in series[middle:]])

    change = (second_avg - first_avg) / first_avg * 100 if first_avg > 0 else 0.0

    if abs(change) < STABLE_CHANGE_THRESHOLD:
        direction = TrendDirection.STABLE
    elif change > 0:
        direction = TrendDirection.INCREASING
    else:
        direction = TrendDirection.DECREASING

    return TrendResult(direction=direction, change_pct=change)


def classify_page_trend(
    page_views: TrendResult,
    cta_clicks: TrendResult,
    conversion_rate: TrendResult,
) -> PageTrend:
    """Overall page trend; conversion rate alone can decide it."""
    if conversion_rate.direction == TrendDirection.INCREASING or (
        page_views.direction == TrendDirection.INCREASING
        and cta_clicks.direction == TrendDirection.INCREASING
    ):
        return PageTrend.IMPROVING
    if conversion_rate.direction == TrendDirection.DECREASING or (
        page_views.direction == TrendDirection.DECREASING
        and cta_clicks.direction == TrendDirection.DECREASING
    ):
        return PageTrend.DECLINING
    return PageTrend.STABLE


def _event_day(created_at: Any) -> str:
    return parse_timestamp(created_at).astimezone(timezone.utc).date().isoformat()


def build_daily_series(
    page_view_rows: Iterable[Dict[str, Any]],
    cta_click_rows: Iterable[Dict[str, Any]],
) -> Tuple[List[TrendPoint], List[TrendPoint], List[TrendPoint]]:
    """Bucket raw event rows (with created_at) into per-day series.

    Returns (page_views, cta_clicks, conversion_rate) sorted by date.
    Days with clicks but no views get a conversion rate of 0.
    """
    daily: Dict[str, Dict[str, int]] = {}

    for row in page_view_rows:
        day = _event_day(row["created_at"])
        daily.setdefault(day, {"views": 0, "clicks": 0})["views"] += 1

    for row in cta_click_rows:
        day = _event_day(row["created_at"])
        daily.setdefault(day, {"views": 0, "clicks": 0})["clicks"] += 1

    page_views: List[TrendPoint] = []
    cta_clicks: List[TrendPoint] = []
    conversion_rate: List[TrendPoint] = []

    for day in sorted(daily):
        stats = daily[day]
        page_views.append(TrendPoint(date=day, value=stats["views"]))
        cta_clicks.append(TrendPoint(date=day, value=stats["clicks"]))
        rate = stats["clicks"] / stats["views"] * 100 if stats["views"] else 0.0
        conversion_rate.append(TrendPoint(date=day, value=rate))

    return page_views, cta_clicks, conversion_rate


def analyze_trends(
    page_views: Sequence[TrendPoint],
    cta_clicks: Sequence[TrendPoint],
    conversion_rate: Sequence[TrendPoint],
) -> TrendInsights:
    """Classify each series and describe the notable changes."""
    views_trend = trend_direction(page_views)
    clicks_trend = trend_direction(cta_clicks)
    conversion_trend = trend_direction(conversion_rate)

    key_changes: List[str] = []
    recommendations: List[str] = []

    if views_trend.direction == TrendDirection.INCREASING:
        key_changes.append(f"Page views trending up (+{views_trend.change_pct:.1f}%)")
    elif views_trend.direction == TrendDirection.DECREASING:
        key_changes.append(f"Page views trending down ({views_trend.change_pct:.1f}%)")
        recommendations.append("Share the page link more widely to bring traffic back")

    if clicks_trend.direction == TrendDirection.INCREASING:
        key_changes.append(f"CTA clicks trending up (+{clicks_trend.change_pct:.1f}%)")
    elif clicks_trend.direction == TrendDirection.DECREASING:
        key_changes.append(f"CTA clicks trending down ({clicks_trend.change_pct:.1f}%)")
        recommendations.append("Review CTA placement and messaging")

    if conversion_trend.direction == TrendDirection.INCREASING:
        key_changes.append(f"Conversion rate improving (+{conversion_trend.change_pct:.2f}%)")
    elif conversion_trend.direction == TrendDirection.DECREASING:
        key_changes.append(f"Conversion rate declining ({conversion_trend.change_pct:.2f}%)")
        recommendations.append("Focus on conversion optimization strategies")

    overall = classify_page_trend(views_trend, clicks_trend, conversion_trend)

    if overall == PageTrend.IMPROVING:
        recommendations.append("Continue current strategies that are working")
    elif overall == PageTrend.DECLINING:
        recommendations.append("Consider running AI analysis for improvement suggestions")
    else:
        recommendations.append("Look for opportunities to break out of plateau")

    return TrendInsights(
        trend_direction=overall,
        key_changes=key_changes,
        recommendations=recommendations,
    )


class TrendAnalyzer:
    """Reads raw analytics events and classifies page trends."""

    def __init__(self, supabase_client=None, clock=None):
        if supabase_client is None:
            from ...core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_analytics_trends(
        self,
        landing_page_id: UUID,
        days: int = DEFAULT_TREND_DAYS,
    ) -> AnalyticsTrends:
        """Daily page-view, CTA-click and conversion series for the last N days.

        Raises:
            PersistenceError: If either analytics table cannot be read.
        """
        start = (self._clock() - timedelta(days=days)).isoformat()

        page_view_rows = self._fetch_events("page_views", landing_page_id, start)
        cta_click_rows = self._fetch_events("cta_clicks", landing_page_id, start)

        page_views, cta_clicks, conversion_rate = build_daily_series(
            page_view_rows, cta_click_rows
        )

        return AnalyticsTrends(
            page_views=page_views,
            cta_clicks=cta_clicks,
            conversion_rate=conversion_rate,
            insights=analyze_trends(page_views, cta_clicks, conversion_rate),
        )

    def _fetch_events(
        self,
        table: str,
        landing_page_id: UUID,
        start_iso: str,
    ) -> List[Dict[str, Any]]:
        try:
            result = (
                self.supabase.schema("analytics")
                .table(table)
                .select("created_at")
                .eq("landing_page_id", str(landing_page_id))
                .gte("created_at", start_iso)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to read analytics.{table} for page {landing_page_id}: {e}")
            raise PersistenceError(f"read analytics.{table}", str(e)) from e
        return result.data or []
