"""Tests for trend classification and daily series building."""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import UUID

import pytest

from pageadvisor.core.exceptions import PersistenceError
from pageadvisor.services.suggestion_engine.models import (
    PageTrend,
    TrendDirection,
    TrendPoint,
    TrendResult,
)
from pageadvisor.services.suggestion_engine.trend_analyzer import (
    TrendAnalyzer,
    analyze_trends,
    build_daily_series,
    classify_page_trend,
    trend_direction,
)

PAGE_ID = UUID("00000000-0000-0000-0000-000000000002")
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _series(*values):
    return [TrendPoint(date=f"2026-02-{i + 1:02d}", value=v) for i, v in enumerate(values)]


def _trend(direction):
    return TrendResult(direction=direction, change_pct=0.0)


class TestTrendDirection:

    def test_increasing(self):
        result = trend_direction(_series(10, 10, 20, 20))
        assert result.direction == TrendDirection.INCREASING
        assert result.change_pct == pytest.approx(100.0)

    def test_flat_is_stable(self):
        result = trend_direction(_series(10, 10, 10, 10))
        assert result.direction == TrendDirection.STABLE
        assert result.change_pct == 0.0

    def test_decreasing(self):
        result = trend_direction(_series(20, 20, 10, 10))
        assert result.direction == TrendDirection.DECREASING
        assert result.change_pct == pytest.approx(-50.0)

    def test_small_change_is_stable(self):
        assert trend_direction(_series(100, 104)).direction == TrendDirection.STABLE

    def test_fewer_than_two_points(self):
        assert trend_direction([]).direction == TrendDirection.STABLE
        assert trend_direction(_series(50)).change_pct == 0.0

    def test_zero_first_half(self):
        result = trend_direction(_series(0, 0, 5, 5))
        assert result.direction == TrendDirection.STABLE
        assert result.change_pct == 0.0

    def test_odd_length_puts_middle_in_second_half(self):
        # first half [10], second half [10, 40] -> mean 25
        result = trend_direction(_series(10, 10, 40))
        assert result.change_pct == pytest.approx(150.0)


class TestClassifyPageTrend:

    def test_conversion_increase_is_improving(self):
        assert classify_page_trend(
            _trend(TrendDirection.DECREASING),
            _trend(TrendDirection.DECREASING),
            _trend(TrendDirection.INCREASING),
        ) == PageTrend.IMPROVING

    def test_views_and_clicks_up_is_improving(self):
        assert classify_page_trend(
            _trend(TrendDirection.INCREASING),
            _trend(TrendDirection.INCREASING),
            _trend(TrendDirection.STABLE),
        ) == PageTrend.IMPROVING

    def test_views_and_clicks_down_is_declining(self):
        assert classify_page_trend(
            _trend(TrendDirection.DECREASING),
            _trend(TrendDirection.DECREASING),
            _trend(TrendDirection.STABLE),
        ) == PageTrend.DECLINING

    def test_mixed_is_stable(self):
        assert classify_page_trend(
            _trend(TrendDirection.INCREASING),
            _trend(TrendDirection.DECREASING),
            _trend(TrendDirection.STABLE),
        ) == PageTrend.STABLE


class TestBuildDailySeries:

    def test_buckets_by_utc_day(self):
        views = [
            {"created_at": "2026-02-01T10:00:00+00:00"},
            {"created_at": "2026-02-01T23:30:00Z"},
            {"created_at": "2026-02-02T01:00:00+02:00"},  # 2026-02-01 23:00 UTC
            {"created_at": "2026-02-03T09:00:00+00:00"},
        ]
        clicks = [
            {"created_at": "2026-02-01T11:00:00+00:00"},
            {"created_at": "2026-02-04T11:00:00+00:00"},
        ]

        page_views, cta_clicks, conversion = build_daily_series(views, clicks)

        assert [p.date for p in page_views] == ["2026-02-01", "2026-02-03", "2026-02-04"]
        assert [p.value for p in page_views] == [3, 1, 0]
        assert [p.value for p in cta_clicks] == [1, 0, 1]
        assert conversion[0].value == pytest.approx(100 / 3)
        # clicks without views
        assert conversion[2].value == 0.0

    def test_trimmed_fractional_seconds_and_offsets(self):
        views = [
            {"created_at": "2026-02-01T23:59:59.1234+00:00"},
            {"created_at": "2026-02-02T01:30:00.5-05:00"},
        ]

        page_views, _, _ = build_daily_series(views, [])

        assert [p.date for p in page_views] == ["2026-02-01", "2026-02-02"]

    def test_empty(self):
        assert build_daily_series([], []) == ([], [], [])


class TestAnalyzeTrends:

    def test_declining_page_gets_recommendations(self):
        insights = analyze_trends(
            _series(20, 20, 10, 10),
            _series(4, 4, 1, 1),
            _series(20, 20, 10, 10),
        )

        assert insights.trend_direction == PageTrend.DECLINING
        assert "Page views trending down (-50.0%)" in insights.key_changes
        assert "Review CTA placement and messaging" in insights.recommendations
        assert insights.recommendations[-1] == "Consider running AI analysis for improvement suggestions"

    def test_flat_page(self):
        insights = analyze_trends(_series(5, 5), _series(1, 1), _series(20, 20))
        assert insights.trend_direction == PageTrend.STABLE
        assert insights.key_changes == []
        assert insights.recommendations == ["Look for opportunities to break out of plateau"]


class TestTrendAnalyzer:

    def _client(self, make_query, views, clicks):
        tables = {"page_views": make_query(views), "cta_clicks": make_query(clicks)}
        client = MagicMock()
        client.schema.return_value.table.side_effect = lambda name: tables[name]
        return client, tables

    @pytest.mark.asyncio
    async def test_reads_both_analytics_tables(self, make_query):
        client, tables = self._client(
            make_query,
            [
                {"created_at": "2026-02-20T10:00:00+00:00"},
                {"created_at": "2026-02-21T10:00:00+00:00"},
                {"created_at": "2026-02-21T15:00:00+00:00"},
            ],
            [
                {"created_at": "2026-02-20T10:05:00+00:00"},
                {"created_at": "2026-02-21T10:05:00+00:00"},
                {"created_at": "2026-02-21T15:05:00+00:00"},
            ],
        )
        analyzer = TrendAnalyzer(supabase_client=client, clock=lambda: NOW)

        trends = await analyzer.get_analytics_trends(PAGE_ID, days=30)

        client.schema.assert_called_with("analytics")
        tables["page_views"].eq.assert_called_with("landing_page_id", str(PAGE_ID))
        tables["page_views"].gte.assert_called_with("created_at", "2026-01-30T12:00:00+00:00")
        assert [p.value for p in trends.page_views] == [1, 2]
        assert [p.value for p in trends.cta_clicks] == [1, 2]
        assert trends.insights.trend_direction == PageTrend.IMPROVING

    @pytest.mark.asyncio
    async def test_read_failure_raises_persistence_error(self, make_query):
        client, _ = self._client(make_query, RuntimeError("boom"), [])
        analyzer = TrendAnalyzer(supabase_client=client, clock=lambda: NOW)

        with pytest.raises(PersistenceError):
            await analyzer.get_analytics_trends(PAGE_ID)
