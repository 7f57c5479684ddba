"""Before/after analytics comparison.

Percentage change per metric, a weighted overall improvement, and
human-readable insights for the dashboard.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .models import AnalyticsSnapshot, ImprovementResult

# Conversion rate is the most decision-relevant signal, raw traffic the least
IMPROVEMENT_WEIGHTS: Dict[str, float] = {
    "conversion_rate": 0.4,
    "cta_clicks": 0.3,
    "page_views": 0.2,
    "session_duration": 0.1,
}


def percent_change(before: float, after: float) -> float:
    """Percentage change from before to after.

    0 when both are 0; 100 when growing from 0.
    """
    if before == 0:
        return 100.0 if after > 0 else 0.0
    return (after - before) / before * 100


def calculate_improvement(
    before: AnalyticsSnapshot,
    after: AnalyticsSnapshot,
) -> ImprovementResult:
    page_views = percent_change(before.page_views, after.page_views)
    cta_clicks = percent_change(before.cta_clicks, after.cta_clicks)
    conversion_rate = percent_change(before.conversion_rate, after.conversion_rate)
    session_duration = percent_change(before.avg_session_duration, after.avg_session_duration)

    overall = (
        conversion_rate * IMPROVEMENT_WEIGHTS["conversion_rate"]
        + cta_clicks * IMPROVEMENT_WEIGHTS["cta_clicks"]
        + page_views * IMPROVEMENT_WEIGHTS["page_views"]
        + session_duration * IMPROVEMENT_WEIGHTS["session_duration"]
    )

    return ImprovementResult(
        page_views_improvement=page_views,
        cta_clicks_improvement=cta_clicks,
        conversion_rate_improvement=conversion_rate,
        session_duration_improvement=session_duration,
        overall_improvement=overall,
    )


def generate_insights(
    improvement: ImprovementResult,
    suggestion_type: Optional[str] = None,
    partial_implementation: bool = False,
) -> List[str]:
    """Turn an ImprovementResult into short dashboard sentences."""
    insights: List[str] = []
    overall = improvement.overall_improvement

    if overall > 10:
        insights.append(f"Strong positive impact with {overall:.1f}% overall improvement")
    elif overall > 0:
        insights.append(f"Modest positive impact with {overall:.1f}% overall improvement")
    elif overall < -10:
        insights.append(f"Negative impact detected: {abs(overall):.1f}% decline")
    else:
        insights.append("Minimal impact observed from this change")

    conversion = improvement.conversion_rate_improvement
    if conversion > 5:
        insights.append(f"Conversion rate improved significantly by {conversion:.1f}%")
    elif conversion < -5:
        insights.append(f"Conversion rate decreased by {abs(conversion):.1f}%")

    views = improvement.page_views_improvement
    if views > 20:
        insights.append(f"Page views increased substantially by {views:.1f}%")
    elif views < -20:
        insights.append(f"Page views declined by {abs(views):.1f}%")

    clicks = improvement.cta_clicks_improvement
    if clicks > 15:
        insights.append(f"CTA clicks improved by {clicks:.1f}%")
    elif clicks < -15:
        insights.append(f"CTA clicks decreased by {abs(clicks):.1f}%")

    if suggestion_type == "conversion" and conversion > 0:
        insights.append("This conversion optimization successfully improved user engagement")
    elif suggestion_type == "content" and improvement.session_duration_improvement > 0:
        insights.append("Content improvements led to longer user engagement")
    elif suggestion_type == "performance" and views > 0:
        insights.append("Performance optimizations attracted more visitors")

    if partial_implementation:
        insights.append(
            "Results are from partial implementation - full implementation may yield greater impact"
        )

    return insights
