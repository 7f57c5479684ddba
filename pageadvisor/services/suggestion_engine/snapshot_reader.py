"""SnapshotReader: analytics + content summary for a landing page.

Reads the get_user_analytics_summary RPC and normalizes its JSON into a
PageSnapshot. A failed read does not raise; it comes back as a
SnapshotReadResult carrying the error, and the caller decides whether to
substitute the all-zero default (see SnapshotReadResult.or_default).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from ...core.exceptions import SnapshotReadError
from .models import AnalyticsSnapshot, ContentSummary, PageSnapshot, RecentActivity

logger = logging.getLogger(__name__)

ANALYTICS_SUMMARY_RPC = "get_user_analytics_summary"

# Bio text is truncated before it goes into prompts
BIO_CHAR_LIMIT = 500


def _safe_numeric(value: Any) -> Optional[float]:
    """Coerce str/int/float to float. Returns None on failure (no exceptions)."""
    if value is None:
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def _as_int(value: Any) -> int:
    number = _safe_numeric(value)
    return int(number) if number is not None else 0


def _as_float(value: Any) -> float:
    number = _safe_numeric(value)
    return number if number is not None else 0.0


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    """A nested object from the payload; {} when absent.

    Raises:
        ValueError: The section is present but not an object
    """
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' should be an object, got {type(value).__name__}")
    return value


def _truncate(text: str, limit: int = BIO_CHAR_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


@dataclass
class SnapshotReadResult:
    """Either a snapshot or the error that prevented reading one."""

    snapshot: Optional[PageSnapshot] = None
    error: Optional[SnapshotReadError] = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None

    def or_default(self) -> PageSnapshot:
        """The snapshot, or the all-zero default when the read failed."""
        return self.snapshot if self.snapshot is not None else PageSnapshot.empty()

    def unwrap(self) -> PageSnapshot:
        """The snapshot, raising the read error when there is none."""
        if self.snapshot is None:
            raise self.error or SnapshotReadError("No snapshot available")
        return self.snapshot


def normalize_summary(data: Dict[str, Any], now: Optional[datetime] = None) -> PageSnapshot:
    """Convert the RPC JSON payload into a PageSnapshot.

    Missing sections and non-numeric values become zeros.

    Raises:
        ValueError: A section is present but not an object
    """
    now = now or datetime.now(timezone.utc)
    analytics = _section(data, "analytics")
    content = _section(data, "content")
    activity = _section(data, "recent_activity")

    page_views = _as_int(analytics.get("total_page_views"))
    cta_clicks = _as_int(analytics.get("total_cta_clicks"))
    conversion_rate = _safe_numeric(analytics.get("conversion_rate"))

    snapshot = AnalyticsSnapshot(
        page_views=page_views,
        unique_visitors=_as_int(analytics.get("unique_visitors")),
        cta_clicks=cta_clicks,
        # None lets the model derive it from clicks/views
        conversion_rate=conversion_rate,
        avg_session_duration=_as_float(analytics.get("avg_session_duration")),
        timestamp=now,
    )

    bio = str(content.get("bio") or "")
    word_count = content.get("bio_word_count")
    if word_count is None:
        word_count = len(bio.split())

    return PageSnapshot(
        analytics=snapshot,
        recent_page_views=_as_int(analytics.get("recent_page_views")),
        recent_cta_clicks=_as_int(analytics.get("recent_cta_clicks")),
        content=ContentSummary(
            name=str(content.get("name") or ""),
            bio=_truncate(bio),
            bio_word_count=_as_int(word_count),
            services_count=_as_int(content.get("services_count")),
            highlights_count=_as_int(content.get("highlights_count")),
            testimonials_count=_as_int(content.get("testimonials_count")),
            onboarding_data=_section(content, "onboarding_data") or None,
        ),
        recent_activity=RecentActivity(
            content_changes_last_7_days=_as_int(activity.get("content_changes_last_7_days")),
            last_content_change=activity.get("last_content_change"),
        ),
        generated_at=now,
    )


class SnapshotReader:
    """Reads page snapshots from Supabase."""

    def __init__(self, supabase_client=None):
        if supabase_client is None:
            from ...core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client

    async def read(self, user_id: UUID, landing_page_id: UUID) -> SnapshotReadResult:
        """Read the current snapshot for a (user, page) pair.

        Never raises for store errors; inspect result.ok / result.error.
        """
        try:
            result = self.supabase.rpc(
                ANALYTICS_SUMMARY_RPC,
                {
                    "p_user_id": str(user_id),
                    "p_landing_page_id": str(landing_page_id),
                },
            ).execute()
        except Exception as e:
            logger.warning(f"Analytics summary read failed for page {landing_page_id}: {e}")
            error = SnapshotReadError(f"Failed to get analytics summary: {e}")
            error.__cause__ = e
            return SnapshotReadResult(error=error)

        data = result.data
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            logger.warning(f"Analytics summary for page {landing_page_id} was empty")
            return SnapshotReadResult(
                error=SnapshotReadError("Analytics summary returned no data")
            )

        try:
            return SnapshotReadResult(snapshot=normalize_summary(data))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Analytics summary for page {landing_page_id} was malformed: {e}")
            return SnapshotReadResult(
                error=SnapshotReadError(f"Malformed analytics summary: {e}")
            )
