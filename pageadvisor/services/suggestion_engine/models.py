"""Pydantic models for the Suggestion & Impact Engine.

Enums, persisted rows, model-response schemas and result models.
No database access in this file -- pure type definitions.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


_DATETIME = TypeAdapter(datetime)


def parse_timestamp(value: Any) -> datetime:
    """Store timestamp (ISO string or datetime) as an aware datetime; naive is UTC."""
    moment = _DATETIME.validate_python(value)
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def _number(value: Any) -> float:
    """Numeric value or 0.0; field validation reports the bad input."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


# =============================================================================
# Enums
# =============================================================================

class SuggestionType(str, Enum):
    PERFORMANCE = "performance"
    CONTENT = "content"
    CONVERSION = "conversion"
    ENGAGEMENT = "engagement"
    SEO = "seo"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    TESTING = "testing"
    IMPLEMENTED = "implemented"
    DISMISSED = "dismissed"


class AnalysisType(str, Enum):
    FULL = "full"
    INCREMENTAL = "incremental"
    PERFORMANCE = "performance"
    CONTENT = "content"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class PageTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


# =============================================================================
# Snapshots
# =============================================================================

class AnalyticsSnapshot(BaseModel):
    """Point-in-time page analytics. Stored as JSONB on implementations."""

    model_config = ConfigDict(frozen=True)

    page_views: int = 0
    unique_visitors: int = 0
    cta_clicks: int = 0
    conversion_rate: float = 0.0  # percent, cta_clicks / page_views * 100
    avg_session_duration: float = 0.0  # seconds
    timestamp: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="before")
    @classmethod
    def _derive_conversion_rate(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("conversion_rate") is None:
            data = dict(data)
            views = _number(data.get("page_views"))
            clicks = _number(data.get("cta_clicks"))
            data["conversion_rate"] = (clicks / views * 100) if views else 0.0
        return data

    @classmethod
    def empty(cls) -> "AnalyticsSnapshot":
        return cls()


class ContentSummary(BaseModel):
    """Current page content, as counts plus (truncated) bio text."""

    name: str = ""
    bio: str = ""
    bio_word_count: int = 0
    services_count: int = 0
    highlights_count: int = 0
    testimonials_count: int = 0
    onboarding_data: Optional[Dict[str, Any]] = None


class RecentActivity(BaseModel):
    content_changes_last_7_days: int = 0
    last_content_change: Optional[str] = None


class PageSnapshot(BaseModel):
    """Analytics + content summary for one (user, landing page) pair."""

    analytics: AnalyticsSnapshot = Field(default_factory=AnalyticsSnapshot)
    recent_page_views: int = 0
    recent_cta_clicks: int = 0
    content: ContentSummary = Field(default_factory=ContentSummary)
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)
    generated_at: datetime = Field(default_factory=_utcnow)
    # True when this is the all-zero substitute for a failed read
    is_default: bool = False

    @classmethod
    def empty(cls) -> "PageSnapshot":
        return cls(is_default=True)


# =============================================================================
# Model response schemas
# =============================================================================

class SuggestionCandidate(BaseModel):
    """One suggestion as proposed by the model, before refinement/persistence."""

    model_config = ConfigDict(extra="ignore")

    # Kept as raw text; normalized to SuggestionType at persistence time
    suggestion_type: str = SuggestionType.CONTENT.value
    title: str = Field(min_length=1)
    description: str
    reasoning: str = ""
    priority: Priority = Priority.MEDIUM
    target_section: Optional[str] = None
    suggested_content: Optional[str] = None
    confidence_score: float = 0.5

    @field_validator("priority", mode="before")
    @classmethod
    def _lowercase_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> Any:
        if value is None:
            return 0.5
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        return min(max(number, 0.0), 1.0)

    @field_validator("suggested_content", mode="before")
    @classmethod
    def _stringify_content(cls, value: Any) -> Any:
        # Reorder suggestions sometimes come back as a JSON list
        if isinstance(value, (list, dict)):
            return json.dumps(value)
        return value


class ModelSuggestionsResponse(BaseModel):
    """Expected JSON body of the generation call."""

    suggestions: List[SuggestionCandidate]


class SelectionResponse(BaseModel):
    """Expected JSON body of the best-of-N selection call."""

    selected_indices: List[int]


# =============================================================================
# Persisted rows
# =============================================================================

class Suggestion(BaseModel):
    """Represents an ai_suggestions row."""

    id: Optional[UUID] = None
    user_id: UUID
    landing_page_id: UUID

    suggestion_type: SuggestionType = SuggestionType.CONTENT
    title: str
    description: str = ""
    reasoning: str = ""
    priority: Priority = Priority.MEDIUM

    status: SuggestionStatus = SuggestionStatus.PENDING
    implemented_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None

    analytics_context: Optional[Dict[str, Any]] = None
    target_section: Optional[str] = None
    original_content: Optional[str] = None
    suggested_content: Optional[str] = None

    ai_model: str = ""
    ai_prompt_version: str = ""
    confidence_score: float = Field(default=0.5, ge=0.0, le=1.0)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("confidence_score", mode="before")
    @classmethod
    def _default_confidence(cls, value: Any) -> Any:
        return 0.5 if value is None else value


class AnalysisSession(BaseModel):
    """Represents an ai_analysis_sessions row."""

    id: Optional[UUID] = None
    user_id: UUID
    landing_page_id: UUID
    analysis_type: AnalysisType = AnalysisType.FULL
    trigger_event: Optional[str] = None
    analytics_snapshot: AnalyticsSnapshot
    suggestions_generated: int = 0
    ai_model: str = ""
    processing_time_ms: Optional[int] = None
    tokens_used: Optional[int] = None
    created_at: Optional[datetime] = None


class SuggestionRef(BaseModel):
    """Joined ai_suggestions columns on an implementation query."""

    id: Optional[UUID] = None
    title: Optional[str] = None
    suggestion_type: Optional[str] = None
    priority: Optional[str] = None
    user_id: Optional[UUID] = None
    landing_page_id: Optional[UUID] = None
    implemented_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SuggestionImplementation(BaseModel):
    """Represents a suggestion_implementations row."""

    id: Optional[UUID] = None
    suggestion_id: UUID
    user_id: UUID

    implemented_content: str = ""
    implementation_notes: Optional[str] = None
    partial_implementation: bool = False

    before_analytics: Optional[AnalyticsSnapshot] = None
    after_analytics: Optional[AnalyticsSnapshot] = None
    impact_measured_at: Optional[datetime] = None

    created_at: Optional[datetime] = None

    # Populated from the ai_suggestions!inner(...) join
    suggestion: Optional[SuggestionRef] = Field(default=None, alias="ai_suggestions")

    model_config = ConfigDict(populate_by_name=True)


class SuggestionFeedback(BaseModel):
    """Represents a suggestion_feedback row."""

    id: Optional[UUID] = None
    suggestion_id: UUID
    user_id: UUID
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    feedback_text: Optional[str] = None
    is_helpful: Optional[bool] = None
    created_at: Optional[datetime] = None


# =============================================================================
# Results
# =============================================================================

class ImprovementResult(BaseModel):
    """Per-metric percentage changes and the weighted overall score."""

    page_views_improvement: float = 0.0
    cta_clicks_improvement: float = 0.0
    conversion_rate_improvement: float = 0.0
    session_duration_improvement: float = 0.0
    overall_improvement: float = 0.0

    def metric_changes(self) -> List[float]:
        return [
            self.page_views_improvement,
            self.cta_clicks_improvement,
            self.conversion_rate_improvement,
            self.session_duration_improvement,
        ]


class ImpactMeasurement(BaseModel):
    implementation_id: UUID
    improvement: ImprovementResult
    confidence: ConfidenceLevel
    insights: List[str] = Field(default_factory=list)
    after_analytics: AnalyticsSnapshot
    measured_at: datetime


class MeasurementDetail(BaseModel):
    implementation_id: Optional[UUID] = None  # None when the stored row has no readable id
    success: bool
    error: Optional[str] = None
    overall_improvement: Optional[float] = None
    confidence: Optional[ConfidenceLevel] = None


class MeasurementBatchResult(BaseModel):
    measured: int = 0
    failed: int = 0
    details: List[MeasurementDetail] = Field(default_factory=list)


class RankedImplementation(BaseModel):
    implementation: SuggestionImplementation
    improvement: float
    category: str


class CategoryPerformance(BaseModel):
    category: str
    average_improvement: float
    count: int


class ImplementationComparison(BaseModel):
    best_performing: List[RankedImplementation] = Field(default_factory=list)
    worst_performing: List[RankedImplementation] = Field(default_factory=list)
    category_averages: List[CategoryPerformance] = Field(default_factory=list)
    insights: List[str] = Field(default_factory=list)


class ImpactSummary(BaseModel):
    total_measured_implementations: int = 0
    average_improvement: float = 0.0
    best_improvement: float = 0.0
    worst_improvement: float = 0.0
    success_rate: float = 0.0  # percent of measured with overall > 0
    pending_measurements: int = 0
    insights: List[str] = Field(default_factory=list)


class TrendPoint(BaseModel):
    date: str  # YYYY-MM-DD
    value: float


class TrendResult(BaseModel):
    direction: TrendDirection
    change_pct: float


class TrendInsights(BaseModel):
    trend_direction: PageTrend
    key_changes: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class AnalyticsTrends(BaseModel):
    page_views: List[TrendPoint] = Field(default_factory=list)
    cta_clicks: List[TrendPoint] = Field(default_factory=list)
    conversion_rate: List[TrendPoint] = Field(default_factory=list)
    insights: TrendInsights


class SelectionOutcome(BaseModel):
    suggestions: List[SuggestionCandidate]
    used_fallback: bool = False
    tokens_used: int = 0


class AnalysisResult(BaseModel):
    session: AnalysisSession
    suggestions: List[Suggestion]
    snapshot: PageSnapshot
    processing_time_ms: int
    tokens_used: int
    used_selection_fallback: bool = False


# =============================================================================
# Tracking
# =============================================================================

class TrackedSuggestion(Suggestion):
    """Suggestion row with its embedded implementation and feedback rows."""

    model_config = ConfigDict(populate_by_name=True)

    implementations: List[Dict[str, Any]] = Field(
        default_factory=list, alias="suggestion_implementations"
    )
    feedback: List[Dict[str, Any]] = Field(default_factory=list, alias="suggestion_feedback")

    @field_validator("implementations", "feedback", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        if value is None:
            return []
        # One-to-one embeds come back as an object rather than a list
        if isinstance(value, dict):
            return [value]
        return value


class TypeEffectiveness(BaseModel):
    total: int = 0
    implemented: int = 0
    dismissed: int = 0
    success_rate: float = 0.0  # percent implemented


class PriorityEffectiveness(BaseModel):
    total: int = 0
    implemented: int = 0
    avg_days_to_implement: float = 0.0


class EffectivenessReport(BaseModel):
    by_type: Dict[str, TypeEffectiveness] = Field(default_factory=dict)
    by_priority: Dict[str, PriorityEffectiveness] = Field(default_factory=dict)
    total_suggestions: int = 0
    implementation_rate: float = 0.0
    avg_user_rating: float = 0.0
    most_effective_type: str = "none"


class FollowUpReport(BaseModel):
    needing_measurement: List[Suggestion] = Field(default_factory=list)
    old_pending: List[Suggestion] = Field(default_factory=list)
    needing_feedback: List[Suggestion] = Field(default_factory=list)
