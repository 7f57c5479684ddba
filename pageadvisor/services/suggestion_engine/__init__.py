"""
Suggestion & Impact Engine

Turns landing-page analytics into a few content-only optimization
suggestions, then measures whether implementing them helped.

Usage:
    from pageadvisor.services.suggestion_engine import (
        SuggestionGenerator,
        ImpactOrchestrator,
    )

    result = await SuggestionGenerator().analyze(user_id, page_id, "full")
    batch = await ImpactOrchestrator().measure_pending_impacts(user_id)
"""

from .models import (
    # Enums
    SuggestionType,
    Priority,
    SuggestionStatus,
    AnalysisType,
    ConfidenceLevel,
    TrendDirection,
    PageTrend,
    # Snapshots
    AnalyticsSnapshot,
    ContentSummary,
    PageSnapshot,
    # Rows
    Suggestion,
    SuggestionCandidate,
    AnalysisSession,
    SuggestionImplementation,
    SuggestionFeedback,
    # Results
    AnalysisResult,
    ImprovementResult,
    ImpactMeasurement,
    MeasurementBatchResult,
    ImplementationComparison,
    ImpactSummary,
    AnalyticsTrends,
    TrendResult,
    EffectivenessReport,
    FollowUpReport,
)

from .similarity import SimilarityScorer, JaccardSimilarity, similarity
from .refinement import dedupe, consolidate, rank_by_score
from .impact_calculator import percent_change, calculate_improvement, generate_insights
from .confidence import calculate_confidence
from .trend_analyzer import TrendAnalyzer, trend_direction, classify_page_trend
from .snapshot_reader import SnapshotReader, SnapshotReadResult
from .model_client import ModelClient, ModelReply, SuggestionModelClient
from .selection import BestOfNSelector
from .suggestion_generator import SuggestionGenerator
from .suggestion_service import SuggestionService
from .impact_service import ImpactOrchestrator
from .tracking_service import SuggestionTrackingService

__all__ = [
    "SuggestionType",
    "Priority",
    "SuggestionStatus",
    "AnalysisType",
    "ConfidenceLevel",
    "TrendDirection",
    "PageTrend",
    "AnalyticsSnapshot",
    "ContentSummary",
    "PageSnapshot",
    "Suggestion",
    "SuggestionCandidate",
    "AnalysisSession",
    "SuggestionImplementation",
    "SuggestionFeedback",
    "AnalysisResult",
    "ImprovementResult",
    "ImpactMeasurement",
    "MeasurementBatchResult",
    "ImplementationComparison",
    "ImpactSummary",
    "AnalyticsTrends",
    "TrendResult",
    "EffectivenessReport",
    "FollowUpReport",
    "SimilarityScorer",
    "JaccardSimilarity",
    "similarity",
    "dedupe",
    "consolidate",
    "rank_by_score",
    "percent_change",
    "calculate_improvement",
    "generate_insights",
    "calculate_confidence",
    "TrendAnalyzer",
    "trend_direction",
    "classify_page_trend",
    "SnapshotReader",
    "SnapshotReadResult",
    "ModelClient",
    "ModelReply",
    "SuggestionModelClient",
    "BestOfNSelector",
    "SuggestionGenerator",
    "SuggestionService",
    "ImpactOrchestrator",
    "SuggestionTrackingService",
]
