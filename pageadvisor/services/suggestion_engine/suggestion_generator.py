"""SuggestionGenerator: analytics snapshot in, up to 3 persisted suggestions out.

Pipeline:
  SnapshotReader → pending suggestions → prompt → model (5-7 candidates)
  → dedupe → consolidate → BestOfNSelector → AnalysisSession + batch insert

Suggestions are written with a single insert, so an abandoned call leaves
either the whole reduced batch or nothing.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from ...core.config import Config
from ...core.exceptions import (
    AnalysisFailed,
    ExternalModelError,
    InputTooLarge,
    ModelResponseParseError,
    PersistenceError,
)
from ...core.observability import get_logfire
from .model_client import ModelClient, SuggestionModelClient
from .models import (
    AnalysisResult,
    AnalysisSession,
    AnalysisType,
    PageSnapshot,
    Suggestion,
    SuggestionCandidate,
    SuggestionStatus,
    SuggestionType,
    parse_timestamp,
)
from .parsing import parse_suggestions
from .prompts import PROMPT_VERSION, SYSTEM_PROMPT, build_user_prompt, estimate_tokens
from .refinement import consolidate, dedupe
from .selection import BestOfNSelector
from .similarity import SimilarityScorer
from .snapshot_reader import SnapshotReader

logger = logging.getLogger(__name__)

SUGGESTIONS_TABLE = "ai_suggestions"
SESSIONS_TABLE = "ai_analysis_sessions"

_TYPE_SEPARATORS = re.compile(r"[|,/\s]+")


def normalize_suggestion_type(raw: Optional[str]) -> SuggestionType:
    """First valid type in a possibly delimited value ("content|conversion").

    Defaults to CONTENT when nothing matches.
    """
    for part in _TYPE_SEPARATORS.split((raw or "").lower()):
        try:
            return SuggestionType(part)
        except ValueError:
            continue
    return SuggestionType.CONTENT


class SuggestionGenerator:
    """Generates, refines and stores AI suggestions for a landing page.

    Usage:
        generator = SuggestionGenerator(supabase_client=client)
        result = await generator.analyze(user_id, landing_page_id, "full")
        for suggestion in result.suggestions:
            ...
    """

    def __init__(
        self,
        supabase_client=None,
        model_client: Optional[ModelClient] = None,
        snapshot_reader: Optional[SnapshotReader] = None,
        selector: Optional[BestOfNSelector] = None,
        scorer: Optional[SimilarityScorer] = None,
        max_prompt_tokens: Optional[int] = None,
    ):
        """
        Args:
            supabase_client: Supabase client (shared client if omitted).
            model_client: Generation model client.
            snapshot_reader: Snapshot source (built on supabase_client if omitted).
            selector: Best-of-N selector (uses the selection model if omitted).
            scorer: Title similarity scorer for dedupe.
            max_prompt_tokens: Prompt budget (Config.MAX_PROMPT_TOKENS).

        Raises:
            ConfigurationError: If model credentials are missing.
        """
        if supabase_client is None:
            from ...core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client

        self.model_client = model_client or SuggestionModelClient()
        if selector is None:
            selection_client = model_client or SuggestionModelClient(
                model=Config.get_model("selection"),
                temperature=0.2,
                max_tokens=200,
            )
            selector = BestOfNSelector(selection_client)
        self.selector = selector
        self.snapshot_reader = snapshot_reader or SnapshotReader(supabase_client)
        self.scorer = scorer
        self.max_prompt_tokens = max_prompt_tokens or Config.MAX_PROMPT_TOKENS

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def analyze(
        self,
        user_id: UUID,
        landing_page_id: UUID,
        analysis_type: str = AnalysisType.FULL.value,
        trigger_event: Optional[str] = None,
    ) -> AnalysisResult:
        """Run one generation pass and persist its output.

        Returns:
            AnalysisResult with the persisted suggestions, the session row
            and the snapshot the prompt was built from.

        Raises:
            InputTooLarge: Prompt over budget (no model call made).
            AnalysisFailed: Model, parse or persistence failure; check
                .stage, .cause and .partial.
        """
        analysis_type = AnalysisType(analysis_type).value
        lf = get_logfire()
        start = time.monotonic()

        with lf.span(
            "suggestion_analysis",
            user_id=str(user_id),
            landing_page_id=str(landing_page_id),
            analysis_type=analysis_type,
        ):
            read = await self.snapshot_reader.read(user_id, landing_page_id)
            if not read.ok:
                logger.warning(
                    f"Using default snapshot for page {landing_page_id}: {read.error}"
                )
            snapshot = read.or_default()

            try:
                existing = self._get_pending_suggestions(user_id, landing_page_id)
            except PersistenceError as e:
                raise AnalysisFailed("load_existing", e) from e

            user_prompt = build_user_prompt(snapshot, existing, analysis_type)
            estimated = estimate_tokens(SYSTEM_PROMPT + user_prompt)
            if estimated > self.max_prompt_tokens:
                raise InputTooLarge(estimated, self.max_prompt_tokens)

            try:
                reply = await self.model_client.complete(
                    SYSTEM_PROMPT, user_prompt, operation="generate_suggestions"
                )
            except ExternalModelError as e:
                raise AnalysisFailed("generate", e) from e

            try:
                candidates = parse_suggestions(reply.text)
            except ModelResponseParseError as e:
                raise AnalysisFailed("parse", e) from e

            final, used_fallback, selection_tokens = await self._refine(
                candidates, existing, snapshot
            )
            tokens_used = reply.tokens_used + selection_tokens
            processing_time_ms = int((time.monotonic() - start) * 1000)

            session = AnalysisSession(
                user_id=user_id,
                landing_page_id=landing_page_id,
                analysis_type=analysis_type,
                trigger_event=trigger_event,
                analytics_snapshot=snapshot.analytics,
                suggestions_generated=len(final),
                ai_model=self._model_name,
                processing_time_ms=processing_time_ms,
                tokens_used=tokens_used,
            )
            try:
                session = self._save_session(session)
            except PersistenceError as e:
                raise AnalysisFailed("save_session", e) from e

            rows = [
                self._to_row(candidate, user_id, landing_page_id, snapshot)
                for candidate in final
            ]
            try:
                saved = self._save_suggestions(rows)
            except PersistenceError as e:
                raise AnalysisFailed(
                    "save_suggestions",
                    e,
                    session_id=str(session.id) if session.id else "unknown",
                ) from e

            logger.info(
                f"Analysis for page {landing_page_id}: {len(candidates)} candidates -> "
                f"{len(saved)} suggestions ({tokens_used} tokens, {processing_time_ms}ms)"
            )

            return AnalysisResult(
                session=session,
                suggestions=saved,
                snapshot=snapshot,
                processing_time_ms=processing_time_ms,
                tokens_used=tokens_used,
                used_selection_fallback=used_fallback,
            )

    async def _refine(
        self,
        candidates: Sequence[SuggestionCandidate],
        existing: Sequence[Suggestion],
        snapshot: PageSnapshot,
    ):
        """dedupe → consolidate → select_best. Returns (final, used_fallback, tokens)."""
        unique = dedupe(candidates, existing, self.scorer)
        consolidated = consolidate(unique)
        outcome = await self.selector.select_best(consolidated, snapshot)

        logger.debug(
            f"Refinement: {len(candidates)} → dedupe {len(unique)} → "
            f"consolidate {len(consolidated)} → select {len(outcome.suggestions)}"
        )
        return outcome.suggestions, outcome.used_fallback, outcome.tokens_used

    async def has_recent_analysis(
        self,
        user_id: UUID,
        landing_page_id: UUID,
        analysis_type: str = AnalysisType.FULL.value,
        window_minutes: Optional[int] = None,
    ) -> Optional[datetime]:
        """created_at of an analysis run inside the recency window, if any.

        Callers use this to avoid overlapping runs for the same page.
        """
        window = window_minutes or Config.RECENT_ANALYSIS_WINDOW_MINUTES
        since = datetime.now(timezone.utc) - timedelta(minutes=window)

        result = (
            self.supabase.table(SESSIONS_TABLE)
            .select("id, created_at")
            .eq("user_id", str(user_id))
            .eq("landing_page_id", str(landing_page_id))
            .eq("analysis_type", analysis_type)
            .gte("created_at", since.isoformat())
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return parse_timestamp(result.data[0]["created_at"])

    # =========================================================================
    # Persistence
    # =========================================================================

    @property
    def _model_name(self) -> str:
        return getattr(self.model_client, "model", None) or "unknown"

    def _to_row(
        self,
        candidate: SuggestionCandidate,
        user_id: UUID,
        landing_page_id: UUID,
        snapshot: PageSnapshot,
    ) -> Dict[str, Any]:
        return {
            "user_id": str(user_id),
            "landing_page_id": str(landing_page_id),
            "suggestion_type": normalize_suggestion_type(candidate.suggestion_type).value,
            "title": candidate.title,
            "description": candidate.description,
            "reasoning": candidate.reasoning,
            "priority": candidate.priority.value,
            "target_section": candidate.target_section,
            "suggested_content": candidate.suggested_content,
            "confidence_score": candidate.confidence_score,
            "status": SuggestionStatus.PENDING.value,
            "analytics_context": snapshot.analytics.model_dump(mode="json"),
            "ai_model": self._model_name,
            "ai_prompt_version": PROMPT_VERSION,
        }

    def _get_pending_suggestions(
        self,
        user_id: UUID,
        landing_page_id: UUID,
    ) -> List[Suggestion]:
        try:
            result = (
                self.supabase.table(SUGGESTIONS_TABLE)
                .select("*")
                .eq("user_id", str(user_id))
                .eq("landing_page_id", str(landing_page_id))
                .eq("status", SuggestionStatus.PENDING.value)
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise PersistenceError("load pending suggestions", str(e)) from e
        return [Suggestion.model_validate(row) for row in result.data or []]

    def _save_session(self, session: AnalysisSession) -> AnalysisSession:
        record = session.model_dump(mode="json", exclude={"id", "created_at"}, exclude_none=True)
        try:
            result = self.supabase.table(SESSIONS_TABLE).insert(record).execute()
        except Exception as e:
            raise PersistenceError("save analysis session", str(e)) from e
        if not result.data:
            raise PersistenceError("save analysis session", "insert returned no row")
        return AnalysisSession.model_validate(result.data[0])

    def _save_suggestions(self, rows: List[Dict[str, Any]]) -> List[Suggestion]:
        if not rows:
            return []
        try:
            result = self.supabase.table(SUGGESTIONS_TABLE).insert(rows).execute()
        except Exception as e:
            raise PersistenceError("save suggestions", str(e)) from e
        if not result.data:
            raise PersistenceError("save suggestions", "insert returned no rows")
        return [Suggestion.model_validate(row) for row in result.data]
