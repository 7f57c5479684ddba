"""
SuggestionService - lifecycle of persisted suggestions.

Handles:
- Listing suggestions for a page
- Implementing a suggestion (captures the before-snapshot for impact measurement)
- Dismissing and marking for testing
- User feedback on suggestions

Only pending suggestions can change status. The status update carries a
`status = pending` guard so two concurrent actions cannot both succeed.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from ...core.exceptions import InvalidStatusTransition, NotFoundError, PersistenceError
from .models import (
    Suggestion,
    SuggestionFeedback,
    SuggestionImplementation,
    SuggestionStatus,
)
from .snapshot_reader import SnapshotReader

logger = logging.getLogger(__name__)

SUGGESTIONS_TABLE = "ai_suggestions"
IMPLEMENTATIONS_TABLE = "suggestion_implementations"
FEEDBACK_TABLE = "suggestion_feedback"

VALID_TRANSITIONS: Dict[SuggestionStatus, List[SuggestionStatus]] = {
    SuggestionStatus.PENDING: [
        SuggestionStatus.TESTING,
        SuggestionStatus.IMPLEMENTED,
        SuggestionStatus.DISMISSED,
    ],
    SuggestionStatus.TESTING: [],
    SuggestionStatus.IMPLEMENTED: [],
    SuggestionStatus.DISMISSED: [],
}


class SuggestionService:
    """Read and update suggestions on behalf of dashboard handlers."""

    def __init__(self, supabase_client=None, snapshot_reader: Optional[SnapshotReader] = None, clock=None):
        if supabase_client is None:
            from ...core.database import get_supabase_client
            supabase_client = get_supabase_client()
        self.supabase = supabase_client
        self.snapshot_reader = snapshot_reader or SnapshotReader(supabase_client)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ============================================
    # Queries
    # ============================================

    def get_suggestions(
        self,
        user_id: UUID,
        landing_page_id: UUID,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Suggestion]:
        """Suggestions for a page, newest first, optionally filtered by status."""
        query = (
            self.supabase.table(SUGGESTIONS_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .eq("landing_page_id", str(landing_page_id))
        )
        if status:
            query = query.eq("status", SuggestionStatus(status).value)
        query = query.order("created_at", desc=True)
        if limit:
            query = query.limit(limit)

        try:
            result = query.execute()
        except Exception as e:
            raise PersistenceError("list suggestions", str(e)) from e
        return [Suggestion.model_validate(row) for row in result.data or []]

    def get_suggestion(self, suggestion_id: UUID, user_id: Optional[UUID] = None) -> Suggestion:
        """Fetch one suggestion; with user_id, only if that user owns it.

        Raises:
            NotFoundError: Unknown id (or not owned by user_id)
        """
        query = self.supabase.table(SUGGESTIONS_TABLE).select("*").eq("id", str(suggestion_id))
        if user_id is not None:
            query = query.eq("user_id", str(user_id))
        try:
            result = query.execute()
        except Exception as e:
            raise PersistenceError("get suggestion", str(e)) from e
        if not result.data:
            raise NotFoundError("Suggestion", str(suggestion_id))
        return Suggestion.model_validate(result.data[0])

    # ============================================
    # Status changes
    # ============================================

    async def implement_suggestion(
        self,
        suggestion_id: UUID,
        implemented_content: str,
        implementation_notes: Optional[str] = None,
        partial_implementation: bool = False,
        user_id: Optional[UUID] = None,
    ) -> SuggestionImplementation:
        """Mark a pending suggestion implemented and record what was applied.

        The current analytics are stored as before_analytics. If they cannot
        be read the implementation is still recorded, without a baseline, and
        will never be picked up for impact measurement.

        Raises:
            NotFoundError: Unknown suggestion
            InvalidStatusTransition: Suggestion is not pending
            PersistenceError: Store failure
        """
        suggestion = self.get_suggestion(suggestion_id, user_id)
        self._check_transition(suggestion, SuggestionStatus.IMPLEMENTED)

        read = await self.snapshot_reader.read(suggestion.user_id, suggestion.landing_page_id)
        before = read.snapshot.analytics if read.ok else None
        if before is None:
            logger.warning(
                f"No baseline for suggestion {suggestion_id}; impact will not be measured: {read.error}"
            )

        self._update_status(
            suggestion,
            SuggestionStatus.IMPLEMENTED,
            {"implemented_at": self._clock().isoformat()},
        )

        record: Dict[str, Any] = {
            "suggestion_id": str(suggestion.id),
            "user_id": str(suggestion.user_id),
            "implemented_content": implemented_content,
            "implementation_notes": implementation_notes,
            "partial_implementation": partial_implementation,
            "before_analytics": before.model_dump(mode="json") if before else None,
        }
        try:
            result = self.supabase.table(IMPLEMENTATIONS_TABLE).insert(record).execute()
        except Exception as e:
            raise PersistenceError("create implementation", str(e)) from e
        if not result.data:
            raise PersistenceError("create implementation", "insert returned no row")

        logger.info(f"Suggestion {suggestion_id} implemented (partial={partial_implementation})")
        return SuggestionImplementation.model_validate(result.data[0])

    def dismiss_suggestion(self, suggestion_id: UUID, user_id: Optional[UUID] = None) -> Suggestion:
        suggestion = self.get_suggestion(suggestion_id, user_id)
        self._check_transition(suggestion, SuggestionStatus.DISMISSED)
        updated = self._update_status(
            suggestion,
            SuggestionStatus.DISMISSED,
            {"dismissed_at": self._clock().isoformat()},
        )
        logger.info(f"Suggestion {suggestion_id} dismissed")
        return updated

    def mark_testing(self, suggestion_id: UUID, user_id: Optional[UUID] = None) -> Suggestion:
        suggestion = self.get_suggestion(suggestion_id, user_id)
        self._check_transition(suggestion, SuggestionStatus.TESTING)
        updated = self._update_status(suggestion, SuggestionStatus.TESTING)
        logger.info(f"Suggestion {suggestion_id} marked for testing")
        return updated

    def _check_transition(self, suggestion: Suggestion, target: SuggestionStatus) -> None:
        if target not in VALID_TRANSITIONS.get(suggestion.status, []):
            raise InvalidStatusTransition(
                str(suggestion.id), suggestion.status.value, target.value
            )

    def _update_status(
        self,
        suggestion: Suggestion,
        target: SuggestionStatus,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Suggestion:
        updates: Dict[str, Any] = {"status": target.value, **(extra or {})}
        try:
            result = (
                self.supabase.table(SUGGESTIONS_TABLE)
                .update(updates)
                .eq("id", str(suggestion.id))
                .eq("status", SuggestionStatus.PENDING.value)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"set suggestion status to {target.value}", str(e)) from e

        if not result.data:
            # Another request moved it out of pending first
            current = self.get_suggestion(suggestion.id)
            raise InvalidStatusTransition(str(suggestion.id), current.status.value, target.value)
        return Suggestion.model_validate(result.data[0])

    # ============================================
    # Feedback
    # ============================================

    def provide_feedback(
        self,
        suggestion_id: UUID,
        user_id: UUID,
        rating: Optional[int] = None,
        feedback_text: Optional[str] = None,
        is_helpful: Optional[bool] = None,
    ) -> SuggestionFeedback:
        """Create or replace this user's feedback on a suggestion.

        Raises:
            ValidationError: rating outside 1-5
            NotFoundError: Suggestion unknown or not owned by user_id
        """
        feedback = SuggestionFeedback(
            suggestion_id=suggestion_id,
            user_id=user_id,
            rating=rating,
            feedback_text=feedback_text,
            is_helpful=is_helpful,
        )
        self.get_suggestion(suggestion_id, user_id)

        record = feedback.model_dump(mode="json", exclude={"id", "created_at"})
        try:
            result = (
                self.supabase.table(FEEDBACK_TABLE)
                .upsert(record, on_conflict="suggestion_id,user_id")
                .execute()
            )
        except Exception as e:
            raise PersistenceError("save feedback", str(e)) from e

        return SuggestionFeedback.model_validate(result.data[0]) if result.data else feedback
