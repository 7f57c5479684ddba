"""BestOfNSelector: model-assisted pick of the final suggestions.

The model is asked for 1-based indices. Any failure of that sub-call,
including a reply that names no usable index, falls back to rank_by_score,
so selection never fails the surrounding analysis.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ...core.exceptions import ExternalModelError
from .models import PageSnapshot, SelectionOutcome, SuggestionCandidate
from .model_client import ModelClient
from .parsing import parse_selection
from .prompts import SELECTION_SYSTEM_PROMPT, build_selection_prompt
from .refinement import MAX_FINAL_SUGGESTIONS, rank_by_score

logger = logging.getLogger(__name__)


def map_indices(
    indices: Sequence[int],
    candidates: Sequence[SuggestionCandidate],
    limit: int = MAX_FINAL_SUGGESTIONS,
) -> List[SuggestionCandidate]:
    """Map 1-based indices to candidates, skipping out-of-range and repeats."""
    selected: List[SuggestionCandidate] = []
    seen = set()
    for index in indices:
        if not 1 <= index <= len(candidates) or index in seen:
            continue
        seen.add(index)
        selected.append(candidates[index - 1])
        if len(selected) == limit:
            break
    return selected


class BestOfNSelector:
    """Chooses the top suggestions from the consolidated candidates."""

    def __init__(
        self,
        model_client: Optional[ModelClient] = None,
        pick: int = MAX_FINAL_SUGGESTIONS,
    ):
        self.model_client = model_client
        self.pick = pick

    async def select_best(
        self,
        candidates: Sequence[SuggestionCandidate],
        snapshot: PageSnapshot,
    ) -> SelectionOutcome:
        if len(candidates) <= self.pick:
            return SelectionOutcome(suggestions=list(candidates))

        if self.model_client is None:
            return self._fallback(candidates, reason="no model client")

        prompt = build_selection_prompt(candidates, snapshot, self.pick)
        try:
            reply = await self.model_client.complete(
                SELECTION_SYSTEM_PROMPT, prompt, operation="select_best"
            )
            indices = parse_selection(reply.text)
        except ExternalModelError as e:
            # Parse errors are ExternalModelError subclasses
            return self._fallback(candidates, reason=str(e))

        selected = map_indices(indices, candidates, self.pick)
        if not selected:
            return self._fallback(
                candidates,
                reason=f"no usable indices in {indices}",
                tokens_used=reply.tokens_used,
            )

        logger.info(f"Model selected {len(selected)} of {len(candidates)} candidates")
        return SelectionOutcome(suggestions=selected, tokens_used=reply.tokens_used)

    def _fallback(
        self,
        candidates: Sequence[SuggestionCandidate],
        reason: str,
        tokens_used: int = 0,
    ) -> SelectionOutcome:
        logger.warning(f"Best-of-N selection falling back to score ranking: {reason}")
        return SelectionOutcome(
            suggestions=rank_by_score(candidates, self.pick),
            used_fallback=True,
            tokens_used=tokens_used,
        )
