"""Candidate reduction stages: dedupe -> consolidate -> rank.

Pure functions over SuggestionCandidate lists. No I/O.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from .models import Priority, Suggestion, SuggestionCandidate
from .similarity import JaccardSimilarity, SimilarityScorer

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Title overlap above which a candidate repeats a pending suggestion
DUPLICATE_TITLE_THRESHOLD = 0.7
# Lower bar when both target the same section
SAME_SECTION_TITLE_THRESHOLD = 0.5

DEFAULT_SECTION = "general"
MAX_FINAL_SUGGESTIONS = 3

PRIORITY_WEIGHTS: Dict[Priority, int] = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


def section_key(target_section: Optional[str]) -> str:
    """Normalize a target section for grouping/matching."""
    if not target_section or not target_section.strip():
        return DEFAULT_SECTION
    return target_section.strip().lower()


def candidate_score(candidate: SuggestionCandidate) -> float:
    """priority_weight * 2 + confidence_score."""
    return PRIORITY_WEIGHTS.get(candidate.priority, 1) * 2 + candidate.confidence_score


# =============================================================================
# Stages
# =============================================================================

def dedupe(
    candidates: Sequence[SuggestionCandidate],
    existing: Sequence[Suggestion],
    scorer: Optional[SimilarityScorer] = None,
) -> List[SuggestionCandidate]:
    """Drop candidates that repeat an existing pending suggestion.

    A candidate is dropped when its title similarity to any existing title
    exceeds DUPLICATE_TITLE_THRESHOLD, or when it targets the same section as
    an existing suggestion and title similarity exceeds
    SAME_SECTION_TITLE_THRESHOLD. Order is preserved.
    """
    scorer = scorer or JaccardSimilarity()
    kept: List[SuggestionCandidate] = []

    for candidate in candidates:
        section = section_key(candidate.target_section)
        duplicate_of = None
        for pending in existing:
            title_similarity = scorer.score(candidate.title, pending.title)
            if title_similarity > DUPLICATE_TITLE_THRESHOLD:
                duplicate_of = pending
                break
            if (
                section == section_key(pending.target_section)
                and title_similarity > SAME_SECTION_TITLE_THRESHOLD
            ):
                duplicate_of = pending
                break

        if duplicate_of is not None:
            logger.debug(
                f"Dropping duplicate candidate '{candidate.title}' "
                f"(matches pending '{duplicate_of.title}')"
            )
            continue
        kept.append(candidate)

    return kept


def consolidate(candidates: Sequence[SuggestionCandidate]) -> List[SuggestionCandidate]:
    """Keep one candidate per target section, the highest-scoring one.

    Ties keep the first encountered. Output follows the order in which each
    section first appears.
    """
    groups: Dict[str, List[SuggestionCandidate]] = {}
    for candidate in candidates:
        groups.setdefault(section_key(candidate.target_section), []).append(candidate)

    consolidated: List[SuggestionCandidate] = []
    for section, members in groups.items():
        best = members[0]
        for member in members[1:]:
            if candidate_score(member) > candidate_score(best):
                best = member
        if len(members) > 1:
            logger.debug(f"Consolidated {len(members)} candidates for section '{section}'")
        consolidated.append(best)

    return consolidated


def rank_by_score(
    candidates: Sequence[SuggestionCandidate],
    limit: int = MAX_FINAL_SUGGESTIONS,
) -> List[SuggestionCandidate]:
    """Deterministic top-N by candidate_score (stable for ties)."""
    return sorted(candidates, key=candidate_score, reverse=True)[:limit]
