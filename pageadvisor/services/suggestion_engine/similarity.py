"""Text similarity used to spot near-duplicate suggestion titles.

The deduplicator only depends on the SimilarityScorer protocol, so the
token-overlap scorer here can be replaced by an edit-distance or embedding
scorer without touching the refinement stages.
"""

from __future__ import annotations

from typing import FrozenSet, Protocol


class SimilarityScorer(Protocol):
    """Scores two strings in [0, 1]; 1 means identical."""

    def score(self, a: str, b: str) -> float:
        ...


def _tokens(text: str) -> FrozenSet[str]:
    return frozenset((text or "").lower().split())


def similarity(a: str, b: str) -> float:
    """Jaccard overlap of lowercase whitespace tokens.

    Two empty strings score 0 (there is nothing to compare).
    """
    tokens_a = _tokens(a)
    tokens_b = _tokens(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


class JaccardSimilarity:
    """Default SimilarityScorer: token-set Jaccard overlap."""

    def score(self, a: str, b: str) -> float:
        return similarity(a, b)
