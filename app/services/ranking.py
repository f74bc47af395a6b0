"""
Deterministic post-processing of reconciled matches.
"""
import math
from typing import Iterable, List

from app.schemas.profile import EnrichedMatch

MIN_SCORE = 0
MAX_SCORE = 100
MATCH_THRESHOLD = 50
MAX_MATCHES = 20


def clamp_score(score: float) -> int:
    """Clamp a finite or infinite score into [0, 100] and round to an integer."""
    if math.isnan(score):
        raise ValueError("score is NaN")
    return int(round(min(MAX_SCORE, max(MIN_SCORE, score))))


def passes_threshold(score: float) -> bool:
    """True if the unclamped model score is at or above the inclusion threshold."""
    return score >= MATCH_THRESHOLD


def rank_matches(matches: Iterable[EnrichedMatch], limit: int = MAX_MATCHES) -> List[EnrichedMatch]:
    """
    Sort by matchScore descending and keep the top `limit`.

    The sort is stable: equal scores keep their incoming order, which the
    reconciler emits in candidate-pool order.
    """
    ranked = sorted(matches, key=lambda m: m.match_score, reverse=True)
    return ranked[:limit]
