"""Score floor, ordering and truncation of match results."""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..models import MatchResult

logger = logging.getLogger(__name__)


class SortBy(str, Enum):
    BEST_MATCH = "best_match"
    DEADLINE_SOON = "deadline_soon"
    HIGHEST_FUNDING = "highest_funding"


def _deadline_key(result: MatchResult) -> Tuple[int, float]:
    """Dated non-rolling deadlines first, nearest first; the rest sort last."""
    grant = result.grant
    if grant.deadline_date is None or grant.is_rolling:
        return (1, 0.0)
    return (0, grant.deadline_date.timestamp())


def _amount_key(amount: Optional[float]) -> Tuple[int, float]:
    """Larger amounts first, missing amounts last."""
    if amount is None:
        return (1, 0.0)
    return (0, -amount)


def _best_match_key(result: MatchResult) -> tuple:
    return (
        -result.ranking_score,
        _deadline_key(result),
        _amount_key(result.grant.amount_max),
        result.grant_id,
    )


def _deadline_soon_key(result: MatchResult) -> tuple:
    return (_deadline_key(result), -result.ranking_score, result.grant_id)


def _highest_funding_key(result: MatchResult) -> tuple:
    return (_amount_key(result.grant.funding_ceiling), -result.ranking_score, result.grant_id)


_SORT_KEYS: Dict[SortBy, Callable[[MatchResult], tuple]] = {
    SortBy.BEST_MATCH: _best_match_key,
    SortBy.DEADLINE_SOON: _deadline_soon_key,
    SortBy.HIGHEST_FUNDING: _highest_funding_key,
}


def sort_results(results: List[MatchResult], sort_by: SortBy = SortBy.BEST_MATCH) -> List[MatchResult]:
    """Total order over results; grant id breaks every remaining tie."""
    return sorted(results, key=_SORT_KEYS[SortBy(sort_by)])


def rank(
    results: List[MatchResult],
    sort_by: SortBy = SortBy.BEST_MATCH,
    min_score: int = 0,
    limit: Optional[int] = None,
) -> Tuple[List[MatchResult], int]:
    """Apply the score floor, sort, then truncate.

    The floor uses the deterministic score, so enrichment never changes which
    grants are shown, only their order.

    Args:
        results: Scored results in any order
        sort_by: Requested ordering
        min_score: Results scoring below this are dropped
        limit: Page size; None returns everything

    Returns:
        (page, total) where total counts results above the floor before truncation
    """
    kept = [r for r in results if r.score >= min_score]
    ordered = sort_results(kept, sort_by)
    page = ordered if limit is None else ordered[: max(0, limit)]

    logger.debug(
        "rank_complete sort_by=%s min_score=%d in=%d above_floor=%d returned=%d",
        SortBy(sort_by).value,
        min_score,
        len(results),
        len(kept),
        len(page),
    )
    return page, len(kept)
