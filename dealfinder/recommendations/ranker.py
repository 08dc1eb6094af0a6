"""
Badge assignment: attaches at most one exclusive ``Badge`` to at most one
candidate per badge, in fixed priority order.

Priority pass
-------------
    1. best_choice : rating > 4.0 and reviews > 50          → max score
    2. best_value  : rating > 0, price > 0, value > 0       → max value
    3. fastest     : shipping_time_days > 0                 → min days, then max score
    4. cheapest    : rating ≥ 3.8                           → min price

Each step only considers candidates not claimed by an earlier step. A step
with no eligible candidate assigns nothing. Remaining ties fall back to the
canonical scorer order (score desc, price asc, id asc, platform asc), so the
result is independent of input order.

The input list is never modified; a new list of ``RankedCandidate`` is
returned in the same order as the input.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from dealfinder.config import RankingConfig
from dealfinder.recommendations.scorer import ScoredCandidate
from dealfinder.taxonomy.badge_taxonomy import Badge

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankedCandidate(ScoredCandidate):
    """``ScoredCandidate`` plus an optional exclusive badge."""

    badge: Optional[Badge] = None

    @classmethod
    def from_scored(cls, scored: ScoredCandidate, badge: Optional[Badge] = None) -> "RankedCandidate":
        return cls(
            candidate=scored.candidate,
            score=scored.score,
            confidence=scored.confidence,
            breakdown=scored.breakdown,
            badge=badge,
        )


def value_score(scored: ScoredCandidate) -> float:
    """``rating · ln(max(1, reviews)) / price``; 0.0 when rating or price is not positive."""
    c = scored.candidate
    if c.rating is None or c.rating <= 0 or c.price <= 0:
        return 0.0
    return c.rating * math.log(max(1, c.reviews_count or 0)) / c.price


def assign_badges(
    scored: list[ScoredCandidate],
    config: Optional[RankingConfig] = None,
) -> list[RankedCandidate]:
    """Run the priority pass and return badged copies of ``scored``.

    Args:
        scored: Scorer output (any order).
        config: Badge thresholds. Defaults to ``RankingConfig()``.

    Returns:
        One ``RankedCandidate`` per input, in input order.
    """
    config = config or RankingConfig()
    claimed: dict[int, Badge] = {}

    steps: list[tuple[Badge, Callable[[ScoredCandidate], bool], Callable[[ScoredCandidate], tuple]]] = [
        (
            Badge.BEST_CHOICE,
            lambda s: (
                s.candidate.rating is not None
                and s.candidate.rating > config.best_choice_min_rating
                and (s.candidate.reviews_count or 0) > config.best_choice_min_reviews
            ),
            lambda s: s.sort_key,
        ),
        (
            Badge.BEST_VALUE,
            lambda s: value_score(s) > 0,
            lambda s: (-value_score(s),) + s.sort_key,
        ),
        (
            Badge.FASTEST,
            lambda s: s.candidate.shipping_time_days is not None and s.candidate.shipping_time_days > 0,
            lambda s: (s.candidate.shipping_time_days,) + s.sort_key,
        ),
        (
            Badge.CHEAPEST,
            lambda s: s.candidate.rating is not None and s.candidate.rating >= config.cheapest_min_rating,
            lambda s: (s.candidate.price, -s.score, s.candidate.id, s.candidate.platform.lower()),
        ),
    ]

    indexed = list(enumerate(scored))
    for badge, eligible, key in steps:
        pool = [(i, s) for i, s in indexed if i not in claimed and eligible(s)]
        if not pool:
            continue
        index, winner = min(pool, key=lambda pair: key(pair[1]))
        claimed[index] = badge
        logger.debug("Badge %s → %s", badge, winner.id)

    return [RankedCandidate.from_scored(s, claimed.get(i)) for i, s in indexed]
