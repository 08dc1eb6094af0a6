"""
Population context shared by every trust component.

Averages here follow the presentation layer's convention: missing values
count as zero and the divisor is the full population size. Components that
need a positive-only statistic compute it explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from dealfinder.config import TrustConfig
from dealfinder.recommendations.guardrails import GuardedCandidate
from dealfinder.utils.stats import mean


@dataclass(frozen=True)
class TrustContext:
    config:             TrustConfig
    size:               int
    avg_price:          float
    avg_positive_price: Optional[float]
    avg_rating:         float
    avg_reviews:        float
    avg_shipping_days:  float
    min_price:          Optional[float]
    max_price:          Optional[float]
    max_rating:         float
    max_reviews:        int
    fastest_days:       Optional[float]
    review_counts:      tuple[int, ...] = field(default_factory=tuple)
    cheapest_safe_key:  Optional[tuple[str, str]] = None
    category:           Optional[str] = None

    @classmethod
    def build(
        cls,
        guarded: list[GuardedCandidate],
        config: Optional[TrustConfig] = None,
        category: Optional[str] = None,
    ) -> "TrustContext":
        config = config or TrustConfig()
        items = [g.candidate for g in guarded]
        n = len(items) or 1

        prices = [c.price for c in items]
        positive_prices = [p for p in prices if p > 0]
        delivery = [c.shipping_time_days for c in items if c.shipping_time_days]

        return cls(
            config=config,
            size=len(items),
            avg_price=sum(prices) / n,
            avg_positive_price=mean(positive_prices),
            avg_rating=sum(c.rating or 0.0 for c in items) / n,
            avg_reviews=sum(c.reviews_count or 0 for c in items) / n,
            avg_shipping_days=sum(c.shipping_time_days or 0.0 for c in items) / n,
            min_price=min(positive_prices) if positive_prices else None,
            max_price=max(positive_prices) if positive_prices else None,
            max_rating=max((c.rating or 0.0 for c in items), default=0.0),
            max_reviews=max((c.reviews_count or 0 for c in items), default=0),
            fastest_days=min(delivery) if delivery else None,
            review_counts=tuple(c.reviews_count or 0 for c in items),
            cheapest_safe_key=_cheapest_safe_key(guarded, config, min(positive_prices, default=None)),
            category=category,
        )


def _cheapest_safe_key(
    guarded: list[GuardedCandidate],
    config: TrustConfig,
    min_price: Optional[float],
) -> Optional[tuple[str, str]]:
    """Key of the single lowest-priced candidate that is also well rated and reviewed.

    Among several at the same lowest price, the canonical (score desc, price
    asc, id asc, platform asc) order decides.
    """
    if min_price is None:
        return None
    safe = [
        g for g in guarded
        if g.candidate.price == min_price
        and (g.candidate.rating or 0) >= config.min_rating_for_safe
        and (g.candidate.reviews_count or 0) >= config.min_reviews_for_chosen
    ]
    if not safe:
        return None
    return min(safe, key=lambda g: g.sort_key).key
