"""
Trust labels: up to six population-relative labels per candidate, each
with a fixed display priority (1 = most prominent).

    1 best_value              : 0.4·price position + 0.4·rating/5 + 0.2·log-review share ≥ 0.5
    2 cheapest_safe           : the lowest price overall, rating ≥ 4.0, reviews ≥ 10
    3 long_term_choice        : rating ≥ 95% of the best rating, reviews ≥ 50
    4 fastest_delivery        : delivery days equal to the fastest in the set
    5 most_reviewed           : review count at or above the 75th percentile
    6 higher_risk_lower_price : the lowest price overall, rating < 3.5 or reviews < 5
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from dealfinder.recommendations.guardrails import GuardedCandidate
from dealfinder.taxonomy.trust_taxonomy import LABEL_PRIORITY, TrustLabel
from dealfinder.trust.context import TrustContext
from dealfinder.utils.stats import percentile_rank


@dataclass(frozen=True)
class LabelDisplay:
    label:        TrustLabel
    display_text: str
    explanation:  str
    priority:     int


def _label(label: TrustLabel, display_text: str, explanation: str) -> LabelDisplay:
    return LabelDisplay(label=label, display_text=display_text,
                        explanation=explanation, priority=LABEL_PRIORITY[label])


def _days(value: float) -> str:
    n = int(value) if float(value).is_integer() else value
    return f"{n} day" if n == 1 else f"{n} days"


def trust_value_score(g: GuardedCandidate, ctx: TrustContext) -> Optional[float]:
    """Blend used by ``best_value``; ``None`` without price, rating and reviews."""
    c = g.candidate
    if not (c.price > 0 and c.rating and c.reviews_count):
        return None
    if ctx.min_price is None or ctx.max_price is None or ctx.max_price == ctx.min_price:
        price_position = 0.5
    else:
        price_position = (ctx.max_price - c.price) / (ctx.max_price - ctx.min_price)
    review_share = (
        math.log10(1 + c.reviews_count) / math.log10(1 + ctx.max_reviews)
        if ctx.max_reviews > 0 else 0.0
    )
    return price_position * 0.4 + (c.rating / 5) * 0.4 + review_share * 0.2


def generate_labels(g: GuardedCandidate, ctx: TrustContext) -> list[LabelDisplay]:
    """All labels that apply to ``g``, sorted by priority."""
    c = g.candidate
    cfg = ctx.config
    labels: list[LabelDisplay] = []
    has_core = bool(c.price > 0 and c.rating and c.reviews_count)

    value = trust_value_score(g, ctx)
    if value is not None and value >= cfg.value_score_threshold:
        labels.append(_label(
            TrustLabel.BEST_VALUE, "Best Value",
            "Balanced price, good rating, and trusted by many buyers",
        ))

    if has_core and ctx.cheapest_safe_key == g.key:
        labels.append(_label(
            TrustLabel.CHEAPEST_SAFE, "Cheapest Safe Option",
            "Lowest price with reliable quality and good reviews",
        ))

    if (
        c.rating and c.reviews_count
        and c.rating >= ctx.max_rating * cfg.long_term_rating_share
        and c.reviews_count >= cfg.min_reviews_for_reliable
    ):
        labels.append(_label(
            TrustLabel.LONG_TERM_CHOICE, "Long-Term Choice",
            "Highest quality, excellent for long-term use",
        ))

    if c.shipping_time_days and c.shipping_time_days == ctx.fastest_days:
        labels.append(_label(
            TrustLabel.FASTEST_DELIVERY, "Fastest Delivery",
            f"Ships in {_days(c.shipping_time_days)}",
        ))

    if c.reviews_count and percentile_rank(c.reviews_count, ctx.review_counts) >= cfg.most_reviewed_percentile:
        labels.append(_label(
            TrustLabel.MOST_REVIEWED, "Most Reviewed",
            f"{c.reviews_count} customer reviews, trusted by many",
        ))

    if (
        has_core
        and (c.rating < cfg.low_rating_threshold or c.reviews_count < cfg.low_review_threshold)
        and c.price == ctx.min_price
    ):
        labels.append(_label(
            TrustLabel.HIGHER_RISK_LOWER_PRICE, "Higher Risk, Lower Price",
            "Cheapest option but fewer reviews or lower rating",
        ))

    return sorted(labels, key=lambda lbl: lbl.priority)


def primary_label(labels: list[LabelDisplay]) -> Optional[LabelDisplay]:
    return min(labels, key=lambda lbl: lbl.priority) if labels else None
