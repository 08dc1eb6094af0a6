"""
Plain-language explanations.

Two levels:

``explain_candidate``
    Up to three user-facing points for one candidate (price vs average,
    rating / reviews vs average, delivery, badge) and a sentiment tag.

``explain_choice``
    One query-level sentence on why the top candidate beat the runner-up.
    An ``ExplanationProvider`` is consulted only when one is configured and
    the two scores are within ``score_gap_threshold`` of each other. Any
    provider failure or empty reply falls back to the deterministic template,
    which is always available.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable

from dealfinder.config import TrustConfig
from dealfinder.recommendations.guardrails import GuardedCandidate
from dealfinder.taxonomy.badge_taxonomy import Badge
from dealfinder.taxonomy.trust_taxonomy import Sentiment
from dealfinder.trust.context import TrustContext

logger = logging.getLogger(__name__)

FALLBACK_POINTS: tuple[str, ...] = (
    "Available on selected platforms",
    "Meets basic quality requirements",
)

_FACTOR_PHRASES: dict[str, str] = {
    "price":    "better price",
    "rating":   "higher rating",
    "reviews":  "more reviews",
    "shipping": "better shipping",
}


@dataclass(frozen=True)
class Explanation:
    title:     str
    points:    tuple[str, ...]
    sentiment: Sentiment


@dataclass(frozen=True)
class ChoiceExplanation:
    text:            str
    generated_by_ai: bool = False


@runtime_checkable
class ExplanationProvider(Protocol):
    """Strategy for near-tie explanations.

    Implementations return ``None`` (or raise) when they cannot produce a
    reply; the caller then uses the deterministic template.
    """

    def explain(self, top: GuardedCandidate, runner_up: GuardedCandidate, query: str) -> Optional[str]:
        ...


# ── Per-candidate explanation ─────────────────────────────────────────────────


def _badge_point(badge: Badge, category: Optional[str]) -> str:
    return {
        Badge.BEST_CHOICE: f"Award: Best Choice in {category or 'category'}",
        Badge.BEST_VALUE:  "Ranked as best value, quality at a fair price",
        Badge.FASTEST:     "Fastest delivery option available",
        Badge.CHEAPEST:    "Most affordable option",
    }[badge]


def explanation_points(g: GuardedCandidate, ctx: TrustContext) -> list[str]:
    c = g.candidate
    points: list[str] = []

    if c.price > 0 and ctx.avg_price > 0:
        savings = (ctx.avg_price - c.price) / ctx.avg_price * 100
        if savings > 30:
            points.append(f"Significantly lower price, save around {round(savings)}%")
        elif savings > 20:
            points.append(f"Good price, save around {round(savings)}% vs average")
        elif savings > 10:
            points.append("Lower price than similar products")

    if c.rating and c.reviews_count:
        better_rated = c.rating > ctx.avg_rating
        more_reviewed = c.reviews_count > ctx.avg_reviews
        if better_rated and more_reviewed:
            points.append(
                f"High rating ({c.rating:.1f}/5) with many verified purchases "
                f"({c.reviews_count} reviews)"
            )
        elif better_rated:
            points.append(f"Good rating from customers ({c.rating:.1f}/5)")
        elif more_reviewed:
            points.append(f"Trusted by many buyers ({c.reviews_count} reviews)")

    if c.shipping_time_days:
        days = f"{c.shipping_time_days:g}"
        if c.shipping_time_days < ctx.avg_shipping_days - 1:
            if c.shipping_price == 0:
                points.append(f"Fast shipping ({days} days) with free delivery")
            else:
                points.append(f"Fast shipping ({days} days)")
        elif c.shipping_price == 0:
            points.append("Free shipping")

    if g.badge is not None:
        points.append(_badge_point(g.badge, ctx.category))

    return points[: ctx.config.max_explanation_points]


def sentiment_for(g: GuardedCandidate, ctx: TrustContext) -> Sentiment:
    c = g.candidate
    if not c.rating or not c.reviews_count:
        return Sentiment.NEUTRAL
    if c.rating >= ctx.avg_rating + 0.3 and c.reviews_count >= ctx.config.min_reviews_for_reliable:
        return Sentiment.POSITIVE
    if c.rating >= ctx.avg_rating and c.reviews_count >= ctx.config.min_reviews_for_chosen:
        return Sentiment.NEUTRAL
    return Sentiment.CAUTIOUS


def explain_candidate(g: GuardedCandidate, ctx: TrustContext) -> Explanation:
    points = explanation_points(g, ctx)
    if not points:
        return Explanation(title="Why this product?", points=FALLBACK_POINTS,
                           sentiment=Sentiment.NEUTRAL)
    return Explanation(title="Why this recommendation?", points=tuple(points),
                       sentiment=sentiment_for(g, ctx))


# ── Query-level choice explanation ────────────────────────────────────────────


def deterministic_choice_text(
    top: GuardedCandidate,
    runner_up: Optional[GuardedCandidate],
    score_gap_threshold: float = 0.1,
) -> str:
    """Template explanation naming the top candidate's two strongest factors."""
    name = top.candidate.title
    store = top.candidate.platform

    if runner_up is not None and (top.score - runner_up.score) < score_gap_threshold:
        return (
            f"{name} edges out {runner_up.candidate.title} from "
            f"{runner_up.candidate.platform} by a small margin. Both are strong options."
        )

    phrases: list[str] = []
    if top.breakdown is not None:
        ranked = sorted(
            top.breakdown.factors.items(),
            key=lambda item: item[1].contribution,
            reverse=True,
        )[:2]
        phrases = [_FACTOR_PHRASES[factor] for factor, score in ranked if score.contribution > 0]
    because = f" because of {' and '.join(phrases)}." if phrases else "."

    if runner_up is not None:
        return f"{name} from {store} ranks first{because}"
    return f"{name} from {store} is the best option available{because}"


def explain_choice(
    guarded: list[GuardedCandidate],
    config: Optional[TrustConfig] = None,
    provider: Optional[ExplanationProvider] = None,
    query: str = "",
) -> Optional[ChoiceExplanation]:
    """Explain the top pick of ``guarded``; ``None`` for an empty set.

    Top and runner-up are taken in canonical order (score desc, price asc,
    id asc, platform asc), regardless of the order of ``guarded``.
    """
    config = config or TrustConfig()
    if not guarded:
        return None

    ordered = sorted(guarded, key=lambda g: g.sort_key)
    top = ordered[0]
    runner_up = ordered[1] if len(ordered) > 1 else None

    close_call = runner_up is not None and (top.score - runner_up.score) < config.score_gap_threshold
    if provider is not None and close_call:
        try:
            text = provider.explain(top, runner_up, query)
        except Exception as exc:
            logger.warning("Explanation provider failed; using template: %s", exc)
            text = None
        if text and text.strip():
            return ChoiceExplanation(text=text.strip(), generated_by_ai=True)

    return ChoiceExplanation(
        text=deterministic_choice_text(top, runner_up, config.score_gap_threshold),
        generated_by_ai=False,
    )
