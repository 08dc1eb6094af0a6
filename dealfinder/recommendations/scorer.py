"""
Candidate scoring: a weighted linear desirability score plus a separate
confidence estimate, with a fail-closed low-confidence filter.

Score formula (range 0–1)
-------------------------
    total = clamp(
        price_score      * 0.35
        + rating_score   * 0.30
        + reviews_score  * 0.15
        + shipping_score * 0.20
        - quality_penalty
    )

Component explanations
----------------------
price_score:
    With a known positive target (source) price:
    ``max(0, (target − price) / target)``. Otherwise the candidate's
    position within the set's positive [min, max] price range, cheaper →
    higher; 0.5 when the range is degenerate. Non-positive price → 0.

rating_score:
    Bayesian-smoothed rating ``(v·R + m·C) / (v + m) / 5`` with
    v = review count, C = mean positive rating in the set (3.5 if none),
    m = 50. Missing / non-positive rating → 0.

reviews_score:
    0 for no reviews; 0.05 below 10 reviews; otherwise
    ``log10(v + 1) / log10(maxV + 1)``.

shipping_score:
    Mean of a price component (1.0 free, ``1 − p / maxShip`` otherwise,
    0.5 unknown) and a time component (≤2d 1.0, ≤5d 0.7, ≤10d 0.4,
    else 0.1; 0.5 unknown).

quality_penalty:
    0.15 for titles shorter than 15 characters, 0.20 for a price z-score
    beyond ±3 against the set's mean / population stddev. Capped at 0.5.

Confidence
----------
Starts at 0.8; −0.15 without a rating, −0.20 without reviews, −0.10 when
shipping price or time is unknown, −0.10 when the price sits in the outer
10% of the observed range at either end.

Filtering
---------
Candidates are ordered by (score desc, price asc, id asc, platform asc). If
the first one has confidence below 0.6 the whole result is empty; otherwise
every candidate below 0.6 is dropped and the top 10 are kept.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional

from dealfinder.config import ScoringConfig
from dealfinder.models.candidate import Candidate
from dealfinder.utils.stats import clamp, mean, pstdev

logger = logging.getLogger(__name__)

_PRECISION = 6


@dataclass(frozen=True)
class FactorScore:
    """One weighted factor of the score, kept for auditability.

    Attributes:
        raw:          Input value the factor was computed from (``None`` if absent).
        normalized:   Factor value in [0, 1].
        weight:       Configured weight.
        contribution: ``normalized * weight``.
    """

    raw:          Optional[float]
    normalized:   float
    weight:       float
    contribution: float

    @classmethod
    def build(cls, raw: Optional[float], normalized: float, weight: float) -> "FactorScore":
        normalized = round(clamp(normalized), _PRECISION)
        return cls(raw=raw, normalized=normalized, weight=weight,
                   contribution=round(normalized * weight, _PRECISION))


@dataclass(frozen=True)
class ScoreBreakdown:
    price:           FactorScore
    rating:          FactorScore
    reviews:         FactorScore
    shipping:        FactorScore
    quality_penalty: float = 0.0

    @property
    def factors(self) -> dict[str, FactorScore]:
        return {
            "price":    self.price,
            "rating":   self.rating,
            "reviews":  self.reviews,
            "shipping": self.shipping,
        }

    @property
    def total(self) -> float:
        """Clamped weighted sum after the quality penalty."""
        weighted = sum(f.contribution for f in self.factors.values())
        return round(clamp(weighted - self.quality_penalty), _PRECISION)

    def to_dict(self) -> dict:
        out: dict = {
            name: {
                "raw":          f.raw,
                "normalized":   f.normalized,
                "weight":       f.weight,
                "contribution": f.contribution,
            }
            for name, f in self.factors.items()
        }
        out["quality_penalty"] = self.quality_penalty
        return out


@dataclass(frozen=True)
class PopulationStats:
    """Set-level statistics computed once per request.

    Every field is ``None`` when the population does not support it (no
    positive prices, fewer than two prices for a stddev, and so on).
    """

    min_price:          Optional[float]
    max_price:          Optional[float]
    mean_price:         Optional[float]
    std_price:          Optional[float]
    mean_rating:        float
    max_log_reviews:    Optional[float]
    max_shipping_price: Optional[float]
    target_price:       Optional[float] = None

    @classmethod
    def from_candidates(
        cls,
        candidates: list[Candidate],
        default_mean_rating: float = 3.5,
        target_price: Optional[float] = None,
    ) -> "PopulationStats":
        prices = [c.price for c in candidates if c.price > 0]
        ratings = [c.rating for c in candidates if c.rating is not None and c.rating > 0]
        reviews = [c.reviews_count for c in candidates if c.reviews_count]
        shipping = [c.shipping_price for c in candidates if c.shipping_price is not None]

        return cls(
            min_price=min(prices) if prices else None,
            max_price=max(prices) if prices else None,
            mean_price=mean(prices),
            std_price=pstdev(prices),
            mean_rating=mean(ratings) or default_mean_rating,
            max_log_reviews=max(math.log10(r + 1) for r in reviews) if reviews else None,
            max_shipping_price=max(shipping) if shipping else None,
            target_price=target_price if target_price and target_price > 0 else None,
        )


@dataclass(frozen=True)
class ScoredCandidate:
    """A matched candidate plus its score, confidence and factor breakdown."""

    candidate:  Candidate
    score:      float
    confidence: float
    breakdown:  Optional[ScoreBreakdown] = None

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def key(self) -> tuple[str, str]:
        return self.candidate.key

    @property
    def sort_key(self) -> tuple[float, float, str, str]:
        """Canonical order: score desc, price asc, id asc, platform asc."""
        return (-self.score, self.candidate.price, self.candidate.id, self.candidate.platform.lower())


# ── Factor functions ──────────────────────────────────────────────────────────


def price_score(price: float, stats: PopulationStats) -> float:
    if price <= 0:
        return 0.0
    if stats.target_price is not None:
        return clamp((stats.target_price - price) / stats.target_price)
    if stats.min_price is None or stats.max_price is None:
        return 0.5
    spread = stats.max_price - stats.min_price
    if spread <= 0:
        return 0.5
    return clamp((stats.max_price - price) / spread)


def rating_score(
    rating: Optional[float],
    reviews: Optional[int],
    stats: PopulationStats,
    prior_strength: float = 50.0,
) -> float:
    if rating is None or rating <= 0:
        return 0.0
    v = reviews or 0
    smoothed = (v * rating + prior_strength * stats.mean_rating) / (v + prior_strength)
    return clamp(smoothed / 5.0)


def reviews_score(
    reviews: Optional[int],
    stats: PopulationStats,
    min_review_count: int = 10,
    low_review_score: float = 0.05,
) -> float:
    v = reviews or 0
    if v <= 0:
        return 0.0
    if v < min_review_count:
        return low_review_score
    if not stats.max_log_reviews:
        return 0.5
    return clamp(math.log10(v + 1) / stats.max_log_reviews)


def shipping_time_component(days: Optional[float]) -> float:
    if days is None:
        return 0.5
    if days <= 2:
        return 1.0
    if days <= 5:
        return 0.7
    if days <= 10:
        return 0.4
    return 0.1


def shipping_score(
    shipping_price: Optional[float],
    shipping_days: Optional[float],
    stats: PopulationStats,
) -> float:
    if shipping_price is None:
        price_component = 0.5
    elif shipping_price == 0:
        price_component = 1.0
    elif stats.max_shipping_price:
        price_component = clamp(1 - shipping_price / stats.max_shipping_price)
    else:
        price_component = 0.5
    return clamp(0.5 * price_component + 0.5 * shipping_time_component(shipping_days))


def quality_penalty(candidate: Candidate, stats: PopulationStats, config: ScoringConfig) -> float:
    if not config.apply_quality_penalty:
        return 0.0
    penalty = 0.0
    if len(candidate.title) < config.short_title_length:
        penalty += config.short_title_penalty
    if stats.mean_price is not None and stats.std_price:
        z = abs(candidate.price - stats.mean_price) / stats.std_price
        if z > config.outlier_z_threshold:
            penalty += config.outlier_penalty
    return min(penalty, config.max_quality_penalty)


def compute_confidence(candidate: Candidate, stats: PopulationStats, config: ScoringConfig) -> float:
    confidence = config.base_confidence
    if candidate.rating is None or candidate.rating <= 0:
        confidence -= config.missing_rating_penalty
    if not candidate.reviews_count:
        confidence -= config.missing_reviews_penalty
    if candidate.shipping_price is None or candidate.shipping_time_days is None:
        confidence -= config.missing_shipping_penalty
    if stats.min_price is not None and stats.max_price is not None:
        spread = stats.max_price - stats.min_price
        if spread > 0:
            margin = spread * config.boundary_fraction
            if (candidate.price - stats.min_price) < margin or (stats.max_price - candidate.price) < margin:
                confidence -= config.boundary_penalty
    return round(clamp(confidence), _PRECISION)


# ── Public API ────────────────────────────────────────────────────────────────


def score_candidate(
    candidate: Candidate,
    stats: PopulationStats,
    config: ScoringConfig,
) -> ScoredCandidate:
    """Score one candidate against precomputed population statistics."""
    weights = config.weights
    breakdown = ScoreBreakdown(
        price=FactorScore.build(candidate.price, price_score(candidate.price, stats), weights.price),
        rating=FactorScore.build(
            candidate.rating,
            rating_score(candidate.rating, candidate.reviews_count, stats, config.rating_prior_strength),
            weights.rating,
        ),
        reviews=FactorScore.build(
            candidate.reviews_count,
            reviews_score(candidate.reviews_count, stats, config.min_review_count, config.low_review_score),
            weights.reviews,
        ),
        shipping=FactorScore.build(
            candidate.shipping_time_days,
            shipping_score(candidate.shipping_price, candidate.shipping_time_days, stats),
            weights.shipping,
        ),
        quality_penalty=round(quality_penalty(candidate, stats, config), _PRECISION),
    )
    return ScoredCandidate(
        candidate=candidate,
        score=breakdown.total,
        confidence=compute_confidence(candidate, stats, config),
        breakdown=breakdown,
    )


def score_all(
    candidates: Iterable[Candidate],
    config: Optional[ScoringConfig] = None,
    target_price: Optional[float] = None,
) -> list[ScoredCandidate]:
    """Score every candidate and return them in canonical order, unfiltered."""
    config = config or ScoringConfig()
    pool = list(candidates)
    if not pool:
        return []
    stats = PopulationStats.from_candidates(pool, config.default_mean_rating, target_price)
    scored = [score_candidate(c, stats, config) for c in pool]
    return sorted(scored, key=lambda s: s.sort_key)


def filter_by_confidence(
    scored: list[ScoredCandidate],
    config: Optional[ScoringConfig] = None,
) -> list[ScoredCandidate]:
    """Apply the fail-closed confidence rule and the top-N cut.

    ``scored`` must already be in canonical order (as returned by
    ``score_all``).
    """
    config = config or ScoringConfig()
    if not scored:
        return []
    top = scored[0]
    if top.confidence < config.min_confidence:
        logger.info(
            "Top candidate %s has confidence %.2f < %.2f; returning no results.",
            top.id, top.confidence, config.min_confidence,
        )
        return []
    kept = [s for s in scored if s.confidence >= config.min_confidence]
    return kept[: config.top_n]


def score_candidates(
    candidates: Iterable[Candidate],
    config: Optional[ScoringConfig] = None,
    target_price: Optional[float] = None,
) -> list[ScoredCandidate]:
    """Score, order and confidence-filter matched candidates.

    Args:
        candidates:   Output of the matcher.
        config:       Scoring constants. Defaults to ``ScoringConfig()``.
        target_price: Source product price, when known.

    Returns:
        At most ``config.top_n`` candidates ordered by (score desc, price
        asc, id asc, platform asc); empty when the top candidate is
        low-confidence.
    """
    config = config or ScoringConfig()
    scored = score_all(candidates, config, target_price)
    kept = filter_by_confidence(scored, config)
    logger.debug("Scorer: %d scored, %d kept", len(scored), len(kept))
    return kept
