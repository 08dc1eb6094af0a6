"""
Guardrail filter: per-candidate quality / trust checks with layered,
category- and platform-adjusted thresholds.

Threshold resolution (``resolve_thresholds``)
---------------------------------------------
    GuardrailConfig.defaults
      → categories[normalized category]     (partial override, field by field)
      → platform tier adjustment
          trusted  : min_rating − 0.1 (floor 3.5), min_review_count − 5 (floor 1)
          new      : min_rating + 0.2, min_review_count = max(current, 20)
          standard : unchanged

Checks (in this order; risk reasons keep it)
--------------------------------------------
    quality floor   : rating ≥ min_rating          → "High Rating"
    social proof    : reviews ≥ min_review_count   → "Trusted Seller"
    price outlier   : needs ≥ 3 positive prices; price < factor·median fails,
                      price ≤ 0.85·median           → "Good Deal"
    platform        : trusted → "Trusted Seller", new → fails

Decision
--------
``is_recommended`` is true when every check passes, or when the candidate is
the only one in the set. A lone candidate is recommended even when it fails
checks, but keeps ``is_risky`` and every accumulated reason.

Nothing is removed here; ``recommended_only`` and ``all_with_warnings`` are
the strict and permissive views over the full output.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from dealfinder.config import GuardrailConfig, GuardrailThresholds, ThresholdOverride
from dealfinder.models.candidate import Candidate, GuardrailOverrides
from dealfinder.recommendations.ranker import RankedCandidate
from dealfinder.taxonomy.badge_taxonomy import BADGE_LABELS, PlatformTier
from dealfinder.utils.stats import median

logger = logging.getLogger(__name__)

TAG_HIGH_RATING = "High Rating"
TAG_TRUSTED_SELLER = "Trusted Seller"
TAG_GOOD_DEAL = "Good Deal"
TAG_EXPRESS_SHIPPING = "Express Shipping"
TAG_FAST_SHIPPING = "Fast Shipping"
TAG_FREE_SHIPPING = "Free Shipping"
TAG_DETAILED_DESCRIPTION = "Detailed Description"


@dataclass(frozen=True)
class CheckResult:
    passed:      bool
    tag:         Optional[str] = None
    risk_reason: Optional[str] = None


@dataclass(frozen=True)
class GuardedCandidate(RankedCandidate):
    """``RankedCandidate`` plus the guardrail decision.

    Attributes:
        is_recommended: All checks passed, or the candidate was the only option.
        reasoning_tags: Positive signals, deduplicated, first occurrence kept.
        is_risky:       At least one check produced a risk reason.
        risk_reasons:   Human-readable reasons in check order.
        platform_tier:  Tier used for threshold adjustment.
        thresholds:     Effective thresholds the checks ran against.
    """

    is_recommended: bool = False
    reasoning_tags: tuple[str, ...] = ()
    is_risky:       bool = False
    risk_reasons:   tuple[str, ...] = ()
    platform_tier:  PlatformTier = PlatformTier.STANDARD
    thresholds:     Optional[GuardrailThresholds] = None


@dataclass(frozen=True)
class RecommendationStats:
    total:            int
    verified:         int
    risky:            int
    recommended_rate: float
    risky_rate:       float


# ── Configuration layering ────────────────────────────────────────────────────


def _normalize_key(value: str) -> str:
    return value.strip().lower()


def _apply_override(base: GuardrailThresholds, override: Optional[ThresholdOverride]) -> GuardrailThresholds:
    if override is None:
        return base
    update = {k: v for k, v in override.model_dump().items() if v is not None}
    return base.model_copy(update=update) if update else base


def merge_guardrail_config(
    base: GuardrailConfig,
    overrides: Optional[GuardrailOverrides],
) -> GuardrailConfig:
    """Layer per-request overrides over the configured guardrails.

    Category overrides merge into any configured override for the same
    category rather than replacing it.
    """
    if overrides is None:
        return base

    update: dict = {}
    if overrides.defaults is not None:
        update["defaults"] = _apply_override(base.defaults, overrides.defaults)

    if overrides.categories:
        categories = dict(base.categories)
        for name, override in overrides.categories.items():
            key = _normalize_key(name)
            existing = categories.get(key)
            if existing is None:
                categories[key] = override
            else:
                merged = existing.model_dump()
                merged.update({k: v for k, v in override.model_dump().items() if v is not None})
                categories[key] = ThresholdOverride(**merged)
        update["categories"] = categories

    if overrides.trusted_platforms is not None:
        update["trusted_platforms"] = list(overrides.trusted_platforms)
    if overrides.stricter_platforms is not None:
        update["stricter_platforms"] = list(overrides.stricter_platforms)

    return base.model_copy(update=update) if update else base


def platform_tier(platform: str, config: GuardrailConfig) -> PlatformTier:
    """Case-insensitive substring membership; trusted is checked first."""
    name = platform.lower()
    if any(p.lower() in name for p in config.trusted_platforms if p):
        return PlatformTier.TRUSTED
    if any(p.lower() in name for p in config.stricter_platforms if p):
        return PlatformTier.NEW
    return PlatformTier.STANDARD


def resolve_thresholds(candidate: Candidate, config: GuardrailConfig) -> GuardrailThresholds:
    """Effective thresholds for one candidate: defaults → category → platform tier."""
    thresholds = config.defaults
    if candidate.category:
        thresholds = _apply_override(thresholds, config.categories.get(_normalize_key(candidate.category)))

    tier = platform_tier(candidate.platform, config)
    min_rating = thresholds.min_rating
    min_reviews = thresholds.min_review_count

    if tier is PlatformTier.NEW:
        min_rating = min_rating + config.new_rating_surcharge
        min_reviews = max(min_reviews, config.new_min_review_count)
    elif tier is PlatformTier.TRUSTED:
        min_rating = max(config.trusted_rating_floor, min_rating - config.trusted_rating_relief)
        min_reviews = max(config.trusted_review_floor, min_reviews - config.trusted_review_relief)

    return thresholds.model_copy(
        update={"min_rating": round(min_rating, 4), "min_review_count": int(min_reviews)}
    )


# ── Checks ────────────────────────────────────────────────────────────────────


def _fmt(value: float) -> str:
    """Render a number without trailing zeros: 4.0 → ``4``, 19.99 → ``19.99``."""
    return f"{round(value, 4):g}" if abs(value) < 1e6 else f"{value:.2f}"


def check_quality(candidate: Candidate, thresholds: GuardrailThresholds) -> CheckResult:
    rating = candidate.rating or 0.0
    if rating >= thresholds.min_rating:
        return CheckResult(passed=True, tag=TAG_HIGH_RATING)
    return CheckResult(
        passed=False,
        risk_reason=f"Rating {rating:.1f}/5 (below {_fmt(thresholds.min_rating)} threshold)",
    )


def check_social_proof(candidate: Candidate, thresholds: GuardrailThresholds) -> CheckResult:
    reviews = candidate.reviews_count or 0
    if reviews >= thresholds.min_review_count:
        return CheckResult(passed=True, tag=TAG_TRUSTED_SELLER)
    return CheckResult(
        passed=False,
        risk_reason=f"Only {reviews} review(s) (below {thresholds.min_review_count} threshold)",
    )


def check_price_outlier(
    candidate: Candidate,
    median_price: Optional[float],
    thresholds: GuardrailThresholds,
    good_deal_factor: float = 0.85,
) -> CheckResult:
    """Anti-scam check against the set's median price.

    ``median_price`` is ``None`` when the population is too small, in which
    case the check passes without a tag.
    """
    if not median_price:
        return CheckResult(passed=True)
    if candidate.price < thresholds.price_outlier_factor * median_price:
        return CheckResult(
            passed=False,
            risk_reason=(
                f"Price ${_fmt(candidate.price)} is 60%+ below median "
                f"(${median_price:.2f}) - possible scam/error"
            ),
        )
    if candidate.price <= median_price * good_deal_factor:
        return CheckResult(passed=True, tag=TAG_GOOD_DEAL)
    return CheckResult(passed=True)


def check_platform(candidate: Candidate, tier: PlatformTier) -> CheckResult:
    if tier is PlatformTier.TRUSTED:
        return CheckResult(passed=True, tag=TAG_TRUSTED_SELLER)
    if tier is PlatformTier.NEW:
        return CheckResult(
            passed=False,
            risk_reason=f'Platform "{candidate.platform}" is not in trusted seller list',
        )
    return CheckResult(passed=True)


def positive_signals(ranked: RankedCandidate, config: GuardrailConfig) -> list[str]:
    """Tags computed regardless of check outcomes."""
    c = ranked.candidate
    tags: list[str] = []
    if c.shipping_time_days is not None:
        if c.shipping_time_days <= config.express_shipping_days:
            tags.append(TAG_EXPRESS_SHIPPING)
        elif c.shipping_time_days <= config.fast_shipping_days:
            tags.append(TAG_FAST_SHIPPING)
    if c.shipping_price == 0:
        tags.append(TAG_FREE_SHIPPING)
    if c.description and len(c.description) > config.detailed_description_length:
        tags.append(TAG_DETAILED_DESCRIPTION)
    if c.brand:
        tags.append(f"Brand: {c.brand}")
    if ranked.badge is not None:
        tags.append(BADGE_LABELS[ranked.badge])
    return tags


def population_median(candidates: list[RankedCandidate], min_priced: int = 3) -> Optional[float]:
    """Median of positive prices, or ``None`` with fewer than ``min_priced`` of them."""
    prices = [r.candidate.price for r in candidates if r.candidate.price > 0]
    if len(prices) < min_priced:
        return None
    return median(prices)


# ── Public API ────────────────────────────────────────────────────────────────


def apply_guardrails(
    ranked: list[RankedCandidate],
    config: Optional[GuardrailConfig] = None,
) -> list[GuardedCandidate]:
    """Evaluate every candidate; never drops any.

    Args:
        ranked: Ranker output.
        config: Guardrail thresholds and platform lists (already merged with
            any per-request overrides). Defaults to ``GuardrailConfig()``.

    Returns:
        One ``GuardedCandidate`` per input, in input order.
    """
    config = config or GuardrailConfig()
    if not ranked:
        return []

    median_price = population_median(ranked, config.min_priced_for_median)
    is_only_option = len(ranked) == 1

    guarded: list[GuardedCandidate] = []
    for r in ranked:
        tier = platform_tier(r.candidate.platform, config)
        thresholds = resolve_thresholds(r.candidate, config)
        checks = (
            check_quality(r.candidate, thresholds),
            check_social_proof(r.candidate, thresholds),
            check_price_outlier(r.candidate, median_price, thresholds, config.good_deal_factor),
            check_platform(r.candidate, tier),
        )
        risk_reasons = tuple(ch.risk_reason for ch in checks if ch.risk_reason)
        tags = [ch.tag for ch in checks if ch.tag] + positive_signals(r, config)

        guarded.append(
            GuardedCandidate(
                candidate=r.candidate,
                score=r.score,
                confidence=r.confidence,
                breakdown=r.breakdown,
                badge=r.badge,
                is_recommended=all(ch.passed for ch in checks) or is_only_option,
                reasoning_tags=tuple(dict.fromkeys(tags)),
                is_risky=bool(risk_reasons),
                risk_reasons=risk_reasons,
                platform_tier=tier,
                thresholds=thresholds,
            )
        )

    stats = recommendation_stats(guarded)
    logger.debug(
        "Guardrails: %d total, %d verified, %d risky (median=%s)",
        stats.total, stats.verified, stats.risky, median_price,
    )
    return guarded


def recommended_only(guarded: list[GuardedCandidate]) -> list[GuardedCandidate]:
    """Strict view: recommended and not risky."""
    return [g for g in guarded if g.is_recommended and not g.is_risky]


def all_with_warnings(guarded: list[GuardedCandidate]) -> list[GuardedCandidate]:
    """Permissive view: everything, risky candidates included with their reasons."""
    return list(guarded)


def recommendation_stats(guarded: list[GuardedCandidate]) -> RecommendationStats:
    total = len(guarded)
    verified = sum(1 for g in guarded if g.is_recommended and not g.is_risky)
    risky = sum(1 for g in guarded if g.is_risky)
    return RecommendationStats(
        total=total,
        verified=verified,
        risky=risky,
        recommended_rate=round(verified / total, 4) if total else 0.0,
        risky_rate=round(risky / total, 4) if total else 0.0,
    )
