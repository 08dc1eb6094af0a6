"""
Risk disclosure: short warnings shown only when a candidate falls short of
population norms, with an overall severity and an optional mitigation.

Warnings (severity in brackets)
-------------------------------
    rating < 3.5                                   [medium]
    reviews < 5                                    [medium]
    delivery > average + 5 days                    [low]
    price > 1.3 × average with below-average rating [low]
    price < 0.3 × average positive price           [high]

The reported severity is the highest one triggered.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from dealfinder.recommendations.guardrails import GuardedCandidate
from dealfinder.taxonomy.trust_taxonomy import SEVERITY_RANK, RiskSeverity
from dealfinder.trust.context import TrustContext


@dataclass(frozen=True)
class RiskDisclosure:
    has_risk:   bool
    severity:   RiskSeverity
    warnings:   tuple[str, ...]
    mitigation: Optional[str] = None


def _fmt_days(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def identify_risks(g: GuardedCandidate, ctx: TrustContext) -> list[tuple[str, RiskSeverity]]:
    c = g.candidate
    cfg = ctx.config
    found: list[tuple[str, RiskSeverity]] = []

    if c.rating and c.rating < cfg.low_rating_threshold:
        found.append((f"Lower rating than average ({c.rating:.1f}/5)", RiskSeverity.MEDIUM))

    if c.reviews_count and c.reviews_count < cfg.low_review_threshold:
        found.append((f"Fewer reviews than average (only {c.reviews_count} reviews)", RiskSeverity.MEDIUM))

    if c.shipping_time_days and c.shipping_time_days > ctx.avg_shipping_days + 5:
        found.append((
            f"Longer delivery time ({_fmt_days(c.shipping_time_days)} days "
            f"vs typical {round(ctx.avg_shipping_days)})",
            RiskSeverity.LOW,
        ))

    if c.price > 0 and c.rating and c.reviews_count:
        if c.price > ctx.avg_price * 1.3 and c.rating < ctx.avg_rating:
            found.append(("Higher price without better quality", RiskSeverity.LOW))

    if c.price > 0 and ctx.avg_positive_price and c.price < ctx.avg_positive_price * 0.3:
        found.append(("Unusually low price, verify authenticity before buying", RiskSeverity.HIGH))

    return found


def _mitigation(g: GuardedCandidate, ctx: TrustContext) -> Optional[str]:
    c = g.candidate
    cfg = ctx.config
    if c.price > 0 and c.price < ctx.avg_price * 0.7:
        return "Consider as a budget option, good for less demanding use cases"
    if (
        c.reviews_count and c.reviews_count < cfg.low_review_threshold
        and c.rating and c.rating >= cfg.min_rating_for_safe
    ):
        return "Newer product with positive early feedback, low risk if budget allows"
    if c.rating and c.rating < cfg.low_rating_threshold and c.price < ctx.avg_price:
        return "Read customer reviews carefully before purchasing"
    return None


def risk_disclosure(g: GuardedCandidate, ctx: TrustContext) -> RiskDisclosure:
    found = identify_risks(g, ctx)
    if not found:
        return RiskDisclosure(has_risk=False, severity=RiskSeverity.LOW, warnings=())
    severity = max((sev for _, sev in found), key=SEVERITY_RANK.__getitem__)
    return RiskDisclosure(
        has_risk=True,
        severity=severity,
        warnings=tuple(text for text, _ in found),
        mitigation=_mitigation(g, ctx),
    )
