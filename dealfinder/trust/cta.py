"""Call-to-action variant selection from badge and risk state."""

from __future__ import annotations

from dataclasses import dataclass

from dealfinder.recommendations.guardrails import GuardedCandidate
from dealfinder.taxonomy.badge_taxonomy import Badge
from dealfinder.taxonomy.trust_taxonomy import CtaVariant

CTA_COPY: dict[CtaVariant, str] = {
    CtaVariant.BUY_RECOMMENDATION: "Buy this recommendation",
    CtaVariant.CHECK_PRICE:        "Check price on store",
    CtaVariant.GET_OPTION:         "Get this option",
}


@dataclass(frozen=True)
class CallToAction:
    variant: CtaVariant
    copy:    str
    reason:  str


def select_variant(g: GuardedCandidate) -> CtaVariant:
    if g.badge is Badge.BEST_CHOICE:
        return CtaVariant.BUY_RECOMMENDATION
    if g.badge in (Badge.BEST_VALUE, Badge.CHEAPEST):
        return CtaVariant.CHECK_PRICE
    if g.is_risky:
        return CtaVariant.GET_OPTION
    return CtaVariant.CHECK_PRICE


def call_to_action(g: GuardedCandidate) -> CallToAction:
    variant = select_variant(g)
    if variant is CtaVariant.BUY_RECOMMENDATION:
        reason = "Strong confidence, best choice product"
    elif variant is CtaVariant.CHECK_PRICE:
        if g.badge is Badge.CHEAPEST:
            reason = "Price-focused product, lighter CTA to reduce friction"
        else:
            reason = "Standard product, encourage price comparison"
    else:
        reason = "Lower confidence, softer CTA to reduce friction"
    return CallToAction(variant=variant, copy=CTA_COPY[variant], reason=reason)
