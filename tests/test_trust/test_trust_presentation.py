"""
Tests for dealfinder/trust/confidence.py, cta.py and risk.py.

What we test
------------
confidence_indicator():
  - High with all four key fields; Medium with two or three; Low otherwise.
  - Completeness is a rounded percentage over five fields.

call_to_action():
  - best_choice → buy; best_value / cheapest → check price;
    risky without a badge → get option; everything else → check price.

risk_disclosure():
  - Low rating, few reviews, slow delivery and suspiciously low price
    warnings; reported severity is the highest triggered.
  - "Higher price without better quality" for overpriced, below-average rated.
  - Mitigation text for budget options.
  - No warnings → has_risk False.
"""

from __future__ import annotations

import pytest

from dealfinder.recommendations.guardrails import GuardedCandidate, apply_guardrails
from dealfinder.taxonomy.badge_taxonomy import Badge
from dealfinder.taxonomy.trust_taxonomy import ConfidenceLevel, CtaVariant, RiskSeverity
from dealfinder.trust.confidence import confidence_indicator
from dealfinder.trust.context import TrustContext
from dealfinder.trust.cta import CTA_COPY, call_to_action
from dealfinder.trust.risk import risk_disclosure


def _guarded(make_candidate, badge=None, is_risky=False) -> GuardedCandidate:
    return GuardedCandidate(candidate=make_candidate(), score=0.5, confidence=0.8,
                            badge=badge, is_risky=is_risky)


def _get(guarded, id):
    return next(g for g in guarded if g.id == id)


# ── Confidence indicator ──────────────────────────────────────────────────────

class TestConfidenceIndicator:
    def test_high(self, make_candidate):
        ind = confidence_indicator(make_candidate(rating=4.5, reviews_count=10, shipping_time_days=3, shipping_price=0))
        assert ind.level is ConfidenceLevel.HIGH
        assert ind.completeness == 100
        assert ind.missing_metrics == ()
        assert ind.reason == "Complete product information available"

    def test_high_without_shipping_cost(self, make_candidate):
        ind = confidence_indicator(make_candidate(rating=4.5, reviews_count=10, shipping_time_days=3))
        assert ind.level is ConfidenceLevel.HIGH
        assert ind.completeness == 80

    def test_medium(self, make_candidate):
        ind = confidence_indicator(make_candidate(reviews_count=10))
        assert ind.level is ConfidenceLevel.MEDIUM
        assert ind.reason == "Missing: Rating, Delivery time, Shipping cost"

    def test_low(self, make_candidate):
        ind = confidence_indicator(make_candidate())
        assert ind.level is ConfidenceLevel.LOW
        assert ind.completeness == 20
        assert ind.reason == "Limited information available, Rating, Review count missing"


# ── Call to action ────────────────────────────────────────────────────────────

class TestCallToAction:
    @pytest.mark.parametrize(
        "badge, is_risky, expected",
        [
            (Badge.BEST_CHOICE, True, CtaVariant.BUY_RECOMMENDATION),
            (Badge.BEST_VALUE, False, CtaVariant.CHECK_PRICE),
            (Badge.CHEAPEST, True, CtaVariant.CHECK_PRICE),
            (None, True, CtaVariant.GET_OPTION),
            (Badge.FASTEST, False, CtaVariant.CHECK_PRICE),
            (None, False, CtaVariant.CHECK_PRICE),
        ],
    )
    def test_variant(self, make_candidate, badge, is_risky, expected):
        cta = call_to_action(_guarded(make_candidate, badge, is_risky))
        assert cta.variant is expected
        assert cta.copy == CTA_COPY[expected]

    def test_cheapest_reason(self, make_candidate):
        cta = call_to_action(_guarded(make_candidate, Badge.CHEAPEST))
        assert cta.reason == "Price-focused product, lighter CTA to reduce friction"


# ── Risk disclosure ───────────────────────────────────────────────────────────

class TestRiskDisclosure:
    def test_multiple_warnings_highest_severity(self, make_ranked):
        guarded = apply_guardrails([
            make_ranked("x", price=10.0, rating=3.0, reviews_count=2, shipping_time_days=15),
            make_ranked("a", price=100.0, rating=4.5, reviews_count=100, shipping_time_days=2),
            make_ranked("b", price=100.0, rating=4.5, reviews_count=100, shipping_time_days=2),
            make_ranked("c", price=100.0, rating=4.5, reviews_count=100, shipping_time_days=2),
        ])
        risk = risk_disclosure(_get(guarded, "x"), TrustContext.build(guarded))
        assert risk.has_risk
        assert risk.severity is RiskSeverity.HIGH
        assert risk.warnings == (
            "Lower rating than average (3.0/5)",
            "Fewer reviews than average (only 2 reviews)",
            "Longer delivery time (15 days vs typical 5)",
            "Unusually low price, verify authenticity before buying",
        )
        assert risk.mitigation == "Consider as a budget option, good for less demanding use cases"

    def test_overpriced(self, make_ranked):
        guarded = apply_guardrails([
            make_ranked("p", price=300.0, rating=4.0, reviews_count=50),
            make_ranked("q", price=100.0, rating=4.6, reviews_count=50),
            make_ranked("r", price=100.0, rating=4.6, reviews_count=50),
        ])
        risk = risk_disclosure(_get(guarded, "p"), TrustContext.build(guarded))
        assert risk.warnings == ("Higher price without better quality",)
        assert risk.severity is RiskSeverity.LOW
        assert risk.mitigation is None

    def test_new_product_mitigation(self, make_ranked):
        guarded = apply_guardrails([
            make_ranked("n", price=100.0, rating=4.7, reviews_count=3),
            make_ranked("m", price=100.0, rating=4.5, reviews_count=300),
        ])
        risk = risk_disclosure(_get(guarded, "n"), TrustContext.build(guarded))
        assert risk.severity is RiskSeverity.MEDIUM
        assert risk.mitigation == "Newer product with positive early feedback, low risk if budget allows"

    def test_no_risk(self, make_ranked):
        guarded = apply_guardrails([
            make_ranked("a", price=100.0, rating=4.5, reviews_count=100, shipping_time_days=2),
            make_ranked("b", price=110.0, rating=4.4, reviews_count=80, shipping_time_days=3),
        ])
        risk = risk_disclosure(_get(guarded, "a"), TrustContext.build(guarded))
        assert not risk.has_risk
        assert risk.warnings == ()
        assert risk.mitigation is None
