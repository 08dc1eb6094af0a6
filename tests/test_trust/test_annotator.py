"""
Tests for dealfinder/trust/annotator.py.

What we test
------------
annotate_candidates():
  - One annotation per guarded candidate, keyed by (platform, id).
  - Guarded candidates are left unchanged (score, badge, flags).
  - Query-level choice explanation is attached; provider is forwarded.
  - Empty input → empty report.

TrustReport.for_candidate():
  - Lookup by candidate key; None for unknown candidates.
"""

from __future__ import annotations

import copy

from dealfinder.recommendations.guardrails import apply_guardrails
from dealfinder.taxonomy.badge_taxonomy import Badge
from dealfinder.trust.annotator import TrustReport, annotate_candidates


class _EchoProvider:
    def explain(self, top, runner_up, query):
        return f"{top.id} beats {runner_up.id} for {query}."


def _population(make_ranked):
    return apply_guardrails([
        make_ranked("a", 0.82, badge=Badge.BEST_CHOICE, price=100.0, rating=4.8,
                    reviews_count=900, shipping_time_days=2, shipping_price=0),
        make_ranked("b", 0.78, badge=Badge.CHEAPEST, price=80.0, rating=4.1,
                    reviews_count=60, shipping_time_days=4),
        make_ranked("c", 0.40, platform="unknown", price=140.0, rating=3.2, reviews_count=4),
    ])


class TestAnnotateCandidates:
    def test_one_annotation_per_candidate(self, make_ranked):
        guarded = _population(make_ranked)
        report = annotate_candidates(guarded)
        assert set(report.annotations) == {g.key for g in guarded}
        for g in guarded:
            assert report.for_candidate(g).key == g.key

    def test_does_not_modify_guarded(self, make_ranked):
        guarded = _population(make_ranked)
        before = copy.deepcopy(guarded)
        annotate_candidates(guarded, provider=_EchoProvider(), query="headphones")
        assert guarded == before

    def test_annotation_contents(self, make_ranked):
        guarded = _population(make_ranked)
        report = annotate_candidates(guarded, category="Headphones")
        a = report.for_candidate(guarded[0])
        c = report.for_candidate(guarded[2])
        assert a.cta.copy == "Buy this recommendation"
        assert a.confidence.level.value == "High"
        assert c.risk.has_risk
        assert c.cta.copy == "Get this option"

    def test_choice_with_provider(self, make_ranked):
        report = annotate_candidates(_population(make_ranked), provider=_EchoProvider(), query="headphones")
        assert report.choice.text == "a beats b for headphones."
        assert report.choice.generated_by_ai

    def test_choice_without_provider(self, make_ranked):
        report = annotate_candidates(_population(make_ranked))
        assert "edges out" in report.choice.text
        assert not report.choice.generated_by_ai

    def test_empty(self):
        report = annotate_candidates([])
        assert report.annotations == {}
        assert report.choice is None


class TestTrustReport:
    def test_unknown_candidate(self, make_ranked):
        (g,) = apply_guardrails([make_ranked("zz")])
        assert TrustReport().for_candidate(g) is None
