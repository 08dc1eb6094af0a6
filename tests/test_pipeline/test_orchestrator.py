"""
Tests for dealfinder/pipeline/orchestrator.py.

Runs the full matcher → scorer → ranker → guardrails → trust chain over a
small multi-platform listing set.

What we test
------------
RecommendationPipeline.run():
  - Counts, status and canonical ordering for a realistic query.
  - Every badge is assigned at most once, to the expected candidates.
  - Deterministic: reversing the input gives identical output, also when
    two platforms share a listing id.
  - Per-request guardrail overrides reach the guardrail stage.
  - The end-of-run log record carries run_id, status and stage counts.
  - Low-confidence top pick and no matches → status "empty".
  - annotate=False skips trust; trust never alters upstream results.
  - Near-tie explanation provider is consulted.
  - Affiliate links: built per candidate; builder errors are recorded and
    do not affect selection.
"""

from __future__ import annotations

import logging

from dealfinder.models.candidate import SearchInput
from dealfinder.pipeline.orchestrator import AffiliateLinkBuilder, RecommendationPipeline
from dealfinder.taxonomy.badge_taxonomy import Badge


# ── Fixtures ──────────────────────────────────────────────────────────────────

def _search(**fields) -> SearchInput:
    return SearchInput.model_validate({"query": "Sony WH-1000XM5 wireless headphones", **fields})


def _snapshot(result) -> list[tuple]:
    return [
        (g.key, g.score, g.confidence, g.badge, g.is_recommended, g.is_risky, g.risk_reasons)
        for g in result.guarded
    ]


class _LinkBuilder:
    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on

    def build(self, platform: str, product_id_or_url: str) -> str:
        if platform == self.fail_on:
            raise ConnectionError("affiliate service unavailable")
        return f"https://go.example.test/{platform}/{product_id_or_url}"


class _StubProvider:
    def __init__(self):
        self.calls = 0

    def explain(self, top, runner_up, query):
        self.calls += 1
        return f"{top.id} narrowly beats {runner_up.id}."


# ── End to end ────────────────────────────────────────────────────────────────

class TestRun:
    def test_counts_and_status(self, listing_records):
        result = RecommendationPipeline().run(_search(), listing_records)
        assert result.status == "success"
        assert result.raw_count == 6
        assert len(result.matched) == 4
        assert len(result.scored) == 4
        assert result.started_at <= result.finished_at
        assert result.errors == []

    def test_canonical_order(self, listing_records):
        result = RecommendationPipeline().run(_search(), listing_records)
        keys = [(-g.score, g.candidate.price, g.id) for g in result.guarded]
        assert keys == sorted(keys)
        assert result.guarded[0].id == "E7"

    def test_badges(self, listing_records):
        result = RecommendationPipeline().run(_search(), listing_records)
        badges = {g.id: g.badge for g in result.guarded}
        assert badges == {
            "E7": Badge.BEST_CHOICE,
            "A1": Badge.BEST_VALUE,
            "W3": Badge.FASTEST,
            "B2": Badge.CHEAPEST,
        }

    def test_all_verified_with_default_guardrails(self, listing_records):
        result = RecommendationPipeline().run(_search(), listing_records)
        assert result.stats.verified == 4
        assert [g.id for g in result.strict] == [g.id for g in result.guarded]
        assert result.with_warnings == result.guarded

    def test_deterministic_under_reordering(self, listing_records):
        records = [r for r in listing_records if "duplicate" not in r["title"]]
        pipeline = RecommendationPipeline()
        forward = pipeline.run(_search(), records)
        backward = pipeline.run(_search(), list(reversed(records)))
        assert _snapshot(forward) == _snapshot(backward)
        assert forward.trust.choice == backward.trust.choice

    def test_deterministic_with_shared_id_across_platforms(self):
        listing = {
            "id": "X1", "title": "Sony WH-1000XM5 wireless headphones", "price": 300,
            "rating": 4.6, "reviews_count": 500, "shipping_price": 0, "shipping_time_days": 2,
        }
        records = [
            {**listing, "platform": "ebay"},
            {**listing, "platform": "amazon"},
            {**listing, "id": "Z9", "platform": "walmart", "price": 320, "rating": 4.4},
        ]
        pipeline = RecommendationPipeline()
        forward = pipeline.run(_search(), records)
        backward = pipeline.run(_search(), list(reversed(records)))

        assert _snapshot(forward) == _snapshot(backward)
        assert [g.key for g in forward.guarded][:2] == [("amazon", "X1"), ("ebay", "X1")]
        badges = {g.key: g.badge for g in forward.guarded}
        assert badges[("amazon", "X1")] is Badge.BEST_CHOICE
        assert badges[("ebay", "X1")] is Badge.BEST_VALUE
        assert forward.trust.choice == backward.trust.choice

    def test_request_guardrail_overrides(self, listing_records):
        search = _search(guardrails={"categories": {"Electronics": {"min_rating": 4.65}}})
        result = RecommendationPipeline().run(search, listing_records)
        risky = {g.id: g.risk_reasons for g in result.guarded if g.is_risky}
        assert set(risky) == {"E7", "B2"}
        assert all(reasons[0].startswith("Rating") for reasons in risky.values())
        assert {g.id for g in result.strict} == {"A1", "W3"}

    def test_no_matches(self):
        result = RecommendationPipeline().run(_search(), [{"id": "1", "title": "Garden hose", "price": 20}])
        assert result.status == "empty"
        assert result.guarded == []
        assert result.trust is None

    def test_summary_log_carries_run_fields(self, listing_records, caplog):
        with caplog.at_level(logging.INFO, logger="dealfinder.pipeline.orchestrator"):
            result = RecommendationPipeline().run(_search(), listing_records)
        summary = [r for r in caplog.records if getattr(r, "status", None) is not None]
        assert len(summary) == 1
        assert summary[0].run_id == result.run_id
        assert summary[0].status == "success"
        assert (summary[0].raw, summary[0].matched, summary[0].verified) == (6, 4, 4)

    def test_low_confidence_top_is_empty(self):
        raw = [
            {"id": "1", "platform": "amazon", "title": "Sony WH-1000XM5 wireless headphones", "price": 300},
            {"id": "2", "platform": "ebay", "title": "Sony WH-1000XM5 wireless headphones", "price": 320},
        ]
        result = RecommendationPipeline().run(_search(), raw)
        assert len(result.scored_all) == 2
        assert result.scored == []
        assert result.status == "empty"


# ── Optional stages ───────────────────────────────────────────────────────────

class TestTrustStage:
    def test_skipped(self, listing_records):
        result = RecommendationPipeline().run(_search(), listing_records, annotate=False)
        assert result.trust is None
        assert result.status == "success"

    def test_does_not_change_selection(self, listing_records):
        with_trust = RecommendationPipeline().run(_search(), listing_records)
        without = RecommendationPipeline().run(_search(), listing_records, annotate=False)
        assert _snapshot(with_trust) == _snapshot(without)
        assert len(with_trust.trust.annotations) == 4

    def test_near_tie_provider(self, listing_records):
        provider = _StubProvider()
        result = RecommendationPipeline(explainer=provider).run(_search(), listing_records)
        assert provider.calls == 1
        assert result.trust.choice.text == "E7 narrowly beats W3."
        assert result.trust.choice.generated_by_ai

    def test_template_without_provider(self, listing_records):
        result = RecommendationPipeline().run(_search(), listing_records)
        assert "edges out" in result.trust.choice.text


class TestAffiliateLinks:
    def test_protocol(self):
        assert isinstance(_LinkBuilder(), AffiliateLinkBuilder)

    def test_links_built(self, listing_records):
        result = RecommendationPipeline(link_builder=_LinkBuilder()).run(_search(), listing_records)
        assert result.affiliate_links[("walmart", "W3")] == "https://go.example.test/walmart/W3"
        assert len(result.affiliate_links) == 4

    def test_builder_error_recorded(self, listing_records):
        failing = RecommendationPipeline(link_builder=_LinkBuilder(fail_on="ebay")).run(_search(), listing_records)
        clean = RecommendationPipeline().run(_search(), listing_records)
        assert ("ebay", "E7") not in failing.affiliate_links
        assert len(failing.affiliate_links) == 3
        assert len(failing.errors) == 1
        assert "ebay/E7" in failing.errors[0]
        assert failing.status == "success"
        assert _snapshot(failing) == _snapshot(clean)
