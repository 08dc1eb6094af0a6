"""
Recommendation pipeline orchestration.

``RecommendationPipeline.run`` executes one query end to end:

  Step 1 - Match:       coerce, dedup and filter raw candidates.
  Step 2 - Score:       weighted score + confidence, fail-closed filter.
  Step 3 - Rank:        exclusive badge assignment.
  Step 4 - Guardrails:  per-candidate checks with request overrides applied.
  Step 5 - Trust:       optional read-only annotation (skippable).
  Step 6 - Links:       optional affiliate links for the guarded set.

Steps 1–4 are pure and deterministic. Step 5 may consult an
``ExplanationProvider`` for near ties; step 6 may call an
``AffiliateLinkBuilder``. Neither can change which candidates were
selected, their badges or their guardrail flags: a link builder error is
recorded in ``PipelineResult.errors`` and the link is omitted.

Status
------
    "success" : at least one candidate survived scoring
    "empty"   : nothing to recommend (no matches, or a low-confidence top pick)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol, runtime_checkable
from uuid import uuid4

from dealfinder.config import AppConfig
from dealfinder.matching.matcher import match_candidates
from dealfinder.models.candidate import Candidate, SearchInput
from dealfinder.recommendations.guardrails import (
    GuardedCandidate,
    RecommendationStats,
    all_with_warnings,
    apply_guardrails,
    merge_guardrail_config,
    recommendation_stats,
    recommended_only,
)
from dealfinder.recommendations.ranker import RankedCandidate, assign_badges
from dealfinder.recommendations.scorer import ScoredCandidate, filter_by_confidence, score_all
from dealfinder.trust.annotator import TrustReport, annotate_candidates
from dealfinder.trust.explainer import ExplanationProvider

logger = logging.getLogger(__name__)


@runtime_checkable
class AffiliateLinkBuilder(Protocol):
    """Maps ``(platform, product id or URL)`` to a tracking URL."""

    def build(self, platform: str, product_id_or_url: str) -> str:
        ...


# ── Result types ──────────────────────────────────────────────────────────────

@dataclass
class PipelineResult:
    """Complete result of one pipeline run.

    Attributes:
        run_id:          Random hex id for log correlation.
        query:           The search the run answered.
        started_at:      UTC datetime when the run started.
        finished_at:     UTC datetime when the run finished.
        raw_count:       Records handed to the matcher.
        matched:         Matcher output.
        scored_all:      Every matched candidate scored, before the confidence filter.
        scored:          Scorer output (≤ top_n).
        ranked:          Ranker output.
        guarded:         Guardrail output (permissive view).
        trust:           Trust report, or ``None`` when annotation was skipped.
        affiliate_links: Tracking URL per candidate key.
        errors:          Non-fatal problems from optional collaborators.
        status:          "success" or "empty".
    """

    run_id:          str                           = field(default_factory=lambda: uuid4().hex)
    query:           Optional[SearchInput]         = None
    started_at:      Optional[datetime]            = None
    finished_at:     Optional[datetime]            = None
    raw_count:       int                           = 0
    matched:         list[Candidate]               = field(default_factory=list)
    scored_all:      list[ScoredCandidate]         = field(default_factory=list)
    scored:          list[ScoredCandidate]         = field(default_factory=list)
    ranked:          list[RankedCandidate]         = field(default_factory=list)
    guarded:         list[GuardedCandidate]        = field(default_factory=list)
    trust:           Optional[TrustReport]         = None
    affiliate_links: dict[tuple[str, str], str]    = field(default_factory=dict)
    errors:          list[str]                     = field(default_factory=list)
    status:          str                           = "started"

    @property
    def strict(self) -> list[GuardedCandidate]:
        """Recommended and not risky."""
        return recommended_only(self.guarded)

    @property
    def with_warnings(self) -> list[GuardedCandidate]:
        return all_with_warnings(self.guarded)

    @property
    def stats(self) -> RecommendationStats:
        return recommendation_stats(self.guarded)


class RecommendationPipeline:
    """Runs matcher → scorer → ranker → guardrails → trust for one query.

    Args:
        config:       Application config; each stage gets its own section.
        explainer:    Optional near-tie explanation provider.
        link_builder: Optional affiliate link builder.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        explainer: Optional[ExplanationProvider] = None,
        link_builder: Optional[AffiliateLinkBuilder] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.explainer = explainer
        self.link_builder = link_builder

    def run(
        self,
        search: SearchInput,
        raw_candidates: Iterable[Any],
        annotate: bool = True,
    ) -> PipelineResult:
        result = PipelineResult(query=search, started_at=datetime.now(tz=timezone.utc))
        raw = list(raw_candidates)
        result.raw_count = len(raw)

        logger.info(
            "Pipeline run %s: query=%r type=%s candidates=%d",
            result.run_id, search.query, search.query_type, len(raw),
        )

        # ── Steps 1–4: deterministic core ─────────────────────────────────────
        result.matched = match_candidates(search, raw, self.config.matching)
        result.scored_all = score_all(result.matched, self.config.scoring, search.source_price)
        result.scored = filter_by_confidence(result.scored_all, self.config.scoring)
        result.ranked = assign_badges(result.scored, self.config.ranking)

        guardrail_config = merge_guardrail_config(self.config.guardrails, search.guardrails)
        result.guarded = apply_guardrails(result.ranked, guardrail_config)

        # ── Step 5: trust annotation ──────────────────────────────────────────
        if annotate and result.guarded:
            category = search.extracted.category if search.extracted else None
            result.trust = annotate_candidates(
                result.guarded,
                self.config.trust,
                provider=self.explainer,
                query=search.query,
                category=category,
            )

        # ── Step 6: affiliate links ───────────────────────────────────────────
        if self.link_builder is not None:
            self._build_links(result)

        result.status = "success" if result.guarded else "empty"
        result.finished_at = datetime.now(tz=timezone.utc)

        stats = result.stats
        logger.info(
            "Pipeline run %s %s: matched=%d scored=%d/%d verified=%d risky=%d",
            result.run_id, result.status, len(result.matched), len(result.scored),
            len(result.scored_all), stats.verified, stats.risky,
            extra={
                "run_id": result.run_id,
                "status": result.status,
                "raw": result.raw_count,
                "matched": len(result.matched),
                "scored": len(result.scored),
                "verified": stats.verified,
                "risky": stats.risky,
            },
        )
        return result

    def _build_links(self, result: PipelineResult) -> None:
        for g in result.guarded:
            target = g.candidate.url or g.candidate.id
            try:
                result.affiliate_links[g.key] = self.link_builder.build(g.candidate.platform, target)
            except Exception as exc:
                msg = f"Affiliate link failed for {g.candidate.platform}/{g.candidate.id}: {exc}"
                logger.warning(msg)
                result.errors.append(msg)
