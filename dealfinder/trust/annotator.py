"""
Trust annotation entry point.

``annotate_candidates`` reads the guarded set and returns a separate
``TrustReport``. It never touches ``score``, ``badge``, ``is_recommended``
or ``is_risky``; dropping the report leaves upstream results unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from dealfinder.config import TrustConfig
from dealfinder.recommendations.guardrails import GuardedCandidate
from dealfinder.trust.confidence import ConfidenceIndicator, confidence_indicator
from dealfinder.trust.context import TrustContext
from dealfinder.trust.cta import CallToAction, call_to_action
from dealfinder.trust.explainer import (
    ChoiceExplanation,
    Explanation,
    ExplanationProvider,
    explain_candidate,
    explain_choice,
)
from dealfinder.trust.labels import LabelDisplay, generate_labels
from dealfinder.trust.risk import RiskDisclosure, risk_disclosure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrustAnnotation:
    key:         tuple[str, str]
    labels:      tuple[LabelDisplay, ...]
    explanation: Explanation
    confidence:  ConfidenceIndicator
    cta:         CallToAction
    risk:        RiskDisclosure


@dataclass(frozen=True)
class TrustReport:
    annotations: dict[tuple[str, str], TrustAnnotation] = field(default_factory=dict)
    choice:      Optional[ChoiceExplanation] = None

    def for_candidate(self, g: GuardedCandidate) -> Optional[TrustAnnotation]:
        return self.annotations.get(g.key)


def annotate_candidate(g: GuardedCandidate, ctx: TrustContext) -> TrustAnnotation:
    return TrustAnnotation(
        key=g.key,
        labels=tuple(generate_labels(g, ctx)),
        explanation=explain_candidate(g, ctx),
        confidence=confidence_indicator(g.candidate),
        cta=call_to_action(g),
        risk=risk_disclosure(g, ctx),
    )


def annotate_candidates(
    guarded: list[GuardedCandidate],
    config: Optional[TrustConfig] = None,
    provider: Optional[ExplanationProvider] = None,
    query: str = "",
    category: Optional[str] = None,
) -> TrustReport:
    """Build trust data for every guarded candidate.

    Args:
        guarded:  Guardrail output (the population every average is taken over).
        config:   Trust thresholds. Defaults to ``TrustConfig()``.
        provider: Optional near-tie explanation provider.
        query:    User query, forwarded to the provider.
        category: Category name used in badge explanation text.
    """
    config = config or TrustConfig()
    if not guarded:
        return TrustReport()

    ctx = TrustContext.build(guarded, config, category)
    annotations = {g.key: annotate_candidate(g, ctx) for g in guarded}
    choice = explain_choice(guarded, config, provider, query)

    logger.debug(
        "Trust: %d annotations, choice by %s",
        len(annotations), "provider" if choice and choice.generated_by_ai else "template",
    )
    return TrustReport(annotations=annotations, choice=choice)
