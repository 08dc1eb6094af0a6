"""
Recommendation report writer: JSON and CSV output for one pipeline run.

All functions are pure serialization plus file I/O; they consume an
in-memory ``PipelineResult``.

Output files
------------
    {output_dir}/
      recommendations_{run_id}.json   -- full structured payload
      recommendations_{run_id}.csv    -- one row per guarded candidate

Trust data lives under a separate ``trust`` key per candidate so consumers
can drop it without touching the recommendation fields.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from dealfinder.recommendations.guardrails import GuardedCandidate

if TYPE_CHECKING:
    from dealfinder.pipeline.orchestrator import PipelineResult
    from dealfinder.trust.annotator import TrustAnnotation

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1"


def _trust_payload(annotation: "TrustAnnotation") -> dict[str, Any]:
    return {
        "labels": [
            {
                "label":        lbl.label.value,
                "display_text": lbl.display_text,
                "explanation":  lbl.explanation,
                "priority":     lbl.priority,
            }
            for lbl in annotation.labels
        ],
        "explanation": {
            "title":     annotation.explanation.title,
            "points":    list(annotation.explanation.points),
            "sentiment": annotation.explanation.sentiment.value,
        },
        "confidence": {
            "level":           annotation.confidence.level.value,
            "completeness":    annotation.confidence.completeness,
            "missing_metrics": list(annotation.confidence.missing_metrics),
            "reason":          annotation.confidence.reason,
        },
        "cta": {
            "variant": annotation.cta.variant.value,
            "copy":    annotation.cta.copy,
            "reason":  annotation.cta.reason,
        },
        "risk": {
            "has_risk":   annotation.risk.has_risk,
            "severity":   annotation.risk.severity.value,
            "warnings":   list(annotation.risk.warnings),
            "mitigation": annotation.risk.mitigation,
        },
    }


def candidate_payload(
    g: GuardedCandidate,
    annotation: Optional["TrustAnnotation"] = None,
    affiliate_url: Optional[str] = None,
) -> dict[str, Any]:
    c = g.candidate
    out: dict[str, Any] = {
        "id":                 c.id,
        "platform":           c.platform,
        "title":              c.title,
        "price":              c.price,
        "currency":           c.currency,
        "rating":             c.rating,
        "reviews_count":      c.reviews_count,
        "shipping_price":     c.shipping_price,
        "shipping_time_days": c.shipping_time_days,
        "category":           c.category,
        "brand":              c.brand,
        "url":                c.url,
        "score":              g.score,
        "confidence":         g.confidence,
        "score_breakdown":    g.breakdown.to_dict() if g.breakdown else None,
        "badge":              g.badge.value if g.badge else None,
        "is_recommended":     g.is_recommended,
        "reasoning_tags":     list(g.reasoning_tags),
        "is_risky":           g.is_risky,
        "risk_reasons":       list(g.risk_reasons),
        "platform_tier":      g.platform_tier.value,
        "affiliate_url":      affiliate_url,
    }
    if annotation is not None:
        out["trust"] = _trust_payload(annotation)
    return out


def build_recommendation_payload(result: "PipelineResult", strict: bool = False) -> dict[str, Any]:
    """JSON-serialisable dict for ``result``.

    Args:
        result: Completed pipeline run.
        strict: Only include candidates that are recommended and not risky.
    """
    guarded = result.strict if strict else result.guarded
    trust = result.trust
    query = result.query

    return {
        "schema_version": SCHEMA_VERSION,
        "run_id":         result.run_id,
        "generated_at":   result.finished_at.isoformat() if result.finished_at else None,
        "status":         result.status,
        "view":           "strict" if strict else "all_with_warnings",
        "query":          query.model_dump(mode="json") if query is not None else None,
        "counts": {
            "raw":     result.raw_count,
            "matched": len(result.matched),
            "scored":  len(result.scored),
        },
        "stats":          asdict(result.stats),
        "choice_explanation": (
            {"text": trust.choice.text, "generated_by_ai": trust.choice.generated_by_ai}
            if trust is not None and trust.choice is not None else None
        ),
        "candidates": [
            candidate_payload(
                g,
                trust.for_candidate(g) if trust is not None else None,
                result.affiliate_links.get(g.key),
            )
            for g in guarded
        ],
        "errors": list(result.errors),
    }


def write_recommendation_json(
    result: "PipelineResult",
    output_dir: Path,
    strict: bool = False,
) -> Path:
    """Write the structured payload; returns the file path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"recommendations_{result.run_id}.json"
    payload = build_recommendation_payload(result, strict=strict)
    json_path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
    logger.info("Recommendation JSON written: %s", json_path)
    return json_path


def write_recommendation_csv(
    result: "PipelineResult",
    output_dir: Path,
    strict: bool = False,
) -> Path:
    """Write one row per candidate.

    Columns: rank, platform, id, title, price, rating, reviews_count,
             shipping_time_days, score, confidence, badge, is_recommended,
             is_risky, reasoning_tags, risk_reasons.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_path = output_dir / f"recommendations_{result.run_id}.csv"
    guarded = result.strict if strict else result.guarded

    fieldnames = [
        "rank", "platform", "id", "title", "price", "rating", "reviews_count",
        "shipping_time_days", "score", "confidence", "badge", "is_recommended",
        "is_risky", "reasoning_tags", "risk_reasons",
    ]

    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for rank, g in enumerate(guarded, start=1):
            c = g.candidate
            writer.writerow(
                {
                    "rank":               rank,
                    "platform":           c.platform,
                    "id":                 c.id,
                    "title":              c.title,
                    "price":              c.price,
                    "rating":             c.rating if c.rating is not None else "",
                    "reviews_count":      c.reviews_count if c.reviews_count is not None else "",
                    "shipping_time_days": c.shipping_time_days if c.shipping_time_days is not None else "",
                    "score":              g.score,
                    "confidence":         g.confidence,
                    "badge":              g.badge.value if g.badge else "",
                    "is_recommended":     g.is_recommended,
                    "is_risky":           g.is_risky,
                    "reasoning_tags":     "; ".join(g.reasoning_tags),
                    "risk_reasons":       "; ".join(g.risk_reasons),
                }
            )

    logger.info("Recommendation CSV written: %s (%d rows)", csv_path, len(guarded))
    return csv_path
