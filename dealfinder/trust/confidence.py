"""
Data-completeness indicator. Reflects how much of the listing is known, not
how certain any model is, and is never shown as a percentage to end users.

Level is decided by the four key fields (price, rating, reviews, delivery):
4 present → High, 2–3 → Medium, otherwise Low. Shipping cost only affects
the completeness figure.
"""

from __future__ import annotations

from dataclasses import dataclass

from dealfinder.models.candidate import Candidate
from dealfinder.taxonomy.trust_taxonomy import ConfidenceLevel


@dataclass(frozen=True)
class ConfidenceIndicator:
    level:           ConfidenceLevel
    completeness:    int
    missing_metrics: tuple[str, ...]
    reason:          str


def data_completeness(candidate: Candidate) -> dict[str, bool]:
    return {
        "Price":         candidate.price is not None,
        "Rating":        candidate.rating is not None,
        "Review count":  candidate.reviews_count is not None,
        "Delivery time": candidate.shipping_time_days is not None,
        "Shipping cost": candidate.shipping_price is not None,
    }


def confidence_indicator(candidate: Candidate) -> ConfidenceIndicator:
    metrics = data_completeness(candidate)
    missing = tuple(name for name, present in metrics.items() if not present)
    key_count = sum(
        metrics[name] for name in ("Price", "Rating", "Review count", "Delivery time")
    )

    if key_count >= 4:
        level = ConfidenceLevel.HIGH
        reason = "Complete product information available"
    elif key_count >= 2:
        level = ConfidenceLevel.MEDIUM
        reason = f"Missing: {', '.join(missing)}"
    else:
        level = ConfidenceLevel.LOW
        reason = f"Limited information available, {', '.join(missing[:2])} missing"

    return ConfidenceIndicator(
        level=level,
        completeness=round(sum(metrics.values()) / len(metrics) * 100),
        missing_metrics=missing,
        reason=reason,
    )
