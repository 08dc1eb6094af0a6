"""
Badge and platform-tier taxonomy for the decision pipeline.

``Badge`` is the exclusive categorical label the ranker attaches to at most
one candidate per query. The enum order is the assignment priority:
``BEST_CHOICE`` is evaluated first and ``CHEAPEST`` last.

This module has NO imports from any other ``dealfinder`` package.
"""

from enum import StrEnum


class Badge(StrEnum):
    """Exclusive recommendation badge, declared in assignment priority order."""

    BEST_CHOICE = "best_choice"
    """Highest score among well-rated, well-reviewed candidates."""

    BEST_VALUE = "best_value"
    """Highest ``rating · ln(max(1, reviews)) / price``."""

    FASTEST = "fastest"
    """Shortest known delivery time; ties go to the higher score."""

    CHEAPEST = "cheapest"
    """Lowest price among candidates that clear a rating floor."""


BADGE_LABELS: dict[Badge, str] = {
    Badge.BEST_CHOICE: "Category Winner",
    Badge.BEST_VALUE:  "Best Value",
    Badge.FASTEST:     "Fastest Delivery",
    Badge.CHEAPEST:    "Most Affordable",
}


class PlatformTier(StrEnum):
    """Trust classification of a source platform for guardrail strictness."""

    TRUSTED = "trusted"
    STANDARD = "standard"
    NEW = "new"
