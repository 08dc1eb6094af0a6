"""
Tests for dealfinder/taxonomy/.

What we test
------------
  - Badge declaration order is the assignment priority.
  - Every badge and trust label has display metadata.
  - Enum values are the stable strings used in reports.
"""

from __future__ import annotations

from dealfinder.taxonomy.badge_taxonomy import BADGE_LABELS, Badge, PlatformTier
from dealfinder.taxonomy.trust_taxonomy import (
    LABEL_PRIORITY,
    SEVERITY_RANK,
    ConfidenceLevel,
    RiskSeverity,
    TrustLabel,
)


def test_badge_priority_order():
    assert list(Badge) == [Badge.BEST_CHOICE, Badge.BEST_VALUE, Badge.FASTEST, Badge.CHEAPEST]


def test_badge_labels_complete():
    assert set(BADGE_LABELS) == set(Badge)


def test_badge_values():
    assert [b.value for b in Badge] == ["best_choice", "best_value", "fastest", "cheapest"]
    assert PlatformTier.NEW == "new"


def test_label_priorities_unique_and_ordered():
    assert set(LABEL_PRIORITY) == set(TrustLabel)
    assert sorted(LABEL_PRIORITY.values()) == [1, 2, 3, 4, 5, 6]
    assert LABEL_PRIORITY[TrustLabel.BEST_VALUE] == 1


def test_severity_rank():
    assert max(RiskSeverity, key=SEVERITY_RANK.__getitem__) is RiskSeverity.HIGH


def test_confidence_level_display_values():
    assert [lvl.value for lvl in ConfidenceLevel] == ["Low", "Medium", "High"]
