"""
Tests for dealfinder/utils/stats.py.

What we test
------------
  - finite_or_none(): numeric strings, booleans, NaN / inf, garbage.
  - mean / median / pstdev: empty and short inputs return None.
  - percentile_rank(): ties share the lowest rank; empty population → 0.
  - clamp(): bounds.
"""

from __future__ import annotations

import math

import pytest

from dealfinder.utils.stats import clamp, finite_or_none, mean, median, percentile_rank, pstdev


class TestFiniteOrNone:
    @pytest.mark.parametrize(
        "value, expected",
        [(3, 3.0), ("19.99", 19.99), (" 4.5 ", 4.5), ("1,299", 1299.0), (0, 0.0)],
    )
    def test_accepted(self, value, expected):
        assert finite_or_none(value) == expected

    @pytest.mark.parametrize("value", [None, True, False, "", "abc", math.nan, math.inf, -math.inf, [1]])
    def test_rejected(self, value):
        assert finite_or_none(value) is None


class TestAggregates:
    def test_empty(self):
        assert mean([]) is None
        assert median([]) is None
        assert pstdev([]) is None

    def test_pstdev_needs_two_values(self):
        assert pstdev([5.0]) is None
        assert pstdev([1.0, 3.0]) == pytest.approx(1.0)

    def test_median_even(self):
        assert median([100.0, 20.0, 110.0, 90.0]) == 95.0


class TestPercentileRank:
    def test_ties_share_lowest_rank(self):
        assert percentile_rank(10, [5, 10, 10, 20]) == 25.0

    def test_max(self):
        assert percentile_rank(1000, [3, 40, 100, 1000]) == 75.0

    def test_empty(self):
        assert percentile_rank(1, []) == 0.0


def test_clamp():
    assert clamp(-0.2) == 0.0
    assert clamp(1.7) == 1.0
    assert clamp(0.4) == 0.4
    assert clamp(7, 0, 5) == 5
