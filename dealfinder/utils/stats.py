"""
Small numeric helpers shared by the scoring, guardrail and trust stages.

All helpers tolerate empty input and return ``None`` (or a neutral value)
instead of raising; population statistics are computed once per request and
passed into per-candidate code as plain floats.
"""

from __future__ import annotations

import math
import statistics
from typing import Any, Iterable, Optional


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def finite_or_none(value: Any) -> Optional[float]:
    """Coerce ``value`` to a finite float, or ``None`` when that is impossible.

    Booleans are rejected explicitly (``True`` is not a price). Numeric
    strings such as ``"19.99"`` or ``" 4.5 "`` are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def mean(values: Iterable[float]) -> Optional[float]:
    data = list(values)
    return statistics.fmean(data) if data else None


def median(values: Iterable[float]) -> Optional[float]:
    data = list(values)
    return statistics.median(data) if data else None


def pstdev(values: Iterable[float]) -> Optional[float]:
    """Population standard deviation; ``None`` for fewer than 2 values."""
    data = list(values)
    return statistics.pstdev(data) if len(data) >= 2 else None


def percentile_rank(value: float, values: Iterable[float]) -> float:
    """Percentile (0–100) of ``value`` within ``values``.

    Rank is the index of the first element ``>= value`` in ascending order,
    so ties share the lowest rank. Returns 0.0 for an empty population.
    """
    data = sorted(values)
    if not data:
        return 0.0
    index = next((i for i, v in enumerate(data) if v >= value), len(data))
    return index / len(data) * 100.0
