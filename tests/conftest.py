"""
Shared pytest fixtures and factories for the dealfinder test suite.

Provides:
  - ``make_candidate``: build a ``Candidate`` with sensible defaults.
  - ``make_scored`` / ``make_ranked``: wrap candidates at a fixed score,
    bypassing the scorer, for ranker / guardrail / trust tests.
  - ``app_config``: built-in defaults (no TOML, no environment).
  - ``listing_records``: a small realistic multi-platform raw listing set.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from dealfinder.config import AppConfig
from dealfinder.models.candidate import Candidate
from dealfinder.recommendations.ranker import RankedCandidate
from dealfinder.recommendations.scorer import ScoredCandidate
from dealfinder.taxonomy.badge_taxonomy import Badge


def build_candidate(id: str = "p1", **overrides: Any) -> Candidate:
    fields: dict[str, Any] = {
        "id":       id,
        "platform": "shopco",
        "title":    f"Acme Wireless Headphones {id}",
        "price":    100.0,
    }
    fields.update(overrides)
    return Candidate(**fields)


def build_scored(
    id: str = "p1",
    score: float = 0.5,
    confidence: float = 0.8,
    **fields: Any,
) -> ScoredCandidate:
    return ScoredCandidate(candidate=build_candidate(id, **fields), score=score, confidence=confidence)


def build_ranked(
    id: str = "p1",
    score: float = 0.5,
    badge: Optional[Badge] = None,
    **fields: Any,
) -> RankedCandidate:
    return RankedCandidate.from_scored(build_scored(id, score, **fields), badge)


@pytest.fixture
def make_candidate() -> Callable[..., Candidate]:
    return build_candidate


@pytest.fixture
def make_scored() -> Callable[..., ScoredCandidate]:
    return build_scored


@pytest.fixture
def make_ranked() -> Callable[..., RankedCandidate]:
    return build_ranked


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def listing_records() -> list[dict[str, Any]]:
    """Six headphone listings across platforms, as a data source would supply them."""
    return [
        {
            "id": "A1", "platform": "amazon", "title": "Sony WH-1000XM5 Wireless Noise Cancelling Headphones",
            "price": 329.0, "rating": 4.7, "reviews_count": 1520, "shipping_price": 0,
            "shipping_time_days": 2, "category": "Electronics", "brand": "Sony",
        },
        {
            "id": "E7", "source": "ebay", "title": "Sony WH-1000XM5 Wireless Headphones - Black",
            "price": "299.99", "rating": "4.5", "reviews": 240, "shipping_price": 9.99,
            "shipping_days": 5, "category": "electronics",
        },
        {
            "id": "W3", "platform": "walmart", "title": "Sony WH1000XM5 Wireless Over-Ear Headphones",
            "price": 315.0, "rating": 4.6, "reviews_count": 610, "shipping_price": 0,
            "shipping_time_days": 3, "category": "Electronics",
        },
        {
            "id": "B2", "platform": "bestshop", "title": "Sony WH-1000XM5 Wireless Headphones Silver",
            "price": 339.0, "rating": 4.4, "reviews_count": 85, "shipping_price": 5.0,
            "shipping_time_days": 4, "category": "Electronics",
        },
        {
            "id": "A1", "platform": "Amazon", "title": "Sony WH-1000XM5 (duplicate listing)",
            "price": 329.0, "rating": 4.7, "reviews_count": 1520,
        },
        {
            "id": "X9", "platform": "third-party", "title": "Sony Wireless Headphones XM5 clone",
            "price": "not a price", "rating": 5.0,
        },
    ]
