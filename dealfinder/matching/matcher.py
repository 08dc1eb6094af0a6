"""
Candidate matcher: reduces raw multi-source listings to genuine alternatives
for the user's query.

Filter chain (applied in order, first failure rejects)
-------------------------------------------------------
    1. coercion      : missing id / title / finite positive price → dropped
    2. dedup         : first occurrence of each ``(platform, id)`` wins
    3. same store    : listings from the source product's own store → dropped
    4. constraints   : store allow-list, min/max price, rating floor
    5. category      : compatible with source / constraint categories, and
                       not a known cross-category mismatch
    6. title         : normalized containment or shared keywords
    7. price band    : within ±``price_band_tolerance`` of a known source price
    8. attributes    : storage / screen size / exclusive keyword flags agree

The output keeps the input's relative order and is truncated to
``MatchingConfig.max_matches``. No re-sorting happens here.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from dealfinder.config import MatchingConfig
from dealfinder.matching.attributes import (
    AttributeProfile,
    attributes_compatible,
    categories_compatible,
    extract_attributes,
    is_category_mismatch,
    keywords,
    normalize_text,
    shared_keyword_count,
)
from dealfinder.models.candidate import Candidate, SearchInput, coerce_candidate

logger = logging.getLogger(__name__)


def match_candidates(
    search: SearchInput,
    raw_candidates: Iterable[Any],
    config: Optional[MatchingConfig] = None,
) -> list[Candidate]:
    """Run the full filter chain.

    Args:
        search:         Query context (query text, extracted product, constraints).
        raw_candidates: Mappings or ``Candidate`` instances, in source order.
        config:         Matcher limits. Defaults to ``MatchingConfig()``.

    Returns:
        Surviving candidates in original relative order, at most
        ``config.max_matches`` of them.
    """
    config = config or MatchingConfig()

    valid = [c for c in (coerce_candidate(raw) for raw in raw_candidates) if c is not None]
    valid = [c for c in valid if c.price > 0]
    unique = dedupe_candidates(valid)

    source_title = (search.extracted.name if search.extracted else None) or search.query
    source_attributes = extract_attributes(source_title)

    matched = [
        c for c in unique
        if _passes_all(search, c, source_attributes, config)
    ]

    logger.debug(
        "Matcher: %d valid, %d unique, %d matched (cap %d)",
        len(valid), len(unique), len(matched), config.max_matches,
    )
    return matched[: config.max_matches]


def dedupe_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Keep the first candidate for each ``(platform.lower(), id)`` key."""
    seen: set[tuple[str, str]] = set()
    unique: list[Candidate] = []
    for candidate in candidates:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        unique.append(candidate)
    return unique


def _passes_all(
    search: SearchInput,
    candidate: Candidate,
    source_attributes: AttributeProfile,
    config: MatchingConfig,
) -> bool:
    if is_same_store(search, candidate):
        return False
    if not passes_constraints(search, candidate):
        return False
    if not passes_category(search, candidate):
        return False
    if not passes_title_similarity(search, candidate):
        return False
    if not passes_price_band(search, candidate, config.price_band_tolerance):
        return False
    return attributes_compatible(
        source_attributes,
        extract_attributes(candidate.title),
        storage_tolerance=config.storage_tolerance_gb,
        screen_tolerance=config.screen_tolerance_inches,
    )


# ── Individual predicates ─────────────────────────────────────────────────────


def is_same_store(search: SearchInput, candidate: Candidate) -> bool:
    store = search.extracted.store if search.extracted else None
    return bool(store) and candidate.platform.lower() == store.lower()


def passes_constraints(search: SearchInput, candidate: Candidate) -> bool:
    """Store allow-list, price bounds and rating floor from ``SearchConstraints``.

    The rating floor only applies when the candidate's rating is known.
    """
    constraints = search.constraints
    if constraints is None:
        return True

    if constraints.stores:
        platform = candidate.platform.lower()
        allowed = [s.strip().lower() for s in constraints.stores if s.strip()]
        if allowed and not any(s in platform or platform in s for s in allowed):
            return False

    if constraints.min_price is not None and candidate.price < constraints.min_price:
        return False
    if constraints.max_price is not None and candidate.price > constraints.max_price:
        return False

    if (
        constraints.min_rating is not None
        and candidate.rating is not None
        and candidate.rating < constraints.min_rating
    ):
        return False

    return True


def passes_category(search: SearchInput, candidate: Candidate) -> bool:
    """Category compatibility followed by the cross-category mismatch veto."""
    source_category = search.extracted.category if search.extracted else None
    constraint_categories = search.constraints.categories if search.constraints else []

    if not candidate.category:
        return True

    candidate_category = normalize_text(candidate.category)

    if source_category or constraint_categories:
        compatible = False
        if source_category and categories_compatible(normalize_text(source_category), candidate_category):
            compatible = True
        elif constraint_categories:
            compatible = any(
                categories_compatible(normalize_text(cat), candidate_category)
                for cat in constraint_categories
            )
        if not compatible:
            return False

    if source_category and is_category_mismatch(normalize_text(source_category), candidate_category):
        return False

    return True


def passes_title_similarity(search: SearchInput, candidate: Candidate) -> bool:
    """Containment against query or source name, else shared keywords.

    Thresholds: 2 shared keywords with the extracted source name, or 1
    shared keyword with the raw query.
    """
    candidate_name = normalize_text(candidate.title)
    if not candidate_name:
        return False

    query = normalize_text(search.query)
    if query in candidate_name or candidate_name in query:
        return True

    candidate_keywords = keywords(candidate_name)

    extracted_name = search.extracted.name if search.extracted else None
    if extracted_name:
        source_name = normalize_text(extracted_name)
        if source_name and (source_name in candidate_name or candidate_name in source_name):
            return True
        if shared_keyword_count(keywords(source_name), candidate_keywords) >= 2:
            return True

    return shared_keyword_count(keywords(query), candidate_keywords) >= 1


def passes_price_band(search: SearchInput, candidate: Candidate, tolerance: float) -> bool:
    source_price = search.source_price
    if source_price is None:
        return True
    lower = source_price * (1 - tolerance)
    upper = source_price * (1 + tolerance)
    return lower <= candidate.price <= upper
