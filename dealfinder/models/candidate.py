"""
Candidate and search-context models: the pipeline's single strict schema.

Upstream sources hand over loosely-typed mappings (numbers as strings, NaN
ratings, ``source`` instead of ``platform``...). ``Candidate`` performs all
coercion in ``mode="before"`` validators so downstream numeric code never has
to re-check for NaN, negatives or wrong types:

  - non-numeric / non-finite numerics   → ``None``
  - negative rating / reviews / shipping → ``None``
  - rating above 5                       → clamped to 5.0
  - blank strings                        → ``None``

A record that still lacks an id, a title or a finite price fails validation;
``coerce_candidate()`` turns that failure into ``None`` so the matcher can
drop it without raising.

All models are frozen. Stages wrap candidates, they never modify them.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from dealfinder.config import ThresholdOverride
from dealfinder.utils.stats import finite_or_none

logger = logging.getLogger(__name__)

VALID_QUERY_TYPES = frozenset({"url", "keyword"})


def _blank_to_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    text = str(v).strip()
    return text or None


class Candidate(BaseModel):
    """A product listing from one source platform.

    Attributes:
        id: Platform-local identifier (ints are stringified).
        platform: Source tag (``amazon``, ``ebay``...). Accepts ``source``/``store``.
        title: Listing title. Accepts ``name``.
        price: Finite item price in ``currency``.
        rating: Average star rating in [0, 5], or ``None`` if unknown.
        reviews_count: Number of reviews, or ``None``. Accepts ``reviews``.
        shipping_price: Delivery cost, ``0.0`` meaning free, ``None`` if unknown.
        shipping_time_days: Delivery time in days. Accepts ``shipping_days``.
        metadata: Open bag for source-specific fields; never read by the pipeline.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    platform: str = Field(
        default="unknown",
        validation_alias=AliasChoices("platform", "source", "store"),
    )
    title: str = Field(validation_alias=AliasChoices("title", "name"))
    price: float
    currency: str = "USD"
    rating: Optional[float] = None
    reviews_count: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("reviews_count", "reviews", "review_count"),
    )
    shipping_price: Optional[float] = None
    shipping_time_days: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("shipping_time_days", "shipping_days"),
    )
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "title", mode="before")
    @classmethod
    def validate_required_text(cls, v: Any) -> str:
        text = _blank_to_none(v)
        if text is None:
            raise ValueError("Required text field is missing or blank.")
        return text

    @field_validator("platform", mode="before")
    @classmethod
    def validate_platform(cls, v: Any) -> str:
        return _blank_to_none(v) or "unknown"

    @field_validator("currency", mode="before")
    @classmethod
    def validate_currency(cls, v: Any) -> str:
        return (_blank_to_none(v) or "USD").upper()

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v: Any) -> float:
        price = finite_or_none(v)
        if price is None:
            raise ValueError(f"Price must be a finite number, got {v!r}.")
        return price

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, v: Any) -> Optional[float]:
        rating = finite_or_none(v)
        if rating is None or rating < 0:
            return None
        return min(rating, 5.0)

    @field_validator("reviews_count", mode="before")
    @classmethod
    def coerce_reviews(cls, v: Any) -> Optional[int]:
        count = finite_or_none(v)
        if count is None or count < 0:
            return None
        return int(count)

    @field_validator("shipping_price", "shipping_time_days", mode="before")
    @classmethod
    def coerce_shipping(cls, v: Any) -> Optional[float]:
        value = finite_or_none(v)
        if value is None or value < 0:
            return None
        return value

    @field_validator("category", "brand", "description", "url", mode="before")
    @classmethod
    def coerce_optional_text(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, v: Any) -> dict[str, Any]:
        return dict(v) if isinstance(v, Mapping) else {}

    @property
    def key(self) -> tuple[str, str]:
        """Composite dedup key ``(platform, id)``, platform lower-cased."""
        return (self.platform.lower(), self.id)


def coerce_candidate(raw: Any) -> Optional[Candidate]:
    """Build a ``Candidate`` from an untrusted record, or ``None`` if unusable."""
    if isinstance(raw, Candidate):
        return raw
    if not isinstance(raw, Mapping):
        logger.debug("Dropping non-mapping candidate record of type %s", type(raw).__name__)
        return None
    try:
        return Candidate.model_validate(dict(raw))
    except ValidationError as exc:
        logger.debug(
            "Dropping malformed candidate id=%r: %d validation error(s)",
            raw.get("id"), exc.error_count(),
        )
        return None


# ── Search context ────────────────────────────────────────────────────────────


class ExtractedProduct(BaseModel):
    """The source product the user is shopping around (from a URL lookup)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name:     Optional[str] = None
    price:    Optional[float] = None
    category: Optional[str] = None
    brand:    Optional[str] = None
    store:    Optional[str] = None

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Optional[float]:
        return finite_or_none(v)

    @field_validator("name", "category", "brand", "store", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return _blank_to_none(v)


class SearchConstraints(BaseModel):
    """Optional user filters applied by the matcher."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    min_price:  Optional[float] = None
    max_price:  Optional[float] = None
    min_rating: Optional[float] = None
    categories: list[str] = []
    stores:     list[str] = []

    @field_validator("min_price", "max_price", "min_rating", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        return finite_or_none(v)


class GuardrailOverrides(BaseModel):
    """Per-request guardrail adjustments layered over ``GuardrailConfig``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    defaults:           Optional[ThresholdOverride] = None
    categories:         dict[str, ThresholdOverride] = {}
    trusted_platforms:  Optional[list[str]] = None
    stricter_platforms: Optional[list[str]] = None


class SearchInput(BaseModel):
    """Query context for one pipeline run.

    Attributes:
        query: Free-text query or product URL as typed by the user.
        query_type: ``"keyword"`` or ``"url"``. Accepts ``type``.
        extracted: Source product details when the query was a URL.
        constraints: Optional price/rating/category/store filters.
        guardrails: Optional per-request guardrail threshold overrides.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    query: str = ""
    query_type: str = Field(
        default="keyword",
        validation_alias=AliasChoices("query_type", "type"),
    )
    extracted: Optional[ExtractedProduct] = Field(
        default=None,
        validation_alias=AliasChoices("extracted", "extracted_product"),
    )
    constraints: Optional[SearchConstraints] = None
    guardrails: Optional[GuardrailOverrides] = None

    @field_validator("query_type")
    @classmethod
    def validate_query_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in VALID_QUERY_TYPES:
            raise ValueError(f"query_type must be one of {sorted(VALID_QUERY_TYPES)}, got '{v}'.")
        return v

    @property
    def source_price(self) -> Optional[float]:
        """Known positive price of the source product, else ``None``."""
        if self.extracted and self.extracted.price is not None and self.extracted.price > 0:
            return self.extracted.price
        return None
