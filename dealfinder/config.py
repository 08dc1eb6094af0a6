"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      : committed static defaults
  2. ``config/local.toml``        : optional local overrides (gitignored)
  3. ``.env``                     : local secrets and env overrides (gitignored)
  4. Environment variables        : ``DEALFINDER_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Every pipeline stage receives its own section of ``AppConfig`` as an explicit
argument: no stage reads environment variables or module-level state.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class MatchingConfig(BaseModel):
    """Candidate matcher limits."""

    model_config = ConfigDict(frozen=True)

    max_matches: int = 30
    price_band_tolerance: float = 0.4       # ±40% around the source price
    storage_tolerance_gb: float = 5.0
    screen_tolerance_inches: float = 0.3

    @field_validator("max_matches")
    @classmethod
    def validate_max_matches(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_matches must be >= 1, got {v}.")
        return v

    @field_validator("price_band_tolerance")
    @classmethod
    def validate_band(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"price_band_tolerance must be in (0.0, 1.0), got {v}.")
        return v


class ScoringWeights(BaseModel):
    """Factor weights of the linear desirability model. Must sum to 1.0."""

    model_config = ConfigDict(frozen=True)

    price:    float = 0.35
    rating:   float = 0.30
    reviews:  float = 0.15
    shipping: float = 0.20

    @model_validator(mode="after")
    def validate_sum(self) -> "ScoringWeights":
        values = (self.price, self.rating, self.reviews, self.shipping)
        if any(w < 0 for w in values):
            raise ValueError("Scoring weights must be non-negative.")
        total = sum(values)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}.")
        return self


class ScoringConfig(BaseModel):
    """Scorer constants: normalization priors, quality penalty and confidence rules."""

    model_config = ConfigDict(frozen=True)

    weights: ScoringWeights = ScoringWeights()

    rating_prior_strength: float = 50.0
    default_mean_rating:   float = 3.5
    min_review_count:      int = 10
    low_review_score:      float = 0.05

    apply_quality_penalty: bool = True
    short_title_length:    int = 15
    short_title_penalty:   float = 0.15
    outlier_z_threshold:   float = 3.0
    outlier_penalty:       float = 0.20
    max_quality_penalty:   float = 0.5

    base_confidence:          float = 0.8
    missing_rating_penalty:   float = 0.15
    missing_reviews_penalty:  float = 0.20
    missing_shipping_penalty: float = 0.10
    boundary_penalty:         float = 0.10
    boundary_fraction:        float = 0.10

    min_confidence: float = 0.6
    top_n:          int = 10

    @field_validator("min_confidence", "base_confidence", "boundary_fraction")
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Value must be in [0.0, 1.0], got {v}.")
        return v

    @field_validator("top_n")
    @classmethod
    def validate_top_n(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"top_n must be >= 1, got {v}.")
        return v


class RankingConfig(BaseModel):
    """Badge eligibility thresholds."""

    model_config = ConfigDict(frozen=True)

    best_choice_min_rating:  float = 4.0    # strictly greater than
    best_choice_min_reviews: int = 50       # strictly greater than
    cheapest_min_rating:     float = 3.8    # greater than or equal


class GuardrailThresholds(BaseModel):
    """A fully-resolved threshold set."""

    model_config = ConfigDict(frozen=True)

    min_rating:           float = 4.0
    min_review_count:     int = 10
    price_outlier_factor: float = 0.4

    @field_validator("min_rating", "min_review_count")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Threshold must be non-negative, got {v}.")
        return v

    @field_validator("price_outlier_factor")
    @classmethod
    def validate_factor(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"price_outlier_factor must be in (0.0, 1.0), got {v}.")
        return v


class ThresholdOverride(BaseModel):
    """A partial threshold set; ``None`` fields inherit from the layer below."""

    model_config = ConfigDict(frozen=True)

    min_rating:           Optional[float] = None
    min_review_count:     Optional[int] = None
    price_outlier_factor: Optional[float] = None


def _default_category_thresholds() -> dict[str, ThresholdOverride]:
    return {
        "electronics": ThresholdOverride(min_rating=4.1, min_review_count=25, price_outlier_factor=0.35),
        "fashion":     ThresholdOverride(min_rating=3.9, min_review_count=5, price_outlier_factor=0.4),
        "home":        ThresholdOverride(min_rating=4.0, min_review_count=15, price_outlier_factor=0.4),
        "media":       ThresholdOverride(min_rating=3.8, min_review_count=3, price_outlier_factor=0.45),
    }


class GuardrailConfig(BaseModel):
    """Layered guardrail thresholds plus platform trust lists.

    Resolution order per candidate: ``defaults`` → ``categories[category]``
    → platform-tier adjustment (see ``recommendations.guardrails``).
    """

    model_config = ConfigDict(frozen=True)

    defaults:           GuardrailThresholds = GuardrailThresholds()
    categories:         dict[str, ThresholdOverride] = Field(default_factory=_default_category_thresholds)
    trusted_platforms:  list[str] = ["amazon", "ebay", "walmart"]
    stricter_platforms: list[str] = ["unknown", "third-party"]

    # Platform-tier adjustments
    trusted_rating_relief:  float = 0.1
    trusted_rating_floor:   float = 3.5
    trusted_review_relief:  int = 5
    trusted_review_floor:   int = 1
    new_rating_surcharge:   float = 0.2
    new_min_review_count:   int = 20

    # Price-outlier check
    min_priced_for_median: int = 3
    good_deal_factor:      float = 0.85

    # Positive tags
    express_shipping_days:       int = 2
    fast_shipping_days:          int = 5
    detailed_description_length: int = 50

    @field_validator("categories")
    @classmethod
    def normalize_category_keys(cls, v: dict[str, ThresholdOverride]) -> dict[str, ThresholdOverride]:
        return {key.strip().lower(): val for key, val in v.items()}


class TrustConfig(BaseModel):
    """Presentation-layer thresholds for trust labels, explanations and risk disclosure."""

    model_config = ConfigDict(frozen=True)

    min_rating_for_safe:      float = 4.0
    min_reviews_for_reliable: int = 50
    min_reviews_for_chosen:   int = 10
    value_score_threshold:    float = 0.5
    most_reviewed_percentile: float = 75.0
    low_rating_threshold:     float = 3.5
    low_review_threshold:     int = 5
    long_term_rating_share:   float = 0.95
    max_explanation_points:   int = 3
    score_gap_threshold:      float = 0.1


class ExplainerConfig(BaseModel):
    """Optional AI explanation provider settings.

    The API key is never read from TOML; it comes from
    ``DEALFINDER_EXPLAINER_API_KEY`` (typically set in ``.env``).
    """

    model_config = ConfigDict(frozen=True)

    enabled:         bool = False
    api_url:         str = "https://api.anthropic.com/v1/messages"
    api_version:     str = "2023-06-01"
    model:           str = "claude-3-5-haiku-latest"
    max_tokens:      int = 150
    timeout_seconds: float = 10.0
    api_key:         Optional[str] = Field(default=None, exclude=True, repr=False)


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration: the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env + environment.
    ``AppConfig()`` with no arguments yields the built-in defaults, which is
    what tests use.
    """

    model_config = ConfigDict(frozen=True)

    matching:   MatchingConfig = MatchingConfig()
    scoring:    ScoringConfig = ScoringConfig()
    ranking:    RankingConfig = RankingConfig()
    guardrails: GuardrailConfig = GuardrailConfig()
    trust:      TrustConfig = TrustConfig()
    explainer:  ExplainerConfig = ExplainerConfig()
    logging:    LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config explicitly."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            local_raw: dict[str, Any] = tomllib.load(f)
        raw = _deep_merge(raw, local_raw)

    # 3. Apply DEALFINDER_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes")


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply DEALFINDER_* env vars to the raw config dict.

    Supported overrides:
      DEALFINDER_LOG_LEVEL          → raw["logging"]["level"]
      DEALFINDER_DEBUG              → raw["debug"]
      DEALFINDER_EXPLAINER_ENABLED  → raw["explainer"]["enabled"]
      DEALFINDER_EXPLAINER_MODEL    → raw["explainer"]["model"]
      DEALFINDER_EXPLAINER_API_KEY  → raw["explainer"]["api_key"]
    """
    if log_level := os.environ.get("DEALFINDER_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("DEALFINDER_DEBUG"):
        raw["debug"] = _env_flag(debug)

    if enabled := os.environ.get("DEALFINDER_EXPLAINER_ENABLED"):
        raw.setdefault("explainer", {})["enabled"] = _env_flag(enabled)

    if model := os.environ.get("DEALFINDER_EXPLAINER_MODEL"):
        raw.setdefault("explainer", {})["model"] = model

    if api_key := os.environ.get("DEALFINDER_EXPLAINER_API_KEY"):
        raw.setdefault("explainer", {})["api_key"] = api_key

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    scoring_raw = dict(raw.get("scoring", {}))
    weights = ScoringWeights(**scoring_raw.pop("weights", {}))

    guardrails_raw = dict(raw.get("guardrails", {}))
    defaults = GuardrailThresholds(**guardrails_raw.pop("defaults", {}))
    categories_raw = guardrails_raw.pop("categories", None)
    if categories_raw is not None:
        guardrails_raw["categories"] = {
            name: ThresholdOverride(**values) for name, values in categories_raw.items()
        }

    return AppConfig(
        matching=MatchingConfig(**raw.get("matching", {})),
        scoring=ScoringConfig(weights=weights, **scoring_raw),
        ranking=RankingConfig(**raw.get("ranking", {})),
        guardrails=GuardrailConfig(defaults=defaults, **guardrails_raw),
        trust=TrustConfig(**raw.get("trust", {})),
        explainer=ExplainerConfig(**raw.get("explainer", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
