"""
dealfinder: CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Run the pipeline / action.
  5. Report result to stdout.

Install and run::

    pip install -e .
    dealfinder --help
    dealfinder validate-config
    dealfinder recommend --candidates data/amazon.json --query "iphone 15 128gb"
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="dealfinder",
    help="Multi-marketplace product matching, scoring and guardrail filtering.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from dealfinder.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from dealfinder.utils.logging import configure_logging
    configure_logging(config.logging)


def _parse_source(spec: str):
    """``path`` or ``platform=path`` → ``FileCandidateSource``."""
    from dealfinder.ingestion.file_source import FileCandidateSource

    platform, sep, path = spec.partition("=")
    if sep and platform and not Path(spec).exists():
        return FileCandidateSource(path=Path(path), default_platform=platform.strip())
    return FileCandidateSource(path=Path(spec))


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    weights = config.scoring.weights
    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Max matches:       {config.matching.max_matches}")
    typer.echo(
        f"  Score weights:     price={weights.price} rating={weights.rating} "
        f"reviews={weights.reviews} shipping={weights.shipping}"
    )
    typer.echo(f"  Min confidence:    {config.scoring.min_confidence}")
    typer.echo(f"  Top N:             {config.scoring.top_n}")
    typer.echo(f"  Trusted platforms: {', '.join(config.guardrails.trusted_platforms)}")
    typer.echo(f"  Explainer:         {'enabled' if config.explainer.enabled else 'disabled'}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("recommend")
def recommend(
    candidates: list[str] = typer.Option(
        ...,
        "--candidates",
        "-c",
        help="Candidate file (.json/.jsonl/.parquet). Repeatable. Use 'platform=path' to tag untagged records.",
    ),
    query: str = typer.Option(..., "--query", "-q", help="Search text or product URL."),
    query_type: str = typer.Option("keyword", "--type", help="'keyword' or 'url'."),
    source_name: Optional[str] = typer.Option(None, "--source-name", help="Source product name."),
    source_price: Optional[float] = typer.Option(None, "--source-price", help="Source product price."),
    source_category: Optional[str] = typer.Option(None, "--source-category", help="Source product category."),
    source_store: Optional[str] = typer.Option(None, "--source-store", help="Store the source product is from."),
    strict: bool = typer.Option(False, "--strict", help="Only show recommended, non-risky candidates."),
    no_trust: bool = typer.Option(False, "--no-trust", help="Skip trust annotation."),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Write report files here."),
    output_format: str = typer.Option("json", "--format", help="'json', 'csv' or 'both'."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Run the full recommendation pipeline over candidate files.

    Exits with code 1 on unreadable input or invalid options.
    """
    from dealfinder.explain.llm_client import LLMExplanationProvider
    from dealfinder.ingestion.file_source import load_candidates
    from dealfinder.models.candidate import SearchInput
    from dealfinder.pipeline.orchestrator import RecommendationPipeline
    from dealfinder.recommendations.reporter import (
        write_recommendation_csv,
        write_recommendation_json,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if output_format not in ("json", "csv", "both"):
        typer.echo(f"[ERROR] --format must be json, csv or both, got '{output_format}'.", err=True)
        raise typer.Exit(code=1)

    extracted = None
    if any(v is not None for v in (source_name, source_price, source_category, source_store)):
        extracted = {
            "name": source_name, "price": source_price,
            "category": source_category, "store": source_store,
        }

    try:
        search = SearchInput.model_validate(
            {"query": query, "type": query_type, "extracted": extracted}
        )
        raw = load_candidates([_parse_source(spec) for spec in candidates])
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    pipeline = RecommendationPipeline(
        config,
        explainer=LLMExplanationProvider.from_config(config.explainer),
    )
    result = pipeline.run(search, raw, annotate=not no_trust)
    shown = result.strict if strict else result.guarded

    typer.echo(
        f"Matched {len(result.matched)} of {result.raw_count}; "
        f"scored {len(result.scored)}; showing {len(shown)} ({'strict' if strict else 'all'})."
    )
    if not shown:
        typer.echo("[WARN] No candidates to recommend.")

    for rank, g in enumerate(shown, start=1):
        c = g.candidate
        badge = f" [{g.badge.value}]" if g.badge else ""
        flag = "RISKY" if g.is_risky else ("OK" if g.is_recommended else "--")
        typer.echo(
            f"  {rank:>2}. {flag:<5} {c.platform:<10} {c.price:>10.2f} {c.currency}  "
            f"score={g.score:.3f} conf={g.confidence:.2f}{badge}  {c.title}"
        )
        for reason in g.risk_reasons:
            typer.echo(f"        ! {reason}")

    if result.trust is not None and result.trust.choice is not None:
        typer.echo("")
        typer.echo(result.trust.choice.text)

    if output_dir:
        out = Path(output_dir)
        if output_format in ("json", "both"):
            path = write_recommendation_json(result, out, strict=strict)
            typer.echo(f"JSON: {path}")
        if output_format in ("csv", "both"):
            path = write_recommendation_csv(result, out, strict=strict)
            typer.echo(f"CSV:  {path}")


if __name__ == "__main__":
    app()
