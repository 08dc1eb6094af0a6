"""
File-backed candidate sources.

Supported layouts::

    listings.json      [ {...}, {...} ]
    listings.json      {"products": [ ... ]}     (also "items", "results", "data")
    listings.jsonl     one object per line; blank lines ignored
    listings.parquet   one row per listing (read with pyarrow)

Records are returned as plain dicts, unvalidated. Validation and coercion
happen at the matcher boundary so a single malformed record never fails a
whole file.

``FileCandidateSource`` adds an optional default platform tag (for exports
that omit it), a case-insensitive title filter and a per-file limit.
``load_candidates`` concatenates several sources in the given order.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = frozenset({".json", ".jsonl", ".ndjson", ".parquet"})
_LIST_KEYS = ("products", "items", "results", "data")


def _records_from_document(doc: Any, path: Path) -> list[dict[str, Any]]:
    if isinstance(doc, list):
        records = doc
    elif isinstance(doc, dict):
        records = next((doc[k] for k in _LIST_KEYS if isinstance(doc.get(k), list)), None)
        if records is None:
            raise ValueError(
                f"{path}: JSON object has no list under any of {list(_LIST_KEYS)}."
            )
    else:
        raise ValueError(f"{path}: expected a JSON array or object, got {type(doc).__name__}.")

    rows = [r for r in records if isinstance(r, dict)]
    skipped = len(records) - len(rows)
    if skipped:
        logger.warning("%s: skipped %d non-object record(s)", path, skipped)
    return rows


def read_json_records(path: Path) -> list[dict[str, Any]]:
    try:
        with path.open("r", encoding="utf-8") as f:
            doc = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{path}: invalid JSON ({exc})") from exc
    return _records_from_document(doc, path)


def read_jsonl_records(path: Path) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{lineno}: invalid JSON line ({exc})") from exc
            if isinstance(obj, dict):
                rows.append(obj)
            else:
                logger.warning("%s:%d: skipped non-object line", path, lineno)
    return rows


def read_parquet_records(path: Path) -> list[dict[str, Any]]:
    import pyarrow.parquet as pq

    table = pq.read_table(str(path))
    return table.to_pylist()


def read_records(path: Path) -> list[dict[str, Any]]:
    """Read raw listing records from ``path``, dispatching on its suffix.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError:        On an unsupported suffix or a malformed document.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Candidate file not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported candidate file type '{suffix}'. "
            f"Expected one of {sorted(SUPPORTED_SUFFIXES)}."
        )
    if suffix == ".json":
        return read_json_records(path)
    if suffix == ".parquet":
        return read_parquet_records(path)
    return read_jsonl_records(path)


@dataclass(frozen=True)
class FileCandidateSource:
    """One file of listings exported from a single marketplace (or a mix).

    Attributes:
        path:             File to read.
        default_platform: Platform tag for records without ``platform``/``source``/``store``.
        title_filter:     Keep only records whose title contains this text (case-insensitive).
        limit:            Maximum records returned from this file.
    """

    path:             Path
    default_platform: Optional[str] = None
    title_filter:     Optional[str] = None
    limit:            Optional[int] = None

    @property
    def name(self) -> str:
        return self.default_platform or self.path.stem

    def fetch(self) -> list[dict[str, Any]]:
        rows = read_records(self.path)

        if self.default_platform:
            rows = [
                r if any(r.get(k) for k in ("platform", "source", "store"))
                else {**r, "platform": self.default_platform}
                for r in rows
            ]

        if self.title_filter:
            needle = self.title_filter.lower()
            rows = [r for r in rows if needle in str(r.get("title") or r.get("name") or "").lower()]

        if self.limit is not None:
            rows = rows[: max(self.limit, 0)]

        logger.info("Loaded %d candidate record(s) from %s", len(rows), self.path)
        return rows


def load_candidates(sources: Iterable[FileCandidateSource]) -> list[dict[str, Any]]:
    """Concatenate records from every source, in order."""
    merged: list[dict[str, Any]] = []
    for source in sources:
        merged.extend(source.fetch())
    return merged
