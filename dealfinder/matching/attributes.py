"""
Title and category text analysis used by the matcher.

Everything here is a pure function of strings. Normalization lower-cases,
strips every character outside ``[a-z0-9\\s]`` and collapses whitespace, so
``"iPhone 15 Pro (128GB)"`` becomes ``"iphone 15 pro 128gb"``.

Attribute extraction reads storage and screen size from the *raw* title
(the inch mark ``"`` would be stripped by normalization) and keyword flags
from the normalized title.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

_STORAGE_RE = re.compile(r"(\d+)\s*gb", re.IGNORECASE)
_SCREEN_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:inch|\"|″)", re.IGNORECASE)

# Flag → pattern, tested against the normalized title.
KEYWORD_PATTERNS: dict[str, re.Pattern[str]] = {
    "wireless":   re.compile(r"wireless"),
    "wired":      re.compile(r"\bwired\b"),
    "fastcharge": re.compile(r"fast.?charg|quick.?charg"),
    "slowcharge": re.compile(r"slow.?charg"),
    "case":       re.compile(r"case|cover"),
    "bare":       re.compile(r"\bbare\b|\bcaseless\b"),
    "cable":      re.compile(r"cable|cord"),
    "charger":    re.compile(r"charger"),
    "headphones": re.compile(r"headphones|earbuds|earphones"),
    "laptop":     re.compile(r"laptop|notebook|macbook"),
    "phone":      re.compile(r"phone|smartphone|iphone|galaxy|pixel"),
    "tablet":     re.compile(r"tablet|ipad"),
}

# Flags that describe mutually exclusive variants of the same product.
INCOMPATIBLE_FLAGS: tuple[tuple[str, str], ...] = (
    ("wireless",   "wired"),
    ("fastcharge", "slowcharge"),
    ("case",       "bare"),
)

# Category pairs that never describe the same product, even when their
# names share a token ("phone" vs "phone case").
CATEGORY_MISMATCHES: tuple[tuple[str, str], ...] = (
    ("phone",  "accessory"),
    ("phone",  "case"),
    ("phone",  "charger"),
    ("phone",  "cable"),
    ("phone",  "screen protector"),
    ("laptop", "bag"),
    ("laptop", "mouse"),
    ("laptop", "keyboard"),
)


def normalize_text(text: str) -> str:
    text = _NON_ALNUM.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def keywords(normalized: str) -> list[str]:
    """Words longer than two characters, in order."""
    return [w for w in normalized.split() if len(w) > 2]


def shared_keyword_count(left: list[str], right: list[str]) -> int:
    """Number of entries in ``left`` that also occur in ``right``."""
    right_set = set(right)
    return sum(1 for w in left if w in right_set)


def categories_compatible(first: str, second: str) -> bool:
    """Equal, substring either way, or sharing a token of 3+ characters.

    Both arguments must already be normalized.
    """
    if first == second:
        return True
    if first in second or second in first:
        return True
    second_tokens = set(second.split())
    return any(len(tok) > 2 and tok in second_tokens for tok in first.split())


def is_category_mismatch(first: str, second: str) -> bool:
    """True for a known cross-category pair, in either direction."""
    for a, b in CATEGORY_MISMATCHES:
        if (a in first and b in second) or (b in first and a in second):
            return True
    return False


@dataclass(frozen=True)
class AttributeProfile:
    """Structured attributes pulled out of a product title."""

    storage_gb:    Optional[int] = None
    screen_inches: Optional[float] = None
    flags:         frozenset[str] = field(default_factory=frozenset)


def extract_attributes(text: str) -> AttributeProfile:
    storage_match = _STORAGE_RE.search(text)
    screen_match = _SCREEN_RE.search(text)
    normalized = normalize_text(text)
    flags = frozenset(name for name, pattern in KEYWORD_PATTERNS.items() if pattern.search(normalized))
    return AttributeProfile(
        storage_gb=int(storage_match.group(1)) if storage_match else None,
        screen_inches=float(screen_match.group(1)) if screen_match else None,
        flags=flags,
    )


def attributes_compatible(
    source: AttributeProfile,
    candidate: AttributeProfile,
    storage_tolerance: float = 5.0,
    screen_tolerance: float = 0.3,
) -> bool:
    """Reject conflicting storage, screen size, or mutually exclusive flags.

    An attribute only participates when both sides specify it.
    """
    if source.storage_gb is not None and candidate.storage_gb is not None:
        if abs(source.storage_gb - candidate.storage_gb) > storage_tolerance:
            return False

    if source.screen_inches is not None and candidate.screen_inches is not None:
        # Round away float noise so a 0.3" gap sits exactly on the tolerance.
        if round(abs(source.screen_inches - candidate.screen_inches), 6) > screen_tolerance:
            return False

    for a, b in INCOMPATIBLE_FLAGS:
        if (a in source.flags and b in candidate.flags) or (b in source.flags and a in candidate.flags):
            return False

    return True
