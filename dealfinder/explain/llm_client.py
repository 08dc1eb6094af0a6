"""
HTTP explanation provider for near-tie recommendations.

API:  Anthropic Messages API (``POST /v1/messages``)

Credential setup (.env, gitignored)::

    DEALFINDER_EXPLAINER_ENABLED=true
    DEALFINDER_EXPLAINER_API_KEY=sk-...

Request shape::

    POST {api_url}
      headers: x-api-key, anthropic-version, content-type
      body:    {"model": ..., "max_tokens": 150, "system": ..., "messages": [...]}
    → {"content": [{"type": "text", "text": "..."}], ...}

The provider is only ever called by ``trust.explainer.explain_choice`` for
near-tied top candidates. Every failure (transport, HTTP status, malformed
body) is logged and reported as ``None`` so the deterministic template is
used instead. Only the facts listed in the prompt are sent; no identifiers
beyond title, platform and price leave the process.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from dealfinder.config import ExplainerConfig
from dealfinder.recommendations.guardrails import GuardedCandidate

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a product recommendation explainer. Your job is to explain why one "
    "product was chosen over another.\n"
    "Rules:\n"
    "- Write 2-3 sentences ONLY\n"
    "- Use simple, conversational language\n"
    "- ONLY reference the facts provided below\n"
    "- Do NOT add information, prices, or specs not explicitly mentioned\n"
    "- Do NOT suggest other products\n"
    "- Explain the difference clearly but briefly"
)

_SENTENCE_END = re.compile(r"[.!?]")
_MAX_SENTENCES = 3


def _fact_block(label: str, g: GuardedCandidate) -> str:
    c = g.candidate
    rating = f"{c.rating:.1f}/5" if c.rating is not None else "unknown"
    reviews = str(c.reviews_count) if c.reviews_count is not None else "unknown"
    return (
        f'{label}: "{c.title}" from {c.platform}\n'
        f"- Score: {g.score * 100:.0f}/100\n"
        f"- Price: ${c.price:.2f}\n"
        f"- Rating: {rating}\n"
        f"- Reviews: {reviews}"
    )


def build_prompt(top: GuardedCandidate, runner_up: GuardedCandidate, query: str = "") -> str:
    facts = "\n\n".join([
        _fact_block("Top recommendation", top),
        _fact_block("Runner-up", runner_up),
    ])
    searched = f'The shopper searched for "{query}".\n\n' if query else ""
    return (
        f"{searched}Given these two similar products, explain in 2-3 sentences why "
        f"the top recommendation was chosen:\n\n{facts}\n\nKeep it brief and factual."
    )


def trim_sentences(text: str, max_sentences: int = _MAX_SENTENCES) -> str:
    """Cut replies that run past ``max_sentences`` sentences."""
    text = text.strip()
    if len(_SENTENCE_END.findall(text)) <= max_sentences:
        return text
    parts = [p.strip() for p in _SENTENCE_END.split(text) if p.strip()]
    return ". ".join(parts[:max_sentences]) + "."


def _extract_text(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for block in payload.get("content") or []:
        if isinstance(block, dict) and block.get("type") == "text" and block.get("text"):
            return str(block["text"])
    return None


class LLMExplanationProvider:
    """``ExplanationProvider`` backed by an HTTP messages endpoint.

    Args:
        config: Explainer section of ``AppConfig``; ``api_key`` must be set.

    Raises:
        RuntimeError: If constructed without an API key.
    """

    def __init__(self, config: ExplainerConfig) -> None:
        if not config.api_key:
            raise RuntimeError(
                "DEALFINDER_EXPLAINER_API_KEY must be set in .env to use the explanation provider."
            )
        self.config = config

    @classmethod
    def from_config(cls, config: ExplainerConfig) -> Optional["LLMExplanationProvider"]:
        """Build a provider when enabled and keyed, else ``None``."""
        if not config.enabled:
            return None
        if not config.api_key:
            logger.warning("Explainer enabled but no API key configured; using templates only.")
            return None
        return cls(config)

    def explain(self, top: GuardedCandidate, runner_up: GuardedCandidate, query: str = "") -> Optional[str]:
        import httpx

        body = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": build_prompt(top, runner_up, query)}],
        }
        headers = {
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.config.api_version,
            "content-type": "application/json",
        }
        try:
            resp = httpx.post(
                self.config.api_url,
                headers=headers,
                json=body,
                timeout=self.config.timeout_seconds,
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Explanation request failed: %s", exc)
            return None
        except ValueError as exc:
            logger.warning("Explanation response was not JSON: %s", exc)
            return None

        text = _extract_text(payload)
        if not text or not text.strip():
            logger.warning("Explanation response contained no text block.")
            return None
        return trim_sentences(text)
