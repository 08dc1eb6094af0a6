"""dealfinder: deterministic product matching, scoring, badge ranking and guardrails."""

__version__ = "0.1.0"
