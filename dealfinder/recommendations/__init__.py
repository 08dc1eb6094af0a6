"""
Recommendation engine: turns matched candidates into a short, badged,
risk-annotated recommendation set.

Modules
-------
scorer     : ``ScoredCandidate`` + ``score_candidates()``: weighted score,
             confidence, fail-closed filter. Pure functions, no I/O.
ranker     : ``RankedCandidate`` + ``assign_badges()``: exclusive badges.
guardrails : ``GuardedCandidate`` + ``apply_guardrails()``: layered
             threshold checks, recommend / flag decision.
reporter   : JSON / CSV output of a pipeline result.
"""
