"""
Trust annotation: presentation-only data derived from the guarded set.

Modules
-------
context    : ``TrustContext``: population averages computed once per request.
labels     : priority-ordered trust labels (best_value … higher_risk_lower_price).
explainer  : per-candidate explanation points + sentiment; query-level
             choice explanation with a pluggable ``ExplanationProvider``.
confidence : data-completeness indicator (Low / Medium / High).
cta        : call-to-action variant and copy.
risk       : risk disclosure with severity and mitigation.
annotator  : ``annotate_candidates()``: combines all of the above into a
             ``TrustReport`` keyed by candidate. Never modifies its input.
"""
