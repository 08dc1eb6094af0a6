"""
Candidate matching: dedup + compatibility filtering of raw listings.

Modules
-------
attributes : text normalization, keyword extraction, ``AttributeProfile``
             (storage / screen size / keyword flags) and compatibility rules.
matcher    : ``match_candidates()``: the ordered filter chain.
"""
