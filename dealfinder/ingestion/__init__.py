"""
Candidate data sources. All of them run before the matcher and return plain
mappings; coercion into ``Candidate`` happens at the matcher boundary.
"""
