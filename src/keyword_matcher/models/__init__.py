"""
Data models for keyword matching.
"""

from .keyword_index import KeywordEntry, KeywordIndex, Taxonomy, TaxonomyKeyword
from .matching import (
    MatchMethod,
    MatchRequest,
    MatchResult,
    UsageEstimate,
    parse_match_request,
)

__all__ = [
    "KeywordEntry",
    "KeywordIndex",
    "Taxonomy",
    "TaxonomyKeyword",
    "MatchMethod",
    "MatchRequest",
    "MatchResult",
    "UsageEstimate",
    "parse_match_request",
]
