"""
Lexical keyword ranking for degraded mode (no embedding provider).

Scoring:
- +3 if the lowercased description contains the whole keyword
- +1 for each keyword token (lowercase alphanumeric run longer than 2
  characters) found in the description
"""

import re
from typing import List, Tuple

from ..models.keyword_index import KeywordIndex


EXACT_MATCH_SCORE = 3
MIN_TOKEN_LENGTH = 3

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")


def tokenize_keyword(keyword: str) -> List[str]:
    """
    Split a keyword into lowercase alphanumeric tokens longer than 2 characters.

    Examples:
        >>> tokenize_keyword("Time-Travel (Sci-Fi)")
        ['time', 'travel', 'sci']
    """
    return [
        token
        for token in _TOKEN_SPLIT.split(keyword.lower())
        if len(token) >= MIN_TOKEN_LENGTH
    ]


def score_keyword(description_lower: str, keyword: str) -> int:
    keyword_lower = keyword.lower()
    score = EXACT_MATCH_SCORE if keyword_lower in description_lower else 0
    score += sum(1 for token in tokenize_keyword(keyword) if token in description_lower)
    return score


def rank_keywords_lexically(description: str, keyword_index: KeywordIndex) -> List[Tuple[str, int]]:
    """
    Rank index keywords against a description without embeddings.

    Entries scoring zero are dropped. Ties are broken by keyword text
    (case-insensitive, then exact) so the order is deterministic.

    Args:
        description: Free-text description
        keyword_index: Index whose keywords are ranked (embeddings unused)

    Returns:
        List of (keyword, score) tuples, best first
    """
    description_lower = description.lower()

    scored = [
        (entry.keyword, score_keyword(description_lower, entry.keyword))
        for entry in keyword_index.keywords
    ]

    ranked = [item for item in scored if item[1] > 0]
    ranked.sort(key=lambda item: (-item[1], item[0].lower(), item[0]))

    return ranked
