"""
Keyword search: embedding similarity and lexical fallback ranking.
"""

from .similarity import cosine_similarity, expected_dimension, find_top_similar
from .lexical import rank_keywords_lexically, tokenize_keyword

__all__ = [
    "cosine_similarity",
    "expected_dimension",
    "find_top_similar",
    "rank_keywords_lexically",
    "tokenize_keyword",
]
