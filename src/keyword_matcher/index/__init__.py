"""
Keyword index persistence, caching and offline build.
"""

from .store import (
    KeywordIndexCache,
    build_degraded_index,
    get_keyword_index_cache,
    load_keyword_index,
    load_taxonomy,
    save_keyword_index,
)
from .builder import build_and_save, build_keyword_index

__all__ = [
    "KeywordIndexCache",
    "build_degraded_index",
    "get_keyword_index_cache",
    "load_keyword_index",
    "load_taxonomy",
    "save_keyword_index",
    "build_and_save",
    "build_keyword_index",
]
