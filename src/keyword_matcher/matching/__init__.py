"""
Keyword matching orchestration.

Main components:
- matcher: KeywordMatcher, the pipeline entry point
- validators: Extraction and closed-world validation of LLM output
- prompts: Refinement prompt template and token estimation
"""

from .matcher import KeywordMatcher, match_keywords
from .prompts import build_selection_prompt, estimate_prompt_tokens, estimate_tokens
from .validators import (
    extract_keywords_from_llm_response,
    get_allowed_keywords_set,
    validate_keywords,
)

__all__ = [
    "KeywordMatcher",
    "match_keywords",
    "build_selection_prompt",
    "estimate_prompt_tokens",
    "estimate_tokens",
    "extract_keywords_from_llm_response",
    "get_allowed_keywords_set",
    "validate_keywords",
]
