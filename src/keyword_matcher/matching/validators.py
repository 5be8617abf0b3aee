"""
Closed-world validation of LLM keyword output.

Two steps:
1. Extraction - best-effort parse of the provider's raw text into a list of
   candidate keywords (never raises)
2. Validation - drop every candidate not in the taxonomy's allowed set

Extraction is an ordered chain of parser strategies. Each strategy returns
a keyword list, or None when the input is not its shape; the first non-None
result wins.
"""

import json
import re
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Set, Union

import structlog

from ..models.keyword_index import KeywordIndex


logger = structlog.get_logger(__name__)

AllowedKeywords = Union[Set[str], FrozenSet[str]]

# Sentinel for "response is not JSON"
_NOT_JSON = object()

_CODE_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*(.*?)\s*```$", re.DOTALL)
_TEXT_SPLIT = re.compile(r"[,\n]")


# ============================================================================
# VALIDATION
# ============================================================================

def get_allowed_keywords_set(keyword_index: KeywordIndex) -> FrozenSet[str]:
    """Closed set of keywords the matcher may return."""
    return frozenset(entry.keyword for entry in keyword_index.keywords)


def validate_keywords(candidates: Iterable[str], allowed: AllowedKeywords) -> List[str]:
    """
    Keep only candidates present in the allowed set, preserving order.

    Examples:
        >>> validate_keywords(["a", "x", "b"], {"a", "b"})
        ['a', 'b']
    """
    return [keyword for keyword in candidates if keyword in allowed]


# ============================================================================
# EXTRACTION STRATEGIES
# ============================================================================

def _project(items: List[Any]) -> List[str]:
    """Stringify and trim every element, dropping empties."""
    keywords = []
    for item in items:
        text = str(item).strip()
        if text:
            keywords.append(text)
    return keywords


def _from_json_list(parsed: Any) -> Optional[List[str]]:
    if isinstance(parsed, list):
        return _project(parsed)
    return None


def _from_keywords_field(parsed: Any) -> Optional[List[str]]:
    if isinstance(parsed, dict) and isinstance(parsed.get("keywords"), list):
        return _project(parsed["keywords"])
    return None


def _from_any_list_field(parsed: Any) -> Optional[List[str]]:
    # e.g. {"selected": [...]} when the model renames the field
    if isinstance(parsed, dict):
        for value in parsed.values():
            if isinstance(value, list):
                return _project(value)
    return None


JSON_STRATEGIES: List[Callable[[Any], Optional[List[str]]]] = [
    _from_json_list,
    _from_keywords_field,
    _from_any_list_field,
]


def _split_text(text: str) -> List[str]:
    """
    Comma/newline separated fallback.

    Segments starting with '[' or '{' are fragments of JSON that failed to
    parse and are dropped.
    """
    segments = (segment.strip() for segment in _TEXT_SPLIT.split(text))
    return [
        segment
        for segment in segments
        if segment and not segment.startswith("[") and not segment.startswith("{")
    ]


def _strip_code_fences(text: str) -> str:
    """Remove surrounding ```...``` fences (with or without 'json') if present."""
    stripped = text.strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1) if match else stripped


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return _NOT_JSON


def extract_keywords_from_llm_response(response: str) -> List[str]:
    """
    Extract candidate keywords from a provider's raw text.

    Accepted shapes, in priority order:
    - JSON array: ["a", "b"]
    - JSON object with a "keywords" array: {"keywords": ["a", "b"]}
    - JSON object with any other array field
    - plain text separated by commas and/or newlines

    Text that parses as JSON of any other shape (a number, a bare string, null,
    an object without array fields) yields [] and is not re-read as plain text:
    a quoted "a, b" string is a malformed answer, not a comma list. The
    caller's fallback then applies. Never raises: deciding what to do with too
    few keywords is the caller's job.

    Examples:
        >>> extract_keywords_from_llm_response('{"keywords": ["a", "b"]}')
        ['a', 'b']
        >>> extract_keywords_from_llm_response("a, , b\\nc")
        ['a', 'b', 'c']
    """
    if not response:
        return []

    text = _strip_code_fences(response)
    parsed = _parse_json(text)

    if parsed is _NOT_JSON:
        return _split_text(text)

    for strategy in JSON_STRATEGIES:
        keywords = strategy(parsed)
        if keywords is not None:
            return keywords

    logger.debug("llm_response_unrecognized_shape", response_type=type(parsed).__name__)
    return []
