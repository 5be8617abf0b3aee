"""
Prompt management for LLM keyword refinement.

The prompt is closed-world: the model may only pick keywords from the
shortlist it is given. Output is requested as {"keywords": [...]}, but the
response is never trusted to honor that (see validators).
"""

import math
from typing import Sequence, Tuple

from ..version import PROMPT_VERSION


CURRENT_PROMPT_VERSION = PROMPT_VERSION

# Rough output size of a 10-15 keyword JSON answer
ESTIMATED_OUTPUT_TOKENS = 30

CHARS_PER_TOKEN = 4


SYSTEM_PROMPT = (
    "You are a helpful assistant that selects keywords from a provided list. "
    'Always return a valid JSON object with a "keywords" array field.'
)


USER_PROMPT_TEMPLATE = """You are a keyword matcher. Given a description and a shortlist of candidate keywords, select {min_count}-{max_count} keywords that best match the description.

Description:
{description}

Candidate Keywords (select from these only):
{candidates}

IMPORTANT: You must ONLY select keywords from the candidate list above. Do not invent or modify keywords.

Return your response as a JSON object with a "keywords" array field containing {min_count}-{max_count} selected keywords, like this:
{{"keywords": ["Keyword1", "Keyword2", "Keyword3", ...]}}

Select exactly {min_count}-{max_count} keywords that best match the description."""


def build_selection_prompt(
    description: str,
    shortlist: Sequence[str],
    min_count: int = 10,
    max_count: int = 15,
) -> Tuple[str, str]:
    """
    Build the (system, user) prompt pair for keyword refinement.

    Args:
        description: Free-text description to match
        shortlist: Candidate keywords, best first
        min_count: Lower bound of the requested selection size
        max_count: Upper bound of the requested selection size

    Returns:
        (system_prompt, user_prompt)
    """
    user_prompt = USER_PROMPT_TEMPLATE.format(
        description=description,
        candidates=", ".join(shortlist),
        min_count=min_count,
        max_count=max_count,
    )
    return SYSTEM_PROMPT, user_prompt


def estimate_tokens(text: str) -> int:
    """Fast heuristic: ~4 characters per token."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_prompt_tokens(system_prompt: str, user_prompt: str) -> int:
    return estimate_tokens(system_prompt + "\n\n" + user_prompt)
