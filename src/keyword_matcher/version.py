"""
Version constants for the keyword matcher.

Bump PROMPT_VERSION whenever the selection prompt text changes, so usage
estimates and logs can be correlated with the prompt that produced them.
"""

__version__ = "1.0.0"

# Component versions (update these when implementations change)
PROMPT_VERSION = "keyword-select-v1"
