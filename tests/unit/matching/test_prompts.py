"""
Unit tests for refinement prompt construction and token estimation.
"""

from keyword_matcher.matching.prompts import (
    SYSTEM_PROMPT,
    build_selection_prompt,
    estimate_prompt_tokens,
    estimate_tokens,
)


class TestBuildSelectionPrompt:
    """Test prompt construction."""

    def test_contains_description_and_candidates(self):
        """Test the user prompt embeds description and shortlist."""
        system, user = build_selection_prompt("A heist in Paris", ["Heist", "Paris", "1970s"])

        assert system == SYSTEM_PROMPT
        assert "A heist in Paris" in user
        assert "Heist, Paris, 1970s" in user

    def test_count_range(self):
        """Test the requested selection range is stated."""
        _, user = build_selection_prompt("desc", ["a"], min_count=3, max_count=7)

        assert "select 3-7 keywords" in user

    def test_json_example_is_literal(self):
        """Test the JSON example survives formatting with single braces."""
        _, user = build_selection_prompt("desc", ["a"])

        assert '{"keywords": ["Keyword1", "Keyword2", "Keyword3", ...]}' in user

    def test_description_with_braces(self):
        """Test descriptions containing braces are inserted verbatim."""
        description = 'A film about {"json"} and {placeholders}'

        _, user = build_selection_prompt(description, ["a"])

        assert description in user

    def test_closed_world_instruction(self):
        """Test the prompt forbids keywords outside the shortlist."""
        _, user = build_selection_prompt("desc", ["a"])

        assert "ONLY select keywords from the candidate list" in user

    def test_system_prompt_requests_json(self):
        """Test the system prompt asks for a keywords array."""
        assert '"keywords"' in SYSTEM_PROMPT


class TestTokenEstimation:
    """Test the character-based token heuristic."""

    def test_four_chars_per_token(self):
        """Test ~4 characters per token, rounded up."""
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("") == 0

    def test_prompt_tokens_include_both_parts(self):
        """Test the estimate covers system and user prompts."""
        system, user = "s" * 40, "u" * 40

        assert estimate_prompt_tokens(system, user) == estimate_tokens(system + "\n\n" + user)
        assert estimate_prompt_tokens(system, user) > estimate_tokens(user)

    def test_longer_shortlist_costs_more(self):
        """Test the estimate grows with the shortlist."""
        short = estimate_prompt_tokens(*build_selection_prompt("d", ["keyword"] * 5))
        long = estimate_prompt_tokens(*build_selection_prompt("d", ["keyword"] * 50))

        assert long > short
