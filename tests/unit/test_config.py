"""
Unit tests for settings.
"""

from keyword_matcher.config import Settings


class TestSettings:
    """Test configuration defaults and environment overrides."""

    def test_defaults(self, mock_settings):
        """Test matching policy defaults."""
        assert mock_settings.shortlist_size == 50
        assert mock_settings.target_keyword_min == 10
        assert mock_settings.target_keyword_max == 15
        assert mock_settings.keyword_count_min == 1
        assert mock_settings.keyword_count_max == 50
        assert mock_settings.gemini_api_version == "v1beta"

    def test_environment_override(self, monkeypatch):
        """Test values are read from environment variables."""
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        monkeypatch.setenv("SHORTLIST_SIZE", "25")

        settings = Settings(_env_file=None)

        assert settings.gemini_api_key == "env-key"
        assert settings.shortlist_size == 25

    def test_gemini_openai_base_url(self, settings_factory):
        """Test the OpenAI-compatible Gemini URL follows the API version."""
        settings = settings_factory(gemini_api_version="v1")

        assert settings.gemini_openai_base_url == (
            "https://generativelanguage.googleapis.com/v1/openai/"
        )
