"""
Application configuration management.

This module handles configuration from environment variables using Pydantic Settings.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration from environment variables.

    All settings can be overridden via environment variables with the same name.
    """

    # Provider credentials (empty string = not configured)
    openai_api_key: str = ""
    gemini_api_key: str = ""
    openrouter_api_key: str = ""

    # Embeddings
    embedding_provider: Optional[str] = None  # "openai" | "gemini" | "ollama" | None = auto
    embedding_model: str = "text-embedding-3-small"
    gemini_embedding_model: str = "text-embedding-004"
    ollama_embedding_model: str = "nomic-embed-text"
    embedding_batch_size: int = 100

    # Generation (refinement)
    llm_provider: Optional[str] = None  # "openrouter" | "gemini" | "openai" | "ollama" | None = auto
    llm_model: str = "gpt-4o-mini"
    gemini_llm_model: str = "gemini-2.0-flash"
    openrouter_model: str = "openai/gpt-4o-mini"
    ollama_llm_model: str = "qwen2.5:7b"
    llm_temperature: float = 0.3  # Low for determinism
    llm_max_tokens: int = 1024
    llm_timeout_seconds: int = 60

    # Provider endpoints
    openai_base_url: str = "https://api.openai.com/v1"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    gemini_api_version: str = "v1beta"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    ollama_base_url: str = ""  # e.g. http://localhost:11434, empty = not configured
    openrouter_app_url: str = "http://localhost:3000"
    openrouter_app_title: str = "Keyword Matcher"

    # Matching policy
    shortlist_size: int = 50
    target_keyword_min: int = 10
    target_keyword_max: int = 15
    keyword_count_min: int = 1
    keyword_count_max: int = 50

    # Data files
    keyword_index_path: str = "./data/keyword-index.json"
    keywords_path: str = "./data/keywords.json"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def gemini_openai_base_url(self) -> str:
        """Google's OpenAI-compatible endpoint for the configured API version."""
        return f"{self.gemini_base_url}/{self.gemini_api_version}/openai/"


# Global settings instance
settings = Settings()
