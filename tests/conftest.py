"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- Settings with no provider credentials (and with fake ones)
- A small in-memory keyword index
- Fake embedding and generation clients
- A fresh usage tracker per test
"""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from keyword_matcher.config import Settings
from keyword_matcher.models.keyword_index import KeywordEntry, KeywordIndex, Taxonomy
from keyword_matcher.providers.embeddings import EmbeddingClient
from keyword_matcher.providers.generation import LLMClient, LLMResponse
from keyword_matcher.usage import UsageTracker


def make_settings(**overrides) -> Settings:
    """
    Build settings isolated from the environment and any .env file.

    Every credential defaults to empty; pass overrides to configure providers.
    """
    values = {
        "openai_api_key": "",
        "gemini_api_key": "",
        "openrouter_api_key": "",
        "embedding_provider": None,
        "llm_provider": None,
        "ollama_base_url": "",
        "log_level": "INFO",
        "log_json": False,  # Easier to read in tests
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


# Unit vectors along distinct axes; queries are built from these
SAMPLE_VECTORS: Dict[str, List[float]] = {
    "Serial Killer": [1.0, 0.0, 0.0, 0.0],
    "Detective": [0.9, 0.1, 0.0, 0.0],
    "Paris": [0.0, 1.0, 0.0, 0.0],
    "1970s": [0.0, 0.8, 0.2, 0.0],
    "Heist": [0.0, 0.0, 1.0, 0.0],
    "Space Travel": [0.0, 0.0, 0.0, 1.0],
}


class FakeEmbeddingClient(EmbeddingClient):
    """Embedding client returning canned vectors."""

    provider_name = "openai"

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, default=None):
        super().__init__(model="text-embedding-3-small")
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0, 0.0, 0.0]
        self.calls: List[List[str]] = []

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [list(self.vectors.get(text, self.default)) for text in texts]


class FakeLLMClient(LLMClient):
    """Generation client returning a canned answer."""

    def __init__(
        self,
        content: str = "",
        provider_name: str = "openai",
        model: str = "gpt-4o-mini",
        error: Optional[Exception] = None,
        tokens: Optional[Dict[str, int]] = None,
    ):
        self.provider_name = provider_name
        super().__init__(model=model)
        self.content = content
        self.error = error
        self.tokens = tokens or {"input": 120, "output": 30}
        self.prompts: List[tuple] = []

    def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        self.prompts.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content,
            model=self.model,
            provider=self.provider_name,
            tokens_input=self.tokens["input"],
            tokens_output=self.tokens["output"],
            tokens_total=self.tokens["input"] + self.tokens["output"],
        )


@pytest.fixture
def mock_settings() -> Settings:
    """
    Settings with no credentials configured (degraded, lexical-only mode).

    Returns:
        Settings instance with test configuration
    """
    return make_settings()


@pytest.fixture
def openai_settings() -> Settings:
    """Settings with an OpenAI key (embeddings and generation available)."""
    return make_settings(openai_api_key="test-openai-key")


@pytest.fixture
def sample_index() -> KeywordIndex:
    """Small embedded index with 4-dimensional vectors."""
    return KeywordIndex(
        keywords=[
            KeywordEntry(keyword=keyword, path=["Test"], embedding=vector)
            for keyword, vector in SAMPLE_VECTORS.items()
        ],
        embedding_provider="openai",
        embedding_model="text-embedding-3-small",
        embedding_dimensions=4,
    )


@pytest.fixture
def degraded_index() -> KeywordIndex:
    """Index of the same keywords with every embedding empty."""
    return KeywordIndex(
        keywords=[
            KeywordEntry(keyword=keyword, path=["Test"], embedding=[])
            for keyword in SAMPLE_VECTORS
        ]
    )


@pytest.fixture
def sample_taxonomy() -> Taxonomy:
    return Taxonomy.model_validate({
        "keywords": [
            {"keyword": keyword, "path": ["Test"]} for keyword in SAMPLE_VECTORS
        ]
    })


@pytest.fixture
def taxonomy_file(tmp_path: Path, sample_taxonomy: Taxonomy) -> Path:
    """Taxonomy JSON written to a temporary file."""
    path = tmp_path / "keywords.json"
    path.write_text(json.dumps(sample_taxonomy.model_dump()), encoding="utf-8")
    return path


@pytest.fixture
def fake_embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient(vectors=SAMPLE_VECTORS)


@pytest.fixture
def usage_tracker() -> UsageTracker:
    """Fresh usage tracker, isolated from the process-wide one."""
    return UsageTracker()


@pytest.fixture
def settings_factory():
    """Callable building isolated settings: settings_factory(openai_api_key=...)."""
    return make_settings


@pytest.fixture
def llm_client_factory():
    """Callable building fake LLM clients: llm_client_factory(content=...)."""
    return FakeLLMClient


@pytest.fixture
def embedding_client_factory():
    """Callable building fake embedding clients: embedding_client_factory(vectors=...)."""
    return FakeEmbeddingClient
