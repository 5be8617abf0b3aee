"""
Embedding and generation provider adapters.

The matcher only depends on the EmbeddingClient and LLMClient interfaces;
concrete clients wrap the openai and ollama SDKs.
"""

from .embeddings import (
    EmbeddingClient,
    OllamaEmbeddingClient,
    OpenAIEmbeddingClient,
    create_embedding_client,
)
from .generation import (
    LLMClient,
    LLMResponse,
    OllamaClient,
    OpenAICompatibleClient,
    create_llm_client,
)
from .resolution import (
    is_provider_configured,
    resolve_embedding_provider,
    resolve_generation_provider,
)

__all__ = [
    "EmbeddingClient",
    "OllamaEmbeddingClient",
    "OpenAIEmbeddingClient",
    "create_embedding_client",
    "LLMClient",
    "LLMResponse",
    "OllamaClient",
    "OpenAICompatibleClient",
    "create_llm_client",
    "is_provider_configured",
    "resolve_embedding_provider",
    "resolve_generation_provider",
]
