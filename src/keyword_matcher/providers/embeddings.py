"""
Embedding client adapters.

Implements the "embed text" capability the matcher consumes:
- OpenAI embeddings API
- Gemini, through Google's OpenAI-compatible endpoint
- Ollama (self-hosted embedding models)

Batch calls preserve input order. All provider failures surface as
EmbeddingProviderError. Adapters do not retry.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import ollama
import structlog
from openai import OpenAI, OpenAIError

from ..config import Settings, settings as default_settings
from ..errors import EmbeddingProviderError, NoProviderAvailableError
from .resolution import embedding_model_for, resolve_embedding_provider


logger = structlog.get_logger(__name__)


class EmbeddingClient(ABC):
    """
    Abstract base class for embedding clients.
    """

    provider_name: str = "unknown"

    def __init__(self, model: str):
        self.model = model
        self.logger = logger.bind(
            embedding_client=self.__class__.__name__,
            provider=self.provider_name,
            model=model,
        )

    def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        return self.embed_batch([text])[0]

    @abstractmethod
    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed several texts in one call.

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingProviderError: On provider failure or malformed response
        """

    def _check_count(self, texts: Sequence[str], vectors: List[List[float]]) -> List[List[float]]:
        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"{self.provider_name} returned {len(vectors)} embeddings for {len(texts)} texts"
            )
        for position, vector in enumerate(vectors):
            if not vector:
                raise EmbeddingProviderError(
                    f"{self.provider_name} returned an empty embedding at position {position}"
                )
        return vectors


class OpenAIEmbeddingClient(EmbeddingClient):
    """
    OpenAI-compatible embeddings client.

    Works with api.openai.com and Google's OpenAI-compatible Gemini endpoint.
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        provider_name: str = "openai",
        timeout_seconds: int = 60,
    ):
        self.provider_name = provider_name
        super().__init__(model=model)
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        try:
            response = self.client.embeddings.create(model=self.model, input=list(texts))
        except OpenAIError as e:
            self.logger.error("embedding_request_failed", error=str(e), batch_size=len(texts))
            raise EmbeddingProviderError(f"{self.provider_name} embedding error: {e}") from e

        items = sorted(response.data, key=lambda item: item.index)
        return self._check_count(texts, [list(item.embedding) for item in items])


class OllamaEmbeddingClient(EmbeddingClient):
    """
    Ollama client for self-hosted embedding models (e.g. nomic-embed-text).
    """

    provider_name = "ollama"

    def __init__(self, model: str, base_url: str = "http://localhost:11434"):
        super().__init__(model=model)
        self.base_url = base_url
        self.client = ollama.Client(host=base_url)

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        try:
            response = self.client.embed(model=self.model, input=list(texts))
        except (ollama.ResponseError, ollama.RequestError, ConnectionError) as e:
            self.logger.error("embedding_request_failed", error=str(e), batch_size=len(texts))
            raise EmbeddingProviderError(f"ollama embedding error: {e}") from e

        embeddings = response.get("embeddings") or []
        return self._check_count(texts, [list(vector) for vector in embeddings])


def create_embedding_client(
    provider: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> EmbeddingClient:
    """
    Factory function to create the embedding client for a provider.

    Args:
        provider: Provider name (default: resolved from settings)
        settings: Settings (default: global settings)

    Returns:
        Configured EmbeddingClient

    Raises:
        NoProviderAvailableError: If no embedding provider is configured
    """
    settings = settings or default_settings
    provider = provider or resolve_embedding_provider(settings)

    if provider is None:
        raise NoProviderAvailableError("No AI API key is set for embeddings")

    model = embedding_model_for(provider, settings)
    logger.info("creating_embedding_client", provider=provider, model=model)

    if provider == "openai":
        return OpenAIEmbeddingClient(
            model=model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout_seconds=settings.llm_timeout_seconds,
        )

    elif provider == "gemini":
        return OpenAIEmbeddingClient(
            model=model,
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_openai_base_url,
            provider_name="gemini",
            timeout_seconds=settings.llm_timeout_seconds,
        )

    elif provider == "ollama":
        return OllamaEmbeddingClient(model=model, base_url=settings.ollama_base_url)

    raise NoProviderAvailableError(f"Unknown embedding provider: {provider}")
