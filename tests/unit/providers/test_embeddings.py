"""
Unit tests for embedding client adapters.
"""

from types import SimpleNamespace
from unittest.mock import patch

import ollama
import pytest
from openai import OpenAIError

from keyword_matcher.errors import EmbeddingProviderError, NoProviderAvailableError
from keyword_matcher.providers.embeddings import (
    OllamaEmbeddingClient,
    OpenAIEmbeddingClient,
    create_embedding_client,
)


def _embedding_response(*items):
    """items: (index, vector) pairs in arbitrary order."""
    return SimpleNamespace(
        data=[SimpleNamespace(index=i, embedding=vector) for i, vector in items]
    )


class TestOpenAIEmbeddingClient:
    """Test OpenAI-compatible embeddings with mocked SDK."""

    def test_sdk_retries_disabled(self):
        """Test the SDK client never retries on its own."""
        client = OpenAIEmbeddingClient(model="text-embedding-3-small", api_key="test-key")

        assert client.client.max_retries == 0

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_embed_batch_preserves_input_order(self, mock_openai):
        """Test vectors are returned in input order regardless of response order."""
        mock_openai.return_value.embeddings.create.return_value = _embedding_response(
            (1, [0.0, 1.0]), (0, [1.0, 0.0])
        )
        client = OpenAIEmbeddingClient(model="text-embedding-3-small", api_key="k")

        vectors = client.embed_batch(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        mock_openai.return_value.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["first", "second"]
        )

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_embed_single(self, mock_openai):
        """Test embed() returns one vector."""
        mock_openai.return_value.embeddings.create.return_value = _embedding_response(
            (0, [0.5, 0.5])
        )
        client = OpenAIEmbeddingClient(model="m", api_key="k")

        assert client.embed("text") == [0.5, 0.5]

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_empty_batch_skips_call(self, mock_openai):
        """Test no request is made for an empty batch."""
        client = OpenAIEmbeddingClient(model="m", api_key="k")

        assert client.embed_batch([]) == []
        mock_openai.return_value.embeddings.create.assert_not_called()

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_sdk_error_wrapped(self, mock_openai):
        """Test SDK failures become EmbeddingProviderError."""
        mock_openai.return_value.embeddings.create.side_effect = OpenAIError("401")
        client = OpenAIEmbeddingClient(model="m", api_key="bad")

        with pytest.raises(EmbeddingProviderError):
            client.embed("text")

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_count_mismatch(self, mock_openai):
        """Test a short response is rejected."""
        mock_openai.return_value.embeddings.create.return_value = _embedding_response(
            (0, [1.0])
        )
        client = OpenAIEmbeddingClient(model="m", api_key="k")

        with pytest.raises(EmbeddingProviderError):
            client.embed_batch(["a", "b"])

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_empty_vector_rejected(self, mock_openai):
        """Test an empty embedding is a provider error."""
        mock_openai.return_value.embeddings.create.return_value = _embedding_response((0, []))
        client = OpenAIEmbeddingClient(model="m", api_key="k")

        with pytest.raises(EmbeddingProviderError, match="empty embedding"):
            client.embed("a")


class TestOllamaEmbeddingClient:
    """Test Ollama embeddings with mocked SDK."""

    @patch("keyword_matcher.providers.embeddings.ollama.Client")
    def test_embed_batch(self, mock_client_class):
        """Test vectors are read from the embeddings field."""
        mock_client_class.return_value.embed.return_value = {"embeddings": [[0.1, 0.2], [0.3, 0.4]]}
        client = OllamaEmbeddingClient(model="nomic-embed-text")

        assert client.embed_batch(["a", "b"]) == [[0.1, 0.2], [0.3, 0.4]]

    @patch("keyword_matcher.providers.embeddings.ollama.Client")
    def test_response_error_wrapped(self, mock_client_class):
        """Test Ollama errors become EmbeddingProviderError."""
        mock_client_class.return_value.embed.side_effect = ollama.ResponseError("model not found", 404)
        client = OllamaEmbeddingClient(model="missing")

        with pytest.raises(EmbeddingProviderError):
            client.embed("a")


class TestCreateEmbeddingClient:
    """Test the embedding client factory."""

    def test_no_provider(self, mock_settings):
        """Test the error when no embedding credential is configured."""
        with pytest.raises(NoProviderAvailableError):
            create_embedding_client(settings=mock_settings)

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_openai(self, mock_openai, openai_settings):
        """Test the resolved OpenAI client."""
        client = create_embedding_client(settings=openai_settings)

        assert client.provider_name == "openai"
        assert client.model == "text-embedding-3-small"
        assert mock_openai.call_args.kwargs["api_key"] == "test-openai-key"

    @patch("keyword_matcher.providers.embeddings.OpenAI")
    def test_gemini(self, mock_openai, settings_factory):
        """Test Gemini embeddings through the OpenAI-compatible endpoint."""
        client = create_embedding_client(settings=settings_factory(gemini_api_key="g"))

        assert client.provider_name == "gemini"
        assert client.model == "text-embedding-004"
        assert mock_openai.call_args.kwargs["base_url"].endswith("/v1beta/openai/")

    @patch("keyword_matcher.providers.embeddings.ollama.Client")
    def test_ollama(self, mock_client_class, settings_factory):
        """Test the explicit Ollama client."""
        settings = settings_factory(
            embedding_provider="ollama", ollama_base_url="http://localhost:11434"
        )

        client = create_embedding_client(settings=settings)

        assert isinstance(client, OllamaEmbeddingClient)
        mock_client_class.assert_called_once_with(host="http://localhost:11434")
