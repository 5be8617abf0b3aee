"""
Unit tests for the offline keyword index build.
"""

import json
from unittest.mock import Mock, patch

import pytest
from pydantic import ValidationError

from keyword_matcher.errors import (
    EmbeddingProviderError,
    InconsistentIndexError,
    InvalidInputError,
)
from keyword_matcher.index.builder import build_and_save, build_keyword_index
from keyword_matcher.models.keyword_index import Taxonomy, TaxonomyKeyword


class TestBuildKeywordIndex:
    """Test index construction from a taxonomy."""

    def test_embeds_every_keyword(self, sample_taxonomy, fake_embedding_client):
        """Test each taxonomy keyword gets its embedding."""
        index = build_keyword_index(sample_taxonomy, embedding_client=fake_embedding_client)

        assert len(index) == 6
        assert index.keywords[2].keyword == "Paris"
        assert index.keywords[2].embedding == [0.0, 1.0, 0.0, 0.0]
        assert index.keywords[2].path == ["Test"]

    def test_records_embedding_metadata(self, sample_taxonomy, fake_embedding_client):
        """Test the index is annotated with provider, model and dimensions."""
        index = build_keyword_index(sample_taxonomy, embedding_client=fake_embedding_client)

        assert index.embedding_provider == "openai"
        assert index.embedding_model == "text-embedding-3-small"
        assert index.embedding_dimensions == 4

    def test_batches_requests(self, sample_taxonomy, fake_embedding_client):
        """Test keywords are embedded in batches of batch_size."""
        build_keyword_index(sample_taxonomy, embedding_client=fake_embedding_client, batch_size=4)

        assert [len(batch) for batch in fake_embedding_client.calls] == [4, 2]
        assert sum(fake_embedding_client.calls, []) == [
            k.keyword for k in sample_taxonomy.keywords
        ]

    def test_without_client_builds_degraded_index(self, sample_taxonomy):
        """Test the no-credential build keeps keywords without embeddings."""
        index = build_keyword_index(sample_taxonomy, embedding_client=None)

        assert len(index) == 6
        assert index.is_degraded
        assert index.embedding_dimensions is None

    def test_wrong_batch_count_raises(self, sample_taxonomy):
        """Test a provider returning too few vectors fails the build."""
        client = Mock()
        client.embed_batch.return_value = [[1.0, 0.0]]

        with pytest.raises(EmbeddingProviderError):
            build_keyword_index(sample_taxonomy, embedding_client=client, batch_size=3)

    def test_mixed_dimensions_raise(self, sample_taxonomy, embedding_client_factory):
        """Test a provider returning vectors of different lengths fails the build."""
        client = embedding_client_factory(vectors={"Heist": [1.0, 0.0]}, default=[1.0, 0.0, 0.0])

        with pytest.raises(EmbeddingProviderError, match="mixed dimensions"):
            build_keyword_index(sample_taxonomy, embedding_client=client)

    def test_invalid_batch_size(self, sample_taxonomy, fake_embedding_client):
        """Test batch_size must be positive."""
        with pytest.raises(InvalidInputError):
            build_keyword_index(sample_taxonomy, embedding_client=fake_embedding_client, batch_size=0)

    def test_duplicate_keywords_rejected(self, fake_embedding_client):
        """Test an index is never built with the same keyword twice."""
        taxonomy = Taxonomy.model_construct(keywords=[
            TaxonomyKeyword(keyword="Heist"),
            TaxonomyKeyword(keyword="Heist"),
        ])

        with pytest.raises(ValidationError, match="Duplicate keywords"):
            build_keyword_index(taxonomy, embedding_client=fake_embedding_client)

    def test_provider_error_propagates(self, sample_taxonomy):
        """Test embedding failures abort the build."""
        client = Mock()
        client.embed_batch.side_effect = EmbeddingProviderError("boom")

        with pytest.raises(EmbeddingProviderError, match="boom"):
            build_keyword_index(sample_taxonomy, embedding_client=client)


class TestBuildAndSave:
    """Test the load-build-write flow."""

    def test_writes_index_file(self, tmp_path, taxonomy_file, mock_settings, fake_embedding_client):
        """Test the built index is written to the output path."""
        output = tmp_path / "out" / "index.json"

        index = build_and_save(
            settings=mock_settings,
            taxonomy_path=str(taxonomy_file),
            output_path=str(output),
            embedding_client=fake_embedding_client,
        )

        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data["keywords"]) == len(index) == 6
        assert data["embeddingDimensions"] == 4

    def test_without_provider_writes_degraded_index(self, tmp_path, taxonomy_file, mock_settings):
        """Test no embedding client is created when no provider is configured."""
        output = tmp_path / "index.json"

        with patch("keyword_matcher.index.builder.create_embedding_client") as mock_create:
            index = build_and_save(
                settings=mock_settings,
                taxonomy_path=str(taxonomy_file),
                output_path=str(output),
            )

        mock_create.assert_not_called()
        assert index.is_degraded
        assert "embeddingDimensions" not in json.loads(output.read_text())

    def test_creates_client_from_settings(
        self, tmp_path, taxonomy_file, openai_settings, fake_embedding_client
    ):
        """Test the configured provider's client is used when none is passed."""
        with patch(
            "keyword_matcher.index.builder.create_embedding_client",
            return_value=fake_embedding_client,
        ) as mock_create:
            index = build_and_save(
                settings=openai_settings,
                taxonomy_path=str(taxonomy_file),
                output_path=str(tmp_path / "index.json"),
            )

        mock_create.assert_called_once_with(settings=openai_settings)
        assert index.embedding_provider == "openai"

    def test_duplicate_taxonomy_file(self, tmp_path, mock_settings, fake_embedding_client):
        """Test a keywords file with duplicates fails before any embedding call."""
        taxonomy_path = tmp_path / "keywords.json"
        taxonomy_path.write_text(json.dumps({
            "keywords": [{"keyword": "Heist"}, {"keyword": "Heist"}]
        }))

        with pytest.raises(InconsistentIndexError):
            build_and_save(
                settings=mock_settings,
                taxonomy_path=str(taxonomy_path),
                output_path=str(tmp_path / "index.json"),
                embedding_client=fake_embedding_client,
            )

        assert fake_embedding_client.calls == []

    def test_uses_settings_paths_by_default(self, tmp_path, taxonomy_file, settings_factory):
        """Test taxonomy and output paths default to settings."""
        output = tmp_path / "default-index.json"
        settings = settings_factory(
            keywords_path=str(taxonomy_file), keyword_index_path=str(output)
        )

        build_and_save(settings=settings)

        assert output.exists()
