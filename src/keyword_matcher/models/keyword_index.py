"""
Data models for the keyword taxonomy and its embedding index.

The index is built offline (see index.builder), persisted as a flat JSON
record and loaded read-only. Models are frozen: the only way to change an
index is to rebuild and replace it whole.
"""

from collections import Counter
from typing import Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _check_unique_keywords(keywords: Iterable[str]) -> None:
    duplicates = sorted(k for k, count in Counter(keywords).items() if count > 1)
    if duplicates:
        raise ValueError(f"Duplicate keywords: {', '.join(duplicates)}")


class TaxonomyKeyword(BaseModel):
    """A keyword in the source taxonomy, without embedding."""

    model_config = ConfigDict(frozen=True)

    keyword: str = Field(description="Keyword text, unique within the taxonomy")
    path: List[str] = Field(
        default_factory=list, description="Taxonomy breadcrumb, root to leaf"
    )


class Taxonomy(BaseModel):
    """Source taxonomy file: {"keywords": [{"keyword", "path"}, ...]}."""

    model_config = ConfigDict(frozen=True)

    keywords: List[TaxonomyKeyword] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_keywords(self) -> "Taxonomy":
        _check_unique_keywords(k.keyword for k in self.keywords)
        return self


class KeywordEntry(BaseModel):
    """
    A single taxonomy keyword with its embedding vector.

    An empty embedding marks an entry built in degraded (no credential) mode.
    Embedding length uniformity is an index-wide invariant, checked at query
    time by search.similarity.find_top_similar.
    """

    model_config = ConfigDict(frozen=True)

    keyword: str = Field(description="Keyword text, unique within the index")
    path: List[str] = Field(
        default_factory=list, description="Taxonomy breadcrumb, root to leaf"
    )
    embedding: List[float] = Field(
        default_factory=list, description="Embedding vector (empty in degraded mode)"
    )

    @property
    def has_embedding(self) -> bool:
        return len(self.embedding) > 0


class KeywordIndex(BaseModel):
    """
    In-memory keyword index.

    Serialized with camelCase keys (embeddingProvider, embeddingModel,
    embeddingDimensions); both camelCase and snake_case are accepted on load.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    keywords: List[KeywordEntry] = Field(default_factory=list)
    embedding_provider: Optional[str] = Field(
        default=None, description="Provider used to embed the keywords"
    )
    embedding_model: Optional[str] = Field(
        default=None, description="Model used to embed the keywords"
    )
    embedding_dimensions: Optional[int] = Field(
        default=None, ge=1, description="Declared embedding length"
    )

    @model_validator(mode="after")
    def validate_unique_keywords(self) -> "KeywordIndex":
        _check_unique_keywords(e.keyword for e in self.keywords)
        return self

    def __len__(self) -> int:
        return len(self.keywords)

    @property
    def has_embeddings(self) -> bool:
        """True if at least one entry carries a non-empty embedding."""
        return any(entry.has_embedding for entry in self.keywords)

    @property
    def is_degraded(self) -> bool:
        """True if every entry lacks an embedding (lexical-only index)."""
        return not self.has_embeddings
