"""
Offline keyword index build.

Embeds every taxonomy keyword in batches and writes the flat JSON index
consumed by KeywordIndexCache. Without an embedding provider the index is
built with empty embeddings (lexical matching only).
"""

from pathlib import Path
from typing import List, Optional

import structlog

from ..config import Settings, settings as default_settings
from ..errors import EmbeddingProviderError, InvalidInputError
from ..models.keyword_index import KeywordEntry, KeywordIndex, Taxonomy
from ..providers.embeddings import EmbeddingClient, create_embedding_client
from ..providers.resolution import resolve_embedding_provider
from .store import build_degraded_index, load_taxonomy, save_keyword_index


logger = structlog.get_logger(__name__)


def build_keyword_index(
    taxonomy: Taxonomy,
    embedding_client: Optional[EmbeddingClient] = None,
    batch_size: int = 100,
) -> KeywordIndex:
    """
    Build a keyword index from a taxonomy.

    Args:
        taxonomy: Source keywords
        embedding_client: Client used to embed keyword texts; None builds a
            degraded index without embeddings
        batch_size: Keywords per embedding call

    Returns:
        KeywordIndex annotated with embedding provider, model and dimensions

    Raises:
        EmbeddingProviderError: If a batch fails or returns the wrong count
    """
    if embedding_client is None:
        logger.warning(
            "building_index_without_embeddings",
            keywords=len(taxonomy.keywords),
        )
        return build_degraded_index(taxonomy)

    if batch_size <= 0:
        raise InvalidInputError(f"batch_size must be positive, got {batch_size}")

    texts = [k.keyword for k in taxonomy.keywords]
    embeddings: List[List[float]] = []
    total_batches = (len(texts) + batch_size - 1) // batch_size

    for start in range(0, len(texts), batch_size):
        batch = texts[start:start + batch_size]
        logger.info(
            "embedding_batch",
            batch=start // batch_size + 1,
            total_batches=total_batches,
            size=len(batch),
        )
        vectors = embedding_client.embed_batch(batch)
        if len(vectors) != len(batch):
            raise EmbeddingProviderError(
                f"Embedding batch starting at {start} returned {len(vectors)} vectors "
                f"for {len(batch)} keywords"
            )
        embeddings.extend(vectors)

    dimensions = {len(vector) for vector in embeddings}
    if len(dimensions) > 1:
        raise EmbeddingProviderError(
            f"Embedding provider returned mixed dimensions: {sorted(dimensions)}"
        )

    index = KeywordIndex(
        keywords=[
            KeywordEntry(keyword=k.keyword, path=list(k.path), embedding=vector)
            for k, vector in zip(taxonomy.keywords, embeddings)
        ],
        embedding_provider=embedding_client.provider_name,
        embedding_model=embedding_client.model,
        embedding_dimensions=dimensions.pop() if dimensions else None,
    )

    logger.info(
        "keyword_index_built",
        keywords=len(index),
        embedding_provider=index.embedding_provider,
        embedding_dimensions=index.embedding_dimensions,
    )
    return index


def build_and_save(
    settings: Optional[Settings] = None,
    taxonomy_path: Optional[str] = None,
    output_path: Optional[str] = None,
    embedding_client: Optional[EmbeddingClient] = None,
) -> KeywordIndex:
    """
    Load the taxonomy, build the index and write it to disk.

    The embedding client is created from settings when a provider is
    configured and none is passed in.
    """
    settings = settings or default_settings
    taxonomy_path = taxonomy_path or settings.keywords_path
    output_path = output_path or settings.keyword_index_path

    logger.info("loading_taxonomy", path=taxonomy_path)
    taxonomy = load_taxonomy(taxonomy_path)
    logger.info("taxonomy_loaded", keywords=len(taxonomy.keywords))

    if embedding_client is None and resolve_embedding_provider(settings) is not None:
        embedding_client = create_embedding_client(settings=settings)

    index = build_keyword_index(
        taxonomy,
        embedding_client=embedding_client,
        batch_size=settings.embedding_batch_size,
    )
    save_keyword_index(index, Path(output_path))
    return index
