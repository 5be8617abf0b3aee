"""
Vector similarity over the keyword index.

Provides cosine similarity and top-K ranking of keyword entries against a
query embedding. Pure functions: no I/O, no state beyond the configured
default shortlist size.

Ranking is a linear scan plus a full stable sort. The taxonomy is bounded
(hundreds of entries), so no approximate-nearest-neighbor structure is used;
revisit this if the taxonomy grows by orders of magnitude.
"""

from typing import List, Optional, Sequence

import numpy as np

from ..config import settings
from ..errors import (
    DimensionMismatchError,
    InconsistentIndexError,
    IndexHasNoEmbeddingsError,
    InvalidInputError,
)
from ..models.keyword_index import KeywordEntry, KeywordIndex


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors of equal length.

    A zero vector is maximally dissimilar to everything (itself included):
    the result is exactly 0.0 when either norm is zero, never NaN.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        Similarity in [-1.0, 1.0]

    Raises:
        DimensionMismatchError: If the vectors differ in length

    Examples:
        >>> cosine_similarity([1, 0, 0], [1, 0, 0])
        1.0
        >>> cosine_similarity([0, 0], [1, 0])
        0.0
    """
    if len(vec_a) != len(vec_b):
        raise DimensionMismatchError(
            expected=len(vec_a),
            actual=len(vec_b),
            message=f"Vectors must have the same length ({len(vec_a)} != {len(vec_b)})",
        )

    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0

    return float(np.dot(a, b) / denominator)


def expected_dimension(index: KeywordIndex) -> int:
    """
    Embedding dimension a query must have to be compared against the index.

    Taken from the declared embedding_dimensions if present, else inferred
    from the first entry carrying a non-empty embedding.

    Raises:
        IndexHasNoEmbeddingsError: If no entry carries an embedding
    """
    first = next((e for e in index.keywords if e.has_embedding), None)
    if first is None:
        raise IndexHasNoEmbeddingsError(
            "Keyword index has no embeddings (built without an AI key); "
            "similarity search is unavailable"
        )

    if index.embedding_dimensions is not None:
        return index.embedding_dimensions
    return len(first.embedding)


def find_top_similar(
    query_embedding: Sequence[float],
    keyword_index: KeywordIndex,
    top_n: Optional[int] = None,
) -> List[KeywordEntry]:
    """
    Rank index entries by cosine similarity to the query.

    Checks run in a fixed order, each with its own error:
    1. the index has at least one embedding (IndexHasNoEmbeddingsError)
    2. the query matches the expected dimension (DimensionMismatchError)
    3. every entry matches the expected dimension (InconsistentIndexError)

    Ties keep the original index order (stable sort), so results are
    reproducible for a given index.

    Args:
        query_embedding: Query vector
        keyword_index: Index to search
        top_n: Number of entries to return (default: settings.shortlist_size)

    Returns:
        The first min(top_n, len(index)) entries, most similar first

    Examples:
        >>> index = KeywordIndex(keywords=[
        ...     KeywordEntry(keyword="a", embedding=[1, 0]),
        ...     KeywordEntry(keyword="b", embedding=[0, 1]),
        ... ])
        >>> [e.keyword for e in find_top_similar([0, 1], index, 1)]
        ['b']
    """
    if top_n is None:
        top_n = settings.shortlist_size
    if top_n <= 0:
        raise InvalidInputError(f"top_n must be positive, got {top_n}")

    dimension = expected_dimension(keyword_index)

    if len(query_embedding) != dimension:
        raise DimensionMismatchError(
            expected=dimension,
            actual=len(query_embedding),
            message=(
                f"Query embedding has {len(query_embedding)} dimensions but the index "
                f"expects {dimension}; the query was embedded with a different "
                f"provider/model than the index"
            ),
        )

    for position, entry in enumerate(keyword_index.keywords):
        if len(entry.embedding) != dimension:
            raise InconsistentIndexError(
                f"Keyword '{entry.keyword}' at position {position} has "
                f"{len(entry.embedding)} dimensions, expected {dimension}; "
                f"rebuild the keyword index"
            )

    matrix = np.asarray([e.embedding for e in keyword_index.keywords], dtype=np.float64)
    query = np.asarray(query_embedding, dtype=np.float64)

    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    similarities = np.divide(
        dots, denominators, out=np.zeros_like(dots), where=denominators != 0
    )

    # Stable sort on negated scores keeps index order for ties
    order = np.argsort(-similarities, kind="stable")

    return [keyword_index.keywords[i] for i in order[:top_n]]
