"""
Keyword index persistence and process-wide cache.

The persisted index is a flat JSON record:

    {"keywords": [{"keyword": ..., "path": [...], "embedding": [...]}, ...],
     "embeddingProvider": ..., "embeddingModel": ..., "embeddingDimensions": ...}

KeywordIndexCache resolves it once per process (first successful load wins)
and falls back to a degraded, embedding-free index built from the taxonomy
when no embedding credential is configured.
"""

import json
import threading
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from ..config import Settings, settings as default_settings
from ..errors import (
    IndexConfigurationError,
    IndexNotFoundError,
    InconsistentIndexError,
)
from ..models.keyword_index import KeywordEntry, KeywordIndex, Taxonomy
from ..providers.resolution import resolve_embedding_provider


logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]


def _read_json(path: Path) -> object:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise InconsistentIndexError(f"Cannot read {path}: {e}") from e


def load_keyword_index(path: PathLike) -> KeywordIndex:
    """
    Load a persisted keyword index.

    Args:
        path: Path to the index JSON file

    Returns:
        Frozen KeywordIndex

    Raises:
        IndexNotFoundError: If the file does not exist
        InconsistentIndexError: If the file is unreadable or malformed
    """
    path = Path(path)
    if not path.exists():
        raise IndexNotFoundError(f"Keyword index not found at {path}")

    data = _read_json(path)
    try:
        index = KeywordIndex.model_validate(data)
    except ValidationError as e:
        raise InconsistentIndexError(f"Malformed keyword index at {path}: {e}") from e

    logger.info(
        "keyword_index_loaded",
        path=str(path),
        keywords=len(index),
        embedding_provider=index.embedding_provider,
        embedding_dimensions=index.embedding_dimensions,
        degraded=index.is_degraded,
    )
    return index


def save_keyword_index(index: KeywordIndex, path: PathLike) -> Path:
    """
    Write a keyword index as JSON, creating parent directories.

    Returns:
        The path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(
            index.model_dump(by_alias=True, exclude_none=True),
            f,
            ensure_ascii=False,
            indent=2,
        )

    logger.info("keyword_index_written", path=str(path), keywords=len(index))
    return path


def load_taxonomy(path: PathLike) -> Taxonomy:
    """
    Load the source taxonomy file.

    Raises:
        IndexNotFoundError: If the file does not exist
        InconsistentIndexError: If the file is unreadable or malformed
    """
    path = Path(path)
    if not path.exists():
        raise IndexNotFoundError(
            f"Keywords file not found at {path}. Please ensure the keywords file exists."
        )

    data = _read_json(path)
    try:
        return Taxonomy.model_validate(data)
    except ValidationError as e:
        raise InconsistentIndexError(f"Malformed keywords file at {path}: {e}") from e


def build_degraded_index(taxonomy: Taxonomy) -> KeywordIndex:
    """Index with every embedding empty, usable for lexical matching only."""
    return KeywordIndex(
        keywords=[
            KeywordEntry(keyword=k.keyword, path=list(k.path), embedding=[])
            for k in taxonomy.keywords
        ]
    )


class KeywordIndexCache:
    """
    Acquire-or-build accessor for the process-wide keyword index.

    The first successful load is cached and returned by every later call
    without touching storage. Initialization is guarded by a lock so that
    concurrent first callers load the index exactly once. Failed loads are
    not cached.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._index: Optional[KeywordIndex] = None
        self._lock = threading.Lock()

    def get(self) -> KeywordIndex:
        index = self._index
        if index is not None:
            return index

        with self._lock:
            if self._index is None:
                self._index = self._load()
            return self._index

    def clear(self) -> None:
        """Drop the cached index so the next get() reloads it."""
        with self._lock:
            self._index = None

    def _load(self) -> KeywordIndex:
        index_path = Path(self.settings.keyword_index_path)
        embedding_provider = resolve_embedding_provider(self.settings)

        if not index_path.exists():
            if embedding_provider is None:
                logger.warning(
                    "keyword_index_missing_using_taxonomy",
                    index_path=str(index_path),
                    keywords_path=self.settings.keywords_path,
                )
                return build_degraded_index(load_taxonomy(self.settings.keywords_path))

            raise IndexNotFoundError(
                f"Keyword index not found at {index_path}. "
                f"Please run: keyword-matcher build-index"
            )

        index = load_keyword_index(index_path)

        if embedding_provider is not None and any(
            not entry.has_embedding for entry in index.keywords
        ):
            raise IndexConfigurationError(
                "Keyword index is missing embeddings but an embedding provider "
                f"({embedding_provider}) is configured. "
                "Rebuild with: keyword-matcher build-index"
            )

        return index


# Process-wide default cache
_default_cache: Optional[KeywordIndexCache] = None
_default_cache_lock = threading.Lock()


def get_keyword_index_cache() -> KeywordIndexCache:
    """Get the shared KeywordIndexCache (created on first use)."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = KeywordIndexCache()
        return _default_cache
