"""
Exception taxonomy for keyword matching.

Index/vector integrity failures are never recovered: they indicate a
build/runtime configuration mismatch that would otherwise corrupt ranking.
Provider failures are surfaced as-is to the caller. Nothing here retries.
"""

from typing import Optional


class KeywordMatcherError(Exception):
    """Base class for all keyword matcher errors."""


# ============================================================================
# INDEX / VECTOR INTEGRITY
# ============================================================================

class IndexIntegrityError(KeywordMatcherError):
    """Base class for index and vector integrity failures."""


class DimensionMismatchError(IndexIntegrityError):
    """Two vectors being compared do not live in the same space."""

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )


class InconsistentIndexError(IndexIntegrityError):
    """The keyword index is corrupt or partially rebuilt."""


class IndexHasNoEmbeddingsError(IndexIntegrityError):
    """The index was built without embeddings and cannot serve similarity queries."""


class IndexConfigurationError(IndexIntegrityError):
    """The persisted index cannot honor the configured providers."""


class IndexNotFoundError(IndexIntegrityError):
    """Neither a persisted index nor a usable taxonomy source exists."""


# ============================================================================
# UPSTREAM PROVIDERS
# ============================================================================

class ProviderError(KeywordMatcherError):
    """Base class for upstream provider failures."""


class NoProviderAvailableError(ProviderError):
    """No provider with a usable credential is configured."""


class EmbeddingProviderError(ProviderError):
    """Embedding generation failed."""


class GenerationProviderError(ProviderError):
    """Text generation failed."""


class QuotaExceededError(GenerationProviderError):
    """
    The generation provider rejected the call for quota/rate-limit reasons.

    Carries the provider's retry hint when one was supplied.
    """

    def __init__(
        self,
        message: str,
        provider: str,
        retry_after_seconds: Optional[int] = None,
        raw: Optional[str] = None,
    ):
        self.provider = provider
        self.retry_after_seconds = retry_after_seconds
        self.raw = raw
        super().__init__(message)


# ============================================================================
# REQUEST
# ============================================================================

class InvalidInputError(KeywordMatcherError, ValueError):
    """Missing or malformed request input."""
