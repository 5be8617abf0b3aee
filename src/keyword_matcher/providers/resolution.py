"""
Provider resolution by explicit choice and credential availability.

Embedding provider: explicit settings.embedding_provider when usable,
else openai, else gemini (API key present), else none (degraded mode).

Generation provider: explicit choice when usable, else the first usable
provider in GENERATION_FALLBACK_ORDER. Ollama needs no credential but is
never auto-selected; it must be chosen explicitly and have a base URL.
"""

from typing import Optional

import structlog

from ..config import Settings
from ..errors import InvalidInputError, NoProviderAvailableError


logger = structlog.get_logger(__name__)

EMBEDDING_PROVIDERS = ("openai", "gemini", "ollama")
EMBEDDING_FALLBACK_ORDER = ("openai", "gemini")

GENERATION_PROVIDERS = ("openrouter", "gemini", "openai", "ollama")
GENERATION_FALLBACK_ORDER = ("openrouter", "gemini", "openai")


def is_provider_configured(provider: str, settings: Settings) -> bool:
    """Whether the provider has the credential (or endpoint) it needs."""
    if provider == "openai":
        return bool(settings.openai_api_key)
    if provider == "gemini":
        return bool(settings.gemini_api_key)
    if provider == "openrouter":
        return bool(settings.openrouter_api_key)
    if provider == "ollama":
        return bool(settings.ollama_base_url)
    return False


def _check_known(provider: str, known: tuple, kind: str) -> None:
    if provider not in known:
        raise InvalidInputError(
            f"Unknown {kind} provider: {provider}. Supported: {', '.join(known)}"
        )


def resolve_embedding_provider(settings: Settings) -> Optional[str]:
    """
    Choose the embedding provider.

    Returns:
        Provider name, or None when no embedding credential is configured
    """
    explicit = settings.embedding_provider
    if explicit:
        _check_known(explicit, EMBEDDING_PROVIDERS, "embedding")
        if is_provider_configured(explicit, settings):
            return explicit
        logger.warning("embedding_provider_not_configured", provider=explicit)

    for provider in EMBEDDING_FALLBACK_ORDER:
        if is_provider_configured(provider, settings):
            return provider
    return None


def resolve_generation_provider(
    settings: Settings,
    requested: Optional[str] = None,
) -> str:
    """
    Choose the generation provider for refinement.

    Args:
        settings: Settings with credentials
        requested: Caller's preferred provider (falls back to settings.llm_provider)

    Returns:
        Provider name

    Raises:
        InvalidInputError: If the requested provider name is unknown
        NoProviderAvailableError: If no generation provider is usable
    """
    explicit = requested or settings.llm_provider
    if explicit:
        _check_known(explicit, GENERATION_PROVIDERS, "generation")
        if is_provider_configured(explicit, settings):
            return explicit
        logger.info("requested_llm_provider_unavailable", provider=explicit)

    for provider in GENERATION_FALLBACK_ORDER:
        if is_provider_configured(provider, settings):
            return provider

    raise NoProviderAvailableError("No AI API key is configured for LLM refinement")


def embedding_model_for(provider: str, settings: Settings) -> str:
    if provider == "gemini":
        return settings.gemini_embedding_model
    if provider == "ollama":
        return settings.ollama_embedding_model
    return settings.embedding_model


def generation_model_for(provider: str, settings: Settings) -> str:
    if provider == "gemini":
        return settings.gemini_llm_model
    if provider == "openrouter":
        return settings.openrouter_model
    if provider == "ollama":
        return settings.ollama_llm_model
    return settings.llm_model
