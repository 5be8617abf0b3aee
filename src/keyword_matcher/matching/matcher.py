"""
Keyword matcher orchestrating the complete matching pipeline.

Coordinates, per request:
1. Provider resolution (embedding, and generation when refinement is requested)
2. Lexical fallback when no embedding provider is configured
3. Embedding + similarity shortlist against the keyword index
4. Direct truncation of the shortlist, or
5. LLM refinement constrained to the shortlist, validated against the taxonomy
6. Fallback to the shortlist when too few LLM keywords survive validation

This is the main entry point for keyword matching. It keeps no state across
calls besides the cached index and the injected usage tracker.
"""

import threading
from typing import Any, Callable, Dict, FrozenSet, List, Optional

import structlog

from ..config import Settings, settings as default_settings
from ..errors import EmbeddingProviderError, InvalidInputError, NoProviderAvailableError
from ..index.store import KeywordIndexCache, get_keyword_index_cache
from ..models.keyword_index import KeywordEntry, KeywordIndex
from ..models.matching import (
    MatchMethod,
    MatchRequest,
    MatchResult,
    UsageEstimate,
    parse_match_request,
)
from ..providers.embeddings import EmbeddingClient, create_embedding_client
from ..providers.generation import LLMClient, create_llm_client
from ..providers.resolution import (
    generation_model_for,
    is_provider_configured,
    resolve_embedding_provider,
    resolve_generation_provider,
)
from ..search.lexical import rank_keywords_lexically
from ..search.similarity import find_top_similar
from ..usage import UsageTracker, get_usage_tracker
from .prompts import (
    CURRENT_PROMPT_VERSION,
    ESTIMATED_OUTPUT_TOKENS,
    build_selection_prompt,
    estimate_prompt_tokens,
)
from .validators import (
    extract_keywords_from_llm_response,
    get_allowed_keywords_set,
    validate_keywords,
)


logger = structlog.get_logger(__name__)

LLMClientFactory = Callable[[str], LLMClient]

PLACEHOLDER_KEYWORD = "keyword"


# ============================================================================
# KEYWORD MATCHER
# ============================================================================

class KeywordMatcher:
    """
    Matches descriptions against the keyword taxonomy.

    All collaborators are injectable; defaults are the process-wide
    settings, index cache and usage tracker.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        index_cache: Optional[KeywordIndexCache] = None,
        usage_tracker: Optional[UsageTracker] = None,
        embedding_client: Optional[EmbeddingClient] = None,
        llm_client_factory: Optional[LLMClientFactory] = None,
    ):
        """
        Initialize matcher.

        Args:
            settings: Settings (default: global settings)
            index_cache: Index accessor (default: shared cache for global
                settings, a private cache for custom settings)
            usage_tracker: Usage collaborator (default: shared tracker)
            embedding_client: Pre-configured embedding client (default:
                created lazily from settings)
            llm_client_factory: provider name -> LLMClient (default:
                create_llm_client with these settings)
        """
        self.settings = settings or default_settings

        if index_cache is None:
            index_cache = (
                get_keyword_index_cache() if settings is None else KeywordIndexCache(settings)
            )
        self.index_cache = index_cache
        self.usage_tracker = usage_tracker or get_usage_tracker()

        self._embedding_client = embedding_client
        self._embedding_lock = threading.Lock()
        self._llm_client_factory = llm_client_factory or (
            lambda provider: create_llm_client(provider, self.settings)
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match(self, request: MatchRequest) -> MatchResult:
        """
        Match a description against the taxonomy.

        Args:
            request: Match request

        Returns:
            MatchResult whose keywords are always members of the taxonomy

        Raises:
            InvalidInputError: Blank description or unknown provider name
            NoProviderAvailableError: Refinement requested without usable providers
            EmbeddingProviderError, GenerationProviderError: Upstream failures
            IndexIntegrityError: Index missing, corrupt or built for another model
        """
        _require_description(request.description)

        log = logger.bind(client_id=request.client_id, use_llm=request.use_llm)

        llm_provider = None
        if request.use_llm:
            llm_provider = resolve_generation_provider(self.settings, request.llm_provider)

        embedding_provider = self._embedding_provider()
        if embedding_provider is None and request.use_llm:
            raise NoProviderAvailableError(
                "LLM refinement needs an embedding shortlist but no embedding provider is configured"
            )

        keyword_index = self.index_cache.get()
        allowed = get_allowed_keywords_set(keyword_index)

        log.info(
            "match_started",
            description_length=len(request.description),
            embedding_provider=embedding_provider,
            llm_provider=llm_provider,
            index_size=len(keyword_index),
        )

        if embedding_provider is None:
            result = self._match_lexically(request, keyword_index, allowed)
        else:
            shortlist = [
                entry.keyword for entry in self._shortlist(request.description, keyword_index)
            ]
            if llm_provider is None:
                result = self._match_directly(request, shortlist, allowed)
            else:
                result = self._refine(request, llm_provider, shortlist, allowed)

        log.info(
            "match_completed",
            method=result.method.value,
            shortlist_size=result.shortlist_size,
            validated_count=result.validated_count,
            keywords_count=len(result.keywords),
        )
        return result

    def estimate(self, description: str, llm_provider: Optional[str] = None) -> UsageEstimate:
        """
        Estimate token usage of a refinement call without making it.

        When the shortlist cannot be computed (no embedding provider or the
        embedding call fails) a placeholder shortlist of the configured size
        is used instead.

        Raises:
            InvalidInputError: Blank description
            NoProviderAvailableError: No generation provider is usable
        """
        _require_description(description)

        provider = resolve_generation_provider(self.settings, llm_provider)
        model = generation_model_for(provider, self.settings)
        keyword_index = self.index_cache.get()

        shortlist = [PLACEHOLDER_KEYWORD] * self.settings.shortlist_size
        if self._embedding_provider() is not None:
            try:
                shortlist = [
                    entry.keyword for entry in self._shortlist(description, keyword_index)
                ]
            except EmbeddingProviderError as e:
                logger.warning("estimate_using_placeholder_shortlist", error=str(e))

        system_prompt, user_prompt = build_selection_prompt(
            description,
            shortlist,
            min_count=self.settings.target_keyword_min,
            max_count=self.settings.target_keyword_max,
        )
        prompt_tokens = estimate_prompt_tokens(system_prompt, user_prompt)

        current = self.usage_tracker.get_snapshot().model_usage(provider, model)

        return UsageEstimate(
            provider=provider,
            model=model,
            prompt_tokens=prompt_tokens,
            output_tokens=ESTIMATED_OUTPUT_TOKENS,
            total_tokens=prompt_tokens + ESTIMATED_OUTPUT_TOKENS,
            current_requests=current.requests,
            current_total_tokens=current.tokens.total_tokens,
        )

    def provider_status(self) -> Dict[str, Any]:
        """Which providers are configured, and with which models."""
        s = self.settings
        return {
            "status": "ok",
            "embedding_provider": self._embedding_provider(),
            "ai": {
                "openai": {
                    "configured": is_provider_configured("openai", s),
                    "model": s.llm_model,
                    "embedding_model": s.embedding_model,
                },
                "gemini": {
                    "configured": is_provider_configured("gemini", s),
                    "api_version": s.gemini_api_version,
                    "llm_model": s.gemini_llm_model,
                    "embedding_model": s.gemini_embedding_model,
                },
                "openrouter": {
                    "configured": is_provider_configured("openrouter", s),
                    "model": s.openrouter_model,
                },
                "ollama": {
                    "configured": is_provider_configured("ollama", s),
                    "llm_model": s.ollama_llm_model,
                    "embedding_model": s.ollama_embedding_model,
                },
            },
        }

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def _match_lexically(
        self,
        request: MatchRequest,
        keyword_index: KeywordIndex,
        allowed: FrozenSet[str],
    ) -> MatchResult:
        ranked = rank_keywords_lexically(request.description, keyword_index)
        count = self._resolve_count(request.keyword_count)
        keywords = validate_keywords([keyword for keyword, _ in ranked][:count], allowed)

        return MatchResult(
            keywords=keywords,
            method=MatchMethod.LEXICAL,
            shortlist_size=len(keyword_index),
            validated_count=len(keywords),
        )

    def _match_directly(
        self,
        request: MatchRequest,
        shortlist: List[str],
        allowed: FrozenSet[str],
    ) -> MatchResult:
        count = self._resolve_count(request.keyword_count)
        # Shortlist entries come from the index; re-check anyway
        keywords = validate_keywords(shortlist[:count], allowed)

        return MatchResult(
            keywords=keywords,
            method=MatchMethod.DIRECT,
            shortlist_size=len(shortlist),
            validated_count=len(keywords),
        )

    def _refine(
        self,
        request: MatchRequest,
        provider: str,
        shortlist: List[str],
        allowed: FrozenSet[str],
    ) -> MatchResult:
        min_count = self.settings.target_keyword_min
        max_count = self.settings.target_keyword_max

        system_prompt, user_prompt = build_selection_prompt(
            request.description, shortlist, min_count=min_count, max_count=max_count
        )

        client = self._llm_client_factory(provider)
        log = logger.bind(provider=client.provider_name, model=client.model)

        try:
            response = client.generate(system_prompt=system_prompt, user_prompt=user_prompt)
        except Exception as e:
            self.usage_tracker.record_usage(
                provider=client.provider_name,
                model=client.model,
                user_id=request.client_id,
            )
            log.error("llm_refinement_failed", error=str(e), error_type=type(e).__name__)
            raise

        self.usage_tracker.record_usage(
            provider=client.provider_name,
            model=client.model,
            user_id=request.client_id,
            tokens=response.token_usage(),
        )

        candidates = extract_keywords_from_llm_response(response.content)
        validated = validate_keywords(candidates, allowed)

        if len(validated) < min_count:
            log.warning(
                "llm_keywords_below_minimum_using_shortlist",
                candidates_count=len(candidates),
                validated_count=len(validated),
                minimum=min_count,
            )
            keywords = validate_keywords(shortlist[:max_count], allowed)
        else:
            keywords = validated[:max_count]

        log.debug(
            "llm_refinement_completed",
            prompt_version=CURRENT_PROMPT_VERSION,
            latency_ms=response.latency_ms,
            tokens_total=response.tokens_total,
        )

        return MatchResult(
            keywords=keywords,
            method=MatchMethod.LLM,
            shortlist_size=len(shortlist),
            validated_count=len(validated),
            provider=client.provider_name,
            model=client.model,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _embedding_provider(self) -> Optional[str]:
        if self._embedding_client is not None:
            return self._embedding_client.provider_name
        return resolve_embedding_provider(self.settings)

    def _get_embedding_client(self) -> EmbeddingClient:
        with self._embedding_lock:
            if self._embedding_client is None:
                self._embedding_client = create_embedding_client(settings=self.settings)
            return self._embedding_client

    def _shortlist(self, description: str, keyword_index: KeywordIndex) -> List[KeywordEntry]:
        client = self._get_embedding_client()
        try:
            query_embedding = client.embed(description)
        except EmbeddingProviderError as e:
            logger.error("description_embedding_failed", error=str(e))
            raise

        return find_top_similar(query_embedding, keyword_index, self.settings.shortlist_size)

    def _resolve_count(self, keyword_count: Optional[int]) -> int:
        """Requested count clamped to [keyword_count_min, keyword_count_max]."""
        if keyword_count is None:
            return self.settings.target_keyword_max
        return min(
            max(int(keyword_count), self.settings.keyword_count_min),
            self.settings.keyword_count_max,
        )


def _require_description(description: Any) -> None:
    if not isinstance(description, str) or not description.strip():
        raise InvalidInputError("Description is required")


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def match_keywords(
    description: str,
    use_llm: bool = False,
    keyword_count: Optional[int] = None,
    llm_provider: Optional[str] = None,
    client_id: str = "unknown",
) -> MatchResult:
    """
    Match a description using the default configuration.

    Example:
        >>> result = match_keywords("A detective hunts a serial killer in 1970s Paris")
        >>> result.method
        <MatchMethod.DIRECT: 'direct'>
    """
    request = parse_match_request({
        "description": description,
        "use_llm": use_llm,
        "keyword_count": keyword_count,
        "llm_provider": llm_provider,
        "client_id": client_id,
    })
    return KeywordMatcher().match(request)
