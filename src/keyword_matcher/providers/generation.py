"""
LLM client abstraction layer for keyword refinement.

Provides a unified one-shot, non-streaming interface for:
- OpenAI API
- OpenRouter (OpenAI-compatible)
- Gemini (Google's OpenAI-compatible endpoint)
- Ollama (self-hosted models)

Key features:
- JSON output hint where the provider supports it
- Token usage reporting
- Quota/rate-limit errors surfaced with the provider's retry hint

Clients do not retry; retry policy belongs to the caller.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import ollama
import structlog
from openai import APIStatusError, OpenAI, OpenAIError, RateLimitError

from ..config import Settings, settings as default_settings
from ..errors import GenerationProviderError, QuotaExceededError
from .resolution import generation_model_for, resolve_generation_provider


logger = structlog.get_logger(__name__)

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class LLMResponse:
    """
    Unified LLM response structure.

    Contains the raw text content and metadata about the request.
    """
    content: str

    # Metadata
    model: str
    provider: str
    tokens_input: Optional[int] = None
    tokens_output: Optional[int] = None
    tokens_total: Optional[int] = None
    latency_ms: int = 0
    finish_reason: str = "unknown"

    # Raw response for debugging
    raw_response: Optional[Any] = None

    def token_usage(self) -> Optional[Dict[str, int]]:
        """Token counts in usage-tracker form, or None if the provider reported none."""
        if self.tokens_input is None and self.tokens_output is None and self.tokens_total is None:
            return None
        usage = {
            "prompt_tokens": self.tokens_input or 0,
            "output_tokens": self.tokens_output or 0,
        }
        if self.tokens_total is not None:
            usage["total_tokens"] = self.tokens_total
        return usage


# ============================================================================
# ABSTRACT BASE CLASS
# ============================================================================

class LLMClient(ABC):
    """
    Abstract base class for LLM clients.

    All concrete implementations must provide generate(), which sends a
    system and user prompt and returns the raw text answer.
    """

    provider_name: str = "unknown"

    def __init__(
        self,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout_seconds: int = 60,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

        self.logger = logger.bind(
            llm_client=self.__class__.__name__,
            provider=self.provider_name,
            model=model
        )

    @abstractmethod
    def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """
        Send one prompt and return the raw text answer.

        Args:
            system_prompt: System instructions
            user_prompt: User content

        Returns:
            LLMResponse with text content and metadata

        Raises:
            QuotaExceededError: If the provider rejected the call for quota reasons
            GenerationProviderError: On any other provider failure
        """


# ============================================================================
# OPENAI-COMPATIBLE CLIENT
# ============================================================================

def parse_retry_after_seconds(error: APIStatusError) -> Optional[int]:
    """
    Extract a retry hint from a rate-limit error.

    Looks at the Retry-After header first, then at a Google RetryInfo
    detail ({"error": {"details": [{"@type": ..., "retryDelay": "17s"}]}}).
    """
    response = getattr(error, "response", None)
    if response is not None:
        header = response.headers.get("retry-after")
        if header and header.strip().isdigit():
            return int(header.strip())

    body = error.body
    if isinstance(body, list) and body:
        body = body[0]
    if not isinstance(body, dict):
        return None

    error_body = body.get("error", body)
    if not isinstance(error_body, dict):
        return None

    for detail in error_body.get("details") or []:
        if isinstance(detail, dict) and detail.get("@type") == RETRY_INFO_TYPE:
            match = re.search(r"(\d+)", str(detail.get("retryDelay", "")))
            if match:
                return int(match.group(1))
    return None


class OpenAICompatibleClient(LLMClient):
    """
    OpenAI-compatible client for multiple providers.

    Works with:
    - OpenAI API (api.openai.com)
    - OpenRouter (openrouter.ai/api/v1)
    - Gemini (generativelanguage.googleapis.com/<version>/openai/)
    """

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        provider_name: str = "openai",
        json_mode: bool = True,
        default_headers: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        self.provider_name = provider_name
        super().__init__(model=model, **kwargs)
        self.base_url = base_url
        self.json_mode = json_mode

        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=self.timeout_seconds,
            max_retries=0,
            default_headers=default_headers,
        )

    def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        start_time = time.time()

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt}
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if self.json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(**request)

        except RateLimitError as e:
            retry_after = parse_retry_after_seconds(e)
            self.logger.warning(
                "llm_quota_exceeded",
                error=str(e),
                retry_after_seconds=retry_after
            )
            raise QuotaExceededError(
                f"{self.provider_name} quota exceeded. Please retry after the suggested "
                f"delay or check your plan and billing.",
                provider=self.provider_name,
                retry_after_seconds=retry_after,
                raw=str(e.body) if e.body is not None else str(e),
            ) from e

        except OpenAIError as e:
            self.logger.error(
                "llm_request_failed",
                error=str(e),
                error_type=type(e).__name__
            )
            raise GenerationProviderError(f"{self.provider_name} LLM error: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice and choice.message else None) or ""

        usage = response.usage
        return LLMResponse(
            content=content,
            model=self.model,
            provider=self.provider_name,
            tokens_input=usage.prompt_tokens if usage else None,
            tokens_output=usage.completion_tokens if usage else None,
            tokens_total=usage.total_tokens if usage else None,
            latency_ms=latency_ms,
            finish_reason=(choice.finish_reason if choice else None) or "unknown",
            raw_response=response
        )


# ============================================================================
# OLLAMA CLIENT
# ============================================================================

class OllamaClient(LLMClient):
    """
    Ollama client for self-hosted models (qwen2.5, llama3.1, mistral, ...).

    Requires Ollama running locally or accessible via base_url.
    """

    provider_name = "ollama"

    def __init__(
        self,
        model: str,
        base_url: str = "http://localhost:11434",
        **kwargs
    ):
        super().__init__(model=model, **kwargs)
        self.base_url = base_url
        self.client = ollama.Client(host=base_url, timeout=self.timeout_seconds)

    def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        start_time = time.time()

        try:
            response = self.client.chat(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt}
                ],
                format="json",
                options={
                    "temperature": self.temperature,
                    "num_predict": self.max_tokens,
                }
            )

        except ollama.ResponseError as e:
            if e.status_code == 429:
                raise QuotaExceededError(
                    f"ollama rate limit: {e.error}",
                    provider=self.provider_name,
                    raw=e.error,
                ) from e
            self.logger.error("llm_request_failed", error=str(e), status_code=e.status_code)
            raise GenerationProviderError(f"ollama LLM error: {e.error}") from e

        except (ollama.RequestError, ConnectionError) as e:
            self.logger.error("llm_request_failed", error=str(e))
            raise GenerationProviderError(f"ollama LLM error: {e}") from e

        latency_ms = int((time.time() - start_time) * 1000)

        message = response.get("message") or {}
        tokens_input = response.get("prompt_eval_count")
        tokens_output = response.get("eval_count")
        tokens_total = (
            tokens_input + tokens_output
            if tokens_input is not None and tokens_output is not None
            else None
        )

        return LLMResponse(
            content=message.get("content") or "",
            model=self.model,
            provider=self.provider_name,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            tokens_total=tokens_total,
            latency_ms=latency_ms,
            finish_reason=response.get("done_reason") or "stop",
            raw_response=response
        )


# ============================================================================
# CLIENT FACTORY
# ============================================================================

def create_llm_client(
    provider: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> LLMClient:
    """
    Factory function to create the generation client for a provider.

    Args:
        provider: Provider name ("openrouter", "gemini", "openai", "ollama");
            resolved from settings when omitted
        settings: Settings (default: global settings)

    Returns:
        Configured LLMClient instance

    Raises:
        NoProviderAvailableError: If no provider is usable
        InvalidInputError: If the provider name is unknown
    """
    settings = settings or default_settings
    provider = resolve_generation_provider(settings, provider)
    model = generation_model_for(provider, settings)

    client_params = {
        "temperature": settings.llm_temperature,
        "max_tokens": settings.llm_max_tokens,
        "timeout_seconds": settings.llm_timeout_seconds,
    }

    logger.info(
        "creating_llm_client",
        provider=provider,
        model=model,
        temperature=client_params["temperature"]
    )

    if provider == "ollama":
        return OllamaClient(model=model, base_url=settings.ollama_base_url, **client_params)

    elif provider == "gemini":
        return OpenAICompatibleClient(
            model=model,
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_openai_base_url,
            provider_name="gemini",
            json_mode=False,
            **client_params
        )

    elif provider == "openrouter":
        return OpenAICompatibleClient(
            model=model,
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            provider_name="openrouter",
            default_headers={
                "HTTP-Referer": settings.openrouter_app_url,
                "X-Title": settings.openrouter_app_title,
            },
            **client_params
        )

    # openai
    return OpenAICompatibleClient(
        model=model,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        provider_name="openai",
        **client_params
    )
