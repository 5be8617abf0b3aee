"""
Usage accounting for generation provider calls.

UsageTracker is an injectable stateful collaborator: one shared instance
lives for the process (get_usage_tracker()), but callers may pass their own
instance, e.g. a fresh one per test.
"""

import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, Field


DEFAULT_PROVIDERS = ("openai", "gemini", "openrouter", "ollama")


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def add(self, delta: Dict[str, int]) -> None:
        prompt = delta.get("prompt_tokens") or 0
        output = delta.get("output_tokens") or 0
        total = delta.get("total_tokens")
        self.prompt_tokens += prompt
        self.output_tokens += output
        self.total_tokens += total if total is not None else prompt + output


class ModelUsage(BaseModel):
    requests: int = 0
    tokens: TokenUsage = Field(default_factory=TokenUsage)


class ProviderUsage(BaseModel):
    requests: int = 0
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    models: Dict[str, ModelUsage] = Field(default_factory=dict)


class UserUsage(BaseModel):
    requests: int = 0
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    models: Dict[str, ModelUsage] = Field(default_factory=dict)


class LastRequest(BaseModel):
    at: datetime
    provider: str
    model: str
    user: str
    tokens: TokenUsage


class UsageSnapshot(BaseModel):
    """Point-in-time copy of all usage counters."""
    since: datetime
    requests: int = 0
    tokens: TokenUsage = Field(default_factory=TokenUsage)
    providers: Dict[str, ProviderUsage] = Field(default_factory=dict)
    users: Dict[str, UserUsage] = Field(default_factory=dict)
    last_request: Optional[LastRequest] = None

    def model_usage(self, provider: str, model: str) -> ModelUsage:
        """Usage for one provider/model pair (zeros if never called)."""
        provider_usage = self.providers.get(provider)
        if provider_usage is None:
            return ModelUsage()
        return provider_usage.models.get(model, ModelUsage())


def _empty_snapshot() -> UsageSnapshot:
    return UsageSnapshot(
        since=datetime.now(timezone.utc),
        providers={name: ProviderUsage() for name in DEFAULT_PROVIDERS},
    )


class UsageTracker:
    """
    Thread-safe request/token counters per provider, model and user.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = _empty_snapshot()

    def record_usage(
        self,
        provider: str,
        model: str,
        user_id: str = "unknown",
        tokens: Optional[Dict[str, int]] = None,
    ) -> None:
        """
        Record one generation call.

        Args:
            provider: Provider name
            model: Model name
            user_id: Caller id
            tokens: Optional {"prompt_tokens", "output_tokens", "total_tokens"};
                total defaults to prompt + output
        """
        with self._lock:
            state = self._state
            state.requests += 1

            provider_usage = state.providers.setdefault(provider, ProviderUsage())
            provider_usage.requests += 1
            model_usage = provider_usage.models.setdefault(model, ModelUsage())
            model_usage.requests += 1

            user_usage = state.users.setdefault(user_id, UserUsage())
            user_usage.requests += 1
            user_model_usage = user_usage.models.setdefault(model, ModelUsage())
            user_model_usage.requests += 1

            request_tokens = TokenUsage()
            if tokens:
                request_tokens.add(tokens)
                for target in (
                    state.tokens,
                    provider_usage.tokens,
                    model_usage.tokens,
                    user_usage.tokens,
                    user_model_usage.tokens,
                ):
                    target.add(tokens)

            state.last_request = LastRequest(
                at=datetime.now(timezone.utc),
                provider=provider,
                model=model,
                user=user_id,
                tokens=request_tokens,
            )

    def get_snapshot(self) -> UsageSnapshot:
        """Deep copy of the current counters."""
        with self._lock:
            return self._state.model_copy(deep=True)

    def reset(self) -> None:
        with self._lock:
            self._state = _empty_snapshot()


_default_tracker = UsageTracker()


def get_usage_tracker() -> UsageTracker:
    """Process-wide shared tracker."""
    return _default_tracker
