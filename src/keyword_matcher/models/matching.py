"""
Request/response models for keyword matching.

MatchResult serializes (by_alias=True) to the exposed contract:
{"keywords", "method", "shortlistSize", "validatedCount", ...}.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..errors import InvalidInputError


class MatchMethod(str, Enum):
    """Which branch of the matcher produced the result."""
    LEXICAL = "lexical"
    DIRECT = "direct"
    LLM = "llm"


class MatchRequest(BaseModel):
    """A description to match against the taxonomy."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: str = Field(description="Free-text description to match")
    use_llm: bool = Field(default=False, description="Refine the shortlist with an LLM")
    keyword_count: Optional[int] = Field(
        default=None, description="Requested keyword count for non-LLM results (clamped)"
    )
    llm_provider: Optional[str] = Field(
        default=None, description="Preferred generation provider"
    )
    client_id: str = Field(default="unknown", description="Caller id for usage accounting")

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Description is required")
        return v


class MatchResult(BaseModel):
    """Validated keywords plus observability metadata."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    keywords: List[str] = Field(default_factory=list)
    method: MatchMethod
    shortlist_size: int = Field(ge=0, description="Entries considered before truncation")
    validated_count: int = Field(ge=0, description="Candidates surviving validation")
    provider: Optional[str] = Field(default=None, description="Generation provider used")
    model: Optional[str] = Field(default=None, description="Generation model used")


class UsageEstimate(BaseModel):
    """Token estimate for a refinement call, with current usage for that model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    provider: str
    model: str
    prompt_tokens: int = Field(ge=0)
    output_tokens: int = Field(ge=0)
    total_tokens: int = Field(ge=0)
    current_requests: int = Field(default=0, ge=0)
    current_total_tokens: int = Field(default=0, ge=0)


def parse_match_request(data: dict) -> MatchRequest:
    """
    Build a MatchRequest from raw caller data.

    Raises:
        InvalidInputError: If the description is missing or any field is malformed
    """
    try:
        return MatchRequest.model_validate(data)
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'request'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidInputError(messages) from e
