from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MAX_OUTPUT_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.4


class ProviderName(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"


class CompletionOptions(BaseModel):
    """Caller-side option vocabulary, shared by every provider."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    max_tokens: int | None = Field(default=None, alias="maxTokens")
    max_output_tokens: int | None = Field(default=None, alias="maxOutputTokens")
    temperature: float | None = None


class CompletionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    prompt: str
    max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, gt=0)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0, le=1.0)

    @field_validator("prompt")
    @classmethod
    def _validate_prompt(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must be non-empty.")
        return v


@dataclass(frozen=True)
class GeminiGenerationOptions:
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


@dataclass(frozen=True)
class OpenAIChatOptions:
    max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    temperature: float = DEFAULT_TEMPERATURE


class CompletionSession(Protocol):
    name: str

    async def request(self, prompt: str, options: Any) -> str: ...

    async def close(self) -> None: ...
