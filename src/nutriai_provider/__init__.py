from .classifier import classify
from .config import NutriAIConfig
from .contracts import CompletionOptions, CompletionRequest, ProviderName
from .errors import (
    AuthenticationError,
    ConfigurationError,
    ErrorKind,
    ProviderError,
    QuotaExceededError,
    RateLimitError,
    ResponseParseError,
    TransportError,
    UpstreamError,
)
from .extractor import extract_json
from .gemini_session import GeminiSession
from .openai_session import OpenAIChatSession
from .router import ProviderRouter
from .suggestions import SuggestionController, SuggestionSession, decode_suggestions, fetch_suggestions

__all__ = [
    "AuthenticationError",
    "CompletionOptions",
    "CompletionRequest",
    "ConfigurationError",
    "ErrorKind",
    "GeminiSession",
    "NutriAIConfig",
    "OpenAIChatSession",
    "ProviderError",
    "ProviderName",
    "ProviderRouter",
    "QuotaExceededError",
    "RateLimitError",
    "ResponseParseError",
    "SuggestionController",
    "SuggestionSession",
    "TransportError",
    "UpstreamError",
    "classify",
    "decode_suggestions",
    "extract_json",
    "fetch_suggestions",
]
