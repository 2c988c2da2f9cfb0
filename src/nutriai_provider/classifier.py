from __future__ import annotations

import json
from typing import Any

from .errors import (
    AuthenticationError,
    ProviderError,
    QuotaExceededError,
    RateLimitError,
    TransportError,
    UpstreamError,
)

_NOT_PARSED = object()


def _parse_body(raw_body: str) -> Any:
    if not raw_body:
        return _NOT_PARSED
    try:
        return json.loads(raw_body)
    except ValueError:
        return _NOT_PARSED


def _error_field(data: Any, name: str) -> str | None:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict):
        value = error.get(name)
        return value if isinstance(value, str) and value else None
    # Some gateways return {"error": "text"}.
    if name == "message" and isinstance(error, str) and error:
        return error
    return None


def classify(
    status_code: int,
    raw_body: str,
    *,
    provider: str = "Gemini",
    credential_env: str = "GEMINI_API_KEY",
) -> ProviderError:
    """Map a failed upstream response to a user-facing error.

    Status is checked first, then the body. Every message tells the user what to
    do next (check the key, wait, or look at the plan).
    """
    fallback = f"{provider} request failed. Please try again."

    if status_code == 401:
        return AuthenticationError(
            f"Invalid API key. Please check {credential_env} in your environment and restart the service.",
            status_code=status_code,
        )

    data = _parse_body(raw_body)
    parsed = data is not _NOT_PARSED
    upstream_message = _error_field(data, "message") if parsed else None

    if status_code == 429:
        text = (upstream_message if parsed else raw_body) or ""
        lowered = text.lower()
        if "quota" in lowered or _error_field(data, "code") == "insufficient_quota":
            return QuotaExceededError(
                f"API quota exceeded. Please check your {provider} API plan and billing details. "
                "You may need to wait, add credits or upgrade your plan.",
                status_code=status_code,
            )
        if "rate limit" in lowered:
            return RateLimitError(
                "Rate limit exceeded. Please wait a moment and try again.",
                status_code=status_code,
            )
        if upstream_message:
            return RateLimitError(
                f"{upstream_message} Please wait a moment and try again.",
                status_code=status_code,
            )
        return RateLimitError(
            "Rate limit or quota exceeded. Please wait a moment and try again, or check your API plan.",
            status_code=status_code,
        )

    if not parsed:
        return TransportError(raw_body.strip() or fallback, status_code=status_code)

    return UpstreamError(upstream_message or raw_body.strip() or fallback, status_code=status_code)
