from __future__ import annotations

from typing import Any

import httpx
import structlog

from .classifier import classify
from .contracts import OpenAIChatOptions
from .errors import AuthenticationError, ResponseParseError, TransportError
from .prompts import JSON_ONLY_SYSTEM_INSTRUCTION

log = structlog.get_logger()

OPENAI_API_BASE = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


class OpenAIChatSession:
    """Chat-completion client forcing JSON-only replies."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_OPENAI_MODEL,
        client: httpx.AsyncClient | None = None,
        base_url: str = OPENAI_API_BASE,
        timeout_seconds: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._base_url = base_url.rstrip("/")

    async def close(self) -> None:
        await self._client.aclose()

    async def request(self, prompt: str, options: OpenAIChatOptions) -> str:
        if not self.api_key:
            raise AuthenticationError("Missing OPENAI_API_KEY. Set it in your environment and restart the service.")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": JSON_ONLY_SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            resp = await self._client.post(f"{self._base_url}/chat/completions", headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise TransportError("OpenAI request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            raise TransportError("Could not reach OpenAI. Check your connection and try again.") from e

        if not resp.is_success:
            log.warning("openai_upstream_error", status_code=resp.status_code, body=resp.text[:500])
            raise classify(resp.status_code, resp.text, provider="OpenAI", credential_env="OPENAI_API_KEY")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError("OpenAI returned a non-JSON response.", status_code=resp.status_code) from e

        content = ""
        choices = data.get("choices") if isinstance(data, dict) else None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                content = message["content"]

        if not content:
            raise ResponseParseError("Failed to get response from OpenAI. Please try again.")

        log.debug("openai_chat_ok", model=self.model, prompt_chars=len(prompt), text_chars=len(content))
        return content
