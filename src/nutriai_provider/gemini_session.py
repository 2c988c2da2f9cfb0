from __future__ import annotations

from typing import Any

import httpx
import structlog

from .classifier import classify
from .contracts import GeminiGenerationOptions
from .errors import AuthenticationError, TransportError

log = structlog.get_logger()

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-exp"


def _first_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return ""
    text = parts[0].get("text")
    return text if isinstance(text, str) else ""


class GeminiSession:
    """Generative-text client for the Gemini Developer API (api key auth).

    One POST per call, no retries: the caller decides whether to try again.
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = DEFAULT_GEMINI_MODEL,
        client: httpx.AsyncClient | None = None,
        base_url: str = GEMINI_API_BASE,
        timeout_seconds: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._base_url = base_url.rstrip("/")

    async def close(self) -> None:
        await self._client.aclose()

    async def request(self, prompt: str, options: GeminiGenerationOptions) -> str:
        if not self.api_key:
            raise AuthenticationError("Missing GEMINI_API_KEY. Set it in your environment and restart the service.")

        url = f"{self._base_url}/models/{self.model}:generateContent"
        params = {"key": self.api_key}
        payload: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": options.temperature,
                "topP": 0.95,
                "topK": 40,
                "maxOutputTokens": options.max_output_tokens,
            },
        }

        try:
            resp = await self._client.post(url, params=params, json=payload)
        except httpx.TimeoutException as e:
            raise TransportError("Gemini request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            raise TransportError("Could not reach Gemini. Check your connection and try again.") from e

        if not resp.is_success:
            log.warning("gemini_upstream_error", status_code=resp.status_code, body=resp.text[:500])
            raise classify(resp.status_code, resp.text, provider="Gemini", credential_env="GEMINI_API_KEY")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError("Gemini returned a non-JSON response.", status_code=resp.status_code) from e

        text = _first_text(data)
        log.debug("gemini_generate_ok", model=self.model, prompt_chars=len(prompt), text_chars=len(text))
        return text
