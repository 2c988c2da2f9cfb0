from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from .config import NutriAIConfig
from .contracts import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    CompletionOptions,
    CompletionRequest,
    CompletionSession,
    GeminiGenerationOptions,
    OpenAIChatOptions,
    ProviderName,
)
from .errors import ConfigurationError, ProviderError
from .extractor import JSONValue, extract_json
from .metrics import provider_errors_total, request_latency_seconds, requests_total

log = structlog.get_logger()


def coerce_options(options: CompletionOptions | Mapping[str, Any] | None) -> CompletionOptions:
    if options is None:
        return CompletionOptions()
    if isinstance(options, CompletionOptions):
        return options
    try:
        return CompletionOptions.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid completion options: {e.errors()[0]['msg']}") from e


def build_request(provider: ProviderName, prompt: str, options: CompletionOptions) -> CompletionRequest:
    """Fold the caller's option vocabulary into one validated request.

    Each provider prefers its own name for the token limit and falls back to the
    other one.
    """
    if provider is ProviderName.OPENAI:
        limits = (options.max_tokens, options.max_output_tokens)
    else:
        limits = (options.max_output_tokens, options.max_tokens)
    max_output_tokens = next((v for v in limits if v is not None), DEFAULT_MAX_OUTPUT_TOKENS)
    temperature = options.temperature if options.temperature is not None else DEFAULT_TEMPERATURE
    try:
        return CompletionRequest(prompt=prompt, max_output_tokens=max_output_tokens, temperature=temperature)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid completion request: {e.errors()[0]['msg']}") from e


def provider_options(provider: ProviderName, req: CompletionRequest) -> GeminiGenerationOptions | OpenAIChatOptions:
    if provider is ProviderName.OPENAI:
        return OpenAIChatOptions(max_tokens=req.max_output_tokens, temperature=req.temperature)
    return GeminiGenerationOptions(max_output_tokens=req.max_output_tokens, temperature=req.temperature)


class ProviderRouter:
    """Dispatch completions to the configured provider and extract JSON."""

    def __init__(
        self,
        cfg: NutriAIConfig,
        *,
        sessions: Mapping[ProviderName, CompletionSession] | None = None,
    ):
        self.cfg = cfg
        self.provider = cfg.resolved_provider()
        if cfg.ai_provider and cfg.ai_provider.strip().lower() != self.provider.value:
            log.warning("unknown_ai_provider", requested=cfg.ai_provider, using=self.provider.value)
        self._sessions: dict[ProviderName, CompletionSession] = dict(sessions or {})
        self._owned: list[CompletionSession] = []

    def _make_session(self, provider: ProviderName) -> CompletionSession:
        cfg = self.cfg
        if provider is ProviderName.OPENAI:
            from .openai_session import OpenAIChatSession

            return OpenAIChatSession(
                api_key=cfg.credential_for(provider),
                model=cfg.openai_model,
                base_url=cfg.openai_base_url,
                timeout_seconds=cfg.request_timeout_seconds,
            )

        from .gemini_session import GeminiSession

        return GeminiSession(
            api_key=cfg.credential_for(provider),
            model=cfg.gemini_model,
            base_url=cfg.gemini_base_url,
            timeout_seconds=cfg.request_timeout_seconds,
        )

    def session(self) -> CompletionSession:
        session = self._sessions.get(self.provider)
        if session is None:
            session = self._make_session(self.provider)
            self._sessions[self.provider] = session
            self._owned.append(session)
        return session

    async def complete(
        self,
        prompt: str,
        options: CompletionOptions | Mapping[str, Any] | None = None,
    ) -> JSONValue:
        provider = self.provider.value
        try:
            req = build_request(self.provider, prompt, coerce_options(options))
            session = self.session()
            with request_latency_seconds.labels(provider=provider).time():
                text = await session.request(req.prompt, provider_options(self.provider, req))
            value = extract_json(text)
        except ProviderError as e:
            requests_total.labels(provider=provider, status="error").inc()
            provider_errors_total.labels(provider=provider, kind=e.kind.value).inc()
            log.warning("completion_failed", provider=provider, kind=e.kind.value, status_code=e.status_code, error=e.message)
            raise

        requests_total.labels(provider=provider, status="success").inc()
        log.debug("completion_ok", provider=provider, result_type=type(value).__name__)
        return value

    async def close(self) -> None:
        for session in self._owned:
            await session.close()
        self._owned.clear()
