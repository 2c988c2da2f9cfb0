from __future__ import annotations

import os

from pydantic import BaseModel, Field

from .contracts import ProviderName


def _parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


class NutriAIConfig(BaseModel):
    # Provider selection: "gemini" | "openai"; anything else falls back to gemini
    ai_provider: str | None = Field(default_factory=lambda: os.getenv("AI_PROVIDER"))

    # Credentials, checked on first use
    gemini_api_key: str | None = Field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    openai_api_key: str | None = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))

    # Upstream endpoints
    gemini_model: str = Field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash-exp"))
    gemini_base_url: str = Field(
        default_factory=lambda: os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta")
    )
    openai_model: str = Field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    openai_base_url: str = Field(default_factory=lambda: os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"))
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
    )

    # Suggestion pipeline
    suggestion_debounce_seconds: float = Field(
        default_factory=lambda: float(os.getenv("SUGGESTION_DEBOUNCE_SECONDS", "0.35"))
    )
    suggestion_min_chars: int = Field(default_factory=lambda: int(os.getenv("SUGGESTION_MIN_CHARS", "2")))
    max_suggestions: int = Field(default_factory=lambda: int(os.getenv("MAX_SUGGESTIONS", "8")))

    # Observability
    enable_metrics: bool = Field(
        default_factory=lambda: os.getenv("ENABLE_METRICS", "false").lower() == "true"
    )
    metrics_bind: str = Field(default_factory=lambda: os.getenv("METRICS_BIND", "127.0.0.1"))
    metrics_port: int = Field(default_factory=lambda: int(os.getenv("METRICS_PORT", "9109")))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = Field(default_factory=lambda: os.getenv("LOG_FORMAT", "json"))

    # Server hardening
    server_auth_token: str | None = Field(default_factory=lambda: os.getenv("SERVER_AUTH_TOKEN"))
    enable_api_docs: bool = Field(
        default_factory=lambda: os.getenv("ENABLE_API_DOCS", "false").lower() == "true"
    )
    cors_allow_origins: list[str] = Field(default_factory=lambda: _parse_csv(os.getenv("CORS_ALLOW_ORIGINS")))
    max_request_body_bytes: int = Field(
        default_factory=lambda: int(os.getenv("MAX_REQUEST_BODY_BYTES", str(64 * 1024)))
    )

    def resolved_provider(self) -> ProviderName:
        value = (self.ai_provider or "").strip().lower()
        try:
            return ProviderName(value)
        except ValueError:
            return ProviderName.GEMINI

    def credential_for(self, provider: ProviderName) -> str | None:
        if provider is ProviderName.OPENAI:
            return self.openai_api_key
        return self.gemini_api_key

    def secrets(self) -> list[str]:
        return [s for s in (self.gemini_api_key, self.openai_api_key, self.server_auth_token) if s]
