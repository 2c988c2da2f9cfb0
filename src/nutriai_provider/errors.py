from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    AUTH = "auth"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    PARSE = "parse"
    TRANSPORT = "transport"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """Base error for completion failures.

    Carries a human-actionable message, the upstream HTTP status when there was
    one, and the error kind callers switch on.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, status_code={self.status_code!r}, message={self.message!r})"


class ConfigurationError(ProviderError):
    """Invalid caller input (empty prompt, out of range options)."""


class AuthenticationError(ProviderError):
    kind = ErrorKind.AUTH


class QuotaExceededError(ProviderError):
    kind = ErrorKind.QUOTA


class RateLimitError(ProviderError):
    kind = ErrorKind.RATE_LIMIT


class ResponseParseError(ProviderError):
    """Model output could not be turned into a JSON value."""

    kind = ErrorKind.PARSE


class TransportError(ProviderError):
    """Network failure, timeout, or a non-JSON body from upstream."""

    kind = ErrorKind.TRANSPORT


class UpstreamError(ProviderError):
    """Unclassified non-2xx upstream response."""

    kind = ErrorKind.UNKNOWN
