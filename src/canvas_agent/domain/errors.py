"""Typed failures raised across the command path.

ProviderError: one provider call failed (closed kind set).
CommandError: the whole command failed; carries a caller-facing message.
DomainError: a tool executor or the document store rejected an operation.
CircuitOpenError / RateLimitExceeded: gate rejections, kept as distinct types
because only the former triggers a fallback.
"""

from __future__ import annotations

from .domain_type import CommandErrorKind, ProviderErrorKind

USER_MESSAGES: dict[CommandErrorKind, str] = {
    CommandErrorKind.MISSING_CREDENTIALS: "AI service is not configured. Ask an administrator to set the provider API key.",
    CommandErrorKind.PROVIDER_UNAVAILABLE: "AI service is temporarily unavailable. Please try again in a minute.",
    CommandErrorKind.RATE_LIMITED: "Too many AI requests right now. Please try again shortly.",
    CommandErrorKind.REQUEST_FAILED: "Could not reach the AI service. Please try again.",
    CommandErrorKind.MALFORMED_RESPONSE: "The AI response could not be understood. Try rephrasing with explicit values.",
    CommandErrorKind.VALIDATION_ERROR: "The command produced invalid parameters. Try rephrasing with explicit values.",
    CommandErrorKind.DOMAIN_ERROR: "The canvas rejected the requested change.",
    CommandErrorKind.TIMEOUT: "The command took too long and was cancelled. Please try again.",
    CommandErrorKind.TARGET_NOT_FOUND: "The canvas could not be found.",
}


class ProviderError(Exception):
    """A single provider call failed.

    Attributes:
        kind: One of missing_credentials, request_failed, http_error, malformed_response
        provider: Provider name that produced the failure
        status: HTTP status for http_error
        body: Raw response body for http_error (may be None)
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        *,
        provider: str | None = None,
        status: int | None = None,
        body: object | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.status = status
        self.body = body

    @classmethod
    def missing_credentials(cls, provider: str) -> ProviderError:
        return cls(ProviderErrorKind.MISSING_CREDENTIALS, f"No API key configured for {provider}", provider=provider)

    @classmethod
    def request_failed(cls, provider: str, cause: object) -> ProviderError:
        return cls(ProviderErrorKind.REQUEST_FAILED, f"Request to {provider} failed: {cause}", provider=provider)

    @classmethod
    def http_error(cls, provider: str, status: int, body: object | None = None) -> ProviderError:
        return cls(
            ProviderErrorKind.HTTP_ERROR,
            f"{provider} returned HTTP {status}",
            provider=provider,
            status=status,
            body=body,
        )

    @classmethod
    def malformed_response(cls, provider: str, detail: str) -> ProviderError:
        return cls(ProviderErrorKind.MALFORMED_RESPONSE, f"Malformed response from {provider}: {detail}", provider=provider)


class CommandError(Exception):
    """A command could not be served.

    The ``kind`` is stable and machine-readable; ``user_message`` is what a
    UI shows. ``detail`` keeps the underlying cause for logs.
    """

    def __init__(self, kind: CommandErrorKind, detail: str | None = None, *, provider: str | None = None):
        super().__init__(detail or USER_MESSAGES[kind])
        self.kind = kind
        self.detail = detail
        self.provider = provider

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]

    @classmethod
    def from_provider_error(cls, error: ProviderError) -> CommandError:
        if error.kind == ProviderErrorKind.MISSING_CREDENTIALS:
            kind = CommandErrorKind.MISSING_CREDENTIALS
        elif error.kind == ProviderErrorKind.MALFORMED_RESPONSE:
            kind = CommandErrorKind.MALFORMED_RESPONSE
        elif error.kind == ProviderErrorKind.HTTP_ERROR and error.status is not None and error.status >= 500:
            kind = CommandErrorKind.PROVIDER_UNAVAILABLE
        else:
            kind = CommandErrorKind.REQUEST_FAILED
        return cls(kind, str(error), provider=error.provider)


class DomainError(Exception):
    """The canvas rejected an operation (missing entity, failed write)."""


class CircuitOpenError(Exception):
    """The provider's circuit is open; calls are short-circuited."""

    def __init__(self, provider: str, retry_after_s: float):
        super().__init__(f"Circuit open for {provider}; retry in {retry_after_s:.1f}s")
        self.provider = provider
        self.retry_after_s = retry_after_s


class RateLimitExceeded(Exception):
    """The provider's sliding window is full."""

    def __init__(self, provider: str, retry_after_s: float):
        super().__init__(f"Rate limit exceeded for {provider}; retry in {retry_after_s:.1f}s")
        self.provider = provider
        self.retry_after_s = retry_after_s


__all__ = [
    "USER_MESSAGES",
    "CircuitOpenError",
    "CommandError",
    "DomainError",
    "ProviderError",
    "RateLimitExceeded",
]
