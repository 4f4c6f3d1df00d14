"""
Error types for the inference orchestration layer.

Two layers of errors exist, and only the second ever reaches callers:

- RawProviderError: raised by provider adapters. Carries the HTTP-like status
  and the raw body exactly as the backend returned it.
- ClassifiedError: one of four closed kinds (see ErrorKind). Produced by the
  ErrorClassifier or raised directly by the credential resolver and the
  dispatchers. Its message is derived from kind + provider only, so raw
  provider bodies never leak into user-facing text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from truthlens.inference.models import Provider


class ErrorKind(str, Enum):
    MISSING_KEY = "MISSING_KEY"
    INVALID_KEY = "INVALID_KEY"
    RATE_LIMIT = "RATE_LIMIT"
    API_ERROR = "API_ERROR"

    @property
    def is_auth(self) -> bool:
        return self in (ErrorKind.MISSING_KEY, ErrorKind.INVALID_KEY)


class RawProviderError(Exception):
    """
    Uniform shape of any failure coming out of a provider adapter.

    Attributes:
        provider: Backend that failed
        status: HTTP-like status code, or None when there was no HTTP response
                (connection failure, empty or malformed completion)
        body: Raw error body/message. For logs and classification only.
    """

    def __init__(self, provider: Provider, status: int | None, body: str):
        super().__init__(f"{provider.value} error (status={status}): {body[:200]}")
        self.provider = provider
        self.status = status
        self.body = body


def default_message(kind: ErrorKind, provider: Provider | None) -> str:
    """User-facing message for an error kind."""
    name = provider.display_name if provider is not None else "AI provider"
    if kind is ErrorKind.MISSING_KEY:
        return f"Please add your {name} API key in Settings to use AI Chat."
    if kind is ErrorKind.INVALID_KEY:
        return f"Your {name} API key is invalid or expired. Please update it in Settings."
    if kind is ErrorKind.RATE_LIMIT:
        return "Rate limit exceeded. Please wait a moment and try again."
    return "An error occurred while communicating with the AI. Please try again."


class ClassifiedError(Exception):
    """
    A failure normalized to the closed error taxonomy.

    Args:
        kind: One of the four ErrorKinds
        provider: Provider the failure is attributed to (None for request-level
                  failures such as an empty plan)
        message: User-facing text. Defaults to the standard message for the kind.
                 Never pass a raw provider body here.
    """

    def __init__(
        self,
        kind: ErrorKind,
        provider: Provider | None = None,
        message: str | None = None,
    ):
        self.kind = kind
        self.provider = provider
        self.message = message or default_message(kind, provider)
        super().__init__(self.message)

    def __repr__(self) -> str:
        provider = self.provider.value if self.provider else None
        return f"{type(self).__name__}(kind={self.kind.value}, provider={provider}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serializable form for API responses: ``{code, message, provider}``."""
        return {
            "code": self.kind.value,
            "message": self.message,
            "provider": self.provider.value if self.provider else None,
        }


class RaceFailedError(ClassifiedError):
    """
    Every candidate of a race failed.

    The reported kind/provider/message come from the representative failure
    chosen by the racing dispatcher; ``errors`` holds every per-candidate
    failure in the order they were observed.
    """

    def __init__(self, representative: ClassifiedError, errors: list[ClassifiedError]):
        super().__init__(representative.kind, representative.provider, representative.message)
        self.errors = list(errors)


def no_providers_error() -> ClassifiedError:
    return ClassifiedError(
        ErrorKind.API_ERROR,
        message="No AI providers are configured for this request.",
    )
