"""
Base class for provider adapters.

An adapter is pure translation: it turns the uniform call contract
(ordered chat messages + optional model id + credential) into one backend's
request, and turns the backend's answer into either response text or a
RawProviderError. Transport goes through LiteLLM's ``acompletion``, which
already speaks each provider's wire format; subclasses decide the model
string, the message shape and any provider-specific parameters.

Adapters never retry, fall back, or swallow errors. That policy belongs to
the dispatchers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, ClassVar

from litellm import acompletion

from truthlens.inference.errors import RawProviderError
from truthlens.inference.models import ChatMessage, Credential, CredentialSource, Provider

if TYPE_CHECKING:
    from truthlens.config.settings import InferenceSettings


class ProviderAdapter(ABC):
    """
    Uniform call contract over one inference backend.

    Args:
        settings: Shared sampling/timeout configuration
        default_model: Model used when the caller passes no model id
    """

    provider: ClassVar[Provider]

    def __init__(self, settings: InferenceSettings, default_model: str):
        self._settings = settings
        self.default_model = default_model

    @abstractmethod
    def litellm_model(self, model_id: str) -> str:
        """LiteLLM model string (``<provider-prefix>/<model>``) for a model id."""

    def serialize(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        """Wire-format messages. OpenAI chat-completion shape by default."""
        return [{"role": m.role, "content": m.content} for m in messages]

    def extra_params(self) -> dict[str, Any]:
        """Provider-specific keyword arguments for ``acompletion`` (base URL, headers)."""
        return {}

    async def call(
        self,
        messages: Sequence[ChatMessage],
        model_id: str | None,
        credential: Credential,
    ) -> str:
        """
        Send one completion request.

        Args:
            messages: Ordered conversation, treated as read-only
            model_id: Model to use, or None for the adapter's default
            credential: Credential resolved for this provider

        Returns:
            The completion text

        Raises:
            RawProviderError: On any transport/provider failure, or when the
                completion is empty or malformed
        """
        if credential.provider is not self.provider:
            raise ValueError(
                f"{type(self).__name__} got a credential for {credential.provider.value}"
            )

        call_kwargs: dict[str, Any] = {
            "model": self.litellm_model(model_id or self.default_model),
            "messages": self.serialize(messages),
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
            "timeout": self._settings.request_timeout,
        }
        if credential.source is not CredentialSource.NONE:
            call_kwargs["api_key"] = credential.secret.get_secret_value()
        call_kwargs.update(self.extra_params())

        try:
            response = await acompletion(**call_kwargs)
        except Exception as e:
            raise RawProviderError(self.provider, _status_of(e), _body_of(e)) from e

        return self._extract_text(response)

    def _extract_text(self, response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise RawProviderError(self.provider, None, f"Malformed completion: {e}") from e

        # Some backends return content as a list of parts
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )

        if not isinstance(content, str) or not content.strip():
            raise RawProviderError(self.provider, None, "Empty completion")
        return content


def _status_of(error: Exception) -> int | None:
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _body_of(error: Exception) -> str:
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(error) or type(error).__name__
