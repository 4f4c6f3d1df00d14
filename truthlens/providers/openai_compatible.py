"""
Adapters for backends that speak the OpenAI chat-completion shape.

Groq, OpenAI, DeepSeek and OpenRouter all accept the same request body; they
differ only in LiteLLM prefix, endpoint and a few headers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from truthlens.inference.models import Provider
from truthlens.providers.base import ProviderAdapter

if TYPE_CHECKING:
    from truthlens.config.settings import InferenceSettings

DEEPSEEK_HOST = "api.deepseek.com"


class OpenAICompatibleAdapter(ProviderAdapter):
    """Adapter whose model string is just ``<prefix>/<model>``."""

    prefix: ClassVar[str]

    def litellm_model(self, model_id: str) -> str:
        return f"{self.prefix}/{model_id}"


class GroqAdapter(OpenAICompatibleAdapter):
    provider = Provider.GROQ
    prefix = "groq"


class OpenAIAdapter(OpenAICompatibleAdapter):
    provider = Provider.OPENAI
    prefix = "openai"


def normalize_base_url(base_url: str) -> str:
    """
    Normalize a configured DeepSeek endpoint to the base LiteLLM expects.

    Operators paste anything from the bare host to the full completions URL.
    LiteLLM appends ``/chat/completions`` itself, so that suffix is dropped.
    The official API lives at the host root; any other host is assumed to be
    an OpenAI-compatible server (Ollama, vLLM) serving under ``/v1``.

    >>> normalize_base_url("https://api.deepseek.com/chat/completions")
    'https://api.deepseek.com'
    >>> normalize_base_url("http://10.0.0.5:11434")
    'http://10.0.0.5:11434/v1'
    """
    url = base_url.strip().rstrip("/")
    if url.endswith("/chat/completions"):
        url = url[: -len("/chat/completions")]
    if url.endswith("/v1") or DEEPSEEK_HOST in url:
        return url
    return f"{url}/v1"


class DeepSeekAdapter(OpenAICompatibleAdapter):
    provider = Provider.DEEPSEEK
    prefix = "deepseek"

    def __init__(self, settings: InferenceSettings, default_model: str, base_url: str):
        super().__init__(settings, default_model)
        self.base_url = normalize_base_url(base_url)

    def extra_params(self) -> dict[str, Any]:
        return {"api_base": self.base_url}


class OpenRouterAdapter(OpenAICompatibleAdapter):
    """OpenRouter asks clients to identify themselves via attribution headers."""

    provider = Provider.OPENROUTER
    prefix = "openrouter"

    def __init__(self, settings: InferenceSettings, default_model: str, referer: str, title: str):
        super().__init__(settings, default_model)
        self._headers = {"HTTP-Referer": referer, "X-Title": title}

    def extra_params(self) -> dict[str, Any]:
        return {"extra_headers": dict(self._headers)}
