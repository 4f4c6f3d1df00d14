"""
Provider Adapter Layer.

One adapter per inference backend, all behind the same call contract:

    adapter.call(messages, model_id, credential) → text | RawProviderError

Wire formats stay inside the adapters; LiteLLM handles transport.
"""

from truthlens.providers.base import ProviderAdapter
from truthlens.providers.gemini import GeminiAdapter
from truthlens.providers.openai_compatible import (
    DeepSeekAdapter,
    GroqAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
)
from truthlens.providers.registry import build_adapters
from truthlens.providers.self_hosted import SelfHostedAdapter

__all__ = [
    "ProviderAdapter",
    "GroqAdapter",
    "OpenAIAdapter",
    "DeepSeekAdapter",
    "OpenRouterAdapter",
    "GeminiAdapter",
    "SelfHostedAdapter",
    "build_adapters",
]
