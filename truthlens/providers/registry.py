"""
Adapter registry: one adapter instance per Provider, built from settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from truthlens.inference.models import Provider
from truthlens.inference.policy import DEFAULT_MODELS
from truthlens.providers.base import ProviderAdapter
from truthlens.providers.gemini import GeminiAdapter
from truthlens.providers.openai_compatible import (
    DeepSeekAdapter,
    GroqAdapter,
    OpenAIAdapter,
    OpenRouterAdapter,
)
from truthlens.providers.self_hosted import SelfHostedAdapter

if TYPE_CHECKING:
    from truthlens.config.settings import InferenceSettings, ProviderSettings


def build_adapters(
    providers: ProviderSettings,
    inference: InferenceSettings,
) -> dict[Provider, ProviderAdapter]:
    """
    Create the adapter for every Provider.

    Raises:
        RuntimeError: If a Provider has no adapter (the enum and the
            registry must stay in step)
    """
    adapters: dict[Provider, ProviderAdapter] = {
        Provider.GROQ: GroqAdapter(inference, DEFAULT_MODELS[Provider.GROQ][0]),
        Provider.GEMINI: GeminiAdapter(inference, DEFAULT_MODELS[Provider.GEMINI][-1]),
        Provider.OPENAI: OpenAIAdapter(inference, DEFAULT_MODELS[Provider.OPENAI][0]),
        Provider.DEEPSEEK: DeepSeekAdapter(
            inference,
            DEFAULT_MODELS[Provider.DEEPSEEK][0],
            base_url=providers.deepseek_base_url,
        ),
        Provider.OPENROUTER: OpenRouterAdapter(
            inference,
            providers.openrouter_model,
            referer=providers.openrouter_referer,
            title=providers.openrouter_title,
        ),
        Provider.SELF_HOSTED: SelfHostedAdapter(
            inference,
            providers.self_hosted_model,
            base_url=providers.self_hosted_url,
        ),
    }

    missing = set(Provider) - set(adapters)
    if missing:
        raise RuntimeError(f"No adapter registered for: {sorted(p.value for p in missing)}")
    return adapters
