"""
Self-hosted Ollama adapter.

Runs on our own server, so it takes no key and every tier may use it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from truthlens.inference.models import Provider
from truthlens.providers.base import ProviderAdapter

if TYPE_CHECKING:
    from truthlens.config.settings import InferenceSettings


class SelfHostedAdapter(ProviderAdapter):
    provider = Provider.SELF_HOSTED

    def __init__(self, settings: InferenceSettings, default_model: str, base_url: str):
        super().__init__(settings, default_model)
        self.base_url = base_url.rstrip("/")

    def litellm_model(self, model_id: str) -> str:
        return f"ollama_chat/{model_id}"

    def extra_params(self) -> dict[str, Any]:
        return {"api_base": self.base_url}
