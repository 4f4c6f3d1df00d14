"""
Inference component factory.

Centralises the construction of the orchestration layer from settings, so
the CLI, tests and any future API server wire it up the same way.
"""

from __future__ import annotations

import logging

from truthlens.config.settings import Settings
from truthlens.inference.analysis import ProductAnalyzer
from truthlens.inference.classifier import ErrorClassifier
from truthlens.inference.credentials import (
    CredentialResolver,
    CredentialStore,
    PlatformCredentialCache,
)
from truthlens.inference.fallback import FallbackChainDispatcher
from truthlens.inference.gateway import InferenceGateway
from truthlens.inference.models import Provider
from truthlens.inference.policy import ModelSelectionPolicy
from truthlens.inference.racing import RacingDispatcher
from truthlens.providers import ProviderAdapter, build_adapters

logger = logging.getLogger(__name__)


class InferenceComponents:
    """
    Factory for building the inference layer from settings.

    Example::

        factory = InferenceComponents(settings)
        gateway = factory.create_gateway(InMemoryCredentialStore.from_settings(settings.providers))
        text = await gateway.send_request("user-1", Tier.PRO, Provider.GEMINI, messages)
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def create_adapters(self) -> dict[Provider, ProviderAdapter]:
        return build_adapters(self.settings.providers, self.settings.inference)

    def create_policy(self) -> ModelSelectionPolicy:
        """Policy with the settings-driven defaults for OpenRouter and self-hosted."""
        providers = self.settings.providers
        return ModelSelectionPolicy(
            default_models={
                Provider.OPENROUTER: [providers.openrouter_model],
                Provider.SELF_HOSTED: [providers.self_hosted_model],
            }
        )

    def create_resolver(self, store: CredentialStore) -> CredentialResolver:
        cache = PlatformCredentialCache(store, ttl=self.settings.inference.credential_cache_ttl)
        return CredentialResolver(store, cache)

    def model_overrides(self) -> dict[Provider, str]:
        """Operator model overrides keyed by Provider. Unknown provider names are skipped."""
        overrides: dict[Provider, str] = {}
        for name, models in self.settings.providers.fallback_models.items():
            try:
                overrides[Provider(name.lower())] = models
            except ValueError:
                logger.warning(f"Ignoring model override for unknown provider {name!r}")
        return overrides

    def create_gateway(self, store: CredentialStore) -> InferenceGateway:
        """Create a fully wired InferenceGateway over a credential store."""
        inference = self.settings.inference
        adapters = self.create_adapters()
        resolver = self.create_resolver(store)
        classifier = ErrorClassifier()

        return InferenceGateway(
            policy=self.create_policy(),
            resolver=resolver,
            fallback=FallbackChainDispatcher(
                adapters, resolver, classifier, timeout=inference.chain_timeout
            ),
            racer=RacingDispatcher(
                adapters, resolver, classifier, cancel_losers=inference.cancel_race_losers
            ),
            adapters=adapters,
            model_overrides=self.model_overrides(),
        )

    def create_analyzer(self, gateway: InferenceGateway) -> ProductAnalyzer:
        return ProductAnalyzer(gateway)
