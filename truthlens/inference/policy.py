"""
Model selection policy.

Turns (tier, provider) into an ordered fallback plan of ModelSpecs, and
(tier, feature) into an ordered list of providers to race.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from truthlens.inference.models import Feature, ModelSpec, Provider, Tier

logger = logging.getLogger(__name__)

# Most capable first. OpenRouter and self-hosted defaults come from settings.
DEFAULT_MODELS: dict[Provider, tuple[str, ...]] = {
    Provider.GROQ: ("llama-3.3-70b-versatile", "llama-3.1-8b-instant"),
    Provider.GEMINI: ("gemini-1.5-pro", "gemini-1.5-flash"),
    Provider.OPENAI: ("gpt-4o-mini",),
    Provider.DEEPSEEK: ("deepseek-chat",),
}

# Free users race the two providers with generous free quotas; paid tiers
# get the stronger reasoning models first.
FREE_ANALYSIS_LINEUP = (Provider.GEMINI, Provider.GROQ)
PAID_ANALYSIS_LINEUP = (Provider.GROQ, Provider.DEEPSEEK, Provider.GEMINI)
SWARM_LINEUP = (Provider.GROQ, Provider.GEMINI, Provider.DEEPSEEK, Provider.OPENAI)


def parse_model_list(configured: str | None) -> list[str]:
    """Split an operator's comma-separated model string, keeping order and dropping blanks."""
    if not configured:
        return []
    return [model.strip() for model in configured.split(",") if model.strip()]


class ModelSelectionPolicy:
    """
    Produces fallback plans and racing lineups.

    Args:
        default_models: Per-provider built-in orderings. Merged over
            DEFAULT_MODELS, so callers only pass the settings-driven entries
            (OpenRouter and self-hosted).
    """

    def __init__(self, default_models: Mapping[Provider, Iterable[str]] | None = None):
        self._defaults: dict[Provider, tuple[str, ...]] = dict(DEFAULT_MODELS)
        for provider, models in (default_models or {}).items():
            self._defaults[provider] = tuple(m for m in models if m)

    def plan(self, tier: Tier, provider: Provider, configured_models: str | None = None) -> list[ModelSpec]:
        """
        Build the fallback plan for a single provider.

        An operator override is used verbatim, in order. Otherwise the
        provider's built-in ordering applies. The result may be empty if a
        provider has neither; the dispatcher reports that as API_ERROR.
        """
        models = parse_model_list(configured_models)
        source = "override"
        if not models:
            models = list(self._defaults.get(provider, ()))
            source = "default"

        logger.debug(f"Plan for {provider.value} ({tier.value}, {source}): {models}")
        return [
            ModelSpec(provider=provider, model_id=model, priority=index)
            for index, model in enumerate(models)
        ]

    def fallback_plan(
        self,
        tier: Tier,
        providers: Iterable[Provider],
        overrides: Mapping[Provider, str] | None = None,
    ) -> list[ModelSpec]:
        """Concatenate per-provider plans into one multi-provider chain."""
        overrides = overrides or {}
        combined: list[ModelSpec] = []
        for provider in providers:
            for spec in self.plan(tier, provider, overrides.get(provider)):
                combined.append(spec.model_copy(update={"priority": len(combined)}))
        return combined

    def lineup(self, tier: Tier, feature: Feature) -> tuple[Provider, ...]:
        """Unfiltered racing lineup for a tier and feature."""
        if feature is Feature.PRODUCT_ANALYSIS:
            return FREE_ANALYSIS_LINEUP if tier is Tier.FREE else PAID_ANALYSIS_LINEUP
        return SWARM_LINEUP

    async def race_providers(
        self,
        tier: Tier,
        feature: Feature,
        is_plausible: Callable[[Provider], Awaitable[bool]] | None = None,
    ) -> list[Provider]:
        """
        Racing lineup filtered to providers with a plausible credential.

        The filter only saves wasted calls; the resolver is still
        authoritative when the race actually runs.
        """
        lineup = self.lineup(tier, feature)
        if is_plausible is None:
            return list(lineup)

        available = [provider for provider in lineup if await is_plausible(provider)]
        logger.debug(f"Race lineup for {feature.value} ({tier.value}): {[p.value for p in available]}")
        return available
